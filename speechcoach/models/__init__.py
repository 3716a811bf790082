"""Data models for the SpeechCoach application."""

from .events import AudioEvent, Notification, TranscriptSegment, TranscriptUpdate
from .metrics import SpeechMetrics
from .session import (
    LEVEL_SAMPLE_COUNT,
    Rating,
    RecordingSession,
    RecordingState,
    SessionRecord,
    SourceType,
)
from .transcription import NO_SPEECH_DETECTED, TranscriptionResult

__all__ = [
    "AudioEvent",
    "Notification",
    "TranscriptSegment",
    "TranscriptUpdate",
    "SpeechMetrics",
    "LEVEL_SAMPLE_COUNT",
    "Rating",
    "RecordingSession",
    "RecordingState",
    "SessionRecord",
    "SourceType",
    "NO_SPEECH_DETECTED",
    "TranscriptionResult",
]
