"""Transcription module for SpeechCoach."""

from .base import AbstractTranscriptSource, AbstractTranscriptionBackend
from .google_backend import GoogleSpeechBackend
from .google_streaming import GoogleStreamingTranscriptSource, response_to_update

__all__ = [
    "AbstractTranscriptSource",
    "AbstractTranscriptionBackend",
    "GoogleSpeechBackend",
    "GoogleStreamingTranscriptSource",
    "response_to_update",
]
