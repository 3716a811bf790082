"""Event and message models passed between capture, recognition and the recorder."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    final: bool = False  # True if this is the final chunk for the session


@dataclass(frozen=True)
class TranscriptSegment:
    """A finalized piece of recognized speech."""
    text: str
    confidence: float


@dataclass(frozen=True)
class TranscriptUpdate:
    """One recognizer event batch: finals in recognizer order, then the interim text."""
    final_segments: Tuple[TranscriptSegment, ...] = ()
    interim_text: Optional[str] = None


@dataclass(frozen=True)
class Notification:
    """User-visible message published on the notification topic."""
    level: str  # "info", "warning", "error"
    title: str
    message: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
