"""Session-related data models."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional, Tuple

from .metrics import SpeechMetrics

LEVEL_SAMPLE_COUNT = 8
INITIAL_LEVEL_SAMPLES = (20, 30, 40, 60, 50, 35, 45, 55)


class RecordingState(Enum):
    """Lifecycle of a single recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class SourceType(Enum):
    """How the speech of a session was captured."""
    UPLOADED = "Uploaded"
    REAL_TIME = "RealTime"


class Rating(Enum):
    """Overall rating assigned to a finished session."""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NEEDS_WORK = "NeedsWork"


def _initial_levels() -> Deque[int]:
    return deque(INITIAL_LEVEL_SAMPLES, maxlen=LEVEL_SAMPLE_COUNT)


@dataclass
class RecordingSession:
    """Mutable state of the session currently owned by the recorder."""
    state: RecordingState = RecordingState.IDLE
    title: str = ""
    started_at: Optional[datetime] = None
    elapsed_seconds: int = 0
    transcript_segments: List[str] = field(default_factory=list)
    interim_segment: Optional[str] = None
    level_samples: Deque[int] = field(default_factory=_initial_levels)
    metrics: SpeechMetrics = field(default_factory=SpeechMetrics)

    @property
    def transcript_text(self) -> str:
        return " ".join(self.transcript_segments)


@dataclass(frozen=True)
class SessionRecord:
    """Immutable, persisted summary of one completed session."""
    id: int
    title: str
    created_at: datetime
    duration_label: str
    source_type: SourceType
    transcript_text: str
    rating: Rating
    metrics: SpeechMetrics
    feedback: Tuple[str, ...] = ()
