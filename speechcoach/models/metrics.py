"""Speech metric data models."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SpeechMetrics:
    """Snapshot of speech-quality metrics after one finalized segment.

    ``filler_words`` holds the distinct filler terms found in the most recent
    segment only, while ``filler_count`` accumulates over the whole session.
    """
    pace_wpm: int = 0
    clarity_percent: int = 0
    filler_words: Tuple[str, ...] = ()
    filler_count: int = 0
    sentiment_score: float = 0.0
    confidence_percent: int = 0
    tone_label: str = "Neutral"
    word_count: int = 0
