"""Linguistic metrics derived from finalized transcript segments."""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Tuple

from ..models.metrics import SpeechMetrics

logger = logging.getLogger(__name__)

FILLER_VOCABULARY = (
    "um", "uh", "like", "you know", "so", "actually", "basically", "literally",
)

POSITIVE_WORDS = frozenset({
    "good", "great", "excellent", "amazing", "wonderful", "happy", "love",
    "best", "success", "successful", "confident", "clear", "strong",
    "excited", "fantastic", "positive", "improve", "improving",
})

NEGATIVE_WORDS = frozenset({
    "bad", "terrible", "awful", "worst", "hate", "sad", "worried", "nervous",
    "fail", "failure", "poor", "problem", "difficult", "negative", "afraid",
    "wrong", "confused", "unfortunately",
})

SENTIMENT_STEP = 0.1
PACE_MIN_WPM = 100
PACE_MAX_WPM = 180

_FILLER_PATTERNS = tuple(
    (term, re.compile(r"\b" + r"\s+".join(map(re.escape, term.split())) + r"\b", re.IGNORECASE))
    for term in FILLER_VOCABULARY
)
_WORD_STRIP = re.compile(r"^[^\w']+|[^\w']+$")


def detect_fillers(text: str) -> Tuple[List[str], int]:
    """Find filler terms in text using whole-word, case-insensitive matching.

    Returns:
        (distinct terms in order of first appearance, total number of matches)
    """
    first_seen = []
    total = 0
    for term, pattern in _FILLER_PATTERNS:
        matches = list(pattern.finditer(text))
        if matches:
            first_seen.append((matches[0].start(), term))
            total += len(matches)
    first_seen.sort()
    return [term for _, term in first_seen], total


def sentiment_score(words: List[str]) -> float:
    score = 0.0
    for word in words:
        token = _WORD_STRIP.sub("", word.lower())
        if token in POSITIVE_WORDS:
            score += SENTIMENT_STEP
        elif token in NEGATIVE_WORDS:
            score -= SENTIMENT_STEP
    return round(max(-1.0, min(1.0, score)), 4)


def tone_label(sentiment: float, confidence: float) -> str:
    if sentiment > 0.3:
        base = "Positive"
    elif sentiment < -0.3:
        base = "Negative"
    else:
        base = "Neutral"

    if confidence > 0.8:
        modifier = "Confident"
    elif confidence < 0.4:
        modifier = "Uncertain"
    else:
        return base

    if base == "Neutral":
        return modifier
    return f"{base} & {modifier}"


def pace_wpm(word_count: int, elapsed_seconds: float) -> int:
    if elapsed_seconds <= 0:
        return 0
    return round(word_count / (elapsed_seconds / 60))


def clarity_percent(confidence: float, pace: int) -> int:
    clarity = confidence * 80 + 20
    if pace > PACE_MAX_WPM or pace < PACE_MIN_WPM:
        clarity = max(50, clarity - 20)
    return max(0, min(100, round(clarity)))


class MetricsEngine(ABC):
    """Interface the session recorder uses to turn segments into metrics."""

    @abstractmethod
    def update(self, segment_text: str, confidence: float, elapsed_seconds: int,
               prior_word_count: int) -> SpeechMetrics:
        """Derive a new metrics snapshot from one finalized segment."""

    @abstractmethod
    def reset(self) -> None:
        """Forget carried state before a new session."""


class LinguisticMetricsEngine(MetricsEngine):
    """Deterministic metrics from word counts, vocabularies and recognizer confidence.

    The only state carried between calls is the cumulative filler count; the
    word count is passed in by the caller. ``filler_words`` on the returned
    snapshot lists the fillers of the latest segment only, while
    ``filler_count`` keeps growing over the session. That asymmetry is kept
    on purpose.
    """

    def __init__(self):
        self.filler_count = 0

    def reset(self) -> None:
        self.filler_count = 0

    def update(self, segment_text: str, confidence: float, elapsed_seconds: int,
               prior_word_count: int) -> SpeechMetrics:
        words = segment_text.split()
        if not words:
            raise ValueError("Cannot derive metrics from an empty segment")
        confidence = max(0.0, min(1.0, confidence))

        word_count = prior_word_count + len(words)
        pace = pace_wpm(word_count, elapsed_seconds)
        fillers, matches = detect_fillers(segment_text)
        self.filler_count += matches
        sentiment = sentiment_score(words)

        metrics = SpeechMetrics(
            pace_wpm=pace,
            clarity_percent=clarity_percent(confidence, pace),
            filler_words=tuple(fillers),
            filler_count=self.filler_count,
            sentiment_score=sentiment,
            confidence_percent=round(confidence * 100),
            tone_label=tone_label(sentiment, confidence),
            word_count=word_count,
        )
        logger.debug(f"Metrics update: {metrics}")
        return metrics
