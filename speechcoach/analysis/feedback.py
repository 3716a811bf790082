"""Coaching labels, tips and session rating."""

from typing import List

from ..models.metrics import SpeechMetrics
from ..models.session import Rating
from .metrics_engine import PACE_MAX_WPM, PACE_MIN_WPM

MIN_RATED_WORDS = 10
EXCELLENT_FILLER_RATIO = 0.03
GOOD_FILLER_RATIO = 0.07


def format_duration(seconds: int) -> str:
    """Render seconds as m:ss."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def pace_label(wpm: int) -> str:
    if wpm < PACE_MIN_WPM:
        return "Too Slow"
    if wpm > PACE_MAX_WPM:
        return "Too Fast"
    return "Good"


def clarity_label(percent: int) -> str:
    if percent < 40:
        return "Needs Work"
    if percent > 70:
        return "Excellent"
    return "Good"


def rate_session(word_count: int, filler_count: int) -> Rating:
    """Rate a finished session by its filler ratio.

    Sessions under ten words are too short to judge and always need work.
    """
    if word_count < MIN_RATED_WORDS:
        return Rating.NEEDS_WORK
    ratio = filler_count / word_count
    if ratio < EXCELLENT_FILLER_RATIO:
        return Rating.EXCELLENT
    if ratio < GOOD_FILLER_RATIO:
        return Rating.GOOD
    return Rating.NEEDS_WORK


def coaching_tips(metrics: SpeechMetrics) -> List[str]:
    tips = []
    if metrics.pace_wpm > PACE_MAX_WPM:
        tips.append("Try to speak slower for better clarity")
    elif 0 < metrics.pace_wpm < PACE_MIN_WPM:
        tips.append("Consider adding more pauses for emphasis")
    if metrics.word_count and metrics.filler_count / metrics.word_count >= EXCELLENT_FILLER_RATIO:
        tips.append("Avoid filler words: pause silently instead of saying "
                    "'um' or 'like'")
    if "Uncertain" in metrics.tone_label:
        tips.append("Speak up and articulate clearly to sound more confident")
    if metrics.tone_label.startswith("Positive"):
        tips.append("Great job on varying your tone")
    if metrics.clarity_percent > 70 and not tips:
        tips.append("Your pronunciation is improving")
    return tips
