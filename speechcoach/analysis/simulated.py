"""Simulated metrics for demo and non-live paths."""

import random
from typing import Optional

from ..models.metrics import SpeechMetrics
from .metrics_engine import MetricsEngine, clarity_percent, tone_label

SIMULATED_FILLERS = ("um", "uh", "like", "you know", "actually")


class SimulatedMetricsEngine(MetricsEngine):
    """Random-walk metrics behind the real engine's interface.

    Only word counts are real; pace, clarity, confidence and fillers are
    jittered. Pass a seeded ``random.Random`` to make runs reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None, filler_chance: float = 0.4):
        self.rng = rng or random.Random()
        self.filler_chance = filler_chance
        self.filler_count = 0
        self.pace = 120

    def reset(self) -> None:
        self.filler_count = 0
        self.pace = 120

    def update(self, segment_text: str, confidence: float, elapsed_seconds: int,
               prior_word_count: int) -> SpeechMetrics:
        words = segment_text.split()
        if not words:
            raise ValueError("Cannot derive metrics from an empty segment")

        self.pace = max(0, self.pace + self.rng.randint(-20, 20))
        fillers = ()
        if self.rng.random() < self.filler_chance:
            fillers = (self.rng.choice(SIMULATED_FILLERS),)
            self.filler_count += 1

        simulated_confidence = self.rng.uniform(0.5, 0.95)
        sentiment = round(self.rng.uniform(-0.2, 0.5), 2)
        return SpeechMetrics(
            pace_wpm=self.pace,
            clarity_percent=clarity_percent(simulated_confidence, self.pace),
            filler_words=fillers,
            filler_count=self.filler_count,
            sentiment_score=sentiment,
            confidence_percent=round(simulated_confidence * 100),
            tone_label=tone_label(sentiment, simulated_confidence),
            word_count=prior_word_count + len(words),
        )
