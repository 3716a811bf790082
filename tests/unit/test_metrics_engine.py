"""Unit tests for the linguistic metrics engine."""

import random

import pytest

from speechcoach.analysis.metrics_engine import (
    LinguisticMetricsEngine,
    clarity_percent,
    detect_fillers,
    pace_wpm,
    sentiment_score,
    tone_label,
)
from speechcoach.analysis.simulated import SimulatedMetricsEngine


@pytest.mark.unit
class TestLinguisticMetricsEngine:
    """Test cases for LinguisticMetricsEngine."""

    def test_coaching_example_segment(self):
        engine = LinguisticMetricsEngine()

        metrics = engine.update("so I basically think this is um great", 0.9, 60, 0)

        assert set(metrics.filler_words) == {"so", "basically", "um"}
        assert metrics.filler_words == ("so", "basically", "um")
        assert metrics.filler_count == 3
        assert metrics.sentiment_score == pytest.approx(0.1)
        # 0.1 is below the 0.3 positive threshold, so only confidence shows
        assert metrics.tone_label == "Confident"
        assert metrics.pace_wpm == 8
        assert metrics.clarity_percent == 72
        assert metrics.confidence_percent == 90
        assert metrics.word_count == 8

    def test_pace_is_zero_without_elapsed_time(self):
        engine = LinguisticMetricsEngine()

        metrics = engine.update("one two three four five", 0.7, 0, 500)

        assert metrics.pace_wpm == 0
        assert metrics.word_count == 505

    def test_pace_uses_cumulative_word_count(self):
        engine = LinguisticMetricsEngine()

        metrics = engine.update("ten more words " * 2 + "and four more here", 0.7, 30, 60)

        # (60 + 10) words over half a minute
        assert metrics.pace_wpm == 140

    def test_filler_count_never_decreases(self):
        engine = LinguisticMetricsEngine()
        segments = [
            "um so we begin",
            "this part is clean",
            "uh you know it is like literally fine",
            "actually done",
        ]

        counts = []
        prior = 0
        for elapsed, segment in enumerate(segments, start=1):
            metrics = engine.update(segment, 0.6, elapsed * 10, prior)
            prior = metrics.word_count
            counts.append(metrics.filler_count)

        assert counts == sorted(counts)
        assert counts[-1] == 2 + 0 + 4 + 1

    def test_filler_words_only_reflect_latest_segment(self):
        engine = LinguisticMetricsEngine()

        first = engine.update("um well", 0.6, 10, 0)
        second = engine.update("basically yes", 0.6, 20, first.word_count)
        third = engine.update("no fillers here", 0.6, 30, second.word_count)

        assert first.filler_words == ("um",)
        assert second.filler_words == ("basically",)
        assert third.filler_words == ()
        # the count keeps accumulating even though the list resets
        assert third.filler_count == 2

    def test_reset_clears_filler_count(self):
        engine = LinguisticMetricsEngine()
        engine.update("um uh", 0.5, 10, 0)

        engine.reset()
        metrics = engine.update("like", 0.5, 10, 0)

        assert metrics.filler_count == 1

    def test_empty_segment_is_rejected(self):
        engine = LinguisticMetricsEngine()

        with pytest.raises(ValueError):
            engine.update("   \t ", 0.5, 10, 0)

    def test_confidence_is_clamped(self):
        engine = LinguisticMetricsEngine()

        metrics = engine.update("hello there", 1.4, 10, 0)

        assert metrics.confidence_percent == 100
        assert 0 <= metrics.clarity_percent <= 100


@pytest.mark.unit
class TestFillerDetection:

    def test_whole_word_matching(self):
        fillers, total = detect_fillers("I likely unsold the summit")

        assert fillers == []
        assert total == 0

    def test_case_insensitive_and_multiword(self):
        fillers, total = detect_fillers("You know, UM, you   know what I mean")

        assert fillers == ["you know", "um"]
        assert total == 3

    def test_repeated_terms_are_counted_each_time(self):
        fillers, total = detect_fillers("like like like")

        assert fillers == ["like"]
        assert total == 3


@pytest.mark.unit
class TestSentimentAndTone:

    def test_sentiment_is_clamped(self):
        assert sentiment_score(["great"] * 25) == 1.0
        assert sentiment_score(["terrible"] * 25) == -1.0

    def test_sentiment_ignores_punctuation(self):
        assert sentiment_score(["Great!", "bad,"]) == pytest.approx(0.0)

    def test_random_text_stays_in_range(self):
        rng = random.Random(3)
        vocabulary = ["good", "bad", "great", "awful", "neutral", "words"]
        for _ in range(50):
            words = [rng.choice(vocabulary) for _ in range(rng.randint(1, 40))]
            assert -1.0 <= sentiment_score(words) <= 1.0

    def test_three_positive_words_stay_neutral(self):
        score = sentiment_score(["good", "great", "happy"])

        assert score == pytest.approx(0.3)
        assert tone_label(score, 0.6) == "Neutral"

    @pytest.mark.parametrize("sentiment, confidence, expected", [
        (0.5, 0.6, "Positive"),
        (-0.5, 0.6, "Negative"),
        (0.0, 0.6, "Neutral"),
        (0.5, 0.9, "Positive & Confident"),
        (-0.5, 0.9, "Negative & Confident"),
        (0.0, 0.9, "Confident"),
        (0.5, 0.2, "Positive & Uncertain"),
        (0.0, 0.2, "Uncertain"),
        (0.0, 0.8, "Neutral"),
        (0.0, 0.4, "Neutral"),
    ])
    def test_tone_label(self, sentiment, confidence, expected):
        assert tone_label(sentiment, confidence) == expected


@pytest.mark.unit
class TestPaceAndClarity:

    def test_pace_rounding(self):
        assert pace_wpm(10, 7) == round(10 / (7 / 60))

    def test_clarity_without_penalty(self):
        assert clarity_percent(0.5, 150) == 60

    @pytest.mark.parametrize("pace", [0, 99, 181, 400])
    def test_clarity_penalty_is_floored(self, pace):
        for step in range(0, 11):
            clarity = clarity_percent(step / 10, pace)
            assert 50 <= clarity <= 100

    def test_clarity_penalty_amount(self):
        assert clarity_percent(1.0, 200) == 80
        assert clarity_percent(0.1, 200) == 50


@pytest.mark.unit
class TestSimulatedMetricsEngine:

    def test_same_seed_same_metrics(self):
        first = SimulatedMetricsEngine(rng=random.Random(11))
        second = SimulatedMetricsEngine(rng=random.Random(11))

        a = first.update("hello world", 0.9, 10, 0)
        b = second.update("hello world", 0.9, 10, 0)

        assert a == b

    def test_word_count_is_real(self):
        engine = SimulatedMetricsEngine(rng=random.Random(1))

        metrics = engine.update("one two three", 0.9, 10, 4)

        assert metrics.word_count == 7
        assert 0 <= metrics.clarity_percent <= 100
