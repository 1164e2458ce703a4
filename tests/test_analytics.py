"""
Test Analytics Aggregation
"""

import pytest

from modules.analytics.metrics import (
    EngagementWeights,
    compute_metrics,
    engagement_score,
    ranked_keywords
)
from modules.features.models import TranscriptSegment


def make_segment(confidence=0.9, keywords=(), pace=150, emotion="neutral", words=10, ts=0.0):
    return TranscriptSegment(
        session_id="s",
        slide_number=1,
        text="some text",
        timestamp=ts,
        confidence=confidence,
        keywords=tuple(keywords),
        emotion=emotion,
        pace_wpm=pace,
        word_count=words
    )


class TestComputeMetrics:

    def test_aggregates(self):
        segments = [
            make_segment(0.8, ("alpha", "beta"), 150, "positive", 12),
            make_segment(1.0, ("beta", "gamma"), 130, "neutral", 8),
        ]
        metrics = compute_metrics(segments, duration_seconds=300)

        assert metrics.segment_count == 2
        assert metrics.word_count == 20
        assert metrics.average_confidence == pytest.approx(0.9)
        assert metrics.average_pace == pytest.approx(140)
        assert metrics.keyword_diversity == 3
        assert metrics.top_keywords == ("beta", "alpha", "gamma")
        assert metrics.emotion_histogram == {"positive": 1, "negative": 0, "neutral": 1}
        # 0.9*30 + 3*5 + 25 (optimal pace) + 300/60*2
        assert metrics.engagement_score == pytest.approx(77.0)

    def test_empty_segments(self):
        metrics = compute_metrics([], duration_seconds=0)

        assert metrics.segment_count == 0
        assert metrics.average_confidence == 0.0
        assert metrics.average_pace == 0.0
        assert metrics.keyword_diversity == 0
        # Only the non-optimal pace points remain
        assert metrics.engagement_score == pytest.approx(15.0)

    def test_pure_and_deterministic(self):
        segments = [make_segment(0.7, ("one", "two"), 200), make_segment(0.6, ("three",), 90)]

        assert compute_metrics(segments, 120) == compute_metrics(list(segments), 120)

    def test_to_dict(self):
        data = compute_metrics([make_segment(keywords=("alpha",))], 60).to_dict()

        assert data['top_keywords'] == ["alpha"]
        assert set(data) >= {'engagement_score', 'average_pace', 'emotion_histogram'}


class TestEngagementScore:

    def test_components_are_capped(self):
        score = engagement_score(
            average_confidence=1.0,
            keyword_diversity=100,
            average_pace=150,
            duration_seconds=3600
        )
        assert score == pytest.approx(100.0)

    def test_clamped_to_range(self):
        weights = EngagementWeights(confidence_weight=500.0)
        assert engagement_score(1.0, 0, 0, 0, weights) == 100.0

    def test_pace_band_edges(self):
        optimal = engagement_score(0.0, 0, 120, 0)
        slow = engagement_score(0.0, 0, 119, 0)
        assert optimal - slow == pytest.approx(10.0)

    def test_weights_from_config(self):
        weights = EngagementWeights.from_config({
            'keyword_weight': 2.0,
            'optimal_pace': [100, 160],
            'unrelated': True
        })

        assert weights.keyword_weight == 2.0
        assert weights.optimal_pace == (100, 160)
        assert weights.confidence_weight == 30.0


def test_ranked_keywords_are_cumulative():
    segments = [make_segment(keywords=("alpha", "beta")), make_segment(keywords=("beta",))]
    assert ranked_keywords(segments) == ["beta", "alpha"]
    assert ranked_keywords(segments, limit=1) == ["beta"]
