"""
Analytics Aggregator

Session metrics are a pure function of the ordered segment list and the
session duration, so they can be recomputed from storage at any time.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

from modules.features.models import Emotion, KeywordSet, TranscriptSegment


@dataclass(frozen=True)
class EngagementWeights:
    """Engagement score components; the sum is clamped to [0, 100]"""
    confidence_weight: float = 30.0
    keyword_weight: float = 5.0
    keyword_cap: float = 30.0
    optimal_pace_points: float = 25.0
    other_pace_points: float = 15.0
    optimal_pace: Tuple[int, int] = (120, 180)
    duration_weight: float = 2.0
    duration_cap: float = 15.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EngagementWeights":
        known = {name for name in cls.__dataclass_fields__}
        values = {key: value for key, value in (config or {}).items() if key in known}
        if 'optimal_pace' in values:
            values['optimal_pace'] = tuple(values['optimal_pace'])
        return cls(**values)


@dataclass(frozen=True)
class SessionMetrics:
    segment_count: int = 0
    word_count: int = 0
    average_confidence: float = 0.0
    average_pace: float = 0.0
    keyword_diversity: int = 0
    duration_seconds: float = 0.0
    engagement_score: float = 0.0
    emotion_histogram: Dict[str, int] = field(default_factory=dict)
    top_keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'segment_count': self.segment_count,
            'word_count': self.word_count,
            'average_confidence': round(self.average_confidence, 3),
            'average_pace': round(self.average_pace, 1),
            'keyword_diversity': self.keyword_diversity,
            'duration_seconds': round(self.duration_seconds, 3),
            'engagement_score': round(self.engagement_score, 1),
            'emotion_histogram': dict(self.emotion_histogram),
            'top_keywords': list(self.top_keywords)
        }


def engagement_score(
    average_confidence: float,
    keyword_diversity: int,
    average_pace: float,
    duration_seconds: float,
    weights: EngagementWeights = EngagementWeights()
) -> float:
    low, high = weights.optimal_pace

    score = average_confidence * weights.confidence_weight
    score += min(keyword_diversity * weights.keyword_weight, weights.keyword_cap)
    score += weights.optimal_pace_points if low <= average_pace <= high else weights.other_pace_points
    score += min(duration_seconds / 60 * weights.duration_weight, weights.duration_cap)

    return max(0.0, min(score, 100.0))


def compute_metrics(
    segments: Sequence[TranscriptSegment],
    duration_seconds: float,
    weights: EngagementWeights = EngagementWeights(),
    top_n: int = 10
) -> SessionMetrics:
    """Aggregate metrics over a session's segments (pure, deterministic)"""
    count = len(segments)

    keywords = KeywordSet()
    for segment in segments:
        keywords.update(segment.keywords)

    average_confidence = sum(s.confidence for s in segments) / count if count else 0.0
    average_pace = sum(s.pace_wpm for s in segments) / count if count else 0.0

    histogram = Counter({emotion.value: 0 for emotion in Emotion})
    histogram.update(segment.emotion for segment in segments)

    return SessionMetrics(
        segment_count=count,
        word_count=sum(s.word_count for s in segments),
        average_confidence=average_confidence,
        average_pace=average_pace,
        keyword_diversity=len(keywords),
        duration_seconds=duration_seconds,
        engagement_score=engagement_score(
            average_confidence, len(keywords), average_pace, duration_seconds, weights
        ),
        emotion_histogram=dict(histogram),
        top_keywords=tuple(keywords.ranked(top_n))
    )


def ranked_keywords(segments: Sequence[TranscriptSegment], limit: int = None):
    """Cumulative keywords over a segment list, most frequent first"""
    keywords = KeywordSet()
    for segment in segments:
        keywords.update(segment.keywords)
    return keywords.ranked(limit)
