"""
Summary Builder
"""

from datetime import datetime
from typing import List, Optional

from modules.analytics.metrics import SessionMetrics, ranked_keywords
from modules.content.models import SessionSnapshot, Summary


def recommendations_for(
    metrics: SessionMetrics,
    topic_count: int,
    duration_seconds: float,
    quiz_count: int,
    optimal_pace=(120, 180)
) -> List[str]:
    """Rule-based coaching lines for the presenter"""
    low, high = optimal_pace
    pace = round(metrics.average_pace)
    recommendations = []

    if metrics.average_pace < low:
        recommendations.append(
            f"Consider speaking slightly faster to maintain audience engagement (current pace: {pace} WPM)"
        )
    elif metrics.average_pace > high:
        recommendations.append(
            f"Consider slowing down your speaking pace to improve comprehension (current pace: {pace} WPM)"
        )

    if metrics.engagement_score < 70:
        recommendations.append(
            "Work on increasing engagement through more varied vocal tone and interactive elements"
        )

    if topic_count < 5:
        recommendations.append(
            "Consider covering more diverse topics to enrich the presentation content"
        )

    if duration_seconds < 300:
        recommendations.append(
            "Consider expanding the presentation content for more comprehensive coverage"
        )

    if quiz_count == 0:
        recommendations.append("Generate assessment materials to help measure learning outcomes")

    if not recommendations:
        recommendations.append("Excellent presentation! All metrics are within optimal ranges.")

    return recommendations


def build_summary(
    snapshot: SessionSnapshot,
    metrics: SessionMetrics,
    excerpt_limit: int = 20,
    topic_limit: int = 10,
    optimal_pace=(120, 180),
    now: Optional[datetime] = None
) -> Summary:
    now = now or datetime.now()
    keywords = ranked_keywords(snapshot.segments)

    return Summary(
        session_id=snapshot.session_id,
        title=f"Presentation Summary - {now.strftime('%Y-%m-%d')}",
        duration_seconds=snapshot.duration_seconds,
        total_slides=snapshot.total_slides,
        slides_covered=snapshot.slides_covered,
        word_count=metrics.word_count,
        engagement_score=metrics.engagement_score,
        average_pace=metrics.average_pace,
        average_confidence=metrics.average_confidence,
        ranked_keywords=tuple(keywords[:topic_limit]),
        emotion_histogram=dict(metrics.emotion_histogram),
        transcript_excerpt=tuple(snapshot.segments[:excerpt_limit]),
        recommendations=tuple(recommendations_for(
            metrics,
            topic_count=len(keywords),
            duration_seconds=snapshot.duration_seconds,
            quiz_count=snapshot.quiz_count,
            optimal_pace=optimal_pace
        )),
        quiz_count=snapshot.quiz_count,
        created_at=now
    )
