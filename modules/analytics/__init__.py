"""
Analytics Module
"""

from modules.analytics.metrics import (
    EngagementWeights,
    SessionMetrics,
    compute_metrics,
    engagement_score,
    ranked_keywords
)

__all__ = [
    'EngagementWeights',
    'SessionMetrics',
    'compute_metrics',
    'engagement_score',
    'ranked_keywords'
]
