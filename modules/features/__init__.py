"""
Feature Extraction Module
"""

from modules.features.models import Emotion, KeywordSet, TranscriptSegment
from modules.features.extractor import (
    FeatureExtractor,
    TopicTracker,
    extract_keywords,
    pace_band,
    speaking_pace,
    tag_emotion
)

__all__ = [
    'Emotion',
    'KeywordSet',
    'TranscriptSegment',
    'FeatureExtractor',
    'TopicTracker',
    'extract_keywords',
    'pace_band',
    'speaking_pace',
    'tag_emotion'
]
