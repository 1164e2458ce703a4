"""
Feature Extractor

Turns content speech into a TranscriptSegment: keywords, emotion tag,
speaking pace and topic completion for the current slide.

Each step is a plain callable, so a model-backed implementation can be
swapped in without touching the pipeline.
"""

import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from modules.features.lexicon import NEGATIVE_WORDS, POSITIVE_WORDS, STOPWORDS
from modules.features.models import Emotion, KeywordSet, TranscriptSegment
from modules.intent.base import Utterance
from utils.logger import get_logger

logger = get_logger('features.extractor')

_PUNCTUATION = re.compile(r"[^\w\s]")

OPTIMAL_PACE: Tuple[int, int] = (120, 180)


def _tokens(text: str) -> List[str]:
    return _PUNCTUATION.sub("", text.lower()).split()


def extract_keywords(
    text: str,
    limit: int = 5,
    min_length: int = 4,
    stopwords: Iterable[str] = STOPWORDS
) -> List[str]:
    """
    Top keywords of one utterance.

    Tokens shorter than min_length, pure digits and stopwords are dropped;
    the rest are ranked by frequency, ties by first occurrence.
    """
    stopwords = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    words = [
        word for word in _tokens(text)
        if len(word) >= min_length and word not in stopwords and not word.isdigit()
    ]
    return KeywordSet(words).ranked(limit)


def tag_emotion(text: str) -> str:
    """positive / negative when one lexicon has strictly more hits, else neutral"""
    words = _tokens(text)
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)

    if positive > negative:
        return Emotion.POSITIVE.value
    if negative > positive:
        return Emotion.NEGATIVE.value
    return Emotion.NEUTRAL.value


def speaking_pace(
    text: str,
    elapsed_seconds: Optional[float] = None,
    window_seconds: float = 10.0
) -> int:
    """Words per minute; uses the real elapsed time when known"""
    word_count = len(text.split())
    seconds = elapsed_seconds if elapsed_seconds and elapsed_seconds > 0 else window_seconds
    return round(word_count / seconds * 60)


def pace_band(wpm: float, optimal: Tuple[int, int] = OPTIMAL_PACE) -> str:
    low, high = optimal
    if wpm < low:
        return "slow"
    if wpm > high:
        return "fast"
    return "optimal"


class TopicTracker:
    """
    How much of the current slide's topic has been covered.

    Completion is characters spoken on the slide against target_length,
    capped at 100 and reset when the slide changes.
    """

    def __init__(self, target_length: int = 500):
        if target_length <= 0:
            raise ValueError("target_length must be positive")
        self.target_length = target_length
        self.slide: Optional[int] = None
        self.characters = 0

    def reset(self, slide: Optional[int] = None):
        self.slide = slide
        self.characters = 0

    def update(self, slide: int, text: str) -> float:
        if slide != self.slide:
            self.reset(slide)
        self.characters += len(text)
        return self.completion

    @property
    def completion(self) -> float:
        return min(self.characters / self.target_length * 100, 100.0)


class FeatureExtractor:
    """
    Builds TranscriptSegments for one session.

    Args:
        config: 'features' settings section
        keyword_fn / emotion_fn / pace_fn: replacement steps
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        keyword_fn: Optional[Callable[[str], List[str]]] = None,
        emotion_fn: Optional[Callable[[str], str]] = None,
        pace_fn: Optional[Callable[[str], int]] = None
    ):
        config = config or {}
        self.keyword_limit = config.get('keyword_limit', 5)
        self.min_keyword_length = config.get('min_keyword_length', 4)
        self.window_seconds = config.get('pace_window_seconds', 10.0)
        self.optimal_pace = tuple(config.get('optimal_pace', OPTIMAL_PACE))

        self.keyword_fn = keyword_fn or (
            lambda text: extract_keywords(text, self.keyword_limit, self.min_keyword_length)
        )
        self.emotion_fn = emotion_fn or tag_emotion
        self.pace_fn = pace_fn or (
            lambda text: speaking_pace(text, window_seconds=self.window_seconds)
        )

        self.topic_tracker = TopicTracker(config.get('topic_target_length', 500))
        self.session_keywords = KeywordSet()

    def extract(self, utterance: Utterance, session_id: str) -> TranscriptSegment:
        text = utterance.text.strip()

        keywords = self.keyword_fn(text)
        self.session_keywords.update(keywords)

        segment = TranscriptSegment(
            session_id=session_id,
            slide_number=utterance.slide_at_time,
            text=text,
            timestamp=utterance.timestamp,
            confidence=utterance.confidence,
            keywords=tuple(keywords),
            emotion=self.emotion_fn(text),
            pace_wpm=self.pace_fn(text),
            topic_completion=self.topic_tracker.update(utterance.slide_at_time, text),
            word_count=len(text.split())
        )

        logger.debug(
            f"[{session_id}] slide {segment.slide_number}: {len(keywords)} keywords, "
            f"{segment.emotion}, {segment.pace_wpm} wpm, topic {segment.topic_completion:.0f}%"
        )
        return segment

    def slide_changed(self, slide: int):
        self.topic_tracker.reset(slide)
