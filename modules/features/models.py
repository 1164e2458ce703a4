"""
Feature Models

TranscriptSegment is the unit everything downstream consumes: analytics,
content generation and storage.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

from core.errors import StorageError


class Emotion(Enum):
    """Lexicon-based utterance tone"""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class KeywordSet:
    """Keyword frequencies, ranked by count then first occurrence"""

    def __init__(self, keywords: Iterable[str] = ()):
        self._counts: Counter = Counter()
        self.update(keywords)

    def add(self, keyword: str):
        self._counts[keyword] += 1

    def update(self, keywords: Iterable[str]):
        for keyword in keywords:
            self.add(keyword)

    def ranked(self, n: int = None) -> List[str]:
        # Counter.most_common keeps insertion order for equal counts
        return [word for word, _ in self._counts.most_common(n)]

    def count(self, keyword: str) -> int:
        return self._counts[keyword]

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, keyword: str) -> bool:
        return keyword in self._counts

    def __iter__(self):
        return iter(self._counts)


@dataclass(frozen=True)
class TranscriptSegment:
    """One final content utterance with its derived features"""
    session_id: str
    slide_number: int
    text: str
    timestamp: float
    confidence: float
    keywords: Tuple[str, ...] = ()
    emotion: str = Emotion.NEUTRAL.value
    pace_wpm: int = 0
    topic_completion: float = 0.0
    word_count: int = 0

    def validate(self):
        """Check required fields before persisting; raises StorageError"""
        problems = []
        if not self.session_id:
            problems.append("session_id is empty")
        if self.slide_number < 1:
            problems.append(f"slide_number must be >= 1 (got {self.slide_number})")
        if not self.text or not self.text.strip():
            problems.append("text is empty")
        if not 0.0 <= self.confidence <= 1.0:
            problems.append(f"confidence out of range (got {self.confidence})")
        if self.emotion not in {e.value for e in Emotion}:
            problems.append(f"unknown emotion '{self.emotion}'")

        if problems:
            raise StorageError(
                "Invalid transcript segment: " + "; ".join(problems),
                session_id=self.session_id or None
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'slide_number': self.slide_number,
            'text': self.text,
            'timestamp': self.timestamp,
            'time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'confidence': self.confidence,
            'keywords': list(self.keywords),
            'emotion': self.emotion,
            'pace_wpm': self.pace_wpm,
            'topic_completion': self.topic_completion,
            'word_count': self.word_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptSegment":
        return cls(
            session_id=data['session_id'],
            slide_number=int(data['slide_number']),
            text=data['text'],
            timestamp=float(data['timestamp']),
            confidence=float(data['confidence']),
            keywords=tuple(data.get('keywords') or ()),
            emotion=data.get('emotion', Emotion.NEUTRAL.value),
            pace_wpm=int(data.get('pace_wpm', 0)),
            topic_completion=float(data.get('topic_completion', 0.0)),
            word_count=int(data.get('word_count', 0))
        )
