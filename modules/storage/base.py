"""
Storage - Base Interface

Append-only persistence for sessions, transcript segments and generated
content.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from modules.content.models import Quiz, Summary
from modules.features.models import TranscriptSegment


class TranscriptStore(ABC):
    """Base interface for presentation storage"""

    @abstractmethod
    def initialize(self):
        """Initialize storage (create tables, etc.)"""
        pass

    @abstractmethod
    def save_session(self, session) -> None:
        """Insert or refresh the session header row"""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def append_segment(self, segment: TranscriptSegment) -> int:
        """Append a validated segment and return its row id"""
        pass

    @abstractmethod
    def get_segments(self, session_id: str) -> List[TranscriptSegment]:
        """Segments of a session in timestamp order"""
        pass

    @abstractmethod
    def save_quiz(self, quiz: Quiz) -> str:
        pass

    @abstractmethod
    def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        pass

    @abstractmethod
    def get_quizzes(self, session_id: str) -> List[Quiz]:
        pass

    @abstractmethod
    def count_quizzes(self, session_id: str) -> int:
        pass

    @abstractmethod
    def save_summary(self, summary: Summary) -> str:
        pass

    @abstractmethod
    def get_summaries(self, session_id: str) -> List[Dict[str, Any]]:
        pass

    def close(self):
        pass
