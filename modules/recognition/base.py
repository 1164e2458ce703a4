"""
Speech Recognition Module - Base Interface

Normalizes a continuous speech-recognition source into one ordered stream
of utterance events. The platform recognizer is process-wide state, so the
session holds an adapter reference instead of touching it directly.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator


@dataclass
class RecognitionConfig:
    """Configuration for continuous recognition"""
    language: str = "en-US"
    timeout: float = 5.0              # Max wait for speech start
    phrase_time_limit: float = 15.0   # Max length of one utterance
    pause_threshold: float = 0.8      # Silence that closes an utterance
    energy_threshold: int = 300       # Voice detection threshold
    dynamic_energy: bool = True


@dataclass
class UtteranceEvent:
    """One recognition result, interim or final"""
    text: str
    is_final: bool
    confidence: float = 1.0
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        # Recognizers occasionally report slightly out-of-range scores
        self.confidence = min(max(float(self.confidence), 0.0), 1.0)

    def is_empty(self) -> bool:
        """Check if no text recognized"""
        return not self.text or self.text.strip() == ""

    def to_dict(self) -> dict:
        return {
            'text': self.text,
            'is_final': self.is_final,
            'confidence': self.confidence,
            'timestamp': self.timestamp
        }


class RecognitionAdapter(ABC):
    """
    Base interface for recognition sources.

    Contract:
    - stream() yields interim events (zero or more) followed by exactly one
      final event per continuous utterance
    - terminal failures raise RecognitionUnavailable / PermissionDenied
    - transient failures raise TransientRecognitionError; the supervisor
      decides whether to restart
    """

    def __init__(self, config: RecognitionConfig):
        self.config = config
        self.is_listening = False

    @abstractmethod
    def start(self):
        """Acquire the underlying source"""
        pass

    @abstractmethod
    def stop(self):
        """Release the underlying source"""
        pass

    def restart(self):
        """Stop then start again (used after transient errors)"""
        self.stop()
        self.start()

    @abstractmethod
    def stream(self) -> AsyncIterator[UtteranceEvent]:
        """
        Async iterator over recognition events.

        Ends normally when the source is stopped.
        """
        pass

    def is_available(self) -> bool:
        """Check if the source can be used on this platform"""
        return True
