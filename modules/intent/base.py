"""
Command Classification Module - Base Interface

Classifies a final utterance into a presentation Command or ContentSpeech.
Classification is pure; executing a command is the state machine's job.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Union


class CommandGroup(Enum):
    """Command groups, in matching priority order"""
    NAVIGATION = "navigation"
    CONTROL = "control"
    GENERATION = "generation"


class CommandIntent(Enum):
    """Closed set of voice command intents"""
    # Navigation
    NAVIGATE_NEXT = "navigate_next"
    NAVIGATE_BACK = "navigate_back"
    NAVIGATE_FIRST = "navigate_first"
    NAVIGATE_LAST = "navigate_last"
    NAVIGATE_TO = "navigate_to"

    # Control
    START_PRESENTATION = "start_presentation"
    STOP_PRESENTATION = "stop_presentation"
    PAUSE_PRESENTATION = "pause_presentation"
    RESUME_PRESENTATION = "resume_presentation"
    START_RECORDING = "start_recording"
    STOP_RECORDING = "stop_recording"

    # Generation
    GENERATE_QUIZ = "generate_quiz"
    CREATE_SUMMARY = "create_summary"
    SHOW_NOTES = "show_notes"
    SHOW_KEYWORDS = "show_keywords"

    @property
    def group(self) -> CommandGroup:
        return INTENT_GROUPS[self]


INTENT_GROUPS = {
    CommandIntent.NAVIGATE_NEXT: CommandGroup.NAVIGATION,
    CommandIntent.NAVIGATE_BACK: CommandGroup.NAVIGATION,
    CommandIntent.NAVIGATE_FIRST: CommandGroup.NAVIGATION,
    CommandIntent.NAVIGATE_LAST: CommandGroup.NAVIGATION,
    CommandIntent.NAVIGATE_TO: CommandGroup.NAVIGATION,
    CommandIntent.START_PRESENTATION: CommandGroup.CONTROL,
    CommandIntent.STOP_PRESENTATION: CommandGroup.CONTROL,
    CommandIntent.PAUSE_PRESENTATION: CommandGroup.CONTROL,
    CommandIntent.RESUME_PRESENTATION: CommandGroup.CONTROL,
    CommandIntent.START_RECORDING: CommandGroup.CONTROL,
    CommandIntent.STOP_RECORDING: CommandGroup.CONTROL,
    CommandIntent.GENERATE_QUIZ: CommandGroup.GENERATION,
    CommandIntent.CREATE_SUMMARY: CommandGroup.GENERATION,
    CommandIntent.SHOW_NOTES: CommandGroup.GENERATION,
    CommandIntent.SHOW_KEYWORDS: CommandGroup.GENERATION,
}


@dataclass(frozen=True)
class Utterance:
    """A final recognition result, pinned to the slide it was spoken on"""
    text: str
    is_final: bool = True
    confidence: float = 1.0
    timestamp: float = field(default_factory=time.time)
    slide_at_time: int = 1

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass(frozen=True)
class Command:
    """Result of classification when an intent matched"""
    raw_text: str
    intent: CommandIntent
    confidence: float
    parameters: Dict[str, Any] = field(default_factory=dict)
    executed: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def group(self) -> CommandGroup:
        return self.intent.group

    def is_confident(self, threshold: float = 0.7) -> bool:
        """Check if confidence reaches the execution threshold"""
        return self.confidence >= threshold

    def mark_executed(self) -> "Command":
        """Commands are immutable; execution yields a new record"""
        return replace(self, executed=True)

    def to_dict(self) -> dict:
        return {
            'raw_text': self.raw_text,
            'intent': self.intent.value,
            'group': self.group.value,
            'confidence': self.confidence,
            'parameters': dict(self.parameters),
            'executed': self.executed,
            'timestamp': self.timestamp
        }


@dataclass(frozen=True)
class ContentSpeech:
    """Result of classification when nothing matched"""
    utterance: Utterance

    @property
    def text(self) -> str:
        return self.utterance.text


Classification = Union[Command, ContentSpeech]


class CommandClassifier(ABC):
    """
    Base interface for command classification.

    Returns a Command when the utterance matches the grammar,
    otherwise ContentSpeech for the feature extractor.
    """

    def __init__(self, config: dict):
        self.config = config

    @abstractmethod
    def classify(self, utterance: Utterance) -> Classification:
        """
        Classify a final utterance.

        Args:
            utterance: Final recognition result

        Returns:
            Command or ContentSpeech
        """
        pass

    def get_intent_examples(self) -> dict:
        """
        Example phrases per command group.
        Useful for help screens and debugging.
        """
        return {
            CommandGroup.NAVIGATION: [
                "Next slide",
                "Go back",
                "First slide",
                "Go to slide 4"
            ],
            CommandGroup.CONTROL: [
                "Start presentation",
                "Pause presentation",
                "Resume presentation",
                "Stop recording"
            ],
            CommandGroup.GENERATION: [
                "Generate quiz",
                "Create summary",
                "Show notes"
            ]
        }
