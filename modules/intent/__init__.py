"""
Command Classification Module

Turns final utterances into presentation commands or content speech.
"""

from modules.intent.base import (
    Classification,
    Command,
    CommandClassifier,
    CommandGroup,
    CommandIntent,
    ContentSpeech,
    Utterance
)
from modules.intent.pattern import PatternIntent

__all__ = [
    'Classification',
    'Command',
    'CommandClassifier',
    'CommandGroup',
    'CommandIntent',
    'ContentSpeech',
    'Utterance',
    'PatternIntent'
]
