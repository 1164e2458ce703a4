"""
Speech Recognition Module

Adapters that turn a recognition source into ordered utterance events.
"""

from modules.recognition.base import RecognitionAdapter, RecognitionConfig, UtteranceEvent
from modules.recognition.replay import ReplayRecognition
from modules.recognition.supervisor import RecognitionSupervisor

__all__ = [
    'RecognitionAdapter',
    'RecognitionConfig',
    'UtteranceEvent',
    'ReplayRecognition',
    'RecognitionSupervisor'
]
