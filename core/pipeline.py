"""
Utterance Pipeline

Defines the stages one final utterance goes through, with per-stage timing.
"""

from dataclasses import dataclass, field
from typing import Optional
from enum import Enum
import time


class PipelineStage(Enum):
    """Stages in the utterance pipeline"""
    RECOGNITION = "recognition"
    CLASSIFICATION = "classification"
    ROUTING = "routing"
    FEATURE_EXTRACTION = "feature_extraction"
    PERSISTENCE = "persistence"
    AGGREGATION = "aggregation"
    AUTO_ADVANCE = "auto_advance"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class PipelineContext:
    """
    Context object passed through pipeline stages.
    Contains all data accumulated while handling one utterance.
    """
    # Input
    text: str = ""
    confidence: float = 0.0
    slide: int = 1

    # Classification
    intent: Optional[str] = None
    is_command: bool = False
    executed: bool = False

    # Content
    keywords: tuple = ()
    auto_advanced: Optional[str] = None

    # Metadata
    presentation_id: Optional[str] = None
    session_id: Optional[str] = None
    start_time: float = 0.0
    current_stage: PipelineStage = PipelineStage.RECOGNITION

    # Timing
    stage_timings: dict = field(default_factory=dict)
    _stage_started: float = field(default=0.0, repr=False)

    def __post_init__(self):
        if self.start_time == 0.0:
            self.start_time = time.perf_counter()
        self._stage_started = self.start_time

    def mark_stage_complete(self, stage: PipelineStage):
        """Mark a stage as complete, timing it from the previous mark"""
        now = time.perf_counter()
        self.stage_timings[stage.value] = (now - self._stage_started) * 1000
        self._stage_started = now
        self.current_stage = stage

    def get_total_time(self) -> float:
        """Get total processing time in milliseconds"""
        return (time.perf_counter() - self.start_time) * 1000

    def to_dict(self) -> dict:
        """Convert to dictionary for logging"""
        return {
            'text': self.text,
            'intent': self.intent,
            'is_command': self.is_command,
            'executed': self.executed,
            'slide': self.slide,
            'keywords': list(self.keywords),
            'auto_advanced': self.auto_advanced,
            'current_stage': self.current_stage.value,
            'total_time_ms': self.get_total_time(),
            'stage_timings': self.stage_timings
        }


class Pipeline:
    """
    Utterance processing pipeline.

    Commands stop after routing; content speech runs the remaining stages.
    """

    @staticmethod
    def get_stages(is_command: bool = False) -> list:
        """Get ordered list of pipeline stages"""
        if is_command:
            return [
                PipelineStage.RECOGNITION,
                PipelineStage.CLASSIFICATION,
                PipelineStage.ROUTING,
                PipelineStage.COMPLETE
            ]
        return [
            PipelineStage.RECOGNITION,
            PipelineStage.CLASSIFICATION,
            PipelineStage.FEATURE_EXTRACTION,
            PipelineStage.PERSISTENCE,
            PipelineStage.AGGREGATION,
            PipelineStage.AUTO_ADVANCE,
            PipelineStage.COMPLETE
        ]

    @staticmethod
    def create_context(**kwargs) -> PipelineContext:
        """Create a new pipeline context"""
        return PipelineContext(**kwargs)
