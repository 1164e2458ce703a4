"""
API Models - Request/Response Schemas

All Pydantic models for API validation.
"""

from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


# ============================================
# SESSION MODELS
# ============================================

class StartSessionRequest(BaseModel):
    presentation_id: str
    total_slides: int = Field(ge=1)


class SessionResponse(BaseModel):
    id: str
    presentation_id: str
    state: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    current_slide: int
    total_slides: int
    duration_seconds: float
    recording: bool
    slide_transitions: List[int]
    commands: int


class UtteranceRequest(BaseModel):
    text: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    is_final: bool = True
    timestamp: Optional[float] = None


class UtteranceResponse(BaseModel):
    handled: bool
    is_command: bool = False
    intent: Optional[str] = None
    executed: bool = False
    slide: Optional[int] = None
    keywords: List[str] = []
    auto_advanced: Optional[str] = None
    session_id: Optional[str] = None
    duration_ms: float = 0.0


class SlideSyncRequest(BaseModel):
    slide: int = Field(ge=1)


class TotalSlidesRequest(BaseModel):
    total_slides: int = Field(ge=1)


class MetricsResponse(BaseModel):
    session_id: str
    segment_count: int
    word_count: int
    average_confidence: float
    average_pace: float
    keyword_diversity: int
    duration_seconds: float
    engagement_score: float
    emotion_histogram: Dict[str, int]
    top_keywords: List[str]


# ============================================
# CONTENT MODELS
# ============================================

class QuizRequest(BaseModel):
    quiz_type: str = Field(default="mcq", pattern="^(mcq|theory)$")


class GradeRequest(BaseModel):
    answers: Dict[int, str]


class GradeResponse(BaseModel):
    quiz_id: str
    score: int
    earned_points: int
    total_points: int
    correct_answers: int
    total_questions: int
    results: List[Dict[str, Any]]


# ============================================
# SYSTEM MODELS
# ============================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service_ready: bool
    open_sessions: int
    event_bus: Dict[str, Any]
