"""
Session Routes - Lifecycle, Utterances and Metrics

Lifecycle routes are keyed by presentation id (one open session per
presentation); metrics and transcript routes by session id.
"""

import time

from fastapi import APIRouter, HTTPException

from api.dependencies import get_presentation_service, to_http_error
from api.models import (
    MetricsResponse,
    SessionResponse,
    SlideSyncRequest,
    StartSessionRequest,
    TotalSlidesRequest,
    UtteranceRequest,
    UtteranceResponse
)
from core.errors import PresenterError
from modules.recognition.base import UtteranceEvent
from utils.logger import get_logger

logger = get_logger('api.routes.sessions')

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("")
async def list_open_sessions():
    """Get list of open (Active or Paused) sessions"""
    service = get_presentation_service()
    sessions = service.registry.open_sessions()

    return {
        "total": len(sessions),
        "sessions": [session.to_dict() for session in sessions]
    }


@router.post("", response_model=SessionResponse)
async def start_session(request: StartSessionRequest):
    """Start a session (returns the open one if already started)"""
    service = get_presentation_service()
    session = await service.start_session(request.presentation_id, request.total_slides)
    return session.to_dict()


@router.post("/{presentation_id}/pause", response_model=SessionResponse)
async def pause_session(presentation_id: str):
    service = get_presentation_service()
    try:
        session = await service.pause_session(presentation_id)
    except PresenterError as e:
        raise to_http_error(e)
    return _current(presentation_id, session)


@router.post("/{presentation_id}/resume", response_model=SessionResponse)
async def resume_session(presentation_id: str):
    service = get_presentation_service()
    try:
        session = await service.resume_session(presentation_id)
    except PresenterError as e:
        raise to_http_error(e)
    return _current(presentation_id, session)


@router.post("/{presentation_id}/end", response_model=SessionResponse)
async def end_session(presentation_id: str):
    """End the session; quiz and summary generation start in the background"""
    service = get_presentation_service()
    try:
        session = await service.end_session(presentation_id)
    except PresenterError as e:
        raise to_http_error(e)
    return _current(presentation_id, session)


def _current(presentation_id: str, session):
    """Session dict, or 409 when the presentation has never been started"""
    if session is None:
        raise HTTPException(status_code=409, detail=f"Presentation {presentation_id} has no session")
    return session.to_dict()


@router.post("/{presentation_id}/utterance", response_model=UtteranceResponse)
async def post_utterance(presentation_id: str, request: UtteranceRequest):
    """Feed one recognition result (e.g. from browser speech recognition)"""
    service = get_presentation_service()

    event = UtteranceEvent(
        text=request.text,
        is_final=request.is_final,
        confidence=request.confidence,
        timestamp=request.timestamp if request.timestamp is not None else time.time()
    )

    try:
        context = await service.handle_event(presentation_id, event)
    except PresenterError as e:
        raise to_http_error(e)

    if context is None:
        return UtteranceResponse(handled=False)

    return UtteranceResponse(
        handled=True,
        is_command=context.is_command,
        intent=context.intent,
        executed=context.executed,
        slide=_current_slide(service, presentation_id, context.slide),
        keywords=list(context.keywords),
        auto_advanced=context.auto_advanced,
        session_id=context.session_id,
        duration_ms=context.get_total_time()
    )


@router.post("/{presentation_id}/slide")
async def sync_slide(presentation_id: str, request: SlideSyncRequest):
    """Viewer navigated manually"""
    service = get_presentation_service()
    try:
        changed = await service.sync_slide(presentation_id, request.slide)
    except PresenterError as e:
        raise to_http_error(e)
    return {"changed": changed}


@router.post("/{presentation_id}/slides")
async def set_total_slides(presentation_id: str, request: TotalSlidesRequest):
    """Viewer reported the deck size"""
    service = get_presentation_service()
    machine = service.open_presentation(presentation_id, request.total_slides)
    return {"presentation_id": presentation_id, "total_slides": machine.total_slides}


@router.get("/{session_id}/metrics", response_model=MetricsResponse)
async def get_metrics(session_id: str):
    service = get_presentation_service()
    try:
        metrics = service.get_metrics(session_id)
    except PresenterError as e:
        raise to_http_error(e)
    return {"session_id": session_id, **metrics.to_dict()}


@router.get("/{session_id}/transcript")
async def get_transcript(session_id: str):
    service = get_presentation_service()
    try:
        segments = service.get_segments(session_id)
    except PresenterError as e:
        raise to_http_error(e)
    return {
        "session_id": session_id,
        "total": len(segments),
        "segments": [segment.to_dict() for segment in segments]
    }


def _current_slide(service, presentation_id: str, default: int) -> int:
    session = service.registry.get(presentation_id).session
    return session.current_slide if session else default
