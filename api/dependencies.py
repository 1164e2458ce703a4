"""
API Dependencies - Shared Resources

Provides dependency injection for FastAPI routes.
"""

from typing import Optional
from fastapi import HTTPException

from core.errors import InsufficientContent, PresenterError, SessionNotFound
from core.services.presentation_service import PresentationService
from utils.logger import get_logger

logger = get_logger('api.dependencies')

# ============================================
# GLOBAL STATE
# ============================================

presentation_service: Optional[PresentationService] = None


# ============================================
# DEPENDENCY FUNCTIONS
# ============================================

def get_presentation_service() -> PresentationService:
    """
    Get presentation service.

    Raises:
        HTTPException: If service not ready
    """
    if presentation_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return presentation_service


def to_http_error(error: PresenterError) -> HTTPException:
    """Map a pipeline error to the matching HTTP status"""
    if isinstance(error, SessionNotFound):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, InsufficientContent):
        return HTTPException(status_code=422, detail=error.message)

    logger.error(f"Request failed: {error.message}")
    return HTTPException(status_code=500, detail=error.message)
