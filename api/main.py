"""
FastAPI Main Application

Presentation control, transcripts, metrics and generated content over
REST, plus the /ws command bus for slide viewer shells.

Run with: uvicorn api.main:app --reload --port 8000
"""

import sys
from pathlib import Path
from datetime import datetime

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import dependencies
from api.models import HealthResponse
from api.routes import content, sessions
from api.websocket import handler as websocket_handler
from core.event_bus import emit_event, get_event_bus, EventType
from utils.logger import get_logger

logger = get_logger('api.main')


# ============================================
# FASTAPI APP SETUP
# ============================================

app = FastAPI(
    title="Voice Presenter API",
    description="Voice-driven presentation control with live transcript analytics",
    version="1.0.0"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# STARTUP & SHUTDOWN
# ============================================

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    if dependencies.presentation_service is not None:
        # Already injected (tests)
        return

    try:
        logger.info("Starting API service...")

        from core.services import build_presentation_service

        dependencies.presentation_service = build_presentation_service()

        logger.info("API service ready")
        print("[OK] API service initialized")

    except Exception as e:
        logger.error(f"Startup failed: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down API service...")

    await emit_event(
        event_type=EventType.STATUS_UPDATE,
        data={'status': 'shutting_down'}
    )

    if dependencies.presentation_service is not None:
        await dependencies.presentation_service.shutdown()


# ============================================
# REGISTER ROUTES
# ============================================

# Session routes
app.include_router(sessions.router)

# Quiz and summary routes
app.include_router(content.router)

# WebSocket endpoint
app.add_api_websocket_route("/ws", websocket_handler.websocket_endpoint)


# ============================================
# ROOT ENDPOINTS
# ============================================

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Voice Presenter API",
        "version": "1.0.0",
        "status": "ready" if dependencies.presentation_service else "starting",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "sessions": "/api/sessions",
            "content": "/api/content",
            "websocket": "/ws?presentation_id=<id>"
        }
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check"""
    service = dependencies.presentation_service
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        service_ready=service is not None,
        open_sessions=len(service.registry.open_sessions()) if service else 0,
        event_bus=get_event_bus().get_stats()
    )


# ============================================
# MAIN
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
