"""
Content Routes - Quizzes and Summaries
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from api.dependencies import get_presentation_service, to_http_error
from api.models import GradeRequest, GradeResponse, QuizRequest
from core.errors import PresenterError
from modules.content.models import QuizType
from modules.content.quiz import grade_quiz
from utils.logger import get_logger

logger = get_logger('api.routes.content')

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post("/{session_id}/quiz")
async def generate_quiz(session_id: str, request: QuizRequest = QuizRequest()):
    """Generate a new quiz (422 when the session has no transcript yet)"""
    service = get_presentation_service()
    try:
        quiz = await service.request_quiz(session_id, QuizType(request.quiz_type))
    except PresenterError as e:
        raise to_http_error(e)
    return quiz.to_dict()


@router.post("/{session_id}/summary")
async def generate_summary(session_id: str):
    """Generate a new session summary"""
    service = get_presentation_service()
    try:
        summary = await service.request_summary(session_id)
    except PresenterError as e:
        raise to_http_error(e)
    return {**summary.to_dict(), "markdown": summary.to_markdown()}


@router.get("/{session_id}/quizzes")
async def list_quizzes(session_id: str):
    service = get_presentation_service()
    quizzes = service.store.get_quizzes(session_id)
    return {
        "session_id": session_id,
        "total": len(quizzes),
        "quizzes": [quiz.to_dict() for quiz in quizzes]
    }


@router.get("/{session_id}/summaries")
async def list_summaries(session_id: str):
    service = get_presentation_service()
    summaries = service.store.get_summaries(session_id)
    return {
        "session_id": session_id,
        "total": len(summaries),
        "summaries": summaries
    }


@router.get("/{session_id}/summary.md", response_class=PlainTextResponse)
async def download_summary(session_id: str):
    """Latest summary as a Markdown document"""
    service = get_presentation_service()
    summaries = service.store.get_summaries(session_id)
    if not summaries:
        raise HTTPException(status_code=404, detail="No summary generated for this session")
    return PlainTextResponse(
        summaries[-1]['markdown'],
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{session_id}-summary.md"'}
    )


@router.post("/quizzes/{quiz_id}/grade", response_model=GradeResponse)
async def grade(quiz_id: str, request: GradeRequest):
    """Grade answers keyed by question number"""
    service = get_presentation_service()
    quiz = service.store.get_quiz(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail=f"Quiz not found: {quiz_id}")

    result = grade_quiz(quiz, request.answers)
    logger.info(f"Graded quiz {quiz_id}: {result.score}%")
    return result.to_dict()
