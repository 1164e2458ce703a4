"""
Content Generation Module
"""

from modules.content.models import (
    QuestionResult,
    Quiz,
    QuizQuestion,
    QuizResult,
    QuizType,
    SessionSnapshot,
    Summary
)
from modules.content.quiz import build_mcq_questions, build_theory_questions, grade_quiz
from modules.content.summary import build_summary, recommendations_for
from modules.content.generator import ContentGenerator

__all__ = [
    'QuestionResult',
    'Quiz',
    'QuizQuestion',
    'QuizResult',
    'QuizType',
    'SessionSnapshot',
    'Summary',
    'build_mcq_questions',
    'build_theory_questions',
    'grade_quiz',
    'build_summary',
    'recommendations_for',
    'ContentGenerator'
]
