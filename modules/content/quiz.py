"""
Quiz Builders

Template questions over the session's ranked keywords, plus grading.
"""

import random
from typing import Dict, List, Optional, Sequence

from modules.content.models import QuestionResult, Quiz, QuizQuestion, QuizResult, QuizType


MCQ_TEMPLATES = (
    'What is the primary significance of "{keyword}" in the context of this presentation?',
    'Which statement best describes the role of "{keyword}"?',
    'How does "{keyword}" relate to the main topic discussed?',
    'What is the most important aspect of "{keyword}" mentioned?',
)

CORRECT_OPTION = "{keyword} is a key concept that plays a central role in understanding the topic"

DISTRACTORS = (
    "{keyword} is only mentioned as a minor detail",
    "{keyword} is not directly relevant to the main discussion",
    "{keyword} represents an outdated perspective on the topic",
)

MCQ_EXPLANATION = (
    'Based on the presentation content, "{keyword}" was identified as a significant '
    'concept that contributes to the overall understanding of the topic.'
)

THEORY_TEMPLATES = (
    'Explain the importance of "{keyword}" and its implications in detail.',
    'Analyze the role of "{keyword}" and provide examples of its application.',
    'Discuss the significance of "{keyword}" and how it relates to the broader context.',
    'Evaluate the impact of "{keyword}" and explain its relevance to the field.',
)

THEORY_MODEL_ANSWER = (
    'A comprehensive answer should explain the key aspects of "{keyword}", its significance '
    'in the context discussed, and provide relevant examples or applications. Students should '
    'demonstrate understanding of how this concept relates to the broader topic and its '
    'practical implications.'
)

THEORY_EXPLANATION = (
    'This question tests the student\'s deep understanding of "{keyword}" and their ability '
    'to articulate its importance and applications.'
)

THEORY_POINTS = 5


def build_mcq_questions(
    keywords: Sequence[str],
    limit: int = 10,
    rng: Optional[random.Random] = None
) -> List[QuizQuestion]:
    """
    One multiple-choice question per keyword, up to limit.

    Each question has four options: the correct one plus three distractors,
    shuffled with rng (pass a seeded Random for reproducible order).
    """
    rng = rng or random.Random()
    questions = []

    for index, keyword in enumerate(keywords[:limit]):
        correct = CORRECT_OPTION.format(keyword=keyword)
        options = [correct] + [d.format(keyword=keyword) for d in DISTRACTORS]
        rng.shuffle(options)

        questions.append(QuizQuestion(
            number=index + 1,
            text=MCQ_TEMPLATES[index % len(MCQ_TEMPLATES)].format(keyword=keyword),
            question_type=QuizType.MCQ,
            options=tuple(options),
            correct_answer=correct,
            explanation=MCQ_EXPLANATION.format(keyword=keyword),
            points=1,
            keywords=(keyword,)
        ))

    return questions


def build_theory_questions(keywords: Sequence[str], limit: int = 5) -> List[QuizQuestion]:
    """Open questions with a model answer; the keyword is the grading rubric"""
    questions = []

    for index, keyword in enumerate(keywords[:limit]):
        questions.append(QuizQuestion(
            number=index + 1,
            text=THEORY_TEMPLATES[index % len(THEORY_TEMPLATES)].format(keyword=keyword),
            question_type=QuizType.THEORY,
            correct_answer=THEORY_MODEL_ANSWER.format(keyword=keyword),
            explanation=THEORY_EXPLANATION.format(keyword=keyword),
            points=THEORY_POINTS,
            keywords=(keyword,),
            rubric=(keyword,)
        ))

    return questions


def _is_correct(question: QuizQuestion, answer: Optional[str]) -> bool:
    if answer is None:
        return False

    if question.question_type == QuizType.MCQ:
        return answer.strip() == question.correct_answer

    # Theory answers pass when they address every rubric term
    lowered = answer.lower()
    return bool(question.rubric) and all(term.lower() in lowered for term in question.rubric)


def grade_quiz(quiz: Quiz, answers: Dict[int, str]) -> QuizResult:
    """
    Grade answers keyed by question number.

    Score is earned / total points as a rounded percentage.
    """
    results = []
    earned = 0

    for question in quiz.questions:
        answer = answers.get(question.number)
        correct = _is_correct(question, answer)
        points = question.points if correct else 0
        earned += points

        results.append(QuestionResult(
            number=question.number,
            answer=answer,
            correct_answer=question.correct_answer,
            is_correct=correct,
            points=points,
            explanation=question.explanation
        ))

    total = quiz.total_points
    score = round(earned / total * 100) if total else 0

    return QuizResult(
        quiz_id=quiz.id,
        results=tuple(results),
        earned_points=earned,
        total_points=total,
        score=score
    )
