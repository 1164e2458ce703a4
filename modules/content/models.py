"""
Content Models

Generated artifacts are immutable: every generation request produces a new
record with its own id.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from modules.features.models import TranscriptSegment


class QuizType(Enum):
    MCQ = "mcq"
    THEORY = "theory"


def generate_content_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SessionSnapshot:
    """Frozen view of a session handed to content generation"""
    session_id: str
    presentation_id: str
    total_slides: int
    slides_covered: int
    duration_seconds: float
    segments: Tuple[TranscriptSegment, ...] = ()
    quiz_count: int = 0

    @classmethod
    def capture(cls, session, segments, quiz_count: int = 0) -> "SessionSnapshot":
        return cls(
            session_id=session.id,
            presentation_id=session.presentation_id,
            total_slides=session.total_slides,
            slides_covered=session.slides_visited,
            duration_seconds=session.duration_seconds,
            segments=tuple(segments),
            quiz_count=quiz_count
        )


@dataclass(frozen=True)
class QuizQuestion:
    number: int
    text: str
    question_type: QuizType
    correct_answer: str
    explanation: str
    options: Tuple[str, ...] = ()
    points: int = 1
    keywords: Tuple[str, ...] = ()
    rubric: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'text': self.text,
            'question_type': self.question_type.value,
            'options': list(self.options),
            'correct_answer': self.correct_answer,
            'explanation': self.explanation,
            'points': self.points,
            'keywords': list(self.keywords),
            'rubric': list(self.rubric)
        }


@dataclass(frozen=True)
class Quiz:
    session_id: str
    title: str
    quiz_type: QuizType
    difficulty: str
    questions: Tuple[QuizQuestion, ...]
    topics_covered: Tuple[str, ...]
    estimated_minutes: int
    id: str = field(default_factory=lambda: generate_content_id("quiz"))
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'title': self.title,
            'quiz_type': self.quiz_type.value,
            'difficulty': self.difficulty,
            'total_questions': self.total_questions,
            'estimated_minutes': self.estimated_minutes,
            'topics_covered': list(self.topics_covered),
            'questions': [question.to_dict() for question in self.questions],
            'created_at': self.created_at.isoformat()
        }


@dataclass(frozen=True)
class Summary:
    session_id: str
    title: str
    duration_seconds: float
    total_slides: int
    slides_covered: int
    word_count: int
    engagement_score: float
    average_pace: float
    average_confidence: float
    ranked_keywords: Tuple[str, ...]
    emotion_histogram: Dict[str, int]
    transcript_excerpt: Tuple[TranscriptSegment, ...]
    recommendations: Tuple[str, ...]
    quiz_count: int = 0
    id: str = field(default_factory=lambda: generate_content_id("summary"))
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'title': self.title,
            'duration_seconds': round(self.duration_seconds, 3),
            'total_slides': self.total_slides,
            'slides_covered': self.slides_covered,
            'word_count': self.word_count,
            'engagement_score': round(self.engagement_score, 1),
            'average_pace': round(self.average_pace, 1),
            'average_confidence': round(self.average_confidence, 3),
            'ranked_keywords': list(self.ranked_keywords),
            'emotion_histogram': dict(self.emotion_histogram),
            'transcript_excerpt': [segment.to_dict() for segment in self.transcript_excerpt],
            'recommendations': list(self.recommendations),
            'quiz_count': self.quiz_count,
            'created_at': self.created_at.isoformat()
        }

    def to_markdown(self) -> str:
        """Render the summary as a downloadable Markdown document"""
        lines = [
            f"# {self.title}",
            "",
            f"Generated on {self.created_at.strftime('%Y-%m-%d %H:%M')}",
            "",
            "## Executive Summary",
            "",
            f"- Minutes: {round(self.duration_seconds / 60)}",
            f"- Slides presented: {self.slides_covered} of {self.total_slides}",
            f"- Words spoken: {self.word_count}",
            f"- Engagement score: {round(self.engagement_score)}",
            f"- Words/min: {round(self.average_pace)}",
            f"- Average confidence: {self.average_confidence:.0%}",
            "",
            "## Key Topics",
            "",
            ", ".join(self.ranked_keywords) if self.ranked_keywords else "_No keywords detected_",
            "",
            "## Emotional Analysis",
            ""
        ]
        for emotion, count in self.emotion_histogram.items():
            lines.append(f"- {emotion.capitalize()}: {count} segments")

        lines += ["", "## Presentation Timeline", ""]
        for segment in self.transcript_excerpt:
            time_label = datetime.fromtimestamp(segment.timestamp).strftime('%H:%M:%S')
            lines.append(f"**Slide {segment.slide_number} - {time_label}**")
            lines.append("")
            lines.append(segment.text)
            if segment.keywords:
                lines.append("")
                lines.append(f"_Keywords: {', '.join(segment.keywords)}_")
            lines.append("")

        lines += ["## Recommendations", ""]
        lines += [f"- {recommendation}" for recommendation in self.recommendations]

        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class QuestionResult:
    number: int
    answer: Optional[str]
    correct_answer: str
    is_correct: bool
    points: int
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'answer': self.answer,
            'correct_answer': self.correct_answer,
            'is_correct': self.is_correct,
            'points': self.points,
            'explanation': self.explanation
        }


@dataclass(frozen=True)
class QuizResult:
    quiz_id: str
    results: Tuple[QuestionResult, ...]
    earned_points: int
    total_points: int
    score: int

    @property
    def correct_answers(self) -> int:
        return sum(1 for result in self.results if result.is_correct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quiz_id': self.quiz_id,
            'score': self.score,
            'earned_points': self.earned_points,
            'total_points': self.total_points,
            'correct_answers': self.correct_answers,
            'total_questions': len(self.results),
            'results': [result.to_dict() for result in self.results]
        }
