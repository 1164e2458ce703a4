"""
Content Generator

Builds quizzes and summaries from a frozen session snapshot. Runs off the
live path; nothing here touches the session itself.
"""

import random
from datetime import datetime
from typing import Dict, Optional

from core.errors import InsufficientContent
from modules.analytics.metrics import EngagementWeights, compute_metrics, ranked_keywords
from modules.content.models import Quiz, QuizType, SessionSnapshot, Summary
from modules.content.quiz import build_mcq_questions, build_theory_questions
from modules.content.summary import build_summary
from utils.logger import get_logger

logger = get_logger('content.generator')


class ContentGenerator:
    """
    Quiz and summary generation.

    Args:
        config: 'content' settings section
        weights: Engagement weights used for summary metrics
        rng: Random source for option shuffling
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        weights: Optional[EngagementWeights] = None,
        rng: Optional[random.Random] = None
    ):
        config = config or {}
        self.mcq_limit = config.get('mcq_limit', 10)
        self.theory_limit = config.get('theory_limit', 5)
        self.excerpt_limit = config.get('excerpt_limit', 20)
        self.weights = weights or EngagementWeights()
        self.rng = rng or random.Random(config.get('shuffle_seed'))

    def _require_segments(self, snapshot: SessionSnapshot, what: str):
        if not snapshot.segments:
            raise InsufficientContent(
                f"Cannot generate {what}: session has no transcript segments",
                session_id=snapshot.session_id
            )

    def generate_quiz(self, snapshot: SessionSnapshot, quiz_type: QuizType = QuizType.MCQ) -> Quiz:
        """
        Generate a new quiz from the session's ranked keywords.

        Raises:
            InsufficientContent: if the session has no segments
        """
        self._require_segments(snapshot, f"{quiz_type.value} quiz")

        keywords = ranked_keywords(snapshot.segments)
        date_label = datetime.now().strftime('%Y-%m-%d')

        if quiz_type == QuizType.MCQ:
            questions = build_mcq_questions(keywords, self.mcq_limit, self.rng)
            quiz = Quiz(
                session_id=snapshot.session_id,
                title=f"MCQ Quiz - {date_label}",
                quiz_type=QuizType.MCQ,
                difficulty="Medium",
                questions=tuple(questions),
                topics_covered=tuple(keywords[:self.mcq_limit]),
                estimated_minutes=min(len(questions) * 2, 20)
            )
        else:
            questions = build_theory_questions(keywords, self.theory_limit)
            quiz = Quiz(
                session_id=snapshot.session_id,
                title=f"Theory Quiz - {date_label}",
                quiz_type=QuizType.THEORY,
                difficulty="Hard",
                questions=tuple(questions),
                topics_covered=tuple(keywords[:self.theory_limit]),
                estimated_minutes=min(len(questions) * 5, 30)
            )

        if not questions:
            logger.warning(f"[{snapshot.session_id}] No keywords yet; generated an empty {quiz_type.value} quiz")
        else:
            logger.info(f"[{snapshot.session_id}] Generated {quiz_type.value} quiz with {len(questions)} questions")

        return quiz

    def generate_summary(self, snapshot: SessionSnapshot) -> Summary:
        """
        Generate a new session summary.

        Raises:
            InsufficientContent: if the session has no segments
        """
        self._require_segments(snapshot, "summary")

        metrics = compute_metrics(snapshot.segments, snapshot.duration_seconds, self.weights)
        summary = build_summary(
            snapshot,
            metrics,
            excerpt_limit=self.excerpt_limit,
            optimal_pace=self.weights.optimal_pace
        )

        logger.info(
            f"[{snapshot.session_id}] Generated summary: {metrics.segment_count} segments, "
            f"engagement {metrics.engagement_score:.0f}"
        )
        return summary
