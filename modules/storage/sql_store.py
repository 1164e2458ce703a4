"""
Storage - SQLite

Sessions, transcript segments, quizzes and summaries. Segments and
generated content are append-only; the session row is refreshed as the
session moves through its lifecycle.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import StorageError
from modules.content.models import Quiz, QuizQuestion, QuizType, Summary
from modules.features.models import TranscriptSegment
from modules.storage.base import TranscriptStore
from utils.logger import get_logger

logger = get_logger('storage.sql_store')


class SQLStore(TranscriptStore):
    """SQLite storage implementation"""

    def __init__(self, db_path: str = "data/presenter.db"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn: Optional[sqlite3.Connection] = None
        logger.info(f"SQLStore initialized (path={self.db_path})")

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection"""
        if self.conn is None:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
        return self.conn

    def _execute(self, operation: str, sql: str, params=(), session_id: str = None) -> sqlite3.Cursor:
        """Run one write statement and commit, mapping sqlite errors"""
        conn = self._get_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"{operation} failed: {e}", session_id=session_id) from e

    def initialize(self):
        """Create all tables and indexes"""
        logger.info("Initializing database schema...")
        conn = self._get_connection()
        cursor = conn.cursor()

        # 1. Sessions
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                presentation_id TEXT NOT NULL,
                state TEXT NOT NULL,
                start_time DATETIME,
                end_time DATETIME,
                current_slide INTEGER NOT NULL DEFAULT 1,
                total_slides INTEGER NOT NULL,
                duration_seconds REAL DEFAULT 0,
                slide_transitions TEXT,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_presentation
            ON sessions(presentation_id, start_time DESC)
        """)

        # 2. Transcript segments
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transcript_segments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                slide_number INTEGER NOT NULL,
                text TEXT NOT NULL,
                timestamp REAL NOT NULL,
                confidence REAL NOT NULL,
                keywords TEXT,
                emotion TEXT NOT NULL,
                pace_wpm INTEGER DEFAULT 0,
                topic_completion REAL DEFAULT 0,
                word_count INTEGER DEFAULT 0,

                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_segments_session_time
            ON transcript_segments(session_id, timestamp)
        """)

        # 3. Quizzes
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS quizzes (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                title TEXT NOT NULL,
                quiz_type TEXT NOT NULL,
                difficulty TEXT,
                total_questions INTEGER NOT NULL,
                estimated_minutes INTEGER,
                topics_covered TEXT,
                created_at DATETIME NOT NULL,

                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_quizzes_session
            ON quizzes(session_id, created_at)
        """)

        # 4. Quiz questions
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS quiz_questions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                quiz_id TEXT NOT NULL,
                number INTEGER NOT NULL,
                question_text TEXT NOT NULL,
                question_type TEXT NOT NULL,
                options TEXT,
                correct_answer TEXT NOT NULL,
                explanation TEXT,
                points INTEGER DEFAULT 1,
                keywords TEXT,
                rubric TEXT,

                FOREIGN KEY (quiz_id) REFERENCES quizzes(id),
                UNIQUE(quiz_id, number)
            )
        """)

        # 5. Summaries
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS summaries (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                title TEXT NOT NULL,
                payload TEXT NOT NULL,
                markdown TEXT NOT NULL,
                created_at DATETIME NOT NULL,

                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_summaries_session
            ON summaries(session_id, created_at)
        """)

        conn.commit()
        logger.info("Database schema initialized successfully")

    # ============================================
    # SESSIONS
    # ============================================

    def save_session(self, session) -> None:
        """Insert or refresh the session header row"""
        self._execute("save_session", """
            INSERT INTO sessions (
                id, presentation_id, state, start_time, end_time, current_slide,
                total_slides, duration_seconds, slide_transitions, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                state = excluded.state,
                end_time = excluded.end_time,
                current_slide = excluded.current_slide,
                total_slides = excluded.total_slides,
                duration_seconds = excluded.duration_seconds,
                slide_transitions = excluded.slide_transitions,
                updated_at = excluded.updated_at
        """, (
            session.id,
            session.presentation_id,
            session.state.value,
            session.start_time.isoformat() if session.start_time else None,
            session.end_time.isoformat() if session.end_time else None,
            session.current_slide,
            session.total_slides,
            session.duration_seconds,
            json.dumps(session.slide_transitions),
            datetime.now().isoformat()
        ), session_id=session.id)

        logger.debug(f"[{session.id}] Saved session ({session.state.value})")

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        cursor = self._get_connection().execute(
            "SELECT * FROM sessions WHERE id = ?", (session_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None

        data = dict(row)
        data['slide_transitions'] = json.loads(data['slide_transitions'] or '[]')
        return data

    # ============================================
    # SEGMENTS
    # ============================================

    def append_segment(self, segment: TranscriptSegment) -> int:
        """Validate and append a segment"""
        segment.validate()

        cursor = self._execute("append_segment", """
            INSERT INTO transcript_segments (
                session_id, slide_number, text, timestamp, confidence,
                keywords, emotion, pace_wpm, topic_completion, word_count
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            segment.session_id,
            segment.slide_number,
            segment.text,
            segment.timestamp,
            segment.confidence,
            json.dumps(list(segment.keywords)),
            segment.emotion,
            segment.pace_wpm,
            segment.topic_completion,
            segment.word_count
        ), session_id=segment.session_id)

        segment_id = cursor.lastrowid
        logger.debug(f"[{segment.session_id}] Stored segment {segment_id}")
        return segment_id

    def get_segments(self, session_id: str) -> List[TranscriptSegment]:
        cursor = self._get_connection().execute("""
            SELECT * FROM transcript_segments
            WHERE session_id = ?
            ORDER BY timestamp ASC, id ASC
        """, (session_id,))
        return [self._row_to_segment(row) for row in cursor.fetchall()]

    # ============================================
    # QUIZZES
    # ============================================

    def save_quiz(self, quiz: Quiz) -> str:
        conn = self._get_connection()
        try:
            conn.execute("""
                INSERT INTO quizzes (
                    id, session_id, title, quiz_type, difficulty, total_questions,
                    estimated_minutes, topics_covered, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                quiz.id,
                quiz.session_id,
                quiz.title,
                quiz.quiz_type.value,
                quiz.difficulty,
                quiz.total_questions,
                quiz.estimated_minutes,
                json.dumps(list(quiz.topics_covered)),
                quiz.created_at.isoformat()
            ))
            conn.executemany("""
                INSERT INTO quiz_questions (
                    quiz_id, number, question_text, question_type, options,
                    correct_answer, explanation, points, keywords, rubric
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    quiz.id,
                    question.number,
                    question.text,
                    question.question_type.value,
                    json.dumps(list(question.options)),
                    question.correct_answer,
                    question.explanation,
                    question.points,
                    json.dumps(list(question.keywords)),
                    json.dumps(list(question.rubric))
                )
                for question in quiz.questions
            ])
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"save_quiz failed: {e}", session_id=quiz.session_id) from e

        logger.debug(f"[{quiz.session_id}] Stored quiz {quiz.id} ({quiz.total_questions} questions)")
        return quiz.id

    def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM quizzes WHERE id = ?", (quiz_id,)).fetchone()
        if row is None:
            return None

        questions = conn.execute("""
            SELECT * FROM quiz_questions WHERE quiz_id = ? ORDER BY number ASC
        """, (quiz_id,)).fetchall()
        return self._row_to_quiz(row, questions)

    def get_quizzes(self, session_id: str) -> List[Quiz]:
        cursor = self._get_connection().execute("""
            SELECT id FROM quizzes WHERE session_id = ? ORDER BY created_at ASC
        """, (session_id,))
        return [self.get_quiz(row['id']) for row in cursor.fetchall()]

    def count_quizzes(self, session_id: str) -> int:
        cursor = self._get_connection().execute(
            "SELECT COUNT(*) as count FROM quizzes WHERE session_id = ?", (session_id,)
        )
        return cursor.fetchone()['count']

    # ============================================
    # SUMMARIES
    # ============================================

    def save_summary(self, summary: Summary) -> str:
        self._execute("save_summary", """
            INSERT INTO summaries (id, session_id, title, payload, markdown, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            summary.id,
            summary.session_id,
            summary.title,
            json.dumps(summary.to_dict()),
            summary.to_markdown(),
            summary.created_at.isoformat()
        ), session_id=summary.session_id)

        logger.debug(f"[{summary.session_id}] Stored summary {summary.id}")
        return summary.id

    def get_summaries(self, session_id: str) -> List[Dict[str, Any]]:
        cursor = self._get_connection().execute("""
            SELECT payload, markdown FROM summaries
            WHERE session_id = ? ORDER BY created_at ASC
        """, (session_id,))

        summaries = []
        for row in cursor.fetchall():
            payload = json.loads(row['payload'])
            payload['markdown'] = row['markdown']
            summaries.append(payload)
        return summaries

    def get_stats(self) -> Dict[str, Any]:
        """Get database statistics"""
        conn = self._get_connection()
        stats = {}
        for table in ('sessions', 'transcript_segments', 'quizzes', 'summaries'):
            stats[table] = conn.execute(f"SELECT COUNT(*) as count FROM {table}").fetchone()['count']
        return stats

    # Helper methods

    def _row_to_segment(self, row: sqlite3.Row) -> TranscriptSegment:
        return TranscriptSegment(
            session_id=row['session_id'],
            slide_number=row['slide_number'],
            text=row['text'],
            timestamp=row['timestamp'],
            confidence=row['confidence'],
            keywords=tuple(json.loads(row['keywords'] or '[]')),
            emotion=row['emotion'],
            pace_wpm=row['pace_wpm'],
            topic_completion=row['topic_completion'],
            word_count=row['word_count']
        )

    def _row_to_quiz(self, row: sqlite3.Row, question_rows: List[sqlite3.Row]) -> Quiz:
        questions = tuple(
            QuizQuestion(
                number=q['number'],
                text=q['question_text'],
                question_type=QuizType(q['question_type']),
                options=tuple(json.loads(q['options'] or '[]')),
                correct_answer=q['correct_answer'],
                explanation=q['explanation'] or "",
                points=q['points'],
                keywords=tuple(json.loads(q['keywords'] or '[]')),
                rubric=tuple(json.loads(q['rubric'] or '[]'))
            )
            for q in question_rows
        )
        return Quiz(
            id=row['id'],
            session_id=row['session_id'],
            title=row['title'],
            quiz_type=QuizType(row['quiz_type']),
            difficulty=row['difficulty'],
            questions=questions,
            topics_covered=tuple(json.loads(row['topics_covered'] or '[]')),
            estimated_minutes=row['estimated_minutes'],
            created_at=datetime.fromisoformat(row['created_at'])
        )

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed")
