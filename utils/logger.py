"""
Logging System

Key points:
1. UTF-8 encoding for file handlers
2. Unicode-safe console formatting
3. Dedicated transcript log (one file per day) for final utterances
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from datetime import datetime


class SafeFormatter(logging.Formatter):
    """Formatter that handles unicode errors gracefully"""

    def format(self, record):
        try:
            return super().format(record)
        except UnicodeEncodeError:
            # Fallback: ASCII-safe version
            record.msg = str(record.msg).encode('ascii', 'replace').decode('ascii')
            return super().format(record)


class LoggerManager:
    """Manages all presenter loggers"""

    _instance = None
    _loggers = {}
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(LoggerManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._setup_logging()
            self._initialized = True

    def _setup_logging(self):
        """Setup logging system"""
        log_dir = Path(os.environ.get('PRESENTER_LOG_DIR', 'logs'))
        log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_logger(
            'presenter',
            str(log_dir / 'presenter.log'),
            os.environ.get('PRESENTER_LOG_LEVEL', 'INFO'),
            10 * 1024 * 1024,  # 10MB
            5
        )

        transcript_log = log_dir / f"transcripts_{datetime.now().strftime('%Y%m%d')}.log"
        self._setup_transcript_logger(str(transcript_log))

    def _setup_logger(
        self,
        name: str,
        log_file: str,
        level: str,
        max_size: int,
        backup_count: int
    ):
        """Setup individual logger with UTF-8 support"""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        logger.handlers = []
        logger.propagate = False

        formatter = SafeFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.WARNING)
        logger.addHandler(console_handler)

        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: File logging failed ({e})")

        self._loggers[name] = logger

    def _setup_transcript_logger(self, log_file: str):
        """Setup dedicated transcript logger (file only, no console spam)"""
        logger = logging.getLogger('transcripts')
        logger.setLevel(logging.INFO)
        logger.handlers = []
        logger.propagate = False

        formatter = SafeFormatter(
            '%(asctime)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=30,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            print(f"[FAIL] Transcript logging failed: {e}")

        self._loggers['transcripts'] = logger

    def get_logger(self, name: str = 'presenter') -> logging.Logger:
        """Get logger instance"""
        full_name = f'presenter.{name}' if name != 'presenter' else name

        if full_name not in self._loggers:
            logger = logging.getLogger(full_name)
            logger.setLevel(logging.DEBUG)
            logger.propagate = False

            # Share the parent's handlers
            parent_logger = self._loggers.get('presenter')
            if parent_logger and parent_logger.handlers:
                for handler in parent_logger.handlers:
                    logger.addHandler(handler)

            self._loggers[full_name] = logger

        return self._loggers[full_name]

    def log_transcript(self, session_id: str, slide_number: int, text: str, kind: str = "content"):
        """
        Log a final utterance to the transcript log.

        Args:
            session_id: Owning session
            slide_number: Slide shown when the utterance was spoken
            text: What the presenter said
            kind: 'content' or 'command'
        """
        transcript_logger = logging.getLogger('transcripts')
        transcript_logger.info(
            f"[{session_id}] slide={slide_number} {kind.upper()}: {self._sanitize_text(text)}"
        )

        for handler in transcript_logger.handlers:
            handler.flush()

    def _sanitize_text(self, text: str) -> str:
        """Replace problematic unicode characters"""
        replacements = {
            '‒': '-',
            '–': '-',
            '—': '--',
            '―': '--',
            '‘': "'",
            '’': "'",
            '“': '"',
            '”': '"',
        }

        for old, new in replacements.items():
            text = text.replace(old, new)

        return text


# Global instance
_logger_manager = None


def get_logger(name: str = 'presenter') -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Module name (e.g., 'recognition.google', 'session.state_machine')

    Returns:
        Logger instance
    """
    global _logger_manager
    if _logger_manager is None:
        _logger_manager = LoggerManager()
    return _logger_manager.get_logger(name)


def log_transcript(session_id: str, slide_number: int, text: str, kind: str = "content"):
    """Log a final utterance - convenience function."""
    global _logger_manager
    if _logger_manager is None:
        _logger_manager = LoggerManager()
    _logger_manager.log_transcript(session_id, slide_number, text, kind)
