"""
Error Taxonomy

Every error the pipeline raises derives from PresenterError so the API
and the service can tell expected conditions from bugs.
"""

from typing import Optional


class PresenterError(Exception):
    """Base class for presenter pipeline errors"""

    # Whether the error ends voice control for the session
    fatal: bool = False

    def __init__(self, message: str, session_id: Optional[str] = None):
        self.message = message
        self.session_id = session_id
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            'error': self.__class__.__name__,
            'message': self.message,
            'session_id': self.session_id,
            'fatal': self.fatal
        }


class RecognitionUnavailable(PresenterError):
    """Platform has no usable speech recognition (no microphone, no backend)"""
    fatal = True


class PermissionDenied(PresenterError):
    """Microphone access was refused"""
    fatal = True


class TransientRecognitionError(PresenterError):
    """No-speech timeout or network hiccup; recovered by restarting the source"""

    def __init__(self, message: str, reason: str = "unknown", session_id: Optional[str] = None):
        self.reason = reason
        super().__init__(message, session_id)


class InsufficientContent(PresenterError):
    """Content generation requested for a session with no transcript segments"""


class InvalidTransition(PresenterError):
    """Lifecycle operation not valid in the current state (always suppressed)"""

    def __init__(self, operation: str, state: str, session_id: Optional[str] = None):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while {state}", session_id)


class StorageError(PresenterError):
    """A persistence write or read failed"""


class ConfigError(PresenterError):
    """Configuration file is missing or malformed"""


class SessionNotFound(PresenterError):
    """No live, archived or stored session with the given id"""
