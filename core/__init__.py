"""Core orchestration"""
from core.errors import (
    PresenterError,
    RecognitionUnavailable,
    PermissionDenied,
    TransientRecognitionError,
    InsufficientContent,
    InvalidTransition,
    StorageError,
    ConfigError,
    SessionNotFound
)

__all__ = [
    'PresenterError',
    'RecognitionUnavailable',
    'PermissionDenied',
    'TransientRecognitionError',
    'InsufficientContent',
    'InvalidTransition',
    'StorageError',
    'ConfigError',
    'SessionNotFound'
]
