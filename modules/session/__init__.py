"""
Session Module

Session lifecycle, slide pointer and command routing.
"""

from modules.session.models import (
    RoutingResult,
    Session,
    SessionState,
    ShellAction,
    generate_session_id
)
from modules.session.state_machine import AutoAdvancePolicy, SessionStateMachine
from modules.session.registry import SessionRegistry

__all__ = [
    'RoutingResult',
    'Session',
    'SessionState',
    'ShellAction',
    'generate_session_id',
    'AutoAdvancePolicy',
    'SessionStateMachine',
    'SessionRegistry'
]
