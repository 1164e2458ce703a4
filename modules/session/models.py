"""
Session Models

A Session is owned and mutated only by its SessionStateMachine.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from modules.intent.base import Command, CommandIntent


class SessionState(Enum):
    """Session lifecycle states"""
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


def generate_session_id(presentation_id: str) -> str:
    """Generate unique session ID"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"{presentation_id}_{timestamp}_{short_uuid}"


@dataclass
class Session:
    """One presentation run, from start() to end()"""
    presentation_id: str
    total_slides: int
    id: str = ""
    state: SessionState = SessionState.IDLE
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    current_slide: int = 1
    recording: bool = True
    slide_transitions: List[int] = field(default_factory=list)
    command_log: List[Command] = field(default_factory=list)

    # Duration clock: time accumulated in earlier Active spans plus the open span
    accumulated_seconds: float = 0.0
    active_since: Optional[float] = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    def __post_init__(self):
        if not self.id:
            self.id = generate_session_id(self.presentation_id)

    @property
    def duration_seconds(self) -> float:
        """Seconds spent Active; frozen while Paused or Ended"""
        if self.active_since is None:
            return self.accumulated_seconds
        return self.accumulated_seconds + max(0.0, self.clock() - self.active_since)

    def is_open(self) -> bool:
        """Active or Paused"""
        return self.state in (SessionState.ACTIVE, SessionState.PAUSED)

    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def slides_visited(self) -> int:
        return len(set(self.slide_transitions))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage and the API"""
        return {
            'id': self.id,
            'presentation_id': self.presentation_id,
            'state': self.state.value,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'current_slide': self.current_slide,
            'total_slides': self.total_slides,
            'duration_seconds': round(self.duration_seconds, 3),
            'recording': self.recording,
            'slide_transitions': list(self.slide_transitions),
            'commands': len(self.command_log)
        }


@dataclass(frozen=True)
class ShellAction:
    """Navigation/action event for the slide viewer shell"""
    action: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'action': self.action, 'params': dict(self.params)}


@dataclass
class RoutingResult:
    """Outcome of routing one command through the state machine"""
    command: Command
    actions: List[ShellAction] = field(default_factory=list)
    generation: Optional[CommandIntent] = None
    slide_changed: bool = False
    session_started: bool = False
    session_ended: bool = False

    @property
    def executed(self) -> bool:
        return self.command.executed
