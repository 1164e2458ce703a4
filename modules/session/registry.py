"""
Session Registry

One state machine per presentation, so a presentation never has more
than one open session. Ended sessions are archived once their content
generation has finished.
"""

import time
from typing import Callable, Dict, List, Optional

from modules.session.models import Session
from modules.session.state_machine import AutoAdvancePolicy, SessionStateMachine
from utils.logger import get_logger

logger = get_logger('session.registry')


class SessionRegistry:
    """Keeps state machines by presentation id"""

    def __init__(
        self,
        execution_threshold: float = 0.7,
        auto_advance: Optional[AutoAdvancePolicy] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.execution_threshold = execution_threshold
        self.auto_advance = auto_advance or AutoAdvancePolicy()
        self.clock = clock

        self._machines: Dict[str, SessionStateMachine] = {}
        self._archive: Dict[str, Session] = {}

    def get(self, presentation_id: str) -> Optional[SessionStateMachine]:
        return self._machines.get(presentation_id)

    def get_or_create(self, presentation_id: str, total_slides: int) -> SessionStateMachine:
        """Get the machine for a presentation, creating it on first use"""
        machine = self._machines.get(presentation_id)

        if machine is None:
            machine = SessionStateMachine(
                presentation_id,
                total_slides,
                execution_threshold=self.execution_threshold,
                auto_advance=self.auto_advance,
                clock=self.clock
            )
            self._machines[presentation_id] = machine
            logger.debug(f"Created state machine for presentation {presentation_id}")
        elif total_slides != machine.total_slides:
            machine.set_total_slides(total_slides)

        return machine

    def _sessions_of(self, machine: SessionStateMachine) -> List[Session]:
        sessions = list(machine.ended_sessions)
        if machine.session is not None:
            sessions.append(machine.session)
        return sessions

    def find_session(self, session_id: str) -> Optional[Session]:
        """Look up a live, unarchived or archived session by id"""
        for machine in self._machines.values():
            for session in self._sessions_of(machine):
                if session.id == session_id:
                    return session
        return self._archive.get(session_id)

    def machine_for_session(self, session_id: str) -> Optional[SessionStateMachine]:
        for machine in self._machines.values():
            if any(session.id == session_id for session in self._sessions_of(machine)):
                return machine
        return None

    def open_sessions(self) -> List[Session]:
        return [
            machine.session
            for machine in self._machines.values()
            if machine.session is not None and machine.session.is_open()
        ]

    def archive(self, session_id: str) -> Optional[Session]:
        """Archive an ended session; open sessions are left alone"""
        machine = self.machine_for_session(session_id)
        if machine is None:
            return self._archive.get(session_id)

        session = next(s for s in self._sessions_of(machine) if s.id == session_id)
        if session.is_open():
            logger.warning(f"[{session_id}] Refusing to archive an open session")
            return None

        self._archive[session_id] = session
        if machine.session is session:
            machine.session = None
        else:
            machine.ended_sessions.remove(session)
        logger.info(f"[{session_id}] Session archived")
        return session

    def archived(self) -> List[Session]:
        return list(self._archive.values())
