"""
Session State Machine

Owns the session lifecycle (Idle -> Active <-> Paused -> Ended), the
current slide pointer and command routing. Every session mutation goes
through here.

Invalid lifecycle calls (double start, pause while idle, ...) are expected
UI races and are suppressed, never raised.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from core.errors import InvalidTransition
from modules.intent.base import Command, CommandGroup, CommandIntent
from modules.session.models import RoutingResult, Session, SessionState, ShellAction
from utils.logger import get_logger

logger = get_logger('session.state_machine')


DEFAULT_TRANSITION_PHRASES: Tuple[str, ...] = (
    "next slide",
    "moving on",
    "in conclusion",
    "let's continue",
)

_NAVIGATION_ACTIONS = {
    CommandIntent.NAVIGATE_NEXT: "next-slide",
    CommandIntent.NAVIGATE_BACK: "prev-slide",
    CommandIntent.NAVIGATE_FIRST: "goto-slide",
    CommandIntent.NAVIGATE_LAST: "goto-slide",
    CommandIntent.NAVIGATE_TO: "goto-slide",
}

_GENERATION_ACTIONS = {
    CommandIntent.GENERATE_QUIZ: "generate-quiz",
    CommandIntent.CREATE_SUMMARY: "generate-summary",
    CommandIntent.SHOW_NOTES: "show-notes",
    CommandIntent.SHOW_KEYWORDS: "show-keywords",
}


@dataclass
class AutoAdvancePolicy:
    """When content speech should move the deck forward on its own"""
    enabled: bool = True
    completion_threshold: float = 80.0
    confidence_threshold: float = 0.7
    transition_phrases: Tuple[str, ...] = DEFAULT_TRANSITION_PHRASES

    @classmethod
    def from_config(cls, config: dict) -> "AutoAdvancePolicy":
        return cls(
            enabled=config.get('enabled', True),
            completion_threshold=float(config.get('completion_threshold', 80.0)),
            confidence_threshold=float(config.get('confidence_threshold', 0.7)),
            transition_phrases=tuple(config.get('transition_phrases', DEFAULT_TRANSITION_PHRASES))
        )

    def reason(self, topic_completion: float, confidence: float, text: str) -> Optional[str]:
        """Why the utterance qualifies for auto-advance, or None"""
        if not self.enabled:
            return None

        if topic_completion > self.completion_threshold and confidence > self.confidence_threshold:
            return "topic-complete"

        lowered = text.lower()
        if any(phrase in lowered for phrase in self.transition_phrases):
            return "transition-phrase"

        return None


class SessionStateMachine:
    """
    Lifecycle and slide pointer for one presentation.

    Args:
        presentation_id: Owning presentation
        total_slides: Deck size reported by the viewer
        execution_threshold: Minimum confidence for a command to execute
        auto_advance: Auto-advance policy
        clock: Monotonic clock used for the duration counter
    """

    def __init__(
        self,
        presentation_id: str,
        total_slides: int,
        execution_threshold: float = 0.7,
        auto_advance: Optional[AutoAdvancePolicy] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        if total_slides < 1:
            raise ValueError(f"total_slides must be at least 1 (got {total_slides})")

        self.presentation_id = presentation_id
        self.total_slides = total_slides
        self.execution_threshold = execution_threshold
        self.auto_advance_policy = auto_advance or AutoAdvancePolicy()
        self.clock = clock

        self.session: Optional[Session] = None
        # Ended sessions replaced by a later start(), kept until archived
        self.ended_sessions: List[Session] = []

    @property
    def state(self) -> SessionState:
        if self.session is None:
            return SessionState.IDLE
        return self.session.state

    # ============================================
    # LIFECYCLE
    # ============================================

    def start(self) -> Session:
        """Open a new session, or return the one already open"""
        if self.session is not None and self.session.is_open():
            self._suppress("start")
            return self.session

        if self.session is not None:
            self.ended_sessions.append(self.session)

        session = Session(
            presentation_id=self.presentation_id,
            total_slides=self.total_slides,
            clock=self.clock
        )
        session.state = SessionState.ACTIVE
        session.start_time = datetime.now()
        session.current_slide = 1
        session.accumulated_seconds = 0.0
        session.active_since = self.clock()
        session.slide_transitions.append(1)

        self.session = session
        logger.info(f"[{session.id}] Session started ({self.total_slides} slides)")
        return session

    def pause(self) -> Optional[Session]:
        """Active -> Paused; stops the duration clock"""
        if self.state != SessionState.ACTIVE:
            self._suppress("pause")
            return self.session

        session = self.session
        session.accumulated_seconds = session.duration_seconds
        session.active_since = None
        session.state = SessionState.PAUSED

        logger.info(f"[{session.id}] Session paused at {session.duration_seconds:.1f}s")
        return session

    def resume(self) -> Optional[Session]:
        """Paused -> Active; restarts the duration clock"""
        if self.state != SessionState.PAUSED:
            self._suppress("resume")
            return self.session

        session = self.session
        session.active_since = self.clock()
        session.state = SessionState.ACTIVE

        logger.info(f"[{session.id}] Session resumed")
        return session

    def end(self) -> Optional[Session]:
        """Active/Paused -> Ended; fixes end time, final slide and duration"""
        if self.session is None or not self.session.is_open():
            self._suppress("end")
            return self.session

        session = self.session
        session.accumulated_seconds = session.duration_seconds
        session.active_since = None
        session.state = SessionState.ENDED
        session.end_time = datetime.now()

        logger.info(
            f"[{session.id}] Session ended on slide {session.current_slide}/{self.total_slides} "
            f"after {session.duration_seconds:.1f}s"
        )
        return session

    def _suppress(self, operation: str):
        """Record an invalid transition without raising it"""
        error = InvalidTransition(
            operation,
            self.state.value,
            session_id=self.session.id if self.session else None
        )
        logger.debug(f"Suppressed: {error.message}")

    # ============================================
    # SLIDES
    # ============================================

    def clamp(self, slide: int) -> int:
        return min(max(int(slide), 1), self.total_slides)

    def go_to(self, slide: int) -> bool:
        """Move the pointer; returns True when the slide actually changed"""
        session = self.session
        target = self.clamp(slide)

        if target == session.current_slide:
            return False

        session.current_slide = target
        session.slide_transitions.append(target)
        logger.debug(f"[{session.id}] Slide -> {target}")
        return True

    def set_total_slides(self, total_slides: int):
        """Viewer reported a new deck size; keep the pointer in range"""
        if total_slides < 1:
            raise ValueError(f"total_slides must be at least 1 (got {total_slides})")

        self.total_slides = total_slides
        if self.session is not None:
            self.session.total_slides = total_slides
            self.session.current_slide = self.clamp(self.session.current_slide)

    def sync_slide(self, slide: int) -> bool:
        """Viewer moved the slide manually (read/write channel)"""
        if self.session is None or not self.session.is_open():
            return False
        return self.go_to(slide)

    # ============================================
    # COMMAND ROUTING
    # ============================================

    def route(self, command: Command) -> RoutingResult:
        """
        Apply a classified command.

        Returns:
            RoutingResult with the command (marked executed when applied),
            shell actions to emit and an optional generation request
        """
        if not command.is_confident(self.execution_threshold):
            logger.info(
                f"Command {command.intent.value} below threshold "
                f"({command.confidence:.2f} < {self.execution_threshold})"
            )
            return self._finish(RoutingResult(command=command))

        if command.group == CommandGroup.NAVIGATION:
            result = self._route_navigation(command)
        elif command.group == CommandGroup.CONTROL:
            result = self._route_control(command)
        else:
            result = self._route_generation(command)

        return self._finish(result)

    def _finish(self, result: RoutingResult) -> RoutingResult:
        if self.session is not None:
            self.session.command_log.append(result.command)
        return result

    def _route_navigation(self, command: Command) -> RoutingResult:
        if self.state != SessionState.ACTIVE:
            self._suppress(command.intent.value)
            return RoutingResult(command=command)

        current = self.session.current_slide
        targets = {
            CommandIntent.NAVIGATE_NEXT: current + 1,
            CommandIntent.NAVIGATE_BACK: current - 1,
            CommandIntent.NAVIGATE_FIRST: 1,
            CommandIntent.NAVIGATE_LAST: self.total_slides,
            CommandIntent.NAVIGATE_TO: command.parameters.get('slide', current),
        }

        changed = self.go_to(targets[command.intent])
        actions = []
        if changed:
            actions.append(ShellAction(
                _NAVIGATION_ACTIONS[command.intent],
                {'slide': self.session.current_slide}
            ))

        return RoutingResult(
            command=command.mark_executed(),
            actions=actions,
            slide_changed=changed
        )

    def _route_control(self, command: Command) -> RoutingResult:
        intent = command.intent
        before = self.state

        if intent == CommandIntent.START_PRESENTATION:
            if before in (SessionState.ACTIVE, SessionState.PAUSED):
                self._suppress("start")
                return RoutingResult(command=command)
            self.start()
            return RoutingResult(
                command=command.mark_executed(),
                actions=[ShellAction("start-presentation", {'slide': 1})],
                session_started=True
            )

        if intent == CommandIntent.STOP_PRESENTATION:
            if before not in (SessionState.ACTIVE, SessionState.PAUSED):
                self._suppress("end")
                return RoutingResult(command=command)
            self.end()
            return RoutingResult(
                command=command.mark_executed(),
                actions=[ShellAction("stop-presentation", {'slide': self.session.current_slide})],
                session_ended=True
            )

        if intent == CommandIntent.PAUSE_PRESENTATION:
            if before != SessionState.ACTIVE:
                self._suppress("pause")
                return RoutingResult(command=command)
            self.pause()
            return RoutingResult(
                command=command.mark_executed(),
                actions=[ShellAction("pause-presentation")]
            )

        if intent == CommandIntent.RESUME_PRESENTATION:
            if before != SessionState.PAUSED:
                self._suppress("resume")
                return RoutingResult(command=command)
            self.resume()
            return RoutingResult(
                command=command.mark_executed(),
                actions=[ShellAction("resume-presentation")]
            )

        # Recording toggles
        if self.session is None or not self.session.is_open():
            self._suppress(intent.value)
            return RoutingResult(command=command)

        recording = intent == CommandIntent.START_RECORDING
        self.session.recording = recording
        logger.info(f"[{self.session.id}] Recording {'on' if recording else 'off'}")
        return RoutingResult(
            command=command.mark_executed(),
            actions=[ShellAction("start-recording" if recording else "stop-recording")]
        )

    def _route_generation(self, command: Command) -> RoutingResult:
        if self.session is None:
            self._suppress(command.intent.value)
            return RoutingResult(command=command)

        generation = None
        if command.intent in (CommandIntent.GENERATE_QUIZ, CommandIntent.CREATE_SUMMARY):
            generation = command.intent

        return RoutingResult(
            command=command.mark_executed(),
            actions=[ShellAction(_GENERATION_ACTIONS[command.intent])],
            generation=generation
        )

    # ============================================
    # AUTO-ADVANCE
    # ============================================

    def auto_advance(self, topic_completion: float, confidence: float, text: str) -> Optional[str]:
        """
        Advance by one slide when a content utterance qualifies.

        Fires at most once per call, even when both the completion and the
        transition-phrase conditions hold.

        Returns:
            The reason ('topic-complete' / 'transition-phrase') or None
        """
        if self.state != SessionState.ACTIVE:
            return None

        reason = self.auto_advance_policy.reason(topic_completion, confidence, text)
        if reason is None:
            return None

        if not self.go_to(self.session.current_slide + 1):
            return None

        logger.info(f"[{self.session.id}] Auto-advanced to slide {self.session.current_slide} ({reason})")
        return reason
