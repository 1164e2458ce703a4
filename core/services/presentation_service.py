"""
Presentation Service

Wires the live path: recognition events -> classification -> command
routing or feature extraction -> storage, metrics and auto-advance.
Content generation runs off the live path on a frozen snapshot.
"""

import asyncio
import dataclasses
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from core.errors import (
    InsufficientContent,
    PresenterError,
    RecognitionUnavailable,
    SessionNotFound,
    StorageError
)
from core.event_bus.bus import Event, EventBus, EventType, get_event_bus
from core.pipeline import Pipeline, PipelineContext, PipelineStage
from modules.analytics.metrics import EngagementWeights, SessionMetrics, compute_metrics
from modules.content.generator import ContentGenerator
from modules.content.models import Quiz, QuizType, SessionSnapshot, Summary
from modules.features.extractor import FeatureExtractor
from modules.features.models import TranscriptSegment
from modules.intent.base import Command, CommandClassifier, CommandGroup, CommandIntent, Utterance
from modules.recognition.base import RecognitionAdapter, UtteranceEvent
from modules.recognition.supervisor import RecognitionSupervisor
from modules.session.models import RoutingResult, Session, SessionState
from modules.session.registry import SessionRegistry
from modules.session.state_machine import AutoAdvancePolicy, SessionStateMachine
from modules.storage.base import TranscriptStore
from utils.logger import get_logger, log_transcript

logger = get_logger('presentation_service')


class PresentationService:
    """
    Session-aware presentation pipeline.

    Args:
        classifier: Command classifier
        store: Transcript store
        event_bus: Bus for shell actions and notifications
        settings: Global settings (see utils.config.DEFAULT_SETTINGS)
        registry: Session registry (built from settings when omitted)
        content_generator: Quiz/summary generator (built from settings when omitted)
    """

    def __init__(
        self,
        classifier: CommandClassifier,
        store: TranscriptStore,
        event_bus: Optional[EventBus] = None,
        settings: Optional[Dict[str, Any]] = None,
        registry: Optional[SessionRegistry] = None,
        content_generator: Optional[ContentGenerator] = None
    ):
        settings = settings or {}
        session_cfg = settings.get('session', {})
        self.feature_config = settings.get('features', {})
        self.content_config = settings.get('content', {})
        self.recognition_config = settings.get('recognition', {})

        self.classifier = classifier
        self.store = store
        self.bus = event_bus or get_event_bus()

        self.weights = EngagementWeights.from_config({
            **settings.get('analytics', {}),
            'optimal_pace': self.feature_config.get('optimal_pace', (120, 180))
        })
        self.registry = registry or SessionRegistry(
            execution_threshold=session_cfg.get('execution_threshold', 0.7),
            auto_advance=AutoAdvancePolicy.from_config(session_cfg.get('auto_advance', {}))
        )
        self.generator = content_generator or ContentGenerator(self.content_config, self.weights)

        # Per-session live state
        self._extractors: Dict[str, FeatureExtractor] = {}
        self._segments: Dict[str, List[TranscriptSegment]] = {}
        self._quiz_counts: Dict[str, int] = {}
        self._last_final_ts: Dict[str, float] = {}
        self._supervisors: Dict[str, RecognitionSupervisor] = {}

        # Failed writes, retried in order by retry_pending_writes()
        self._pending_writes: List[Tuple[str, Callable, tuple, Optional[str]]] = []
        self._tasks: Set[asyncio.Task] = set()

        logger.info("PresentationService initialized")

    # ============================================
    # SESSION LIFECYCLE
    # ============================================

    def open_presentation(self, presentation_id: str, total_slides: int) -> SessionStateMachine:
        """Register a presentation (Idle) so voice commands can start it"""
        return self.registry.get_or_create(presentation_id, total_slides)

    def _machine(self, presentation_id: str) -> SessionStateMachine:
        machine = self.registry.get(presentation_id)
        if machine is None:
            raise SessionNotFound(f"Unknown presentation: {presentation_id}")
        return machine

    async def start_session(self, presentation_id: str, total_slides: int) -> Session:
        """Start a session, or return the one already open"""
        machine = self.open_presentation(presentation_id, total_slides)
        before = machine.session

        session = machine.start()
        if session is not before:
            await self._on_session_started(session)
            await self._emit(EventType.START_PRESENTATION, {'slide': session.current_slide}, session)

        return session

    async def pause_session(self, presentation_id: str) -> Optional[Session]:
        machine = self._machine(presentation_id)
        if machine.state != SessionState.ACTIVE:
            return machine.pause()

        session = machine.pause()
        self._persist("save_session", self.store.save_session, session, session=session)
        await self._emit(EventType.PAUSE_PRESENTATION, {}, session)
        await self._emit_status(session)
        return session

    async def resume_session(self, presentation_id: str) -> Optional[Session]:
        machine = self._machine(presentation_id)
        if machine.state != SessionState.PAUSED:
            return machine.resume()

        session = machine.resume()
        self._persist("save_session", self.store.save_session, session, session=session)
        await self._emit(EventType.RESUME_PRESENTATION, {}, session)
        await self._emit_status(session)
        return session

    async def end_session(self, presentation_id: str) -> Optional[Session]:
        """End the open session and schedule end-of-session generation"""
        machine = self._machine(presentation_id)
        if machine.session is None or not machine.session.is_open():
            return machine.end()

        session = machine.end()
        await self._emit(EventType.STOP_PRESENTATION, {'slide': session.current_slide}, session)
        await self._on_session_ended(session)
        return session

    async def _on_session_started(self, session: Session):
        self._extractors[session.id] = FeatureExtractor(self.feature_config)
        self._extractors[session.id].slide_changed(session.current_slide)
        self._segments[session.id] = []
        self._quiz_counts[session.id] = 0

        self._persist("save_session", self.store.save_session, session, session=session)
        await self._emit_status(session)

    async def _on_session_ended(self, session: Session):
        supervisor = self._supervisors.pop(session.presentation_id, None)
        if supervisor is not None:
            supervisor.cancel()

        self._persist("save_session", self.store.save_session, session, session=session)
        await self._emit_status(session)

        kinds = list(self.content_config.get('generate_on_end', ['mcq', 'summary']))
        if kinds:
            self._spawn(self._generate_on_end(self.snapshot(session), kinds))
        else:
            self._release(session.id)

    async def _generate_on_end(self, snapshot: SessionSnapshot, kinds: List[str]):
        for kind in kinds:
            await self._generate(snapshot, kind, raise_errors=False)
            snapshot = dataclasses.replace(snapshot, quiz_count=self._quiz_counts.get(snapshot.session_id, 0))
        self._release(snapshot.session_id)

    def _release(self, session_id: str):
        """Drop live state for an ended session and archive it"""
        self._extractors.pop(session_id, None)
        self._segments.pop(session_id, None)
        self._quiz_counts.pop(session_id, None)
        self._last_final_ts.pop(session_id, None)
        self.registry.archive(session_id)

    # ============================================
    # LIVE PATH
    # ============================================

    async def handle_event(self, presentation_id: str, event: UtteranceEvent) -> Optional[PipelineContext]:
        """
        Process one recognition event.

        Interim events only produce live-transcript notifications; finals are
        classified and either routed as commands or processed as content.
        """
        machine = self._machine(presentation_id)
        session = machine.session

        if not event.is_final:
            await self.bus.publish(Event(
                type=EventType.INTERIM_TRANSCRIPT,
                data={'text': event.text, 'confidence': event.confidence},
                presentation_id=presentation_id,
                session_id=session.id if session else None
            ))
            return None

        if event.is_empty():
            return None

        slide = session.current_slide if session else 1
        context = Pipeline.create_context(
            text=event.text.strip(),
            confidence=event.confidence,
            slide=slide,
            presentation_id=presentation_id,
            session_id=session.id if session else None
        )
        context.mark_stage_complete(PipelineStage.RECOGNITION)

        utterance = Utterance(
            text=context.text,
            is_final=True,
            confidence=event.confidence,
            timestamp=self._ordered_timestamp(session, event.timestamp),
            slide_at_time=slide
        )

        classification = self.classifier.classify(utterance)
        context.mark_stage_complete(PipelineStage.CLASSIFICATION)

        if isinstance(classification, Command):
            context.is_command = True
            context.intent = classification.intent.value
            if session:
                log_transcript(session.id, slide, utterance.text, kind="command")

            result = machine.route(classification)
            context.executed = result.executed
            await self._apply_routing(machine, result)
            context.mark_stage_complete(PipelineStage.ROUTING)

        elif session is not None and session.is_active() and session.recording:
            log_transcript(session.id, slide, utterance.text)
            await self._process_content(machine, session, utterance, context)

        else:
            logger.debug(f"[{presentation_id}] Content ignored (not recording): {utterance.text[:40]}")

        context.mark_stage_complete(PipelineStage.COMPLETE)
        logger.debug(f"[{presentation_id}] Pipeline: {context.to_dict()}")
        return context

    def _ordered_timestamp(self, session: Optional[Session], timestamp: float) -> float:
        """Clamp a final's timestamp so a session's transcript never goes backwards"""
        if session is None:
            return timestamp

        last = self._last_final_ts.get(session.id)
        if last is not None and timestamp < last:
            logger.debug(f"[{session.id}] Clamping out-of-order final ({timestamp} < {last})")
            timestamp = last

        self._last_final_ts[session.id] = timestamp
        return timestamp

    async def _apply_routing(self, machine: SessionStateMachine, result: RoutingResult):
        """Publish the effects of a routed command"""
        session = machine.session

        if result.session_started:
            await self._on_session_started(session)

        for action in result.actions:
            await self._emit(EventType(action.action), action.params, session)

        if result.slide_changed:
            self._extractors[session.id].slide_changed(session.current_slide)
            await self._emit(EventType.SLIDE_CHANGED, {'slide': session.current_slide}, session)

        if result.session_ended:
            await self._on_session_ended(session)
        elif result.executed and result.command.group == CommandGroup.CONTROL and not result.session_started:
            self._persist("save_session", self.store.save_session, session, session=session)
            await self._emit_status(session)
        elif result.slide_changed:
            self._persist("save_session", self.store.save_session, session, session=session)

        if result.generation is not None and session is not None:
            kind = 'mcq' if result.generation == CommandIntent.GENERATE_QUIZ else 'summary'
            self._spawn(self._generate(self.snapshot(session), kind, raise_errors=False))

    async def _process_content(
        self,
        machine: SessionStateMachine,
        session: Session,
        utterance: Utterance,
        context: PipelineContext
    ):
        extractor = self._extractors[session.id]
        segment = extractor.extract(utterance, session.id)
        context.keywords = segment.keywords
        context.mark_stage_complete(PipelineStage.FEATURE_EXTRACTION)

        self._segments[session.id].append(segment)
        self._persist("append_segment", self.store.append_segment, segment, session=session)
        await self._emit(EventType.TRANSCRIPT_SEGMENT, segment.to_dict(), session)
        context.mark_stage_complete(PipelineStage.PERSISTENCE)

        metrics = compute_metrics(self._segments[session.id], session.duration_seconds, self.weights)
        await self._emit(EventType.METRICS_UPDATED, metrics.to_dict(), session)
        context.mark_stage_complete(PipelineStage.AGGREGATION)

        reason = machine.auto_advance(segment.topic_completion, segment.confidence, segment.text)
        if reason:
            context.auto_advanced = reason
            extractor.slide_changed(session.current_slide)
            await self._emit(EventType.NEXT_SLIDE, {'slide': session.current_slide}, session)
            await self._emit(EventType.AUTO_ADVANCE, {'slide': session.current_slide, 'reason': reason}, session)
            self._persist("save_session", self.store.save_session, session, session=session)
        context.mark_stage_complete(PipelineStage.AUTO_ADVANCE)

    async def sync_slide(self, presentation_id: str, slide: int) -> bool:
        """Viewer changed the slide itself; keep the pointer in step"""
        machine = self._machine(presentation_id)
        if not machine.sync_slide(slide):
            return False

        session = machine.session
        self._extractors[session.id].slide_changed(session.current_slide)
        await self._emit(EventType.SLIDE_CHANGED, {'slide': session.current_slide, 'source': 'viewer'}, session)
        return True

    async def run(self, presentation_id: str, adapter: RecognitionAdapter) -> int:
        """
        Consume a supervised recognition stream one event at a time.

        Returns when the source is exhausted or the session ends.

        Returns:
            Number of events handled
        """
        machine = self._machine(presentation_id)

        if not adapter.is_available():
            error = RecognitionUnavailable("No speech recognition source available")
            await self._on_recognition_error(presentation_id, error)
            raise error

        supervisor = RecognitionSupervisor(
            adapter,
            is_open=lambda: machine.session is None or machine.session.is_open(),
            is_paused=lambda: machine.state == SessionState.PAUSED,
            restart_backoff=float(self.recognition_config.get('restart_backoff', 1.0)),
            max_restarts=int(self.recognition_config.get('max_restarts', 0)),
            on_error=lambda error: self._on_recognition_error(presentation_id, error)
        )
        self._supervisors[presentation_id] = supervisor

        handled = 0
        try:
            async for event in supervisor.events():
                await self.handle_event(presentation_id, event)
                handled += 1
        except PresenterError as e:
            await self._on_recognition_error(presentation_id, e)
            if e.fatal:
                raise
        finally:
            if self._supervisors.get(presentation_id) is supervisor:
                del self._supervisors[presentation_id]

        logger.info(f"[{presentation_id}] Recognition stream finished after {handled} events")
        return handled

    async def _on_recognition_error(self, presentation_id: str, error: PresenterError):
        machine = self.registry.get(presentation_id)
        session = machine.session if machine else None

        event_type = EventType.RECOGNITION_UNAVAILABLE if error.fatal else EventType.ERROR
        if error.fatal:
            logger.error(f"[{presentation_id}] Recognition unavailable: {error.message}")
        await self.bus.publish(Event(
            type=event_type,
            data=error.to_dict(),
            presentation_id=presentation_id,
            session_id=session.id if session else None
        ))

    # ============================================
    # CONTENT GENERATION
    # ============================================

    def snapshot(self, session: Session) -> SessionSnapshot:
        """Freeze a session's segments for generation"""
        segments = self._segments.get(session.id)
        if segments is None:
            segments = self.store.get_segments(session.id)
        quiz_count = self._quiz_counts.get(session.id)
        if quiz_count is None:
            quiz_count = self.store.count_quizzes(session.id)
        return SessionSnapshot.capture(session, segments, quiz_count)

    def _snapshot_for(self, session_id: str) -> SessionSnapshot:
        session = self.registry.find_session(session_id)
        if session is not None:
            return self.snapshot(session)

        row = self.store.get_session(session_id)
        if row is None:
            raise SessionNotFound(f"Unknown session: {session_id}", session_id=session_id)

        return SessionSnapshot(
            session_id=session_id,
            presentation_id=row['presentation_id'],
            total_slides=row['total_slides'],
            slides_covered=len(set(row['slide_transitions'])),
            duration_seconds=row['duration_seconds'] or 0.0,
            segments=tuple(self.store.get_segments(session_id)),
            quiz_count=self.store.count_quizzes(session_id)
        )

    async def request_quiz(self, session_id: str, quiz_type: QuizType = QuizType.MCQ) -> Quiz:
        """
        Generate a quiz on demand.

        Raises:
            SessionNotFound: unknown session
            InsufficientContent: session has no segments
        """
        snapshot = self._snapshot_for(session_id)
        return await self._spawn(self._generate(snapshot, quiz_type.value, raise_errors=True))

    async def request_summary(self, session_id: str) -> Summary:
        """
        Generate a summary on demand.

        Raises:
            SessionNotFound: unknown session
            InsufficientContent: session has no segments
        """
        snapshot = self._snapshot_for(session_id)
        return await self._spawn(self._generate(snapshot, 'summary', raise_errors=True))

    async def _generate(self, snapshot: SessionSnapshot, kind: str, raise_errors: bool = False):
        """Generate one artifact, persist it and notify the shell"""
        try:
            if kind == 'summary':
                artifact = self.generator.generate_summary(snapshot)
                self._persist("save_summary", self.store.save_summary, artifact, session_id=snapshot.session_id)
                data = {**artifact.to_dict(), 'markdown': artifact.to_markdown()}
                event_type = EventType.SUMMARY_GENERATED
            else:
                artifact = self.generator.generate_quiz(snapshot, QuizType(kind))
                self._persist("save_quiz", self.store.save_quiz, artifact, session_id=snapshot.session_id)
                if snapshot.session_id in self._quiz_counts:
                    self._quiz_counts[snapshot.session_id] += 1
                data = artifact.to_dict()
                event_type = EventType.QUIZ_GENERATED

        except InsufficientContent as e:
            logger.warning(f"[{snapshot.session_id}] {e.message}")
            await self.bus.publish(Event(
                type=EventType.INSUFFICIENT_CONTENT,
                data={**e.to_dict(), 'kind': kind},
                presentation_id=snapshot.presentation_id,
                session_id=snapshot.session_id
            ))
            if raise_errors:
                raise
            return None

        await self.bus.publish(Event(
            type=event_type,
            data=data,
            presentation_id=snapshot.presentation_id,
            session_id=snapshot.session_id
        ))
        return artifact

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_background(self):
        """Wait until all scheduled generation tasks have finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ============================================
    # METRICS
    # ============================================

    def get_metrics(self, session_id: str) -> SessionMetrics:
        """Recompute session metrics from its segments"""
        snapshot = self._snapshot_for(session_id)
        return compute_metrics(snapshot.segments, snapshot.duration_seconds, self.weights)

    def get_segments(self, session_id: str) -> List[TranscriptSegment]:
        return list(self._snapshot_for(session_id).segments)

    # ============================================
    # PERSISTENCE
    # ============================================

    def _persist(
        self,
        operation: str,
        write: Callable,
        *args,
        session: Optional[Session] = None,
        session_id: Optional[str] = None
    ) -> bool:
        """Run a store write; failures are queued for retry, never raised"""
        session_id = session.id if session else session_id
        try:
            write(*args)
            return True
        except StorageError as e:
            logger.error(f"[{session_id}] Storage write {operation} failed: {e.message}")
            self._pending_writes.append((operation, write, args, session_id))
            self._spawn(self.bus.publish(Event(
                type=EventType.STORAGE_ERROR,
                data={**e.to_dict(), 'operation': operation, 'pending': len(self._pending_writes)},
                presentation_id=session.presentation_id if session else None,
                session_id=session_id
            )))
            return False

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    def retry_pending_writes(self) -> int:
        """
        Retry queued writes in their original order.

        Stops at the first write that still fails so later segments never
        land before earlier ones.

        Returns:
            Number of writes that succeeded
        """
        succeeded = 0
        while self._pending_writes:
            operation, write, args, session_id = self._pending_writes[0]
            try:
                write(*args)
            except StorageError as e:
                logger.warning(f"[{session_id}] Retry of {operation} failed: {e.message}")
                break
            self._pending_writes.pop(0)
            succeeded += 1

        if succeeded:
            logger.info(f"Retried {succeeded} pending writes ({len(self._pending_writes)} left)")
        return succeeded

    # ============================================
    # NOTIFICATIONS
    # ============================================

    async def _emit(self, event_type: EventType, data: Dict[str, Any], session: Optional[Session]):
        await self.bus.publish(Event(
            type=event_type,
            data=data,
            presentation_id=session.presentation_id if session else None,
            session_id=session.id if session else None
        ))

    async def _emit_status(self, session: Session):
        await self._emit(EventType.STATUS_UPDATE, session.to_dict(), session)

    async def shutdown(self):
        """Cancel recognition, finish generation and close storage"""
        for supervisor in list(self._supervisors.values()):
            supervisor.cancel()
        self._supervisors.clear()

        await self.wait_for_background()
        self.store.close()
        logger.info("PresentationService shut down")


def build_presentation_service(
    settings: Optional[Dict[str, Any]] = None,
    store: Optional[TranscriptStore] = None,
    event_bus: Optional[EventBus] = None
) -> PresentationService:
    """
    Assemble a service from global settings.

    The classifier comes from the module loader (config/modules/intent.yaml),
    falling back to the built-in pattern grammar when no config is present.
    """
    from core.module_loader import get_module_loader
    from modules.storage.sql_store import SQLStore
    from utils.config import load_global_config

    settings = settings or load_global_config()
    loader = get_module_loader()

    try:
        classifier = loader.load_module('intent')
    except FileNotFoundError:
        logger.warning("No intent config found, using pattern classifier")
        classifier = loader.load_module('intent', 'pattern')

    if store is None:
        store = SQLStore(settings.get('storage', {}).get('db_path', 'data/presenter.db'))
        store.initialize()

    return PresentationService(
        classifier=classifier,
        store=store,
        event_bus=event_bus,
        settings=settings
    )
