"""
Test PresentationService

Drives the whole pipeline (classification, routing, features, storage,
events and generation) with an in-memory store and a private event bus.
"""

import pytest
from unittest.mock import Mock

from core.errors import (
    InsufficientContent,
    RecognitionUnavailable,
    SessionNotFound,
    StorageError,
    TransientRecognitionError
)
from core.event_bus import EventBus, EventType
from core.services import PresentationService
from modules.content.models import QuizType
from modules.intent.pattern import PatternIntent
from modules.recognition.base import UtteranceEvent
from modules.recognition.replay import ReplayRecognition
from modules.session.models import SessionState
from modules.session.registry import SessionRegistry
from modules.storage.sql_store import SQLStore

CONTENT = "Neural networks learn representations from training data"

LONG_CONTENT = "Training data quality shapes every neural network we build. " * 8


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def final(text: str, confidence: float = 0.9, ts: float = 1000.0) -> UtteranceEvent:
    return UtteranceEvent(text=text, is_final=True, confidence=confidence, timestamp=ts)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    store = SQLStore(":memory:")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    received = []
    bus.add_handler(received.append)
    return received


@pytest.fixture
def service(store, bus, clock):
    return PresentationService(
        classifier=PatternIntent(),
        store=store,
        event_bus=bus,
        settings={'recognition': {'restart_backoff': 0}},
        registry=SessionRegistry(clock=clock)
    )


def types(events) -> list:
    return [event.type for event in events]


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_session(self, service, store, events):
        session = await service.start_session("deck", 5)

        assert session.state == SessionState.ACTIVE
        assert store.get_session(session.id)['state'] == "active"
        assert EventType.START_PRESENTATION in types(events)

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, service, events):
        first = await service.start_session("deck", 5)
        events.clear()

        second = await service.start_session("deck", 5)

        assert second is first
        assert events == []

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, service, store, events, clock):
        session = await service.start_session("deck", 5)
        clock.now = 30.0

        await service.pause_session("deck")
        clock.now = 90.0
        assert store.get_session(session.id)['state'] == "paused"

        await service.resume_session("deck")

        assert session.duration_seconds == pytest.approx(30.0)
        assert EventType.PAUSE_PRESENTATION in types(events)
        assert EventType.RESUME_PRESENTATION in types(events)

    @pytest.mark.asyncio
    async def test_unknown_presentation(self, service):
        with pytest.raises(SessionNotFound):
            await service.pause_session("nope")


class TestLivePath:

    @pytest.mark.asyncio
    async def test_content_is_extracted_and_stored(self, service, store, events):
        session = await service.start_session("deck", 5)

        context = await service.handle_event("deck", final(CONTENT))

        assert context.is_command is False
        assert context.keywords == ("neural", "networks", "learn", "representations", "training")
        assert [s.text for s in store.get_segments(session.id)] == [CONTENT]
        assert EventType.TRANSCRIPT_SEGMENT in types(events)
        assert EventType.METRICS_UPDATED in types(events)

    @pytest.mark.asyncio
    async def test_interim_only_notifies(self, service, store, events):
        session = await service.start_session("deck", 5)
        events.clear()

        context = await service.handle_event("deck", UtteranceEvent(text="neural net", is_final=False))

        assert context is None
        assert types(events) == [EventType.INTERIM_TRANSCRIPT]
        assert store.get_segments(session.id) == []

    @pytest.mark.asyncio
    async def test_navigation_command(self, service, events):
        session = await service.start_session("deck", 5)

        context = await service.handle_event("deck", final("Next slide please"))

        assert context.is_command and context.executed
        assert context.intent == "navigate_next"
        assert session.current_slide == 2
        assert EventType.NEXT_SLIDE in types(events)
        assert EventType.SLIDE_CHANGED in types(events)

    @pytest.mark.asyncio
    async def test_low_confidence_command_is_not_content(self, service, store):
        session = await service.start_session("deck", 5)

        context = await service.handle_event("deck", final("next slide", confidence=0.5))

        assert context.is_command and not context.executed
        assert session.current_slide == 1
        assert store.get_segments(session.id) == []
        assert session.command_log[-1].executed is False

    @pytest.mark.asyncio
    async def test_not_recording(self, service, store):
        session = await service.start_session("deck", 5)

        await service.handle_event("deck", final("stop recording"))
        await service.handle_event("deck", final(CONTENT))

        assert session.recording is False
        assert store.get_segments(session.id) == []

    @pytest.mark.asyncio
    async def test_auto_advance(self, service, events):
        session = await service.start_session("deck", 5)

        context = await service.handle_event("deck", final(LONG_CONTENT))

        assert context.auto_advanced == "topic-complete"
        assert session.current_slide == 2
        assert types(events).count(EventType.AUTO_ADVANCE) == 1

    @pytest.mark.asyncio
    async def test_out_of_order_finals_are_clamped(self, service, store):
        session = await service.start_session("deck", 5)

        await service.handle_event("deck", final(CONTENT, ts=2000.0))
        await service.handle_event("deck", final("Gradient descent minimises the training loss", ts=1000.0))

        live = service.snapshot(session).segments
        stored = store.get_segments(session.id)
        assert [s.timestamp for s in live] == [2000.0, 2000.0]
        assert [(s.text, s.timestamp) for s in stored] == [(s.text, s.timestamp) for s in live]
        excerpt = service.generator.generate_summary(service.snapshot(session)).transcript_excerpt
        assert [s.text for s in excerpt] == [s.text for s in stored]

    @pytest.mark.asyncio
    async def test_sync_slide(self, service, events):
        session = await service.start_session("deck", 5)

        assert await service.sync_slide("deck", 4) is True
        assert session.current_slide == 4
        assert events[-1].data == {'slide': 4, 'source': 'viewer'}

    @pytest.mark.asyncio
    async def test_five_slide_scenario(self, service):
        service.open_presentation("deck", 5)

        for phrase in ["start presentation", "next slide", "next slide", "go to slide 1", "end session"]:
            await service.handle_event("deck", final(phrase, confidence=0.95))
        await service.wait_for_background()

        session = service.registry.archived()[0]
        assert session.current_slide == 1
        assert session.state == SessionState.ENDED
        assert session.end_time is not None


class TestGeneration:

    @pytest.mark.asyncio
    async def test_end_generates_quiz_then_summary(self, service, store, events):
        session = await service.start_session("deck", 5)
        await service.handle_event("deck", final(CONTENT))

        await service.end_session("deck")
        await service.wait_for_background()

        assert store.count_quizzes(session.id) == 1
        summaries = store.get_summaries(session.id)
        assert len(summaries) == 1
        assert summaries[0]['quiz_count'] == 1
        assert types(events).index(EventType.QUIZ_GENERATED) < types(events).index(EventType.SUMMARY_GENERATED)
        assert service.registry.archived() == [session]
        assert store.get_session(session.id)['state'] == "ended"

    @pytest.mark.asyncio
    async def test_end_without_content(self, service, store, events):
        session = await service.start_session("deck", 5)

        await service.end_session("deck")
        await service.wait_for_background()

        assert types(events).count(EventType.INSUFFICIENT_CONTENT) == 2
        assert store.count_quizzes(session.id) == 0

    @pytest.mark.asyncio
    async def test_voice_generation_command(self, service, store, events):
        session = await service.start_session("deck", 5)
        await service.handle_event("deck", final(CONTENT))

        await service.handle_event("deck", final("generate a quiz"))
        await service.wait_for_background()

        assert EventType.GENERATE_QUIZ in types(events)
        assert store.count_quizzes(session.id) == 1

    @pytest.mark.asyncio
    async def test_request_quiz(self, service, store):
        session = await service.start_session("deck", 5)

        with pytest.raises(InsufficientContent):
            await service.request_quiz(session.id)

        await service.handle_event("deck", final(CONTENT))
        quiz = await service.request_quiz(session.id, QuizType.THEORY)

        assert quiz.total_questions == 5
        assert store.get_quiz(quiz.id) == quiz

    @pytest.mark.asyncio
    async def test_archived_session_state_released(self, service, store):
        session = await service.start_session("deck", 5)
        await service.handle_event("deck", final(CONTENT))

        await service.end_session("deck")
        await service.wait_for_background()

        assert session.id not in service._quiz_counts
        assert session.id not in service._last_final_ts
        assert session.id not in service._segments

        # On-demand generation after archive counts from the store
        await service.request_quiz(session.id)
        assert session.id not in service._quiz_counts
        assert service.snapshot(session).quiz_count == store.count_quizzes(session.id) == 2

    @pytest.mark.asyncio
    async def test_request_unknown_session(self, service):
        with pytest.raises(SessionNotFound):
            await service.request_summary("missing")

    @pytest.mark.asyncio
    async def test_metrics_from_store_after_archive(self, service):
        session = await service.start_session("deck", 5)
        await service.handle_event("deck", final(CONTENT))
        await service.end_session("deck")
        await service.wait_for_background()

        metrics = service.get_metrics(session.id)

        assert metrics.segment_count == 1
        assert metrics.word_count == 7
        assert len(service.get_segments(session.id)) == 1


class TestPersistenceFailures:

    @pytest.mark.asyncio
    async def test_failed_write_is_queued_and_retried(self, service, store, events):
        await service.start_session("deck", 5)
        store.append_segment = Mock(side_effect=[StorageError("disk full"), 1])

        context = await service.handle_event("deck", final(CONTENT))
        await service.wait_for_background()

        # The live path carried on
        assert context.keywords
        assert service.pending_writes == 1
        assert EventType.STORAGE_ERROR in types(events)

        assert service.retry_pending_writes() == 1
        assert service.pending_writes == 0
        assert store.append_segment.call_count == 2


class TestRun:

    @pytest.mark.asyncio
    async def test_replayed_session(self, service, store, events):
        service.open_presentation("deck", 5)
        adapter = ReplayRecognition(events=[
            final("start presentation", 0.95, 1.0),
            final(CONTENT, 0.9, 2.0),
            final("next slide", 0.9, 3.0),
            TransientRecognitionError("No speech detected", reason="no-speech"),
            final("Overfitting hurts generalisation badly", 0.9, 4.0),
            final("stop presentation", 0.95, 5.0),
            final("never heard", 0.9, 6.0),
        ])

        handled = await service.run("deck", adapter)
        await service.wait_for_background()

        session = service.registry.archived()[0]
        assert handled == 5
        assert session.state == SessionState.ENDED
        assert session.current_slide == 2
        assert [s.slide_number for s in store.get_segments(session.id)] == [1, 2]
        assert EventType.ERROR in types(events)
        assert store.count_quizzes(session.id) == 1

    @pytest.mark.asyncio
    async def test_recognition_unavailable(self, service, events):
        service.open_presentation("deck", 5)
        adapter = ReplayRecognition(events=[RecognitionUnavailable("no microphone")])

        with pytest.raises(RecognitionUnavailable):
            await service.run("deck", adapter)

        assert EventType.RECOGNITION_UNAVAILABLE in types(events)

    @pytest.mark.asyncio
    async def test_unavailable_source_is_not_started(self, service, events):
        service.open_presentation("deck", 5)
        adapter = ReplayRecognition(events=[final("start presentation")])
        adapter.is_available = Mock(return_value=False)

        with pytest.raises(RecognitionUnavailable):
            await service.run("deck", adapter)

        assert adapter.start_count == 0
        assert adapter.remaining == 1
        assert types(events) == [EventType.RECOGNITION_UNAVAILABLE]
