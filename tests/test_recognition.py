"""
Test Recognition Adapters

Replay adapter and the supervised restart loop, without hardware.
"""

import os
import tempfile

import pytest
from unittest.mock import AsyncMock

from core.errors import PermissionDenied, RecognitionUnavailable, TransientRecognitionError
from modules.recognition.base import UtteranceEvent
from modules.recognition.replay import ReplayRecognition
from modules.recognition.supervisor import RecognitionSupervisor


def final(text: str, ts: float, confidence: float = 0.9) -> UtteranceEvent:
    return UtteranceEvent(text=text, is_final=True, confidence=confidence, timestamp=ts)


async def collect(supervisor: RecognitionSupervisor) -> list:
    return [event async for event in supervisor.events()]


class TestReplayRecognition:

    def test_parse_script(self):
        items = ReplayRecognition.parse_script([
            {'text': 'hello', 'interim': True},
            {'text': 'hello world', 'confidence': 0.8},
            {'error': 'network'},
            {'text': 'next slide'},
        ], base_time=100.0, spacing=2.0)

        assert items[0].is_final is False
        assert items[1].confidence == 0.8
        # The interim shares the final's slot; the error takes one of its own
        assert [items[0].timestamp, items[1].timestamp, items[3].timestamp] == [100.0, 100.0, 104.0]
        assert isinstance(items[2], TransientRecognitionError)
        assert items[2].reason == "network"

    def test_explicit_timestamp_kept(self):
        items = ReplayRecognition.parse_script([
            {'text': 'one', 'timestamp': 7.5},
            {'text': 'two'},
        ], base_time=10.0, spacing=1.0)

        assert [item.timestamp for item in items] == [7.5, 11.0]

    def test_unknown_error_rejected(self):
        with pytest.raises(ValueError):
            ReplayRecognition.parse_script([{'error': 'meteor'}])

    def test_from_yaml(self):
        script = (
            "spacing: 1.0\n"
            "events:\n"
            "  - text: start presentation\n"
            "  - error: not-allowed\n"
        )
        with tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False, encoding='utf-8') as f:
            f.write(script)
            path = f.name

        try:
            adapter = ReplayRecognition.from_yaml(path, {'base_time': 50.0})
        finally:
            os.unlink(path)

        assert adapter.remaining == 2
        assert adapter.spacing == 1.0
        assert adapter.base_time == 50.0

    def test_confidence_is_clamped(self):
        assert UtteranceEvent(text="x", is_final=True, confidence=1.3).confidence == 1.0

    @pytest.mark.asyncio
    async def test_stream_stops_when_stopped(self):
        adapter = ReplayRecognition(events=[final("one", 1), final("two", 2)])
        adapter.start()

        seen = []
        async for event in adapter.stream():
            seen.append(event.text)
            adapter.stop()

        assert seen == ["one"]
        assert adapter.remaining == 1


class TestRecognitionSupervisor:

    @pytest.mark.asyncio
    async def test_passes_events_through(self):
        adapter = ReplayRecognition(events=[
            UtteranceEvent(text="hel", is_final=False, timestamp=1.0),
            final("hello", 1.0),
        ])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: True)

        events = await collect(supervisor)

        assert [e.text for e in events] == ["hel", "hello"]
        assert adapter.is_listening is False

    @pytest.mark.asyncio
    async def test_final_timestamps_never_decrease(self):
        adapter = ReplayRecognition(events=[final("a", 10.0), final("b", 8.0), final("c", 12.0)])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: True)

        events = await collect(supervisor)

        assert [e.timestamp for e in events] == [10.0, 10.0, 12.0]

    @pytest.mark.asyncio
    async def test_transient_error_restarts(self):
        adapter = ReplayRecognition(events=[
            final("before", 1.0),
            TransientRecognitionError("No speech", reason="no-speech"),
            final("after", 2.0),
        ])
        on_error = AsyncMock()
        supervisor = RecognitionSupervisor(
            adapter, is_open=lambda: True, restart_backoff=0, on_error=on_error
        )

        events = await collect(supervisor)

        assert [e.text for e in events] == ["before", "after"]
        assert supervisor.restarts == 1
        assert adapter.start_count == 2
        on_error.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_restart_after_session_closed(self):
        adapter = ReplayRecognition(events=[
            TransientRecognitionError("Network error", reason="network"),
            final("never", 1.0),
        ])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: False, restart_backoff=0)

        assert await collect(supervisor) == []
        assert adapter.start_count == 1

    @pytest.mark.asyncio
    async def test_restart_waits_while_paused(self):
        pauses = iter([True, True, False])
        adapter = ReplayRecognition(events=[
            TransientRecognitionError("No speech", reason="no-speech"),
            final("resumed", 1.0),
        ])
        supervisor = RecognitionSupervisor(
            adapter,
            is_open=lambda: True,
            is_paused=lambda: next(pauses),
            restart_backoff=0
        )

        events = await collect(supervisor)

        assert [e.text for e in events] == ["resumed"]

    @pytest.mark.asyncio
    async def test_max_restarts_exhausted(self):
        adapter = ReplayRecognition(events=[
            TransientRecognitionError("No speech", reason="no-speech"),
            TransientRecognitionError("No speech", reason="no-speech"),
        ])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: True, restart_backoff=0, max_restarts=1)

        with pytest.raises(TransientRecognitionError):
            await collect(supervisor)
        assert supervisor.restarts == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        RecognitionUnavailable("not supported"),
        PermissionDenied("denied"),
    ])
    async def test_terminal_errors_surface(self, error):
        adapter = ReplayRecognition(events=[final("one", 1.0), error, final("two", 2.0)])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: True, restart_backoff=0)

        seen = []
        with pytest.raises(type(error)):
            async for event in supervisor.events():
                seen.append(event.text)

        assert seen == ["one"]
        assert error.fatal is True
        assert adapter.start_count == 1

    @pytest.mark.asyncio
    async def test_cancel_stops_immediately(self):
        adapter = ReplayRecognition(events=[final("one", 1.0), final("two", 2.0), final("three", 3.0)])
        supervisor = RecognitionSupervisor(adapter, is_open=lambda: True)

        seen = []
        async for event in supervisor.events():
            seen.append(event.text)
            supervisor.cancel()

        assert seen == ["one"]
        assert supervisor.cancelled
