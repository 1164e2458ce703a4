"""
Test Session State Machine and Registry

Uses a fake clock so durations are exact.
"""

import pytest

from modules.intent.base import Command, CommandIntent, Utterance
from modules.intent.pattern import PatternIntent
from modules.session.models import SessionState
from modules.session.registry import SessionRegistry
from modules.session.state_machine import AutoAdvancePolicy, SessionStateMachine


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def command(intent: CommandIntent, confidence: float = 0.9, **parameters) -> Command:
    return Command(raw_text=intent.value, intent=intent, confidence=confidence, parameters=parameters)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def machine(clock):
    return SessionStateMachine("deck", total_slides=5, clock=clock)


class TestLifecycle:

    def test_start(self, machine):
        assert machine.state == SessionState.IDLE

        session = machine.start()

        assert machine.state == SessionState.ACTIVE
        assert session.current_slide == 1
        assert session.start_time is not None
        assert session.duration_seconds == 0.0

    def test_start_is_idempotent(self, machine):
        """Test start() on an open session returns it unchanged"""
        session = machine.start()
        machine.route(command(CommandIntent.NAVIGATE_NEXT))

        again = machine.start()

        assert again is session
        assert again.id == session.id
        assert again.current_slide == 2
        assert len(again.command_log) == 1

    def test_duration_only_counts_active_time(self, machine, clock):
        session = machine.start()
        clock.advance(10)
        machine.pause()
        clock.advance(100)

        assert session.duration_seconds == pytest.approx(10)

        machine.resume()
        clock.advance(5)
        machine.end()
        clock.advance(50)

        assert session.duration_seconds == pytest.approx(15)
        assert session.state == SessionState.ENDED
        assert session.end_time is not None

    def test_invalid_transitions_are_suppressed(self, machine):
        assert machine.pause() is None
        assert machine.resume() is None
        assert machine.end() is None

        session = machine.start()
        assert machine.resume() is session
        assert machine.state == SessionState.ACTIVE

        machine.end()
        assert machine.pause() is session
        assert machine.state == SessionState.ENDED

    def test_start_after_end_opens_new_session(self, machine):
        first = machine.start()
        machine.end()

        second = machine.start()

        assert second.id != first.id
        assert second.state == SessionState.ACTIVE
        assert machine.ended_sessions == [first]

    def test_invalid_total_slides(self):
        with pytest.raises(ValueError):
            SessionStateMachine("deck", total_slides=0)


class TestRouting:

    def test_navigation_clamped(self, machine):
        machine.start()

        result = machine.route(command(CommandIntent.NAVIGATE_BACK))
        assert result.executed
        assert not result.slide_changed
        assert result.actions == []
        assert machine.session.current_slide == 1

        result = machine.route(command(CommandIntent.NAVIGATE_TO, slide=99))
        assert machine.session.current_slide == 5
        assert result.actions[0].action == "goto-slide"
        assert result.actions[0].params == {'slide': 5}

        machine.route(command(CommandIntent.NAVIGATE_NEXT))
        assert machine.session.current_slide == 5

    @pytest.mark.parametrize("intent,start,expected", [
        (CommandIntent.NAVIGATE_NEXT, 2, 3),
        (CommandIntent.NAVIGATE_BACK, 2, 1),
        (CommandIntent.NAVIGATE_FIRST, 4, 1),
        (CommandIntent.NAVIGATE_LAST, 2, 5),
    ])
    def test_navigation_delta(self, machine, intent, start, expected):
        machine.start()
        machine.go_to(start)

        result = machine.route(command(intent))

        assert result.command.executed is True
        assert machine.session.current_slide == expected

    def test_low_confidence_not_executed(self, machine):
        machine.start()

        result = machine.route(command(CommandIntent.NAVIGATE_NEXT, confidence=0.69))

        assert not result.executed
        assert machine.session.current_slide == 1
        assert machine.session.command_log[-1].executed is False

    def test_navigation_ignored_while_paused(self, machine):
        machine.start()
        machine.pause()

        result = machine.route(command(CommandIntent.NAVIGATE_NEXT))

        assert not result.executed
        assert machine.session.current_slide == 1

    def test_control_commands(self, machine):
        result = machine.route(command(CommandIntent.START_PRESENTATION))
        assert result.session_started
        assert result.actions[0].action == "start-presentation"

        result = machine.route(command(CommandIntent.PAUSE_PRESENTATION))
        assert machine.state == SessionState.PAUSED
        assert result.actions[0].action == "pause-presentation"

        result = machine.route(command(CommandIntent.RESUME_PRESENTATION))
        assert machine.state == SessionState.ACTIVE

        result = machine.route(command(CommandIntent.STOP_RECORDING))
        assert machine.session.recording is False
        assert result.actions[0].action == "stop-recording"

        result = machine.route(command(CommandIntent.STOP_PRESENTATION))
        assert result.session_ended
        assert machine.state == SessionState.ENDED

    def test_generation_request(self, machine):
        machine.start()

        result = machine.route(command(CommandIntent.GENERATE_QUIZ))
        assert result.generation == CommandIntent.GENERATE_QUIZ
        assert result.actions[0].action == "generate-quiz"

        result = machine.route(command(CommandIntent.SHOW_NOTES))
        assert result.generation is None
        assert result.executed

    def test_five_slide_scenario(self, machine):
        """start, next, next, go to slide 1, end session"""
        classifier = PatternIntent()
        phrases = ["start presentation", "next slide", "next slide", "go to slide 1", "end session"]

        for phrase in phrases:
            classified = classifier.classify(Utterance(text=phrase, confidence=0.95))
            machine.route(classified)

        session = machine.session
        assert session.current_slide == 1
        assert session.state == SessionState.ENDED
        assert session.end_time is not None
        assert session.slide_transitions == [1, 2, 3, 1]


class TestAutoAdvance:

    def test_fires_once_when_both_conditions_hold(self, machine):
        machine.start()

        reason = machine.auto_advance(85.0, 0.9, "and moving on to the results")

        assert reason == "topic-complete"
        assert machine.session.current_slide == 2

    def test_transition_phrase(self, machine):
        machine.start()

        assert machine.auto_advance(10.0, 0.5, "In conclusion, it works") == "transition-phrase"
        assert machine.session.current_slide == 2

    def test_thresholds_are_strict(self, machine):
        machine.start()

        assert machine.auto_advance(80.0, 0.9, "plain words") is None
        assert machine.auto_advance(90.0, 0.7, "plain words") is None
        assert machine.session.current_slide == 1

    def test_not_on_last_slide_or_when_paused(self, machine):
        machine.start()
        machine.go_to(5)
        assert machine.auto_advance(100.0, 1.0, "moving on") is None

        machine.go_to(2)
        machine.pause()
        assert machine.auto_advance(100.0, 1.0, "moving on") is None
        assert machine.session.current_slide == 2

    def test_disabled_policy(self, clock):
        machine = SessionStateMachine("deck", 5, auto_advance=AutoAdvancePolicy(enabled=False), clock=clock)
        machine.start()

        assert machine.auto_advance(100.0, 1.0, "moving on") is None


class TestSlides:

    def test_sync_slide(self, machine):
        assert machine.sync_slide(3) is False

        machine.start()
        assert machine.sync_slide(3) is True
        assert machine.sync_slide(3) is False
        assert machine.session.current_slide == 3

    def test_shrinking_deck_clamps_pointer(self, machine):
        machine.start()
        machine.go_to(5)

        machine.set_total_slides(3)

        assert machine.session.current_slide == 3
        assert machine.session.total_slides == 3


class TestRegistry:

    @pytest.fixture
    def registry(self, clock):
        return SessionRegistry(clock=clock)

    def test_one_machine_per_presentation(self, registry):
        first = registry.get_or_create("deck", 5)
        again = registry.get_or_create("deck", 8)

        assert first is again
        assert again.total_slides == 8
        assert registry.get("other") is None

    def test_open_sessions_and_find(self, registry):
        session = registry.get_or_create("deck", 5).start()
        registry.get_or_create("idle-deck", 3)

        assert registry.open_sessions() == [session]
        assert registry.find_session(session.id) is session
        assert registry.find_session("missing") is None

    def test_archive(self, registry):
        machine = registry.get_or_create("deck", 5)
        session = machine.start()

        assert registry.archive(session.id) is None

        machine.end()
        assert registry.archive(session.id) is session
        assert machine.session is None
        assert registry.archived() == [session]
        assert registry.find_session(session.id) is session

    def test_archive_replaced_session(self, registry):
        machine = registry.get_or_create("deck", 5)
        first = machine.start()
        machine.end()
        second = machine.start()

        registry.archive(first.id)

        assert machine.ended_sessions == []
        assert machine.session is second
