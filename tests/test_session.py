"""Tests for session – the session controller state machine."""

from __future__ import annotations

import pytest

from errors import SessionStateError
from session import Prompt, SessionController, SessionState, SessionStats


class FakeClock:
    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


PROMPTS = [
    Prompt(prompt="Feline pet?", expected_answer="cat"),
    Prompt(prompt="Canine pet?", expected_answer="dog"),
]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def active(clock: FakeClock) -> SessionController:
    c = SessionController(clock=clock)
    c.start()
    c.prompts_loaded(PROMPTS)
    return c


def type_answer(controller: SessionController, answer: str) -> None:
    for i in range(1, len(answer) + 1):
        controller.handle_input(answer[:i])


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoading:
    def test_starts_idle(self):
        c = SessionController()
        assert c.state is SessionState.IDLE
        assert c.can_start is True

    def test_start_moves_to_loading(self):
        c = SessionController()
        c.start()
        assert c.state is SessionState.LOADING
        assert c.can_start is False

    def test_start_twice_is_rejected(self):
        c = SessionController()
        c.start()
        with pytest.raises(SessionStateError):
            c.start()

    def test_empty_prompt_set_returns_to_idle(self):
        c = SessionController()
        c.start()
        c.prompts_loaded([])
        assert c.state is SessionState.IDLE
        assert c.notice

    def test_failure_returns_to_idle(self):
        c = SessionController()
        c.start()
        c.prompts_failed("network down")
        assert c.state is SessionState.IDLE
        assert c.notice == "network down"
        c.start()
        assert c.state is SessionState.LOADING

    def test_loaded_starts_clock_and_zeroes_counters(self, clock):
        c = SessionController(clock=clock)
        c.start()
        clock.now = 42_000
        c.prompts_loaded(PROMPTS)
        assert c.state is SessionState.ACTIVE
        assert c.stats == SessionStats(correct_chars=0, total_chars=0, started_at_ms=42_000)
        assert c.current_prompt() == PROMPTS[0]
        assert c.keystrokes.expected_answer == "cat"


# ---------------------------------------------------------------------------
# Active session
# ---------------------------------------------------------------------------

class TestActive:
    def test_counters_accumulate(self, active):
        active.handle_input("c")
        active.handle_input("cx")
        assert active.stats.total_chars == 2
        assert active.stats.correct_chars == 1

    def test_solved_waits_for_advance(self, active):
        type_answer(active, "cat")
        assert active.awaiting_advance is True
        assert active.handle_input("cat!") is None
        assert active.stats.total_chars == 3
        active.advance()
        assert active.index == 1
        assert active.awaiting_advance is False
        assert active.keystrokes.input_so_far == ""

    def test_skip_reveals_answer_and_keeps_counts(self, active):
        active.handle_input("c")
        answer = active.skip()
        assert answer == "cat"
        assert active.index == 1
        assert active.stats.total_chars == 1
        assert active.stats.correct_chars == 1

    def test_advance_requires_solved_prompt(self, active):
        active.handle_input("c")
        with pytest.raises(SessionStateError):
            active.advance()
        assert active.index == 0

    def test_skip_while_waiting_to_advance_is_rejected(self, clock):
        c = SessionController(clock=clock)
        c.start()
        c.prompts_loaded(
            [
                Prompt(prompt="a", expected_answer="ab"),
                Prompt(prompt="b", expected_answer="cd"),
                Prompt(prompt="c", expected_answer="ef"),
            ]
        )
        type_answer(c, "ab")
        with pytest.raises(SessionStateError):
            c.skip()
        c.advance()
        assert c.index == 1
        assert c.current_prompt().expected_answer == "cd"

    def test_input_ignored_when_not_active(self):
        c = SessionController()
        assert c.handle_input("a") is None

    def test_live_numbers_do_not_touch_counters(self, active, clock):
        type_answer(active, "ca")
        clock.now += 5_000
        live = active.live()
        assert live.elapsed_seconds == 5
        assert live.correct_chars == 2
        assert active.stats.total_chars == 2

    def test_prompt_with_empty_answer_is_auto_completed(self, clock):
        c = SessionController(clock=clock)
        c.start()
        c.prompts_loaded([Prompt("broken", ""), Prompt("ok?", "ok")])
        assert c.index == 1
        assert c.current_prompt().expected_answer == "ok"

    def test_only_empty_answers_ends_session(self, clock):
        c = SessionController(clock=clock)
        c.start()
        c.prompts_loaded([Prompt("broken", "")])
        assert c.state is SessionState.ENDED
        assert c.summary.total_chars == 0


# ---------------------------------------------------------------------------
# Ending
# ---------------------------------------------------------------------------

class TestEnded:
    def test_full_run(self, active, clock):
        type_answer(active, "cat")
        active.advance()
        type_answer(active, "dog")
        clock.now += 30_000
        active.advance()

        assert active.state is SessionState.ENDED
        s = active.summary
        assert (s.correct_chars, s.total_chars) == (6, 6)
        assert s.elapsed_seconds == 30
        assert s.accuracy == 100.0
        assert s.wpm == pytest.approx(2.4)
        assert s.score == 60

    def test_skipping_last_prompt_ends(self, active):
        active.skip()
        active.skip()
        assert active.state is SessionState.ENDED
        assert active.summary.score == 0

    def test_clock_stops_at_end(self, active, clock):
        active.skip()
        active.skip()
        clock.now += 100_000
        assert active.live().elapsed_seconds == 1

    def test_no_commands_after_end(self, active):
        active.skip()
        active.skip()
        with pytest.raises(SessionStateError):
            active.skip()
        with pytest.raises(SessionStateError):
            active.current_prompt()
        assert active.handle_input("x") is None

    def test_acknowledge_returns_to_idle(self, active):
        active.skip()
        active.skip()
        active.acknowledge()
        assert active.state is SessionState.IDLE
        assert active.can_start is True

    def test_acknowledge_requires_ended(self, active):
        with pytest.raises(SessionStateError):
            active.acknowledge()

    def test_penalty_formula(self, clock):
        c = SessionController(formula="penalty", clock=clock)
        c.start()
        c.prompts_loaded([Prompt("q", "ab")])
        c.handle_input("x")
        c.handle_input("")
        c.handle_input("a")
        c.handle_input("ab")
        c.advance()
        assert c.summary.score == 2 * 10 - 1 * 5
