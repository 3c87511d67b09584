from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from errors import SessionStateError
from evaluator import Evaluation, KeystrokeState, evaluate, new_state
from metrics import Summary, compute_metrics, elapsed_seconds, summarize

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    ENDED = "ended"


_TRANSITIONS = {
    SessionState.IDLE: {SessionState.LOADING},
    SessionState.LOADING: {SessionState.ACTIVE, SessionState.IDLE},
    SessionState.ACTIVE: {SessionState.ENDED},
    SessionState.ENDED: {SessionState.IDLE},
}


@dataclass(frozen=True)
class Prompt:
    prompt: str
    expected_answer: str


@dataclass
class SessionStats:
    correct_chars: int = 0
    total_chars: int = 0
    started_at_ms: int = 0


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionController:
    """Drives one typing session over a prompt set.

    Idle -> Loading -> Active -> Ended -> Idle. Loading falls back to Idle
    when the prompt set is empty or could not be fetched.
    """

    def __init__(self, formula: str = "weighted", clock: Callable[[], int] = now_ms) -> None:
        self._formula = formula
        self._clock = clock
        self._state = SessionState.IDLE
        self._prompts: list[Prompt] = []
        self._index = 0
        self._keystrokes: KeystrokeState | None = None
        self._awaiting_advance = False
        self._ended_at_ms: int | None = None
        self._summary: Summary | None = None
        self.stats = SessionStats()
        self.notice = ""

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def index(self) -> int:
        return self._index

    @property
    def total_prompts(self) -> int:
        return len(self._prompts)

    @property
    def keystrokes(self) -> KeystrokeState | None:
        return self._keystrokes

    @property
    def summary(self) -> Summary | None:
        return self._summary

    @property
    def can_start(self) -> bool:
        return self._state is SessionState.IDLE

    def current_prompt(self) -> Prompt:
        self._require(SessionState.ACTIVE)
        return self._prompts[self._index]

    def start(self) -> None:
        self._move(SessionState.LOADING)
        self.notice = ""

    def prompts_loaded(self, prompts: Sequence[Prompt]) -> None:
        self._require(SessionState.LOADING)
        if not prompts:
            self.notice = "No questions could be loaded."
            logger.warning("prompt source returned an empty set")
            self._move(SessionState.IDLE)
            return

        self._prompts = list(prompts)
        self._index = 0
        self._summary = None
        self._ended_at_ms = None
        self.stats = SessionStats(started_at_ms=self._clock())
        self._move(SessionState.ACTIVE)
        self._load_prompt()

    def prompts_failed(self, message: str) -> None:
        self._require(SessionState.LOADING)
        self.notice = message
        logger.warning("could not load prompts: %s", message)
        self._move(SessionState.IDLE)

    def handle_input(self, value: str) -> Evaluation | None:
        """Feed the full input field content. Returns None when input is not accepted."""
        if self._state is not SessionState.ACTIVE or self._keystrokes is None:
            return None
        if self._awaiting_advance:
            return None

        result = evaluate(self._keystrokes, value)
        self._keystrokes = result.state
        self.stats.total_chars += result.total_delta
        self.stats.correct_chars += result.correct_delta
        if result.solved:
            self._awaiting_advance = True
        return result

    @property
    def awaiting_advance(self) -> bool:
        return self._awaiting_advance

    def advance(self) -> None:
        """Move past a solved prompt."""
        self._require(SessionState.ACTIVE)
        if not self._awaiting_advance:
            raise SessionStateError("current prompt is not solved yet")
        self._index += 1
        self._load_prompt()

    def skip(self) -> str:
        """Give up on the current prompt and return its answer for display."""
        self._require(SessionState.ACTIVE)
        if self._awaiting_advance:
            raise SessionStateError("current prompt is already solved")
        answer = self._prompts[self._index].expected_answer
        self._index += 1
        self._load_prompt()
        return answer

    def live(self) -> Summary:
        """Numbers for the ticking display. Never touches the stored counters."""
        end = self._ended_at_ms if self._ended_at_ms is not None else self._clock()
        return compute_metrics(
            self.stats.correct_chars,
            self.stats.total_chars,
            elapsed_seconds(self.stats.started_at_ms, end),
            formula=self._formula,
        )

    def acknowledge(self) -> None:
        self._move(SessionState.IDLE)
        self._keystrokes = None

    def _load_prompt(self) -> None:
        self._awaiting_advance = False
        # Prompts with no answer are auto-completed.
        while self._index < len(self._prompts) and not self._prompts[self._index].expected_answer:
            logger.info("skipping prompt %d with empty answer", self._index)
            self._index += 1

        if self._index >= len(self._prompts):
            self._end()
            return
        self._keystrokes = new_state(self._prompts[self._index].expected_answer)

    def _end(self) -> None:
        self._keystrokes = None
        self._ended_at_ms = self._clock()
        self._summary = summarize(
            self.stats.correct_chars,
            self.stats.total_chars,
            self.stats.started_at_ms,
            self._ended_at_ms,
            formula=self._formula,
        )
        self._move(SessionState.ENDED)
        logger.info(
            "session ended: score=%s wpm=%.1f accuracy=%.2f",
            self._summary.score,
            self._summary.wpm,
            self._summary.accuracy,
        )

    def _require(self, state: SessionState) -> None:
        if self._state is not state:
            raise SessionStateError(f"expected {state.value} session, not {self._state.value}")

    def _move(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise SessionStateError(f"cannot go from {self._state.value} to {target.value}")
        self._state = target
