from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class CharStatus(str, Enum):
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class KeystrokeState:
    """Bookkeeping for the prompt currently being typed.

    A fresh state is created for every prompt and threaded through
    :func:`evaluate`, which returns the successor state. Nothing about the
    input field is remembered anywhere else.
    """

    expected_answer: str
    input_so_far: str = ""
    last_evaluated_length: int = 0
    last_correct_length: int = 0
    credited_positions: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Evaluation:
    state: KeystrokeState
    statuses: tuple[CharStatus, ...]
    total_delta: int
    correct_delta: int
    solved: bool


def new_state(expected_answer: str) -> KeystrokeState:
    return KeystrokeState(expected_answer=expected_answer)


def classify(expected_answer: str, typed_text: str) -> tuple[CharStatus, ...]:
    statuses = []
    for i, ch in enumerate(expected_answer):
        if i >= len(typed_text):
            statuses.append(CharStatus.PENDING)
        elif typed_text[i] == ch:
            statuses.append(CharStatus.CORRECT)
        else:
            statuses.append(CharStatus.INCORRECT)
    return tuple(statuses)


def evaluate(state: KeystrokeState, value: str) -> Evaluation:
    """Score the complete current field content against the expected answer.

    Only the final value of an event is compared, so a paste that grows the
    field by several characters is charged and credited once. Input beyond
    the answer length is dropped before scoring.
    """
    answer = state.expected_answer
    if not answer:
        return Evaluation(state=state, statuses=(), total_delta=0, correct_delta=0, solved=True)

    value = value[: len(answer)]
    length = len(value)

    total_delta = 1 if length > state.last_evaluated_length else 0
    correct_delta = 0
    last_correct = min(state.last_correct_length, length)
    credited = state.credited_positions

    if total_delta and length > 0:
        pos = length - 1
        if value[pos] == answer[pos]:
            if length > last_correct and pos not in credited:
                correct_delta = 1
                credited = credited | {pos}
                last_correct = length
        else:
            last_correct = min(last_correct, pos)

    next_state = replace(
        state,
        input_so_far=value,
        last_evaluated_length=length,
        last_correct_length=last_correct,
        credited_positions=credited,
    )
    return Evaluation(
        state=next_state,
        statuses=classify(answer, value),
        total_delta=total_delta,
        correct_delta=correct_delta,
        solved=value == answer,
    )
