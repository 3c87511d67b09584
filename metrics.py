from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

CHARS_PER_WORD = 5


@dataclass(frozen=True)
class Summary:
    correct_chars: int
    total_chars: int
    elapsed_seconds: int
    accuracy: float
    wpm: float
    score: int


def weighted_score(correct_chars: int, total_chars: int, accuracy: float) -> int:
    return math.floor(correct_chars * 10 * accuracy / 100)


def penalty_score(correct_chars: int, total_chars: int, accuracy: float) -> int:
    return correct_chars * 10 - (total_chars - correct_chars) * 5


SCORE_FORMULAS: dict[str, Callable[[int, int, float], int]] = {
    "weighted": weighted_score,
    "penalty": penalty_score,
}


def score_formula(name: str) -> Callable[[int, int, float], int]:
    try:
        return SCORE_FORMULAS[name]
    except KeyError:
        raise ValueError(f"unknown score formula: {name!r}") from None


def elapsed_seconds(started_at_ms: int, ended_at_ms: int) -> int:
    return max(1, (ended_at_ms - started_at_ms) // 1000)


def compute_metrics(
    correct_chars: int,
    total_chars: int,
    elapsed_s: int,
    formula: str = "weighted",
) -> Summary:
    elapsed_s = max(1, elapsed_s)
    accuracy = 100.0 * correct_chars / total_chars if total_chars > 0 else 0.0
    wpm = (correct_chars / CHARS_PER_WORD) / (elapsed_s / 60.0)
    score = score_formula(formula)(correct_chars, total_chars, accuracy)

    return Summary(
        correct_chars=correct_chars,
        total_chars=total_chars,
        elapsed_seconds=elapsed_s,
        accuracy=accuracy,
        wpm=wpm,
        score=score,
    )


def summarize(
    correct_chars: int,
    total_chars: int,
    started_at_ms: int,
    ended_at_ms: int,
    formula: str = "weighted",
) -> Summary:
    """Final numbers for a finished session, computed from the counters alone."""
    return compute_metrics(
        correct_chars,
        total_chars,
        elapsed_seconds(started_at_ms, ended_at_ms),
        formula=formula,
    )
