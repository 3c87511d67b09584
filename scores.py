from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Callable

from errors import StorageUnavailable, ValidationError
from store import KeyValueStore

logger = logging.getLogger(__name__)

COLLECTION = "scores"
COUNTER = "counter"
SCORE_FIELDS = ("score", "wpm", "accuracy")


@dataclass(frozen=True)
class ScoreRecord:
    id: int
    owner: str
    score: float
    wpm: float
    accuracy: float
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreRecord":
        return cls(
            id=int(data["id"]),
            owner=str(data["owner"]),
            score=float(data["score"]),
            wpm=float(data["wpm"]),
            accuracy=float(data["accuracy"]),
            created_at=str(data["created_at"]),
        )


def _utcnow() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def validate_fields(values: dict[str, Any]) -> dict[str, float]:
    """Check that score, wpm and accuracy are present, numeric and finite."""
    missing = [name for name in SCORE_FIELDS if values.get(name) is None]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")

    cleaned = {}
    for name in SCORE_FIELDS:
        value = values[name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{name} must be a number")
        if not math.isfinite(value):
            raise ValidationError(f"{name} must be finite")
        cleaned[name] = float(value)

    if not 0.0 <= cleaned["accuracy"] <= 100.0:
        raise ValidationError("accuracy must be between 0 and 100")
    return cleaned


class ScoreAggregator:
    """Stores finished sessions and answers ranking queries."""

    def __init__(
        self,
        store: KeyValueStore,
        sequence: str = COLLECTION,
        clock: Callable[[], str] = _utcnow,
    ) -> None:
        self.store = store
        self.sequence = sequence
        self._clock = clock

    def allocate_id(self, sequence: str | None = None) -> int:
        name = sequence or self.sequence
        try:
            return self.store.atomic_sum((COUNTER, name), 1)
        except StorageUnavailable:
            logger.error("Could not allocate an id for %s", name)
            raise

    def submit_score(self, owner: str, score: Any, wpm: Any, accuracy: Any) -> ScoreRecord:
        fields = validate_fields({"score": score, "wpm": wpm, "accuracy": accuracy})
        record_id = self.allocate_id()
        record = ScoreRecord(id=record_id, owner=owner, created_at=self._clock(), **fields)
        # An id whose write fails is simply never used again.
        self.store.set((COLLECTION, owner, record_id), record.to_dict())
        logger.info("Stored score %d for %s (wpm=%.1f)", record_id, owner, record.wpm)
        return record

    def list_history(self, owner: str) -> list[ScoreRecord]:
        return [ScoreRecord.from_dict(value) for _, value in self.store.list((COLLECTION, owner))]

    def list_ranking(self, limit: int = 10) -> list[ScoreRecord]:
        """Top ``limit`` records across all owners by wpm, highest first.

        Full scan and in-memory sort. Equal wpm values keep storage order.
        """
        records = [ScoreRecord.from_dict(value) for _, value in self.store.list((COLLECTION,))]
        records.sort(key=lambda record: record.wpm, reverse=True)
        return records[: max(0, limit)]

    def clear_history(self, owner: str) -> int:
        """Delete the owner's records. The id counter is left alone."""
        keys = [key for key, _ in self.store.list((COLLECTION, owner))]
        removed = self.store.delete_many(keys)
        logger.info("Deleted %d scores for %s", removed, owner)
        return removed
