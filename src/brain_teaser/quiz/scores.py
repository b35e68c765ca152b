"""
Score store

Running totals of completed quizzes per subscriber. The engine records a
completion exactly once, when the last answer of a session lands.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ScoreEntry:
    """One subscriber's standing."""
    subscriber: str
    total: int = 0
    quizzes_completed: int = 0

    def to_dict(self) -> dict:
        return {
            "subscriber": self.subscriber,
            "total": self.total,
            "quizzes_completed": self.quizzes_completed,
        }


class ScoreStore(ABC):
    """Abstract store of per-subscriber totals."""

    @abstractmethod
    async def record_completion(self, subscriber: str, score: int) -> int:
        """Add a finished quiz's score; returns the new total."""
        pass

    @abstractmethod
    async def get_total(self, subscriber: str) -> int:
        """Total for a subscriber (0 if never completed a quiz)."""
        pass

    @abstractmethod
    async def leaderboard(self, limit: int = 10) -> list[ScoreEntry]:
        """Top subscribers by total, highest first."""
        pass


class InMemoryScoreStore(ScoreStore):
    """Totals in a process-local dict."""

    def __init__(self):
        self._entries: dict[str, ScoreEntry] = {}

    async def record_completion(self, subscriber: str, score: int) -> int:
        if score < 0:
            raise ValueError(f"Score cannot be negative: {score}")
        entry = self._entries.setdefault(subscriber, ScoreEntry(subscriber=subscriber))
        entry.total += score
        entry.quizzes_completed += 1
        return entry.total

    async def get_total(self, subscriber: str) -> int:
        entry = self._entries.get(subscriber)
        return entry.total if entry else 0

    async def leaderboard(self, limit: int = 10) -> list[ScoreEntry]:
        ranked = sorted(
            self._entries.values(),
            key=lambda e: (-e.total, -e.quizzes_completed, e.subscriber),
        )
        return [ScoreEntry(**vars(e)) for e in ranked[:max(0, limit)]]
