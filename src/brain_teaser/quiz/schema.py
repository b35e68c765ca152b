"""
Quiz schema and data structures

Questions, live sessions, answer results and the quiz error types.
"""

from dataclasses import dataclass
from typing import Any, Optional
import json


OPTION_LETTERS = ("A", "B", "C", "D")

NO_ACTIVE_SESSION_MESSAGE = "No active quiz session. Send START to begin."


class QuizError(Exception):
    """Base exception for quiz errors."""
    pass


class NoActiveSession(QuizError):
    """Answer received for a subscriber with no quiz in progress."""

    def __init__(self, subscriber: str, message: str = NO_ACTIVE_SESSION_MESSAGE):
        super().__init__(message)
        self.subscriber = subscriber


class InsufficientQuestions(QuizError):
    """Question provider returned fewer questions than a quiz needs."""

    def __init__(self, requested: int, received: int):
        super().__init__(f"Quiz needs {requested} questions, provider returned {received}")
        self.requested = requested
        self.received = received


class StoreError(QuizError):
    """Session store backend failed."""
    pass


def normalize_answer(value: Any) -> str:
    """Trim and case-fold an answer token for comparison."""
    return str(value).strip().casefold()


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question."""
    id: str
    text: str
    options: tuple[str, ...]
    correct_answer: str  # option letter, e.g. "B"

    def __post_init__(self):
        # Lists from JSON are frozen into tuples so the question stays immutable
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "options", tuple(self.options))

    def is_correct(self, answer: str) -> bool:
        """Case- and whitespace-insensitive comparison with the answer token."""
        return normalize_answer(answer) == normalize_answer(self.correct_answer)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=data["id"],
            text=data["text"],
            options=tuple(data["options"]),
            correct_answer=data["correct_answer"],
        )

    @classmethod
    def from_record(cls, record: dict) -> "Question":
        """Create from a question-bank row (question, optionA..optionD, answer)."""
        return cls(
            id=record["id"],
            text=record["question"],
            options=tuple(record[f"option{letter}"] for letter in OPTION_LETTERS),
            correct_answer=record["answer"],
        )


@dataclass
class QuizSession:
    """
    Live state of one subscriber's quiz.

    Exists only between start and completion; the session store owns it.
    """
    subscriber: str
    questions: list[Question]
    current_index: int = 0
    current_score: int = 0
    aggregate_score: int = 0
    completed: bool = False

    @property
    def total(self) -> int:
        """Number of questions in this quiz."""
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        """Question awaiting an answer, or None once every one is answered."""
        if self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    @property
    def is_active(self) -> bool:
        return not self.completed and self.current_index < len(self.questions)

    def to_dict(self) -> dict:
        return {
            "subscriber": self.subscriber,
            "questions": [q.to_dict() for q in self.questions],
            "current_index": self.current_index,
            "current_score": self.current_score,
            "aggregate_score": self.aggregate_score,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizSession":
        return cls(
            subscriber=data["subscriber"],
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            current_index=data.get("current_index", 0),
            current_score=data.get("current_score", 0),
            aggregate_score=data.get("aggregate_score", 0),
            completed=data.get("completed", False),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "QuizSession":
        return cls.from_dict(json.loads(raw))


@dataclass
class AnswerResult:
    """Outcome of submitting one answer."""
    correct: bool
    done: bool
    score: int
    aggregate_score: int
    total: int
    next_question: Optional[Question] = None

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "done": self.done,
            "score": self.score,
            "aggregate_score": self.aggregate_score,
            "total": self.total,
            "next_question": self.next_question.to_dict() if self.next_question else None,
        }
