"""
Question providers

Supply the fixed-size set of questions a new quiz is built from.
"""

import json
import logging
import random
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Union

from .schema import Question
from .bank import SAMPLE_QUESTIONS

logger = logging.getLogger(__name__)


class QuestionProvider(ABC):
    """
    Abstract source of quiz questions.

    get_questions() should return exactly `count` distinct questions, each
    with four options. The engine checks the count; it trusts the rest.
    """

    @abstractmethod
    async def get_questions(self, count: int) -> list[Question]:
        """Return up to `count` questions for a new quiz."""
        pass


class QuestionBankProvider(QuestionProvider):
    """In-memory question bank that draws a random sample per quiz."""

    def __init__(
        self,
        questions: Iterable[Question],
        shuffle: bool = True,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize provider.

        Args:
            questions: The bank; duplicate ids keep their first occurrence
            shuffle: Draw a random sample (True) or take the first `count` in order
            rng: Random source, injectable for deterministic tests
        """
        seen = set()
        self.questions: list[Question] = []
        for q in questions:
            if q.id in seen:
                continue
            seen.add(q.id)
            self.questions.append(q)
        self.shuffle = shuffle
        self._rng = rng or random.Random()

    async def get_questions(self, count: int) -> list[Question]:
        if not self.shuffle:
            return list(self.questions[:count])
        return self._rng.sample(self.questions, min(count, len(self.questions)))

    @classmethod
    def from_records(cls, records: Iterable[dict], **kwargs) -> "QuestionBankProvider":
        """
        Build from question-bank rows.

        Accepts either the table shape (question, optionA..optionD, answer)
        or the Question.to_dict() shape.
        """
        questions = []
        for record in records:
            if "question" in record:
                questions.append(Question.from_record(record))
            else:
                questions.append(Question.from_dict(record))
        return cls(questions, **kwargs)

    @classmethod
    def from_json_file(cls, path: Union[str, Path], **kwargs) -> "QuestionBankProvider":
        """Load a JSON array of question records."""
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        provider = cls.from_records(records, **kwargs)
        logger.info(f"Loaded {len(provider.questions)} questions from {path}")
        return provider

    @classmethod
    def sample(cls, **kwargs) -> "QuestionBankProvider":
        """Provider over the built-in sample bank."""
        return cls(SAMPLE_QUESTIONS, **kwargs)
