"""
Progression Engine

Per-subscriber quiz state machine:

    NoSession --start--> Active --answer x (N-1)--> Active --last answer--> NoSession

start() always replaces whatever session existed. The last answer folds the
score into the aggregate, records it in the score store and deletes the
session. Both operations run under the store's per-subscriber lock.
"""

import logging
from typing import Optional

from .schema import (
    Question, QuizSession, AnswerResult, NoActiveSession, InsufficientQuestions,
)
from .provider import QuestionProvider
from .store import SessionStore
from .scores import ScoreStore
from ..config import config

logger = logging.getLogger(__name__)


class ProgressionEngine:
    """
    Runs quizzes for many subscribers.

    Holds no session state itself; everything lives in the SessionStore.
    """

    def __init__(
        self,
        store: SessionStore,
        provider: QuestionProvider,
        scores: Optional[ScoreStore] = None,
        question_count: Optional[int] = None,
    ):
        """
        Initialize engine.

        Args:
            store: Where live sessions are kept
            provider: Source of questions for new quizzes
            scores: Optional ledger of completed quiz scores
            question_count: Questions per quiz (defaults to config, 10)
        """
        self.store = store
        self.provider = provider
        self.scores = scores
        self.question_count = question_count or config.quiz.question_count

    async def start(self, subscriber: str) -> Question:
        """
        Begin a fresh quiz, discarding any quiz already in progress.

        Returns:
            The first question

        Raises:
            InsufficientQuestions: Provider returned fewer than question_count
            StoreError: Session store failure
        """
        async with self.store.locked(subscriber):
            questions = await self.provider.get_questions(self.question_count)
            if len(questions) < self.question_count:
                logger.error(
                    f"Cannot start quiz for {subscriber}: "
                    f"{len(questions)}/{self.question_count} questions available"
                )
                raise InsufficientQuestions(self.question_count, len(questions))

            # Aggregate restarts at 0 each quiz; history lives in the score store
            session = QuizSession(
                subscriber=subscriber,
                questions=list(questions[:self.question_count]),
            )
            await self.store.set(session)

        logger.info(f"Quiz started for {subscriber} with {session.total} questions")
        return session.questions[0]

    async def submit_answer(self, subscriber: str, raw_answer: str) -> AnswerResult:
        """
        Score an answer and advance to the next question.

        Anything that is not the correct letter counts as wrong and still
        moves the quiz forward.

        Raises:
            NoActiveSession: Subscriber has no quiz in progress
            StoreError: Session store failure
        """
        async with self.store.locked(subscriber):
            session = await self.store.get(subscriber)
            if session is None or not session.is_active:
                raise NoActiveSession(subscriber)

            question = session.current_question
            correct = question.is_correct(raw_answer)
            if correct:
                session.current_score += 1
            session.current_index += 1

            if session.current_index >= session.total:
                session.completed = True
                session.aggregate_score += session.current_score
                await self.store.clear(subscriber)
                if self.scores is not None:
                    await self.scores.record_completion(subscriber, session.current_score)
                logger.info(
                    f"Quiz complete for {subscriber}: {session.current_score}/{session.total}"
                )
                return AnswerResult(
                    correct=correct,
                    done=True,
                    score=session.current_score,
                    aggregate_score=session.aggregate_score,
                    total=session.total,
                )

            await self.store.set(session)

        logger.debug(
            f"{subscriber} answered Q{question.id} "
            f"({'correct' if correct else 'wrong'}), now at {session.current_index}/{session.total}"
        )
        return AnswerResult(
            correct=correct,
            done=False,
            score=session.current_score,
            aggregate_score=session.aggregate_score,
            total=session.total,
            next_question=session.current_question,
        )

    async def get_session(self, subscriber: str) -> Optional[QuizSession]:
        """Current session for a subscriber, if any."""
        return await self.store.get(subscriber)
