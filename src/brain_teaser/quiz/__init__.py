"""
Quiz session engine

Questions, per-subscriber sessions and the progression state machine.
"""

from .schema import (
    Question, QuizSession, AnswerResult, QuizError, NoActiveSession,
    InsufficientQuestions, StoreError, NO_ACTIVE_SESSION_MESSAGE,
)
from .provider import QuestionProvider, QuestionBankProvider
from .store import SessionStore, InMemorySessionStore, RedisSessionStore, get_session_store
from .scores import ScoreStore, InMemoryScoreStore, ScoreEntry
from .engine import ProgressionEngine

__all__ = [
    "Question",
    "QuizSession",
    "AnswerResult",
    "QuizError",
    "NoActiveSession",
    "InsufficientQuestions",
    "StoreError",
    "NO_ACTIVE_SESSION_MESSAGE",
    "QuestionProvider",
    "QuestionBankProvider",
    "SessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
    "get_session_store",
    "ScoreStore",
    "InMemoryScoreStore",
    "ScoreEntry",
    "ProgressionEngine",
]
