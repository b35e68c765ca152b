"""
brain-teaser: SMS-driven quiz service.

Tracks each subscriber's quiz, scores answers and delivers welcome,
subscription, billing and question messages through an unreliable SMS
gateway with retries and transaction-id correlation.
"""

__version__ = "0.1.0"

from .config import config, Config
from .gateway import (
    ActionKind,
    ActionRequest,
    DeliveryExecutor,
    DeliveryFailed,
    DeliveryOutcome,
    GatewayError,
    MockGateway,
    PisiGateway,
    SubscriptionPlan,
    TerminalGatewayError,
)
from .quiz import (
    InMemorySessionStore,
    InsufficientQuestions,
    NoActiveSession,
    ProgressionEngine,
    Question,
    QuestionBankProvider,
    QuizSession,
)
from .dispatcher import CommandDispatcher, START_KEYWORDS

__all__ = [
    # Config
    "config",
    "Config",
    # Delivery
    "ActionKind",
    "ActionRequest",
    "DeliveryExecutor",
    "DeliveryFailed",
    "DeliveryOutcome",
    "GatewayError",
    "MockGateway",
    "PisiGateway",
    "SubscriptionPlan",
    "TerminalGatewayError",
    # Quiz
    "InMemorySessionStore",
    "InsufficientQuestions",
    "NoActiveSession",
    "ProgressionEngine",
    "Question",
    "QuestionBankProvider",
    "QuizSession",
    # Dispatch
    "CommandDispatcher",
    "START_KEYWORDS",
]
