"""
Command Dispatcher

Turns one inbound SMS into gateway side effects and a reply:

1. Start keyword (BTD, BTW, BTM): welcome notify, then subscribe and charge
   for keywords that carry a plan, then start a fresh quiz
2. Anything else: treated as an answer to the current question
3. Always: one final notify carrying the reply text

Outbound calls are awaited one after another, never gathered: billing must
not happen before the welcome has been acknowledged.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .gateway.base import ActionRequest, SubscriptionPlan
from .gateway.executor import DeliveryExecutor
from .quiz.engine import ProgressionEngine
from .quiz.schema import Question, AnswerResult, NoActiveSession, OPTION_LETTERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartKeyword:
    """A start keyword and what it triggers."""
    keyword: str
    welcome: str
    plan: Optional[SubscriptionPlan] = None

    @property
    def bills(self) -> bool:
        """Whether starting with this keyword subscribes and charges."""
        return self.plan is not None


START_KEYWORDS = {
    k.keyword: k for k in [
        StartKeyword(
            keyword="BTD",  # Brain Teaser Daily
            welcome="Welcome to Brain Teaser! Answer simple questions and stand a chance to win fantastic prizes.",
            plan=SubscriptionPlan.DAILY,
        ),
        StartKeyword(
            keyword="BTW",
            welcome="Welcome to Brain Teaser Weekly! Answer simple questions and stand a chance to win fantastic prizes.",
        ),
        StartKeyword(
            keyword="BTM",
            welcome="Welcome to Brain Teaser Monthly! Answer simple questions and stand a chance to win fantastic prizes.",
        ),
    ]
}


# =============================================================================
# REPLY FORMATTING
# =============================================================================

def format_question(header: str, label: str, question: Question) -> str:
    """Header line, question line, then one line per lettered option."""
    lines = [header, f"{label}: {question.text}"]
    for letter, option in zip(OPTION_LETTERS, question.options):
        lines.append(f"{letter}) {option}")
    return "\n".join(lines)


def format_start_reply(question: Question) -> str:
    return format_question("Quiz started!", "Q1", question)


def format_answer_reply(result: AnswerResult) -> str:
    if result.done:
        return (
            f"Quiz complete! Your score: {result.score}/{result.total}. "
            f"Aggregate: {result.aggregate_score}"
        )
    verdict = "Correct!" if result.correct else "Wrong!"
    if result.next_question is None:
        return verdict
    return format_question(verdict, f"Q{result.next_question.id}", result.next_question)


def match_keyword(raw_text: str) -> Optional[StartKeyword]:
    """Start keyword for a message, ignoring surrounding space and case."""
    return START_KEYWORDS.get(raw_text.strip().upper())


class CommandDispatcher:
    """
    Routes inbound messages to the quiz engine and the gateway.

    Errors from the gateway (DeliveryFailed, TerminalGatewayError) and from
    quiz start (InsufficientQuestions) propagate to the caller; in that case
    no reply is sent.
    """

    def __init__(self, engine: ProgressionEngine, executor: DeliveryExecutor):
        """
        Initialize dispatcher.

        Args:
            engine: Quiz progression engine
            executor: Reliable gateway executor for all outbound calls
        """
        self.engine = engine
        self.executor = executor

    async def handle(self, subscriber: str, raw_text: str) -> str:
        """
        Process one inbound message.

        Args:
            subscriber: Sender's MSISDN
            raw_text: Message body as received

        Returns:
            The reply text that was sent back to the subscriber
        """
        keyword = match_keyword(raw_text)

        if keyword is not None:
            logger.info(f"Start keyword {keyword.keyword} from {subscriber}")
            reply = await self._start_flow(subscriber, keyword)
        else:
            reply = await self._answer_flow(subscriber, raw_text)

        await self.executor.execute(ActionRequest.notify(subscriber, reply))
        return reply

    async def _start_flow(self, subscriber: str, keyword: StartKeyword) -> str:
        await self.executor.execute(ActionRequest.notify(subscriber, keyword.welcome))
        if keyword.bills:
            await self.executor.execute(ActionRequest.subscribe(subscriber, keyword.plan))
            await self.executor.execute(ActionRequest.charge(subscriber, keyword.plan))

        first = await self.engine.start(subscriber)
        return format_start_reply(first)

    async def _answer_flow(self, subscriber: str, raw_text: str) -> str:
        try:
            result = await self.engine.submit_answer(subscriber, raw_text.strip())
        except NoActiveSession as e:
            logger.info(f"Answer from {subscriber} with no active quiz")
            return str(e)
        return format_answer_reply(result)
