"""
Delivery Executor - reliable outbound gateway calls

Wraps a GatewayTransport with retry, exponential backoff with jitter and
transaction-id correlation. Every outbound action (notify, subscribe, charge,
listener management) goes through here.

Retry state machine per execute() call:
    attempt(n) -> success                      (return outcome)
    attempt(n) -> retryable -> sleep -> n + 1
    attempt(n) -> terminal                     (raise TerminalGatewayError)
    attempt(max) -> retryable                  (raise DeliveryFailed)
"""

import asyncio
import logging
import random
import secrets
import time
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from .base import (
    GatewayTransport, GatewayResponse, GatewayConnectionError,
    TerminalGatewayError, DeliveryFailed, ActionRequest, DeliveryOutcome,
)
from ..config import RetryConfig, config

logger = logging.getLogger(__name__)

TRXID_PREFIX = "brain-teaser_"
TRXID_ALPHABET = "1234567890abcdefghijklmnopqrstuvwxyz"
TRXID_SUFFIX_LENGTH = 5

RETRYABLE_STATUSES = {408, 429}

Sleeper = Callable[[float], Awaitable[None]]


def generate_trxid(prefix: str = TRXID_PREFIX) -> str:
    """
    Build a gateway transaction id.

    Format: prefix + 5 random [0-9a-z] characters + epoch milliseconds,
    e.g. 'brain-teaser_k3x9a1718035200123'.
    """
    suffix = "".join(secrets.choice(TRXID_ALPHABET) for _ in range(TRXID_SUFFIX_LENGTH))
    return f"{prefix}{suffix}{int(time.time() * 1000)}"


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Missing status, 5xx, 408 and 429 are worth another try."""
    if status_code is None:
        return True
    return status_code >= 500 or status_code in RETRYABLE_STATUSES


class DeliveryExecutor:
    """
    Executes gateway actions with retries.

    The transaction id is fixed for the whole execute() call so that a
    retried request carries the same idempotency token as the original.
    """

    def __init__(
        self,
        transport: GatewayTransport,
        retry: Optional[RetryConfig] = None,
        sleep: Optional[Sleeper] = None,
    ):
        """
        Initialize executor.

        Args:
            transport: Gateway transport that performs single HTTP calls
            retry: Retry policy (defaults to global config)
            sleep: Awaitable delay used between attempts (asyncio.sleep by default)
        """
        self.transport = transport
        self.retry = retry or config.retry
        self._sleep = sleep or asyncio.sleep

    def compute_delay(self, attempt: int) -> float:
        """
        Backoff before the attempt after `attempt`, in seconds.

        min(max_delay, base_delay * 2^(attempt-1)) + jitter in [0, jitter_ms).
        """
        exp = min(self.retry.max_delay_ms, self.retry.base_delay_ms * 2 ** (attempt - 1))
        jitter = random.random() * self.retry.jitter_ms if self.retry.jitter_ms > 0 else 0.0
        return (exp + jitter) / 1000.0

    async def execute(self, action: ActionRequest) -> DeliveryOutcome:
        """
        Perform an action against the gateway, retrying transient failures.

        Args:
            action: What to send; a trxid is generated when it has none

        Returns:
            DeliveryOutcome with the gateway payload and attempt count

        Raises:
            TerminalGatewayError: On a non-retryable 4xx (no retry)
            DeliveryFailed: When every attempt failed with a retryable error
        """
        if not action.trxid:
            action = replace(action, trxid=generate_trxid())

        max_attempts = max(1, self.retry.max_attempts)
        last_message = "no attempt made"

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self.transport.send(action)
            except GatewayConnectionError as e:
                last_message = str(e)
                status = None
            else:
                if response.succeeded:
                    if attempt > 1:
                        logger.info(
                            f"{action.kind.value} trxid={action.trxid} succeeded on attempt {attempt}"
                        )
                    return DeliveryOutcome(
                        success=True,
                        payload=response.payload,
                        attempts=attempt,
                        trxid=action.trxid,
                        kind=action.kind,
                    )
                last_message = response.message
                status = response.status_code
                if not self._is_retryable(response):
                    logger.error(
                        f"{action.kind.value} trxid={action.trxid} rejected with HTTP {status}: {last_message}"
                    )
                    raise TerminalGatewayError(
                        f"{action.kind.value} rejected by gateway (HTTP {status}): {last_message}",
                        status_code=status,
                        attempts=attempt,
                    )

            if attempt < max_attempts:
                delay = self.compute_delay(attempt)
                logger.warning(
                    f"{action.kind.value} trxid={action.trxid} attempt {attempt}/{max_attempts} "
                    f"failed ({status or 'no status'}: {last_message}); retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

        logger.error(
            f"{action.kind.value} trxid={action.trxid} gave up after {max_attempts} attempts: {last_message}"
        )
        raise DeliveryFailed(attempts=max_attempts, last_message=last_message)

    @staticmethod
    def _is_retryable(response: GatewayResponse) -> bool:
        # A 2xx without success=true is still a failure, and a transient one
        if 200 <= response.status_code < 300:
            return True
        return is_retryable_status(response.status_code)
