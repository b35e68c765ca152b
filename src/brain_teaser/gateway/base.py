"""
Base protocol for SMS gateway transports

Defines the outbound action types and the interface every transport implements.
Transports perform exactly one HTTP exchange; retrying is the executor's job.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""
    pass


class GatewayConnectionError(GatewayError):
    """The request never produced an HTTP status (DNS, connect, timeout)."""
    pass


class TerminalGatewayError(GatewayError):
    """Gateway rejected the request in a way retrying cannot fix."""

    def __init__(self, message: str, status_code: Optional[int] = None, attempts: int = 1):
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class DeliveryFailed(GatewayError):
    """Retries exhausted without a successful response."""

    def __init__(self, attempts: int, last_message: str):
        plural = "attempt" if attempts == 1 else "attempts"
        super().__init__(f"Delivery failed after {attempts} {plural}: {last_message}")
        self.attempts = attempts
        self.last_message = last_message


class ActionKind(str, Enum):
    """Outbound operations supported by the gateway."""
    NOTIFY = "notify"
    SUBSCRIBE = "subscribe"
    CHARGE = "charge"
    REGISTER_LISTENER = "register_listener"
    DELETE_LISTENER = "delete_listener"


class SubscriptionPlan(str, Enum):
    """Billing plans the gateway understands."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


@dataclass
class ActionRequest:
    """One outbound gateway call."""
    kind: ActionKind
    subscriber: Optional[str] = None
    plan: Optional[SubscriptionPlan] = None
    message: Optional[str] = None
    callback_url: Optional[str] = None
    trxid: Optional[str] = None

    @classmethod
    def notify(cls, subscriber: str, message: str) -> "ActionRequest":
        return cls(kind=ActionKind.NOTIFY, subscriber=subscriber, message=message)

    @classmethod
    def subscribe(cls, subscriber: str, plan: SubscriptionPlan) -> "ActionRequest":
        return cls(kind=ActionKind.SUBSCRIBE, subscriber=subscriber, plan=plan)

    @classmethod
    def charge(cls, subscriber: str, plan: SubscriptionPlan) -> "ActionRequest":
        return cls(kind=ActionKind.CHARGE, subscriber=subscriber, plan=plan)

    @classmethod
    def register_listener(cls, callback_url: str) -> "ActionRequest":
        return cls(kind=ActionKind.REGISTER_LISTENER, callback_url=callback_url)

    @classmethod
    def delete_listener(cls, callback_url: str, trxid: str) -> "ActionRequest":
        # The gateway identifies the listener by the trxid it was registered with
        return cls(kind=ActionKind.DELETE_LISTENER, callback_url=callback_url, trxid=trxid)


@dataclass
class GatewayResponse:
    """Raw result of a single HTTP exchange."""
    status_code: int
    payload: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        """A 2xx alone is not enough: the body must say success."""
        return 200 <= self.status_code < 300 and self.payload.get("success") is True

    @property
    def message(self) -> str:
        """Best human-readable reason the gateway gave."""
        return str(
            self.payload.get("message")
            or self.payload.get("error")
            or f"HTTP {self.status_code}"
        )


@dataclass
class DeliveryOutcome:
    """Result of an executed action."""
    success: bool
    payload: dict
    attempts: int
    trxid: str
    kind: ActionKind

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "payload": self.payload,
            "attempts": self.attempts,
            "trxid": self.trxid,
            "kind": self.kind.value,
        }


class GatewayTransport(ABC):
    """
    Abstract base class for gateway transports.

    Implementations translate an ActionRequest into one HTTP call and return
    whatever status the gateway answered with. They raise
    GatewayConnectionError only when no status was received at all.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport name (e.g., 'pisi', 'mock')."""
        pass

    @abstractmethod
    async def send(self, action: ActionRequest) -> GatewayResponse:
        """
        Perform a single gateway call.

        Args:
            action: The request to send; its trxid is already set

        Returns:
            GatewayResponse with status code and decoded body

        Raises:
            GatewayConnectionError: On network failures and timeouts
        """
        pass

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
