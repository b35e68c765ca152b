"""
Mock gateway for testing

Returns scripted responses without making network calls and records
every request it sees.
"""

import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from .base import (
    GatewayTransport, GatewayResponse, GatewayConnectionError, ActionRequest, ActionKind,
)


ScriptStep = Union[GatewayResponse, Exception]


def ok_response(**extra) -> GatewayResponse:
    """A 200 carrying an explicit success flag."""
    return GatewayResponse(status_code=200, payload={"success": True, **extra})


def failed_response(status_code: int = 500, message: str = "Internal error") -> GatewayResponse:
    """A non-success response with the given status."""
    return GatewayResponse(status_code=status_code, payload={"success": False, "message": message})


@dataclass
class MockGateway(GatewayTransport):
    """
    Mock gateway transport.

    Consumes `script` one step per call; a step is either a GatewayResponse
    to return or an exception to raise. Once the script runs out every call
    gets `default_response` (a plain success unless overridden).
    """

    _name: str = "mock"
    script: List[ScriptStep] = field(default_factory=list)
    default_response: Optional[GatewayResponse] = None
    response_generator: Optional[Callable[[ActionRequest], ScriptStep]] = None
    fail_rate: float = 0.0  # Probability of a simulated connection error
    calls: List[ActionRequest] = field(default_factory=list)
    closed: bool = False

    @property
    def name(self) -> str:
        return self._name

    async def send(self, action: ActionRequest) -> GatewayResponse:
        """Return the next scripted response."""
        # Snapshot so later mutation by the caller doesn't rewrite history
        self.calls.append(ActionRequest(**vars(action)))

        if self.fail_rate > 0 and random.random() < self.fail_rate:
            raise GatewayConnectionError("Simulated mock gateway failure")

        if self.script:
            step = self.script.pop(0)
        elif self.response_generator is not None:
            step = self.response_generator(action)
        else:
            step = self.default_response or ok_response()

        if isinstance(step, Exception):
            raise step
        return step

    async def aclose(self) -> None:
        self.closed = True

    def calls_of(self, kind: ActionKind) -> List[ActionRequest]:
        """All recorded calls of one kind, in order."""
        return [c for c in self.calls if c.kind == kind]

    @property
    def kinds(self) -> List[ActionKind]:
        """Order in which action kinds were sent."""
        return [c.kind for c in self.calls]

    def messages_to(self, subscriber: str) -> List[str]:
        """Text of every notify sent to a subscriber."""
        return [
            c.message for c in self.calls
            if c.kind == ActionKind.NOTIFY and c.subscriber == subscriber
        ]


def create_flaky_gateway(failures: int, status_code: int = 503) -> MockGateway:
    """Gateway that fails `failures` times with a retryable status, then succeeds."""
    return MockGateway(script=[failed_response(status_code) for _ in range(failures)])
