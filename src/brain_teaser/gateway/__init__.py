"""
SMS gateway access for brain-teaser

Transports perform single calls; DeliveryExecutor adds retries and
transaction ids on top.
Transports: PISI mobile (production), Mock (tests, local play)
"""

from .base import (
    GatewayTransport, GatewayResponse, GatewayError, GatewayConnectionError,
    TerminalGatewayError, DeliveryFailed, ActionKind, ActionRequest,
    DeliveryOutcome, SubscriptionPlan,
)
from .pisi import PisiGateway
from .mock import MockGateway, ok_response, failed_response, create_flaky_gateway
from .executor import DeliveryExecutor, generate_trxid, is_retryable_status

__all__ = [
    # Base classes and types
    "GatewayTransport",
    "GatewayResponse",
    "GatewayError",
    "GatewayConnectionError",
    "TerminalGatewayError",
    "DeliveryFailed",
    "ActionKind",
    "ActionRequest",
    "DeliveryOutcome",
    "SubscriptionPlan",
    # Transports
    "PisiGateway",
    "MockGateway",
    "ok_response",
    "failed_response",
    "create_flaky_gateway",
    # Executor
    "DeliveryExecutor",
    "generate_trxid",
    "is_retryable_status",
]


def get_gateway(name: str, **kwargs) -> GatewayTransport:
    """
    Factory function to get a gateway transport by name.

    Args:
        name: Transport name ('pisi', 'mock')
        **kwargs: Transport-specific options

    Returns:
        Configured GatewayTransport instance

    Raises:
        ValueError: If transport name is unknown
    """
    transports = {
        "pisi": PisiGateway,
        "mock": MockGateway,
    }

    if name not in transports:
        raise ValueError(f"Unknown gateway: {name}. Valid options: {list(transports.keys())}")

    return transports[name](**kwargs)
