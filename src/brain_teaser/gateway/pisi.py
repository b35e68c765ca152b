"""
PISI mobile gateway transport

Talks to the PISI REST API for outbound SMS, subscriptions, billing and
inbound listener registration.
"""

import logging
from typing import Optional

import httpx

from .base import (
    GatewayTransport, GatewayResponse, GatewayConnectionError, GatewayError,
    ActionRequest, ActionKind,
)
from ..config import GatewayConfig, config

logger = logging.getLogger(__name__)


ENDPOINTS = {
    ActionKind.NOTIFY: "/v1/sms/outbound/send",
    ActionKind.SUBSCRIBE: "/v1/subscription/outbound/create",
    ActionKind.CHARGE: "/v1/charge/outbound/create",
    ActionKind.REGISTER_LISTENER: "/v1/sms/inbound/subscribe",
    ActionKind.DELETE_LISTENER: "/v1/sms/inbound/delete",
}


class PisiGateway(GatewayTransport):
    """
    PISI mobile SMS gateway.

    Credentials come from GatewayConfig, which reads:
    1. PISI_AUTHORIZATION_TOKEN - bearer token attached to every call
    2. VASPID / PISISID / PISIPID - account, service and product identifiers
    """

    def __init__(
        self,
        settings: Optional[GatewayConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize PISI transport.

        Args:
            settings: Gateway settings (defaults to global config)
            client: Pre-built httpx client, mostly for tests
        """
        self.settings = settings or config.gateway
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    def build_headers(self) -> dict:
        """Headers every PISI call carries."""
        # Built per request; the token can rotate while the client lives
        return {
            "Content-Type": "application/json",
            "vaspid": self.settings.vasp_id,
            "pisi-authorization-token": f"Bearer {self.settings.auth_token}",
        }

    @property
    def name(self) -> str:
        return "pisi"

    def build_payload(self, action: ActionRequest) -> dict:
        """Translate an action into the PISI request body."""
        kind = action.kind

        if kind == ActionKind.NOTIFY:
            return {
                "pisisid": self.settings.service_id,
                "msisdn": action.subscriber,
                "to": action.subscriber,
                "message": action.message,
                "trxid": action.trxid,
            }

        if kind in (ActionKind.SUBSCRIBE, ActionKind.CHARGE):
            if action.plan is None:
                raise GatewayError(f"{kind.value} requires a subscription plan")
            return {
                "pisipid": self.settings.product_id,
                "msisdn": action.subscriber,
                "channel": "SMS",
                "subscriptionPlan": action.plan.value,
                "trxid": action.trxid,
            }

        if kind in (ActionKind.REGISTER_LISTENER, ActionKind.DELETE_LISTENER):
            return {
                "pisipid": self.settings.product_id,
                "notifyUrl": action.callback_url,
                "method": "POST",
                "type": "MO",  # MO or DLR
                "trxid": action.trxid,
            }

        raise GatewayError(f"Unsupported action kind: {kind}")

    async def send(self, action: ActionRequest) -> GatewayResponse:
        """Send one action to PISI."""
        client = self._get_client()
        path = ENDPOINTS[action.kind]
        payload = self.build_payload(action)

        try:
            response = await client.post(
                path,
                json=payload,
                headers=self.build_headers(),
                timeout=self.settings.timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise GatewayConnectionError(f"PISI {action.kind.value} request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"data": body}

        logger.debug(f"PISI {action.kind.value} trxid={action.trxid} -> HTTP {response.status_code}")
        return GatewayResponse(status_code=response.status_code, payload=body)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.settings.base_url!r})"
