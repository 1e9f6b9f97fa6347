"""Async client for the gas-sponsoring relay.

The relay submits SNIP-9 outside executions from its own account, so the user
neither pays gas nor appears as the transaction sender. Submissions are never
retried here: replaying a signed payload could burn the nonce window, so a
caller that wants another attempt must sign a fresh execution.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import httpx
from pydantic import ValidationError as PydanticValidationError

from .base import Provider
from ..config import settings
from ..core.execution.models import OutsideExecution, RelayHealthStatus, RelayPayload, RelayResult
from ..core.recovery.errors import (
    InvalidRelayUrlError,
    PayloadTooLargeError,
    RelayError,
    RelayResponseError,
    RelayWindowError,
)

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def _is_private_host(hostname: str) -> bool:
    if hostname == "localhost":
        return False
    try:
        address = ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_unspecified


def validate_relay_url(relay_url: str) -> str:
    """Return the normalized relay base URL or raise ``InvalidRelayUrlError``.

    HTTPS is required except for ``http://localhost``; private and loopback
    IP literals are rejected.
    """
    try:
        parsed = urlsplit(relay_url)
        hostname = parsed.hostname or ""
    except ValueError as exc:
        raise InvalidRelayUrlError(f"Invalid relay URL: {relay_url}") from exc

    if not parsed.scheme or not hostname:
        raise InvalidRelayUrlError(f"Invalid relay URL: {relay_url}")

    if parsed.scheme == "http" and hostname != "localhost":
        raise InvalidRelayUrlError(
            "Relay URL must use HTTPS. HTTP is only allowed for localhost during development."
        )
    if parsed.scheme not in ("https", "http"):
        raise InvalidRelayUrlError(f"Relay URL must use HTTPS. Got: {parsed.scheme}:")

    if _is_private_host(hostname):
        raise InvalidRelayUrlError(
            f"Relay URL points to a private/internal IP ({hostname}). This is not allowed."
        )

    return f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}"


class RelayClient(Provider):
    """Submits delegated executions and reports relay health."""

    name = "relay"

    def __init__(
        self,
        relay_url: str,
        *,
        timeout_s: Optional[float] = None,
        health_timeout_s: Optional[float] = None,
        max_payload_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = validate_relay_url(relay_url)
        self.timeout_s = timeout_s or settings.order_timeout_seconds
        self.health_timeout_s = health_timeout_s or settings.health_timeout_seconds
        self.max_payload_bytes = max_payload_bytes or settings.relay_max_payload_bytes
        self.logger = logger or logging.getLogger(__name__)
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self._transport)

    async def submit(
        self,
        outside_execution: OutsideExecution,
        signature: List[str],
        owner_address: str,
        *,
        now: Optional[datetime] = None,
    ) -> Dict[str, str]:
        """Submit a signed outside execution; returns ``{"transactionHash": ...}``.

        Raises ``RelayError`` on non-2xx (message carries status and body) and
        ``RelayResponseError`` when the relay reports ``status="error"`` or
        answers with something that is not a valid submission receipt.
        """
        if not outside_execution.is_valid_at(now or datetime.now(timezone.utc)):
            raise RelayWindowError(
                "Outside execution is not valid now "
                f"(window {outside_execution.execute_after}..{outside_execution.execute_before})"
            )

        payload = RelayPayload(
            outside_execution=outside_execution,
            signature=list(signature),
            owner_address=owner_address,
        )
        body = json.dumps(payload.to_dict(), separators=(",", ":"))
        size = len(body.encode("utf-8"))
        if size > self.max_payload_bytes:
            raise PayloadTooLargeError(size, self.max_payload_bytes)

        async with self._client(self.timeout_s) as client:
            response = await client.post(
                "/relay",
                content=body,
                headers={"Content-Type": "application/json"},
            )

        if not response.is_success:
            detail = (response.text or "").strip() or "Unknown error"
            self.logger.warning("Relay rejected submission (%s): %s", response.status_code, detail[:200])
            raise RelayError(response.status_code, detail)

        try:
            result = RelayResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise RelayResponseError("Relay returned a malformed response") from exc

        if result.status == "error":
            raise RelayResponseError(result.error or "Relay submission failed")

        tx_hash = result.transaction_hash
        if not isinstance(tx_hash, str) or not TX_HASH_PATTERN.match(tx_hash):
            raise RelayResponseError(
                "Relay returned invalid transaction hash. Expected 0x-prefixed hex string."
            )

        self.logger.info("Relay accepted execution from %s: %s", owner_address, tx_hash)
        return {"transactionHash": tx_hash}

    async def check_health(self) -> bool:
        """True when ``GET /health`` answers 2xx; never raises."""
        try:
            async with self._client(self.health_timeout_s) as client:
                response = await client.get("/health")
            return response.is_success
        except httpx.HTTPError as exc:
            self.logger.debug("Relay health check failed: %s", exc)
            return False

    async def get_status(self) -> RelayHealthStatus:
        """Detailed relay status; ``healthy=False`` on any failure, never raises."""
        try:
            async with self._client(self.health_timeout_s) as client:
                response = await client.get("/status")
            if not response.is_success:
                return RelayHealthStatus(healthy=False)
            data = response.json()
            if not isinstance(data, dict):
                data = {}
            return RelayHealthStatus.model_validate({**data, "healthy": True})
        except (httpx.HTTPError, ValueError, PydanticValidationError) as exc:
            self.logger.debug("Relay status check failed: %s", exc)
            return RelayHealthStatus(healthy=False)

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        status = await self.get_status()
        return {
            "status": "healthy" if status.healthy else "unavailable",
            **status.model_dump(exclude_none=True, exclude={"healthy"}),
        }


def create_relay_client(relay_url: Optional[str] = None) -> Optional[RelayClient]:
    """RelayClient for the configured relay URL, or None when none is configured."""
    url = relay_url if relay_url is not None else settings.relay_url
    if not url:
        return None
    return RelayClient(url)
