"""
Error Classification

Defines the error types raised across the bridge subsystem.
Input errors are rejected before any network call, upstream errors come from
Garden or the relay, and queue errors are terminal rejections of queued requests.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors for recovery decisions."""

    NETWORK = "network"           # Network/connectivity issues
    RATE_LIMIT = "rate_limit"     # API rate limits
    TIMEOUT = "timeout"           # Request timed out
    PROVIDER = "provider"         # Garden / relay returned an error
    VALIDATION = "validation"     # Input rejected before any network call
    AUTHENTICATION = "authentication"  # Auth/permission error
    QUEUE = "queue"               # Retry queue terminal rejection
    UNKNOWN = "unknown"           # Unclassified error


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = False
    retry_after_seconds: Optional[float] = None
    suggested_action: Optional[str] = None
    provider: Optional[str] = None
    status_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class BridgeError(Exception):
    """Base class for every error raised by the bridge subsystem."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(category=self.category)


# Input errors
class ValidationError(BridgeError):
    category = ErrorCategory.VALIDATION


class WalletNotConnectedError(ValidationError):
    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class MissingSourceAddressError(ValidationError):
    def __init__(self, message: str = "BTC source address is required for Garden bridge"):
        super().__init__(message)


class AmountMismatchError(ValidationError):
    """The amount being executed differs from the amount that was quoted."""

    def __init__(self, quoted: int, requested: int):
        super().__init__(
            f"Amount {requested} does not match the quoted amount {quoted}; refresh the quote",
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                suggested_action="Request a new quote for this amount",
                details={"quoted": quoted, "requested": requested},
            ),
        )


class StaleQuoteError(ValidationError):
    def __init__(self, age_seconds: float, ttl_seconds: float):
        super().__init__(
            f"Quote expired ({age_seconds:.0f}s old, limit {ttl_seconds:.0f}s); refresh the quote",
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                suggested_action="Request a new quote",
                details={"age_seconds": age_seconds, "ttl_seconds": ttl_seconds},
            ),
        )


class StealthRoutingUnavailableError(ValidationError):
    def __init__(self, message: str = "Private routing requested but no stealth address deriver is configured"):
        super().__init__(message)


class InvalidRelayUrlError(ValidationError):
    pass


class RelayWindowError(ValidationError):
    """The outside execution is not valid for submission at this moment."""


class PayloadTooLargeError(ValidationError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Relay payload too large ({size} bytes, max {limit}). Check calldata construction.",
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                details={"size": size, "limit": limit},
            ),
        )


class NonIdempotentRequestError(ValidationError):
    """Only safe HTTP methods may be replayed by the retry queue."""

    def __init__(self, method: str):
        super().__init__(f"{method.upper()} requests cannot be queued for retry")
        self.method = method.upper()


class InvalidTransitionError(BridgeError):
    """Raised when an orchestrator is asked to move to a phase it cannot reach."""

    def __init__(self, from_phase: str, to_phase: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid transition from {from_phase} to {to_phase}")
        self.from_phase = from_phase
        self.to_phase = to_phase


# Upstream errors
class ProviderError(BridgeError):
    category = ErrorCategory.PROVIDER

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=ErrorCategory.PROVIDER,
                provider=provider,
                status_code=status_code,
                details={"body": body} if body else {},
            ),
        )
        self.status_code = status_code
        self.body = body


class QuoteUnavailableError(ProviderError):
    def __init__(self, message: str = "No quotes available for this amount", provider: Optional[str] = None):
        super().__init__(message, provider=provider)


class GaslessUnsupportedError(ProviderError):
    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} has no typed data to sign; gasless execution is not supported for it",
            provider="garden",
        )
        self.order_id = order_id


class GardenApiError(ProviderError):
    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Garden API error ({status_code}): {body}",
            provider="garden",
            status_code=status_code,
            body=body,
        )


class RelayError(ProviderError):
    """Relay answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Relay error ({status_code}): {body}",
            provider="relay",
            status_code=status_code,
            body=body,
        )


class RelayResponseError(ProviderError):
    """Relay answered 2xx but the body is an error or is malformed."""

    def __init__(self, message: str):
        super().__init__(message, provider="relay")


# Queue errors
class QueueError(BridgeError):
    category = ErrorCategory.QUEUE


class QueueFullError(QueueError):
    def __init__(self, message: str = "Queue full, request dropped"):
        super().__init__(message)


class MaxRetriesExceededError(QueueError):
    def __init__(self, max_retries: int):
        super().__init__(f"Max retries ({max_retries}) reached")
        self.max_retries = max_retries


class QueueClearedError(QueueError):
    def __init__(self, message: str = "Queue cleared"):
        super().__init__(message)


def classify_error(error: Exception) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Transport failures (no response at all) are the only recoverable class;
    everything that produced an HTTP response is reported as-is.
    """
    if isinstance(error, BridgeError):
        return error.context

    if isinstance(error, httpx.TimeoutException):
        return ErrorContext(
            category=ErrorCategory.TIMEOUT,
            recoverable=True,
            retry_after_seconds=10.0,
            suggested_action="Retry when connectivity is restored",
        )

    if isinstance(error, httpx.TransportError):
        return ErrorContext(
            category=ErrorCategory.NETWORK,
            recoverable=True,
            retry_after_seconds=5.0,
            suggested_action="Retry when connectivity is restored",
        )

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 429:
            return ErrorContext(
                category=ErrorCategory.RATE_LIMIT,
                recoverable=False,
                retry_after_seconds=60.0,
                status_code=status,
                suggested_action="Wait before retrying",
            )
        if status in (401, 403):
            return ErrorContext(
                category=ErrorCategory.AUTHENTICATION,
                recoverable=False,
                status_code=status,
            )
        return ErrorContext(
            category=ErrorCategory.PROVIDER,
            recoverable=False,
            status_code=status,
        )

    return ErrorContext(category=ErrorCategory.UNKNOWN, recoverable=False)


def error_message(error: BaseException, fallback: str) -> str:
    """Human-readable message for a failure, never empty."""
    message = getattr(error, "message", None) or str(error)
    return message or fallback
