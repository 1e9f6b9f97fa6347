"""
Error Recovery Module

Error taxonomy for the bridge subsystem and the bounded retry queue used
to replay idempotent requests after connectivity loss.
"""

from .errors import (
    AmountMismatchError,
    BridgeError,
    ErrorCategory,
    ErrorContext,
    GardenApiError,
    GaslessUnsupportedError,
    InvalidTransitionError,
    InvalidRelayUrlError,
    MaxRetriesExceededError,
    MissingSourceAddressError,
    NonIdempotentRequestError,
    PayloadTooLargeError,
    ProviderError,
    QueueClearedError,
    QueueError,
    QueueFullError,
    QuoteUnavailableError,
    RelayError,
    RelayResponseError,
    RelayWindowError,
    StaleQuoteError,
    StealthRoutingUnavailableError,
    ValidationError,
    WalletNotConnectedError,
    classify_error,
    error_message,
)
from .retry_queue import QueuedRequest, RequestConfig, RetryQueue, SAFE_METHODS, get_retry_queue

__all__ = [
    # Errors
    "BridgeError",
    "ErrorCategory",
    "ErrorContext",
    "ValidationError",
    "WalletNotConnectedError",
    "MissingSourceAddressError",
    "AmountMismatchError",
    "StaleQuoteError",
    "StealthRoutingUnavailableError",
    "InvalidRelayUrlError",
    "RelayWindowError",
    "PayloadTooLargeError",
    "NonIdempotentRequestError",
    "ProviderError",
    "QuoteUnavailableError",
    "GaslessUnsupportedError",
    "InvalidTransitionError",
    "GardenApiError",
    "RelayError",
    "RelayResponseError",
    "QueueError",
    "QueueFullError",
    "MaxRetriesExceededError",
    "QueueClearedError",
    "classify_error",
    "error_message",
    # Queue
    "RetryQueue",
    "RequestConfig",
    "QueuedRequest",
    "SAFE_METHODS",
    "get_retry_queue",
]
