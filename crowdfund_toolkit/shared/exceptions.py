"""
Exception hierarchy for the Crowdfund Toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad input)
- ConfigurationException: Startup/config errors that prevent operation

Ledger read errors:
- FetchFailed -> RetryableException (a read call failed after endpoint resolution)
- NoEndpointAvailable -> FetchFailed (every candidate endpoint failed liveness)

Local errors:
- FormatError -> NonRetryableException (a single field could not be converted)
- ValidationError -> NonRetryableException (user input rejected before any network call)

Write path:
- WrongNetwork -> NonRetryableException (wallet on a different chain)
- TransactionFailed -> NonRetryableException (revert, insufficient funds, RPC error)
"""

from enum import Enum
from typing import Dict, List, Optional


class ReadErrorKind(Enum):
    """Structured classification of a failed ledger read."""

    DECODE = "decode"  # Response did not match the expected ABI
    REVERT = "revert"  # Contract rejected the call
    NETWORK = "network"  # Transport failure (connection, timeout)
    UNKNOWN = "unknown"


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Wrong network
    - Ledger-side reverts on writes
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values
    - Missing required resources (ABI files)
    """

    pass


class FetchFailed(RetryableException):
    """
    A ledger read failed.

    The ``kind`` attribute tells callers what went wrong without having to
    inspect the message text.
    """

    def __init__(
        self, message: str, kind: ReadErrorKind = ReadErrorKind.UNKNOWN
    ):
        super().__init__(message)
        self.kind = kind


class NoEndpointAvailable(FetchFailed):
    """Every candidate read endpoint failed its liveness check."""

    def __init__(self, endpoints: List[str]):
        super().__init__(
            f"No RPC endpoint available (tried {len(endpoints)}): "
            + ", ".join(endpoints),
            kind=ReadErrorKind.NETWORK,
        )
        self.endpoints = list(endpoints)


class FormatError(NonRetryableException):
    """A single value could not be converted to its display form."""

    pass


class ValidationError(NonRetryableException):
    """
    User input was rejected.

    ``errors`` maps a form field name to its message so that a form can
    show every problem at once.
    """

    def __init__(
        self, message: str, errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(message)
        self.errors = dict(errors or {})


class WrongNetwork(NonRetryableException):
    """The wallet is connected to a chain other than the configured one."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Wrong network. Expected chain {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class TransactionFailed(NonRetryableException):
    """A write transaction failed; the message is passed through verbatim."""

    pass


class APIException(RetryableException):
    """
    Exception for external API failures (IPFS pinning service).

    Inherits from RetryableException because API failures
    are often transient (rate limits, timeouts).
    """

    pass
