"""Bounded retry of chunk exchanges.

This module provides:
- Committed, Retryable, Fatal: Outcome of a single exchange attempt
- attempt_exchange: Run one exchange and classify its outcome
- run_with_retry: Re-issue the same exchange until it commits, fails
  fatally, or the attempt bound is reached

Classification:
- ConnectionLostError       -> Retryable, reconnect before the next attempt
- TransportError            -> Retryable
- ChecksumMismatchError     -> Retryable (corrupted exchange)
- MalformedResponseError    -> Retryable (truncated exchange)
- RemoteStatusError         -> Fatal (explicit rejection by the device)
- UnknownStatusCodeError    -> Fatal (protocol violation)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from knxft.client.transport import Transport
from knxft.core.errors import (
    ChecksumMismatchError,
    ConnectionLostError,
    MalformedResponseError,
    RemoteStatusError,
    TooManyErrorsError,
    TransportError,
    UnknownStatusCodeError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorCallback = Callable[[Exception], None]

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    TransportError,
    ChecksumMismatchError,
    MalformedResponseError,
)

FATAL_EXCEPTIONS: tuple[type[Exception], ...] = (
    RemoteStatusError,
    UnknownStatusCodeError,
)


@dataclass(frozen=True)
class Committed(Generic[T]):
    """The exchange succeeded and produced a value."""

    value: T


@dataclass(frozen=True)
class Retryable:
    """The exchange failed transiently and may be re-issued."""

    error: Exception
    reconnect: bool = False


@dataclass(frozen=True)
class Fatal:
    """The exchange was rejected and must not be re-issued."""

    error: Exception


ExchangeOutcome = Union[Committed[T], Retryable, Fatal]


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Value of a committed exchange and the failed attempts before it."""

    value: T
    failures: int


def attempt_exchange(exchange: Callable[[], T]) -> ExchangeOutcome[T]:
    """Run a single exchange and classify its outcome.

    Args:
        exchange: Callable performing one invoke and decoding the response.

    Returns:
        Committed, Retryable or Fatal.
    """
    try:
        return Committed(exchange())
    except ConnectionLostError as e:
        return Retryable(e, reconnect=True)
    except RETRYABLE_EXCEPTIONS as e:
        return Retryable(e)
    except FATAL_EXCEPTIONS as e:
        return Fatal(e)


def _reconnect(transport: Transport) -> Retryable | None:
    try:
        transport.reconnect()
    except TransportError as e:
        return Retryable(e, reconnect=True)
    logger.info("Reconnected to device")
    return None


def run_with_retry(
    exchange: Callable[[], T],
    transport: Transport,
    max_attempts: int,
    on_error: ErrorCallback | None = None,
    description: str = "exchange",
) -> RetryResult[T]:
    """Execute an exchange, re-issuing it on transient failures.

    The same exchange is repeated unchanged; callers must not re-read their
    source between attempts. A dropped connection triggers a reconnect
    before the next attempt, and a failed reconnect counts as a failed
    attempt. The exchange itself is invoked at most max_attempts times.

    Args:
        exchange: Callable performing one invoke and decoding the response.
        transport: Transport used for reconnects.
        max_attempts: Maximum number of failed attempts.
        on_error: Optional observer for every failed attempt.
        description: Human-readable name for log messages.

    Returns:
        RetryResult with the committed value.

    Raises:
        RemoteStatusError: Immediately, if the device rejected the exchange.
        UnknownStatusCodeError: Immediately, on an unmapped status code.
        TooManyErrorsError: If max_attempts attempts failed.
    """
    failures = 0
    needs_reconnect = False

    while True:
        outcome: ExchangeOutcome[T] | None = None
        if needs_reconnect:
            outcome = _reconnect(transport)
        if outcome is None:
            outcome = attempt_exchange(exchange)

        if isinstance(outcome, Committed):
            return RetryResult(value=outcome.value, failures=failures)
        if isinstance(outcome, Fatal):
            raise outcome.error

        failures += 1
        if on_error:
            on_error(outcome.error)

        if failures >= max_attempts:
            logger.error(f"All {max_attempts} attempts of {description} failed: {outcome.error}")
            raise TooManyErrorsError(failures, outcome.error) from outcome.error

        logger.warning(
            f"Attempt {failures}/{max_attempts} of {description} failed: {outcome.error}. "
            "Retrying..."
        )
        needs_reconnect = outcome.reconnect
