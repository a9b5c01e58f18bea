# nba_ticker/errors.py
"""
Error taxonomy shared by the client, the request pipeline and the services.

  - RateLimited: the provider answered 429; retried with backoff, then surfaced.
  - RequestFailed: any other non-2xx, network failure or timeout; never retried.
  - ValidationFailed: a payload did not match the expected shape.
  - NormalizationSkipped: a single event/team entry could not be parsed.
"""

from __future__ import annotations

from typing import Optional

import requests


class TickerError(Exception):
    """Base class for all errors raised by the ticker core."""

    kind = "error"


class RateLimited(TickerError):
    """The provider signalled rate limiting (HTTP 429) and retries are exhausted."""

    kind = "rate_limited"

    def __init__(self, message: str, *, label: str = "", attempts: int = 0) -> None:
        super().__init__(message)
        self.label = label
        self.attempts = attempts


class RequestFailed(TickerError):
    """A non rate-limit failure: bad status, network error, timeout or undecodable body."""

    kind = "request_failed"

    def __init__(self, message: str, *, label: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.label = label
        self.status_code = status_code


class ValidationFailed(TickerError):
    """A response did not match the expected schema."""

    kind = "validation_failed"


class NormalizationSkipped(TickerError):
    """A single raw item was dropped; the surrounding batch continues."""

    kind = "normalization_skipped"


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if exc represents a provider rate-limit signal."""
    if isinstance(exc, RateLimited):
        return True
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None) == 429


def classify_error(exc: BaseException, label: str = "") -> TickerError:
    """
    Map an arbitrary exception raised by a fetch into the taxonomy.

    TickerError instances pass through untouched.
    """
    if isinstance(exc, TickerError):
        return exc

    if is_rate_limit_error(exc):
        return RateLimited(f"{label}: rate limited by provider", label=label)

    if isinstance(exc, requests.Timeout):
        return RequestFailed(f"{label}: request timed out", label=label)

    status = getattr(getattr(exc, "response", None), "status_code", None)
    if status is not None:
        return RequestFailed(f"{label}: HTTP {status}", label=label, status_code=status)

    return RequestFailed(f"{label}: {exc}", label=label)
