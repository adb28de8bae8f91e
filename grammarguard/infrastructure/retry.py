"""
Retry helpers for remote language-service calls.

Every failure is normalized once into an ErrorDescription (status codes plus a
searchable text blob) and classified by ordered predicates:

    auth_missing > permission_denied > rate_limited > service_unavailable > other

Only rate_limited and service_unavailable are retried, with exponential backoff
(base_delay * 2 ** (attempt - 1)). permission_denied is re-signalled as
PermissionDeniedError so callers can send the user to credential setup.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from grammarguard.config import RETRY_BASE_DELAY_SECONDS, RETRY_MAX_ATTEMPTS
from grammarguard.observability.logging import get_logger
from grammarguard.observability.telemetry import counter, log_event

logger = get_logger(__name__)

T = TypeVar("T")

MISSING_API_KEY = "MISSING_API_KEY"
PERMISSION_DENIED = "PERMISSION_DENIED"

_STATUS_ATTRS = ("code", "status_code", "status", "http_status")
_MAX_CAUSE_DEPTH = 3


class ErrorKind(str, Enum):
    """Classification of a remote failure."""

    AUTH_MISSING = "auth_missing"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    OTHER = "other"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMITED, ErrorKind.SERVICE_UNAVAILABLE})


class RemoteCallError(RuntimeError):
    """A remote failure whose kind is already known."""

    kind: ErrorKind = ErrorKind.OTHER

    def __init__(
        self, message: str, kind: ErrorKind | None = None, status_code: int | None = None
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.status_code = status_code


class AuthMissingError(RemoteCallError):
    """No credential is configured for the language service."""

    kind = ErrorKind.AUTH_MISSING

    def __init__(self, message: str = MISSING_API_KEY):
        super().__init__(message)


class PermissionDeniedError(RemoteCallError):
    """The configured credential was rejected (user must reconfigure it)."""

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, message: str = PERMISSION_DENIED, status_code: int | None = 403):
        super().__init__(message, status_code=status_code)


@dataclass(frozen=True)
class ErrorDescription:
    """Normalized view of a failure, built once and then matched by predicates."""

    status_codes: frozenset[int]
    text: str
    declared_kind: ErrorKind | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorDescription:
        codes: set[int] = set()
        parts: list[str] = []
        declared: ErrorKind | None = None

        current: BaseException | None = exc
        depth = 0
        while current is not None and depth < _MAX_CAUSE_DEPTH:
            if declared is None and isinstance(current, RemoteCallError):
                if current.kind is not ErrorKind.OTHER:
                    declared = current.kind
            _collect_attributes(current, codes, parts)
            current = current.__cause__
            depth += 1

        return cls(status_codes=frozenset(codes), text=" ".join(parts), declared_kind=declared)

    def has_status(self, *codes: int) -> bool:
        return any(code in self.status_codes for code in codes)

    def mentions(self, *needles: str) -> bool:
        return any(needle in self.text for needle in needles)

    def mentions_code(self, code: int) -> bool:
        return re.search(rf"(?<!\d){code}(?!\d)", self.text) is not None


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Enum) and isinstance(value.value, int):
        return value.value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _walk_payload(payload: Any, codes: set[int]) -> None:
    if isinstance(payload, dict):
        for key, value in payload.items():
            if key in ("code", "status", "status_code"):
                status = _as_status(value)
                if status is not None:
                    codes.add(status)
            _walk_payload(value, codes)
    elif isinstance(payload, (list, tuple)):
        for item in payload:
            _walk_payload(item, codes)


def _dump(payload: Any) -> str:
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return repr(payload)


def _collect_attributes(exc: BaseException, codes: set[int], parts: list[str]) -> None:
    parts.append(type(exc).__name__)
    parts.append(str(exc))

    for attr in _STATUS_ATTRS:
        try:
            value = getattr(exc, attr, None)
        except Exception:  # noqa: BLE001 - some SDK properties raise when unset
            continue
        if callable(value):
            continue
        status = _as_status(value)
        if status is not None:
            codes.add(status)
        elif isinstance(value, str):
            parts.append(value)

    response = getattr(exc, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            status = _as_status(getattr(response, attr, None))
            if status is not None:
                codes.add(status)

    for payload in _structured_payloads(exc):
        _walk_payload(payload, codes)
        parts.append(_dump(payload))

    message = getattr(exc, "message", None)
    if isinstance(message, str):
        parts.append(message)


def _structured_payloads(exc: BaseException) -> Iterable[Any]:
    error = getattr(exc, "error", None)
    if isinstance(error, (dict, list)):
        yield {"error": error}
    for arg in exc.args:
        if isinstance(arg, (dict, list)):
            yield arg
        elif isinstance(arg, str) and arg.lstrip().startswith(("{", "[")):
            try:
                yield json.loads(arg)
            except ValueError:
                continue


def _is_auth_missing(desc: ErrorDescription) -> bool:
    return desc.mentions(MISSING_API_KEY)


def _is_permission_denied(desc: ErrorDescription) -> bool:
    return (
        desc.has_status(403)
        or desc.mentions(PERMISSION_DENIED, "Permission denied", "PermissionDenied")
        or desc.mentions_code(403)
    )


def _is_rate_limited(desc: ErrorDescription) -> bool:
    return (
        desc.has_status(429)
        or desc.mentions("RESOURCE_EXHAUSTED", "ResourceExhausted", "Quota", "quota")
        or desc.mentions("Too Many Requests")
        or desc.mentions_code(429)
    )


def _is_service_unavailable(desc: ErrorDescription) -> bool:
    return (
        desc.has_status(503)
        or desc.mentions("Overloaded", "overloaded", "UNAVAILABLE", "ServiceUnavailable")
        or desc.mentions("Service Unavailable")
        or desc.mentions_code(503)
    )


# Precedence order matters: the first match wins.
_PREDICATES: tuple[tuple[ErrorKind, Callable[[ErrorDescription], bool]], ...] = (
    (ErrorKind.AUTH_MISSING, _is_auth_missing),
    (ErrorKind.PERMISSION_DENIED, _is_permission_denied),
    (ErrorKind.RATE_LIMITED, _is_rate_limited),
    (ErrorKind.SERVICE_UNAVAILABLE, _is_service_unavailable),
)


def classify_description(desc: ErrorDescription) -> ErrorKind:
    if desc.declared_kind is not None:
        return desc.declared_kind
    for kind, predicate in _PREDICATES:
        if predicate(desc):
            return kind
    return ErrorKind.OTHER


def classify_error(exc: BaseException) -> ErrorKind:
    """Classify any failure shape into exactly one ErrorKind."""
    return classify_description(ErrorDescription.from_exception(exc))


@dataclass
class RetryPolicy:
    """Exponential-backoff retry for coroutine operations against the language service."""

    stage: str = "llm"
    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay: float = RETRY_BASE_DELAY_SECONDS
    sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation, retrying transient failures.

        Raises:
            AuthMissingError: no credential (never retried).
            PermissionDeniedError: credential rejected (never retried).
            Exception: the operation's own error when terminal or when attempts
                are exhausted.
        """
        last_kind = ErrorKind.OTHER

        def should_retry(retry_state: RetryCallState) -> bool:
            nonlocal last_kind
            outcome = retry_state.outcome
            if outcome is None or not outcome.failed:
                return False
            exc = outcome.exception()
            last_kind = classify_error(exc)
            if last_kind not in RETRYABLE_KINDS:
                log_event(
                    "retry.terminal",
                    stage=self.stage,
                    kind=last_kind.value,
                    attempt=retry_state.attempt_number,
                )
                return False
            return True

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=should_retry,
            sleep=self.sleep_fn,
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            return await retrying(operation)
        except Exception as exc:
            if last_kind is ErrorKind.PERMISSION_DENIED and not isinstance(
                exc, PermissionDeniedError
            ):
                raise PermissionDeniedError() from exc
            if last_kind is ErrorKind.AUTH_MISSING and not isinstance(exc, AuthMissingError):
                raise AuthMissingError() from exc
            if last_kind in RETRYABLE_KINDS:
                logger.warning(
                    "%s: giving up after %d attempts (%s)", self.stage, self.max_attempts, last_kind.value
                )
            raise

    def _log_retry(self, retry_state: RetryCallState) -> None:
        counter("retry_count")
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        log_event(
            "retry_scheduled",
            stage=self.stage,
            attempt=retry_state.attempt_number,
            delay=round(delay, 3),
        )
        logger.warning(
            "Request failed (attempt %d/%d). Retrying in %.1fs",
            retry_state.attempt_number,
            self.max_attempts,
            delay,
        )
