"""
Request coordination for user-initiated remote actions.

Remote calls cannot be aborted, so a stale completion is made inert instead:
each action gets a generation token, and every continuation checks that its
token is still the active one before touching visible state or storage.

Per action class the coordinator is a two-state machine:

    Idle  --begin-->  Active(token)  --begin-->  Active(newer token)
                           |
                       invalidate
                           v
                         Idle
"""

from __future__ import annotations

import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from grammarguard.infrastructure.retry import RetryPolicy
from grammarguard.observability.logging import get_logger
from grammarguard.observability.telemetry import counter, log_event

logger = get_logger(__name__)

T = TypeVar("T")


class ActionClass(str, Enum):
    """Kinds of remote action that admit a single winning outcome."""

    GRAMMAR = "grammar"
    REWRITE = "rewrite"
    QUICK_REWRITE = "quick_rewrite"
    LOOKUP = "lookup"


@dataclass(frozen=True, order=True)
class GenerationToken:
    """Opaque, strictly increasing identifier minted per action."""

    serial: int
    action_class: ActionClass


class SupersededError(Exception):
    """Raised when a continuation's token is no longer active.

    Callers catch it and return silently: a superseded action reports nothing,
    not even its own failure.
    """

    def __init__(self, token: GenerationToken):
        super().__init__(f"{token.action_class.value} request #{token.serial} was superseded")
        self.token = token


class RequestCoordinator:
    """Mints generation tokens and suppresses stale completions."""

    def __init__(self, retry_policy: RetryPolicy | None = None):
        self.retry_policy = retry_policy or RetryPolicy()
        # Shared across classes so tokens are totally ordered, never reused.
        self._serials = itertools.count(1)
        self._active: dict[ActionClass, GenerationToken | None] = {}

    def begin(self, action_class: ActionClass) -> GenerationToken:
        """Start a new action, implicitly superseding any in-flight one of the same class."""
        previous = self._active.get(action_class)
        token = GenerationToken(serial=next(self._serials), action_class=action_class)
        self._active[action_class] = token
        if previous is not None:
            logger.debug("%s #%d supersedes #%d", action_class.value, token.serial, previous.serial)
        return token

    def is_active(self, token: GenerationToken) -> bool:
        return self._active.get(token.action_class) == token

    def active_token(self, action_class: ActionClass) -> GenerationToken | None:
        return self._active.get(action_class)

    def invalidate(self, action_class: ActionClass) -> None:
        """Return the class to Idle; all in-flight continuations become no-ops."""
        self._active[action_class] = None

    def invalidate_all(self) -> None:
        for action_class in list(self._active):
            self._active[action_class] = None

    def ensure_active(self, token: GenerationToken) -> None:
        """Raise SupersededError unless token is still active.

        Call immediately before every observable side effect, including
        secondary updates that follow a primary one.
        """
        if not self.is_active(token):
            counter("coordinator.superseded")
            log_event(
                "coordinator.superseded",
                action_class=token.action_class.value,
                serial=token.serial,
            )
            raise SupersededError(token)

    async def run(self, token: GenerationToken, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute operation through the retry policy on behalf of token.

        Returns the result only if token is still active when it arrives. A
        failure of a superseded action is swallowed and replaced by
        SupersededError.
        """
        try:
            result = await self.retry_policy.execute(operation)
        except Exception as exc:
            if not self.is_active(token):
                logger.debug("Discarding failure of superseded request: %s", type(exc).__name__)
                self.ensure_active(token)
            raise
        self.ensure_active(token)
        return result
