"""
Circuit breakers for outbound vendor calls.

One breaker per provider (``redeam``, ``smartorder``) so that a Redeam
outage never blocks Universal bookings:

- CLOSED: requests pass through
- OPEN: ``fail_max`` consecutive failures; calls fail fast with CircuitOpenError
- HALF_OPEN: after ``reset_timeout`` seconds one trial call is let through

Only exceptions raised inside the wrapped call count as failures. The HTTP
clients raise ``AdapterError`` for transport errors and 5xx responses;
4xx vendor errors are returned as bodies and do not trip the breaker.
"""

import logging
from typing import Any, Callable, TypeVar

import pybreaker
from pybreaker import CircuitBreaker, CircuitBreakerError

from themepark_booking.domain.errors import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_breakers: dict[str, CircuitBreaker] = {}


class StateChangeLogger(pybreaker.CircuitBreakerListener):
    """Logs every breaker state transition."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": getattr(old_state, "name", None),
                "new_state": getattr(new_state, "name", None),
            },
        )


def build_breaker(name: str, fail_max: int = 5, reset_timeout: int = 60) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=f"{name}_circuit_breaker",
        listeners=[StateChangeLogger(name)],
    )


def provider_breaker(name: str, fail_max: int = 5, reset_timeout: int = 60) -> CircuitBreaker:
    """Process-wide breaker for a provider, created on first use."""
    if name not in _breakers:
        _breakers[name] = build_breaker(name, fail_max=fail_max, reset_timeout=reset_timeout)
    return _breakers[name]


def reset_breakers() -> None:
    _breakers.clear()


def call_with_breaker(breaker: CircuitBreaker, provider: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return breaker.call(func, *args, **kwargs)
    except CircuitBreakerError as exc:
        # Raised both while open and by the call that trips the breaker.
        raise CircuitOpenError(provider) from exc


__all__ = [
    "StateChangeLogger",
    "build_breaker",
    "provider_breaker",
    "reset_breakers",
    "call_with_breaker",
    "CircuitBreakerError",
]
