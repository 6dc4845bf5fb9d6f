from typing import Any, Callable, Dict

from themepark_booking.application.interfaces.booking_adapter import BookingAdapter
from themepark_booking.application.interfaces.token_repository import TokenRepository
from themepark_booking.domain.errors import AdapterNotFoundError
from themepark_booking.infrastructure.circuit_breaker import provider_breaker
from themepark_booking.infrastructure.gateways.redeam_adapter import RedeamAdapter
from themepark_booking.infrastructure.gateways.smartorder_adapter import SmartOrderAdapter

AdapterFactory = Callable[[Dict[str, Any]], BookingAdapter]


class AdapterRegistry:
    """
    String-keyed adapter bindings.

    A binding is a factory that receives the adapter's config entry. Each
    name is built once and cached; rebinding a name drops the cached
    instance so a host can substitute its own implementation.
    """

    def __init__(self) -> None:
        self._bindings: Dict[str, AdapterFactory] = {}
        self._adapters: Dict[str, BookingAdapter] = {}

    def bind(self, name: str, factory: AdapterFactory) -> None:
        self._bindings[name] = factory
        self._adapters.pop(name, None)

    def bound(self, name: str) -> bool:
        return name in self._bindings

    def make(self, name: str, config: Dict[str, Any]) -> BookingAdapter:
        if name not in self._adapters:
            if name not in self._bindings:
                raise AdapterNotFoundError(name, "has no registered binding")
            self._adapters[name] = self._bindings[name](config)
        return self._adapters[name]

    def forget(self, name: str) -> None:
        self._adapters.pop(name, None)


def build_default_registry(
    token_repo: TokenRepository | None = None,
    breaker_fail_max: int = 5,
    breaker_reset_timeout: int = 60,
) -> AdapterRegistry:
    registry = AdapterRegistry()

    def redeam(park_type: str) -> AdapterFactory:
        def factory(config: Dict[str, Any]) -> BookingAdapter:
            return RedeamAdapter(
                park_type,
                config,
                breaker=provider_breaker("redeam", breaker_fail_max, breaker_reset_timeout),
            )

        return factory

    registry.bind("redeam.disney", redeam("disney"))
    registry.bind("redeam.united_parks", redeam("united_parks"))
    registry.bind(
        "smartorder",
        lambda config: SmartOrderAdapter(
            config,
            token_repo=token_repo,
            breaker=provider_breaker("smartorder", breaker_fail_max, breaker_reset_timeout),
        ),
    )
    return registry
