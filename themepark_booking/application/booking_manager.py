import logging
from typing import Any

from themepark_booking.application.dtos import (
    BookingRequest,
    BookingResponse,
    Product,
    ProductSyncResult,
    VoucherData,
)
from themepark_booking.application.interfaces.booking_adapter import BookingAdapter
from themepark_booking.application.interfaces.token_repository import TokenRepository
from themepark_booking.config import Settings
from themepark_booking.domain.errors import AdapterError, AdapterNotFoundError
from themepark_booking.infrastructure.gateways.registry import AdapterRegistry, build_default_registry


class BookingManager:
    """
    Resolves adapters by name and fronts the booking lifecycle.

    Adapters are declared as named config entries with an ``enabled`` flag
    and built through the registry, so hosts can rebind a name to their own
    implementation. Mutating calls are logged before and after.
    """

    def __init__(self, adapters_config: dict[str, dict[str, Any]], registry: AdapterRegistry) -> None:
        self._config = adapters_config
        self._registry = registry
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, token_repo: TokenRepository | None = None) -> "BookingManager":
        registry = build_default_registry(
            token_repo=token_repo,
            breaker_fail_max=settings.breaker_fail_max,
            breaker_reset_timeout=settings.breaker_reset_timeout,
        )
        return cls(settings.adapters_config(), registry)

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    def available_adapters(self) -> list[str]:
        return [name for name, entry in self._config.items() if entry.get("enabled", False)]

    def get_adapter(self, name: str) -> BookingAdapter:
        entry = self._config.get(name)
        if entry is None:
            raise AdapterNotFoundError(name)
        if not entry.get("enabled", False):
            raise AdapterNotFoundError(name, "is not enabled")
        if not self._registry.bound(name):
            raise AdapterNotFoundError(name, "has no registered binding")
        return self._registry.make(name, entry)

    # === Connectivity ===

    def test_connection(self, name: str) -> bool:
        try:
            return self.get_adapter(name).test_connection()
        except Exception as exc:
            self._logger.error("Connection test failed", extra={"adapter": name, "error": str(exc)})
            return False

    def test_all_connections(self) -> dict[str, bool]:
        return {name: self.test_connection(name) for name in self.available_adapters()}

    # === Catalog ===

    def sync_products(self, name: str) -> ProductSyncResult:
        adapter = self.get_adapter(name)
        self._logger.info("Starting product sync", extra={"adapter": name})
        result = adapter.sync_products()
        self._logger.info(
            "Product sync completed",
            extra={"adapter": name, "success": result.success, "summary": result.summary()},
        )
        return result

    def sync_all_products(self) -> dict[str, ProductSyncResult]:
        results: dict[str, ProductSyncResult] = {}
        for name in self.available_adapters():
            try:
                results[name] = self.sync_products(name)
            except Exception as exc:
                self._logger.error("Product sync failed", extra={"adapter": name, "error": str(exc)})
                results[name] = ProductSyncResult.failure([str(exc)])
        return results

    def get_product(self, name: str, remote_id: str) -> Product | None:
        return self.get_adapter(name).get_product(remote_id)

    def search_products(self, name: str, criteria: dict[str, Any] | None = None) -> list[Product]:
        return self.get_adapter(name).search_products(criteria or {})

    def check_availability(
        self, name: str, product_id: str, date: str, time: str | None = None, quantity: int = 1
    ) -> bool:
        return self.get_adapter(name).check_availability(product_id, date, time, quantity)

    def get_available_time_slots(self, name: str, product_id: str, date: str) -> list[dict[str, Any]]:
        return self.get_adapter(name).get_available_time_slots(product_id, date)

    def get_pricing(self, name: str, product_id: str, date: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.get_adapter(name).get_pricing(product_id, date, options or {})

    # === Booking lifecycle ===

    def create_booking(self, name: str, request: BookingRequest) -> BookingResponse:
        self._logger.info(
            "Creating booking",
            extra={"adapter": name, "product_id": request.product_id, "quantity": request.quantity},
        )
        try:
            response = self.get_adapter(name).create_booking(request)
        except AdapterError as exc:
            response = BookingResponse.error(exc.message, exc.code)
        self._log_outcome("Booking created", name, response)
        return response

    def confirm_booking(
        self, name: str, reservation_id: str, payment_data: dict[str, Any] | None = None
    ) -> BookingResponse:
        self._logger.info("Confirming booking", extra={"adapter": name, "reservation_id": reservation_id})
        try:
            response = self.get_adapter(name).confirm_booking(reservation_id, payment_data or {})
        except AdapterError as exc:
            response = BookingResponse.error(exc.message, exc.code)
        self._log_outcome("Booking confirmed", name, response)
        return response

    def cancel_booking(self, name: str, booking_id: str, reason: str = "") -> BookingResponse:
        self._logger.info("Cancelling booking", extra={"adapter": name, "booking_id": booking_id, "reason": reason})
        try:
            response = self.get_adapter(name).cancel_booking(booking_id, reason)
        except AdapterError as exc:
            response = BookingResponse.error(exc.message, exc.code)
        self._log_outcome("Booking cancelled", name, response)
        return response

    def get_booking(self, name: str, booking_id: str) -> BookingResponse | None:
        return self.get_adapter(name).get_booking(booking_id)

    def generate_voucher(self, name: str, booking_id: str) -> VoucherData:
        self._logger.info("Generating voucher", extra={"adapter": name, "booking_id": booking_id})
        voucher = self.get_adapter(name).generate_voucher(booking_id)
        self._logger.info(
            "Voucher generated",
            extra={"adapter": name, "booking_id": booking_id, "voucher_number": voucher.voucher_number},
        )
        return voucher

    def _log_outcome(self, message: str, name: str, response: BookingResponse) -> None:
        context = {
            "adapter": name,
            "success": response.success,
            "status": response.status,
            "booking_id": response.booking_id,
            "hold_id": response.hold_id,
        }
        if response.success:
            self._logger.info(message, extra=context)
        else:
            self._logger.warning(
                f"{message} failed",
                extra={**context, "error": response.error_message, "error_code": response.error_code},
            )

    # === Status ===

    def adapter_statuses(self) -> dict[str, dict[str, Any]]:
        statuses: dict[str, dict[str, Any]] = {}
        for name in self.available_adapters():
            try:
                adapter = self.get_adapter(name)
                statuses[name] = {
                    "name": adapter.name,
                    "provider": adapter.provider,
                    "connected": adapter.test_connection(),
                    "last_sync": adapter.last_sync_timestamp,
                    "config_valid": not adapter.validate_config(),
                }
            except Exception as exc:
                statuses[name] = {"name": name, "connected": False, "error": str(exc)}
        return statuses
