from abc import ABC, abstractmethod
from typing import Any

from themepark_booking.application.dtos import (
    BookingRequest,
    BookingResponse,
    Product,
    ProductSyncResult,
    VoucherData,
)


class BookingAdapter(ABC):
    """
    Contract every theme-park provider adapter implements.

    Write operations (create/confirm/cancel) never raise for vendor or
    transport failures: they return ``BookingResponse.error``. Read
    operations return a safe default (``False``, ``[]``, ``{}`` or ``None``).
    Only construction raises, with ``ConfigurationError``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name, e.g. ``redeam_disney``."""

    @property
    @abstractmethod
    def provider(self) -> str:
        """Vendor family, e.g. ``redeam``."""

    @abstractmethod
    def test_connection(self) -> bool:
        pass

    @abstractmethod
    def sync_products(self) -> ProductSyncResult:
        pass

    @abstractmethod
    def get_product(self, remote_id: str) -> Product | None:
        pass

    @abstractmethod
    def search_products(self, criteria: dict[str, Any] | None = None) -> list[Product]:
        pass

    @abstractmethod
    def create_booking(self, request: BookingRequest) -> BookingResponse:
        pass

    @abstractmethod
    def confirm_booking(self, reservation_id: str, payment_data: dict[str, Any] | None = None) -> BookingResponse:
        pass

    @abstractmethod
    def cancel_booking(self, booking_id: str, reason: str = "") -> BookingResponse:
        pass

    @abstractmethod
    def get_booking(self, booking_id: str) -> BookingResponse | None:
        pass

    @abstractmethod
    def generate_voucher(self, booking_id: str) -> VoucherData:
        """Raises ``AdapterError`` when the booking cannot be found."""

    @abstractmethod
    def get_available_time_slots(self, product_id: str, date: str) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    def check_availability(self, product_id: str, date: str, time: str | None = None, quantity: int = 1) -> bool:
        pass

    @abstractmethod
    def get_pricing(self, product_id: str, date: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        pass

    @property
    @abstractmethod
    def last_sync_timestamp(self) -> float | None:
        pass

    @abstractmethod
    def set_last_sync_timestamp(self, timestamp: float) -> None:
        pass

    @abstractmethod
    def get_config(self, key: str | None = None, default: Any = None) -> Any:
        pass

    @abstractmethod
    def validate_config(self) -> list[str]:
        """Human-readable problems with the adapter configuration; empty when valid."""
