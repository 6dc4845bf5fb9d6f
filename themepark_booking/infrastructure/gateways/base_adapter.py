import logging
import secrets
import string
from typing import Any

from themepark_booking.application.dtos import BookingResponse, Product
from themepark_booking.application.interfaces.booking_adapter import BookingAdapter
from themepark_booking.application.interfaces.clock import Clock, SystemClock
from themepark_booking.domain.errors import AdapterError, BookingError, ConfigurationError


class BaseAdapter(BookingAdapter):
    """Config access, sync bookkeeping and operation logging shared by adapters."""

    def __init__(self, config: dict[str, Any] | None = None, clock: Clock | None = None) -> None:
        self._config = dict(config or {})
        self._clock = clock or SystemClock()
        self._last_sync: float | None = None
        self._logger = logging.getLogger(__name__)

    def required_config_keys(self) -> list[str]:
        return []

    def get_config(self, key: str | None = None, default: Any = None) -> Any:
        if key is None:
            return dict(self._config)
        value = self._config.get(key)
        return default if value is None else value

    def validate_config(self) -> list[str]:
        return [
            f"Missing required configuration: {key}"
            for key in self.required_config_keys()
            if not self._config.get(key)
        ]

    def validate_required_config(self) -> None:
        errors = self.validate_config()
        if errors:
            raise ConfigurationError(f"Invalid configuration for adapter {self.name}: {', '.join(errors)}")

    @property
    def last_sync_timestamp(self) -> float | None:
        return self._last_sync

    def set_last_sync_timestamp(self, timestamp: float) -> None:
        self._last_sync = timestamp

    def log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(
            f"Adapter operation: {operation}",
            extra={"adapter": self.name, "provider": self.provider, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        self._logger.error(
            f"Adapter operation failed: {operation}",
            extra={"adapter": self.name, "provider": self.provider, "error": str(error), **context},
        )

    @staticmethod
    def raise_for_vendor_error(payload: Any, booking: bool = False) -> None:
        """Vendor 4xx bodies look like ``{"error": {"message": ...}}``."""
        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            message = message or "Unknown vendor error"
            if booking:
                raise BookingError(message, code="VENDOR_ERROR")
            raise AdapterError(message, code="VENDOR_ERROR")

    @staticmethod
    def random_code(length: int = 6) -> str:
        alphabet = string.ascii_uppercase + string.digits
        return "".join(secrets.choice(alphabet) for _ in range(length))


def matches_criteria(product: Product, criteria: dict[str, Any]) -> bool:
    if "name" in criteria and str(criteria["name"]).lower() not in product.name.lower():
        return False
    if "category" in criteria and product.category != criteria["category"]:
        return False
    if "active" in criteria and product.is_active != criteria["active"]:
        return False
    if "code" in criteria and not product.remote_id.startswith(str(criteria["code"])):
        return False
    return True


def error_response(exc: Exception, provider: str) -> BookingResponse:
    if isinstance(exc, AdapterError):
        return BookingResponse.error(exc.message, exc.code, metadata=exc.context, provider=provider)
    return BookingResponse.error(str(exc), "UNEXPECTED_ERROR", provider=provider)
