"""Domain exceptions for the theme-park booking adapters."""


class DomainError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Adapter errors ===


class AdapterError(DomainError):
    """Transport or vendor failure while talking to a booking provider."""

    def __init__(self, message: str, code: str | None = None, context: dict | None = None):
        super().__init__(message=message, code=code or "ADAPTER_ERROR")
        self.context = context or {}


class ConfigurationError(AdapterError):
    """Required credentials or identifiers are missing."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message=f"Configuration Error: {message}", code=code or "CONFIGURATION_ERROR")


class BookingError(AdapterError):
    """The vendor rejected a booking operation (expired hold, refused cancellation)."""

    def __init__(self, message: str, code: str | None = None, context: dict | None = None):
        super().__init__(
            message=f"Booking Error: {message}",
            code=code or "BOOKING_ERROR",
            context=context,
        )


class AdapterNotFoundError(AdapterError):
    """No enabled adapter is registered under the requested name."""

    def __init__(self, name: str, reason: str = "not found"):
        super().__init__(
            message=f"Adapter '{name}' {reason}",
            code="ADAPTER_NOT_FOUND",
        )
        self.adapter_name = name


class CircuitOpenError(AdapterError):
    """The provider's circuit breaker is open; the call was not attempted."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"Circuit breaker open for provider '{provider}'",
            code="CIRCUIT_OPEN",
        )
        self.provider = provider
