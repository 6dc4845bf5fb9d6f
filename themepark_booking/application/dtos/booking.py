"""Booking request/response value objects exchanged with the adapters."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from themepark_booking.domain.dates import parse_datetime, parse_local, to_iso


@dataclass
class BookingRequest:
    """Caller-built request passed to ``BookingAdapter.create_booking``."""

    product_id: str
    date: datetime
    quantity: int
    customer_info: dict[str, Any]
    rate_id: str | None = None
    availability_id: str | None = None
    time_slot: str | None = None
    end_date: datetime | None = None
    options: dict[str, Any] = field(default_factory=dict)
    special_requests: list[str] = field(default_factory=list)
    reference_id: str | None = None
    guest_info: list[dict[str, Any]] = field(default_factory=list)
    payment_info: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Accept "YYYY-MM-DD" strings and plain dates from callers.
        self.date = parse_local(self.date)
        self.end_date = parse_local(self.end_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "rate_id": self.rate_id,
            "availability_id": self.availability_id,
            "date": self.date.date().isoformat(),
            "end_date": self.end_date.date().isoformat() if self.end_date else None,
            "time_slot": self.time_slot,
            "quantity": self.quantity,
            "customer_info": self.customer_info,
            "guest_info": self.guest_info,
            "payment_info": self.payment_info,
            "options": self.options,
            "special_requests": self.special_requests,
            "reference_id": self.reference_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BookingRequest":
        return cls(
            product_id=str(data["product_id"]),
            date=data["date"],
            quantity=int(data.get("quantity", 1)),
            customer_info=data.get("customer_info") or {},
            rate_id=data.get("rate_id"),
            availability_id=data.get("availability_id"),
            time_slot=data.get("time_slot"),
            end_date=data.get("end_date"),
            options=data.get("options") or {},
            special_requests=data.get("special_requests") or [],
            reference_id=data.get("reference_id"),
            guest_info=data.get("guest_info") or [],
            payment_info=data.get("payment_info") or {},
            metadata=data.get("metadata") or {},
        )

    def to_redeam_hold_format(self) -> dict[str, list[dict[str, Any]]]:
        """One hold item per ticket; Redeam holds inventory unit by unit."""
        item = {
            "productId": self.product_id,
            "rateId": self.rate_id,
            "availabilityId": self.availability_id,
            "at": to_iso(self.date),
            "travelerType": self.get_option("age_group", "adult"),
            "ext": self.options,
        }
        return {"items": [dict(item) for _ in range(self.quantity)]}

    def to_redeam_booking_format(self, hold_id: str) -> dict[str, Any]:
        info = self.customer_info
        return {
            "holdId": hold_id,
            "reference": self.reference_id or f"KBUG-{uuid.uuid4().hex[:13]}",
            "customer": {
                "firstName": info.get("first_name", ""),
                "lastName": info.get("last_name", ""),
                "email": info.get("email", ""),
                "phone": info.get("phone", ""),
                "address": {
                    "line1": info.get("address_line1", ""),
                    "line2": info.get("address_line2", ""),
                    "city": info.get("city", ""),
                    "state": info.get("state", ""),
                    "postcode": info.get("postcode", ""),
                    "country": info.get("country", "US"),
                },
            },
            "ext": self.metadata,
        }

    def to_smartorder_format(self) -> dict[str, Any]:
        return {
            "ProductID": self.product_id,
            "EventDate": self.date.strftime("%Y-%m-%d"),
            "Quantity": self.quantity,
            "CustomerName": self.customer_name,
            "CustomerEmail": self.customer_email,
            "CustomerPhone": self.customer_phone,
            "SpecialInstructions": "; ".join(self.special_requests),
            "ReferenceNumber": self.reference_id,
        }

    @property
    def customer_name(self) -> str:
        first = self.customer_info.get("first_name", "")
        last = self.customer_info.get("last_name", "")
        return f"{first} {last}".strip()

    @property
    def customer_email(self) -> str | None:
        return self.customer_info.get("email")

    @property
    def customer_phone(self) -> str | None:
        return self.customer_info.get("phone")

    def has_time_slot(self) -> bool:
        return bool(self.time_slot)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def is_multi_day(self) -> bool:
        return self.end_date is not None and self.end_date.date() != self.date.date()

    @property
    def duration(self) -> int:
        if not self.end_date:
            return 1
        return abs((self.end_date.date() - self.date.date()).days) + 1


@dataclass
class BookingResponse:
    """Normalised outcome of one adapter call. Not persisted as such."""

    success: bool
    booking_id: str | None = None
    reservation_id: str | None = None
    hold_id: str | None = None
    status: str = "pending"
    customer_info: dict[str, Any] | None = None
    product_info: dict[str, Any] | None = None
    booking_date: datetime | None = None
    expires_at: datetime | None = None
    time_slot: str | None = None
    quantity: int | None = None
    pricing: dict[str, Any] | None = None
    vouchers: list[dict[str, Any]] | None = None
    confirmation_code: str | None = None
    supplier_reference: str | None = None
    cancellation_info: dict[str, Any] | None = None
    timeline: list[dict[str, Any]] | None = None
    error_message: str | None = None
    error_code: str | None = None
    provider: str = "unknown"
    raw_response: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(cls, data: dict[str, Any]) -> "BookingResponse":
        return cls(
            success=True,
            booking_id=_str_or_none(data.get("booking_id")),
            reservation_id=_str_or_none(data.get("reservation_id")),
            hold_id=_str_or_none(data.get("hold_id")),
            status=data.get("status", "confirmed"),
            customer_info=data.get("customer_info"),
            product_info=data.get("product_info"),
            booking_date=parse_local(data.get("booking_date")),
            expires_at=parse_datetime(data.get("expires_at")),
            time_slot=data.get("time_slot"),
            quantity=data.get("quantity"),
            pricing=data.get("pricing"),
            vouchers=data.get("vouchers"),
            confirmation_code=_str_or_none(data.get("confirmation_code")),
            supplier_reference=_str_or_none(data.get("supplier_reference")),
            timeline=data.get("timeline"),
            provider=data.get("provider", "unknown"),
            raw_response=data.get("raw_response") or {},
            metadata=data.get("metadata") or {},
        )

    @classmethod
    def error(
        cls,
        message: str,
        code: str | None = None,
        metadata: dict[str, Any] | None = None,
        provider: str = "unknown",
    ) -> "BookingResponse":
        return cls(
            success=False,
            status="failed",
            error_message=message,
            error_code=code,
            provider=provider,
            metadata=metadata or {},
        )

    @classmethod
    def cancelled(cls, data: dict[str, Any]) -> "BookingResponse":
        return cls(
            success=True,
            booking_id=_str_or_none(data.get("booking_id")),
            status="cancelled",
            cancellation_info=data.get("cancellation_info"),
            timeline=data.get("timeline"),
            provider=data.get("provider", "unknown"),
            raw_response=data.get("raw_response") or {},
            metadata=data.get("metadata") or {},
        )

    @classmethod
    def hold(cls, data: dict[str, Any]) -> "BookingResponse":
        hold_id = _str_or_none(data.get("hold_id"))
        return cls(
            success=True,
            hold_id=hold_id,
            reservation_id=_str_or_none(data.get("reservation_id")) or hold_id,
            status="hold",
            expires_at=parse_datetime(data.get("expires_at")),
            product_info=data.get("product_info"),
            booking_date=parse_local(data.get("booking_date")),
            time_slot=data.get("time_slot"),
            quantity=data.get("quantity"),
            pricing=data.get("pricing"),
            provider=data.get("provider", "unknown"),
            raw_response=data.get("raw_response") or {},
            metadata=data.get("metadata") or {},
        )

    @classmethod
    def from_redeam_hold(cls, hold_data: dict[str, Any]) -> "BookingResponse":
        hold = hold_data.get("hold", hold_data)
        return cls.hold(
            {
                "hold_id": hold.get("id"),
                "expires_at": hold.get("expires"),
                "quantity": len(hold.get("items") or []),
                "provider": "redeam",
                "raw_response": hold_data,
            }
        )

    @classmethod
    def from_redeam_booking(cls, booking_data: dict[str, Any]) -> "BookingResponse":
        booking = booking_data.get("booking", booking_data)
        supplier = (booking.get("ext") or {}).get("supplier") or {}
        return cls.succeeded(
            {
                "booking_id": booking.get("id"),
                "status": "confirmed",
                "supplier_reference": supplier.get("reference"),
                "customer_info": booking.get("customer"),
                "timeline": booking.get("timeline"),
                "provider": "redeam",
                "raw_response": booking_data,
            }
        )

    @classmethod
    def from_smartorder_booking(cls, order_data: dict[str, Any]) -> "BookingResponse":
        galaxy_order_id = order_data.get("GalaxyOrderId") or order_data.get("GalaxyOrderID")
        return cls.succeeded(
            {
                "booking_id": smartorder_order_id(order_data),
                "confirmation_code": order_data.get("ConfirmationNumber") or galaxy_order_id,
                "status": "confirmed",
                "quantity": order_data.get("Quantity"),
                "pricing": {
                    "total": order_data.get("TotalPrice"),
                    "currency": order_data.get("Currency", "USD"),
                },
                "provider": "smartorder",
                "raw_response": order_data,
                "metadata": {"galaxy_order_id": galaxy_order_id},
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "booking_id": self.booking_id,
            "reservation_id": self.reservation_id,
            "hold_id": self.hold_id,
            "status": self.status,
            "customer_info": self.customer_info,
            "product_info": self.product_info,
            "booking_date": to_iso(self.booking_date),
            "expires_at": to_iso(self.expires_at),
            "time_slot": self.time_slot,
            "quantity": self.quantity,
            "pricing": self.pricing,
            "vouchers": self.vouchers,
            "confirmation_code": self.confirmation_code,
            "supplier_reference": self.supplier_reference,
            "cancellation_info": self.cancellation_info,
            "timeline": self.timeline,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "provider": self.provider,
            "raw_response": self.raw_response,
            "metadata": self.metadata,
        }

    def is_successful(self) -> bool:
        return self.success

    def is_confirmed(self) -> bool:
        return self.success and self.status == "confirmed"

    def is_pending(self) -> bool:
        return self.success and self.status == "pending"

    def is_hold(self) -> bool:
        return self.success and self.status == "hold"

    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(timezone.utc))

    @property
    def total_price(self) -> float | None:
        return (self.pricing or {}).get("total")

    @property
    def currency(self) -> str:
        return (self.pricing or {}).get("currency", "USD")

    @property
    def customer_name(self) -> str | None:
        if not self.customer_info:
            return None
        info = self.customer_info
        first = info.get("first_name") or info.get("firstName") or ""
        last = info.get("last_name") or info.get("lastName") or ""
        return f"{first} {last}".strip()

    @property
    def product_name(self) -> str | None:
        return (self.product_info or {}).get("name")

    @property
    def effective_reservation_id(self) -> str | None:
        return self.reservation_id or self.hold_id or self.booking_id


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def smartorder_order_id(order_data: dict[str, Any]) -> str | None:
    """External order id of a PlaceOrder / GetExistingOrderId reply."""
    booking = order_data.get("booking")
    candidates = (
        order_data.get("ExternalOrderId"),
        order_data.get("OrderID"),
        order_data.get("order_id"),
        booking.get("id") if isinstance(booking, dict) else None,
        order_data.get("id"),
    )
    for candidate in candidates:
        if candidate:
            return str(candidate)
    return None
