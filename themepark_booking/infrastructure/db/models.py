import enum
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from themepark_booking.domain.dates import as_utc
from themepark_booking.infrastructure.db.base import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# Set locally on cancel or vendor error; these win over the vendor payload.
TERMINAL_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.FAILED.value)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _either_case(data: dict[str, Any], key: str) -> Any:
    """SmartOrder replies use PascalCase keys; stored rows may be camelCase."""
    value = data.get(key)
    if value is None:
        value = data.get(key[:1].upper() + key[1:])
    return value


def _resolve_voucher_url(voucher: str | None, base_url: str | None) -> str:
    if not voucher:
        return ""
    if voucher.startswith(("http://", "https://")):
        return voucher
    if base_url:
        return f"{base_url.rstrip('/')}/{voucher.lstrip('/')}"
    return voucher


class OrderDetailsMixin:
    """Columns and helpers shared by both order-details tables."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    booking_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    voucher: Mapped[str | None] = mapped_column(String(255), nullable=True)
    confirmation_number: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    supplier_reference: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(50), default=BookingStatus.PENDING.value, nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    deleted_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def voucher_url(self, base_url: str | None = None) -> str:
        return _resolve_voucher_url(self.voucher, base_url)

    @property
    def booking_status(self) -> str | None:
        if self.status in TERMINAL_STATUSES or not self.booking_data:
            return self.status
        return self.booking_data.get("status") or self.status

    def is_cancelled(self) -> bool:
        return (self.booking_status or "").lower() in ("cancelled", "canceled")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, deleted_by: int | None = None, now: datetime | None = None) -> None:
        self.deleted_at = now or _now()
        self.deleted_by = deleted_by


class OrderDetailsRedeam(OrderDetailsMixin, Base):
    """Persisted Redeam booking (Disney or United Parks) for one order."""

    __tablename__ = "order_details_redeam"
    __table_args__ = (
        Index("ix_order_details_redeam_order_supplier", "order_id", "supplier_type"),
        Index("ix_order_details_redeam_status_created", "status", "created_at"),
        Index("ix_order_details_redeam_hold", "hold_expires_at", "hold_id"),
    )

    reference_number: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    hold_id: Mapped[str | None] = mapped_column(String(150), nullable=True, index=True)
    hold_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    booking_id: Mapped[str | None] = mapped_column(String(150), nullable=True, index=True)
    supplier_type: Mapped[str] = mapped_column(String(50), default="redeam", nullable=False, index=True)

    @property
    def is_disney(self) -> bool:
        return "disney" in (self.supplier_type or "").lower()

    @property
    def is_united_parks(self) -> bool:
        return "united" in (self.supplier_type or "").lower()

    def is_hold_expired(self, now: datetime | None = None) -> bool:
        if self.hold_expires_at is None:
            return False
        # SQLite hands back naive datetimes; they were written as UTC.
        return as_utc(self.hold_expires_at) <= (now or _now())

    def is_on_hold(self, now: datetime | None = None) -> bool:
        return bool(self.hold_id) and not self.is_hold_expired(now)

    def effective_status(self, now: datetime | None = None) -> str:
        if self.status == BookingStatus.PENDING.value and self.hold_id:
            return "hold_expired" if self.is_hold_expired(now) else "on_hold"
        return self.status

    def booking_timeline(self) -> list[dict[str, Any]]:
        if not self.booking_data:
            return []
        return self.booking_data.get("timeline") or []

    def resolved_supplier_reference(self) -> str | None:
        if self.supplier_reference:
            return self.supplier_reference
        if not self.booking_data:
            return None
        supplier = (self.booking_data.get("ext") or {}).get("supplier") or {}
        return supplier.get("reference")

    def confirmation_details(self, base_url: str | None = None) -> dict[str, Any]:
        if not self.booking_data:
            return {}
        return {
            "reference_number": self.reference_number,
            "booking_id": self.booking_id,
            "supplier_reference": self.resolved_supplier_reference(),
            "confirmation_number": self.confirmation_number,
            "status": self.booking_status,
            "voucher_url": self.voucher_url(base_url),
        }

    def is_confirmed(self) -> bool:
        return (self.booking_status or "").lower() in ("confirmed", "booked", "completed")


class OrderDetailsUniversal(OrderDetailsMixin, Base):
    """Persisted SmartOrder (Universal) order for one order."""

    __tablename__ = "order_details_universal"
    __table_args__ = (
        Index("ix_order_details_universal_status_created", "status", "created_at"),
        Index("ix_order_details_universal_galaxy", "galaxy_order_id", "external_order_id"),
    )

    galaxy_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    external_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    @property
    def booking_status(self) -> str | None:
        if self.status in TERMINAL_STATUSES or not self.booking_data:
            return self.status
        return (
            self.booking_data.get("status")
            or self.booking_data.get("Status")
            or self.booking_data.get("orderStatus")
            or self.status
        )

    @property
    def has_created_ticket_responses(self) -> bool:
        return bool(_either_case(self.booking_data or {}, "createdTicketResponses"))

    @property
    def ticket_count(self) -> int:
        return len(self.created_ticket_responses())

    def created_ticket_responses(self) -> list[dict[str, Any]]:
        return list(_either_case(self.booking_data or {}, "createdTicketResponses") or [])

    def tickets_info(self) -> list[dict[str, Any]]:
        return [
            {
                "ticket_id": _either_case(ticket, "ticketId"),
                "barcode": _either_case(ticket, "barcode"),
                "product_name": _either_case(ticket, "productName"),
                "guest_name": _either_case(ticket, "guestName"),
                "visit_date": _either_case(ticket, "visitDate"),
                "status": _either_case(ticket, "status"),
            }
            for ticket in self.created_ticket_responses()
        ]

    def galaxy_order_details(self) -> dict[str, Any]:
        if not self.booking_data:
            return {}
        return {
            "galaxy_order_id": self.galaxy_order_id,
            "external_order_id": self.external_order_id,
            "status": self.booking_status,
            "confirmation_number": self.confirmation_number,
            "supplier_reference": self.supplier_reference,
            "ticket_count": self.ticket_count,
        }

    def confirmation_details(self, base_url: str | None = None) -> dict[str, Any]:
        return {
            "galaxy_order_id": self.galaxy_order_id,
            "external_order_id": self.external_order_id,
            "confirmation_number": self.confirmation_number,
            "status": self.booking_status,
            "voucher_url": self.voucher_url(base_url),
            "tickets_created": self.has_created_ticket_responses,
            "ticket_count": self.ticket_count,
        }

    def is_confirmed(self) -> bool:
        return (self.booking_status or "").lower() in ("confirmed", "booked", "completed", "success")

    def is_cancelled(self) -> bool:
        return (self.booking_status or "").lower() in ("cancelled", "canceled", "failed")

    def is_pending(self) -> bool:
        return (self.booking_status or "").lower() in ("pending", "processing", "submitted")


class SmartOrderTokenModel(Base):
    __tablename__ = "smartorder_auth_tokens"

    cache_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    access_token: Mapped[str] = mapped_column(String(4096), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
