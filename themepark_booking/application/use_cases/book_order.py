import logging
from typing import Any

from themepark_booking.application.booking_manager import BookingManager
from themepark_booking.application.dtos import BookingRequest, BookingResponse, VoucherData
from themepark_booking.application.interfaces.clock import Clock, SystemClock
from themepark_booking.domain.dates import as_utc
from themepark_booking.domain.errors import BookingError
from themepark_booking.infrastructure.db.models import BookingStatus, OrderDetailsRedeam, OrderDetailsUniversal
from themepark_booking.infrastructure.db.repositories.order_details_repo_sql import OrderDetailsRepoSQL
from themepark_booking.infrastructure.vouchers.voucher_generator import VoucherGenerator

UNIVERSAL_ADAPTER = "smartorder"


class BookOrderUseCase:
    """
    Drives an order's theme-park booking and records every outcome.

    Redeam orders go hold -> confirm; Universal orders are placed in one
    step. The caller owns the session/transaction the repository is bound to.
    """

    def __init__(
        self,
        booking_manager: BookingManager,
        order_details_repo: OrderDetailsRepoSQL,
        voucher_generator: VoucherGenerator | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._booking_manager = booking_manager
        self._order_details_repo = order_details_repo
        self._voucher_generator = voucher_generator
        self._clock = clock or SystemClock()
        self._logger = logging.getLogger(__name__)

    # === Redeam ===

    def hold(self, order_id: int, adapter_name: str, request: BookingRequest) -> BookingResponse:
        supplier_type = _supplier_type(adapter_name)
        response = self._booking_manager.create_booking(adapter_name, request)
        if not response.success:
            self._order_details_repo.save_redeam(
                order_id,
                supplier_type,
                reference_number=request.reference_id,
                status=BookingStatus.FAILED.value,
                booking_data=_error_data(response),
            )
            self._logger.warning(
                "Hold creation failed",
                extra={"order_id": order_id, "adapter": adapter_name, "error_code": response.error_code},
            )
            return response

        self._order_details_repo.save_redeam(
            order_id,
            supplier_type,
            reference_number=request.reference_id,
            hold_id=response.hold_id,
            hold_expires_at=as_utc(response.expires_at) if response.expires_at else None,
            status=BookingStatus.PENDING.value,
            booking_data=response.raw_response,
        )
        self._logger.info(
            "Hold recorded",
            extra={"order_id": order_id, "adapter": adapter_name, "hold_id": response.hold_id},
        )
        return response

    def confirm(self, order_id: int, adapter_name: str, payment_data: dict[str, Any] | None = None) -> BookingResponse:
        row = self._order_details_repo.redeam_for_order(order_id, _supplier_type(adapter_name))
        if row is None or not row.hold_id:
            raise BookingError(f"No hold recorded for order {order_id}", code="HOLD_NOT_FOUND")
        if row.is_hold_expired(self._clock.now()):
            self._logger.warning("Hold expired before confirmation", extra={"order_id": order_id, "hold_id": row.hold_id})
            return BookingResponse.error("Reservation hold has expired", "HOLD_EXPIRED", provider="redeam")

        response = self._booking_manager.confirm_booking(adapter_name, row.hold_id, payment_data)
        if not response.success:
            # The row stays pending; its hold may still be confirmable.
            return response

        booking = response.metadata.get("booking_details") or response.raw_response.get("booking") or {}
        self._order_details_repo.save_redeam(
            order_id,
            row.supplier_type,
            booking_id=response.booking_id,
            supplier_reference=response.supplier_reference,
            confirmation_number=response.supplier_reference or response.booking_id,
            status=BookingStatus.CONFIRMED.value,
            booking_data=booking,
        )
        self._logger.info(
            "Booking confirmed",
            extra={"order_id": order_id, "hold_id": row.hold_id, "booking_id": response.booking_id},
        )
        return response

    # === Universal ===

    def place_order(self, order_id: int, request: BookingRequest) -> BookingResponse:
        response = self._booking_manager.create_booking(UNIVERSAL_ADAPTER, request)
        if not response.success:
            self._order_details_repo.save_universal(
                order_id,
                status=BookingStatus.FAILED.value,
                booking_data=_error_data(response),
            )
            return response

        self._order_details_repo.save_universal(
            order_id,
            galaxy_order_id=response.metadata.get("galaxy_order_id"),
            external_order_id=response.metadata.get("external_order_id") or response.booking_id,
            confirmation_number=response.confirmation_code,
            supplier_reference=response.booking_id,
            status=BookingStatus.CONFIRMED.value,
            booking_data=response.metadata.get("booking_details") or response.raw_response,
        )
        self._logger.info("Order placed", extra={"order_id": order_id, "booking_id": response.booking_id})
        return response

    # === Shared ===

    def cancel(self, order_id: int, adapter_name: str, reason: str = "") -> BookingResponse:
        row = self._row_for(order_id, adapter_name)
        booking_id = _booking_id(row) if row is not None else None
        if not booking_id:
            raise BookingError(f"No booking recorded for order {order_id}", code="BOOKING_NOT_FOUND")

        response = self._booking_manager.cancel_booking(adapter_name, booking_id, reason)
        if response.success:
            row.status = BookingStatus.CANCELLED.value
            row.booking_data = {
                **(row.booking_data or {}),
                "status": BookingStatus.CANCELLED.value,
                "cancellation": response.cancellation_info or {},
            }
            self._logger.info("Booking cancelled", extra={"order_id": order_id, "booking_id": booking_id})
        return response

    def attach_voucher(self, order_id: int, adapter_name: str, options: dict[str, Any] | None = None) -> VoucherData:
        if self._voucher_generator is None:
            raise BookingError("No voucher generator configured", code="VOUCHER_UNAVAILABLE")
        row = self._row_for(order_id, adapter_name)
        booking_id = _booking_id(row) if row is not None else None
        if not booking_id:
            raise BookingError(f"No booking recorded for order {order_id}", code="BOOKING_NOT_FOUND")

        voucher = self._booking_manager.generate_voucher(adapter_name, booking_id)
        rendered = self._voucher_generator.generate_voucher_with_pdf(voucher, options)
        row.voucher = rendered.download_url or rendered.pdf_path
        self._logger.info(
            "Voucher attached",
            extra={"order_id": order_id, "voucher_number": rendered.voucher_number, "voucher": row.voucher},
        )
        return rendered

    def _row_for(self, order_id: int, adapter_name: str) -> OrderDetailsRedeam | OrderDetailsUniversal | None:
        if adapter_name == UNIVERSAL_ADAPTER:
            return self._order_details_repo.universal_for_order(order_id)
        return self._order_details_repo.redeam_for_order(order_id, _supplier_type(adapter_name))


def _supplier_type(adapter_name: str) -> str:
    """``redeam.disney`` -> ``disney``."""
    return adapter_name.rsplit(".", 1)[-1]


def _booking_id(row: OrderDetailsRedeam | OrderDetailsUniversal) -> str | None:
    if isinstance(row, OrderDetailsUniversal):
        return row.external_order_id
    return row.booking_id


def _error_data(response: BookingResponse) -> dict[str, Any]:
    return {"status": BookingStatus.FAILED.value, "error": response.error_message, "error_code": response.error_code}
