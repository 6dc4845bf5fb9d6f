import time
from dataclasses import replace
from datetime import timedelta
from typing import Any, Iterator

from pybreaker import CircuitBreaker

from themepark_booking.application.dtos import (
    BookingRequest,
    BookingResponse,
    Price,
    Product,
    ProductSyncResult,
    Rate,
    VoucherData,
)
from themepark_booking.application.interfaces.clock import Clock
from themepark_booking.domain.dates import parse_datetime, parse_local, to_iso
from themepark_booking.domain.errors import AdapterError, BookingError, ConfigurationError
from themepark_booking.infrastructure.gateways.base_adapter import BaseAdapter, error_response, matches_criteria
from themepark_booking.infrastructure.http.redeam_client import DEFAULT_REDEAM_BASE_URL, RedeamHttpClient

PARK_TYPES = ("disney", "united_parks")


class RedeamAdapter(BaseAdapter):
    """
    Redeam booking adapter for Walt Disney World and United Parks.

    Both parks share the Redeam API and differ only in how the supplier is
    chosen: Disney is always scoped to its configured supplier id, United
    Parks takes the supplier id per call (``supplier_id`` criteria/option)
    and falls back to the configured one.

    Bookings are two-step: ``create_booking`` places a hold, and
    ``confirm_booking`` turns a live hold into a booking.
    """

    def __init__(
        self,
        park_type: str,
        config: dict[str, Any],
        client: RedeamHttpClient | None = None,
        clock: Clock | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        if park_type not in PARK_TYPES:
            raise ConfigurationError(f"Unknown Redeam park type '{park_type}'")
        self._park_type = park_type
        super().__init__(config, clock)
        self.validate_required_config()
        self._client = client or RedeamHttpClient(
            api_key=self.get_config("api_key"),
            api_secret=self.get_config("api_secret"),
            base_url=self.get_config("base_url", DEFAULT_REDEAM_BASE_URL),
            timeout_seconds=float(self.get_config("timeout", 600)),
            verify_ssl=bool(self.get_config("verify_ssl", True)),
            breaker=breaker,
        )

    @property
    def name(self) -> str:
        return f"redeam_{self._park_type}"

    @property
    def provider(self) -> str:
        return "redeam"

    @property
    def park_type(self) -> str:
        return self._park_type

    def required_config_keys(self) -> list[str]:
        keys = ["api_key", "api_secret"]
        if self._park_type == "disney":
            keys.append("supplier_id")
        return keys

    def _supplier_id(self, supplier_id: str | None = None) -> str:
        if self._park_type == "disney":
            return str(self.get_config("supplier_id"))
        resolved = supplier_id or self.get_config("supplier_id")
        if not resolved:
            raise ConfigurationError("supplier_id is required for United Parks")
        return str(resolved)

    def _product_path(self, product_id: str, supplier_id: str | None = None) -> str:
        return f"suppliers/{self._supplier_id(supplier_id)}/products/{product_id}"

    # === Raw vendor reads ===

    def list_suppliers(self) -> list[dict[str, Any]]:
        result = self._client.get("suppliers")
        self.raise_for_vendor_error(result)
        return result.get("suppliers") or []

    def get_supplier(self, supplier_id: str | None = None) -> dict[str, Any]:
        result = self._client.get(f"suppliers/{self._supplier_id(supplier_id)}")
        self.raise_for_vendor_error(result)
        return result.get("supplier") or {}

    def fetch_products(self, supplier_id: str | None = None) -> list[dict[str, Any]]:
        result = self._client.get(f"suppliers/{self._supplier_id(supplier_id)}/products")
        self.raise_for_vendor_error(result)
        return result.get("products") or []

    def get_product_rates(self, product_id: str, supplier_id: str | None = None) -> list[Rate]:
        try:
            result = self._client.get(f"{self._product_path(product_id, supplier_id)}/rates")
            self.raise_for_vendor_error(result)
            return [Rate.from_redeam_data(rate) for rate in result.get("rates") or []]
        except Exception as exc:
            self.log_error("get_product_rates", exc, product_id=product_id)
            return []

    def get_product_rate(self, product_id: str, rate_id: str, supplier_id: str | None = None) -> Rate | None:
        try:
            result = self._client.get(f"{self._product_path(product_id, supplier_id)}/rates/{rate_id}")
            self.raise_for_vendor_error(result)
            rate = result.get("rate")
            return Rate.from_redeam_data(rate) if rate else None
        except Exception as exc:
            self.log_error("get_product_rate", exc, product_id=product_id, rate_id=rate_id)
            return None

    def get_availabilities(self, product_id: str, start: str, end: str, supplier_id: str | None = None) -> dict[str, Any]:
        result = self._client.get(
            f"{self._product_path(product_id, supplier_id)}/availabilities",
            {"start": start, "end": end},
        )
        self.raise_for_vendor_error(result)
        return result

    def get_availability(self, product_id: str, at: str, quantity: int = 1, supplier_id: str | None = None) -> dict[str, Any]:
        """Single point-in-time availability check (``.../availability?at&qty``)."""
        try:
            result = self._client.get(
                f"{self._product_path(product_id, supplier_id)}/availability",
                {"at": at, "qty": quantity},
            )
            self.raise_for_vendor_error(result)
            return result
        except Exception as exc:
            self.log_error("get_availability", exc, product_id=product_id, at=at)
            return {}

    def get_price_schedule(
        self,
        product_id: str,
        start_date: str,
        end_date: str,
        rate_id: str | None = None,
        supplier_id: str | None = None,
    ) -> list[Price]:
        params = {"start_date": start_date, "end_date": end_date}
        if rate_id:
            params["rate_id"] = rate_id
        try:
            result = self._client.get(f"{self._product_path(product_id, supplier_id)}/pricing/schedule", params)
            self.raise_for_vendor_error(result)
        except Exception as exc:
            self.log_error("get_price_schedule", exc, product_id=product_id)
            return []

        prices: list[Price] = []
        # Schedule is keyed by rate id.
        for schedule_rate_id, schedule in result.items():
            if rate_id and schedule_rate_id != rate_id:
                continue
            entries = schedule.get("prices", []) if isinstance(schedule, dict) else schedule
            for entry in entries or []:
                prices.append(
                    Price.from_redeam_price_data({**entry, "rateId": schedule_rate_id, "productId": product_id})
                )
        return prices

    # === Catalog ===

    def test_connection(self) -> bool:
        try:
            if self._park_type == "disney" or self.get_config("supplier_id"):
                self.get_supplier()
            else:
                self.list_suppliers()
            return True
        except Exception as exc:
            self._logger.warning(
                f"Connection test failed for adapter {self.name}",
                extra={"adapter": self.name, "error": str(exc)},
            )
            return False

    def _all_raw_products(self, supplier_id: str | None = None) -> list[dict[str, Any]]:
        if self._park_type == "united_parks" and not (supplier_id or self.get_config("supplier_id")):
            raw: list[dict[str, Any]] = []
            for supplier in self.list_suppliers():
                for product in self.fetch_products(str(supplier.get("id"))):
                    raw.append({**product, "supplier_id": product.get("supplier_id") or supplier.get("id")})
            return raw
        return self.fetch_products(supplier_id)

    def sync_products(self) -> ProductSyncResult:
        started = time.monotonic()
        try:
            self.validate_required_config()
            self.log_operation("sync_products_start")
            raw_products = self._all_raw_products()
            products: list[Product] = []
            skipped = failed = 0
            warnings: list[str] = []
            for data in raw_products:
                try:
                    product = self.transform_product(data)
                except (KeyError, TypeError, ValueError) as exc:
                    failed += 1
                    warnings.append(f"Product {data.get('id', 'unknown')}: {exc}")
                    self._logger.warning(
                        "Failed to sync product",
                        extra={"adapter": self.name, "product_id": data.get("id", "unknown"), "error": str(exc)},
                    )
                    continue
                if not product.is_active:
                    skipped += 1
                    continue
                products.append(product)

            duration = int(time.monotonic() - started)
            self.set_last_sync_timestamp(self._clock.now().timestamp())
            self.log_operation(
                "sync_products_complete",
                synced=len(products),
                skipped=skipped,
                failed=failed,
                duration=duration,
            )
            return ProductSyncResult.succeeded(
                total_products=len(raw_products),
                synced_products=len(products),
                skipped_products=skipped,
                failed_products=failed,
                warnings=warnings,
                sync_duration=duration,
                metadata={"park_type": self._park_type},
                products=products,
            )
        except Exception as exc:
            self.log_error("sync_products", exc)
            return ProductSyncResult.failure([str(exc)], metadata={"park_type": self._park_type})

    def get_product(self, remote_id: str) -> Product | None:
        try:
            result = self._client.get(self._product_path(remote_id))
            self.raise_for_vendor_error(result)
            data = result.get("product")
            return self.transform_product(data) if data else None
        except Exception as exc:
            self.log_error("get_product", exc, product_id=remote_id)
            return None

    def search_products(self, criteria: dict[str, Any] | None = None) -> list[Product]:
        criteria = criteria or {}
        try:
            products = [self.transform_product(data) for data in self._all_raw_products(criteria.get("supplier_id"))]
        except Exception as exc:
            self.log_error("search_products", exc, criteria=criteria)
            return []
        return [product for product in products if matches_criteria(product, criteria)]

    def transform_product(self, data: dict[str, Any]) -> Product:
        return Product(
            remote_id=str(data["id"]),
            name=data["name"],
            description=data.get("description") or "",
            provider="redeam",
            category=data.get("category") or "general",
            pricing=data.get("pricing") or {},
            options=data.get("options") or {},
            is_active=data.get("active", True),
            image_url=data.get("image"),
            location=data.get("location") if isinstance(data.get("location"), dict) else None,
            metadata={"park_type": self._park_type, "supplier_id": data.get("supplier_id") or data.get("supplierId")},
            last_updated=self._clock.now(),
        )

    # === Availability and pricing ===

    def _slots(self, product_id: str, date: str, supplier_id: str | None = None) -> Iterator[dict[str, Any]]:
        day = parse_local(date)
        start = day.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1) - timedelta(seconds=1)
        result = self.get_availabilities(product_id, to_iso(start), to_iso(end), supplier_id)
        yield from flatten_availability(result)

    def get_available_time_slots(self, product_id: str, date: str) -> list[dict[str, Any]]:
        try:
            return [
                {key: slot[key] for key in ("time", "availability_id", "capacity", "rate_id")}
                for slot in self._slots(product_id, date)
                if slot["date"] == date
            ]
        except Exception as exc:
            self.log_error("get_available_time_slots", exc, product_id=product_id, date=date)
            return []

    def check_availability(self, product_id: str, date: str, time: str | None = None, quantity: int = 1) -> bool:
        try:
            for slot in self._slots(product_id, date):
                if slot["date"] != date or (time is not None and slot["time"] != time):
                    continue
                if (slot["capacity"] or 0) >= quantity:
                    return True
            return False
        except Exception as exc:
            self.log_error(
                "check_availability", exc, product_id=product_id, date=date, time=time, quantity=quantity
            )
            return False

    def get_pricing(self, product_id: str, date: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        options = options or {}
        try:
            day = parse_local(date)
            start = day.replace(hour=0, minute=0, second=0, microsecond=0)
            result = self.get_availabilities(
                product_id,
                to_iso(start),
                to_iso(start + timedelta(days=1) - timedelta(seconds=1)),
                options.get("supplier_id"),
            )
        except Exception as exc:
            self.log_error("get_pricing", exc, product_id=product_id, date=date)
            return {}

        by_rate = (result.get("availabilities") or {}).get("byRate") or {}
        return {
            rate_id: {
                "rate_id": rate_id,
                "price": rate_data.get("price"),
                "currency": rate_data.get("currency", "USD"),
                "availability": rate_data.get("availability") or [],
            }
            for rate_id, rate_data in by_rate.items()
        }

    # === Booking lifecycle ===

    def create_booking(self, request: BookingRequest) -> BookingResponse:
        try:
            self.validate_required_config()
            result = self._client.post("holds", {"hold": request.to_redeam_hold_format()})
            self.raise_for_vendor_error(result, booking=True)
            hold = result.get("hold") or {}
            hold_id = hold.get("id")
            if not hold_id:
                raise BookingError("Hold response did not include a hold id", code="INVALID_HOLD")

            self.log_operation("create_booking", hold_id=hold_id, product_id=request.product_id)
            return BookingResponse.succeeded(
                {
                    "hold_id": hold_id,
                    "reservation_id": hold_id,
                    "status": "pending",
                    "expires_at": hold.get("expires"),
                    "booking_date": request.date,
                    "time_slot": request.time_slot,
                    "quantity": request.quantity,
                    "customer_info": request.customer_info,
                    "product_info": {"id": request.product_id, "rate_id": request.rate_id},
                    "provider": self.provider,
                    "raw_response": result,
                    "metadata": {"hold_expires_at": hold.get("expires"), "park_type": self._park_type},
                }
            )
        except Exception as exc:
            self.log_error("create_booking", exc, product_id=request.product_id, date=request.to_dict()["date"])
            return error_response(exc, self.provider)

    def confirm_booking(self, reservation_id: str, payment_data: dict[str, Any] | None = None) -> BookingResponse:
        payment_data = payment_data or {}
        try:
            hold_result = self._client.get(f"holds/{reservation_id}")
            self.raise_for_vendor_error(hold_result, booking=True)
            hold = hold_result.get("hold") or {}
            expires_at = parse_datetime(hold.get("expires"))
            if expires_at is None or expires_at <= self._clock.now():
                raise BookingError("Reservation hold has expired", code="HOLD_EXPIRED")

            request = self._request_from_hold(hold, payment_data)
            result = self._client.post("bookings", {"booking": request.to_redeam_booking_format(reservation_id)})
            self.raise_for_vendor_error(result, booking=True)
            booking = result.get("booking") or {}
            if not booking.get("id"):
                raise BookingError("Booking response did not include a booking id", code="INVALID_BOOKING")

            self.log_operation("confirm_booking", hold_id=reservation_id, booking_id=booking["id"])
            response = BookingResponse.from_redeam_booking(result)
            return replace(
                response,
                reservation_id=reservation_id,
                hold_id=reservation_id,
                booking_date=request.date,
                quantity=request.quantity,
                product_info={"id": request.product_id, "rate_id": request.rate_id},
                metadata={"booking_details": booking, "park_type": self._park_type},
            )
        except Exception as exc:
            self.log_error("confirm_booking", exc, reservation_id=reservation_id)
            return error_response(exc, self.provider)

    def _request_from_hold(self, hold: dict[str, Any], payment_data: dict[str, Any]) -> BookingRequest:
        items = hold.get("items") or [{}]
        first = items[0]
        return BookingRequest(
            product_id=str(first.get("productId") or ""),
            date=first.get("at") or self._clock.now(),
            quantity=len(hold.get("items") or []) or 1,
            customer_info=payment_data.get("customer_info") or {},
            rate_id=first.get("rateId"),
            availability_id=first.get("availabilityId"),
            reference_id=payment_data.get("reference_id"),
            metadata=payment_data.get("metadata") or {},
        )

    def release_hold(self, hold_id: str) -> bool:
        try:
            result = self._client.delete(f"holds/{hold_id}")
            self.raise_for_vendor_error(result, booking=True)
            self.log_operation("release_hold", hold_id=hold_id)
            return True
        except Exception as exc:
            self.log_error("release_hold", exc, hold_id=hold_id)
            return False

    def cancel_booking(self, booking_id: str, reason: str = "") -> BookingResponse:
        try:
            result = self._client.put(f"bookings/cancel/{booking_id}")
            self.raise_for_vendor_error(result, booking=True)
            self.log_operation("cancel_booking", booking_id=booking_id, reason=reason)
            return BookingResponse.cancelled(
                {
                    "booking_id": booking_id,
                    "cancellation_info": {"reason": reason, "cancelled_at": to_iso(self._clock.now())},
                    "provider": self.provider,
                    "raw_response": result,
                    "metadata": {"park_type": self._park_type},
                }
            )
        except Exception as exc:
            self.log_error("cancel_booking", exc, booking_id=booking_id, reason=reason)
            return error_response(exc, self.provider)

    def get_booking(self, booking_id: str) -> BookingResponse | None:
        try:
            result = self._client.get(f"bookings/{booking_id}")
            self.raise_for_vendor_error(result)
        except Exception as exc:
            self.log_error("get_booking", exc, booking_id=booking_id)
            return None
        booking = result.get("booking")
        if not booking:
            return None

        items = booking.get("items") or []
        first = items[0] if items else {}
        status = str(booking.get("status") or "confirmed").lower()
        response = BookingResponse.from_redeam_booking(result)
        return replace(
            response,
            booking_id=str(booking.get("id") or booking_id),
            status="cancelled" if status in ("cancelled", "canceled") else "confirmed",
            booking_date=parse_local(first.get("at")),
            quantity=len(items) or None,
            product_info={"id": first.get("productId"), "name": first.get("productName") or booking.get("productName")},
            metadata={"booking_details": booking, "park_type": self._park_type},
        )

    def generate_voucher(self, booking_id: str) -> VoucherData:
        booking = self.get_booking(booking_id)
        if booking is None:
            error = AdapterError(f"Booking not found: {booking_id}", code="BOOKING_NOT_FOUND")
            self.log_error("generate_voucher", error, booking_id=booking_id)
            raise error

        return VoucherData(
            booking_id=booking_id,
            voucher_number=f"VCH-{self.random_code()}-{booking_id[-4:]}",
            qr_code=f"QR-{booking_id}",
            barcode_data=f"BC-{booking_id}",
            customer_info=booking.customer_info or {},
            product_info=booking.product_info or {},
            booking_details={
                "date": booking.booking_date.date().isoformat() if booking.booking_date else None,
                "time_slot": booking.booking_date.strftime("%H:%M") if booking.booking_date else None,
                "quantity": booking.quantity,
                "supplier_reference": booking.supplier_reference,
            },
            metadata={
                "provider": self.provider,
                "park_type": self._park_type,
                "generated_at": to_iso(self._clock.now()),
            },
        )


def flatten_availability(payload: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Flatten ``availabilities.byRate.<rateId>.availability[]`` into slot records."""
    by_rate = (payload.get("availabilities") or {}).get("byRate") or {}
    for rate_id, rate_data in by_rate.items():
        for slot in (rate_data or {}).get("availability") or []:
            start = parse_local(slot.get("start"))
            if start is None:
                continue
            yield {
                "date": start.date().isoformat(),
                "time": start.strftime("%H:%M"),
                "availability_id": slot.get("id"),
                "capacity": slot.get("capacity", 0),
                "rate_id": rate_id,
            }
