"""Rates (purchasable variants of a product) and price points."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from themepark_booking.domain.dates import parse_datetime, parse_local, to_iso


@dataclass
class Rate:
    id: str
    name: str
    code: str
    option_id: str | None = None
    product_id: str | None = None
    product_duration: int | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    description: str | None = None
    pricing: dict[str, Any] = field(default_factory=dict)
    restrictions: dict[str, Any] = field(default_factory=dict)
    cancellation_policy: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    currency: str = "USD"
    metadata: dict[str, Any] = field(default_factory=dict)
    raw_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_redeam_data(cls, data: dict[str, Any]) -> "Rate":
        valid = data.get("valid") or {}
        ext = data.get("ext") or {}
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            code=data.get("code", ""),
            option_id=data.get("optionId"),
            product_id=data.get("productId"),
            product_duration=ext.get("disney-productDuration"),
            valid_from=parse_datetime(valid.get("from")),
            valid_until=parse_datetime(valid.get("until")),
            description=data.get("description"),
            pricing=data.get("pricing") or {},
            restrictions=data.get("restrictions") or {},
            cancellation_policy=data.get("cancellationPolicy") or {},
            is_active=data.get("active", True),
            currency=data.get("currency", "USD"),
            metadata=ext,
            raw_data=data,
        )

    @classmethod
    def from_smartorder_data(cls, data: dict[str, Any]) -> "Rate":
        return cls(
            id=str(data.get("RateID") or data.get("rate_id") or ""),
            name=data.get("RateName") or data.get("name") or "",
            code=data.get("RateCode") or data.get("code") or "",
            product_id=data.get("ProductID"),
            description=data.get("Description"),
            pricing={
                "base_price": data.get("BasePrice"),
                "total_price": data.get("TotalPrice"),
            },
            is_active=data.get("IsActive", True),
            currency=data.get("Currency", "USD"),
            raw_data=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "option_id": self.option_id,
            "product_id": self.product_id,
            "product_duration": self.product_duration,
            "valid_from": to_iso(self.valid_from),
            "valid_until": to_iso(self.valid_until),
            "description": self.description,
            "pricing": self.pricing,
            "restrictions": self.restrictions,
            "cancellation_policy": self.cancellation_policy,
            "is_active": self.is_active,
            "currency": self.currency,
            "metadata": self.metadata,
            "raw_data": self.raw_data,
        }

    def is_valid(self, at: datetime) -> bool:
        at = parse_datetime(at)
        if self.valid_from and at < self.valid_from:
            return False
        if self.valid_until and at > self.valid_until:
            return False
        return self.is_active

    def is_valid_for_date_range(self, start: datetime, end: datetime) -> bool:
        start, end = parse_datetime(start), parse_datetime(end)
        if self.valid_from and end < self.valid_from:
            return False
        if self.valid_until and start > self.valid_until:
            return False
        return self.is_active

    @property
    def base_price(self) -> float | None:
        value = self.pricing.get("base_price")
        return value if value is not None else self.pricing.get("price")

    @property
    def total_price(self) -> float | None:
        for key in ("total_price", "total"):
            if self.pricing.get(key) is not None:
                return self.pricing[key]
        return self.base_price

    def is_multi_day(self) -> bool:
        return bool(self.product_duration and self.product_duration > 1)

    @property
    def validity_period(self) -> str | None:
        if not self.valid_from or not self.valid_until:
            return None
        return f"{_human_date(self.valid_from)} to {_human_date(self.valid_until)}"


@dataclass
class Price:
    id: str
    rate_id: str | None = None
    product_id: str | None = None
    date: datetime | None = None
    time_slot: str | None = None
    base_price: float = 0.0
    total_price: float = 0.0
    taxes: list[dict[str, Any]] = field(default_factory=list)
    fees: list[dict[str, Any]] = field(default_factory=list)
    discounts: list[dict[str, Any]] = field(default_factory=list)
    currency: str = "USD"
    capacity: int | None = None
    available: int | None = None
    is_available: bool = True
    price_type: str | None = None
    age_groups: dict[str, float] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    raw_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_redeam_price_data(cls, data: dict[str, Any]) -> "Price":
        base = _first_number(data, "basePrice", "price")
        return cls(
            id=str(data.get("id") or _generated_id("price")),
            rate_id=data.get("rateId"),
            product_id=data.get("productId"),
            date=parse_local(data.get("date")),
            time_slot=data.get("timeSlot"),
            base_price=base,
            total_price=_first_number(data, "totalPrice", "total", "basePrice", "price"),
            taxes=data.get("taxes") or [],
            fees=data.get("fees") or [],
            discounts=data.get("discounts") or [],
            currency=data.get("currency", "USD"),
            capacity=data.get("capacity"),
            available=data.get("available"),
            is_available=data.get("isAvailable", True),
            price_type=data.get("priceType", "standard"),
            age_groups=data.get("ageGroups") or {},
            metadata=data.get("metadata") or {},
            raw_data=data,
        )

    @classmethod
    def from_smartorder_price_data(cls, data: dict[str, Any]) -> "Price":
        return cls(
            id=str(data.get("PriceID") or _generated_id("price")),
            product_id=data.get("ProductID"),
            date=parse_local(data.get("Date")),
            base_price=_first_number(data, "BasePrice"),
            total_price=_first_number(data, "TotalPrice", "Price", "BasePrice"),
            currency=data.get("Currency", "USD"),
            available=data.get("AvailableQuantity"),
            is_available=data.get("IsAvailable", True),
            price_type=data.get("PriceType", "standard"),
            raw_data=data,
        )

    @classmethod
    def from_availability_data(cls, data: dict[str, Any], rate_id: str | None = None) -> "Price":
        start = parse_local(data.get("start"))
        available = data.get("available", data.get("capacity"))
        return cls(
            id=str(data.get("id") or _generated_id("avail")),
            rate_id=rate_id,
            date=start,
            time_slot=start.strftime("%H:%M") if start else None,
            capacity=data.get("capacity"),
            available=available,
            is_available=(available or 0) > 0,
            raw_data=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rate_id": self.rate_id,
            "product_id": self.product_id,
            "date": self.date.date().isoformat() if self.date else None,
            "time_slot": self.time_slot,
            "base_price": self.base_price,
            "total_price": self.total_price,
            "taxes": self.taxes,
            "fees": self.fees,
            "discounts": self.discounts,
            "currency": self.currency,
            "capacity": self.capacity,
            "available": self.available,
            "is_available": self.is_available,
            "price_type": self.price_type,
            "age_groups": self.age_groups,
            "metadata": self.metadata,
            "raw_data": self.raw_data,
        }

    def formatted_price(self, include_currency: bool = True) -> str:
        formatted = f"{self.total_price:,.2f}"
        return f"{self.currency} {formatted}" if include_currency else formatted

    @property
    def tax_amount(self) -> float:
        return sum(float(item.get("amount", 0)) for item in self.taxes)

    @property
    def fee_amount(self) -> float:
        return sum(float(item.get("amount", 0)) for item in self.fees)

    @property
    def discount_amount(self) -> float:
        return sum(float(item.get("amount", 0)) for item in self.discounts)

    def is_available_for_quantity(self, quantity: int) -> bool:
        if not self.is_available:
            return False
        if self.available is not None:
            return self.available >= quantity
        if self.capacity is not None:
            return self.capacity >= quantity
        return True

    @property
    def remaining_capacity(self) -> int | None:
        return self.available if self.available is not None else self.capacity

    def is_for_date(self, on: datetime) -> bool:
        return self.date is not None and self.date.date() == on.date()

    def price_breakdown(self) -> dict[str, Any]:
        return {
            "base_price": self.base_price,
            "tax_amount": self.tax_amount,
            "fee_amount": self.fee_amount,
            "discount_amount": self.discount_amount,
            "total_price": self.total_price,
            "currency": self.currency,
        }

    def price_for_age_group(self, age_group: str) -> float | None:
        return self.age_groups.get(age_group)


def _first_number(data: dict[str, Any], *keys: str) -> float:
    for key in keys:
        if data.get(key) is not None:
            return float(data[key])
    return 0.0


def _generated_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:13]}"


def _human_date(value: datetime) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"
