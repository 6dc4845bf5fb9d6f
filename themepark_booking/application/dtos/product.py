"""DTOs for catalog products and product synchronisation."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from themepark_booking.domain.dates import parse_datetime, to_iso


@dataclass
class Product:
    """A vendor catalog item, re-fetched on every sync."""

    remote_id: str
    name: str
    description: str
    provider: str
    category: str
    pricing: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    image_url: str | None = None
    location: dict[str, Any] | None = None
    duration: int | None = None
    restrictions: dict[str, Any] | None = None
    available_from: datetime | None = None
    available_until: datetime | None = None
    metadata: dict[str, Any] | None = None
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "remote_id": self.remote_id,
            "name": self.name,
            "description": self.description,
            "provider": self.provider,
            "category": self.category,
            "pricing": self.pricing,
            "options": self.options,
            "is_active": self.is_active,
            "image_url": self.image_url,
            "location": self.location,
            "duration": self.duration,
            "restrictions": self.restrictions,
            "available_from": to_iso(self.available_from),
            "available_until": to_iso(self.available_until),
            "metadata": self.metadata,
            "last_updated": to_iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            remote_id=data["remote_id"],
            name=data["name"],
            description=data.get("description", ""),
            provider=data["provider"],
            category=data.get("category", "general"),
            pricing=data.get("pricing") or {},
            options=data.get("options") or {},
            is_active=data.get("is_active", True),
            image_url=data.get("image_url"),
            location=data.get("location"),
            duration=data.get("duration"),
            restrictions=data.get("restrictions"),
            available_from=parse_datetime(data.get("available_from")),
            available_until=parse_datetime(data.get("available_until")),
            metadata=data.get("metadata"),
            last_updated=parse_datetime(data.get("last_updated")),
        )

    def has_option(self, option: str) -> bool:
        return option in self.options

    def get_option_value(self, option: str, default: Any = None) -> Any:
        return self.options.get(option, default)

    def is_available_on(self, on: datetime) -> bool:
        on = parse_datetime(on)
        if self.available_from and on < self.available_from:
            return False
        if self.available_until and on > self.available_until:
            return False
        return True

    @property
    def base_pricing(self) -> dict[str, Any]:
        return self.pricing.get("base", {})

    def has_location(self) -> bool:
        return bool(self.location)

    @property
    def location_name(self) -> str | None:
        return (self.location or {}).get("name")

    @property
    def location_coordinates(self) -> dict[str, float] | None:
        location = self.location or {}
        if "latitude" not in location or "longitude" not in location:
            return None
        return {"latitude": location["latitude"], "longitude": location["longitude"]}


@dataclass
class ProductSyncResult:
    """Outcome of a product catalog sync."""

    success: bool
    total_products: int = 0
    synced_products: int = 0
    skipped_products: int = 0
    failed_products: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    sync_duration: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    products: list[Product] = field(default_factory=list)

    @classmethod
    def succeeded(
        cls,
        total_products: int,
        synced_products: int,
        skipped_products: int = 0,
        failed_products: int = 0,
        warnings: list[str] | None = None,
        sync_duration: int | None = None,
        metadata: dict[str, Any] | None = None,
        products: list[Product] | None = None,
    ) -> "ProductSyncResult":
        return cls(
            success=True,
            total_products=total_products,
            synced_products=synced_products,
            skipped_products=skipped_products,
            failed_products=failed_products,
            warnings=warnings or [],
            sync_duration=sync_duration,
            metadata=metadata or {},
            products=products or [],
        )

    @classmethod
    def failure(cls, errors: list[str], metadata: dict[str, Any] | None = None) -> "ProductSyncResult":
        return cls(success=False, errors=list(errors), metadata=metadata or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total_products": self.total_products,
            "synced_products": self.synced_products,
            "skipped_products": self.skipped_products,
            "failed_products": self.failed_products,
            "errors": self.errors,
            "warnings": self.warnings,
            "sync_duration": self.sync_duration,
            "metadata": self.metadata,
            "products": [product.remote_id for product in self.products],
        }

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def success_rate(self) -> float:
        if self.total_products == 0:
            return 0.0
        return self.synced_products / self.total_products * 100

    def summary(self) -> str:
        if not self.success:
            return f"Sync failed with {len(self.errors)} error(s)"
        text = f"Synced {self.synced_products}/{self.total_products} products"
        if self.skipped_products > 0:
            text += f", skipped {self.skipped_products}"
        if self.failed_products > 0:
            text += f", failed {self.failed_products}"
        if self.sync_duration:
            text += f" in {self.sync_duration}s"
        return text
