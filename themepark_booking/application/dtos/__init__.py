"""Value objects exchanged between callers and booking adapters."""

from themepark_booking.application.dtos.booking import BookingRequest, BookingResponse
from themepark_booking.application.dtos.product import Product, ProductSyncResult
from themepark_booking.application.dtos.rate import Price, Rate
from themepark_booking.application.dtos.voucher import VoucherData

__all__ = [
    "BookingRequest",
    "BookingResponse",
    "Product",
    "ProductSyncResult",
    "Rate",
    "Price",
    "VoucherData",
]
