from dataclasses import dataclass, field, replace
from typing import Any


@dataclass
class VoucherData:
    """Redeemable proof of purchase. The rendered PDF is the durable artifact."""

    booking_id: str
    voucher_number: str
    qr_code: str
    barcode_data: str
    customer_info: dict[str, Any] = field(default_factory=dict)
    product_info: dict[str, Any] = field(default_factory=dict)
    booking_details: dict[str, Any] = field(default_factory=dict)
    pdf_path: str | None = None
    download_url: str | None = None
    instructions: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "voucher_number": self.voucher_number,
            "qr_code": self.qr_code,
            "barcode_data": self.barcode_data,
            "customer_info": self.customer_info,
            "product_info": self.product_info,
            "booking_details": self.booking_details,
            "pdf_path": self.pdf_path,
            "download_url": self.download_url,
            "instructions": self.instructions,
            "metadata": self.metadata,
        }

    def with_files(self, pdf_path: str, download_url: str | None, instructions: list[str]) -> "VoucherData":
        return replace(self, pdf_path=pdf_path, download_url=download_url, instructions=instructions)

    @property
    def customer_name(self) -> str:
        info = self.customer_info
        first = info.get("first_name") or info.get("firstName") or ""
        last = info.get("last_name") or info.get("lastName") or ""
        return f"{first} {last}".strip()

    @property
    def product_name(self) -> str:
        return self.product_info.get("name", "")

    @property
    def booking_date(self) -> str | None:
        return self.booking_details.get("date")

    @property
    def time_slot(self) -> str | None:
        return self.booking_details.get("time_slot")

    @property
    def quantity(self) -> int:
        return self.booking_details.get("quantity") or 1

    def has_download_url(self) -> bool:
        return bool(self.download_url)

    def has_pdf_file(self) -> bool:
        return bool(self.pdf_path)
