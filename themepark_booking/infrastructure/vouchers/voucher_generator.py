import json
import logging
import re
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import Any

import qrcode
from reportlab.graphics.barcode import code128
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from themepark_booking.application.dtos import VoucherData
from themepark_booking.application.interfaces.clock import Clock, SystemClock
from themepark_booking.config import Settings
from themepark_booking.domain.dates import to_iso
from themepark_booking.domain.errors import AdapterError

logger = logging.getLogger(__name__)

PAPER_SIZES = {"letter": letter, "a4": A4}

TEMPLATE_TITLES = {
    "disney.will-call-confirmation": "Walt Disney World - Will Call Confirmation",
    "united-parks.ez-ticket": "United Parks - EZ-Ticket",
    "redeam.default": "Theme Park Admission Voucher",
    "universal.standard-ticket": "Universal Orlando Resort - Admission Ticket",
    "default.standard": "Booking Voucher",
}

INSTRUCTIONS = {
    "disney": [
        "Bring this voucher and a valid photo ID to the park entrance.",
        "Exchange this voucher for your park tickets at the Will Call window.",
        "Allow extra time for ticket pickup before park opening.",
        "Keep your tickets safe - they cannot be replaced if lost.",
        "Tickets are valid for the date specified only.",
    ],
    "united_parks": [
        "Present this EZ-Ticket at the park entrance turnstiles.",
        "The barcode will be scanned for admission.",
        "Keep this voucher with you throughout your visit.",
        "This ticket is valid for one admission on the specified date.",
        "Contact guest services for any issues with ticket scanning.",
    ],
    "smartorder": [
        "Present this voucher at the park entrance for admission.",
        "Arrive at least 30 minutes before your scheduled time.",
        "Bring a valid photo ID matching the name on the reservation.",
        "Follow all park safety guidelines and restrictions.",
        "Contact customer service for changes or cancellations.",
    ],
    "default": [
        "Present this voucher at the designated location.",
        "Arrive on time for your scheduled booking.",
        "Bring valid identification if required.",
        "Follow all venue rules and guidelines.",
        "Contact customer service for assistance.",
    ],
}


class VoucherGenerator:
    """
    Renders ``VoucherData`` into a PDF with a QR code and a Code128 barcode.

    Files land under ``<storage_dir>/<provider>/`` and QR images under
    ``<storage_dir>/qr-codes/``. When a public base URL is configured the
    returned voucher carries a download URL for the PDF.
    """

    def __init__(
        self,
        storage_dir: str | Path,
        base_url: str | None = None,
        clock: Clock | None = None,
        retention_days: int = 90,
    ) -> None:
        self._storage_dir = Path(storage_dir)
        self._base_url = base_url
        self._clock = clock or SystemClock()
        self._retention_days = retention_days

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock | None = None) -> "VoucherGenerator":
        return cls(
            settings.voucher_storage_dir,
            settings.voucher_base_url,
            clock,
            retention_days=settings.voucher_retention_days,
        )

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def generate_voucher_with_pdf(self, voucher: VoucherData, options: dict[str, Any] | None = None) -> VoucherData:
        options = options or {}
        self.validate(voucher)

        if not voucher.qr_code or options.get("regenerate_qr"):
            qr_content = json.dumps(self._qr_payload(voucher))
        else:
            qr_content = voucher.qr_code
        if not voucher.barcode_data or options.get("regenerate_barcode"):
            barcode_data = voucher.voucher_number or voucher.booking_id
        else:
            barcode_data = voucher.barcode_data

        template = self.template_for(voucher, options)
        instructions = self.instructions_for(voucher)
        qr_image = self._store_qr_code(qr_content, voucher.voucher_number)
        pdf_path = self._render_pdf(voucher, template, qr_image, barcode_data, instructions, options)

        logger.info(
            "Voucher PDF generated",
            extra={"voucher_number": voucher.voucher_number, "template": template, "pdf_path": str(pdf_path)},
        )

        return replace(
            voucher.with_files(str(pdf_path), self._download_url(pdf_path), instructions),
            barcode_data=barcode_data,
            metadata={
                **voucher.metadata,
                "generated_at": to_iso(self._clock.now()),
                "template_used": template,
                "qr_image_path": str(qr_image),
                "options": options,
            },
        )

    def validate(self, voucher: VoucherData) -> None:
        if not voucher.booking_id:
            raise AdapterError("Booking ID is required for voucher generation", code="INVALID_VOUCHER")
        if not voucher.voucher_number:
            raise AdapterError("Voucher number is required", code="INVALID_VOUCHER")
        if not voucher.customer_info:
            raise AdapterError("Customer information is required for voucher generation", code="INVALID_VOUCHER")

    def template_for(self, voucher: VoucherData, options: dict[str, Any] | None = None) -> str:
        options = options or {}
        if options.get("template"):
            return options["template"]

        provider = voucher.metadata.get("provider", "default")
        park_type = voucher.metadata.get("park_type")
        if provider == "redeam":
            if park_type == "disney":
                return "disney.will-call-confirmation"
            if park_type == "united_parks":
                return "united-parks.ez-ticket"
            return "redeam.default"
        if provider == "smartorder":
            return "universal.standard-ticket"
        return "default.standard"

    def instructions_for(self, voucher: VoucherData) -> list[str]:
        provider = voucher.metadata.get("provider", "default")
        park_type = voucher.metadata.get("park_type")
        if provider == "redeam" and park_type in ("disney", "united_parks"):
            return list(INSTRUCTIONS[park_type])
        if provider == "smartorder":
            return list(INSTRUCTIONS["smartorder"])
        return list(INSTRUCTIONS["default"])

    def pdf_filename(self, voucher: VoucherData) -> str:
        date = self._clock.now().strftime("%Y-%m-%d")
        return f"voucher-{voucher.voucher_number}-{_slugify(voucher.customer_name)}-{date}.pdf"

    # === Rendering ===

    def _qr_payload(self, voucher: VoucherData) -> dict[str, Any]:
        return {
            "booking_id": voucher.booking_id,
            "voucher_number": voucher.voucher_number,
            "customer_name": voucher.customer_name,
            "product_name": voucher.product_name,
            "date": voucher.booking_date,
            "time": voucher.time_slot,
            "quantity": voucher.quantity,
        }

    def _store_qr_code(self, content: str, identifier: str) -> Path:
        directory = self._storage_dir / "qr-codes"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"qr-{identifier}-{int(self._clock.now().timestamp())}.png"

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=2,
        )
        qr.add_data(content)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        img.save(str(path))
        return path

    def _render_pdf(
        self,
        voucher: VoucherData,
        template: str,
        qr_image: Path,
        barcode_data: str,
        instructions: list[str],
        options: dict[str, Any],
    ) -> Path:
        provider = voucher.metadata.get("provider", "default")
        directory = self._storage_dir / provider
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.pdf_filename(voucher)

        page_size = PAPER_SIZES.get(str(options.get("paper_size", "letter")).lower(), letter)
        if options.get("orientation") == "landscape":
            page_size = (page_size[1], page_size[0])
        width, height = page_size
        margin = float(options.get("margin", 0.75)) * inch

        pdf = canvas.Canvas(str(path), pagesize=page_size)
        pdf.setTitle(f"Voucher {voucher.voucher_number}")

        y = height - margin
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawString(margin, y, TEMPLATE_TITLES.get(template, TEMPLATE_TITLES["default.standard"]))
        y -= 0.4 * inch

        pdf.setFont("Helvetica", 11)
        lines = [
            f"Voucher number: {voucher.voucher_number}",
            f"Booking ID: {voucher.booking_id}",
            f"Guest: {voucher.customer_name}",
            f"Product: {voucher.product_name}",
            f"Date: {voucher.booking_date or ''}",
            f"Time: {voucher.time_slot or ''}",
            f"Quantity: {voucher.quantity}",
        ]
        supplier_reference = voucher.booking_details.get("supplier_reference")
        if supplier_reference:
            lines.append(f"Supplier reference: {supplier_reference}")
        for line in lines:
            pdf.drawString(margin, y, line)
            y -= 0.25 * inch

        qr_size = 1.8 * inch
        pdf.drawImage(str(qr_image), width - margin - qr_size, height - margin - qr_size - 0.3 * inch, qr_size, qr_size)

        y -= 0.3 * inch
        barcode = code128.Code128(barcode_data, barHeight=0.6 * inch, barWidth=1.2)
        barcode.drawOn(pdf, margin, y - 0.6 * inch)
        y -= 0.8 * inch
        pdf.setFont("Helvetica", 9)
        pdf.drawString(margin, y, barcode_data)
        y -= 0.4 * inch

        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(margin, y, "Instructions")
        y -= 0.25 * inch
        pdf.setFont("Helvetica", 10)
        for index, instruction in enumerate(instructions, start=1):
            pdf.drawString(margin, y, f"{index}. {instruction}")
            y -= 0.22 * inch

        pdf.setFont("Helvetica-Oblique", 8)
        pdf.drawString(margin, margin / 2, f"Generated {to_iso(self._clock.now())}")
        pdf.showPage()
        pdf.save()
        return path

    def _download_url(self, pdf_path: Path) -> str | None:
        if not self._base_url:
            return None
        relative = pdf_path.relative_to(self._storage_dir).as_posix()
        return f"{self._base_url.rstrip('/')}/{relative}"

    # === Housekeeping ===

    def storage_stats(self) -> dict[str, Any]:
        files = [path for path in self._storage_dir.rglob("*") if path.is_file()] if self._storage_dir.exists() else []
        total_size = sum(path.stat().st_size for path in files)
        return {
            "total_files": len(files),
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / 1024 / 1024, 2),
            "storage_dir": str(self._storage_dir),
        }

    def cleanup_old_vouchers(self, days_old: int | None = None) -> dict[str, Any]:
        if days_old is None:
            days_old = self._retention_days
        cutoff = self._clock.now() - timedelta(days=days_old)
        deleted: list[str] = []
        if self._storage_dir.exists():
            for path in self._storage_dir.rglob("*"):
                if path.is_file() and path.stat().st_mtime < cutoff.timestamp():
                    path.unlink()
                    deleted.append(str(path))

        logger.info("Old vouchers cleaned up", extra={"deleted_count": len(deleted), "days_old": days_old})
        return {
            "deleted_count": len(deleted),
            "deleted_files": deleted,
            "cutoff_date": cutoff.date().isoformat(),
        }


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "guest"
