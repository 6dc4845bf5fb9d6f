import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from themepark_booking.application.dtos import VoucherData
from themepark_booking.config import Settings
from themepark_booking.domain.errors import AdapterError
from themepark_booking.infrastructure.vouchers.voucher_generator import INSTRUCTIONS, VoucherGenerator


def _voucher(**overrides):
    data = {
        "booking_id": "BK12345",
        "voucher_number": "VCH-ABC123-2345",
        "qr_code": "QR-REDEAM-BK12345",
        "barcode_data": "BC-REDEAM-BK12345",
        "customer_info": {"firstName": "Ana", "lastName": "Díaz"},
        "product_info": {"name": "Magic Kingdom 1-Day"},
        "booking_details": {"date": "2025-02-01", "time_slot": "09:00", "quantity": 2, "supplier_reference": "SUP-9"},
        "metadata": {"provider": "redeam", "park_type": "disney"},
    }
    data.update(overrides)
    return VoucherData(**data)


@pytest.fixture
def generator(tmp_path, fake_clock):
    return VoucherGenerator(tmp_path / "vouchers", base_url="https://cdn.test/vouchers/", clock=fake_clock)


class TestGenerateVoucherWithPdf:
    def test_renders_pdf_and_qr_image(self, generator):
        result = generator.generate_voucher_with_pdf(_voucher())

        pdf = Path(result.pdf_path)
        assert pdf.exists()
        assert pdf.read_bytes().startswith(b"%PDF")
        assert pdf.parent == generator.storage_dir / "redeam"
        assert pdf.name == "voucher-VCH-ABC123-2345-ana-d-az-2025-01-15.pdf"
        assert Path(result.metadata["qr_image_path"]).exists()
        assert result.download_url == (
            "https://cdn.test/vouchers/redeam/voucher-VCH-ABC123-2345-ana-d-az-2025-01-15.pdf"
        )

    def test_result_carries_template_and_instructions(self, generator):
        voucher = _voucher()

        result = generator.generate_voucher_with_pdf(voucher, {"paper_size": "a4", "orientation": "landscape"})

        assert result.metadata["template_used"] == "disney.will-call-confirmation"
        assert result.metadata["generated_at"] == "2025-01-15T12:00:00Z"
        assert result.metadata["provider"] == "redeam"
        assert result.instructions == INSTRUCTIONS["disney"]
        assert result.barcode_data == "BC-REDEAM-BK12345"
        assert voucher.pdf_path is None

    def test_barcode_falls_back_to_voucher_number(self, generator):
        result = generator.generate_voucher_with_pdf(_voucher(barcode_data=""))

        assert result.barcode_data == "VCH-ABC123-2345"

    def test_without_base_url_there_is_no_download_url(self, tmp_path, fake_clock):
        generator = VoucherGenerator(tmp_path, clock=fake_clock)

        result = generator.generate_voucher_with_pdf(_voucher(metadata={"provider": "smartorder"}))

        assert result.download_url is None
        assert Path(result.pdf_path).parent == tmp_path / "smartorder"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"booking_id": ""}, "Booking ID is required for voucher generation"),
            ({"voucher_number": ""}, "Voucher number is required"),
            ({"customer_info": {}}, "Customer information is required for voucher generation"),
        ],
    )
    def test_invalid_voucher_is_rejected(self, generator, overrides, message):
        with pytest.raises(AdapterError) as exc:
            generator.generate_voucher_with_pdf(_voucher(**overrides))

        assert exc.value.code == "INVALID_VOUCHER"
        assert exc.value.message == message
        assert not generator.storage_dir.exists()


class TestTemplatesAndInstructions:
    @pytest.mark.parametrize(
        "metadata, template, instructions",
        [
            ({"provider": "redeam", "park_type": "disney"}, "disney.will-call-confirmation", "disney"),
            ({"provider": "redeam", "park_type": "united_parks"}, "united-parks.ez-ticket", "united_parks"),
            ({"provider": "redeam"}, "redeam.default", "default"),
            ({"provider": "smartorder"}, "universal.standard-ticket", "smartorder"),
            ({}, "default.standard", "default"),
        ],
    )
    def test_selection(self, generator, metadata, template, instructions):
        voucher = _voucher(metadata=metadata)

        assert generator.template_for(voucher) == template
        assert generator.instructions_for(voucher) == INSTRUCTIONS[instructions]

    def test_explicit_template_wins(self, generator):
        assert generator.template_for(_voucher(), {"template": "default.standard"}) == "default.standard"

    def test_filename_without_customer_name(self, generator):
        voucher = _voucher(customer_info={"email": "x@example.com"})

        assert generator.pdf_filename(voucher) == "voucher-VCH-ABC123-2345-guest-2025-01-15.pdf"


class TestHousekeeping:
    def test_storage_stats(self, generator):
        assert generator.storage_stats()["total_files"] == 0

        generator.generate_voucher_with_pdf(_voucher())
        stats = generator.storage_stats()

        # PDF plus its QR image
        assert stats["total_files"] == 2
        assert stats["total_size_bytes"] > 0
        assert stats["storage_dir"] == str(generator.storage_dir)

    def test_cleanup_removes_only_old_files(self, generator):
        old = generator.generate_voucher_with_pdf(_voucher())
        old_mtime = datetime(2024, 6, 1, tzinfo=timezone.utc).timestamp()
        os.utime(old.pdf_path, (old_mtime, old_mtime))
        fresh_mtime = datetime(2025, 1, 10, tzinfo=timezone.utc).timestamp()
        os.utime(old.metadata["qr_image_path"], (fresh_mtime, fresh_mtime))

        result = generator.cleanup_old_vouchers(days_old=90)

        assert result["deleted_count"] == 1
        assert result["deleted_files"] == [old.pdf_path]
        assert result["cutoff_date"] == "2024-10-17"
        assert not Path(old.pdf_path).exists()
        assert Path(old.metadata["qr_image_path"]).exists()

    def test_cleanup_defaults_to_configured_retention(self, tmp_path, fake_clock):
        settings = Settings(_env_file=None, voucher_storage_dir=str(tmp_path / "vouchers"), voucher_retention_days=30)
        generator = VoucherGenerator.from_settings(settings, clock=fake_clock)
        voucher = generator.generate_voucher_with_pdf(_voucher())
        mtime = datetime(2024, 12, 1, tzinfo=timezone.utc).timestamp()
        os.utime(voucher.pdf_path, (mtime, mtime))
        os.utime(voucher.metadata["qr_image_path"], (mtime, mtime))

        result = generator.cleanup_old_vouchers()

        assert result["cutoff_date"] == "2024-12-16"
        assert result["deleted_count"] == 2
