import re
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from themepark_booking.application.dtos import BookingRequest
from themepark_booking.application.interfaces.clock import FakeClock
from themepark_booking.domain.errors import AdapterError, ConfigurationError
from themepark_booking.infrastructure.gateways.redeam_adapter import RedeamAdapter, flatten_availability

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
BASE_URL = "https://redeam.test/v1.2"


def _response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


def _mock_client(mock_client_cls):
    mock_client = MagicMock()
    mock_client.__enter__.return_value = mock_client
    mock_client_cls.return_value = mock_client
    return mock_client


AVAILABILITY = {
    "availabilities": {
        "byRate": {
            "RATE1": {
                "price": 150.0,
                "currency": "USD",
                "availability": [
                    {"id": "AV1", "start": "2025-02-01T09:00:00-05:00", "capacity": 10},
                    {"id": "AV2", "start": "2025-02-01T13:00:00-05:00", "capacity": 0},
                ],
            }
        }
    }
}


class TestRedeamAdapter(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(NOW)
        self.config = {
            "base_url": BASE_URL,
            "api_key": "key",
            "api_secret": "secret",
            "supplier_id": "20",
        }
        self.adapter = RedeamAdapter("disney", self.config, clock=self.clock)
        self.request = BookingRequest(
            product_id="P1",
            rate_id="RATE1",
            availability_id="AV1",
            date="2025-02-01T09:00:00Z",
            quantity=2,
            customer_info={"first_name": "Ana", "last_name": "Diaz", "email": "ana@example.com"},
            reference_id="ORDER-1",
        )

    def test_identity(self):
        self.assertEqual(self.adapter.name, "redeam_disney")
        self.assertEqual(self.adapter.provider, "redeam")
        self.assertEqual(self.adapter.validate_config(), [])

    @patch("httpx.Client")
    def test_create_booking_places_hold(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.post.return_value = _response(
            {"hold": {"id": "HOLD123", "expires": "2025-01-15T12:15:00Z"}}
        )

        result = self.adapter.create_booking(self.request)

        self.assertTrue(result.is_successful())
        self.assertEqual(result.status, "pending")
        self.assertEqual(result.hold_id, "HOLD123")
        self.assertEqual(result.reservation_id, "HOLD123")
        self.assertEqual(result.expires_at, datetime(2025, 1, 15, 12, 15, tzinfo=timezone.utc))
        self.assertEqual(result.metadata["park_type"], "disney")

        call = mock_client.post.call_args
        self.assertEqual(call.args[0], f"{BASE_URL}/holds")
        items = call.kwargs["json"]["hold"]["items"]
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0]["productId"], "P1")
        self.assertEqual(items[0]["travelerType"], "adult")
        self.assertEqual(items[0]["at"], "2025-02-01T09:00:00Z")
        self.assertEqual(call.kwargs["headers"]["X-API-Key"], "key")
        self.assertEqual(call.kwargs["headers"]["X-API-Secret"], "secret")

    @patch("httpx.Client")
    def test_create_booking_server_error_returns_error_response(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.post.return_value = _response({}, status_code=503)

        result = self.adapter.create_booking(self.request)

        self.assertFalse(result.is_successful())
        self.assertEqual(result.status, "failed")
        self.assertEqual(result.error_code, "HTTP_ERROR")

    @patch("httpx.Client")
    def test_confirm_booking_with_expired_hold_never_books(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {"hold": {"id": "HOLD123", "expires": "2025-01-15T11:00:00Z", "items": [{"productId": "P1"}]}}
        )

        result = self.adapter.confirm_booking("HOLD123", {"customer_info": {"first_name": "Ana"}})

        self.assertFalse(result.is_successful())
        self.assertEqual(result.error_code, "HOLD_EXPIRED")
        self.assertIn("Reservation hold has expired", result.error_message)
        mock_client.post.assert_not_called()

    @patch("httpx.Client")
    def test_confirm_booking_success(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {
                "hold": {
                    "id": "HOLD123",
                    "expires": "2025-01-15T12:15:00Z",
                    "items": [
                        {"productId": "P1", "rateId": "RATE1", "at": "2025-02-01T09:00:00Z"},
                        {"productId": "P1", "rateId": "RATE1", "at": "2025-02-01T09:00:00Z"},
                    ],
                }
            }
        )
        mock_client.post.return_value = _response(
            {"booking": {"id": "BK1", "status": "CONFIRMED", "ext": {"supplier": {"reference": "SUP-9"}}}}
        )

        result = self.adapter.confirm_booking(
            "HOLD123",
            {"customer_info": {"first_name": "Ana", "last_name": "Diaz"}, "reference_id": "ORDER-1"},
        )

        self.assertTrue(result.is_confirmed())
        self.assertEqual(result.booking_id, "BK1")
        self.assertEqual(result.hold_id, "HOLD123")
        self.assertEqual(result.supplier_reference, "SUP-9")
        self.assertEqual(result.quantity, 2)

        call = mock_client.post.call_args
        self.assertEqual(call.args[0], f"{BASE_URL}/bookings")
        booking = call.kwargs["json"]["booking"]
        self.assertEqual(booking["holdId"], "HOLD123")
        self.assertEqual(booking["reference"], "ORDER-1")
        self.assertEqual(booking["customer"]["firstName"], "Ana")
        self.assertEqual(booking["customer"]["address"]["country"], "US")

    @patch("httpx.Client")
    def test_cancel_booking_vendor_error(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.put.return_value = _response({"error": {"message": "Booking already cancelled"}}, 400)

        result = self.adapter.cancel_booking("BK1", "guest request")

        self.assertFalse(result.is_successful())
        self.assertEqual(result.error_code, "VENDOR_ERROR")
        self.assertEqual(mock_client.put.call_args.args[0], f"{BASE_URL}/bookings/cancel/BK1")

    @patch("httpx.Client")
    def test_cancel_booking_success(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.put.return_value = _response({"booking": {"id": "BK1", "status": "CANCELLED"}})

        result = self.adapter.cancel_booking("BK1", "guest request")

        self.assertTrue(result.is_cancelled())
        self.assertEqual(result.cancellation_info["reason"], "guest request")

    @patch("httpx.Client")
    def test_check_availability_by_time_and_quantity(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(AVAILABILITY)

        self.assertTrue(self.adapter.check_availability("P1", "2025-02-01", "09:00", 2))
        self.assertFalse(self.adapter.check_availability("P1", "2025-02-01", "13:00", 1))
        self.assertFalse(self.adapter.check_availability("P1", "2025-02-01", "09:00", 11))

        call = mock_client.get.call_args
        self.assertEqual(call.args[0], f"{BASE_URL}/suppliers/20/products/P1/availabilities")
        self.assertEqual(call.kwargs["params"]["start"], "2025-02-01T00:00:00Z")
        self.assertEqual(call.kwargs["params"]["end"], "2025-02-01T23:59:59Z")

    @patch("httpx.Client")
    def test_check_availability_transport_error_is_false(self, mock_client_cls):
        import httpx

        mock_client = _mock_client(mock_client_cls)
        mock_client.get.side_effect = httpx.ConnectError("down")

        self.assertFalse(self.adapter.check_availability("P1", "2025-02-01"))

    @patch("httpx.Client")
    def test_time_slots_and_pricing(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(AVAILABILITY)

        slots = self.adapter.get_available_time_slots("P1", "2025-02-01")
        pricing = self.adapter.get_pricing("P1", "2025-02-01")

        self.assertEqual(
            slots[0], {"time": "09:00", "availability_id": "AV1", "capacity": 10, "rate_id": "RATE1"}
        )
        self.assertEqual(len(slots), 2)
        self.assertEqual(pricing["RATE1"]["price"], 150.0)
        self.assertEqual(pricing["RATE1"]["currency"], "USD")

    @patch("httpx.Client")
    def test_sync_products_counts(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {
                "products": [
                    {"id": "P1", "name": "Magic Kingdom 1-Day", "active": True},
                    {"id": "P2", "name": "Retired ticket", "active": False},
                    {"id": "P3"},
                ]
            }
        )

        result = self.adapter.sync_products()

        self.assertTrue(result.success)
        self.assertEqual(result.total_products, 3)
        self.assertEqual(result.synced_products, 1)
        self.assertEqual(result.skipped_products, 1)
        self.assertEqual(result.failed_products, 1)
        self.assertEqual(result.products[0].remote_id, "P1")
        self.assertEqual(self.adapter.last_sync_timestamp, NOW.timestamp())
        self.assertEqual(mock_client.get.call_args.args[0], f"{BASE_URL}/suppliers/20/products")

    @patch("httpx.Client")
    def test_sync_products_failure(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response({}, status_code=500)

        result = self.adapter.sync_products()

        self.assertFalse(result.success)
        self.assertTrue(result.has_errors())
        self.assertIsNone(self.adapter.last_sync_timestamp)

    @patch("httpx.Client")
    def test_generate_voucher(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {
                "booking": {
                    "id": "BK12345",
                    "status": "CONFIRMED",
                    "customer": {"firstName": "Ana", "lastName": "Diaz"},
                    "items": [{"at": "2025-02-01T09:00:00-05:00", "productId": "P1"}],
                    "ext": {"supplier": {"reference": "SUP-9"}},
                }
            }
        )

        voucher = self.adapter.generate_voucher("BK12345")

        self.assertRegex(voucher.voucher_number, r"^VCH-[A-Z0-9]{6}-2345$")
        self.assertEqual(voucher.qr_code, "QR-BK12345")
        self.assertEqual(voucher.barcode_data, "BC-BK12345")
        self.assertEqual(voucher.customer_name, "Ana Diaz")
        self.assertEqual(voucher.booking_date, "2025-02-01")
        self.assertEqual(voucher.time_slot, "09:00")
        self.assertEqual(voucher.metadata["park_type"], "disney")

    @patch("httpx.Client")
    def test_generate_voucher_missing_booking_raises(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response({})

        with self.assertRaises(AdapterError) as ctx:
            self.adapter.generate_voucher("BK404")

        self.assertEqual(ctx.exception.code, "BOOKING_NOT_FOUND")


class TestRedeamVendorReads(unittest.TestCase):
    def setUp(self):
        self.adapter = RedeamAdapter(
            "disney",
            {"base_url": BASE_URL, "api_key": "key", "api_secret": "secret", "supplier_id": "20"},
        )

    @patch("httpx.Client")
    def test_release_hold(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.delete.return_value = _response({})

        self.assertTrue(self.adapter.release_hold("HOLD123"))
        self.assertEqual(mock_client.delete.call_args.args[0], f"{BASE_URL}/holds/HOLD123")

    @patch("httpx.Client")
    def test_release_hold_vendor_error(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.delete.return_value = _response({"error": {"message": "Hold not found"}}, 404)

        self.assertFalse(self.adapter.release_hold("HOLD123"))

    @patch("httpx.Client")
    def test_product_rates(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {"rates": [{"id": "RATE1", "name": "1-Day Ticket", "ext": {"disney-productDuration": 1}}]}
        )

        rates = self.adapter.get_product_rates("P1")

        self.assertEqual([rate.id for rate in rates], ["RATE1"])
        self.assertEqual(rates[0].product_duration, 1)
        self.assertEqual(mock_client.get.call_args.args[0], f"{BASE_URL}/suppliers/20/products/P1/rates")

    @patch("httpx.Client")
    def test_product_rate_missing(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response({"error": {"message": "Rate not found"}}, 404)

        self.assertIsNone(self.adapter.get_product_rate("P1", "NOPE"))

    @patch("httpx.Client")
    def test_price_schedule_filters_by_rate(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {
                "RATE1": {"prices": [{"date": "2025-02-01", "price": 150.0}]},
                "RATE2": {"prices": [{"date": "2025-02-01", "price": 99.0}]},
            }
        )

        prices = self.adapter.get_price_schedule("P1", "2025-02-01", "2025-02-02", rate_id="RATE2")

        self.assertEqual(len(prices), 1)
        self.assertEqual(prices[0].rate_id, "RATE2")
        self.assertEqual(prices[0].product_id, "P1")
        self.assertEqual(mock_client.get.call_args.kwargs["params"]["rate_id"], "RATE2")

    @patch("httpx.Client")
    def test_suppliers(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.side_effect = [
            _response({"suppliers": [{"id": "20", "name": "Walt Disney World"}]}),
            _response({"supplier": {"id": "20", "name": "Walt Disney World"}}),
        ]

        self.assertEqual(self.adapter.list_suppliers()[0]["id"], "20")
        self.assertEqual(self.adapter.get_supplier()["name"], "Walt Disney World")
        self.assertEqual(mock_client.get.call_args.args[0], f"{BASE_URL}/suppliers/20")

    @patch("httpx.Client")
    def test_list_suppliers_vendor_error_raises(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response({"error": {"message": "Unauthorized"}}, 401)

        with self.assertRaises(AdapterError):
            self.adapter.list_suppliers()


class TestRedeamAdapterConfiguration(unittest.TestCase):
    def test_unknown_park_type(self):
        with self.assertRaises(ConfigurationError):
            RedeamAdapter("epcot", {"api_key": "k", "api_secret": "s"})

    def test_disney_requires_supplier_id(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RedeamAdapter("disney", {"api_key": "k", "api_secret": "s"})

        self.assertIn("supplier_id", ctx.exception.message)

    def test_missing_credentials(self):
        with self.assertRaises(ConfigurationError):
            RedeamAdapter("united_parks", {"api_key": "k"})

    @patch("httpx.Client")
    def test_united_parks_without_supplier_id_fails_safe(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        adapter = RedeamAdapter("united_parks", {"api_key": "k", "api_secret": "s"})

        self.assertEqual(adapter.name, "redeam_united_parks")
        self.assertIsNone(adapter.get_product("P1"))
        mock_client.get.assert_not_called()

    @patch("httpx.Client")
    def test_united_parks_search_uses_supplier_criteria(self, mock_client_cls):
        mock_client = _mock_client(mock_client_cls)
        mock_client.get.return_value = _response(
            {"products": [{"id": "SW1", "name": "SeaWorld Orlando"}, {"id": "BG1", "name": "Busch Gardens"}]}
        )
        adapter = RedeamAdapter("united_parks", {"api_key": "k", "api_secret": "s"})

        products = adapter.search_products({"supplier_id": "77", "name": "seaworld"})

        self.assertEqual([product.remote_id for product in products], ["SW1"])
        self.assertTrue(mock_client.get.call_args.args[0].endswith("/suppliers/77/products"))


class TestFlattenAvailability(unittest.TestCase):
    def test_flatten(self):
        slots = list(flatten_availability(AVAILABILITY))

        self.assertEqual(len(slots), 2)
        self.assertEqual(slots[0]["date"], "2025-02-01")
        self.assertEqual(slots[0]["time"], "09:00")
        self.assertEqual(slots[1]["capacity"], 0)
        self.assertTrue(all(slot["rate_id"] == "RATE1" for slot in slots))

    def test_empty_payload(self):
        self.assertEqual(list(flatten_availability({})), [])


if __name__ == "__main__":
    unittest.main()
