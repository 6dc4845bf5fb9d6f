from datetime import datetime, timedelta, timezone

from themepark_booking.infrastructure.db.models import OrderDetailsRedeam, OrderDetailsUniversal

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestOrderDetailsRedeam:
    def test_hold_state_is_derived_from_expiry(self):
        row = OrderDetailsRedeam(
            order_id=1,
            supplier_type="disney",
            status="pending",
            hold_id="H1",
            hold_expires_at=NOW + timedelta(minutes=15),
        )

        assert row.is_on_hold(NOW)
        assert row.effective_status(NOW) == "on_hold"

        later = NOW + timedelta(minutes=16)
        assert row.is_hold_expired(later)
        assert not row.is_on_hold(later)
        assert row.effective_status(later) == "hold_expired"

    def test_on_hold_does_not_depend_on_status(self):
        row = OrderDetailsRedeam(
            order_id=1,
            supplier_type="disney",
            status="confirmed",
            hold_id="H1",
            hold_expires_at=NOW + timedelta(minutes=15),
        )

        assert row.is_on_hold(NOW)
        assert row.effective_status(NOW) == "confirmed"

    def test_hold_expiring_now_is_expired(self):
        row = OrderDetailsRedeam(order_id=1, supplier_type="disney", status="pending", hold_id="H1", hold_expires_at=NOW)

        assert row.is_hold_expired(NOW)
        assert not row.is_on_hold(NOW)
        assert row.effective_status(NOW) == "hold_expired"

    def test_hold_without_expiry_never_expires(self):
        row = OrderDetailsRedeam(order_id=1, supplier_type="disney", status="pending", hold_id="H1")

        assert not row.is_hold_expired(NOW)
        assert row.is_on_hold(NOW)

    def test_no_hold(self):
        row = OrderDetailsRedeam(order_id=1, supplier_type="disney", status="pending")

        assert not row.is_on_hold(NOW)
        assert row.effective_status(NOW) == "pending"

    def test_expiry_survives_a_database_round_trip(self, db_session):
        db_session.add(
            OrderDetailsRedeam(
                order_id=1,
                supplier_type="disney",
                status="pending",
                hold_id="H1",
                hold_expires_at=NOW + timedelta(minutes=15),
            )
        )
        db_session.flush()
        db_session.expire_all()

        row = db_session.query(OrderDetailsRedeam).one()

        assert row.is_on_hold(NOW)
        assert row.is_hold_expired(NOW + timedelta(minutes=16))

    def test_supplier_family(self):
        assert OrderDetailsRedeam(order_id=1, supplier_type="disney").is_disney
        assert OrderDetailsRedeam(order_id=1, supplier_type="united_parks").is_united_parks
        assert not OrderDetailsRedeam(order_id=1, supplier_type="united_parks").is_disney

    def test_booking_data_accessors(self):
        row = OrderDetailsRedeam(
            order_id=1,
            supplier_type="disney",
            status="pending",
            booking_id="BK1",
            reference_number="ORDER-1",
            voucher="vouchers/redeam/v.pdf",
            booking_data={
                "status": "BOOKED",
                "timeline": [{"type": "BOOKED"}],
                "ext": {"supplier": {"reference": "SUP-9"}},
            },
        )

        assert row.booking_status == "BOOKED"
        assert row.is_confirmed()
        assert row.booking_timeline() == [{"type": "BOOKED"}]
        assert row.resolved_supplier_reference() == "SUP-9"
        assert row.confirmation_details("https://cdn.test/") == {
            "reference_number": "ORDER-1",
            "booking_id": "BK1",
            "supplier_reference": "SUP-9",
            "confirmation_number": None,
            "status": "BOOKED",
            "voucher_url": "https://cdn.test/vouchers/redeam/v.pdf",
        }

    def test_cancelled_column_wins_over_vendor_status(self):
        row = OrderDetailsRedeam(
            order_id=1,
            supplier_type="disney",
            status="cancelled",
            booking_id="BK1",
            booking_data={"status": "BOOKED"},
        )

        assert row.booking_status == "cancelled"
        assert row.is_cancelled()
        assert not row.is_confirmed()

    def test_empty_booking_data(self):
        row = OrderDetailsRedeam(order_id=1, supplier_type="disney", status="cancelled")

        assert row.booking_status == "cancelled"
        assert row.is_cancelled()
        assert row.booking_timeline() == []
        assert row.resolved_supplier_reference() is None
        assert row.confirmation_details() == {}

    def test_soft_delete(self):
        row = OrderDetailsRedeam(order_id=1, supplier_type="disney")

        row.soft_delete(deleted_by=7, now=NOW)

        assert row.is_deleted
        assert row.deleted_by == 7


class TestOrderDetailsUniversal:
    def test_tickets(self):
        row = OrderDetailsUniversal(
            order_id=2,
            galaxy_order_id="G-55",
            external_order_id="SO-1",
            status="confirmed",
            booking_data={
                "orderStatus": "Success",
                "createdTicketResponses": [
                    {
                        "ticketId": "T1",
                        "barcode": "123",
                        "productName": "1-Day Base",
                        "guestName": "Ana Diaz",
                        "visitDate": "2025-02-01",
                        "status": "Active",
                    }
                ],
            },
        )

        assert row.booking_status == "Success"
        assert row.is_confirmed()
        assert not row.is_pending()
        assert row.has_created_ticket_responses
        assert row.ticket_count == 1
        assert row.tickets_info() == [
            {
                "ticket_id": "T1",
                "barcode": "123",
                "product_name": "1-Day Base",
                "guest_name": "Ana Diaz",
                "visit_date": "2025-02-01",
                "status": "Active",
            }
        ]
        assert row.galaxy_order_details()["ticket_count"] == 1

    def test_place_order_reply_keys(self):
        row = OrderDetailsUniversal(
            order_id=2,
            galaxy_order_id="GAL123456",
            external_order_id="EXT789-2KNOW",
            status="confirmed",
            booking_data={
                "Status": "Confirmed",
                "CreatedTicketResponses": [
                    {"TicketId": "TKT001", "Barcode": "123456789", "GuestName": "John Doe", "VisitDate": "2024-12-25"}
                ],
            },
        )

        assert row.booking_status == "Confirmed"
        assert row.is_confirmed()
        assert row.ticket_count == 1
        assert row.tickets_info()[0]["ticket_id"] == "TKT001"
        assert row.tickets_info()[0]["guest_name"] == "John Doe"

    def test_cancelled_column_wins_over_order_status(self):
        row = OrderDetailsUniversal(order_id=2, status="cancelled", booking_data={"orderStatus": "Success"})

        assert row.is_cancelled()
        assert not row.is_confirmed()

    def test_without_tickets(self):
        row = OrderDetailsUniversal(order_id=2, status="failed")

        assert row.is_cancelled()
        assert not row.has_created_ticket_responses
        assert row.tickets_info() == []
        assert row.galaxy_order_details() == {}
        assert row.confirmation_details()["tickets_created"] is False

    def test_voucher_url(self):
        assert OrderDetailsUniversal(order_id=2).voucher_url() == ""
        assert OrderDetailsUniversal(order_id=2, voucher="https://cdn.test/v.pdf").voucher_url("https://x") == (
            "https://cdn.test/v.pdf"
        )
        assert OrderDetailsUniversal(order_id=2, voucher="v.pdf").voucher_url() == "v.pdf"
