from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from themepark_booking.infrastructure.db.models import OrderDetailsRedeam, OrderDetailsUniversal

CONFIRMED_STATUSES = ("confirmed", "booked", "completed")


class OrderDetailsRepoSQL:
    """
    Persistence for order-details rows.

    Keeps at most one live (not soft-deleted) row per order and supplier
    family: saving for an order that already has one updates it in place.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # === Redeam ===

    def redeam_for_order(self, order_id: int, supplier_type: str) -> OrderDetailsRedeam | None:
        stmt = (
            select(OrderDetailsRedeam)
            .where(
                OrderDetailsRedeam.order_id == order_id,
                OrderDetailsRedeam.supplier_type == supplier_type,
                OrderDetailsRedeam.deleted_at.is_(None),
            )
            .order_by(OrderDetailsRedeam.id)
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def save_redeam(self, order_id: int, supplier_type: str, **fields: Any) -> OrderDetailsRedeam:
        row = self.redeam_for_order(order_id, supplier_type)
        if row is None:
            row = OrderDetailsRedeam(order_id=order_id, supplier_type=supplier_type)
            self._session.add(row)
        _apply(row, fields)
        self._session.flush()
        return row

    def find_redeam_by_hold(self, hold_id: str) -> OrderDetailsRedeam | None:
        stmt = (
            select(OrderDetailsRedeam)
            .where(OrderDetailsRedeam.hold_id == hold_id, OrderDetailsRedeam.deleted_at.is_(None))
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def find_redeam_by_booking(self, booking_id: str) -> OrderDetailsRedeam | None:
        stmt = (
            select(OrderDetailsRedeam)
            .where(OrderDetailsRedeam.booking_id == booking_id, OrderDetailsRedeam.deleted_at.is_(None))
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def redeam_for_supplier(self, family: str) -> Sequence[OrderDetailsRedeam]:
        """``family`` is ``disney`` or ``united``; matches supplier types containing it."""
        stmt = select(OrderDetailsRedeam).where(
            OrderDetailsRedeam.supplier_type.ilike(f"%{family}%"),
            OrderDetailsRedeam.deleted_at.is_(None),
        )
        return self._session.execute(stmt).scalars().all()

    def active_holds(self, now: datetime | None = None) -> Sequence[OrderDetailsRedeam]:
        now = now or datetime.now(timezone.utc)
        stmt = select(OrderDetailsRedeam).where(
            OrderDetailsRedeam.hold_id.is_not(None),
            OrderDetailsRedeam.hold_id != "",
            OrderDetailsRedeam.deleted_at.is_(None),
            or_(OrderDetailsRedeam.hold_expires_at.is_(None), OrderDetailsRedeam.hold_expires_at > now),
        )
        return self._session.execute(stmt).scalars().all()

    def confirmed_redeam(self) -> list[OrderDetailsRedeam]:
        # Vendor status inside booking_data wins over the column, so the
        # final check runs on the loaded rows.
        stmt = select(OrderDetailsRedeam).where(
            OrderDetailsRedeam.deleted_at.is_(None),
            or_(
                OrderDetailsRedeam.status.in_(CONFIRMED_STATUSES),
                OrderDetailsRedeam.booking_data.is_not(None),
            ),
        )
        return [row for row in self._session.execute(stmt).scalars().all() if row.is_confirmed()]

    # === Universal ===

    def universal_for_order(self, order_id: int) -> OrderDetailsUniversal | None:
        stmt = (
            select(OrderDetailsUniversal)
            .where(OrderDetailsUniversal.order_id == order_id, OrderDetailsUniversal.deleted_at.is_(None))
            .order_by(OrderDetailsUniversal.id)
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def save_universal(self, order_id: int, **fields: Any) -> OrderDetailsUniversal:
        row = self.universal_for_order(order_id)
        if row is None:
            row = OrderDetailsUniversal(order_id=order_id)
            self._session.add(row)
        _apply(row, fields)
        self._session.flush()
        return row

    def find_universal_by_galaxy_order(self, galaxy_order_id: str) -> OrderDetailsUniversal | None:
        stmt = (
            select(OrderDetailsUniversal)
            .where(
                OrderDetailsUniversal.galaxy_order_id == galaxy_order_id,
                OrderDetailsUniversal.deleted_at.is_(None),
            )
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def universal_with_tickets(self) -> list[OrderDetailsUniversal]:
        stmt = select(OrderDetailsUniversal).where(
            OrderDetailsUniversal.booking_data.is_not(None),
            OrderDetailsUniversal.deleted_at.is_(None),
        )
        return [row for row in self._session.execute(stmt).scalars().all() if row.has_created_ticket_responses]

    # === Shared ===

    def soft_delete(self, row: OrderDetailsRedeam | OrderDetailsUniversal, deleted_by: int | None = None) -> None:
        row.soft_delete(deleted_by)
        self._session.flush()


def _apply(row: OrderDetailsRedeam | OrderDetailsUniversal, fields: dict[str, Any]) -> None:
    for key, value in fields.items():
        if not hasattr(row, key):
            raise AttributeError(f"{type(row).__name__} has no column '{key}'")
        setattr(row, key, value)
