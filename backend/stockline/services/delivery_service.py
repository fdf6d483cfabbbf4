# Overview: Delivery intake; records incoming batches and credits warehouse stock.

from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from ..extensions import db
from ..models import Delivery, DeliveryLine, User
from ..validation import normalize_line_items, parse_date, parse_uuid
from .catalog_service import get_or_404, require_products
from .concurrency import run_with_retry
from .stock_service import credit


def create_delivery(user_id, date, line_items) -> Delivery:
    """
    Record an incoming stock batch and credit warehouse stock.

    One transaction: header, every line, every stock credit, commit.
    A delivery can never fail on stock grounds; it fails only when a
    referenced user/product is missing or the store rejects the write,
    and then nothing of it persists.

    Args:
        user_id: Warehouse operator receiving the goods
        date: Business date of the delivery
        line_items: (product_id, quantity) pairs, quantity > 0

    Returns:
        Delivery record

    Raises:
        ValidationError: malformed input (before any transaction opens)
        NotFound: user or product does not exist
        StorageError: transaction could not commit
    """
    user_id = parse_uuid(user_id, "user_id")
    delivery_date = parse_date(date)
    items = normalize_line_items(line_items)

    def _op():
        get_or_404(User, user_id, "User")
        require_products(product_id for product_id, _ in items)

        delivery = Delivery(user_id=user_id, date=delivery_date)
        db.session.add(delivery)
        db.session.flush()  # Get delivery ID

        for line_number, (product_id, quantity) in enumerate(items, start=1):
            db.session.add(DeliveryLine(
                delivery_id=delivery.id,
                product_id=product_id,
                line_number=line_number,
                quantity=quantity,
            ))
            db.session.flush()
            credit(product_id, quantity)

        db.session.commit()
        current_app.logger.info(
            "Delivery %s recorded: %d line(s), %d unit(s)",
            delivery.id, len(items), sum(qty for _, qty in items),
        )
        return delivery

    return run_with_retry(_op)


def get_delivery(delivery_id) -> Delivery:
    return get_or_404(Delivery, parse_uuid(delivery_id, "delivery_id"), "Delivery")


def get_deliveries_by_user(user_id) -> list[Delivery]:
    """Deliveries received by one operator, newest business date first."""
    user_id = parse_uuid(user_id, "user_id")
    return db.session.execute(
        select(Delivery)
        .where(Delivery.user_id == user_id)
        .order_by(Delivery.date.desc(), Delivery.created_at.desc())
    ).scalars().all()
