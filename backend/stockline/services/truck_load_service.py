# Overview: Truck load dispatch; records outgoing batches and debits warehouse stock.

"""
Truck Load Dispatch

A truck load is ALL-OR-NOTHING: every line is checked and debited in the
order given, inside one transaction. The first line that asks for more
than is on hand raises InsufficientStock and the whole batch rolls back,
including debits already applied for earlier lines. The caller retries
with corrected quantities; the core never applies part of a batch.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from ..errors import InsufficientStock
from ..extensions import db
from ..models import TruckLoad, TruckLoadLine, User, Truck
from ..validation import normalize_line_items, parse_date, parse_uuid
from .catalog_service import get_or_404, require_products
from .concurrency import run_with_retry
from .stock_service import debit_checked


def create_truck_load(driver_id, truck_id, date, line_items) -> TruckLoad:
    """
    Dispatch a batch of products on a truck.

    Args:
        driver_id: Driver taking the load
        truck_id: Truck carrying it
        date: Business date of the dispatch
        line_items: (product_id, quantity) pairs, quantity > 0

    Returns:
        TruckLoad record

    Raises:
        ValidationError: malformed input (before any transaction opens)
        NotFound: driver, truck or product does not exist
        InsufficientStock: a line exceeds stock; nothing persisted
        StorageError: transaction could not commit
    """
    driver_id = parse_uuid(driver_id, "driver_id")
    truck_id = parse_uuid(truck_id, "truck_id")
    load_date = parse_date(date)
    items = normalize_line_items(line_items)

    def _op():
        get_or_404(User, driver_id, "User")
        get_or_404(Truck, truck_id, "Truck")
        require_products(product_id for product_id, _ in items)

        truck_load = TruckLoad(driver_id=driver_id, truck_id=truck_id, date=load_date)
        db.session.add(truck_load)
        db.session.flush()  # Get truck load ID

        for line_number, (product_id, quantity) in enumerate(items, start=1):
            try:
                debit_checked(product_id, quantity)
            except InsufficientStock as exc:
                current_app.logger.warning(
                    "Truck load rejected at line %d: product %s requested %d, available %d",
                    line_number, exc.product_id, exc.requested, exc.available,
                )
                raise

            db.session.add(TruckLoadLine(
                truck_load_id=truck_load.id,
                product_id=product_id,
                line_number=line_number,
                quantity=quantity,
            ))
            db.session.flush()

        db.session.commit()
        current_app.logger.info(
            "Truck load %s dispatched on truck %s: %d line(s), %d unit(s)",
            truck_load.id, truck_id, len(items), sum(qty for _, qty in items),
        )
        return truck_load

    return run_with_retry(_op)


def get_truck_load(truck_load_id) -> TruckLoad:
    return get_or_404(TruckLoad, parse_uuid(truck_load_id, "truck_load_id"), "TruckLoad")


def list_truck_loads(truck_id=None) -> list[TruckLoad]:
    """All truck loads (optionally for one truck), newest business date first."""
    query = select(TruckLoad)
    if truck_id is not None:
        query = query.where(TruckLoad.truck_id == parse_uuid(truck_id, "truck_id"))
    return db.session.execute(
        query.order_by(TruckLoad.date.desc(), TruckLoad.created_at.desc())
    ).scalars().all()
