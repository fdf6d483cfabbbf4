# Overview: Service-layer operations for the warehouse stock ledger.

"""
Stock Ledger Invariants (authoritative)

- WarehouseStock holds exactly one row per product; it is the ONLY source of
  truth for on-hand quantity on the write path.
- quantity is never negative. debit_checked() refuses any decrement that
  would take it below zero.
- credit() and debit_checked() never commit. They join the caller's
  transaction so the stock change and the line item it belongs to land
  together or not at all.
- Delivery and truck-load lines are the audit trail. reconcile_stock()
  recomputes quantities from them for audit only.

Concurrency:
- debit_checked() reads the row under SELECT ... FOR UPDATE, so concurrent
  dispatches against one product serialize on that row.
- The decrement itself is a guarded UPDATE (quantity >= qty). Engines that
  ignore row locks (SQLite) still cannot oversell: a stale check makes the
  guarded UPDATE match zero rows and the debit is refused.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from ..errors import InsufficientStock
from ..extensions import db
from ..models import WarehouseStock, Product, DeliveryLine, TruckLoadLine
from .concurrency import lock_for_update


# Dialects with native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_name() -> str:
    return db.session.get_bind().dialect.name


def get_quantity_on_hand(product_id: uuid.UUID) -> int:
    """Current on-hand quantity; 0 when the product has never been delivered."""
    qty = db.session.execute(
        select(WarehouseStock.quantity).where(WarehouseStock.product_id == product_id)
    ).scalar()
    return int(qty or 0)


def credit(product_id: uuid.UUID, qty: int) -> int:
    """
    Add qty to the product's stock row, creating the row if none exists.

    Returns the new on-hand quantity. Fails only on storage errors.
    """
    insert = _UPSERT_INSERTS.get(_dialect_name())
    if insert is not None:
        stmt = insert(WarehouseStock).values(
            id=uuid.uuid4(),
            product_id=product_id,
            quantity=qty,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[WarehouseStock.product_id],
            set_={
                "quantity": WarehouseStock.quantity + stmt.excluded.quantity,
                "updated_at": func.now(),
            },
        )
        db.session.execute(stmt)
    else:
        result = db.session.execute(
            update(WarehouseStock)
            .where(WarehouseStock.product_id == product_id)
            .values(quantity=WarehouseStock.quantity + qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.session.add(WarehouseStock(product_id=product_id, quantity=qty))
            db.session.flush()

    return get_quantity_on_hand(product_id)


def debit_checked(product_id: uuid.UUID, qty: int) -> int:
    """
    Remove qty from the product's stock row if enough is on hand.

    Must run inside the transaction that records the dispatch line.
    Returns the new on-hand quantity.

    Raises:
        InsufficientStock: qty exceeds the quantity on hand (a missing row counts as 0)
    """
    available = db.session.execute(
        lock_for_update(
            select(WarehouseStock.quantity).where(WarehouseStock.product_id == product_id)
        )
    ).scalar()
    available = int(available or 0)

    if qty > available:
        raise InsufficientStock(product_id, qty, available)

    result = db.session.execute(
        update(WarehouseStock)
        .where(
            WarehouseStock.product_id == product_id,
            WarehouseStock.quantity >= qty,
        )
        .values(quantity=WarehouseStock.quantity - qty)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Another writer got there between our read and the guarded update
        raise InsufficientStock(product_id, qty, get_quantity_on_hand(product_id))

    return get_quantity_on_hand(product_id)


def list_stock() -> list[dict]:
    """On-hand quantity for every product that has a stock row, by product name."""
    rows = db.session.execute(
        select(WarehouseStock.product_id, Product.name, WarehouseStock.quantity)
        .join(Product, Product.id == WarehouseStock.product_id)
        .order_by(Product.name, WarehouseStock.product_id)
    ).all()
    return [
        {
            "product_id": str(row.product_id),
            "product_name": row.name,
            "quantity": int(row.quantity),
        }
        for row in rows
    ]


def reconcile_stock(product_id: uuid.UUID | None = None) -> list[dict]:
    """
    Compare stock rows with the delivery/truck-load history.

    expected = SUM(delivered) - SUM(dispatched); drift = on_hand - expected.
    Read-only. A non-zero drift means the stock row was changed outside
    the ledger services.
    """
    delivered_q = select(
        DeliveryLine.product_id,
        func.coalesce(func.sum(DeliveryLine.quantity), 0),
    ).group_by(DeliveryLine.product_id)
    dispatched_q = select(
        TruckLoadLine.product_id,
        func.coalesce(func.sum(TruckLoadLine.quantity), 0),
    ).group_by(TruckLoadLine.product_id)
    stock_q = select(WarehouseStock.product_id, WarehouseStock.quantity)

    if product_id is not None:
        delivered_q = delivered_q.where(DeliveryLine.product_id == product_id)
        dispatched_q = dispatched_q.where(TruckLoadLine.product_id == product_id)
        stock_q = stock_q.where(WarehouseStock.product_id == product_id)

    delivered = {pid: int(total) for pid, total in db.session.execute(delivered_q).all()}
    dispatched = {pid: int(total) for pid, total in db.session.execute(dispatched_q).all()}
    on_hand = {pid: int(qty) for pid, qty in db.session.execute(stock_q).all()}

    product_ids = set(delivered) | set(dispatched) | set(on_hand)
    report = []
    for pid in sorted(product_ids, key=str):
        expected = delivered.get(pid, 0) - dispatched.get(pid, 0)
        current = on_hand.get(pid, 0)
        report.append({
            "product_id": str(pid),
            "delivered": delivered.get(pid, 0),
            "dispatched": dispatched.get(pid, 0),
            "expected": expected,
            "on_hand": current,
            "drift": current - expected,
        })
    return report
