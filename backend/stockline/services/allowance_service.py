# Overview: Allowance ledger; append-only cash allowances and per-truck shares.

from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from ..extensions import db
from ..models import Allowance, TruckAllowance, Truck
from ..validation import optional_text, parse_amount, parse_date, parse_uuid
from .catalog_service import get_or_404
from .concurrency import run_with_retry


def create_allowance(date, amount, notes: str | None = None) -> Allowance:
    """Record a dated cash allowance."""
    allowance = Allowance(
        date=parse_date(date),
        amount=parse_amount(amount, "amount"),
        notes=optional_text(notes, "notes", max_length=2000),
    )

    def _op():
        db.session.add(allowance)
        db.session.commit()
        current_app.logger.info("Allowance %s recorded: %s", allowance.id, allowance.amount)
        return allowance

    return run_with_retry(_op)


def create_truck_allowance(allowance_id, truck_id, amount) -> TruckAllowance:
    """
    Hand part of an allowance to a truck.

    Raises:
        NotFound: allowance or truck does not exist
    """
    allowance_id = parse_uuid(allowance_id, "allowance_id")
    truck_id = parse_uuid(truck_id, "truck_id")
    amount = parse_amount(amount, "amount")

    def _op():
        get_or_404(Allowance, allowance_id, "Allowance")
        get_or_404(Truck, truck_id, "Truck")

        truck_allowance = TruckAllowance(
            allowance_id=allowance_id,
            truck_id=truck_id,
            amount=amount,
        )
        db.session.add(truck_allowance)
        db.session.commit()
        current_app.logger.info(
            "Truck allowance %s: %s to truck %s from allowance %s",
            truck_allowance.id, amount, truck_id, allowance_id,
        )
        return truck_allowance

    return run_with_retry(_op)


def get_truck_allowances(truck_id) -> list[TruckAllowance]:
    truck_id = parse_uuid(truck_id, "truck_id")
    return db.session.execute(
        select(TruckAllowance)
        .where(TruckAllowance.truck_id == truck_id)
        .order_by(TruckAllowance.created_at)
    ).scalars().all()
