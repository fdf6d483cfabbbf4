from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


SALE_STATUS_PENDING = "pending"
SALE_STATUS_PAID = "paid"

SALE_STATUSES = (SALE_STATUS_PENDING, SALE_STATUS_PAID)


class Sale(db.Model):
    """
    Payable opened when part of a truck load is sold to a shop.

    total_amount is a SNAPSHOT of product prices x quantities taken at
    creation; it is never re-derived from the product table.
    paid_amount and status are mutated only by the payment ledger.
    status is monotonic: pending -> paid, never back.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_date", "status", "date"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    truck_load_id = db.Column(db.Uuid, db.ForeignKey("truck_loads.id"), nullable=False, index=True)
    shop_id = db.Column(db.Uuid, db.ForeignKey("shops.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PENDING)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=True, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} status={self.status} total={self.total_amount} paid={self.paid_amount}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "truck_load_id": str(self.truck_load_id),
            "shop_id": str(self.shop_id),
            "date": to_iso_date(self.date),
            "status": self.status,
            "total_amount": str(self.total_amount),
            "paid_amount": str(self.paid_amount if self.paid_amount is not None else 0),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Sold quantity of one product, with the unit price the total was computed from."""
    __tablename__ = "sale_lines"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = db.Column(db.Uuid, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "sale_id": str(self.sale_id),
            "product_id": str(self.product_id),
            "line_number": self.line_number,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


class Payment(db.Model):
    """
    Money received against a sale.

    APPEND-ONLY: payments are never updated or deleted. No refund or
    reversal operation exists.
    """
    __tablename__ = "payments"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = db.Column(db.Uuid, db.ForeignKey("sales.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "sale_id": str(self.sale_id),
            "amount": str(self.amount),
            "method": self.method,
            "date": to_iso_date(self.date),
            "created_at": to_utc_z(self.created_at),
        }
