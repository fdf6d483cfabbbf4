from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class WarehouseStock(db.Model):
    """
    Authoritative on-hand quantity per product.

    INVARIANTS:
    - One row per product (created lazily on first delivery)
    - quantity >= 0, enforced both by the stock service and a CHECK constraint
    - Maintained eagerly by deliveries (credit) and truck loads (debit);
      never recomputed from history on the write path
    """
    __tablename__ = "warehouse_stock"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_warehouse_stock_quantity_non_negative"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, unique=True, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<WarehouseStock product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class Delivery(db.Model):
    """Incoming stock batch. Immutable once created."""
    __tablename__ = "deliveries"
    __table_args__ = (
        db.Index("ix_deliveries_user_date", "user_id", "date"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    date = db.Column(db.Date, nullable=False)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "DeliveryLine",
        backref="delivery",
        lazy=True,
        order_by="DeliveryLine.line_number",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "date": to_iso_date(self.date),
            "user_id": str(self.user_id),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class DeliveryLine(db.Model):
    __tablename__ = "delivery_lines"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    delivery_id = db.Column(db.Uuid, db.ForeignKey("deliveries.id"), nullable=False, index=True)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "delivery_id": str(self.delivery_id),
            "product_id": str(self.product_id),
            "line_number": self.line_number,
            "quantity": self.quantity,
        }


class TruckLoad(db.Model):
    """Outgoing stock batch dispatched on a truck. Immutable once created."""
    __tablename__ = "truck_loads"
    __table_args__ = (
        db.Index("ix_truck_loads_truck_date", "truck_id", "date"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    date = db.Column(db.Date, nullable=False)
    driver_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False, index=True)
    truck_id = db.Column(db.Uuid, db.ForeignKey("trucks.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "TruckLoadLine",
        backref="truck_load",
        lazy=True,
        order_by="TruckLoadLine.line_number",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "date": to_iso_date(self.date),
            "driver_id": str(self.driver_id),
            "truck_id": str(self.truck_id),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TruckLoadLine(db.Model):
    __tablename__ = "truck_load_lines"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    truck_load_id = db.Column(db.Uuid, db.ForeignKey("truck_loads.id"), nullable=False, index=True)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "truck_load_id": str(self.truck_load_id),
            "product_id": str(self.product_id),
            "line_number": self.line_number,
            "quantity": self.quantity,
        }
