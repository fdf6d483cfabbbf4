from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class Allowance(db.Model):
    """Dated cash allowance. Append-only, no cross-entity invariants."""
    __tablename__ = "allowances"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    date = db.Column(db.Date, nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "date": to_iso_date(self.date),
            "amount": str(self.amount),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class TruckAllowance(db.Model):
    """Share of an allowance handed to one truck."""
    __tablename__ = "truck_allowances"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    allowance_id = db.Column(db.Uuid, db.ForeignKey("allowances.id"), nullable=False, index=True)
    truck_id = db.Column(db.Uuid, db.ForeignKey("trucks.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    allowance = db.relationship("Allowance", backref=db.backref("truck_allowances", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "allowance_id": str(self.allowance_id),
            "truck_id": str(self.truck_id),
            "amount": str(self.amount),
            "created_at": to_utc_z(self.created_at),
        }
