from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


USER_ROLES = ("admin", "manager", "driver")


def _money(value):
    return str(value) if value is not None else None


class User(db.Model):
    """
    Staff member referenced by ledger records.

    Warehouse operators attribute deliveries; drivers attribute truck loads.
    Credentials and sessions live outside the ledger core.
    """
    __tablename__ = "users"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(16), nullable=False, default="driver")
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    district = db.Column(db.String(100), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "address": self.address,
            "city": self.city,
            "district": self.district,
            "contact_number": self.contact_number,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    price is the CURRENT unit price. Sales snapshot it at creation time,
    so changing it never touches existing sale totals.
    """
    __tablename__ = "products"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    unit_type = db.Column(db.String(32), nullable=False)
    commission = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} price={self.price}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "price": _money(self.price),
            "unit_type": self.unit_type,
            "commission": _money(self.commission),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Truck(db.Model):
    __tablename__ = "trucks"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    truck_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    model = db.Column(db.String(100), nullable=False)
    # Ceiling a single allowance payout is expected to respect (informational)
    max_allowance = db.Column(db.Numeric(12, 2), nullable=False, default=4000)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Truck id={self.id} number={self.truck_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "truck_number": self.truck_number,
            "model": self.model,
            "max_allowance": _money(self.max_allowance),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Shop(db.Model):
    __tablename__ = "shops"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(255), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=True)
    district = db.Column(db.String(100), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "district": self.district,
            "contact_number": self.contact_number,
            "created_at": to_utc_z(self.created_at),
        }
