# Overview: Reference data (users, products, trucks, shops) the ledger records point at.

from __future__ import annotations

import uuid
from typing import Iterable

from flask import current_app
from sqlalchemy import select

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import User, Product, Truck, Shop, USER_ROLES
from ..validation import (
    parse_amount,
    parse_rate,
    parse_uuid,
    require_text,
    optional_text,
)
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# LOOKUPS
# =============================================================================

def get_or_404(model, entity_id, entity: str | None = None):
    """Load a row by primary key or raise NotFound."""
    entity = entity or model.__name__
    obj = db.session.get(model, entity_id)
    if obj is None:
        raise NotFound(entity, entity_id)
    return obj


def require_products(product_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Product]:
    """
    Load every referenced product in one query.

    Raises NotFound for the first id (in input order) with no product row.
    """
    wanted = list(dict.fromkeys(product_ids))
    found = {
        p.id: p
        for p in db.session.execute(select(Product).where(Product.id.in_(wanted))).scalars()
    }
    for product_id in wanted:
        if product_id not in found:
            raise NotFound("Product", product_id)
    return found


def get_user(user_id) -> User:
    return get_or_404(User, parse_uuid(user_id, "user_id"), "User")


def get_product(product_id) -> Product:
    return get_or_404(Product, parse_uuid(product_id, "product_id"), "Product")


def get_truck(truck_id) -> Truck:
    return get_or_404(Truck, parse_uuid(truck_id, "truck_id"), "Truck")


def get_shop(shop_id) -> Shop:
    return get_or_404(Shop, parse_uuid(shop_id, "shop_id"), "Shop")


def list_products() -> list[Product]:
    return db.session.execute(select(Product).order_by(Product.name)).scalars().all()


def list_trucks() -> list[Truck]:
    return db.session.execute(select(Truck).order_by(Truck.truck_number)).scalars().all()


def list_shops() -> list[Shop]:
    return db.session.execute(select(Shop).order_by(Shop.name)).scalars().all()


# =============================================================================
# CREATION
# =============================================================================

def create_user(
    first_name: str,
    last_name: str,
    email: str,
    role: str = "driver",
    address: str | None = None,
    city: str | None = None,
    district: str | None = None,
    contact_number: str | None = None,
) -> User:
    first_name = require_text(first_name, "first_name", max_length=100)
    last_name = require_text(last_name, "last_name", max_length=100)
    email = require_text(email, "email").lower()
    if "@" not in email:
        raise ValidationError("email is invalid")
    role = (role or "").strip().lower()
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of {list(USER_ROLES)}")

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        address=optional_text(address, "address"),
        city=optional_text(city, "city", max_length=100),
        district=optional_text(district, "district", max_length=100),
        contact_number=optional_text(contact_number, "contact_number", max_length=32),
    )

    def _op():
        db.session.add(user)
        db.session.commit()
        return user

    return run_with_retry(_op)


def create_product(name: str, price, unit_type: str, commission=None) -> Product:
    product = Product(
        name=require_text(name, "name"),
        price=parse_amount(price, "price"),
        unit_type=require_text(unit_type, "unit_type", max_length=32),
        commission=parse_rate(commission),
    )

    def _op():
        db.session.add(product)
        db.session.commit()
        current_app.logger.info("Product %s created at price %s", product.id, product.price)
        return product

    return run_with_retry(_op)


def update_product_price(product_id, price) -> Product:
    """
    Change a product's current unit price.

    Existing sales keep the total computed from the price at sale time.
    """
    product_id = parse_uuid(product_id, "product_id")
    new_price = parse_amount(price, "price")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFound("Product", product_id)
        old_price = product.price
        product.price = new_price
        db.session.commit()
        current_app.logger.info("Product %s price changed %s -> %s", product_id, old_price, new_price)
        return product

    return run_with_retry(_op)


def create_truck(truck_number: str, model: str, max_allowance=None) -> Truck:
    truck = Truck(
        truck_number=require_text(truck_number, "truck_number", max_length=32),
        model=require_text(model, "model", max_length=100),
        max_allowance=parse_amount(max_allowance if max_allowance is not None else "4000", "max_allowance"),
    )

    def _op():
        db.session.add(truck)
        db.session.commit()
        return truck

    return run_with_retry(_op)


def update_truck_max_allowance(truck_number: str, max_allowance) -> Truck:
    truck_number = require_text(truck_number, "truck_number", max_length=32)
    new_max = parse_amount(max_allowance, "max_allowance")

    def _op():
        truck = lock_for_update(db.session.query(Truck).filter_by(truck_number=truck_number)).first()
        if truck is None:
            raise NotFound("Truck", truck_number)
        truck.max_allowance = new_max
        db.session.commit()
        return truck

    return run_with_retry(_op)


def create_shop(
    name: str,
    address: str,
    city: str | None = None,
    district: str | None = None,
    contact_number: str | None = None,
) -> Shop:
    shop = Shop(
        name=require_text(name, "name"),
        address=require_text(address, "address"),
        city=optional_text(city, "city", max_length=100),
        district=optional_text(district, "district", max_length=100),
        contact_number=optional_text(contact_number, "contact_number", max_length=32),
    )

    def _op():
        db.session.add(shop)
        db.session.commit()
        return shop

    return run_with_retry(_op)
