# Overview: Sale recorder; opens a payable for products sold from a truck load.

"""
Sale Recorder

WHY: A sale records which portion of a dispatched truck load went to which
shop, for billing. Stock was already debited when the load left the
warehouse, so this service never touches the stock ledger.

PRICING:
- Unit prices are read from Product inside the sale transaction.
- total_amount = SUM(unit_price * quantity), stored once as a snapshot.
- Each line keeps the unit price it was billed at; later price changes
  never alter an existing sale.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import select

from ..errors import ValidationError
from ..extensions import db
from ..models import Sale, SaleLine, TruckLoad, Shop, SALE_STATUS_PENDING
from ..validation import MAX_AMOUNT, normalize_line_items, parse_date, parse_uuid, quantize_money
from .catalog_service import get_or_404, require_products
from .concurrency import run_with_retry


def create_sale(truckload_id, shop_id, date, line_items) -> Sale:
    """
    Record a sale to a shop and open its payable.

    Args:
        truckload_id: Truck load the goods came from
        shop_id: Shop buying the goods
        date: Business date of the sale
        line_items: (product_id, quantity) pairs, quantity > 0

    Returns:
        Sale with status pending, paid_amount 0

    Raises:
        ValidationError: malformed input (before any transaction opens)
        NotFound: truck load, shop or product does not exist
        ValidationError: computed total exceeds the money column
        StorageError: transaction could not commit
    """
    truckload_id = parse_uuid(truckload_id, "truckload_id")
    shop_id = parse_uuid(shop_id, "shop_id")
    sale_date = parse_date(date)
    items = normalize_line_items(line_items)

    def _op():
        get_or_404(TruckLoad, truckload_id, "TruckLoad")
        get_or_404(Shop, shop_id, "Shop")
        products = require_products(product_id for product_id, _ in items)

        priced_lines = []
        total_amount = Decimal("0")
        for product_id, quantity in items:
            unit_price = quantize_money(Decimal(products[product_id].price))
            line_total = quantize_money(unit_price * quantity)
            total_amount += line_total
            priced_lines.append((product_id, quantity, unit_price, line_total))

        if total_amount > MAX_AMOUNT:
            raise ValidationError(
                f"sale total {total_amount} exceeds maximum of {MAX_AMOUNT}",
                details={"total_amount": str(total_amount)},
            )

        sale = Sale(
            truck_load_id=truckload_id,
            shop_id=shop_id,
            date=sale_date,
            status=SALE_STATUS_PENDING,
            total_amount=quantize_money(total_amount),
            paid_amount=Decimal("0"),
        )
        db.session.add(sale)
        db.session.flush()  # Get sale ID

        for line_number, (product_id, quantity, unit_price, line_total) in enumerate(priced_lines, start=1):
            db.session.add(SaleLine(
                sale_id=sale.id,
                product_id=product_id,
                line_number=line_number,
                quantity=quantity,
                unit_price=unit_price,
                line_total=line_total,
            ))

        db.session.commit()
        current_app.logger.info(
            "Sale %s recorded for shop %s from truck load %s: total %s",
            sale.id, shop_id, truckload_id, sale.total_amount,
        )
        return sale

    return run_with_retry(_op)


def get_sale(sale_id) -> Sale:
    return get_or_404(Sale, parse_uuid(sale_id, "sale_id"), "Sale")


def get_sale_lines(sale_id) -> list[SaleLine]:
    sale = get_sale(sale_id)
    return db.session.execute(
        select(SaleLine).where(SaleLine.sale_id == sale.id).order_by(SaleLine.line_number)
    ).scalars().all()


def list_sales_for_truck_load(truckload_id) -> list[Sale]:
    truckload_id = parse_uuid(truckload_id, "truckload_id")
    return db.session.execute(
        select(Sale)
        .where(Sale.truck_load_id == truckload_id)
        .order_by(Sale.date, Sale.created_at)
    ).scalars().all()
