"""End-to-end walk through the goods pipeline: deliver, load, sell, pay."""

from decimal import Decimal

import pytest

from stockline.errors import InsufficientStock
from stockline.models import TruckLoad, SALE_STATUS_PAID, SALE_STATUS_PENDING
from stockline.services import (
    delivery_service,
    payment_service,
    sales_service,
    stock_service,
    truck_load_service,
)


def test_deliver_load_sell_pay_then_reject_oversized_load(db_session, operator, driver, truck, shop, product_a):
    assert product_a.price == Decimal("10.00")

    delivery_service.create_delivery(operator.id, "2026-08-01", [(product_a.id, 100)])
    assert stock_service.get_quantity_on_hand(product_a.id) == 100

    load = truck_load_service.create_truck_load(driver.id, truck.id, "2026-08-01", [(product_a.id, 30)])
    assert stock_service.get_quantity_on_hand(product_a.id) == 70

    sale = sales_service.create_sale(load.id, shop.id, "2026-08-01", [(product_a.id, 20)])
    assert sale.total_amount == 200.0
    assert sale.paid_amount == 0
    assert sale.status == SALE_STATUS_PENDING

    payment_service.create_payment(sale.id, 200.0, "cash", "2026-08-02")
    sale = sales_service.get_sale(sale.id)
    assert sale.paid_amount == 200.0
    assert sale.status == SALE_STATUS_PAID

    with pytest.raises(InsufficientStock) as exc_info:
        truck_load_service.create_truck_load(driver.id, truck.id, "2026-08-02", [(product_a.id, 80)])

    assert exc_info.value == InsufficientStock(product_a.id, 80, 70)
    assert stock_service.get_quantity_on_hand(product_a.id) == 70
    assert db_session.query(TruckLoad).count() == 1
    assert all(row["drift"] == 0 for row in stock_service.reconcile_stock())
