import uuid

import pytest

from stockline.errors import InsufficientStock
from stockline.models import WarehouseStock
from stockline.services import stock_service, delivery_service, truck_load_service


def test_credit_creates_row_lazily(db_session, product_a):
    assert db_session.query(WarehouseStock).filter_by(product_id=product_a.id).first() is None

    new_qty = stock_service.credit(product_a.id, 25)
    db_session.commit()

    assert new_qty == 25
    assert stock_service.get_quantity_on_hand(product_a.id) == 25
    assert db_session.query(WarehouseStock).filter_by(product_id=product_a.id).count() == 1


def test_credit_adds_to_existing_row(db_session, product_a):
    stock_service.credit(product_a.id, 25)
    new_qty = stock_service.credit(product_a.id, 5)
    db_session.commit()

    assert new_qty == 30
    assert db_session.query(WarehouseStock).filter_by(product_id=product_a.id).count() == 1


def test_debit_checked_decrements_and_returns_new_quantity(db_session, product_a):
    stock_service.credit(product_a.id, 10)

    assert stock_service.debit_checked(product_a.id, 4) == 6
    assert stock_service.debit_checked(product_a.id, 6) == 0
    db_session.commit()

    assert stock_service.get_quantity_on_hand(product_a.id) == 0


def test_debit_checked_refuses_more_than_on_hand(db_session, product_a):
    stock_service.credit(product_a.id, 3)

    with pytest.raises(InsufficientStock) as exc_info:
        stock_service.debit_checked(product_a.id, 4)

    assert exc_info.value.requested == 4
    assert exc_info.value.available == 3
    assert exc_info.value.details["product_id"] == str(product_a.id)
    assert stock_service.get_quantity_on_hand(product_a.id) == 3


def test_debit_checked_without_stock_row_reports_zero_available(db_session, product_a):
    with pytest.raises(InsufficientStock) as exc_info:
        stock_service.debit_checked(product_a.id, 1)

    assert exc_info.value == InsufficientStock(product_a.id, 1, 0)


def test_quantity_on_hand_is_zero_for_unknown_product(db_session):
    assert stock_service.get_quantity_on_hand(uuid.uuid4()) == 0


def test_list_stock_orders_by_product_name(db_session, product_a, product_b):
    stock_service.credit(product_b.id, 7)
    stock_service.credit(product_a.id, 3)
    db_session.commit()

    rows = stock_service.list_stock()

    assert [row["product_name"] for row in rows] == ["Product A", "Product B"]
    assert [row["quantity"] for row in rows] == [3, 7]


def test_reconcile_matches_history(db_session, operator, driver, truck, product_a, product_b):
    delivery_service.create_delivery(operator.id, "2026-01-05", [(product_a.id, 50), (product_b.id, 20)])
    delivery_service.create_delivery(operator.id, "2026-01-06", [(product_a.id, 10)])
    truck_load_service.create_truck_load(driver.id, truck.id, "2026-01-07", [(product_a.id, 35)])

    report = {row["product_id"]: row for row in stock_service.reconcile_stock()}

    assert report[str(product_a.id)]["expected"] == 25
    assert report[str(product_a.id)]["on_hand"] == 25
    assert report[str(product_a.id)]["drift"] == 0
    assert report[str(product_b.id)]["delivered"] == 20
    assert report[str(product_b.id)]["dispatched"] == 0
    assert all(row["drift"] == 0 for row in report.values())


def test_reconcile_reports_out_of_band_changes(db_session, operator, product_a):
    delivery_service.create_delivery(operator.id, "2026-01-05", [(product_a.id, 50)])

    # Simulate a manual edit that bypassed the ledger services
    row = db_session.query(WarehouseStock).filter_by(product_id=product_a.id).one()
    row.quantity = 47
    db_session.commit()

    report = stock_service.reconcile_stock(product_a.id)

    assert len(report) == 1
    assert report[0]["expected"] == 50
    assert report[0]["on_hand"] == 47
    assert report[0]["drift"] == -3
