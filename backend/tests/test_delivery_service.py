import uuid
from datetime import date

import pytest

from stockline.errors import NotFound, ValidationError
from stockline.models import Delivery, DeliveryLine, WarehouseStock
from stockline.services import delivery_service, stock_service


def test_create_delivery_credits_each_product(db_session, operator, product_a, product_b):
    delivery = delivery_service.create_delivery(
        operator.id,
        date(2026, 3, 1),
        [(product_a.id, 100), {"product_id": str(product_b.id), "quantity": 40}],
    )

    assert delivery.user_id == operator.id
    assert delivery.date == date(2026, 3, 1)
    assert [(line.product_id, line.quantity) for line in delivery.lines] == [
        (product_a.id, 100),
        (product_b.id, 40),
    ]
    assert stock_service.get_quantity_on_hand(product_a.id) == 100
    assert stock_service.get_quantity_on_hand(product_b.id) == 40


def test_repeat_deliveries_accumulate(db_session, operator, product_a):
    delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 100)])
    delivery_service.create_delivery(operator.id, "2026-03-02", [(product_a.id, 15), (product_a.id, 5)])

    assert stock_service.get_quantity_on_hand(product_a.id) == 120
    assert db_session.query(WarehouseStock).filter_by(product_id=product_a.id).count() == 1


def test_unknown_product_aborts_whole_delivery(db_session, operator, product_a):
    missing = uuid.uuid4()

    with pytest.raises(NotFound) as exc_info:
        delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 10), (missing, 5)])

    assert exc_info.value.entity == "Product"
    assert exc_info.value.entity_id == missing
    assert db_session.query(Delivery).count() == 0
    assert db_session.query(DeliveryLine).count() == 0
    assert stock_service.get_quantity_on_hand(product_a.id) == 0


def test_unknown_user_is_not_found(db_session, product_a):
    with pytest.raises(NotFound):
        delivery_service.create_delivery(uuid.uuid4(), "2026-03-01", [(product_a.id, 10)])

    assert db_session.query(Delivery).count() == 0


@pytest.mark.parametrize("line_items", [
    [],
    [("not-a-uuid", 3)],
])
def test_malformed_batch_is_rejected(db_session, operator, line_items):
    with pytest.raises(ValidationError):
        delivery_service.create_delivery(operator.id, "2026-03-01", line_items)


@pytest.mark.parametrize("quantity", [0, -4, 2.5, "1e3", True])
def test_quantity_must_be_positive_integer(db_session, operator, product_a, quantity):
    with pytest.raises(ValidationError):
        delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, quantity)])

    assert db_session.query(Delivery).count() == 0


def test_bad_date_is_rejected(db_session, operator, product_a):
    with pytest.raises(ValidationError):
        delivery_service.create_delivery(operator.id, "01/03/2026", [(product_a.id, 1)])


def test_deliveries_by_user_newest_first(db_session, operator, driver, product_a):
    older = delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 1)])
    newer = delivery_service.create_delivery(operator.id, "2026-03-09", [(product_a.id, 1)])
    delivery_service.create_delivery(driver.id, "2026-03-05", [(product_a.id, 1)])

    history = delivery_service.get_deliveries_by_user(operator.id)

    assert [d.id for d in history] == [newer.id, older.id]


def test_get_delivery_includes_lines(db_session, operator, product_a):
    created = delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 12)])

    loaded = delivery_service.get_delivery(str(created.id))
    data = loaded.to_dict(include_lines=True)

    assert data["date"] == "2026-03-01"
    assert data["lines"][0]["quantity"] == 12
    assert data["lines"][0]["line_number"] == 1


def test_storage_failure_mid_batch_rolls_back_earlier_credits(db_session, operator, product_a, product_b, monkeypatch):
    from sqlalchemy.exc import IntegrityError
    from stockline.errors import StorageError

    real_credit = stock_service.credit
    failing_id = product_b.id

    def failing_credit(product_id, qty):
        if product_id == failing_id:
            raise IntegrityError("UPDATE warehouse_stock ...", {}, Exception("constraint failed"))
        return real_credit(product_id, qty)

    monkeypatch.setattr(delivery_service, "credit", failing_credit)

    with pytest.raises(StorageError) as exc_info:
        delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 10), (failing_id, 5)])

    assert exc_info.value.transient is False
    assert db_session.query(Delivery).count() == 0
    assert db_session.query(DeliveryLine).count() == 0
    assert stock_service.get_quantity_on_hand(product_a.id) == 0


def test_quantity_beyond_column_width_is_rejected(db_session, operator, product_a):
    with pytest.raises(ValidationError):
        delivery_service.create_delivery(operator.id, "2026-03-01", [(product_a.id, 2**63)])

    assert db_session.query(Delivery).count() == 0
    assert stock_service.get_quantity_on_hand(product_a.id) == 0
