# Overview: Payment ledger; records payments and moves sales from pending to paid.

"""
Payment Ledger

DESIGN PRINCIPLES:
- Payments are separate from sales (many-to-one relationship)
- Partial payments: a payment can be less than the balance due
- Append-only: payments are never updated, voided or deleted
- Status is monotonic: pending -> paid once paid_amount >= total_amount,
  and never back (no refund operation exists)
- Overpayment is accepted as-is; the balance simply goes negative

CONCURRENCY:
The sale row is locked (FOR UPDATE) and paid_amount is incremented with a
single SQL expression, so two payments racing on one sale can never lose
each other's amount.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func, select, update

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Sale, Payment, SALE_STATUS_PAID
from ..validation import MAX_AMOUNT, normalize_method, parse_amount, parse_date, parse_uuid
from .concurrency import lock_for_update, run_with_retry
from .sales_service import get_sale


def create_payment(sale_id, amount, method, date) -> Payment:
    """
    Record a payment against a sale.

    Args:
        sale_id: Sale being paid
        amount: Positive amount received
        method: Short tag such as "cash", "card", "online"
        date: Business date of the payment

    Returns:
        Payment record

    Raises:
        ValidationError: malformed input (before any transaction opens)
        NotFound: sale does not exist
        ValidationError: accumulated payments would exceed the money column
        StorageError: transaction could not commit
    """
    sale_id = parse_uuid(sale_id, "sale_id")
    amount = parse_amount(amount, "amount")
    method = normalize_method(method)
    payment_date = parse_date(date)

    def _op():
        # Get sale (locked for payment updates)
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFound("Sale", sale_id)

        new_paid = Decimal(sale.paid_amount or 0) + amount
        if new_paid > MAX_AMOUNT:
            raise ValidationError(
                f"paid amount {new_paid} would exceed maximum of {MAX_AMOUNT}",
                details={"sale_id": str(sale_id), "paid_amount": str(new_paid)},
            )

        payment = Payment(
            sale_id=sale_id,
            amount=amount,
            method=method,
            date=payment_date,
        )
        db.session.add(payment)
        db.session.flush()  # Get payment ID

        db.session.execute(
            update(Sale)
            .where(Sale.id == sale_id)
            .values(paid_amount=func.coalesce(Sale.paid_amount, 0) + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(sale)

        paid = Decimal(sale.paid_amount or 0)
        if sale.status != SALE_STATUS_PAID and paid >= Decimal(sale.total_amount):
            sale.status = SALE_STATUS_PAID

        db.session.commit()

        current_app.logger.info(
            "Payment %s of %s (%s) applied to sale %s: paid %s of %s, status %s",
            payment.id, amount, method, sale_id, sale.paid_amount, sale.total_amount, sale.status,
        )
        if paid > Decimal(sale.total_amount):
            current_app.logger.warning(
                "Sale %s overpaid by %s", sale_id, paid - Decimal(sale.total_amount)
            )
        return payment

    return run_with_retry(_op)


def get_sale_payments(sale_id) -> list[Payment]:
    """Payments for a sale, oldest first."""
    sale = get_sale(sale_id)
    return db.session.execute(
        select(Payment)
        .where(Payment.sale_id == sale.id)
        .order_by(Payment.date, Payment.created_at)
    ).scalars().all()


def get_sale_balance(sale_id) -> Decimal:
    """
    Remaining balance due on a sale.

    Returns:
        total_amount - paid_amount (negative if overpaid)
    """
    sale = get_sale(sale_id)
    return Decimal(sale.total_amount) - Decimal(sale.paid_amount or 0)
