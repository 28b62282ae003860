"""
Balance & Status Engine

Pure functions deriving a loan's monetary state from its amount, payment list
and due date. No I/O; ``now`` is always passed in.
"""

from decimal import Decimal
from datetime import datetime
from typing import Iterable, Optional

from .enums import LoanStatus


ZERO = Decimal('0')
HUNDRED = Decimal('100')


def sum_payments(payments: Iterable) -> Decimal:
    """Sum of payment amounts; order does not matter"""
    return sum((payment.amount for payment in payments), ZERO)


def total_paid(loan) -> Decimal:
    return sum_payments(loan.payments)


def remaining_amount(loan) -> Decimal:
    return loan.loan_amount - total_paid(loan)


def payment_percentage(loan) -> Decimal:
    """Share of the loan amount paid so far, in percent (0 for a zero amount)"""
    if loan.loan_amount == ZERO:
        return ZERO
    return total_paid(loan) / loan.loan_amount * HUNDRED


def compute_status(
    loan_amount: Decimal,
    payments: Iterable,
    due_date: Optional[datetime],
    now: datetime
) -> LoanStatus:
    """
    Derive loan status.

    A fully paid loan is Paid even past its due date; an unpaid loan past its
    due date is Overdue; anything else is Active.
    """
    if loan_amount - sum_payments(payments) <= ZERO:
        return LoanStatus.PAID
    if due_date is not None and now > due_date:
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


def refresh_status(loan, now: datetime) -> LoanStatus:
    """Recompute and assign ``loan.status``; called before every persisted write"""
    loan.status = compute_status(loan.loan_amount, loan.payments, loan.due_date, now)
    return loan.status
