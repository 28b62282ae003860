"""Enumerations shared by the loan record and the balance engine."""

from enum import Enum


class LoanStatus(Enum):
    """Derived payment status of a loan"""
    ACTIVE = "Active"
    PAID = "Paid"
    OVERDUE = "Overdue"


class PaymentMethod(Enum):
    """How a payment was made"""
    CASH = "Cash"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"

    @classmethod
    def parse(cls, value: str) -> 'PaymentMethod':
        """Accept the wire value ("Bank Transfer") or the compact name ("BankTransfer")"""
        compact = value.replace(" ", "").lower()
        for method in cls:
            if compact == method.value.replace(" ", "").lower():
                return method
        raise ValueError(f"Unknown payment method: {value}")
