"""
Loan Record Module

Defines the loan aggregate and the payments it owns, their storage
(de)serialization and the external JSON representation. Monetary values are
Decimal; timestamps are timezone-aware UTC datetimes.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, date, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .balance import total_paid, remaining_amount, payment_percentage
from .enums import LoanStatus, PaymentMethod
from .storage import StorageRecord


def parse_decimal(value: Any) -> Decimal:
    """Parse a number or numeric string into a finite Decimal"""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 string, date or datetime into an aware UTC datetime.

    Naive values are taken as UTC and a bare date means midnight UTC.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        result = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if result.tzinfo is None:
        return result.replace(tzinfo=timezone.utc)
    return result.astimezone(timezone.utc)


@dataclass
class Payment:
    """A single payment recorded against a loan"""
    id: str
    amount: Decimal
    date: datetime
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'amount': str(self.amount),
            'date': self.date.isoformat(),
            'description': self.description,
            'payment_method': self.payment_method.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        return cls(
            id=data['id'],
            amount=Decimal(data['amount']),
            date=datetime.fromisoformat(data['date']),
            description=data.get('description') or "",
            payment_method=PaymentMethod(data.get('payment_method', PaymentMethod.CASH.value))
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'amount': str(self.amount),
            'date': self.date.isoformat(),
            'description': self.description,
            'paymentMethod': self.payment_method.value
        }


@dataclass
class Loan(StorageRecord):
    """Customer loan with its ordered payment history"""
    customer_name: str
    loan_amount: Decimal
    loan_date: datetime
    due_date: Optional[datetime] = None
    description: str = ""
    interest_rate: Decimal = Decimal('0')
    payments: List[Payment] = field(default_factory=list)
    status: LoanStatus = LoanStatus.ACTIVE

    @property
    def total_paid(self) -> Decimal:
        return total_paid(self)

    @property
    def remaining_amount(self) -> Decimal:
        return remaining_amount(self)

    @property
    def payment_percentage(self) -> Decimal:
        return payment_percentage(self)

    def find_payment(self, payment_id: str) -> Optional[Payment]:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert loan to its storage document"""
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'customer_name': self.customer_name,
            'loan_amount': str(self.loan_amount),
            'loan_date': self.loan_date.isoformat(),
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'description': self.description,
            'interest_rate': str(self.interest_rate),
            'payments': [payment.to_dict() for payment in self.payments],
            'status': self.status.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        """Rebuild a loan from its storage document"""
        due_date = data.get('due_date')
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            customer_name=data['customer_name'],
            loan_amount=Decimal(data['loan_amount']),
            loan_date=datetime.fromisoformat(data['loan_date']),
            due_date=datetime.fromisoformat(due_date) if due_date else None,
            description=data.get('description') or "",
            interest_rate=Decimal(data.get('interest_rate') or '0'),
            payments=[Payment.from_dict(p) for p in data.get('payments', [])],
            status=LoanStatus(data.get('status', LoanStatus.ACTIVE.value))
        )

    def to_json(self) -> Dict[str, Any]:
        """External representation: stored fields plus the derived balances"""
        return {
            'id': self.id,
            'customerName': self.customer_name,
            'loanAmount': str(self.loan_amount),
            'loanDate': self.loan_date.isoformat(),
            'dueDate': self.due_date.isoformat() if self.due_date else None,
            'description': self.description,
            'interestRate': str(self.interest_rate),
            'payments': [payment.to_json() for payment in self.payments],
            'status': self.status.value,
            'totalPaid': str(self.total_paid),
            'remainingAmount': str(self.remaining_amount),
            'paymentPercentage': str(self.payment_percentage),
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat()
        }
