"""
Loan Module

Handles loan creation, partial updates, payment recording and removal, and
deletion. Every mutation is a validated read-modify-write that recomputes the
loan status before it is persisted.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from contextlib import contextmanager
import threading
import uuid

from .balance import refresh_status
from .enums import PaymentMethod
from .exceptions import NotFoundError, ValidationError
from .logging_config import get_logger, log_event
from .models import Loan, Payment, parse_decimal, parse_timestamp
from .queries import LoanFilter, date_range_filter, is_present, sort_by_loan_date
from .storage import StorageInterface


UPDATABLE_FIELDS = (
    'customer_name', 'loan_amount', 'loan_date', 'due_date', 'description', 'interest_rate'
)

CUSTOMER_NAME_REQUIRED = "Customer name is required and cannot be empty"
LOAN_AMOUNT_REQUIRED = "Loan amount is required"
LOAN_AMOUNT_INVALID = "Loan amount must be a valid number greater than 0"
INTEREST_RATE_INVALID = "Interest rate must be a valid number greater than or equal to 0"
PAYMENT_AMOUNT_INVALID = "Payment amount must be greater than 0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _positive_decimal(value: Any) -> Optional[Decimal]:
    """Parsed value when it is a number > 0, else None"""
    try:
        amount = parse_decimal(value)
    except ValueError:
        return None
    return amount if amount > 0 else None


def _non_negative_decimal(value: Any) -> Optional[Decimal]:
    try:
        amount = parse_decimal(value)
    except ValueError:
        return None
    return amount if amount >= 0 else None


def _timestamp_or_error(value: Any, message: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise ValidationError(message)


class _LoanLock:
    """Per-loan lock, dropped from the registry once nobody holds or waits on it"""

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class LoanManager:
    """
    Manages loans and their payments from creation through deletion
    """

    def __init__(
        self,
        storage: StorageInterface,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.storage = storage
        self.clock = clock or _utcnow
        self.id_factory = id_factory or _new_id
        self.logger = get_logger("loan_tracker.loans")

        self.loans_table = "loans"

        self._locks: Dict[str, _LoanLock] = {}
        self._locks_guard = threading.Lock()

    def create_loan(
        self,
        customer_name: Any,
        loan_amount: Any,
        loan_date: Any = None,
        due_date: Any = None,
        description: Optional[str] = None,
        interest_rate: Any = None
    ) -> Loan:
        """
        Create a new loan

        Args:
            customer_name: Borrower name, trimmed, must not be empty
            loan_amount: Principal, a number > 0
            loan_date: When the loan was made (defaults to now)
            due_date: Optional repayment deadline
            description: Free text
            interest_rate: Stored rate >= 0 (defaults to 0, never applied)

        Returns:
            Created Loan object
        """
        if not isinstance(customer_name, str) or not customer_name.strip():
            raise ValidationError(CUSTOMER_NAME_REQUIRED)

        if not is_present(loan_amount):
            raise ValidationError(LOAN_AMOUNT_REQUIRED)
        amount = _positive_decimal(loan_amount)
        if amount is None:
            raise ValidationError(LOAN_AMOUNT_INVALID)

        rate = Decimal('0')
        if interest_rate is not None:
            rate = _non_negative_decimal(interest_rate)
            if rate is None:
                raise ValidationError(INTEREST_RATE_INVALID)

        now = self.clock()
        made_on = now
        if is_present(loan_date):
            made_on = _timestamp_or_error(loan_date, "Invalid loan date format")

        due_on = None
        if is_present(due_date):
            due_on = _timestamp_or_error(due_date, "Invalid due date format")

        loan = Loan(
            id=self.id_factory(),
            created_at=now,
            updated_at=now,
            customer_name=customer_name.strip(),
            loan_amount=amount,
            loan_date=made_on,
            due_date=due_on,
            description=description or "",
            interest_rate=rate
        )

        with self.storage.atomic():
            self._save_loan(loan)

        log_event(
            self.logger, "info",
            f"Loan created successfully: {loan.id} for customer: {loan.customer_name}",
            "loan_created", loan_id=loan.id,
            loan_amount=str(loan.loan_amount), status=loan.status.value
        )
        return loan

    def get_loans(self, loan_filter: Optional[LoanFilter] = None) -> List[Loan]:
        """Loans matching the filter, newest loan date first"""
        now = self.clock()
        loan_filter = loan_filter or LoanFilter()

        loans = [self._hydrate(data, now) for data in self.storage.load_all(self.loans_table)]
        return sort_by_loan_date(loan for loan in loans if loan_filter.matches(loan))

    def get_loans_by_date_range(
        self,
        start_date: Any,
        end_date: Any,
        customer_name: Optional[str] = None
    ) -> List[Loan]:
        """Loans made between two dates, both required, end date inclusive"""
        return self.get_loans(date_range_filter(start_date, end_date, customer_name))

    def get_loan(self, loan_id: str) -> Loan:
        """Get loan by ID"""
        return self._require_loan(loan_id, self.clock())

    def update_loan(self, loan_id: str, fields: Dict[str, Any]) -> Loan:
        """
        Apply a partial update

        Only keys present in ``fields`` change. An explicit None clears the
        optional fields and is rejected for the required ones. All violations
        are reported together.
        """
        with self._loan_transaction(loan_id):
            loan = self._require_loan(loan_id, self.clock())
            errors = []

            if 'customer_name' in fields:
                name = fields['customer_name']
                if not isinstance(name, str) or not name.strip():
                    errors.append(CUSTOMER_NAME_REQUIRED)
                else:
                    loan.customer_name = name.strip()

            if 'loan_amount' in fields:
                amount = _positive_decimal(fields['loan_amount'])
                if not is_present(fields['loan_amount']):
                    errors.append(LOAN_AMOUNT_REQUIRED)
                elif amount is None:
                    errors.append(LOAN_AMOUNT_INVALID)
                else:
                    loan.loan_amount = amount

            if 'loan_date' in fields:
                if not is_present(fields['loan_date']):
                    errors.append("Loan date is required")
                else:
                    try:
                        loan.loan_date = parse_timestamp(fields['loan_date'])
                    except ValueError:
                        errors.append("Invalid loan date format")

            if 'due_date' in fields:
                if is_present(fields['due_date']):
                    try:
                        loan.due_date = parse_timestamp(fields['due_date'])
                    except ValueError:
                        errors.append("Invalid due date format")
                else:
                    loan.due_date = None

            if 'description' in fields:
                loan.description = fields['description'] or ""

            if 'interest_rate' in fields:
                if fields['interest_rate'] is None:
                    loan.interest_rate = Decimal('0')
                else:
                    rate = _non_negative_decimal(fields['interest_rate'])
                    if rate is None:
                        errors.append(INTEREST_RATE_INVALID)
                    else:
                        loan.interest_rate = rate

            if errors:
                raise ValidationError(errors)

            self._save_loan(loan)

        log_event(
            self.logger, "info", f"Loan updated: {loan.id}",
            "loan_updated", loan_id=loan.id,
            fields=sorted(k for k in fields if k in UPDATABLE_FIELDS)
        )
        return loan

    def add_payment(
        self,
        loan_id: str,
        amount: Any,
        date: Any = None,
        description: Optional[str] = None,
        payment_method: Optional[str] = None
    ) -> Loan:
        """
        Record a payment against a loan

        Args:
            loan_id: Loan ID
            amount: Payment amount, > 0 and not above the remaining amount
            date: When the payment was made (defaults to now)
            description: Optional note
            payment_method: Cash, Card or Bank Transfer (defaults to Cash)

        Returns:
            Updated Loan object
        """
        value = _positive_decimal(amount)
        if value is None:
            raise ValidationError(PAYMENT_AMOUNT_INVALID)

        method = PaymentMethod.CASH
        if is_present(payment_method):
            try:
                method = PaymentMethod.parse(payment_method)
            except (ValueError, AttributeError):
                allowed = ", ".join(m.value for m in PaymentMethod)
                raise ValidationError(f"Payment method must be one of: {allowed}")

        paid_on = None
        if is_present(date):
            paid_on = _timestamp_or_error(date, "Invalid payment date format")

        with self._loan_transaction(loan_id):
            now = self.clock()
            loan = self._require_loan(loan_id, now)

            remaining = loan.remaining_amount
            if value > remaining:
                log_event(
                    self.logger, "warning",
                    f"Rejected overpayment on loan {loan.id}",
                    "payment_rejected", loan_id=loan.id,
                    amount=str(value), remaining_amount=str(remaining)
                )
                raise ValidationError(
                    f"Payment amount ({value}) exceeds remaining amount ({remaining})"
                )

            payment = Payment(
                id=self.id_factory(),
                amount=value,
                date=paid_on or now,
                description=description or "",
                payment_method=method
            )
            loan.payments.append(payment)
            self._save_loan(loan)

        log_event(
            self.logger, "info", f"Payment {payment.id} added to loan {loan.id}",
            "payment_added", loan_id=loan.id,
            amount=str(payment.amount),
            remaining_amount=str(loan.remaining_amount),
            status=loan.status.value
        )
        return loan

    def delete_payment(self, loan_id: str, payment_id: str) -> Loan:
        """
        Remove a payment from a loan

        An unknown payment id leaves the payment list as it is; the loan is
        still re-saved with a freshly computed status.
        """
        with self._loan_transaction(loan_id):
            loan = self._require_loan(loan_id, self.clock())
            removed = loan.find_payment(payment_id)
            if removed is not None:
                loan.payments.remove(removed)
            self._save_loan(loan)

        log_event(
            self.logger, "info",
            f"Payment {payment_id} removed from loan {loan.id}" if removed is not None
            else f"Payment {payment_id} not on loan {loan.id}; nothing removed",
            "payment_deleted", loan_id=loan.id,
            removed=removed is not None, status=loan.status.value
        )
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Permanently delete a loan"""
        with self._loan_transaction(loan_id):
            if not self.storage.exists(self.loans_table, loan_id):
                raise NotFoundError("Loan not found")
            self.storage.delete(self.loans_table, loan_id)

        log_event(
            self.logger, "info", f"Loan deleted: {loan_id}",
            "loan_deleted", loan_id=loan_id
        )

    @contextmanager
    def _loan_transaction(self, loan_id: str):
        """Serialize mutations of one loan and make each one atomic in storage"""
        with self._locks_guard:
            entry = self._locks.get(loan_id)
            if entry is None:
                entry = self._locks[loan_id] = _LoanLock()
            entry.holders += 1
        try:
            with entry.lock:
                with self.storage.atomic():
                    yield
        finally:
            with self._locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[loan_id]

    def _hydrate(self, data: Dict[str, Any], now: datetime) -> Loan:
        loan = Loan.from_dict(data)
        refresh_status(loan, now)
        return loan

    def _require_loan(self, loan_id: str, now: datetime) -> Loan:
        data = self.storage.load(self.loans_table, loan_id)
        if not data:
            raise NotFoundError("Loan not found")
        return self._hydrate(data, now)

    def _save_loan(self, loan: Loan) -> None:
        """Recompute status and persist; the only write path for loans"""
        now = self.clock()
        refresh_status(loan, now)
        loan.updated_at = now
        self.storage.save(self.loans_table, loan.id, loan.to_dict())
