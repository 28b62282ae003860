"""
Tests for the loan record, payment records and input parsing helpers
"""

import pytest
from decimal import Decimal
from datetime import datetime, date, timezone, timedelta

from loan_tracker.enums import LoanStatus, PaymentMethod
from loan_tracker.models import Loan, Payment, parse_decimal, parse_timestamp


NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


class TestParseDecimal:
    """Test numeric input parsing"""

    @pytest.mark.parametrize("value,expected", [
        (100, Decimal('100')),
        ("250.50", Decimal('250.50')),
        (" 42 ", Decimal('42')),
        (Decimal('1.5'), Decimal('1.5')),
        (0.1, Decimal('0.1')),
    ])
    def test_valid_numbers(self, value, expected):
        assert parse_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", "", "NaN", "Infinity"])
    def test_invalid_numbers(self, value):
        """Booleans, blanks and non-finite values are not amounts"""
        with pytest.raises(ValueError):
            parse_decimal(value)


class TestParseTimestamp:
    """Test timestamp parsing and UTC normalization"""

    def test_bare_date_string_is_utc_midnight(self):
        assert parse_timestamp("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_trailing_z(self):
        assert parse_timestamp("2024-03-01T10:15:00Z") == datetime(
            2024, 3, 1, 10, 15, tzinfo=timezone.utc
        )

    def test_offset_is_converted_to_utc(self):
        parsed = parse_timestamp("2024-03-01T05:00:00+05:00")
        assert parsed == datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_date_and_naive_datetime(self):
        assert parse_timestamp(date(2024, 1, 2)) == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert parse_timestamp(datetime(2024, 1, 2, 3)).tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["not-a-date", "", "   ", 12345, None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestPaymentMethod:
    """Test payment method parsing"""

    @pytest.mark.parametrize("value,expected", [
        ("Cash", PaymentMethod.CASH),
        ("card", PaymentMethod.CARD),
        ("Bank Transfer", PaymentMethod.BANK_TRANSFER),
        ("BankTransfer", PaymentMethod.BANK_TRANSFER),
    ])
    def test_accepted_values(self, value, expected):
        assert PaymentMethod.parse(value) == expected

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            PaymentMethod.parse("Cheque")


class TestLoanRecord:
    """Test loan serialization"""

    def make_loan(self):
        return Loan(
            id="loan_1",
            created_at=NOW,
            updated_at=NOW,
            customer_name="Sara Ahmed",
            loan_amount=Decimal('1500'),
            loan_date=datetime(2024, 3, 1, tzinfo=timezone.utc),
            due_date=datetime(2024, 4, 1, tzinfo=timezone.utc),
            description="Shop stock",
            interest_rate=Decimal('2.5'),
            payments=[
                Payment(id="p1", amount=Decimal('500'), date=NOW,
                        description="first", payment_method=PaymentMethod.BANK_TRANSFER)
            ],
            status=LoanStatus.ACTIVE
        )

    def test_storage_document_restores_loan(self):
        """from_dict(to_dict()) rebuilds an equal loan"""
        loan = self.make_loan()
        restored = Loan.from_dict(loan.to_dict())
        assert restored == loan
        assert restored.payments[0].payment_method == PaymentMethod.BANK_TRANSFER

    def test_storage_document_uses_strings_for_money(self):
        data = self.make_loan().to_dict()
        assert data['loan_amount'] == "1500"
        assert data['payments'][0]['amount'] == "500"
        assert data['status'] == "Active"

    def test_json_representation(self):
        """External JSON carries camelCase keys and derived amounts"""
        body = self.make_loan().to_json()
        assert body['customerName'] == "Sara Ahmed"
        assert body['loanAmount'] == "1500"
        assert body['totalPaid'] == "500"
        assert body['remainingAmount'] == "1000"
        assert Decimal(body['paymentPercentage']) == Decimal('500') / Decimal('1500') * 100
        assert body['dueDate'] == "2024-04-01T00:00:00+00:00"
        assert body['payments'][0]['paymentMethod'] == "Bank Transfer"
        assert body['status'] == "Active"

    def test_find_payment(self):
        loan = self.make_loan()
        assert loan.find_payment("p1").amount == Decimal('500')
        assert loan.find_payment("missing") is None
