"""
Loan Query Module

Builds loan filters from raw query parameters: customer name pattern, status,
loan-date ranges and the daily/monthly/custom windows used by reports. Date
upper bounds are inclusive of the whole end day.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple
import calendar
import re

from .enums import LoanStatus
from .exceptions import ValidationError
from .models import Loan, parse_timestamp


class ReportFilterType:
    """Shorthand windows accepted by aggregate reports"""
    DAILY = "daily"
    MONTHLY = "monthly"


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    """Last millisecond of the calendar day containing moment"""
    return moment.replace(hour=23, minute=59, second=59, microsecond=999000)


def month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """First and last instant of the calendar month containing moment"""
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    first = start_of_day(moment.replace(day=1))
    last = end_of_day(moment.replace(day=last_day))
    return first, last


def parse_query_date(value: Any, label: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} format")


@dataclass
class LoanFilter:
    """Combinable loan predicate; every unset criterion matches everything"""
    customer_name: Optional[str] = None
    status: Optional[LoanStatus] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    label: Optional[str] = None
    _pattern: Optional[re.Pattern] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.customer_name:
            try:
                self._pattern = re.compile(self.customer_name, re.IGNORECASE)
            except re.error:
                raise ValidationError(f"Invalid customer name pattern: {self.customer_name}")

    def matches(self, loan: Loan) -> bool:
        if self._pattern is not None and not self._pattern.search(loan.customer_name):
            return False
        if self.status is not None and loan.status != self.status:
            return False
        if self.start is not None and loan.loan_date < self.start:
            return False
        if self.end is not None and loan.loan_date > self.end:
            return False
        return True

    def describe(self) -> List[str]:
        """Human-readable lines naming the criteria in effect"""
        lines = []
        if self.label:
            lines.append(f"Filter: {self.label}")
        if self.customer_name:
            lines.append(f"Customer: {self.customer_name}")
        if self.status is not None:
            lines.append(f"Status: {self.status.value}")
        if self.start is not None or self.end is not None:
            start = self.start.strftime("%Y-%m-%d") if self.start else "..."
            end = self.end.strftime("%Y-%m-%d") if self.end else "..."
            lines.append(f"Period: {start} to {end}")
        return lines


def sort_by_loan_date(loans: Iterable[Loan]) -> List[Loan]:
    """Newest loan first"""
    return sorted(loans, key=lambda loan: loan.loan_date, reverse=True)


def parse_status(value: Any) -> Optional[LoanStatus]:
    if not is_present(value):
        return None
    try:
        return LoanStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in LoanStatus)
        raise ValidationError(f"Status must be one of: {allowed}")


def build_loan_filter(
    customer_name: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> LoanFilter:
    """Filter for the loan listing; either date bound may be given alone"""
    start = parse_query_date(start_date, "start date") if is_present(start_date) else None
    end = end_of_day(parse_query_date(end_date, "end date")) if is_present(end_date) else None
    return LoanFilter(
        customer_name=customer_name if is_present(customer_name) else None,
        status=parse_status(status),
        start=start,
        end=end
    )


def date_range_filter(
    start_date: Optional[str],
    end_date: Optional[str],
    customer_name: Optional[str] = None
) -> LoanFilter:
    """Filter for the date-range query; both bounds are required"""
    if not is_present(start_date) or not is_present(end_date):
        raise ValidationError("Start date and end date are required")
    return LoanFilter(
        customer_name=customer_name if is_present(customer_name) else None,
        start=parse_query_date(start_date, "start date"),
        end=end_of_day(parse_query_date(end_date, "end date"))
    )


def report_window(
    filter_type: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve the loan-date window of an aggregate report.

    "daily" covers the whole day of start_date, "monthly" the calendar month
    containing start_date; otherwise start_date..end_date when both are given,
    else no restriction.
    """
    if filter_type == ReportFilterType.DAILY and is_present(start_date):
        day = parse_query_date(start_date, "start date")
        return start_of_day(day), end_of_day(day)
    if filter_type == ReportFilterType.MONTHLY and is_present(start_date):
        return month_bounds(parse_query_date(start_date, "start date"))
    if is_present(start_date) and is_present(end_date):
        return (
            parse_query_date(start_date, "start date"),
            end_of_day(parse_query_date(end_date, "end date"))
        )
    return None, None


def report_filter(
    customer_name: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    filter_type: Optional[str] = None
) -> LoanFilter:
    start, end = report_window(filter_type, start_date, end_date)
    return LoanFilter(
        customer_name=customer_name if is_present(customer_name) else None,
        start=start,
        end=end,
        label=filter_type if is_present(filter_type) else None
    )
