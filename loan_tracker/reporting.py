"""
Reporting Engine Module

Renders loan receipts (one loan) and aggregate loan reports (a filtered
collection) as PDF. Layout and page-break decisions live here; drawing is
delegated to a DocumentWriter, with a reportlab canvas implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterator, List, Optional, Sequence
import io
import re

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .exceptions import InternalError, LoanTrackerError
from .logging_config import get_logger, log_event
from .loans import LoanManager
from .models import Loan
from .queries import LoanFilter, report_filter


PDF_MEDIA_TYPE = "application/pdf"
LINE_SPACING = 1.2


@dataclass(frozen=True)
class TextStyle:
    """How a line of text is drawn"""
    font_size: float = 12
    bold: bool = False
    color: str = "black"
    align: str = "left"  # left, center or right
    underline: bool = False
    indent: float = 0
    link: Optional[str] = None

    @property
    def line_height(self) -> float:
        return self.font_size * LINE_SPACING


TITLE = TextStyle(font_size=24, bold=True, align="center")
REPORT_TITLE = TextStyle(font_size=20, bold=True, align="center")
CUSTOMER = TextStyle(font_size=18)
SECTION = TextStyle(font_size=16, underline=True)
DETAIL = TextStyle(font_size=14)
BODY = TextStyle(font_size=12)
ITEM = TextStyle(font_size=12, underline=True)
NOTE = TextStyle(font_size=12, indent=20)
MUTED = TextStyle(font_size=12, color="gray")
MUTED_CENTER = TextStyle(font_size=12, color="gray", align="center")
MUTED_RIGHT = TextStyle(font_size=12, color="gray", align="right")
FOOTER = TextStyle(font_size=10, color="gray", align="center", underline=True)

# Vertical space a block needs before it is started on the current page
LOAN_BLOCK_HEIGHT = 6 * BODY.line_height + BODY.line_height / 2
SUMMARY_BLOCK_HEIGHT = DETAIL.line_height + 3 * BODY.line_height + BODY.line_height
PAYMENT_ENTRY_HEIGHT = 2 * BODY.line_height


class DocumentWriter(ABC):
    """Drawing surface with a top-down cursor"""

    @abstractmethod
    def add_text(self, text: str, style: TextStyle = BODY) -> None:
        """Draw text at the cursor and advance it"""
        pass

    @abstractmethod
    def wrap(self, text: str, style: TextStyle = BODY) -> List[str]:
        """Split text into the lines add_text would draw"""
        pass

    @abstractmethod
    def move_down(self, lines: float = 1.0) -> None:
        """Advance the cursor by a number of body lines"""
        pass

    @abstractmethod
    def add_page(self) -> None:
        """Start a new page with the cursor at the top margin"""
        pass

    @abstractmethod
    def get_current_position(self) -> float:
        """Cursor distance from the top of the page"""
        pass

    @abstractmethod
    def remaining_space(self) -> float:
        """Vertical space left above the footer area of the current page"""
        pass

    @abstractmethod
    def add_footer(self, lines: Sequence[str], link: Optional[str] = None) -> None:
        """Draw footer lines at the bottom of the current page"""
        pass

    @abstractmethod
    def end(self) -> None:
        """Finish the document"""
        pass


class ReportLabDocumentWriter(DocumentWriter):
    """DocumentWriter drawing onto a reportlab canvas that writes to a binary stream"""

    FONT = "Helvetica"
    BOLD_FONT = "Helvetica-Bold"
    COLORS = {"black": colors.black, "gray": colors.grey}

    def __init__(self, stream: BinaryIO, pagesize=LETTER, margin: float = 50,
                 footer_height: float = 50):
        self.canvas = canvas.Canvas(stream, pagesize=pagesize)
        self.width, self.height = pagesize
        self.margin = margin
        self.footer_height = footer_height
        self._y = margin

    def _font(self, style: TextStyle) -> str:
        return self.BOLD_FONT if style.bold else self.FONT

    def wrap(self, text: str, style: TextStyle = BODY) -> List[str]:
        usable = self.width - 2 * self.margin - style.indent
        return simpleSplit(text, self._font(style), style.font_size, usable) or [""]

    def add_text(self, text: str, style: TextStyle = BODY) -> None:
        font = self._font(style)
        left = self.margin + style.indent
        self.canvas.setFont(font, style.font_size)
        self.canvas.setFillColor(self.COLORS.get(style.color, colors.black))

        for line in self.wrap(text, style):
            baseline = self.height - self._y - style.font_size
            line_width = self.canvas.stringWidth(line, font, style.font_size)
            if style.align == "center":
                x = (self.width - line_width) / 2
            elif style.align == "right":
                x = self.width - self.margin - line_width
            else:
                x = left
            self.canvas.drawString(x, baseline, line)
            if style.underline:
                self.canvas.line(x, baseline - 1.5, x + line_width, baseline - 1.5)
            if style.link:
                self.canvas.linkURL(
                    style.link, (x, baseline - 2, x + line_width, baseline + style.font_size),
                    relative=0
                )
            self._y += style.line_height

        self.canvas.setFillColor(colors.black)

    def move_down(self, lines: float = 1.0) -> None:
        self._y += lines * BODY.line_height

    def add_page(self) -> None:
        self.canvas.showPage()
        self._y = self.margin

    def get_current_position(self) -> float:
        return self._y

    def remaining_space(self) -> float:
        return self.height - self.margin - self.footer_height - self._y

    def add_footer(self, lines: Sequence[str], link: Optional[str] = None) -> None:
        saved = self._y
        self._y = self.height - self.footer_height
        for line in lines:
            self.add_text(line, TextStyle(
                font_size=FOOTER.font_size, color=FOOTER.color, align=FOOTER.align,
                underline=bool(link), link=link
            ))
        self._y = saved

    def end(self) -> None:
        self.canvas.save()


WriterFactory = Callable[[BinaryIO], DocumentWriter]


def format_money(amount: Decimal, currency_label: str) -> str:
    """Currency label plus amount with thousands separators; cents only when present"""
    if amount == amount.to_integral_value():
        text = f"{amount:,.0f}"
    else:
        text = f"{amount:,.2f}"
    return f"{currency_label} {text}"


def format_date(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


@dataclass
class ReportTotals:
    """Sums across the loans listed in an aggregate report"""
    loan_count: int = 0
    total_loan_amount: Decimal = Decimal('0')
    total_paid: Decimal = Decimal('0')
    total_remaining: Decimal = Decimal('0')

    def add(self, loan: Loan) -> None:
        self.loan_count += 1
        self.total_loan_amount += loan.loan_amount
        self.total_paid += loan.total_paid
        self.total_remaining += loan.remaining_amount


def compute_totals(loans: Sequence[Loan]) -> ReportTotals:
    totals = ReportTotals()
    for loan in loans:
        totals.add(loan)
    return totals


@dataclass
class RenderContext:
    """Rendering state threaded through every write"""
    writer: DocumentWriter
    currency_label: str = "PKR"
    footer_lines: List[str] = field(default_factory=list)
    footer_link: Optional[str] = None

    def write(self, text: str, style: TextStyle = BODY) -> None:
        """Draw text line by line, breaking the page wherever a wrapped line doesn't fit"""
        for line in self.writer.wrap(text, style):
            self.ensure_space(style.line_height)
            self.writer.add_text(line, style)

    def space(self, lines: float = 1.0) -> None:
        self.writer.move_down(lines)

    def money(self, amount: Decimal) -> str:
        return format_money(amount, self.currency_label)

    def footer(self) -> None:
        self.writer.add_footer(self.footer_lines, self.footer_link)

    def ensure_space(self, needed: float) -> None:
        """Close the page with its footer and start a new one if needed doesn't fit"""
        if self.writer.remaining_space() < needed:
            self.footer()
            self.writer.add_page()

    def finish(self) -> None:
        self.footer()
        self.writer.end()


def render_receipt(ctx: RenderContext, loan: Loan) -> None:
    """Single-loan receipt with its full payment history"""
    ctx.write("LOAN RECEIPT", TITLE)
    ctx.space()
    ctx.write(f"Receipt #: {loan.id}", MUTED_RIGHT)
    ctx.space()

    ctx.write(f"Customer Name: {loan.customer_name}", CUSTOMER)
    ctx.space(0.5)
    ctx.write(f"Loan Date: {format_date(loan.loan_date)}", DETAIL)
    if loan.due_date:
        ctx.write(f"Due Date: {format_date(loan.due_date)}", DETAIL)
    ctx.space()

    ctx.write("Loan Details", SECTION)
    ctx.space(0.5)
    ctx.write(f"Loan Amount: {ctx.money(loan.loan_amount)}", DETAIL)
    ctx.write(f"Total Paid: {ctx.money(loan.total_paid)}", DETAIL)
    ctx.write(f"Remaining Amount: {ctx.money(loan.remaining_amount)}", DETAIL)
    ctx.write(f"Status: {loan.status.value}", DETAIL)
    if loan.interest_rate > 0:
        ctx.write(f"Interest Rate: {loan.interest_rate}%", DETAIL)

    if loan.description:
        ctx.space()
        ctx.write(f"Description: {loan.description}", BODY)

    ctx.space(1.5)
    ctx.ensure_space(SECTION.line_height + PAYMENT_ENTRY_HEIGHT)
    ctx.write("Payment History", SECTION)
    ctx.space(0.5)

    if not loan.payments:
        ctx.write("No payments recorded yet.", MUTED)
        return

    for number, payment in enumerate(loan.payments, start=1):
        ctx.ensure_space(PAYMENT_ENTRY_HEIGHT)
        ctx.write(
            f"{number}. {ctx.money(payment.amount)} - {format_date(payment.date)} "
            f"({payment.payment_method.value})",
            BODY
        )
        if payment.description:
            ctx.write(f"Note: {payment.description}", NOTE)
        ctx.space(0.3)


def render_aggregate(
    ctx: RenderContext,
    loans: Sequence[Loan],
    loan_filter: LoanFilter,
    generated_at: datetime
) -> ReportTotals:
    """Multi-loan report: header, one block per loan, then a summary"""
    ctx.write("Loan Management Report", REPORT_TITLE)
    ctx.space(0.5)
    ctx.write(f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}".rstrip(), MUTED_CENTER)
    ctx.space()

    ctx.write(f"Total Loans: {len(loans)}", DETAIL)
    for line in loan_filter.describe():
        ctx.write(line, DETAIL)
    ctx.space()

    for number, loan in enumerate(loans, start=1):
        ctx.ensure_space(LOAN_BLOCK_HEIGHT)
        ctx.write(f"{number}. {loan.customer_name}", ITEM)
        ctx.write(f"Loan Amount: {ctx.money(loan.loan_amount)}", NOTE)
        ctx.write(f"Total Paid: {ctx.money(loan.total_paid)}", NOTE)
        ctx.write(f"Remaining: {ctx.money(loan.remaining_amount)}", NOTE)
        ctx.write(f"Status: {loan.status.value}", NOTE)
        ctx.write(f"Date: {format_date(loan.loan_date)}", NOTE)
        ctx.space(0.5)

    totals = compute_totals(loans)
    ctx.ensure_space(SUMMARY_BLOCK_HEIGHT)
    ctx.space()
    ctx.write("Summary", TextStyle(font_size=14, underline=True))
    ctx.write(f"Total Loan Amount: {ctx.money(totals.total_loan_amount)}", BODY)
    ctx.write(f"Total Paid: {ctx.money(totals.total_paid)}", BODY)
    ctx.write(f"Total Remaining: {ctx.money(totals.total_remaining)}", BODY)
    return totals


@dataclass
class RenderedReport:
    """A finished PDF ready to be streamed to the caller"""
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE
    chunk_size: int = 64 * 1024

    def iter_chunks(self) -> Iterator[bytes]:
        for offset in range(0, len(self.content), self.chunk_size):
            yield self.content[offset:offset + self.chunk_size]


class ReportingEngine:
    """
    Produces loan receipts and aggregate loan reports
    """

    def __init__(
        self,
        loan_manager: LoanManager,
        currency_label: str = "PKR",
        footer_lines: Optional[Sequence[str]] = None,
        footer_link: Optional[str] = None,
        writer_factory: WriterFactory = ReportLabDocumentWriter,
        chunk_size: int = 64 * 1024
    ):
        self.loan_manager = loan_manager
        self.currency_label = currency_label
        self.footer_lines = list(footer_lines or [])
        self.footer_link = footer_link
        self.writer_factory = writer_factory
        self.chunk_size = chunk_size
        self.logger = get_logger("loan_tracker.reporting")

    def generate_pdf(
        self,
        loan_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        filter_type: Optional[str] = None
    ) -> RenderedReport:
        """
        Render a receipt when loan_id is given, else an aggregate report

        Loans are resolved before rendering starts, so a missing loan raises
        NotFoundError without producing any output.
        """
        now = self.loan_manager.clock()
        stamp = int(now.timestamp() * 1000)

        if loan_id:
            loans = [self.loan_manager.get_loan(loan_id)]
            customer_slug = re.sub(r"\s+", "-", loans[0].customer_name)
            filename = f"loan-receipt-{customer_slug}-{stamp}.pdf"
        else:
            loan_filter = report_filter(customer_name, start_date, end_date, filter_type)
            loans = self.loan_manager.get_loans(loan_filter)
            filename = f"loan-report-{stamp}.pdf"

        buffer = io.BytesIO()
        try:
            ctx = RenderContext(
                writer=self.writer_factory(buffer),
                currency_label=self.currency_label,
                footer_lines=self.footer_lines,
                footer_link=self.footer_link
            )
            if loan_id:
                render_receipt(ctx, loans[0])
            else:
                render_aggregate(ctx, loans, loan_filter, now)
            ctx.finish()
        except LoanTrackerError:
            raise
        except Exception as e:
            raise InternalError(f"Failed to render report: {e}") from e

        report = RenderedReport(
            filename=filename, content=buffer.getvalue(), chunk_size=self.chunk_size
        )
        log_event(
            self.logger, "info", f"Report generated: {filename}",
            "report_generated", loan_id=loan_id,
            mode="receipt" if loan_id else "aggregate",
            loan_count=len(loans), size=len(report.content)
        )
        return report
