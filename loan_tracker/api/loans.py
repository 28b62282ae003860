"""
Loan endpoints
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from .dependencies import LoanTrackerSystem, get_system
from .schemas import CreateLoanRequest, PaymentRequest, UpdateLoanRequest
from ..queries import build_loan_filter


router = APIRouter()

# Handlers are plain functions so FastAPI runs them in its threadpool; storage
# access and PDF rendering block and must stay off the event loop.


def _listing(loans) -> Dict[str, Any]:
    return {
        "success": True,
        "count": len(loans),
        "data": [loan.to_json() for loan in loans]
    }


def _single(loan) -> Dict[str, Any]:
    return {"success": True, "data": loan.to_json()}


# Fixed paths are registered before /{loan_id} so they are not captured by it
@router.get("/date-range")
def get_loans_by_date_range(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    customer_name: Optional[str] = Query(None, alias="customerName"),
    system: LoanTrackerSystem = Depends(get_system)
):
    """Loans made within a date range (both bounds required, end day inclusive)"""
    loans = system.loan_manager.get_loans_by_date_range(start_date, end_date, customer_name)
    return _listing(loans)


@router.get("/generate-pdf")
def generate_pdf(
    loan_id: Optional[str] = Query(None, alias="loanId"),
    customer_name: Optional[str] = Query(None, alias="customerName"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    filter_type: Optional[str] = Query(None, alias="filterType"),
    system: LoanTrackerSystem = Depends(get_system)
):
    """Receipt PDF for one loan, or a report PDF for the filtered loans"""
    report = system.reporting_engine.generate_pdf(
        loan_id=loan_id,
        customer_name=customer_name,
        start_date=start_date,
        end_date=end_date,
        filter_type=filter_type
    )
    return StreamingResponse(
        report.iter_chunks(),
        media_type=report.media_type,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'}
    )


@router.get("")
def get_loans(
    customer_name: Optional[str] = Query(None, alias="customerName"),
    loan_status: Optional[str] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    system: LoanTrackerSystem = Depends(get_system)
):
    """List loans, newest first"""
    loan_filter = build_loan_filter(customer_name, loan_status, start_date, end_date)
    return _listing(system.loan_manager.get_loans(loan_filter))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_loan(
    request: CreateLoanRequest,
    system: LoanTrackerSystem = Depends(get_system)
):
    """Create a loan"""
    loan = system.loan_manager.create_loan(
        customer_name=request.customer_name,
        loan_amount=request.loan_amount,
        loan_date=request.loan_date,
        due_date=request.due_date,
        description=request.description,
        interest_rate=request.interest_rate
    )
    return _single(loan)


@router.get("/{loan_id}")
def get_loan(loan_id: str, system: LoanTrackerSystem = Depends(get_system)):
    """Get loan details"""
    return _single(system.loan_manager.get_loan(loan_id))


@router.put("/{loan_id}")
def update_loan(
    loan_id: str,
    request: UpdateLoanRequest,
    system: LoanTrackerSystem = Depends(get_system)
):
    """Update the fields present in the body"""
    loan = system.loan_manager.update_loan(loan_id, request.model_dump(exclude_unset=True))
    return _single(loan)


@router.delete("/{loan_id}")
def delete_loan(loan_id: str, system: LoanTrackerSystem = Depends(get_system)):
    """Delete a loan"""
    system.loan_manager.delete_loan(loan_id)
    return {"success": True, "data": {}}


@router.post("/{loan_id}/payments")
def add_payment(
    loan_id: str,
    request: PaymentRequest,
    system: LoanTrackerSystem = Depends(get_system)
):
    """Record a payment against a loan"""
    loan = system.loan_manager.add_payment(
        loan_id,
        amount=request.amount,
        date=request.date,
        description=request.description,
        payment_method=request.payment_method
    )
    return _single(loan)


@router.delete("/{loan_id}/payments/{payment_id}")
def delete_payment(
    loan_id: str,
    payment_id: str,
    system: LoanTrackerSystem = Depends(get_system)
):
    """Remove a payment from a loan"""
    return _single(system.loan_manager.delete_payment(loan_id, payment_id))
