"""
Pydantic schemas for API requests

Fields are deliberately loose (numbers may arrive as strings) so that the loan
service performs the domain validation and produces its own messages. Wire
names are camelCase.
"""

from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


Number = Union[int, float, str]


class CreateLoanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_name: Optional[str] = Field(None, alias="customerName")
    loan_amount: Optional[Number] = Field(None, alias="loanAmount")
    loan_date: Optional[str] = Field(None, alias="loanDate", description="ISO date or timestamp")
    due_date: Optional[str] = Field(None, alias="dueDate", description="ISO date or timestamp")
    description: Optional[str] = None
    interest_rate: Optional[Number] = Field(None, alias="interestRate")


class UpdateLoanRequest(BaseModel):
    """Partial update; only the keys present in the body are applied"""
    model_config = ConfigDict(populate_by_name=True)

    customer_name: Optional[str] = Field(None, alias="customerName")
    loan_amount: Optional[Number] = Field(None, alias="loanAmount")
    loan_date: Optional[str] = Field(None, alias="loanDate")
    due_date: Optional[str] = Field(None, alias="dueDate")
    description: Optional[str] = None
    interest_rate: Optional[Number] = Field(None, alias="interestRate")


class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Number] = None
    date: Optional[str] = Field(None, description="ISO date or timestamp; defaults to now")
    description: Optional[str] = None
    payment_method: Optional[str] = Field(
        None, alias="paymentMethod", description="Cash, Card or Bank Transfer"
    )
