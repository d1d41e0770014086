from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from models.application import LoanStatus, LoanType

EMAIL_PATTERN = r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$"
PHONE_PATTERN = r"^[0-9()\-\s+]+$"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class ExistingLoanSchema(BaseModel):
    lender: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    remaining_balance: float = Field(..., ge=0, alias="remainingBalance")

    model_config = {"populate_by_name": True}


class ApplicationCreate(BaseModel):
    full_name: str = Field(..., min_length=3, max_length=100, alias="fullName")
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)
    phone: str = Field(..., min_length=1, pattern=PHONE_PATTERN)
    address: str = Field(..., min_length=5, max_length=200)
    loan_amount: float = Field(..., ge=100, alias="loanAmount")
    loan_type: LoanType = Field(..., alias="loanType")
    loan_purpose: str = Field(..., min_length=10, max_length=500, alias="loanPurpose")
    employment_status: str = Field(..., min_length=1, max_length=64, alias="employmentStatus")
    monthly_income: float = Field(..., ge=0, alias="monthlyIncome")
    credit_score: int = Field(..., ge=300, le=850, alias="creditScore")
    documents: Optional[list[str]] = None
    existing_loans: Optional[list[ExistingLoanSchema]] = Field(None, alias="existingLoans")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "use_enum_values": True,
    }

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, v: str) -> str:
        return normalize_email(v)


class ApplicationUpdate(BaseModel):
    """Partial update of applicant and loan details; status has its own endpoint."""

    # Non-Optional types: an explicit null is rejected, an omitted field stays unset.
    full_name: str = Field(None, min_length=3, max_length=100, alias="fullName")
    email: str = Field(None, pattern=EMAIL_PATTERN, max_length=254)
    phone: str = Field(None, min_length=1, pattern=PHONE_PATTERN)
    address: str = Field(None, min_length=5, max_length=200)
    loan_amount: float = Field(None, ge=100, alias="loanAmount")
    loan_type: LoanType = Field(None, alias="loanType")
    loan_purpose: str = Field(None, min_length=10, max_length=500, alias="loanPurpose")
    employment_status: str = Field(None, min_length=1, max_length=64, alias="employmentStatus")
    monthly_income: float = Field(None, ge=0, alias="monthlyIncome")
    credit_score: int = Field(None, ge=300, le=850, alias="creditScore")
    documents: Optional[list[str]] = None
    existing_loans: Optional[list[ExistingLoanSchema]] = Field(None, alias="existingLoans")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "use_enum_values": True,
        "extra": "forbid",
    }

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, v: str) -> str:
        return normalize_email(v)


class StatusUpdate(BaseModel):
    status: LoanStatus


class ApplicationFilters(BaseModel):
    """Conjunctive list filters; None means unconstrained."""

    status: Optional[LoanStatus] = None
    loan_type: Optional[LoanType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    credit_score_min: Optional[int] = None
    credit_score_max: Optional[int] = None
    loan_amount_min: Optional[float] = None
    loan_amount_max: Optional[float] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
