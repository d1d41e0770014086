from enum import Enum

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy import JSON

from database import Base


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LoanType(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    EDUCATION = "education"
    MORTGAGE = "mortgage"
    AUTO = "auto"


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(254), unique=True, nullable=False, index=True)
    phone = Column(String(32), nullable=False)
    address = Column(String(200), nullable=False)
    loan_amount = Column(Float, nullable=False)
    loan_type = Column(String(16), nullable=False, index=True)
    loan_purpose = Column(Text, nullable=False)
    employment_status = Column(String(64), nullable=False)
    monthly_income = Column(Float, nullable=False)
    credit_score = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=LoanStatus.PENDING.value, index=True)
    # Reference strings only; files are stored elsewhere
    documents = Column(JSON, nullable=True)
    # List of {lender, amount, remaining_balance}
    existing_loans = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
