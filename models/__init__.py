from models.application import LoanApplication, LoanStatus, LoanType

__all__ = [
    "LoanApplication",
    "LoanStatus",
    "LoanType",
]
