"""
Seed sample loan applications spread over several months.
Run: python -m scripts.seed_applications [--reset]   (from the project root)
Statuses are given explicitly, as if staff had already reviewed the records.
"""
import argparse
import asyncio
import os
import sys
from datetime import datetime, timezone

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete, select

from database import AsyncSessionLocal, close_db, init_db
from models import LoanApplication, LoanStatus, LoanType
from services.applications import new_application_id


def _at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 9, 30, tzinfo=timezone.utc)


SAMPLE_APPLICATIONS = [
    {
        "full_name": "Amelia Hart",
        "email": "amelia.hart@example.com",
        "phone": "(212) 555-0141",
        "address": "18 Hudson St, New York, NY 10013",
        "loan_amount": 12_000,
        "loan_type": LoanType.PERSONAL,
        "loan_purpose": "Kitchen renovation and appliances",
        "employment_status": "Full-time",
        "monthly_income": 5_400,
        "credit_score": 735,
        "status": LoanStatus.APPROVED,
        "created_at": _at(2024, 1, 12),
    },
    {
        "full_name": "Marcus Bell",
        "email": "marcus.bell@example.com",
        "phone": "(312) 555-0178",
        "address": "742 Lake Shore Dr, Chicago, IL 60611",
        "loan_amount": 40_000,
        "loan_type": LoanType.BUSINESS,
        "loan_purpose": "Second delivery van for the bakery",
        "employment_status": "Self-employed",
        "monthly_income": 8_200,
        "credit_score": 668,
        "status": LoanStatus.PENDING,
        "created_at": _at(2024, 2, 3),
        "existing_loans": [{"lender": "First Community Bank", "amount": 15_000, "remaining_balance": 6_300}],
    },
    {
        "full_name": "Priya Raman",
        "email": "priya.raman@example.com",
        "phone": "(415) 555-0102",
        "address": "55 Valencia St, San Francisco, CA 94103",
        "loan_amount": 22_000,
        "loan_type": LoanType.EDUCATION,
        "loan_purpose": "Data science master's program tuition",
        "employment_status": "Part-time",
        "monthly_income": 3_100,
        "credit_score": 712,
        "status": LoanStatus.APPROVED,
        "created_at": _at(2024, 2, 21),
    },
    {
        "full_name": "Tomasz Nowak",
        "email": "tomasz.nowak@example.com",
        "phone": "(773) 555-0199",
        "address": "9 Milwaukee Ave, Chicago, IL 60622",
        "loan_amount": 4_500,
        "loan_type": LoanType.PERSONAL,
        "loan_purpose": "Unexpected dental surgery costs",
        "employment_status": "Part-time",
        "monthly_income": 2_400,
        "credit_score": 571,
        "status": LoanStatus.REJECTED,
        "created_at": _at(2024, 3, 7),
    },
    {
        "full_name": "Grace Okafor",
        "email": "grace.okafor@example.com",
        "phone": "(206) 555-0155",
        "address": "310 Pine St, Seattle, WA 98101",
        "loan_amount": 310_000,
        "loan_type": LoanType.MORTGAGE,
        "loan_purpose": "Purchase of a two-bedroom condo",
        "employment_status": "Full-time",
        "monthly_income": 11_500,
        "credit_score": 781,
        "status": LoanStatus.APPROVED,
        "created_at": _at(2024, 3, 28),
    },
    {
        "full_name": "Diego Alvarez",
        "email": "diego.alvarez@example.com",
        "phone": "(512) 555-0123",
        "address": "1200 Congress Ave, Austin, TX 78701",
        "loan_amount": 16_500,
        "loan_type": LoanType.AUTO,
        "loan_purpose": "Replacement for a totaled sedan",
        "employment_status": "Full-time",
        "monthly_income": 5_900,
        "credit_score": 645,
        "status": LoanStatus.PENDING,
        "created_at": _at(2024, 4, 15),
    },
    {
        "full_name": "Hannah Lindqvist",
        "email": "hannah.lindqvist@example.com",
        "phone": "(617) 555-0167",
        "address": "88 Beacon St, Boston, MA 02108",
        "loan_amount": 7_800,
        "loan_type": LoanType.EDUCATION,
        "loan_purpose": "UX design certificate course",
        "employment_status": "Unemployed",
        "monthly_income": 0,
        "credit_score": 598,
        "status": LoanStatus.REJECTED,
        "created_at": _at(2024, 5, 2),
    },
    {
        "full_name": "Kwame Mensah",
        "email": "kwame.mensah@example.com",
        "phone": "(305) 555-0111",
        "address": "401 Biscayne Blvd, Miami, FL 33132",
        "loan_amount": 55_000,
        "loan_type": LoanType.BUSINESS,
        "loan_purpose": "Inventory for a second retail location",
        "employment_status": "Self-employed",
        "monthly_income": 9_700,
        "credit_score": 724,
        "status": LoanStatus.APPROVED,
        "created_at": _at(2024, 5, 19),
    },
]


async def seed(reset: bool = False):
    await init_db()
    async with AsyncSessionLocal() as session:
        if reset:
            await session.execute(delete(LoanApplication))
            print("Existing applications cleared")
        for data in SAMPLE_APPLICATIONS:
            existing = await session.execute(
                select(LoanApplication.id).where(LoanApplication.email == data["email"])
            )
            if existing.scalar_one_or_none():
                print(f"Application for {data['email']} already exists, skipping")
                continue
            app = LoanApplication(
                id=new_application_id(),
                **{
                    **data,
                    "loan_type": data["loan_type"].value,
                    "status": data["status"].value,
                    "updated_at": data["created_at"],
                },
            )
            session.add(app)
            print(f"Seeded application: {data['full_name']} ({data['status'].value})")
        await session.commit()
    await close_db()
    print("Seed complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed sample loan applications")
    parser.add_argument("--reset", action="store_true", help="delete all applications first")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset))
