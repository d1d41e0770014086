"""
Shared fixtures for the test modules: an in-memory SQLite database per test
and helpers to build payloads and insert rows with fixed timestamps.
"""
import itertools
import unittest
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database import Base
from models import LoanApplication
from services.applications import new_application_id

_email_seq = itertools.count(1)


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def application_payload(**overrides):
    """A valid create payload in the camelCase the API accepts."""
    payload = {
        "fullName": "Jordan Example",
        "email": f"applicant{next(_email_seq)}@example.com",
        "phone": "(555) 010-2030",
        "address": "12 Test Street, Springfield",
        "loanAmount": 10_000,
        "loanType": "personal",
        "loanPurpose": "Consolidate two credit card balances",
        "employmentStatus": "Full-time",
        "monthlyIncome": 4_500,
        "creditScore": 720,
    }
    payload.update(overrides)
    return payload


def make_application(created_at=None, **fields) -> LoanApplication:
    """Row built directly, bypassing auto-decisioning, for aggregate fixtures."""
    created_at = created_at or utc(2024, 1, 1)
    values = {
        "id": new_application_id(),
        "full_name": "Fixture Applicant",
        "email": f"fixture{next(_email_seq)}@example.com",
        "phone": "555-0100",
        "address": "1 Fixture Road",
        "loan_amount": 1_000,
        "loan_type": "personal",
        "loan_purpose": "Fixture loan purpose text",
        "employment_status": "Full-time",
        "monthly_income": 3_000,
        "credit_score": 650,
        "status": "pending",
        "created_at": created_at,
        "updated_at": created_at,
    }
    values.update(fields)
    return LoanApplication(**values)


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.sessionmaker = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self.session = self.sessionmaker()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def insert(self, *apps: LoanApplication) -> list[LoanApplication]:
        self.session.add_all(apps)
        await self.session.commit()
        return list(apps)
