"""
Lifecycle service against an in-memory database: create, fetch, status changes,
partial updates, deletion and filtered listing.
"""
import math
import unittest
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select

from models import LoanApplication, LoanStatus, LoanType
from schemas.application import ApplicationCreate, ApplicationFilters
from services import applications as service
from services.errors import (
    DuplicateEmail,
    InvalidIdFormat,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from tests.support import DatabaseTestCase, application_payload, make_application, utc


class TestCreateApplication(DatabaseTestCase):
    async def _count(self):
        return (await self.session.execute(select(func.count()).select_from(LoanApplication))).scalar_one()

    async def test_round_trip_approved(self):
        payload = application_payload(loanAmount=10_000, loanType="personal", creditScore=720)
        created = await service.create_application(self.session, ApplicationCreate.model_validate(payload))
        await self.session.commit()

        self.assertEqual(created.status, LoanStatus.APPROVED.value)
        self.assertTrue(service.is_valid_application_id(created.id))
        self.assertIsNotNone(created.created_at)

        fetched = await service.get_application(self.session, created.id)
        self.assertEqual(fetched.full_name, payload["fullName"])
        self.assertEqual(fetched.email, payload["email"])
        self.assertEqual(fetched.loan_amount, 10_000)
        self.assertEqual(fetched.loan_type, "personal")
        self.assertEqual(fetched.credit_score, 720)
        self.assertEqual(fetched.status, "approved")

    async def test_status_follows_credit_score(self):
        for score, expected in ((580, "rejected"), (640, "pending"), (700, "approved")):
            app = await service.create_application(
                self.session, ApplicationCreate.model_validate(application_payload(creditScore=score))
            )
            self.assertEqual(app.status, expected, score)

    async def test_email_is_normalized(self):
        app = await service.create_application(
            self.session, ApplicationCreate.model_validate(application_payload(email="  Mixed.Case@Example.COM "))
        )
        self.assertEqual(app.email, "mixed.case@example.com")

    async def test_duplicate_email_rejected_without_second_row(self):
        payload = application_payload(email="dup@example.com")
        await service.create_application(self.session, ApplicationCreate.model_validate(payload))
        with self.assertRaises(DuplicateEmail) as ctx:
            await service.create_application(
                self.session,
                ApplicationCreate.model_validate(application_payload(email="DUP@example.com")),
            )
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("email", ctx.exception.errors)
        self.assertEqual(await self._count(), 1)

    async def test_unique_index_violation_becomes_duplicate_email(self):
        """The pre-check can lose a race; the store's constraint still wins."""
        await service.create_application(
            self.session, ApplicationCreate.model_validate(application_payload(email="race@example.com"))
        )
        await self.session.commit()
        with patch("services.applications._email_in_use", new=AsyncMock(return_value=False)):
            with self.assertRaises(DuplicateEmail):
                await service.create_application(
                    self.session, ApplicationCreate.model_validate(application_payload(email="race@example.com"))
                )
        self.assertEqual(await self._count(), 1)

    async def test_existing_loans_and_documents_persist(self):
        payload = application_payload(
            documents=["doc-123", "doc-456"],
            existingLoans=[{"lender": "Credit Union", "amount": 5_000, "remainingBalance": 1_200}],
        )
        app = await service.create_application(self.session, ApplicationCreate.model_validate(payload))
        self.assertEqual(app.documents, ["doc-123", "doc-456"])
        self.assertEqual(
            app.existing_loans,
            [{"lender": "Credit Union", "amount": 5_000, "remaining_balance": 1_200}],
        )


class TestGetAndDelete(DatabaseTestCase):
    async def test_invalid_id_format(self):
        with self.assertRaises(InvalidIdFormat):
            await service.get_application(self.session, "not-an-id")

    async def test_missing_application(self):
        with self.assertRaises(NotFound):
            await service.get_application(self.session, "app-000000000000")

    async def test_delete_is_hard(self):
        (app,) = await self.insert(make_application())
        await service.delete_application(self.session, app.id)
        await self.session.commit()
        with self.assertRaises(NotFound):
            await service.get_application(self.session, app.id)
        with self.assertRaises(NotFound):
            await service.delete_application(self.session, app.id)


class TestStatusUpdates(DatabaseTestCase):
    async def test_allowed_transition_bumps_updated_at(self):
        (app,) = await self.insert(make_application(status="pending", created_at=utc(2024, 1, 1)))
        updated = await service.update_application_status(self.session, app.id, LoanStatus.APPROVED)
        self.assertEqual(updated.status, "approved")
        self.assertGreater(updated.updated_at, utc(2024, 1, 1))

    async def test_approved_cannot_go_back_to_pending(self):
        (app,) = await self.insert(make_application(status="approved"))
        with self.assertRaises(InvalidTransition):
            await service.update_application_status(self.session, app.id, "pending")
        self.assertEqual((await service.get_application(self.session, app.id)).status, "approved")

    async def test_rejected_cannot_be_approved_directly(self):
        (app,) = await self.insert(make_application(status="rejected"))
        with self.assertRaises(InvalidTransition):
            await service.update_application_status(self.session, app.id, LoanStatus.APPROVED)
        # but it can be reopened
        reopened = await service.update_application_status(self.session, app.id, LoanStatus.PENDING)
        self.assertEqual(reopened.status, "pending")

    async def test_same_status_is_a_no_op_transition(self):
        (app,) = await self.insert(make_application(status="approved"))
        updated = await service.update_application_status(self.session, app.id, "approved")
        self.assertEqual(updated.status, "approved")

    async def test_unknown_id(self):
        with self.assertRaises(NotFound):
            await service.update_application_status(self.session, "app-abcdefabcdef", "approved")


class TestFieldUpdates(DatabaseTestCase):
    async def test_partial_update(self):
        (app,) = await self.insert(make_application(loan_amount=1_000, status="pending"))
        updated = await service.update_application(
            self.session, app.id, {"loanAmount": 2_500, "loanPurpose": "Bigger purpose than before"}
        )
        self.assertEqual(updated.loan_amount, 2_500)
        self.assertEqual(updated.loan_purpose, "Bigger purpose than before")
        self.assertEqual(updated.status, "pending")

    async def test_validation_failure_reports_fields_and_writes_nothing(self):
        (app,) = await self.insert(make_application(loan_amount=1_000))
        with self.assertRaises(ValidationFailed) as ctx:
            await service.update_application(self.session, app.id, {"loanAmount": 50, "creditScore": 900})
        self.assertEqual(set(ctx.exception.errors), {"loanAmount", "creditScore"})
        await self.session.refresh(app)
        self.assertEqual(app.loan_amount, 1_000)

    async def test_status_cannot_be_changed_through_field_update(self):
        (app,) = await self.insert(make_application(status="pending"))
        with self.assertRaises(ValidationFailed) as ctx:
            await service.update_application(self.session, app.id, {"status": "approved"})
        self.assertIn("status", ctx.exception.errors)

    async def test_explicit_null_is_rejected(self):
        (app,) = await self.insert(make_application())
        with self.assertRaises(ValidationFailed) as ctx:
            await service.update_application(self.session, app.id, {"fullName": None})
        self.assertIn("fullName", ctx.exception.errors)

    async def test_email_taken_by_another_application(self):
        first, second = await self.insert(
            make_application(email="first@example.com"), make_application(email="second@example.com")
        )
        with self.assertRaises(DuplicateEmail):
            await service.update_application(self.session, second.id, {"email": "FIRST@example.com"})

    async def test_missing_application(self):
        with self.assertRaises(NotFound):
            await service.update_application(self.session, "app-111111111111", {"loanAmount": 500})


class TestListApplications(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.apps = await self.insert(
            make_application(created_at=utc(2024, 1, 10), status="approved", loan_type="auto",
                             credit_score=720, loan_amount=15_000),
            make_application(created_at=utc(2024, 2, 10), status="pending", loan_type="personal",
                             credit_score=650, loan_amount=3_000),
            make_application(created_at=utc(2024, 3, 10), status="rejected", loan_type="personal",
                             credit_score=560, loan_amount=900),
            make_application(created_at=utc(2024, 4, 10), status="approved", loan_type="business",
                             credit_score=790, loan_amount=80_000),
            make_application(created_at=utc(2024, 5, 10), status="pending", loan_type="education",
                             credit_score=610, loan_amount=12_000),
        )

    async def test_no_filters_newest_first(self):
        items, pagination = await service.list_applications(self.session, None, page=1, limit=10)
        self.assertEqual([a.id for a in items], [a.id for a in reversed(self.apps)])
        self.assertEqual(pagination.total_count, 5)
        self.assertEqual(pagination.total_pages, 1)

    async def test_total_pages_is_ceiling(self):
        for limit in (1, 2, 3, 4, 5, 7):
            _, pagination = await service.list_applications(self.session, None, page=1, limit=limit)
            self.assertEqual(pagination.total_pages, math.ceil(5 / limit), limit)

    async def test_pages_walk_in_order(self):
        first, _ = await service.list_applications(self.session, None, page=1, limit=2)
        second, _ = await service.list_applications(self.session, None, page=2, limit=2)
        third, _ = await service.list_applications(self.session, None, page=3, limit=2)
        ids = [a.id for a in first + second + third]
        self.assertEqual(ids, [a.id for a in reversed(self.apps)])

    async def test_page_past_the_end_is_empty(self):
        items, pagination = await service.list_applications(self.session, None, page=9, limit=2)
        self.assertEqual(items, [])
        self.assertEqual(pagination.current_page, 9)
        self.assertEqual(pagination.total_pages, 3)
        self.assertEqual(pagination.total_count, 5)

    async def test_filters_are_conjunctive(self):
        filters = ApplicationFilters(status=LoanStatus.PENDING, loan_type=LoanType.PERSONAL)
        items, pagination = await service.list_applications(self.session, filters)
        self.assertEqual([a.id for a in items], [self.apps[1].id])
        self.assertEqual(pagination.total_count, 1)

    async def test_date_range_is_inclusive(self):
        filters = ApplicationFilters(date_from=utc(2024, 2, 10), date_to=utc(2024, 4, 10))
        items, _ = await service.list_applications(self.session, filters)
        self.assertEqual({a.id for a in items}, {a.id for a in self.apps[1:4]})

    async def test_credit_score_and_amount_ranges(self):
        filters = ApplicationFilters(credit_score_min=600, credit_score_max=720, loan_amount_min=3_000)
        items, _ = await service.list_applications(self.session, filters)
        self.assertEqual({a.id for a in items}, {self.apps[0].id, self.apps[1].id, self.apps[4].id})

    async def test_invalid_page(self):
        with self.assertRaises(ValidationFailed):
            await service.list_applications(self.session, None, page=0)

    async def test_recent_and_by_email(self):
        recent = await service.get_recent_applications(self.session, limit=2)
        self.assertEqual([a.id for a in recent], [self.apps[4].id, self.apps[3].id])

        by_email = await service.get_applications_by_email(self.session, self.apps[2].email.upper())
        self.assertEqual([a.id for a in by_email], [self.apps[2].id])


if __name__ == "__main__":
    unittest.main()
