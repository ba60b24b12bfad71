"""Tests for the quote lifecycle and the quote acceptance transaction."""

import re

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from fieldops.domain.quotes.repository import derive_customer_key
from fieldops.domain.quotes.service import QuoteService, calculate_quote_totals
from fieldops.exceptions import AlreadyAccepted, NotFound, TransactionFailed
from fieldops.models import Contractor, CustomerRecord, Job, JobStatusEvent, Quote


class TestQuoteTotals:
    """Totals and deposit amounts computed when a quote is created."""

    def test_percentage_deposit(self):
        totals = calculate_quote_totals(
            [{"quantity": 2, "unitPrice": 100}, {"quantity": 1, "unitPrice": 300}],
            deposit_required=True, deposit_type="percentage", deposit_value=20,
        )
        assert totals == {"subtotal": 500, "tax_amount": 0, "total": 500, "deposit_amount": 100}

    def test_tax_and_fixed_deposit(self):
        totals = calculate_quote_totals(
            [{"quantity": 3, "unitPrice": 33.33}],
            tax_rate=8.25, deposit_required=True, deposit_type="fixed", deposit_value=50,
        )
        assert totals["subtotal"] == pytest.approx(99.99)
        assert totals["tax_amount"] == pytest.approx(8.25)
        assert totals["total"] == pytest.approx(108.24)
        assert totals["deposit_amount"] == 50

    def test_deposit_not_required(self):
        totals = calculate_quote_totals([{"quantity": 1, "unitPrice": 80}], deposit_value=50)
        assert totals["deposit_amount"] == 0


class TestQuoteLifecycle:
    """Create, send, view and decline."""

    def test_create_numbers_quotes(self, make_quote):
        first = make_quote()
        second = make_quote()
        assert re.fullmatch(r"Q-\d{4}-001", first.quote_number)
        assert second.quote_number.endswith("-002")
        assert first.customer["email"] == "jordan@example.com"
        assert first.customer["phone"] == "+15550104477"

    def test_create_for_unknown_contractor(self, quote_service):
        from fieldops.domain.quotes.schemas import QuoteCreate

        with pytest.raises(NotFound):
            quote_service.create_quote("missing", QuoteCreate())

    def test_mark_viewed(self, quote_service, make_quote, contractor):
        quote = make_quote()
        quote_service.mark_viewed(contractor.id, quote.id)
        quote = quote_service.mark_viewed(contractor.id, quote.id)
        assert quote.status == "viewed"
        assert quote.view_count == 2
        assert quote.viewed_at is not None

    def test_decline(self, quote_service, make_quote, contractor):
        quote = quote_service.decline_quote(contractor.id, make_quote().id, "Too expensive")
        assert quote.status == "declined"
        assert quote.decline_reason == "Too expensive"

    def test_accepted_quote_cannot_be_declined_or_resent(self, quote_service, make_quote, contractor):
        quote = make_quote()
        quote_service.accept_quote(contractor.id, quote.id)
        with pytest.raises(AlreadyAccepted):
            quote_service.decline_quote(contractor.id, quote.id)
        with pytest.raises(AlreadyAccepted):
            quote_service.send_quote(contractor.id, quote.id)


class TestAcceptQuote:
    """Quote → job conversion happens exactly once and atomically."""

    def test_creates_job_from_quote(self, quote_service, make_quote, contractor, db):
        quote = make_quote(unit_price=500, deposit_percent=20)
        result = quote_service.accept_quote(contractor.id, quote.id, "See you Monday")

        job = db.get(Job, result.jobId)
        assert job.status == "pending_schedule"
        assert job.total == 500
        assert job.deposit_amount == 100
        assert job.source_quote_id == quote.id
        assert job.required_certifications == ["epa_608"]
        assert job.customer["name"] == "Jordan Smith"
        assert re.fullmatch(r"JOB-\d{4}-00001", result.jobNumber)

        db.refresh(quote)
        assert quote.status == "accepted"
        assert quote.converted_to_job_id == result.jobId
        assert quote.customer_message == "See you Monday"
        assert quote.accepted_at is not None

    def test_job_snapshot_is_independent_of_quote(self, quote_service, make_quote, contractor, db):
        quote = make_quote()
        result = quote_service.accept_quote(contractor.id, quote.id)
        db.refresh(quote)
        quote.line_items = [{"description": "changed", "quantity": 9, "unitPrice": 9}]
        db.commit()
        job = db.get(Job, result.jobId)
        assert job.line_items[0]["description"] == "Compressor repair"

    def test_records_initial_event(self, quote_service, make_quote, contractor, db):
        result = quote_service.accept_quote(contractor.id, make_quote().id, actor="customer")
        events = db.query(JobStatusEvent).filter_by(job_id=result.jobId).all()
        assert len(events) == 1
        assert events[0].from_status is None
        assert events[0].to_status == "pending_schedule"
        assert events[0].actor == "customer"

    def test_second_acceptance_rejected(self, quote_service, make_quote, contractor, db):
        quote = make_quote()
        quote_service.accept_quote(contractor.id, quote.id)
        with pytest.raises(AlreadyAccepted):
            quote_service.accept_quote(contractor.id, quote.id)

        assert db.query(Job).count() == 1
        db.refresh(contractor)
        assert contractor.accepted_quote_count == 1
        record = db.query(CustomerRecord).one()
        assert record.total_jobs == 1

    def test_unknown_quote(self, quote_service, contractor):
        with pytest.raises(NotFound):
            quote_service.accept_quote(contractor.id, "no-such-quote")

    def test_quote_of_other_contractor(self, quote_service, make_quote, db):
        other = Contractor(name="Other Co")
        db.add(other)
        db.commit()
        with pytest.raises(NotFound):
            quote_service.accept_quote(other.id, make_quote().id)

    def test_updates_aggregates(self, quote_service, make_quote, contractor, db):
        quote_service.accept_quote(contractor.id, make_quote(unit_price=500).id)
        quote_service.accept_quote(contractor.id, make_quote(unit_price=250).id)

        db.refresh(contractor)
        assert contractor.accepted_quote_count == 2
        assert contractor.total_job_value == 750
        assert contractor.active_job_count == 2
        assert contractor.job_sequence == 2

        record = db.query(CustomerRecord).one()
        assert record.id == "email:jordan@example.com"
        assert record.total_jobs == 2
        assert record.total_spend == 750

    def test_job_numbers_are_sequential(self, make_job):
        first = make_job()
        second = make_job()
        assert first.job_number.endswith("-00001")
        assert second.job_number.endswith("-00002")

    def test_notifies_after_commit(self, quote_service, make_quote, contractor, notifications):
        result = quote_service.accept_quote(contractor.id, make_quote().id)
        assert [n["event_type"] for n in notifications] == ["quote_accepted"]
        assert notifications[0]["payload"]["jobId"] == result.jobId

    def test_notification_failure_does_not_fail_acceptance(
        self, quote_service, make_quote, contractor, db, monkeypatch
    ):
        from fieldops.services import notification_service

        def broken_notify(*args, **kwargs):
            raise RuntimeError("webhook down")

        monkeypatch.setattr(notification_service, "notify", broken_notify)
        result = quote_service.accept_quote(contractor.id, make_quote().id)
        assert db.get(Job, result.jobId) is not None

    def test_store_failure_rolls_back_everything(
        self, quote_service, make_quote, contractor, db, monkeypatch, notifications
    ):
        quote = make_quote()

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with monkeypatch.context() as patched:
            patched.setattr(db, "commit", failing_commit)
            with pytest.raises(TransactionFailed) as exc:
                quote_service.accept_quote(contractor.id, quote.id)

        assert isinstance(exc.value.__cause__, OperationalError)
        assert notifications == []
        assert db.query(Job).count() == 0
        assert db.query(CustomerRecord).count() == 0
        stored = db.get(Quote, quote.id)
        assert stored.status == "sent"
        assert stored.converted_to_job_id is None
        db.refresh(contractor)
        assert contractor.accepted_quote_count == 0
        assert contractor.job_sequence == 0


    def test_unexpected_error_leaves_nothing_behind(
        self, quote_service, make_quote, contractor, db, monkeypatch, notifications
    ):
        quote = make_quote()

        def broken_upsert(*args, **kwargs):
            raise RuntimeError("customer index unavailable")

        with monkeypatch.context() as patched:
            patched.setattr(quote_service.repo, "upsert_customer", broken_upsert)
            with pytest.raises(RuntimeError, match="customer index unavailable"):
                quote_service.accept_quote(contractor.id, quote.id)

        # a later commit on the same session must not persist the half-done acceptance
        db.commit()
        assert notifications == []
        assert db.query(Job).count() == 0
        assert db.query(JobStatusEvent).count() == 0
        stored = db.get(Quote, quote.id)
        assert stored.status == "sent"
        assert stored.converted_to_job_id is None
        db.refresh(contractor)
        assert contractor.job_sequence == 0

    def test_concurrent_acceptance_creates_one_job(
        self, quote_service, make_quote, contractor, db, engine, monkeypatch
    ):
        quote = make_quote()
        other_session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
        rival = QuoteService(other_session)
        locked_read = quote_service.repo.get_quote_for_update

        def read_then_lose_race(session, contractor_id, quote_id):
            found = locked_read(session, contractor_id, quote_id)
            rival.accept_quote(contractor_id, quote_id)
            return found

        monkeypatch.setattr(quote_service.repo, "get_quote_for_update", read_then_lose_race)
        try:
            with pytest.raises(AlreadyAccepted):
                quote_service.accept_quote(contractor.id, quote.id)
        finally:
            other_session.close()

        assert db.query(Job).count() == 1
        record = db.query(CustomerRecord).one()
        assert record.total_jobs == 1
        db.refresh(contractor)
        assert contractor.accepted_quote_count == 1
        assert contractor.job_sequence == 1


class TestCustomerKey:
    """Customer identity used for the per-contractor aggregate."""

    def test_prefers_customer_id(self):
        assert derive_customer_key("cust-9", "a@b.com") == "cust-9"

    def test_falls_back_to_email(self):
        assert derive_customer_key(None, " A@B.com ") == "email:a@b.com"

    def test_synthetic_when_anonymous(self):
        assert derive_customer_key(None, None).startswith("cust_")
