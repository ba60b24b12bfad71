"""Quote service - Quote lifecycle and the quote → job acceptance transaction"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...exceptions import AlreadyAccepted, NotFound
from ...models import Job, JobStatusEvent, Quote
from ...services import notification_service
from ...services.side_effects import Dispatcher, inline_dispatch, schedule
from ...shared.transactions import atomic
from ..jobs.state_machine import INITIAL_STATUS
from .repository import QuoteRepository, derive_customer_key
from .schemas import AcceptanceResult, QuoteCreate

logger = logging.getLogger(__name__)


def calculate_quote_totals(
    line_items: list[dict],
    tax_rate: float = 0,
    deposit_required: bool = False,
    deposit_type: str = "percentage",
    deposit_value: float = 0,
) -> dict:
    """Subtotal, tax, total and deposit amount, rounded to cents"""
    subtotal = sum((item.get("quantity") or 0) * (item.get("unitPrice") or 0) for item in line_items)
    tax_amount = subtotal * ((tax_rate or 0) / 100)
    total = subtotal + tax_amount

    deposit_amount = 0.0
    if deposit_required:
        if deposit_type == "percentage":
            deposit_amount = total * ((deposit_value or 0) / 100)
        else:
            deposit_amount = deposit_value or 0

    return {
        "subtotal": round(subtotal, 2),
        "tax_amount": round(tax_amount, 2),
        "total": round(total, 2),
        "deposit_amount": round(deposit_amount, 2),
    }


def format_job_number(year: int, sequence: int) -> str:
    return f"{config.JOB_NUMBER_PREFIX}-{year}-{sequence:05d}"


class QuoteService:
    """Service layer for quote business logic"""

    def __init__(self, db: Session, dispatch: Dispatcher = inline_dispatch):
        self.db = db
        self.repo = QuoteRepository()
        self.dispatch = dispatch

    def get_quote(self, contractor_id: str, quote_id: str) -> Quote:
        quote = self.repo.get_quote(self.db, contractor_id, quote_id)
        if not quote:
            raise NotFound(f"Quote {quote_id} not found")
        return quote

    def list_quotes(self, contractor_id: str, status: Optional[str] = None) -> list[Quote]:
        return self.repo.get_quotes(self.db, contractor_id, status)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def create_quote(self, contractor_id: str, data: QuoteCreate) -> Quote:
        if not self.repo.get_contractor_for_update(self.db, contractor_id):
            raise NotFound(f"Contractor {contractor_id} not found")

        line_items = [item.model_dump(mode="json") for item in data.lineItems]
        totals = calculate_quote_totals(
            line_items, data.taxRate, data.depositRequired, data.depositType, data.depositValue
        )

        year = datetime.now(timezone.utc).year
        with atomic(self.db, "Create quote"):
            sequence = self.repo.count_quotes_in_year(self.db, contractor_id, year) + 1
            quote = Quote(
                contractor_id=contractor_id,
                quote_number=f"{config.QUOTE_NUMBER_PREFIX}-{year}-{sequence:03d}",
                created_year=year,
                status=data.status,
                customer=data.customer.model_dump(mode="json"),
                customer_id=data.customerId,
                title=data.title,
                line_items=line_items,
                tax_rate=data.taxRate,
                deposit_required=data.depositRequired,
                deposit_type=data.depositType,
                deposit_value=data.depositValue,
                required_skills=list(data.requiredSkills),
                required_certifications=list(data.requiredCertifications),
                notes=data.notes,
                terms=data.terms,
                expires_at=data.expiresAt,
                sent_at=datetime.now(timezone.utc) if data.status == "sent" else None,
                **totals,
            )
            self.db.add(quote)

        logger.info(f"✅ Quote {quote.quote_number} created for contractor {contractor_id}")
        return quote

    def send_quote(self, contractor_id: str, quote_id: str) -> Quote:
        quote = self.get_quote(contractor_id, quote_id)
        if quote.status == "accepted":
            raise AlreadyAccepted(f"Quote {quote.quote_number} was already accepted")

        with atomic(self.db, "Send quote"):
            quote.status = "sent"
            quote.sent_at = datetime.now(timezone.utc)
        logger.info(f"📧 Quote {quote.quote_number} marked sent")
        return quote

    def mark_viewed(self, contractor_id: str, quote_id: str) -> Quote:
        quote = self.get_quote(contractor_id, quote_id)
        now = datetime.now(timezone.utc)
        with atomic(self.db, "Mark quote viewed"):
            quote.view_count = (quote.view_count or 0) + 1
            quote.last_viewed_at = now
            if not quote.viewed_at:
                quote.viewed_at = now
            if quote.status == "sent":
                quote.status = "viewed"
        return quote

    def decline_quote(self, contractor_id: str, quote_id: str, reason: Optional[str] = "") -> Quote:
        quote = self.get_quote(contractor_id, quote_id)
        if quote.status == "accepted":
            raise AlreadyAccepted(f"Quote {quote.quote_number} was already accepted")

        with atomic(self.db, "Decline quote"):
            quote.status = "declined"
            quote.declined_at = datetime.now(timezone.utc)
            quote.decline_reason = reason or ""
        logger.info(f"⚠️ Quote {quote.quote_number} declined")
        return quote

    # ========================================================================
    # ACCEPTANCE TRANSACTION
    # ========================================================================

    def accept_quote(
        self,
        contractor_id: str,
        quote_id: str,
        customer_message: Optional[str] = None,
        actor: str = "customer",
    ) -> AcceptanceResult:
        """
        Convert a quote into a job, exactly once.

        Job creation, the quote's accepted status, the customer record upsert and
        the contractor aggregates commit together or not at all. The notification
        goes out only after the commit.
        """
        with atomic(self.db, f"Accept quote {quote_id}"):
            quote = self.repo.get_quote_for_update(self.db, contractor_id, quote_id)
            if not quote:
                raise NotFound(f"Quote {quote_id} not found")
            if quote.status == "accepted" or quote.converted_to_job_id:
                raise AlreadyAccepted(f"Quote {quote.quote_number} was already accepted")

            contractor = self.repo.get_contractor_for_update(self.db, contractor_id)
            if not contractor:
                raise NotFound(f"Contractor {contractor_id} not found")

            job_id = str(uuid.uuid4())
            if not self.repo.claim_for_acceptance(self.db, quote.id, job_id, customer_message):
                raise AlreadyAccepted(f"Quote {quote.quote_number} was already accepted")

            sequence = self.repo.next_job_sequence(self.db, contractor)
            job_number = format_job_number(datetime.now(timezone.utc).year, sequence)

            customer = copy.deepcopy(quote.customer or {})
            customer_key = derive_customer_key(quote.customer_id, customer.get("email"))
            total = quote.total or 0

            job = Job(
                id=job_id,
                contractor_id=contractor_id,
                job_number=job_number,
                status=INITIAL_STATUS.value,
                title=quote.title or "",
                customer=customer,
                customer_record_id=customer_key,
                line_items=copy.deepcopy(quote.line_items or []),
                subtotal=quote.subtotal,
                tax_amount=quote.tax_amount,
                total=total,
                deposit_required=quote.deposit_required,
                deposit_type=quote.deposit_type,
                deposit_value=quote.deposit_value,
                deposit_amount=quote.deposit_amount,
                source_quote_id=quote.id,
                required_skills=list(quote.required_skills or []),
                required_certifications=list(quote.required_certifications or []),
            )
            self.db.add(job)
            self.db.add(
                JobStatusEvent(
                    job_id=job_id,
                    from_status=None,
                    to_status=INITIAL_STATUS.value,
                    actor=actor,
                    note=f"Created from quote {quote.quote_number}",
                )
            )

            self.repo.upsert_customer(self.db, contractor_id, customer_key, customer, total)
            self.repo.increment_acceptance_stats(self.db, contractor_id, total)
            quote_number = quote.quote_number

        logger.info(
            f"✅ Quote {quote_number} accepted → job {job_number} ({job_id}) for contractor {contractor_id}"
        )

        schedule(
            self.dispatch,
            "notify quote_accepted",
            notification_service.notify,
            contractor_id,
            notification_service.QUOTE_ACCEPTED,
            {
                "quoteId": quote_id,
                "quoteNumber": quote_number,
                "jobId": job_id,
                "jobNumber": job_number,
                "customerName": customer.get("name"),
                "total": total,
                "customerMessage": customer_message,
            },
        )

        return AcceptanceResult(jobId=job_id, jobNumber=job_number, customerId=customer_key)
