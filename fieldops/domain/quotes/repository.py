"""Quote repository - Database operations for quotes, customers and contractor aggregates"""

import uuid
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Contractor, CustomerRecord, Quote
from ...shared.validators import normalize_email
from .schemas import QuoteResponse


def derive_customer_key(customer_id: Optional[str], email: Optional[str]) -> str:
    """Customer identity: known customer id, else normalized email, else a synthetic id"""
    if customer_id:
        return customer_id
    normalized = normalize_email(email)
    if normalized:
        return f"email:{normalized}"
    return f"cust_{uuid.uuid4().hex[:16]}"


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def get_quote(db: Session, contractor_id: str, quote_id: str) -> Optional[Quote]:
        return (
            db.query(Quote)
            .filter(Quote.id == quote_id, Quote.contractor_id == contractor_id)
            .first()
        )

    @staticmethod
    def get_quote_for_update(db: Session, contractor_id: str, quote_id: str) -> Optional[Quote]:
        """Read a quote with a row lock (no-op on SQLite) as part of the caller's transaction"""
        return (
            db.query(Quote)
            .filter(Quote.id == quote_id, Quote.contractor_id == contractor_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_quotes(db: Session, contractor_id: str, status: Optional[str] = None) -> list[Quote]:
        query = db.query(Quote).filter(Quote.contractor_id == contractor_id)
        if status:
            query = query.filter(Quote.status == status)
        return query.order_by(Quote.created_at.desc(), Quote.quote_number.desc()).all()

    @staticmethod
    def count_quotes_in_year(db: Session, contractor_id: str, year: int) -> int:
        return (
            db.query(func.count(Quote.id))
            .filter(Quote.contractor_id == contractor_id, Quote.created_year == year)
            .scalar()
        )

    @staticmethod
    def claim_for_acceptance(
        db: Session,
        quote_id: str,
        job_id: str,
        customer_message: Optional[str],
    ) -> bool:
        """
        Conditionally flip a quote to accepted.

        The WHERE clause repeats the status check so two concurrent acceptances
        cannot both succeed; returns False when another transaction got there first.
        """
        updated = (
            db.query(Quote)
            .filter(
                Quote.id == quote_id,
                Quote.status != "accepted",
                Quote.converted_to_job_id.is_(None),
            )
            .update(
                {
                    Quote.status: "accepted",
                    Quote.accepted_at: func.now(),
                    Quote.customer_message: customer_message or None,
                    Quote.converted_to_job_id: job_id,
                    Quote.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def mark_job_status(
        db: Session,
        contractor_id: str,
        quote_id: str,
        job_status: str,
        cancelled_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """Mirror the linked job's cancellation onto the source quote"""
        values = {Quote.job_status: job_status, Quote.updated_at: func.now()}
        if job_status == "cancelled":
            values[Quote.job_cancelled_at] = func.now()
            values[Quote.job_cancelled_by] = cancelled_by
            values[Quote.job_cancellation_reason] = reason
        updated = (
            db.query(Quote)
            .filter(Quote.id == quote_id, Quote.contractor_id == contractor_id)
            .update(values, synchronize_session=False)
        )
        return updated == 1

    # Contractor

    @staticmethod
    def get_contractor_for_update(db: Session, contractor_id: str) -> Optional[Contractor]:
        return (
            db.query(Contractor)
            .filter(Contractor.id == contractor_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def next_job_sequence(db: Session, contractor: Contractor) -> int:
        contractor.job_sequence = (contractor.job_sequence or 0) + 1
        db.flush()
        return contractor.job_sequence

    @staticmethod
    def increment_acceptance_stats(db: Session, contractor_id: str, job_value: float) -> None:
        db.query(Contractor).filter(Contractor.id == contractor_id).update(
            {
                Contractor.accepted_quote_count: Contractor.accepted_quote_count + 1,
                Contractor.total_job_value: Contractor.total_job_value + job_value,
                Contractor.active_job_count: Contractor.active_job_count + 1,
                Contractor.updated_at: func.now(),
            },
            synchronize_session=False,
        )

    # Customers

    @staticmethod
    def get_customer(db: Session, contractor_id: str, customer_key: str) -> Optional[CustomerRecord]:
        return (
            db.query(CustomerRecord)
            .filter(
                CustomerRecord.contractor_id == contractor_id,
                CustomerRecord.id == customer_key,
            )
            .first()
        )

    @staticmethod
    def upsert_customer(
        db: Session,
        contractor_id: str,
        customer_key: str,
        snapshot: dict,
        job_value: float,
    ) -> CustomerRecord:
        """Increment an existing record's counters, or create it with totalJobs=1"""
        updated = (
            db.query(CustomerRecord)
            .filter(
                CustomerRecord.contractor_id == contractor_id,
                CustomerRecord.id == customer_key,
            )
            .update(
                {
                    CustomerRecord.total_jobs: CustomerRecord.total_jobs + 1,
                    CustomerRecord.total_spend: CustomerRecord.total_spend + job_value,
                    CustomerRecord.last_contact: func.now(),
                },
                synchronize_session=False,
            )
        )
        if updated:
            record = QuoteRepository.get_customer(db, contractor_id, customer_key)
            db.refresh(record)
            return record

        record = CustomerRecord(
            contractor_id=contractor_id,
            id=customer_key,
            name=snapshot.get("name"),
            email=normalize_email(snapshot.get("email")),
            phone=snapshot.get("phone"),
            address=snapshot.get("address"),
            total_jobs=1,
            total_spend=job_value,
        )
        db.add(record)
        db.flush()
        return record

    @staticmethod
    def to_response(quote: Quote) -> QuoteResponse:
        return QuoteResponse(
            id=quote.id,
            quoteNumber=quote.quote_number,
            status=quote.status,
            customer=quote.customer or {},
            customerId=quote.customer_id,
            title=quote.title or "",
            lineItems=quote.line_items or [],
            subtotal=quote.subtotal or 0,
            taxRate=quote.tax_rate or 0,
            taxAmount=quote.tax_amount or 0,
            total=quote.total or 0,
            depositRequired=bool(quote.deposit_required),
            depositType=quote.deposit_type or "percentage",
            depositValue=quote.deposit_value or 0,
            depositAmount=quote.deposit_amount or 0,
            requiredSkills=quote.required_skills or [],
            requiredCertifications=quote.required_certifications or [],
            viewCount=quote.view_count or 0,
            sentAt=quote.sent_at,
            acceptedAt=quote.accepted_at,
            declinedAt=quote.declined_at,
            declineReason=quote.decline_reason,
            customerMessage=quote.customer_message,
            convertedToJobId=quote.converted_to_job_id,
            jobStatus=quote.job_status,
            created_at=quote.created_at,
        )
