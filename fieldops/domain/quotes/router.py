"""Quote router - FastAPI endpoints for quotes and quote acceptance"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.request_context import get_actor
from .schemas import (
    AcceptanceResult,
    AcceptQuoteRequest,
    DeclineQuoteRequest,
    QuoteCreate,
    QuoteResponse,
)
from .service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contractors/{contractor_id}/quotes", tags=["Quotes"])


def get_quote_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> QuoteService:
    """Dependency injection for QuoteService; side effects run after the response"""
    return QuoteService(db, dispatch=background_tasks.add_task)


@router.get("", response_model=list[QuoteResponse])
async def list_quotes(
    contractor_id: str,
    status: Optional[str] = Query(None),
    service: QuoteService = Depends(get_quote_service),
):
    return [service.repo.to_response(q) for q in service.list_quotes(contractor_id, status)]


@router.post("", response_model=QuoteResponse, status_code=201)
async def create_quote(
    contractor_id: str,
    data: QuoteCreate,
    service: QuoteService = Depends(get_quote_service),
):
    return service.repo.to_response(service.create_quote(contractor_id, data))


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    contractor_id: str,
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    return service.repo.to_response(service.get_quote(contractor_id, quote_id))


@router.post("/{quote_id}/send", response_model=QuoteResponse)
async def send_quote(
    contractor_id: str,
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    return service.repo.to_response(service.send_quote(contractor_id, quote_id))


@router.post("/{quote_id}/view", response_model=QuoteResponse)
async def mark_quote_viewed(
    contractor_id: str,
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    """Called by the public quote page each time the customer opens it"""
    return service.repo.to_response(service.mark_viewed(contractor_id, quote_id))


@router.post("/{quote_id}/decline", response_model=QuoteResponse)
async def decline_quote(
    contractor_id: str,
    quote_id: str,
    data: DeclineQuoteRequest,
    service: QuoteService = Depends(get_quote_service),
):
    return service.repo.to_response(service.decline_quote(contractor_id, quote_id, data.reason))


@router.post("/{quote_id}/accept", response_model=AcceptanceResult, status_code=201)
async def accept_quote(
    contractor_id: str,
    quote_id: str,
    data: AcceptQuoteRequest,
    actor: str = Depends(get_actor),
    service: QuoteService = Depends(get_quote_service),
):
    """Convert the quote into a job. A second acceptance answers 409."""
    return service.accept_quote(contractor_id, quote_id, data.customerMessage, actor=actor)
