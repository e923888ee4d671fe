"""
Service order and quote endpoints.
"""
import uuid
from typing import Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_collaborator, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import service_orders as order_repo
from bizhub.services.webhook_service import emit
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/service-orders", tags=["service-orders"])
quotes_router = APIRouter(prefix="/quotes", tags=["quotes"])


def _order_or_404(db: Session, order_id: uuid.UUID):
    order = order_repo.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Service order not found")
    return order


def _quote_or_404(db: Session, quote_id: uuid.UUID):
    quote = order_repo.get_quote(db, quote_id)
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


def _report_or_404(db: Session, order_id: uuid.UUID):
    report = _order_or_404(db, order_id).report
    if report is None:
        raise HTTPException(status_code=404, detail="Technical report not found")
    return report


# Service orders

@router.get("", response_model=schemas.PaginatedServiceOrders)
def list_orders(
    search: Optional[str] = None,
    status: Optional[str] = None,
    client_id: Optional[uuid.UUID] = None,
    assignee_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = order_repo.list_orders(
        db,
        search=search,
        status=status,
        client_id=client_id,
        assignee_id=assignee_id,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.post("", response_model=schemas.ServiceOrder, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: schemas.ServiceOrderCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    _user, current_user = user_context
    return order_repo.create_order(db, payload, created_by_id=require_collaborator(current_user))


@router.get("/{order_id}", response_model=schemas.ServiceOrderDetail)
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.read")),
):
    return _order_or_404(db, order_id)


@router.put("/{order_id}", response_model=schemas.ServiceOrder)
def update_order(
    order_id: uuid.UUID,
    payload: schemas.ServiceOrderUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    _user, current_user = user_context
    order = _order_or_404(db, order_id)
    return order_repo.update_order(db, order, payload, collaborator_id=current_user.get("collaborator_id"))


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.delete")),
):
    order_repo.delete_order(db, _order_or_404(db, order_id))
    return None


# Technical reports

@router.get("/{order_id}/report", response_model=schemas.TechnicalReport)
def get_report(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.read")),
):
    return _report_or_404(db, order_id)


@router.post("/{order_id}/report", response_model=schemas.TechnicalReport, status_code=status.HTTP_201_CREATED)
def create_report(
    order_id: uuid.UUID,
    payload: schemas.TechnicalReportCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    _user, current_user = user_context
    order = _order_or_404(db, order_id)
    return order_repo.create_report(db, order, payload, collaborator_id=current_user.get("collaborator_id"))


@router.put("/{order_id}/report", response_model=schemas.TechnicalReport)
def update_report(
    order_id: uuid.UUID,
    payload: schemas.TechnicalReportUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    _user, current_user = user_context
    report = _report_or_404(db, order_id)
    return order_repo.update_report(db, report, payload, collaborator_id=current_user.get("collaborator_id"))


@router.delete("/{order_id}/report", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    order_repo.delete_report(db, _report_or_404(db, order_id))
    return None


@router.post("/{order_id}/report/complete", response_model=schemas.TechnicalReport)
def complete_report(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("service_orders.write")),
):
    """Mark the report completed and move the order to customer approval."""
    _user, current_user = user_context
    report = _report_or_404(db, order_id)
    return order_repo.complete_report(db, report, collaborator_id=current_user.get("collaborator_id"))


@router.post("/{order_id}/report/quote", response_model=schemas.Quote, status_code=status.HTTP_201_CREATED)
def quote_from_report(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.write")),
):
    _user, current_user = user_context
    report = _report_or_404(db, order_id)
    return order_repo.quote_from_report(db, report, created_by_id=require_collaborator(current_user))


# Quotes

@quotes_router.get("", response_model=schemas.PaginatedQuotes)
def list_quotes(
    status: Optional[str] = None,
    service_order_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = order_repo.list_quotes(
        db,
        status=status,
        service_order_id=service_order_id,
        search=search,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@quotes_router.post("", response_model=schemas.Quote, status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: schemas.QuoteCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.write")),
):
    _user, current_user = user_context
    return order_repo.create_quote(db, payload, created_by_id=require_collaborator(current_user))


@quotes_router.post(
    "/generate",
    response_model=Union[schemas.Quote, schemas.QuotePreview],
    status_code=status.HTTP_201_CREATED,
)
def generate_quote(
    payload: schemas.QuoteGenerate,
    response: Response,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.write")),
):
    """Build a quote from a technical report or from the order items plus a margin.

    With ``preview`` set nothing is stored and the computed lines come back with 200.
    """
    _user, current_user = user_context
    result = order_repo.generate_quote(db, payload, created_by_id=require_collaborator(current_user))
    if payload.preview:
        response.status_code = status.HTTP_200_OK
        return result
    return schemas.Quote.model_validate(result)


@quotes_router.get("/{quote_id}", response_model=schemas.QuoteDetail)
def get_quote(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.read")),
):
    return _quote_or_404(db, quote_id)


@quotes_router.put("/{quote_id}", response_model=schemas.Quote)
def update_quote(
    quote_id: uuid.UUID,
    payload: schemas.QuoteUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.write")),
):
    _user, current_user = user_context
    quote = _quote_or_404(db, quote_id)
    return order_repo.update_quote(db, quote, payload, collaborator_id=current_user.get("collaborator_id"))


@quotes_router.post("/{quote_id}/decision", response_model=schemas.Quote)
def decide_quote(
    quote_id: uuid.UUID,
    payload: schemas.QuoteDecision,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.write")),
):
    """Record the customer's approval or rejection of a sent quote."""
    quote = order_repo.decide_quote(db, _quote_or_404(db, quote_id), approved=payload.approved, comments=payload.comments)
    if quote.status == "APPROVED":
        emit("quote.approved", schemas.Quote.model_validate(quote).model_dump(mode="json"), background_tasks)
    return quote


@quotes_router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quote(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("quotes.delete")),
):
    order_repo.delete_quote(db, _quote_or_404(db, quote_id))
    return None
