"""
Service order and quote repositories.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.models import ensure_aware
from bizhub.db.repositories.errors import InvalidStateError, NotFoundError
from bizhub.utils import numbering


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _money(value: float) -> float:
    return round(float(value or 0), 2)


def _order_items(items) -> List[models.ServiceOrderItem]:
    return [
        models.ServiceOrderItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=_money(item.quantity * item.unit_price),
            notes=item.notes,
        )
        for item in items or []
    ]


def add_order_history(db: Session, order: models.ServiceOrder, action: str, description: Optional[str] = None, collaborator_id=None):
    db.add(models.ServiceOrderHistory(order_id=order.id, action=action, description=description, collaborator_id=collaborator_id))


def add_quote_history(db: Session, quote: models.Quote, action: str, description: Optional[str] = None, collaborator_id=None):
    db.add(models.QuoteHistory(quote_id=quote.id, action=action, description=description, collaborator_id=collaborator_id))


# Service orders

def get_order(db: Session, order_id: uuid.UUID) -> Optional[models.ServiceOrder]:
    return db.query(models.ServiceOrder).filter(models.ServiceOrder.id == order_id).first()


def create_order(db: Session, payload: schemas.ServiceOrderCreate, *, created_by_id: uuid.UUID) -> models.ServiceOrder:
    if not db.query(models.Client.id).filter(models.Client.id == payload.client_id).first():
        raise NotFoundError("Client not found")
    if payload.assignee_id and not db.query(models.Collaborator.id).filter(models.Collaborator.id == payload.assignee_id).first():
        raise NotFoundError("Assignee not found")
    order = models.ServiceOrder(
        **payload.model_dump(exclude={"items"}),
        number=numbering.monthly_number(db, models.ServiceOrder.number, "OS"),
        status="DRAFT",
        created_by_id=created_by_id,
    )
    order.items = _order_items(payload.items)
    order.final_value = _money(sum(i.total for i in order.items))
    db.add(order)
    db.flush()
    add_order_history(db, order, "created", f"Service order {order.number} created", created_by_id)
    db.commit()
    db.refresh(order)
    return order


def list_orders(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    client_id: Optional[uuid.UUID] = None,
    assignee_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.ServiceOrder], int]:
    query = db.query(models.ServiceOrder)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.ServiceOrder.title.ilike(like), models.ServiceOrder.number.ilike(like)))
    if status:
        query = query.filter(models.ServiceOrder.status == status.upper())
    if client_id:
        query = query.filter(models.ServiceOrder.client_id == client_id)
    if assignee_id:
        query = query.filter(models.ServiceOrder.assignee_id == assignee_id)
    total = query.count()
    items = query.order_by(models.ServiceOrder.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def update_order(db: Session, order: models.ServiceOrder, payload: schemas.ServiceOrderUpdate, *, collaborator_id=None) -> models.ServiceOrder:
    data = payload.model_dump(exclude_unset=True, exclude={"items"})
    if data.get("assignee_id") and not db.query(models.Collaborator.id).filter(models.Collaborator.id == data["assignee_id"]).first():
        raise NotFoundError("Assignee not found")
    for key, value in data.items():
        if key in ("title", "description", "status", "priority") and value is None:
            continue
        old = getattr(order, key)
        if old == value:
            continue
        setattr(order, key, value)
        if key == "status":
            add_order_history(db, order, "status_changed", f"{old} -> {value}", collaborator_id)
    if payload.items is not None:
        order.items = _order_items(payload.items)
        order.final_value = _money(sum(i.total for i in order.items))
        add_order_history(db, order, "items_updated", None, collaborator_id)
    db.commit()
    db.refresh(order)
    return order


def delete_order(db: Session, order: models.ServiceOrder) -> None:
    if order.quotes:
        raise InvalidStateError("Service order has quotes and cannot be deleted")
    db.delete(order)
    db.commit()


# Quotes

def get_quote(db: Session, quote_id: uuid.UUID) -> Optional[models.Quote]:
    return db.query(models.Quote).filter(models.Quote.id == quote_id).first()


def _quote_items(lines) -> List[models.QuoteItem]:
    return [
        models.QuoteItem(
            kind=line["kind"],
            description=line["description"],
            quantity=line["quantity"],
            unit=line.get("unit"),
            unit_price=line["unit_price"],
            total=line["total"],
            position=index,
        )
        for index, line in enumerate(lines)
    ]


def _persist_quote(
    db: Session,
    order: models.ServiceOrder,
    lines: List[Dict],
    *,
    title: str,
    created_by_id: uuid.UUID,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    discount: float = 0,
    validity_days: int = 30,
    history_note: Optional[str] = None,
    **extra,
) -> models.Quote:
    items = _quote_items(lines)
    subtotal = _money(sum(i.total for i in items))
    total = _money(subtotal - (discount or 0))
    if total <= 0:
        raise InvalidStateError("Quote total must be greater than zero")
    quote = models.Quote(
        number=numbering.monthly_number(db, models.Quote.number, "ORC"),
        title=title,
        description=description,
        notes=notes,
        service_order_id=order.id,
        created_by_id=created_by_id,
        subtotal=subtotal,
        discount=_money(discount),
        total=total,
        valid_until=_now() + timedelta(days=validity_days),
        status="DRAFT",
        **extra,
    )
    quote.items = items
    db.add(quote)
    db.flush()
    add_quote_history(db, quote, "created", history_note or f"Quote {quote.number} created", created_by_id)
    return quote


def create_quote(db: Session, payload: schemas.QuoteCreate, *, created_by_id: uuid.UUID) -> models.Quote:
    order = get_order(db, payload.service_order_id)
    if not order:
        raise NotFoundError("Service order not found")
    lines = [
        {
            "kind": item.kind,
            "description": item.description,
            "quantity": item.quantity,
            "unit": item.unit,
            "unit_price": item.unit_price,
            "total": _money(item.quantity * item.unit_price),
        }
        for item in payload.items
    ]
    quote = _persist_quote(
        db,
        order,
        lines,
        title=payload.title,
        description=payload.description,
        notes=payload.notes,
        discount=payload.discount,
        validity_days=payload.validity_days,
        created_by_id=created_by_id,
    )
    db.commit()
    db.refresh(quote)
    return quote


def list_quotes(
    db: Session,
    *,
    status: Optional[str] = None,
    service_order_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Quote], int]:
    query = db.query(models.Quote)
    if status:
        query = query.filter(models.Quote.status == status.upper())
    if service_order_id:
        query = query.filter(models.Quote.service_order_id == service_order_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Quote.title.ilike(like), models.Quote.number.ilike(like)))
    total = query.count()
    items = query.order_by(models.Quote.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def update_quote(db: Session, quote: models.Quote, payload: schemas.QuoteUpdate, *, collaborator_id=None) -> models.Quote:
    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if key in ("title", "status") and value is None:
            continue
        old = getattr(quote, key)
        if old == value:
            continue
        setattr(quote, key, value)
        if key == "status":
            add_quote_history(db, quote, "status_changed", f"{old} -> {value}", collaborator_id)
            if value == "SENT":
                quote.service_order.status = "QUOTE_SENT"
    db.commit()
    db.refresh(quote)
    return quote


def decide_quote(db: Session, quote: models.Quote, *, approved: bool, comments: Optional[str]) -> models.Quote:
    """Record the customer's decision on a sent quote."""
    if quote.status != "SENT":
        raise InvalidStateError("Only sent quotes can be approved or rejected")
    if quote.valid_until is not None and ensure_aware(quote.valid_until) < _now():
        raise InvalidStateError("Quote has expired")
    quote.status = "APPROVED" if approved else "REJECTED"
    quote.approved_by_customer = approved
    quote.decided_at = _now()
    quote.customer_comments = comments
    add_quote_history(db, quote, "customer_approved" if approved else "customer_rejected", comments)
    if approved:
        order = quote.service_order
        order.status = "AWAITING_CUSTOMER_APPROVAL"
        order.quote_value = quote.total
        add_order_history(db, order, "quote_approved", f"Quote {quote.number} approved by customer")
    db.commit()
    db.refresh(quote)
    return quote


def delete_quote(db: Session, quote: models.Quote) -> None:
    if quote.status == "APPROVED":
        raise InvalidStateError("Approved quotes cannot be deleted")
    db.delete(quote)
    db.commit()


def _report_lines(report: models.TechnicalReport) -> List[Dict]:
    lines = []
    for item in report.items:
        if item.unit_price is None or not item.quantity:
            continue
        total = item.total if item.total is not None else item.quantity * item.unit_price
        lines.append(
            {
                "kind": "SERVICE",
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": _money(item.unit_price),
                "total": _money(total),
            }
        )
    return lines


def _order_lines(order: models.ServiceOrder, margin_percent: float) -> List[Dict]:
    factor = 1 + (margin_percent or 0) / 100
    lines = []
    for item in order.items:
        unit_price = _money(item.unit_price * factor)
        lines.append(
            {
                "kind": "SERVICE",
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": unit_price,
                "total": _money(item.quantity * unit_price),
            }
        )
    return lines


def _refresh_quote(db: Session, quote: models.Quote, lines: List[Dict], *, collaborator_id=None) -> models.Quote:
    quote.items = _quote_items(lines)
    quote.subtotal = _money(sum(line["total"] for line in lines))
    quote.total = _money(quote.subtotal - (quote.discount or 0))
    if quote.total <= 0:
        raise InvalidStateError("Quote total must be greater than zero")
    add_quote_history(db, quote, "regenerated", "Quote refreshed from technical report", collaborator_id)
    return quote


def quote_from_report(db: Session, report: models.TechnicalReport, *, created_by_id: uuid.UUID, validity_days: int = 30) -> models.Quote:
    """Create the auto-generated quote for a completed report, or refresh its draft."""
    if report.status != "COMPLETED":
        raise InvalidStateError("Technical report must be completed to generate a quote")
    lines = _report_lines(report)
    if not lines:
        raise InvalidStateError("No priced items in the technical report")

    existing = (
        db.query(models.Quote)
        .filter(models.Quote.technical_report_id == report.id, models.Quote.auto_generated.is_(True))
        .first()
    )
    if existing is not None:
        if existing.status != "DRAFT":
            raise InvalidStateError("Generated quote has already been sent and cannot be regenerated")
        quote = _refresh_quote(db, existing, lines, collaborator_id=created_by_id)
    else:
        order = report.order
        quote = _persist_quote(
            db,
            order,
            lines,
            title=f"Quote for {order.number} - {order.title}",
            description=report.recommended_solution,
            notes=report.notes,
            validity_days=validity_days,
            created_by_id=created_by_id,
            history_note=f"Generated from technical report of {order.number}",
            technical_report_id=report.id,
            auto_generated=True,
        )
    report.quote_total = quote.total
    add_report_history(db, report, "quote_generated", f"Quote {quote.number} generated", created_by_id)
    db.commit()
    db.refresh(quote)
    return quote


def generate_quote(db: Session, payload: schemas.QuoteGenerate, *, created_by_id: uuid.UUID):
    """Build a quote from a report or from order items with a margin; preview returns unsaved lines."""
    if payload.technical_report_id is not None:
        report = get_report(db, payload.technical_report_id)
        if not report:
            raise NotFoundError("Technical report not found")
        if payload.preview:
            if report.status != "COMPLETED":
                raise InvalidStateError("Technical report must be completed to generate a quote")
            return _preview(report.order, _report_lines(report), 0)
        return quote_from_report(db, report, created_by_id=created_by_id, validity_days=payload.validity_days)

    order = get_order(db, payload.service_order_id)
    if not order:
        raise NotFoundError("Service order not found")
    lines = _order_lines(order, payload.margin_percent)
    if not lines:
        raise InvalidStateError("Service order has no items to quote")
    if payload.preview:
        return _preview(order, lines, payload.margin_percent)
    quote = _persist_quote(
        db,
        order,
        lines,
        title=payload.title or f"Quote for {order.number} - {order.title}",
        description=payload.description or order.description,
        notes=payload.notes,
        validity_days=payload.validity_days,
        created_by_id=created_by_id,
        history_note=f"Generated from {order.number} with {payload.margin_percent:g}% margin",
        auto_generated=True,
    )
    db.commit()
    db.refresh(quote)
    return quote


def _preview(order: models.ServiceOrder, lines: List[Dict], margin_percent: float) -> schemas.QuotePreview:
    return schemas.QuotePreview(
        items=[schemas.QuotePreviewItem(**line) for line in lines],
        total=_money(sum(line["total"] for line in lines)),
        margin_percent=margin_percent,
        service_order_number=order.number,
        service_order_title=order.title,
        service_order_status=order.status,
    )


# Technical reports

def add_report_history(db: Session, report: models.TechnicalReport, action: str, description: Optional[str] = None, collaborator_id=None):
    db.add(models.TechnicalReportHistory(report_id=report.id, action=action, description=description, collaborator_id=collaborator_id))


def get_report(db: Session, report_id: uuid.UUID) -> Optional[models.TechnicalReport]:
    return db.query(models.TechnicalReport).filter(models.TechnicalReport.id == report_id).first()


def _report_items(items) -> List[models.TechnicalReportItem]:
    result = []
    for index, item in enumerate(items or []):
        total = item.total
        if total is None and item.quantity is not None and item.unit_price is not None:
            total = _money(item.quantity * item.unit_price)
        result.append(
            models.TechnicalReportItem(
                kind=item.kind,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=total,
                position=index,
            )
        )
    return result


def create_report(db: Session, order: models.ServiceOrder, payload: schemas.TechnicalReportCreate, *, collaborator_id=None) -> models.TechnicalReport:
    if order.report is not None:
        raise InvalidStateError("Service order already has a technical report")
    if not db.query(models.Collaborator.id).filter(models.Collaborator.id == payload.technician_id).first():
        raise NotFoundError("Technician not found")
    report = models.TechnicalReport(
        service_order_id=order.id,
        **payload.model_dump(exclude={"items"}),
        status="DRAFT",
    )
    report.items = _report_items(payload.items)
    db.add(report)
    db.flush()
    add_report_history(db, report, "created", None, collaborator_id)
    add_order_history(db, order, "report_created", "Technical report created", collaborator_id)
    db.commit()
    db.refresh(report)
    return report


def update_report(db: Session, report: models.TechnicalReport, payload: schemas.TechnicalReportUpdate, *, collaborator_id=None) -> models.TechnicalReport:
    if report.status != "DRAFT":
        raise InvalidStateError("Technical report cannot be edited in this status")
    for key, value in payload.model_dump(exclude={"items"}).items():
        setattr(report, key, value)
    report.items = _report_items(payload.items)
    add_report_history(db, report, "updated", None, collaborator_id)
    db.commit()
    db.refresh(report)
    return report


def delete_report(db: Session, report: models.TechnicalReport) -> None:
    if report.status != "DRAFT":
        raise InvalidStateError("Technical report cannot be deleted in this status")
    db.delete(report)
    db.commit()


def complete_report(db: Session, report: models.TechnicalReport, *, collaborator_id=None) -> models.TechnicalReport:
    """Close the report and hand the order to the customer; generates the quote when requested."""
    if report.status != "DRAFT":
        raise InvalidStateError("Technical report is already completed")
    report.status = "COMPLETED"
    report.completed_at = _now()
    order = report.order
    if order.status != "AWAITING_CUSTOMER_APPROVAL":
        add_order_history(db, order, "status_changed", f"{order.status} -> AWAITING_CUSTOMER_APPROVAL", collaborator_id)
        order.status = "AWAITING_CUSTOMER_APPROVAL"
    add_report_history(db, report, "completed", None, collaborator_id)
    db.commit()
    if report.generate_quote and collaborator_id is not None and sum(line["total"] for line in _report_lines(report)) > 0:
        quote_from_report(db, report, created_by_id=collaborator_id)
    db.refresh(report)
    return report
