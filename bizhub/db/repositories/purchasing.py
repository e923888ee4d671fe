"""
Purchasing repositories: cost centers, products, purchase requests and the
quotations generated when a request is approved.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import DuplicateError, InvalidStateError, NotFoundError
from bizhub.utils import numbering


def _now() -> datetime:
    return datetime.now(timezone.utc)


def list_cost_centers(db: Session) -> List[models.CostCenter]:
    return db.query(models.CostCenter).order_by(models.CostCenter.code.asc()).all()


def create_cost_center(db: Session, payload: schemas.CostCenterCreate) -> models.CostCenter:
    if db.query(models.CostCenter.id).filter(models.CostCenter.code == payload.code).first():
        raise DuplicateError("Cost center code already exists")
    center = models.CostCenter(**payload.model_dump())
    db.add(center)
    db.commit()
    db.refresh(center)
    return center


def list_products(db: Session, *, search: Optional[str] = None) -> List[models.Product]:
    query = db.query(models.Product)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(models.Product.name.ilike(like) | models.Product.code.ilike(like))
    return query.order_by(models.Product.name.asc()).all()


def create_product(db: Session, payload: schemas.ProductCreate) -> models.Product:
    if db.query(models.Product.id).filter(models.Product.code == payload.code).first():
        raise DuplicateError("Product code already exists")
    product = models.Product(**payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def get_request(db: Session, request_id: uuid.UUID) -> Optional[models.PurchaseRequest]:
    return db.query(models.PurchaseRequest).filter(models.PurchaseRequest.id == request_id).first()


def create_request(db: Session, payload: schemas.PurchaseRequestCreate, *, requester_id: Optional[uuid.UUID]) -> models.PurchaseRequest:
    if not db.query(models.CostCenter.id).filter(models.CostCenter.id == payload.cost_center_id).first():
        raise NotFoundError("Cost center not found")
    product_ids = {item.product_id for item in payload.items}
    found = {pid for (pid,) in db.query(models.Product.id).filter(models.Product.id.in_(product_ids)).all()}
    if found != product_ids:
        raise NotFoundError("Product not found")
    request = models.PurchaseRequest(
        description=payload.description,
        justification=payload.justification,
        cost_center_id=payload.cost_center_id,
        deadline=payload.deadline,
        notes=payload.notes,
        status="PENDING",
        requester_id=requester_id,
    )
    request.items = [models.PurchaseRequestItem(**item.model_dump()) for item in payload.items]
    db.add(request)
    db.commit()
    db.refresh(request)
    return request


def list_requests(
    db: Session,
    *,
    status: Optional[str] = None,
    cost_center_id: Optional[uuid.UUID] = None,
    requester_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.PurchaseRequest], int]:
    query = db.query(models.PurchaseRequest)
    if status:
        query = query.filter(models.PurchaseRequest.status == status.upper())
    if cost_center_id:
        query = query.filter(models.PurchaseRequest.cost_center_id == cost_center_id)
    if requester_id:
        query = query.filter(models.PurchaseRequest.requester_id == requester_id)
    total = query.count()
    items = query.order_by(models.PurchaseRequest.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def decide_request(
    db: Session,
    request: models.PurchaseRequest,
    *,
    approved: bool,
    notes: Optional[str],
    approver_id: Optional[uuid.UUID],
) -> Optional[models.Quotation]:
    """Approve or reject a pending request. Approval opens a quotation and returns it."""
    if request.status != "PENDING":
        raise InvalidStateError("Only pending requests can be approved or rejected")
    request.status = "APPROVED" if approved else "REJECTED"
    request.approver_id = approver_id
    request.approved_at = _now()
    request.approval_notes = notes
    quotation = None
    if approved:
        quotation = models.Quotation(
            number=numbering.quotation_number(),
            request_id=request.id,
            status="OPEN",
            deadline=request.deadline,
            reference_value=sum(item.quantity * (item.estimated_value or 0) for item in request.items),
        )
        quotation.items = [
            models.QuotationItem(
                product_id=item.product_id,
                quantity=item.quantity,
                reference_value=item.estimated_value or 0,
            )
            for item in request.items
        ]
        db.add(quotation)
    db.commit()
    db.refresh(request)
    if quotation is not None:
        db.refresh(quotation)
    return quotation


def delete_request(db: Session, request: models.PurchaseRequest) -> None:
    if request.status != "PENDING":
        raise InvalidStateError("Only pending requests can be deleted")
    db.delete(request)
    db.commit()
