"""
Purchasing API endpoints: purchase requests, cost centers and products.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import page_params, require_collaborator, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import purchasing as purchasing_repo
from bizhub.services.webhook_service import emit
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/purchases", tags=["purchases"])
cost_centers_router = APIRouter(prefix="/cost-centers", tags=["purchases"])
products_router = APIRouter(prefix="/products", tags=["purchases"])


def _get_or_404(db: Session, request_id: uuid.UUID):
    request = purchasing_repo.get_request(db, request_id)
    if not request:
        raise HTTPException(status_code=404, detail="Purchase request not found")
    return request


@router.get("", response_model=schemas.PaginatedPurchaseRequests)
def list_requests(
    status: Optional[str] = None,
    cost_center_id: Optional[uuid.UUID] = None,
    requester_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = purchasing_repo.list_requests(
        db,
        status=status,
        cost_center_id=cost_center_id,
        requester_id=requester_id,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.post("", response_model=schemas.PurchaseRequest, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: schemas.PurchaseRequestCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.write")),
):
    _user, current_user = user_context
    requester_id = require_collaborator(current_user)
    return purchasing_repo.create_request(db, payload, requester_id=requester_id)


@router.get("/{request_id}", response_model=schemas.PurchaseRequest)
def get_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.read")),
):
    return _get_or_404(db, request_id)


@router.post("/{request_id}/approve", response_model=schemas.PurchaseRequest)
def approve_request(
    request_id: uuid.UUID,
    payload: schemas.ApprovalRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.write")),
):
    """Approve or reject a pending request; approval opens a quotation."""
    _user, current_user = user_context
    request = _get_or_404(db, request_id)
    quotation = purchasing_repo.decide_request(
        db,
        request,
        approved=payload.approved,
        notes=payload.notes,
        approver_id=current_user.get("collaborator_id"),
    )
    log_for(
        db, current_user,
        action=AuditAction.PURCHASE_APPROVE if payload.approved else AuditAction.PURCHASE_REJECT,
        target_type="purchase_request",
        target_id=request.id,
        metadata={
            "notes": payload.notes,
            "quotation_number": quotation.number if quotation is not None else None,
        },
    )
    if quotation is not None:
        emit(
            "purchase.approved",
            {
                "request": schemas.PurchaseRequest.model_validate(request).model_dump(mode="json"),
                "quotation": schemas.Quotation.model_validate(quotation).model_dump(mode="json"),
            },
            background_tasks,
        )
    return request


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.delete")),
):
    purchasing_repo.delete_request(db, _get_or_404(db, request_id))
    return None


@cost_centers_router.get("", response_model=List[schemas.CostCenter])
def list_cost_centers(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.read")),
):
    return purchasing_repo.list_cost_centers(db)


@cost_centers_router.post("", response_model=schemas.CostCenter, status_code=status.HTTP_201_CREATED)
def create_cost_center(
    payload: schemas.CostCenterCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.write")),
):
    return purchasing_repo.create_cost_center(db, payload)


@products_router.get("", response_model=List[schemas.Product])
def list_products(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.read")),
):
    return purchasing_repo.list_products(db, search=search)


@products_router.post("", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("purchases.write")),
):
    return purchasing_repo.create_product(db, payload)
