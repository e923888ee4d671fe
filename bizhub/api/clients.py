"""
Clients API endpoints (CRM).
"""
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import clients as client_repo
from bizhub.services.webhook_service import emit
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/clients", tags=["clients"])


def _event_data(client) -> dict:
    return schemas.Client.model_validate(client).model_dump(mode="json")


@router.get("", response_model=schemas.PaginatedClients)
def list_clients(
    search: Optional[str] = None,
    status: Optional[str] = None,
    group_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("clients.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = client_repo.list_clients(
        db,
        search=search,
        status=status.upper() if status else None,
        group_id=group_id,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.post("", response_model=schemas.Client, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: schemas.ClientCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("clients.write")),
):
    client = client_repo.create_client(db, payload)
    emit("client.created", _event_data(client), background_tasks)
    return client


@router.get("/{client_id}", response_model=schemas.Client)
def get_client(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("clients.read")),
):
    client = client_repo.get_client(db, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.put("/{client_id}", response_model=schemas.Client)
def update_client(
    client_id: uuid.UUID,
    payload: schemas.ClientUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("clients.write")),
):
    client = client_repo.update_client(db, client_id, payload)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    emit("client.updated", _event_data(client), background_tasks)
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("clients.delete")),
):
    if not client_repo.delete_client(db, client_id):
        raise HTTPException(status_code=404, detail="Client not found")
    emit("client.deleted", {"id": str(client_id)}, background_tasks)
    return None
