"""
WhatsApp endpoints.

Provider status and sessions go through the configured gateway adapter;
per-collaborator sessions and sending go through the session worker.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import require_collaborator, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.services.whatsapp import WhatsAppProviderError, WorkerClient, get_whatsapp_adapter

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


def get_worker_client() -> WorkerClient:
    return WorkerClient()


def _bad_gateway(exc: WhatsAppProviderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("/status", response_model=schemas.ProviderStatus)
def provider_status(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("whatsapp.read")),
):
    adapter = get_whatsapp_adapter(db)
    result = adapter.get_status()
    return {
        "provider": adapter.config.type,
        "online": result.get("status") == "online",
        "details": result,
        "error": result.get("error"),
    }


@router.get("/sessions")
def list_sessions(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("whatsapp.read")),
) -> List[Dict[str, Any]]:
    try:
        return get_whatsapp_adapter(db).list_sessions()
    except WhatsAppProviderError as exc:
        raise _bad_gateway(exc)


@router.get("/session", response_model=schemas.SessionStatus)
def session_status(
    user_context=Depends(require_permission("whatsapp.read")),
    worker: WorkerClient = Depends(get_worker_client),
):
    _user, current_user = user_context
    collaborator_id = require_collaborator(current_user)
    try:
        return worker.session(str(collaborator_id), "status")
    except WhatsAppProviderError as exc:
        raise _bad_gateway(exc)


@router.post("/session", response_model=schemas.SessionStatus)
def session_action(
    payload: schemas.SessionAction,
    user_context=Depends(require_permission("whatsapp.write")),
    worker: WorkerClient = Depends(get_worker_client),
):
    _user, current_user = user_context
    collaborator_id = require_collaborator(current_user)
    try:
        return worker.session(str(collaborator_id), payload.action)
    except WhatsAppProviderError as exc:
        raise _bad_gateway(exc)


@router.get("/qr")
def qr_code(
    user_context=Depends(require_permission("whatsapp.read")),
    worker: WorkerClient = Depends(get_worker_client),
):
    _user, current_user = user_context
    collaborator_id = require_collaborator(current_user)
    try:
        return {"qr_code": worker.qr_code(str(collaborator_id))}
    except WhatsAppProviderError as exc:
        raise _bad_gateway(exc)


@router.post("/send")
def send_message(
    payload: schemas.SendMessageRequest,
    user_context=Depends(require_permission("whatsapp.write")),
    worker: WorkerClient = Depends(get_worker_client),
):
    _user, current_user = user_context
    collaborator_id = require_collaborator(current_user)
    try:
        return worker.send_message(str(collaborator_id), payload.phone, payload.message)
    except WhatsAppProviderError as exc:
        raise _bad_gateway(exc)


@router.post("/test")
def test_connection(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("whatsapp.write")),
):
    adapter = get_whatsapp_adapter(db)
    return {"provider": adapter.config.type, "success": adapter.test_connection()}
