"""
Authentication endpoints: password login, logout and the current identity.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, AuditStatus, log
from bizhub.api.deps import get_current_user_context, session_cookie_name
from bizhub.db import models, schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import users as user_repo
from bizhub.utils.network import client_ip
from bizhub.utils.runtime import env_flag

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user = user_repo.authenticate(db, payload.email, payload.password)
    if user is None:
        logger.info("login_failed email=%s ip=%s", payload.email, client_ip(request))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    session, token = user_repo.create_session(
        db,
        user=user,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response.set_cookie(
        key=session_cookie_name(),
        value=token,
        max_age=int(user_repo.session_ttl().total_seconds()),
        httponly=True,
        samesite="lax",
        secure=env_flag("SESSION_COOKIE_SECURE"),
    )
    try:
        log(
            db,
            action=AuditAction.LOGIN,
            status=AuditStatus.SUCCESS,
            target_type="user",
            target_id=user.id,
            actor_user_id=user.id,
            metadata={"ip": client_ip(request)},
        )
    except Exception:
        db.rollback()
        logger.exception("audit_log_failed action=login")
    return schemas.LoginResponse(token=token, expires_at=session.expires_at, user=user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    session_id = getattr(request.state, "session_id", None)
    if session_id is not None:
        session = db.query(models.UserSession).filter(models.UserSession.id == session_id).first()
        if session is not None:
            user_repo.revoke_session(db, session)
        if user is not None:
            try:
                log(db, action=AuditAction.LOGOUT, target_type="user", target_id=user.id, actor_user_id=user.id)
            except Exception:
                db.rollback()
                logger.exception("audit_log_failed action=logout")
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(session_cookie_name())
    return response


@router.get("/me")
def me(user_context=Depends(get_current_user_context)):
    user, current_user = user_context
    collaborator = user.collaborator if user is not None else None
    return {
        "id": str(user.id) if user is not None else None,
        "email": current_user.get("email"),
        "name": current_user.get("name"),
        "collaborator": {
            "id": str(collaborator.id),
            "name": collaborator.name,
            "email": collaborator.email,
            "position": collaborator.position,
        } if collaborator is not None else None,
        "profile": {
            "id": str(current_user["profile"]["id"]),
            "name": current_user["profile"]["name"],
        } if current_user.get("profile") else None,
        "group": {
            "id": str(collaborator.group.id),
            "name": collaborator.group.name,
        } if collaborator is not None and collaborator.group is not None else None,
        "permissions": sorted(current_user.get("permissions") or []),
        "is_admin": bool(current_user.get("is_admin")),
        "api_key": {
            "id": str(current_user["api_key"]["id"]),
            "name": current_user["api_key"]["name"],
        } if current_user.get("api_key") else None,
    }
