"""
Uniform JSON error bodies.

Every failure leaves the API as

    {"error": {"message": str, "status": int, "timestamp": ISO-8601}}

with an extra `details` list for request validation errors.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.background import BackgroundTasks
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from bizhub.db.repositories.errors import RepositoryError
from bizhub.services.webhook_service import emit

logger = logging.getLogger(__name__)

# Unique constraint name fragments -> client-facing message
_INTEGRITY_MESSAGES = (
    ("users_email", "Email already registered"),
    ("collaborators_email", "Collaborator email already registered"),
    ("clients_email", "Client email already registered"),
    ("permissions_name", "Permission name already exists"),
    ("permissions_resource", "Permission for this resource and action already exists"),
    ("profiles_name", "Profile name already exists"),
    ("cost_centers_code", "Cost center code already exists"),
    ("products_code", "Product code already exists"),
    ("system_modules_name", "Module already exists"),
)


def error_body(message: str, status_code: int, details: Any = None) -> Dict[str, Any]:
    body = {
        "error": {
            "message": message,
            "status": status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
    if details is not None:
        body["error"]["details"] = details
    return body


def error_response(message: str, status_code: int, *, details: Any = None, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(error_body(message, status_code, details)),
        headers=headers,
    )


def _integrity_message(exc: IntegrityError) -> str:
    text = str(getattr(exc, "orig", exc)).lower().replace(".", "_")
    for fragment, message in _INTEGRITY_MESSAGES:
        if fragment in text:
            return message
    if "unique" in text or "duplicate" in text:
        return "Record already exists"
    if "foreign key" in text:
        return "Referenced record does not exist"
    return "Integrity constraint violated"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        message = str(detail.get("message") or "Request failed")
    else:
        message = str(detail)
    return error_response(message, exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        details=exc.errors(),
    )


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    return error_response(str(exc), exc.status_code)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity_error path=%s error=%s", request.url.path, getattr(exc, "orig", exc))
    return error_response(_integrity_message(exc), status.HTTP_400_BAD_REQUEST)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error method=%s path=%s", request.method, request.url.path)
    response = error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
    tasks = BackgroundTasks()
    emit(
        "system.error",
        {
            "method": request.method,
            "path": request.url.path,
            "error": exc.__class__.__name__,
            "message": str(exc)[:500],
        },
        tasks,
    )
    response.background = tasks
    return response


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
