"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging
import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from bizhub.api.deps import api_key_from_headers
from bizhub.api.errors import error_response, install_error_handlers
from bizhub.api.api_keys import router as api_keys_router
from bizhub.api.audits import router as audits_router
from bizhub.api.auth import router as auth_router
from bizhub.api.clients import router as clients_router
from bizhub.api.collaborators import router as collaborators_router
from bizhub.api.email import router as email_router
from bizhub.api.groups import router as groups_router
from bizhub.api.helpdesk import router as helpdesk_router
from bizhub.api.logs import router as logs_router
from bizhub.api.modules import router as modules_router
from bizhub.api.permissions import router as permissions_router
from bizhub.api.profiles import router as profiles_router
from bizhub.api.purchasing import cost_centers_router, products_router, router as purchases_router
from bizhub.api.recurrences import router as recurrences_router
from bizhub.api.service_orders import quotes_router, router as service_orders_router
from bizhub.api.settings import router as settings_router
from bizhub.api.tasks import router as tasks_router
from bizhub.api.users import router as users_router
from bizhub.api.webhooks import router as webhooks_router
from bizhub.api.whatsapp import router as whatsapp_router
from bizhub.db.database import open_session
from bizhub.db.repositories import api_keys as api_key_repo
from bizhub.db.repositories import settings as settings_repo
from bizhub.services import rate_limiter
from bizhub.utils import permission_catalog
from bizhub.utils.module_catalog import module_for_path
from bizhub.utils.network import client_ip

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="BizHub Service",
    description="Business management API: CRM, tasks, helpdesk, purchasing, service orders, webmail and WhatsApp.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

DEFAULT_ORIGINS = "http://localhost,http://localhost:3000,http://localhost:8000"
origins = [o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_ORIGINS).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


# Middleware: API key validation, rate limiting, permission check and request log
@app.middleware("http")
async def api_key_gate(request: Request, call_next):
    raw_key = api_key_from_headers(request.headers.get("authorization"), request.headers.get("x-api-key"))
    if not raw_key:
        return await call_next(request)

    started = time.monotonic()
    path = request.url.path
    db = open_session()
    try:
        try:
            key = api_key_repo.validate_api_key(db, raw_key)
        except api_key_repo.ApiKeyValidationError as exc:
            return error_response(str(exc), 401)

        def _log(status_code: int) -> None:
            api_key_repo.log_request(
                db,
                api_key_id=key.id,
                endpoint=path,
                method=request.method,
                status_code=status_code,
                response_time_ms=int((time.monotonic() - started) * 1000),
                user_agent=request.headers.get("user-agent"),
                ip_address=client_ip(request),
            )

        config = rate_limiter.RateLimitConfig.from_env()
        limit = rate_limiter.check(db, rate_limiter.key_for_api_key(key.id), key.rate_limit or config.max_requests, config.window_ms)
        if not limit.allowed:
            _log(429)
            return error_response(
                "Rate limit exceeded",
                429,
                details={"retry_after": limit.retry_after_seconds()},
                headers=limit.headers(),
            )

        required = permission_catalog.required_permission(request.method, path)
        if required and not permission_catalog.has_permission(key.permissions or [], required):
            _log(403)
            return error_response("Insufficient permissions", 403, details={"required": required})

        api_key_repo.mark_used_now(db, key=key)
        request.state.api_key_id = key.id

        def _safe_log(status_code: int) -> None:
            try:
                _log(status_code)
            except Exception:
                db.rollback()
                logger.exception("api_log_failed path=%s", path)

        try:
            response = await call_next(request)
        except Exception:
            _safe_log(500)
            raise
        for name, value in limit.headers().items():
            response.headers[name] = value
        _safe_log(response.status_code)
        return response
    finally:
        db.close()


# Middleware: reject routes owned by an inactive system module
@app.middleware("http")
async def module_gate(request: Request, call_next):
    name = module_for_path(request.url.path)
    if name is not None:
        db = open_session()
        try:
            inactive = settings_repo.is_module_inactive(db, name)
        finally:
            db.close()
        if inactive:
            return error_response(f"Module '{name}' is inactive", 403)
    return await call_next(request)


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(collaborators_router)
app.include_router(permissions_router)
app.include_router(profiles_router)
app.include_router(groups_router)
app.include_router(modules_router)
app.include_router(settings_router)
app.include_router(clients_router)
app.include_router(api_keys_router)
app.include_router(webhooks_router)
app.include_router(logs_router)
app.include_router(audits_router)
app.include_router(tasks_router)
app.include_router(recurrences_router)
app.include_router(helpdesk_router)
app.include_router(purchases_router)
app.include_router(cost_centers_router)
app.include_router(products_router)
app.include_router(service_orders_router)
app.include_router(quotes_router)
app.include_router(email_router)
app.include_router(whatsapp_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "bizhub-service"}
