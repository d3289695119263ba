from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .config import settings
from .db import build_database_url, get_engine_from_dsn, make_session_factory, test_engine_connection
from .errors import AppError
from .mailer import Mailer
from .metrics import gauge_add, render_prometheus, summary_observe
from .models import User, has_admin, init_db
from .routers import auth as auth_router
from .routers import lookups as lookups_router
from .routers import records as records_router
from .routers import summary as summary_router
from .routers import users as users_router
from .schemas import HealthResponse
from .security import hash_password
from .storage import ObjectStore

logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Respect X-Forwarded-* headers when running behind a reverse proxy (e.g., Nginx)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")


# Request duration (ms) per route template and an active requests gauge.
# Labels stay bounded: raw paths and unknown methods are never used as label values.
_KNOWN_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"}
UNMATCHED_ROUTE = "unmatched"


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


@app.middleware("http")
async def _metrics_mw(request: Request, call_next):
    if not (request.url.path or "").startswith("/api/"):
        return await call_next(request)
    method = request.method if request.method in _KNOWN_METHODS else "OTHER"
    gauge_add("app_active_requests", 1.0, {"method": method})
    started = time.perf_counter()
    try:
        return await call_next(request)
    finally:
        elapsed = int((time.perf_counter() - started) * 1000)
        gauge_add("app_active_requests", -1.0, {"method": method})
        # The router records the matched route in the scope during call_next
        summary_observe("app_request_duration_ms", elapsed, {"path": _route_label(request), "method": method})


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(SQLAlchemyError)
async def _db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _bootstrap_admin(session_factory) -> None:
    username = (settings.admin_username or "").strip()
    password = settings.admin_password or ""
    if not username or not password:
        return
    db = session_factory()
    try:
        if has_admin(db):
            return
        u = User(
            username=username,
            password_hash=hash_password(password),
            email=settings.admin_email,
            name=settings.admin_name or username,
            role="admin",
        )
        db.add(u)
        db.commit()
        logger.info("Bootstrapped admin user %s", username)
    finally:
        db.close()


@app.on_event("startup")
async def _startup():
    engine = get_engine_from_dsn(build_database_url(), pool_size=settings.db_pool_size)
    ok, err = test_engine_connection(engine)
    if ok:
        logger.info("PostgreSQL connected")
    else:
        # The pool reconnects on demand; requests fail until the database is reachable
        logger.error("Database unreachable at startup: %s", err)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.store = ObjectStore.from_settings()
    app.state.mailer = Mailer.from_settings()
    if ok:
        try:
            init_db(engine)
            _bootstrap_admin(app.state.session_factory)
        except SQLAlchemyError:
            logger.exception("User table initialisation failed")


@app.on_event("shutdown")
async def _shutdown():
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.dispose()


app.include_router(auth_router.router, prefix="/api")
app.include_router(users_router.router, prefix="/api")
app.include_router(lookups_router.router, prefix="/api")
app.include_router(records_router.router, prefix="/api")
app.include_router(summary_router.router, prefix="/api")


@app.get("/api/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok", app=settings.app_name, env=settings.environment)


@app.get("/api/metrics")
async def metrics() -> Response:
    body = render_prometheus()
    return Response(content=body, media_type="text/plain; version=0.0.4; charset=utf-8")


# Root for convenience
@app.get("/")
async def root():
    return {"ok": True, "app": settings.app_name}
