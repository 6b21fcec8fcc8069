import time
import uuid

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from app.core.logging import bind_request_id, configure_logging, get_logger
from app.db.base import DocumentStore
from app.db.init import close_db, init_db
from app.deps import get_store
from app.models.callback import utc_now_iso
from app.routers import payments

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title=settings.service_name,
    version="1.0.0",
)
app.state.store = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(payments.router, prefix="/payment", tags=["payment"])


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    try:
        app.state.store = await init_db()
    except Exception:
        # keep serving; callbacks answer 500 and /health reports database=false
        log.exception("startup", msg="DB unavailable")
        app.state.store = None
    log.info(
        "startup",
        msg="ready",
        database=app.state.store is not None,
        backend_url=settings.backend_url,
        deep_link=settings.android_app_deep_link,
        callback=f"{settings.backend_url}/payment/callback",
    )


@app.on_event("shutdown")
async def shutdown():
    close_db()


@app.get("/health")
async def health(store: DocumentStore | None = Depends(get_store)):
    """Health check for load balancers and monitoring."""
    return {
        "ok": True,
        "status": "ok",
        "service": settings.service_name,
        "database": store is not None,
        "timestamp": utc_now_iso(),
    }


@app.get("/")
async def root():
    return {
        "message": f"{settings.service_name} is running",
        "health": f"{settings.backend_url}/health",
        "callback": f"{settings.backend_url}/payment/callback",
    }
