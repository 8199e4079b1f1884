from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import mileage as mileage_routes
from .config import API_PREFIX, APP_VERSION, SERVICE_NAME
from .db.core import init_db
from .health import health_checker
from .http_client import close_http_client
from .logging_config import configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .settings import settings
from .utils import add_cors, add_request_id_tracing, add_security_headers

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"{SERVICE_NAME}@{APP_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(
        "service_started",
        provider=settings.MILEAGE_PROVIDER,
        configured=settings.provider_configured(settings.MILEAGE_PROVIDER),
    )
    try:
        yield
    finally:
        await close_http_client()


app = FastAPI(
    title="Freight Mileage API",
    version=APP_VERSION,
    description="Truck lane distances with provider fallback and a persistent cache",
    lifespan=lifespan,
)
add_cors(app)
add_security_headers(app)
add_request_id_tracing(app)
app.add_middleware(PrometheusMiddleware)

app.include_router(mileage_routes.router, prefix=API_PREFIX)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Validation failures are 400 across the API
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": _validation_errors(exc)},
    )


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.get("/health")
async def health():
    """Return service health including database and provider checks."""
    health_status = await health_checker.check_all()
    status_code = 200 if health_status["status"] == "healthy" else 503
    body = {
        "status": health_status["status"],
        "timestamp": health_status.get("timestamp"),
        "checks": _scrub_health_details(health_status.get("checks", {})),
        "service": SERVICE_NAME,
        "version": APP_VERSION,
    }
    if settings.DEBUG:
        body["details"] = health_status
    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover
        logger.exception("metrics_export_failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")


def _scrub_health_details(payload: dict) -> dict:
    """Remove raw error fields before returning health details to anonymous callers."""

    def _scrub(value):
        if isinstance(value, dict):
            return {
                key: _scrub(inner)
                for key, inner in value.items()
                if key not in {"error", "error_type", "traceback"}
            }
        if isinstance(value, list):
            return [_scrub(item) for item in value]
        return value

    return _scrub(payload)
