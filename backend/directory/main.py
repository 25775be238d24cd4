import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings, validate_provider_credentials
from .database import SessionLocal
from .errors import NotFoundError, RepositoryError
from .providers import DataForSEOClient
from .routes.businesses import router as businesses_router
from .routes.categories import router as categories_router
from .routes.locations import router as locations_router
from .schemas import HealthResponse
from .telemetry.logging_utils import configure_logging
from .telemetry.middleware import TelemetryMiddleware

configure_logging(settings.log_level, settings.perf_log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_provider_credentials(settings)
    provider = None
    if settings.dataforseo_login and settings.dataforseo_password:
        provider = DataForSEOClient.from_settings(settings)
    else:
        logger.warning("Business data provider disabled; ranked queries use stored businesses only")
    app.state.provider = provider
    try:
        yield
    finally:
        if provider is not None:
            provider.close()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TelemetryMiddleware)

app.include_router(categories_router, prefix="/api")
app.include_router(businesses_router, prefix="/api")
app.include_router(locations_router, prefix="/api")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": f"{exc.kind} not found"})


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    logger.error("Request failed with repository error: %s", exc, extra={"request_id": getattr(request.state, "request_id", None)})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health", response_model=HealthResponse)
def healthcheck() -> HealthResponse:
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return HealthResponse(status="degraded", database="unreachable")
    return HealthResponse(status="ok", database="ok")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "directory.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower() if settings.log_level != "PERF" else "info",
    )
