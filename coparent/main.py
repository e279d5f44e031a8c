import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_calendar,  # noqa: F401
)
from .config import ALLOWED_ORIGINS, ENVIRONMENT
from .database import Base, engine
from .domain.calendar.router import router as calendar_router
from .domain.families.router import router as families_router
from .domain.swaps.router import router as swaps_router
from .domain.tasks.router import router as tasks_router
from .exceptions import AppError
from .routes.documents import router as documents_router
from .routes.notifications import router as notifications_router
from .routes.realtime import router as realtime_router
from .routes.settings import router as settings_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="CoParent API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "message": exc.message})


HTTP_ERROR_CODES = {401: "unauthorized", 403: "forbidden", 404: "not-found", 405: "method-not-allowed"}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": HTTP_ERROR_CODES.get(exc.status_code, "http-error"), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _error_details(exc: RequestValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header; everything else is a 400
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={"error": "unauthorized", "message": "Missing or invalid Authorization header"},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation-error",
            "message": "Request validation failed",
            "details": _error_details(exc),
        },
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=409, content={"error": "conflict", "message": "Resource already exists or is in use"}
    )


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning(f"Concurrent update rejected on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content={"error": "concurrent-update", "message": "The resource was modified by someone else"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} - Unhandled error: {str(exc)}")
    message = str(exc) if ENVIRONMENT == "development" else "Internal server error"
    return JSONResponse(status_code=500, content={"error": "internal-error", "message": message})


# CORS Configuration
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(families_router)
app.include_router(calendar_router)
app.include_router(swaps_router)
app.include_router(tasks_router)
app.include_router(notifications_router)
app.include_router(settings_router)
app.include_router(documents_router)
app.include_router(realtime_router)


@app.get("/")
async def root():
    return {"message": "CoParent API"}


@app.get("/health")
async def health():
    return {"status": "ok", "environment": ENVIRONMENT}
