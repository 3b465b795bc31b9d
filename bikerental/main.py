# bikerental/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status as fastapi_status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from bikerental.core.config import setup_logging, CORS_ALLOWED_ORIGINS, PDF_OUTPUT_DIR, PDF_URL_PREFIX
from bikerental.core.pdf import PdfGenerationError
from bikerental.core.rate_limiter import get_rate_limiter, rate_limit_exception_handler
from bikerental.db.database import init_db, close_db, get_client
from bikerental.middleware.authentication import AuthMiddleware
from bikerental.middleware.logging import RequestLoggingMiddleware
from bikerental.api.v1.api import api_router_v1


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application startup...")
    await init_db()
    logger.info("Database initialized.")
    yield
    logger.info("Application shutdown...")
    close_db()


app = FastAPI(
    title="Campus Bike Rental API",
    description="Bike-rental applications, admin review, fleet and rental management.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Error handling ---
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation Error on {request.url.path}: {errors}")
    first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
    return JSONResponse(
        status_code=fastapi_status.HTTP_400_BAD_REQUEST,
        content={
            "message": f"Invalid field: {_field_name(first.get('loc', ()))} ({first.get('msg')})",
            "errors": [{"field": _field_name(e.get("loc", ())), "message": e.get("msg")} for e in errors],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(PdfGenerationError)
async def pdf_exception_handler(request: Request, exc: PdfGenerationError):
    logger.error(f"PDF generation failed on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Failed to generate PDF"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled Exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# --- Middleware (last added runs first) ---
app.add_middleware(AuthMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = get_rate_limiter()

app.include_router(api_router_v1)

# Generated application forms; still behind AuthMiddleware
PDF_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
app.mount(PDF_URL_PREFIX, StaticFiles(directory=str(PDF_OUTPUT_DIR)), name="generated_pdfs")


@app.get("/")
async def read_root():
    return {"message": "Campus Bike Rental API", "docs": "/docs", "health": "/health"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "API is working",
    }


@app.get("/health/db")
async def database_health_check():
    try:
        await get_client().admin.command("ping")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=fastapi_status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "database error", "message": "Database connection failed"},
        )
    return {
        "status": "database healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Database connection successful",
    }
