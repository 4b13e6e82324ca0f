import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bujo.core.config import settings
from bujo.core.errors import (
    BujoException,
    bujo_exception_handler,
    store_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from bujo.core.logging import configure_logging
from bujo.db.base import get_db, init_db
from bujo.routers import entries as entries_router
from bujo.routers import journal as journal_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("bujo API started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="bujo API",
    description=(
        "**Bullet journal backend**\n\n"
        "Logs entries, serves each day as an editable text document and applies "
        "edits as a changeset in one transaction.\n\n"
        "All error responses follow the `{success: false, error, code, details?}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# --- CORS ---
# Only configured origins are reflected; every preflight answers 204.
@app.middleware("http")
async def cors(request: Request, call_next):
    origin = request.headers.get("origin")
    if request.method == "OPTIONS":
        response = Response(status_code=204)
    else:
        response = await call_next(request)
    if origin and origin in settings.cors_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Vary"] = "Origin"
    return response


# --- Exception handlers (most specific first) ---
app.add_exception_handler(BujoException, bujo_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, store_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(entries_router.router)
app.include_router(journal_router.router)


@app.get("/api/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok"}` when the journal store answers a trivial
    query, HTTP 503 otherwise.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"status": "error"})
    return {"status": "ok"}


@app.get("/install", tags=["install"], summary="Add-on install page", include_in_schema=False)
def install():
    return FileResponse(STATIC_DIR / "install.html", media_type="text/html")
