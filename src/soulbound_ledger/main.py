"""Main FastAPI application for the soulbound ledger."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import ledger
from .api.middleware import (
    ProblemDetailsMiddleware,
    RequestSizeLimitMiddleware,
    event_store_error_handler,
    http_exception_handler,
    ledger_error_handler,
    validation_exception_handler,
)
from .config import get_config
from .domain.errors import LedgerError
from .store.event_store import EventStoreError
from .utils.logging_config import get_logger

logger = get_logger('main')

config = get_config()

# Create FastAPI app
app = FastAPI(
    title=config.app.app_name,
    description=config.app.description,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware added later wraps middleware added earlier
app.add_middleware(
    RequestSizeLimitMiddleware,
    single_request_limit=config.app.max_request_bytes,
    batch_request_limit=config.app.max_batch_request_bytes,
)
app.add_middleware(ProblemDetailsMiddleware)

app.add_exception_handler(LedgerError, ledger_error_handler)
app.add_exception_handler(EventStoreError, event_store_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Register API routers
app.include_router(ledger.router)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to the API docs."""
    return RedirectResponse(url="/docs")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "soulbound-ledger", "version": __version__}
