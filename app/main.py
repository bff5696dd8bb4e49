from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from app.core.config import settings
from app.core.deps import get_budget_config
from app.core.errors import ClockResolutionError, StorageError, ValidationFailure
from app.routers import expenses, health, summaries, telegram

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: load the budget config once so bad config fails fast
    config = get_budget_config()
    logger.info(f"Loaded {len(config.categories)} categories, timezone {settings.TIMEZONE}")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan
)


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(ClockResolutionError)
async def clock_error_handler(request: Request, exc: ClockResolutionError):
    logger.error(f"Clock resolution failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Could not determine the current date"},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage failure for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable"},
    )


# Root endpoint
@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


# Register routers
app.include_router(health.root_router, tags=["Health"])  # /healthz
app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
app.include_router(telegram.router, tags=["Telegram"])
app.include_router(summaries.router, prefix=f"{settings.API_PREFIX}/summary", tags=["Summary"])
app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}", tags=["Expenses"])
