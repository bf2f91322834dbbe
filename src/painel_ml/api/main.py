"""
FastAPI application entry point for the Painel ML dashboard backend.
"""

# Load environment variables FIRST before any other imports
from pathlib import Path
from dotenv import load_dotenv

project_root = Path(__file__).parent.parent.parent.parent  # src/painel_ml/api/main.py -> root
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from painel_ml import __version__
from painel_ml.api.middleware import CorrelationIdMiddleware, ErrorHandlerMiddleware
from painel_ml.api.routes import (
    accounts,
    billing,
    health,
    items,
    items_management,
    ledger,
    messages,
    oauth,
    orders,
    questions,
    settings,
    shipments,
    sync,
    webhooks,
)
from painel_ml.monitoring import MetricsMiddleware, get_metrics, metrics_endpoint, setup_sentry
from painel_ml.utils.config import get_config
from painel_ml.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting Painel ML API...")

    if setup_sentry():
        logger.info("Sentry initialized")

    get_metrics()
    logger.info("Prometheus metrics initialized")

    yield

    logger.info("Shutting down Painel ML API...")


app = FastAPI(
    title="Painel ML API",
    description="Seller operations dashboard backend for MercadoLibre accounts",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_config().frontend_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Custom middlewares (the last one added runs first)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(oauth.router, prefix="/meli/oauth", tags=["OAuth"])
app.include_router(webhooks.router, prefix="/meli/webhooks", tags=["Webhooks"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(sync.router, prefix="/sync", tags=["Sync"])
app.include_router(settings.router, prefix="/settings", tags=["Settings"])
app.include_router(items.router, prefix="/items", tags=["Items"])
app.include_router(items_management.router, prefix="/items-management", tags=["Listing management"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(shipments.router, prefix="/shipments", tags=["Shipments"])
app.include_router(shipments.pending_router, prefix="/pending-shipments", tags=["Shipments"])
app.include_router(shipments.test_sla_router, prefix="/test-sla", tags=["Shipments"])
app.include_router(questions.router, prefix="/questions", tags=["Questions"])
app.include_router(messages.router, prefix="/messages", tags=["Messages"])
app.include_router(billing.router, prefix="/billing", tags=["Billing"])
app.include_router(ledger.expenses_router, prefix="/expenses", tags=["Expenses"])
app.include_router(ledger.taxes_router, prefix="/taxes", tags=["Taxes"])
app.include_router(ledger.extra_revenues_router, prefix="/extra-revenues", tags=["Extra revenues"])

app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Monitoring"], include_in_schema=False)


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "Painel ML API",
        "version": __version__,
        "status": "operational",
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": str(exc) if get_config().debug_mode else "An unexpected error occurred",
        },
    )


def run():
    """Serve the API with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "painel_ml.api.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.debug_mode,
    )


if __name__ == "__main__":
    run()
