"""FastAPI application entrypoint.

Configures logging and CORS, includes routers, and exposes a healthcheck endpoint.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .deps import get_settings

logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from .database import init_db  # noqa: E402
from .routers import allocations as allocations_router  # noqa: E402
from .routers import budgets as budgets_router  # noqa: E402
from .routers import contracts as contracts_router  # noqa: E402
from .routers import employees as employees_router  # noqa: E402
from .routers import expenses as expenses_router  # noqa: E402
from .routers import imports as imports_router  # noqa: E402  Legacy document import
from .routers import presets as presets_router  # noqa: E402
from .routers import reference as reference_router  # noqa: E402  Sectors, branches, suppliers
from . import schemas  # noqa: E402

# Import models so Alembic can discover metadata
from . import models  # noqa: F401,E402


def create_app() -> FastAPI:
    app = FastAPI(
        title="Spendboard API",
        description="""
        Spendboard tracks marketing and operations spend for a multi-branch business.

        This API provides endpoints for:
        - Sectors, branches and suppliers (marketing channels)
        - Supplier contracts with time-bounded line items
        - Expenses, optionally split across branches or amortized over a period
        - Overdue vs future contract projections
        - Per-branch expense shares and dashboard rollups
        - Yearly budgets and shared filter presets
        - Employees with monthly costs per year, rolled up by branch, sector and department

        ## Allocation model

        - **Contracts** are paced linearly across each line item's period
        - **Expenses** are either recognised on their date or spread per day
          across an amortization period
        - Every view is recomputed from the full expense log on each request
        """,
        version="1.0.0",
    )

    settings = get_settings()
    allowed_origins = settings.cors_origins
    logger.info(f"[CORS] Allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include all API routers
    app.include_router(reference_router.router)
    app.include_router(contracts_router.router)
    app.include_router(expenses_router.router)
    app.include_router(allocations_router.router)
    app.include_router(budgets_router.router)
    app.include_router(employees_router.router)
    app.include_router(presets_router.router)
    app.include_router(imports_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="""
        Simple health check endpoint to verify the API is running.

        Can be used for load balancer health checks.
        """
    )
    def health():
        return schemas.HealthResponse(status="ok")

    @app.on_event("startup")
    def startup_event():
        """Create missing tables (local SQLite and first runs)."""
        init_db()
        logger.info(f"[STARTUP] Default cost domain: {settings.DEFAULT_COST_DOMAIN}")

    return app


app = create_app()
