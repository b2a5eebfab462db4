"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from portfolio_server.routes.admin import router as admin_router
from portfolio_server.routes.portfolios import router as portfolios_router
from portfolio_server.routes.submissions import router as submissions_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(portfolios_router, prefix=API_PREFIX)
    app.include_router(submissions_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
