"""API module - route handlers and common dependencies."""

from fastapi import FastAPI

from src.api.deps import AdminUser, CurrentUser, DbSession, Pagination

__all__ = [
    "AdminUser",
    "CurrentUser",
    "DbSession",
    "Pagination",
    "register_routers",
]


def register_routers(app: FastAPI) -> None:
    """Register all API routers to the application.

    Args:
        app: FastAPI application instance
    """
    # Auth
    from src.api.auth import router as auth_router

    app.include_router(auth_router, prefix="/api")

    # Credits: balances, transfers, ledger, spending
    from src.api.credits import router as credits_router

    app.include_router(credits_router, prefix="/api")

    # Contribution claims & verification
    from src.api.contributions import router as contributions_router

    app.include_router(contributions_router, prefix="/api")

    # Notification inbox
    from src.api.notifications import router as notifications_router

    app.include_router(notifications_router, prefix="/api")

    # Admin
    from src.api.admin import router as admin_router

    app.include_router(admin_router, prefix="/api")
