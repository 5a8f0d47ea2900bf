"""Common FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.auth import get_current_user
from src.core.exceptions import AuthorizationError
from src.db.engine import get_db
from src.models.user import User
from src.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginationParams


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the caller holds the admin role."""
    if not user.is_admin:
        raise AuthorizationError("Admin role required")
    return user


def get_pagination(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


# ============ Type Aliases for Common Dependencies ============

# Current user (authenticated)
CurrentUser = Annotated[User, Depends(get_current_user)]

# Global admin
AdminUser = Annotated[User, Depends(require_admin)]

DbSession = Annotated[AsyncSession, Depends(get_db)]

Pagination = Annotated[PaginationParams, Depends(get_pagination)]
