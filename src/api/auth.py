"""LC Credit Ledger - Clerk authentication."""

import logging
from typing import Annotated

from clerk_backend_api import AuthenticateRequestOptions, Clerk, authenticate_request
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.config import get_settings
from src.core.exceptions import AuthenticationError, AuthorizationError
from src.db import get_db
from src.models.user import User

logger = logging.getLogger(__name__)


class ClerkAuth:
    """Clerk authentication handler.

    Verifies session tokens from Clerk and mirrors users into the local
    ``users`` table so they can send and receive credits.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self._client = Clerk(bearer_auth=settings.clerk_secret_key)

    async def verify_token(self, request: Request) -> dict:
        """Verify the Clerk bearer token on a request.

        Returns:
            Decoded JWT claims

        Raises:
            AuthenticationError: Token missing, invalid or expired
        """
        try:
            request_state = authenticate_request(
                request,
                AuthenticateRequestOptions(secret_key=get_settings().clerk_secret_key),
            )
        except Exception as e:
            raise AuthenticationError(f"Authentication failed: {e!s}") from e

        if not request_state.is_signed_in:
            raise AuthenticationError("Invalid or expired token")
        return request_state.payload or {}

    def get_user_info(self, clerk_id: str) -> dict[str, str]:
        """Fetch email and display name from the Clerk API.

        Returns empty strings when Clerk cannot be reached; the local copy
        is then left as is.
        """
        try:
            user = self._client.users.get(user_id=clerk_id)
        except Exception as e:
            logger.warning(f"Clerk user lookup failed for {clerk_id}: {e}")
            return {"email": "", "display_name": ""}

        email = ""
        if user.email_addresses:
            primary = next(
                (e for e in user.email_addresses if e.id == user.primary_email_address_id),
                user.email_addresses[0],
            )
            email = primary.email_address

        name = " ".join(p for p in (user.first_name, user.last_name) if p)
        return {"email": email, "display_name": name or user.username or ""}


# Singleton instance
_clerk_auth: ClerkAuth | None = None


def get_clerk_auth() -> ClerkAuth:
    """Get Clerk auth singleton."""
    global _clerk_auth
    if _clerk_auth is None:
        _clerk_auth = ClerkAuth()
    return _clerk_auth


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    clerk: Annotated[ClerkAuth, Depends(get_clerk_auth)],
) -> User:
    """FastAPI dependency resolving the authenticated caller.

    First sign-in provisions the local user row from the Clerk profile.

    Raises:
        AuthenticationError: No valid identity
        AuthorizationError: Account disabled
    """
    claims = await clerk.verify_token(request)

    clerk_id = claims.get("sub")
    if not clerk_id:
        raise AuthenticationError("Invalid token: missing user ID")

    result = await db.execute(select(User).where(User.clerk_id == clerk_id))
    user = result.scalar_one_or_none()

    if not user:
        info = clerk.get_user_info(clerk_id)
        user = User(
            clerk_id=clerk_id,
            email=info["email"],
            display_name=info["display_name"] or None,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Provisioned local user {user.id} for {clerk_id}")

    if not user.is_active:
        raise AuthorizationError("User account is disabled")

    return user


# FastAPI Router
router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me")
async def get_me(user: Annotated[User, Depends(get_current_user)]):
    """Get current user profile with role information."""
    return {
        "id": user.id,
        "clerk_id": user.clerk_id,
        "email": user.email,
        "display_name": user.display_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat(),
    }
