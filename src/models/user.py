"""LC Credit Ledger - User model."""

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    """User roles for access control."""

    ADMIN = "admin"
    MEMBER = "member"


class User(SQLModel, table=True):
    """User model - synced from Clerk.

    Identity is owned by Clerk; this table only mirrors what the ledger
    needs to resolve transfer recipients, render names and check roles.

    Attributes:
        id: Auto-increment primary key
        clerk_id: Unique Clerk user ID (indexed)
        email: User email address (indexed)
        display_name: Public profile name shown in transfers/notifications
        role: User role for RBAC
        is_active: Account status
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    clerk_id: str = Field(max_length=255, unique=True, index=True)
    email: str = Field(max_length=255, index=True)
    display_name: str | None = Field(default=None, max_length=255)
    role: UserRole = Field(default=UserRole.MEMBER)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        """Whether the user holds the global admin role."""
        return self.role == UserRole.ADMIN
