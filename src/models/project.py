"""LC Credit Ledger - Project and event references.

Projects and events are managed by other platform services. The ledger only
reads their ``creator_id`` to decide who may verify contribution claims
that point at them.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel


class Project(SQLModel, table=True):
    """Collaborative project owned by its creator."""

    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    creator_id: int = Field(foreign_key="users.id", index=True)
    title: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Event(SQLModel, table=True):
    """Community event hosted by its creator."""

    __tablename__ = "events"

    id: int | None = Field(default=None, primary_key=True)
    creator_id: int = Field(foreign_key="users.id", index=True)
    title: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)
