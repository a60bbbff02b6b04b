"""Outbox rows for best-effort outbound sync."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

SYNC_PENDING = "pending"
SYNC_DELIVERED = "delivered"
SYNC_FAILED = "failed"


class SyncEvent(SQLModel, table=True):
    """A serialized transaction waiting to be pushed to the sync target."""

    __tablename__: ClassVar[str] = "sync_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    # No FK: the transaction may be deleted before delivery.
    transaction_id: int = Field(nullable=False, index=True)
    payload: str = Field(nullable=False)
    status: str = Field(default=SYNC_PENDING, nullable=False, max_length=16, index=True)
    attempts: int = Field(default=0, nullable=False)
    last_error: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    delivered_at: Optional[datetime] = Field(default=None)
