import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SoftDeleteMixin:
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BaseModel(Base, TimestampMixin, SoftDeleteMixin):
    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )


class StatusHistoryMixin:
    """Append-only record of status changes, kept on the row for audit."""

    status_history: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)

    def record_status_change(self, previous: str, new: str, action: str, actor_role: str, at: datetime) -> None:
        history = list(self.status_history or [])
        history.append({
            "from": previous,
            "to": new,
            "action": action,
            "actor_role": actor_role,
            "at": at.isoformat(),
        })
        # Reassign so the JSON column is flagged dirty
        self.status_history = history
