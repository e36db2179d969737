"""SQLAlchemy model for the records table.

All records of all collections live in one table; the user-defined fields
are keys of the JSON ``data`` column.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from folio.infrastructure.persistence.database import Base, json_type, utcnow


class RecordModel(Base):
    """SQLAlchemy model for the records table.

    Attributes:
        id: Primary key (UUID string).
        workspace_id: Owning workspace, denormalized for isolation filters.
        collection_id: Owning collection.
        data: Field slug -> value mapping.
    """

    __tablename__ = "records"
    __table_args__ = (Index("ix_records_workspace_collection", "workspace_id", "collection_id"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Record ID (UUID)",
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    collection_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        json_type(),
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    def __repr__(self) -> str:
        return f"<Record(id={self.id}, collection_id={self.collection_id})>"
