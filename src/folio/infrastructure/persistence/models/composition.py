"""SQLAlchemy model for the compositions table."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from folio.infrastructure.persistence.database import Base, json_type, utcnow


class CompositionModel(Base):
    """SQLAlchemy model for the compositions table.

    Attributes:
        id: Primary key (UUID string).
        workspace_id: Owning workspace.
        slug: Identifier unique within the workspace, used in the public path.
        config: Composition config in its persisted JSON form.
        access_level: public, internal or private.
        is_active: Inactive compositions are hidden from the public path.
    """

    __tablename__ = "compositions"
    __table_args__ = (
        UniqueConstraint("workspace_id", "slug", name="uq_compositions_workspace_slug"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Composition ID (UUID)",
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        json_type(),
        nullable=False,
    )
    access_level: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="private",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
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

    def __repr__(self) -> str:
        return f"<Composition(id={self.id}, slug={self.slug})>"
