"""SQLAlchemy model for the workspaces table.

Workspaces are the tenant boundary of the system.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from folio.infrastructure.persistence.database import Base, json_type, utcnow


class WorkspaceModel(Base):
    """SQLAlchemy model for the workspaces table.

    Attributes:
        id: Primary key (UUID string).
        slug: URL-friendly identifier, unique across all workspaces.
        name: Display name for the workspace.
        settings: Free-form workspace settings.
        is_active: Soft-deactivation flag.
    """

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Workspace ID (UUID)",
    )
    slug: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-friendly identifier",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    settings: Mapped[dict[str, Any]] = mapped_column(
        json_type(),
        nullable=False,
        default=dict,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
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

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, slug={self.slug})>"
