"""SQLAlchemy models for the collections and fields tables.

Collections are user-defined record containers of a workspace; their schema
is the list of rows in the fields table.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from folio.infrastructure.persistence.database import Base, json_type, utcnow


class CollectionModel(Base):
    """SQLAlchemy model for the collections table.

    Attributes:
        id: Primary key (UUID string).
        workspace_id: Owning workspace.
        slug: Identifier unique within the workspace.
        version: Incremented on every mutating update.
    """

    __tablename__ = "collections"
    __table_args__ = (UniqueConstraint("workspace_id", "slug", name="uq_collections_workspace_slug"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Collection ID (UUID)",
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
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Optimistic-concurrency hint, bumped on every update",
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

    fields: Mapped[list["FieldModel"]] = relationship(
        "FieldModel",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="FieldModel.sort_order",
    )

    def __repr__(self) -> str:
        return f"<Collection(id={self.id}, slug={self.slug})>"


class FieldModel(Base):
    """SQLAlchemy model for the fields table.

    Attributes:
        id: Primary key (UUID string).
        collection_id: Owning collection.
        slug: Identifier unique within the collection.
        field_type: One of the supported field types.
        default_value: Value applied on create; SQL NULL when unset.
        options: Type-specific options.
    """

    __tablename__ = "fields"
    __table_args__ = (UniqueConstraint("collection_id", "slug", name="uq_fields_collection_slug"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Field ID (UUID)",
    )
    collection_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("collections.id", ondelete="CASCADE"),
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
    field_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    is_required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    is_unique: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    default_value: Mapped[Any] = mapped_column(
        json_type(none_as_null=True),
        nullable=True,
    )
    options: Mapped[dict[str, Any]] = mapped_column(
        json_type(),
        nullable=False,
        default=dict,
    )
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    collection: Mapped[CollectionModel] = relationship("CollectionModel", back_populates="fields")

    def __repr__(self) -> str:
        return f"<Field(id={self.id}, slug={self.slug}, type={self.field_type})>"
