"""Pytest configuration for all tests."""

import os

# Settings are read when the app module is imported
os.environ.setdefault("FOLIO_ENVIRONMENT", "testing")
os.environ.setdefault("FOLIO_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("FOLIO_LOG_LEVEL", "WARNING")

import uuid
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.auth.jwt_service import jwt_service
from folio.infrastructure.persistence.database import Base, register_sqlite_functions
from folio.infrastructure.persistence.models import (
    CollectionModel,
    CompositionModel,
    FieldModel,
    RecordModel,
    WorkspaceModel,
)
from folio.infrastructure.persistence.repositories import (
    CollectionRepository,
    FieldRepository,
    RecordRepository,
    WorkspaceRepository,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    register_sqlite_functions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def schema_cache() -> SchemaCache:
    return SchemaCache(ttl_seconds=60)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from folio.infrastructure.api.app import app
    from folio.infrastructure.persistence.database import get_db_session

    app.dependency_overrides[get_db_session] = lambda: db_session
    app.state.schema_cache = SchemaCache(ttl_seconds=60)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


class Seeder:
    """Builds workspaces, collections, fields and records for a test."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def workspace(self, slug: str, is_active: bool = True) -> WorkspaceModel:
        workspace = WorkspaceModel(
            id=str(uuid.uuid4()), slug=slug, name=slug.title(), is_active=is_active
        )
        return await WorkspaceRepository(self.session).create(workspace)

    async def collection(
        self,
        workspace: WorkspaceModel,
        slug: str,
        fields: list[dict[str, Any]],
        is_active: bool = True,
    ) -> CollectionModel:
        """Create a collection; each field is ``{slug, type, required?, options?, default?}``."""
        collection = CollectionModel(
            id=str(uuid.uuid4()),
            workspace_id=workspace.id,
            slug=slug,
            name=slug.title(),
            is_active=is_active,
        )
        await CollectionRepository(self.session).create(collection)

        field_repo = FieldRepository(self.session)
        for index, field_def in enumerate(fields):
            await field_repo.create(
                FieldModel(
                    id=str(uuid.uuid4()),
                    collection_id=collection.id,
                    slug=field_def["slug"],
                    name=field_def["slug"].title(),
                    field_type=field_def["type"],
                    is_required=field_def.get("required", False),
                    is_unique=False,
                    default_value=field_def.get("default"),
                    options=field_def.get("options", {}),
                    sort_order=index,
                )
            )
        return collection

    async def records(
        self, collection: CollectionModel, rows: list[dict[str, Any]]
    ) -> list[RecordModel]:
        """Insert rows as given; an ``_id`` key sets the record ID."""
        repo = RecordRepository(self.session)
        created = []
        for row in rows:
            data = dict(row)
            record_id = data.pop("_id", None)
            created.append(
                await repo.insert_record(
                    workspace_id=collection.workspace_id,
                    collection_id=collection.id,
                    data=data,
                    record_id=record_id,
                )
            )
        return created

    async def composition(
        self,
        workspace: WorkspaceModel,
        slug: str,
        config: dict[str, Any],
        access_level: str = "public",
        is_active: bool = True,
    ) -> CompositionModel:
        composition = CompositionModel(
            id=str(uuid.uuid4()),
            workspace_id=workspace.id,
            slug=slug,
            name=slug.title(),
            config=config,
            access_level=access_level,
            is_active=is_active,
        )
        self.session.add(composition)
        await self.session.flush()
        return composition


@pytest.fixture
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)


EXPENSE_FIELDS = [
    {"slug": "title", "type": "text", "required": True},
    {"slug": "category", "type": "text"},
    {"slug": "amount", "type": "number"},
    {"slug": "spent_on", "type": "date"},
    {"slug": "paid", "type": "boolean"},
    {"slug": "account", "type": "relation"},
    {"slug": "tags", "type": "multi_select", "options": {"choices": ["home", "work"]}},
]

ACCOUNT_FIELDS = [
    {"slug": "name", "type": "text", "required": True},
    {"slug": "type", "type": "select", "options": {"choices": ["asset", "liability"]}},
]


@pytest_asyncio.fixture
async def ledger(seed: Seeder, db_session: AsyncSession) -> dict[str, Any]:
    """Workspace ``acme`` with expenses joined to accounts, plus a foreign workspace."""
    acme = await seed.workspace("acme")
    accounts = await seed.collection(acme, "accounts", ACCOUNT_FIELDS)
    expenses = await seed.collection(acme, "expenses", EXPENSE_FIELDS)

    await seed.records(
        accounts,
        [
            {"_id": "acc-cash", "name": "Cash", "type": "asset"},
            {"_id": "acc-card", "name": "Card", "type": "liability"},
        ],
    )
    await seed.records(
        expenses,
        [
            {
                "title": "Groceries",
                "category": "Food",
                "amount": 100,
                "spent_on": "2024-01-05",
                "paid": True,
                "account": "acc-cash",
                "tags": ["home"],
            },
            {
                "title": "Dinner",
                "category": "Food",
                "amount": 150,
                "spent_on": "2024-02-10",
                "paid": False,
                "account": "acc-card",
            },
            {
                "title": "Bus pass",
                "category": "Transport",
                "amount": 80,
                "spent_on": "2024-01-20",
                "paid": True,
                "account": "acc-cash",
                "tags": ["work"],
            },
            {
                "title": "Taxi",
                "category": "Transport",
                "amount": 60,
                "spent_on": "2024-02-02",
                "paid": True,
            },
        ],
    )

    other = await seed.workspace("other")
    other_expenses = await seed.collection(other, "expenses", EXPENSE_FIELDS)
    await seed.records(
        other_expenses,
        [{"title": "Secret", "category": "Food", "amount": 999, "paid": True}],
    )

    await db_session.commit()
    return {
        "workspace": acme,
        "accounts": accounts,
        "expenses": expenses,
        "other_workspace": other,
        "other_expenses": other_expenses,
    }


def make_token(workspace_id: str, user_id: str = "user-1", email: str = "user@example.com") -> str:
    return jwt_service.create_access_token(
        user_id=user_id, workspace_id=workspace_id, email=email
    )


@pytest.fixture
def token_for():
    """Issue access tokens for arbitrary workspaces."""
    return make_token


@pytest.fixture
def auth_headers(ledger: dict[str, Any]) -> dict[str, str]:
    """Bearer header for a member of the ``acme`` workspace."""
    return {"Authorization": f"Bearer {make_token(ledger['workspace'].id)}"}
