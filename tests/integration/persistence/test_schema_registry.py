"""Integration tests for SchemaRegistry."""

import uuid

import pytest

from folio.infrastructure.persistence.models import FieldModel
from folio.infrastructure.persistence.repositories import CollectionRepository, FieldRepository
from folio.infrastructure.persistence.schema_registry import SchemaRegistry


@pytest.mark.asyncio
async def test_snapshot_contains_requested_collections(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)

    snapshot = await registry.snapshot(ledger["workspace"].id, ["expenses", "accounts", "ghost"])

    assert {c.slug for c in snapshot.collections} == {"expenses", "accounts"}
    expenses = snapshot.collection("expenses")
    assert [f.slug for f in snapshot.fields_for(expenses.id)][:3] == ["title", "category", "amount"]
    assert snapshot.collection("ghost") is None


@pytest.mark.asyncio
async def test_snapshot_is_scoped_to_workspace(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)

    snapshot = await registry.snapshot(ledger["other_workspace"].id, ["expenses", "accounts"])

    assert [c.id for c in snapshot.collections] == [ledger["other_expenses"].id]


@pytest.mark.asyncio
async def test_inactive_collections_are_left_out(db_session, ledger, seed, schema_cache):
    await seed.collection(ledger["workspace"], "archive", [], is_active=False)

    snapshot = await SchemaRegistry(db_session, schema_cache).snapshot(
        ledger["workspace"].id, ["archive"]
    )

    assert snapshot.collection("archive") is None


@pytest.mark.asyncio
async def test_fields_are_cached(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)
    workspace_id = ledger["workspace"].id
    expenses_id = ledger["expenses"].id

    await registry.snapshot(workspace_id, ["expenses"])

    cached = schema_cache.get(workspace_id, expenses_id)
    assert cached is not None
    assert len(cached) == 7
    assert await registry.fields_for(workspace_id, expenses_id) == cached


@pytest.mark.asyncio
async def test_field_changes_invalidate_cache(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)
    workspace_id = ledger["workspace"].id
    expenses = ledger["expenses"]
    version = expenses.version

    await registry.fields_for(workspace_id, expenses.id)
    await FieldRepository(db_session, schema_cache).create(
        FieldModel(
            id=str(uuid.uuid4()),
            collection_id=expenses.id,
            slug="note",
            name="Note",
            field_type="textarea",
            options={},
            sort_order=99,
        )
    )

    assert schema_cache.get(workspace_id, expenses.id) is None
    fields = await registry.fields_for(workspace_id, expenses.id)
    assert fields[-1].slug == "note"
    assert expenses.version == version + 1


@pytest.mark.asyncio
async def test_collection_update_invalidates_cache(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)
    workspace_id = ledger["workspace"].id
    accounts = ledger["accounts"]

    await registry.fields_for(workspace_id, accounts.id)
    accounts.name = "Ledger accounts"
    await CollectionRepository(db_session, schema_cache).update(accounts)

    assert schema_cache.get(workspace_id, accounts.id) is None


@pytest.mark.asyncio
async def test_fields_for_foreign_collection_is_empty(db_session, ledger, schema_cache):
    registry = SchemaRegistry(db_session, schema_cache)

    fields = await registry.fields_for(ledger["workspace"].id, ledger["other_expenses"].id)

    assert fields == ()
    assert schema_cache.size() == 0


@pytest.mark.asyncio
async def test_registry_without_cache(db_session, ledger):
    snapshot = await SchemaRegistry(db_session).snapshot(ledger["workspace"].id, ["accounts"])
    assert [f.slug for f in snapshot.fields_for(ledger["accounts"].id)] == ["name", "type"]
