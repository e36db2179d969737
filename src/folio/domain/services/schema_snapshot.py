"""Immutable schema view used by the query compiler.

A snapshot is an arena of ``Field`` records indexed by
``(collection_id, slug)``, plus the collections of one workspace indexed by
slug. It is built per request by the schema registry and never mutated, so
the compiler stays a pure function of its inputs.
"""

from collections.abc import Iterable

from folio.domain.entities.collection import Collection, Field


class SchemaSnapshot:
    """Read-only schema of (part of) one workspace.

    Collections belonging to another workspace are dropped on construction,
    so nothing outside ``workspace_id`` can ever be resolved.
    """

    def __init__(
        self,
        workspace_id: str,
        collections: Iterable[Collection],
        fields: Iterable[Field] = (),
    ) -> None:
        self.workspace_id = workspace_id
        self._collections: dict[str, Collection] = {
            collection.slug: collection
            for collection in collections
            if collection.workspace_id == workspace_id
        }
        known_ids = {collection.id for collection in self._collections.values()}
        self._fields: dict[tuple[str, str], Field] = {
            (f.collection_id, f.slug): f for f in fields if f.collection_id in known_ids
        }

    def collection(self, slug: str) -> Collection | None:
        """Get a collection of this workspace by slug."""
        return self._collections.get(slug)

    def field(self, collection_id: str, slug: str) -> Field | None:
        """Get a field by collection ID and slug."""
        return self._fields.get((collection_id, slug))

    def fields_for(self, collection_id: str) -> tuple[Field, ...]:
        """All fields of a collection, in display order."""
        fields = [f for (cid, _), f in self._fields.items() if cid == collection_id]
        return tuple(sorted(fields, key=lambda f: (f.sort_order, f.slug)))

    @property
    def collections(self) -> tuple[Collection, ...]:
        return tuple(self._collections.values())
