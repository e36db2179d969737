"""Integration tests for the record write endpoints."""

from typing import Any

import pytest


def records_url(ledger: dict[str, Any], collection: str = "expenses") -> str:
    return f"/api/v1/workspaces/{ledger['workspace'].id}/collections/{collection}/records"


class TestCreateRecord:
    """Test POST /collections/{slug}/records."""

    @pytest.mark.asyncio
    async def test_create(self, client, ledger, auth_headers):
        response = await client.post(
            records_url(ledger),
            json={"title": "Lunch", "amount": 12.5, "tags": ["work"], "paid": False},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"]
        assert body["collectionId"] == ledger["expenses"].id
        assert body["createdBy"] == "user-1"
        assert body["data"]["title"] == "Lunch"
        assert body["data"]["amount"] == 12.5
        assert body["data"]["tags"] == ["work"]
        assert body["data"]["paid"] is False
        assert "createdAt" in body and "updatedAt" in body

    @pytest.mark.asyncio
    async def test_created_record_is_queryable(self, client, ledger, auth_headers, seed):
        await seed.composition(
            ledger["workspace"],
            "lunches",
            {
                "from": "expenses",
                "filters": [{"field": "title", "operator": "eq", "value": "Lunch"}],
                "select": ["title", "amount"],
            },
        )
        await client.post(
            records_url(ledger), json={"title": "Lunch", "amount": 12}, headers=auth_headers
        )

        response = await client.get("/api/v1/c/acme/lunches")

        assert response.json()["data"] == [{"title": "Lunch", "amount": 12}]

    @pytest.mark.asyncio
    async def test_validation_errors_are_all_reported(self, client, ledger, auth_headers):
        response = await client.post(
            records_url(ledger),
            json={"amount": "lots", "color": "red"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        codes = {detail["field"]: detail["code"] for detail in error["details"]}
        assert codes == {
            "color": "unknown_field",
            "title": "required_missing",
            "amount": "invalid_type",
        }

    @pytest.mark.asyncio
    async def test_invalid_choice(self, client, ledger, auth_headers):
        response = await client.post(
            records_url(ledger),
            json={"title": "Lunch", "tags": ["travel"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["code"] == "invalid_choice"

    @pytest.mark.asyncio
    async def test_unknown_collection(self, client, ledger, auth_headers):
        response = await client.post(
            records_url(ledger, "ghost"), json={"title": "Lunch"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, ledger):
        response = await client.post(records_url(ledger), json={"title": "Lunch"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_membership(self, client, ledger, token_for):
        token = token_for(ledger["other_workspace"].id)

        response = await client.post(
            records_url(ledger),
            json={"title": "Lunch"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 403


class TestUpdateRecord:
    """Test PATCH /collections/{slug}/records/{record_id}."""

    @pytest.fixture
    def created(self):
        async def create(client, ledger, auth_headers) -> dict[str, Any]:
            response = await client.post(
                records_url(ledger),
                json={"title": "Lunch", "amount": 12, "tags": ["home"]},
                headers=auth_headers,
            )
            return response.json()

        return create

    @pytest.mark.asyncio
    async def test_merge_and_clear(self, client, ledger, auth_headers, created):
        record = await created(client, ledger, auth_headers)

        response = await client.patch(
            f"{records_url(ledger)}/{record['id']}",
            json={"amount": 20, "tags": None},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"title": "Lunch", "amount": 20}
        assert body["updatedBy"] == "user-1"

    @pytest.mark.asyncio
    async def test_required_field_cannot_be_cleared(self, client, ledger, auth_headers, created):
        record = await created(client, ledger, auth_headers)

        response = await client.patch(
            f"{records_url(ledger)}/{record['id']}",
            json={"title": None},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == [
            {"field": "title", "message": "Required field 'title' cannot be null", "code": "required_null"}
        ]

    @pytest.mark.asyncio
    async def test_unknown_record(self, client, ledger, auth_headers):
        response = await client.patch(
            f"{records_url(ledger)}/missing", json={"amount": 1}, headers=auth_headers
        )

        assert response.status_code == 404
