"""Integration tests for the composition management endpoints."""

from typing import Any

import pytest

TOTALS = {
    "from": "expenses",
    "groupBy": ["category"],
    "aggregations": [{"field": "amount", "function": "sum", "alias": "total"}],
    "sort": [{"field": "category"}],
}


def base_url(ledger: dict[str, Any]) -> str:
    return f"/api/v1/workspaces/{ledger['workspace'].id}/compositions"


async def create(client, ledger, auth_headers, **overrides):
    payload = {"slug": "totals", "name": "Totals", "config": TOTALS, "accessLevel": "public"}
    payload.update(overrides)
    return await client.post(base_url(ledger), json=payload, headers=auth_headers)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create(self, client, ledger, auth_headers):
        response = await create(client, ledger, auth_headers, description="Spend by category")

        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "totals"
        assert body["workspaceId"] == ledger["workspace"].id
        assert body["accessLevel"] == "public"
        assert body["isActive"] is True
        assert body["description"] == "Spend by category"
        assert body["config"] == TOTALS

    @pytest.mark.asyncio
    async def test_created_composition_is_executable(self, client, ledger, auth_headers):
        await create(client, ledger, auth_headers)

        response = await client.get("/api/v1/c/acme/totals")

        assert response.status_code == 200
        assert response.json()["metadata"]["count"] == 2

    @pytest.mark.asyncio
    async def test_default_access_level_is_private(self, client, ledger, auth_headers):
        response = await client.post(
            base_url(ledger),
            json={"slug": "totals", "name": "Totals", "config": TOTALS},
            headers=auth_headers,
        )
        assert response.json()["accessLevel"] == "private"

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, client, ledger, auth_headers):
        await create(client, ledger, auth_headers)

        response = await create(client, ledger, auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_config_errors_are_all_reported(self, client, ledger, auth_headers):
        response = await create(
            client,
            ledger,
            auth_headers,
            config={
                "from": "expenses",
                "filters": [{"field": "amount", "operator": "like", "value": 1}],
                "sort": [{"field": "amount", "direction": "sideways"}],
            },
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "COMPILE_ERROR"
        assert [(d["field"], d["code"]) for d in error["details"]] == [
            ("filters[0].operator", "invalid_operator"),
            ("sort[0].direction", "invalid_direction"),
        ]

    @pytest.mark.asyncio
    async def test_malformed_config_shape(self, client, ledger, auth_headers):
        response = await create(client, ledger, auth_headers, config={"select": ["title"]})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "from"

    @pytest.mark.asyncio
    async def test_invalid_slug(self, client, ledger, auth_headers):
        response = await create(client, ledger, auth_headers, slug="Not A Slug")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestAccess:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, ledger):
        response = await client.get(base_url(ledger))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_membership(self, client, ledger, token_for):
        token = token_for(ledger["other_workspace"].id)

        response = await client.get(base_url(ledger), headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_preview_requires_membership(self, client, ledger, token_for):
        token = token_for(ledger["other_workspace"].id)

        response = await client.post(
            f"{base_url(ledger)}/preview",
            json={"config": TOTALS},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 403


class TestReadUpdateDelete:
    @pytest.mark.asyncio
    async def test_list_and_get(self, client, ledger, auth_headers):
        created = (await create(client, ledger, auth_headers)).json()
        await create(client, ledger, auth_headers, slug="all", config={"from": "expenses"})

        listing = await client.get(base_url(ledger), headers=auth_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 2
        assert [item["slug"] for item in listing.json()["items"]] == ["all", "totals"]

        by_id = await client.get(f"{base_url(ledger)}/{created['id']}", headers=auth_headers)
        assert by_id.json()["slug"] == "totals"

        by_slug = await client.get(f"{base_url(ledger)}/slug/totals", headers=auth_headers)
        assert by_slug.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_get_missing(self, client, ledger, auth_headers):
        response = await client.get(f"{base_url(ledger)}/missing", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update(self, client, ledger, auth_headers):
        created = (await create(client, ledger, auth_headers)).json()

        response = await client.patch(
            f"{base_url(ledger)}/{created['id']}",
            json={"name": "Spending", "accessLevel": "private", "isActive": False},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Spending"
        assert body["accessLevel"] == "private"
        assert body["isActive"] is False
        assert body["config"] == TOTALS

        assert (await client.get("/api/v1/c/acme/totals")).status_code == 404

    @pytest.mark.asyncio
    async def test_update_with_invalid_config(self, client, ledger, auth_headers):
        created = (await create(client, ledger, auth_headers)).json()

        response = await client.patch(
            f"{base_url(ledger)}/{created['id']}",
            json={"config": {"from": "ghost"}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "from"

    @pytest.mark.asyncio
    async def test_delete(self, client, ledger, auth_headers):
        created = (await create(client, ledger, auth_headers)).json()

        response = await client.delete(f"{base_url(ledger)}/{created['id']}", headers=auth_headers)

        assert response.status_code == 204
        missing = await client.get(f"{base_url(ledger)}/{created['id']}", headers=auth_headers)
        assert missing.status_code == 404


class TestPreview:
    @pytest.mark.asyncio
    async def test_success(self, client, ledger, auth_headers):
        response = await client.post(
            f"{base_url(ledger)}/preview", json={"config": TOTALS}, headers=auth_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == [
            {"category": "Food", "total": 250},
            {"category": "Transport", "total": 140},
        ]
        assert body["metadata"]["count"] == 2
        assert body["metadata"]["compositionId"] is None
        assert "error" not in body

    @pytest.mark.asyncio
    async def test_params(self, client, ledger, auth_headers):
        response = await client.post(
            f"{base_url(ledger)}/preview",
            json={
                "config": {
                    "from": "expenses",
                    "filters": [{"field": "amount", "operator": "lt", "param": "max"}],
                    "select": ["title"],
                },
                "params": {"max": 70},
            },
            headers=auth_headers,
        )
        assert response.json()["data"] == [{"title": "Taxi"}]

    @pytest.mark.asyncio
    async def test_compile_failure_is_reported_with_200(self, client, ledger, auth_headers):
        response = await client.post(
            f"{base_url(ledger)}/preview",
            json={"config": {"from": "expenses", "groupBy": ["nope"]}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"]["field"] == "groupBy[0]"
        assert body["error"]["details"][0]["code"] == "unknown_field"
        assert "data" not in body

    @pytest.mark.asyncio
    async def test_non_object_config(self, client, ledger, auth_headers):
        response = await client.post(
            f"{base_url(ledger)}/preview", json={"config": ["expenses"]}, headers=auth_headers
        )

        body = response.json()
        assert body["success"] is False
        assert body["error"]["field"] == "config"

    @pytest.mark.asyncio
    async def test_missing_param_is_reported(self, client, ledger, auth_headers):
        response = await client.post(
            f"{base_url(ledger)}/preview",
            json={
                "config": {
                    "from": "expenses",
                    "filters": [{"field": "amount", "operator": "lt", "param": "max"}],
                }
            },
            headers=auth_headers,
        )

        body = response.json()
        assert body["success"] is False
        assert "max" in body["error"]["message"]
        assert body["error"]["details"] == {"missing": ["max"]}
