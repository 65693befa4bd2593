"""Tests for the aiohttp API."""

from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils

from access_control.errors import DependencyError
from access_control.main import create_app

from helpers import catalog_item_acl, provider_acl

ADMIN = {"Echo-Token": "admin-token"}
USER1 = {"Authorization": "user1-token"}


@pytest.fixture
def seeded_settings(settings, seed_path):
    return settings.model_copy(update={"seed_path": seed_path})


def api_client(settings=None, app=None):
    return test_utils.TestClient(test_utils.TestServer(app or create_app(settings)))


async def grant_ingest_management(client, permissions):
    """Grant the seeded Administrators group ``permissions`` on the system ingest management ACL."""
    body = await (await client.get("/groups", params={"name": "Administrators"})).json()
    resp = await client.post(
        "/acls",
        json={
            "system_identity": {"target": "INGEST_MANAGEMENT_ACL"},
            "group_permissions": [{"group_id": body["items"][0]["concept_id"], "permissions": permissions}],
        },
        headers=ADMIN,
    )
    assert resp.status == 200


class TestHealthAndReset:
    @pytest.mark.asyncio
    async def test_health(self, settings):
        async with api_client(settings) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_reset(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            await grant_ingest_management(client, ["read", "update"])
            resp = await client.post("/groups", json={"name": "Extra", "description": "d"}, headers=ADMIN)
            assert resp.status == 200

            resp = await client.post("/reset", headers=ADMIN)
            assert resp.status == 204

            body = await (await client.get("/groups")).json()
            assert sorted(item["name"] for item in body["items"]) == ["Administrators", "PROV1 Editors"]

    @pytest.mark.asyncio
    async def test_reset_requires_ingest_management_update(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/reset")
            assert resp.status == 401
            assert await resp.json() == {"errors": ["You do not have permission to perform that action."]}

            # A read grant is not enough, and other callers stay denied
            await grant_ingest_management(client, ["read"])
            assert (await client.post("/reset", headers=ADMIN)).status == 401
            assert (await client.post("/reset", headers=USER1)).status == 401

            resp = await client.post("/groups", json={"name": "Extra", "description": "d"}, headers=ADMIN)
            assert resp.status == 200
            assert (await (await client.get("/groups")).json())["hits"] == 3


class TestGroupRoutes:
    @pytest.mark.asyncio
    async def test_group_lifecycle(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post(
                "/groups",
                json={"name": "Writers", "provider_id": "PROV1", "description": "Writers", "members": ["u1"]},
                headers=ADMIN,
            )
            assert resp.status == 200
            concept_id = (await resp.json())["concept_id"]

            resp = await client.get(f"/groups/{concept_id}")
            assert await resp.json() == {
                "name": "Writers",
                "provider_id": "PROV1",
                "description": "Writers",
                "member_count": 1,
            }

            resp = await client.put(
                f"/groups/{concept_id}",
                json={"name": "Writers", "provider_id": "PROV1", "description": "All writers"},
                headers=ADMIN,
            )
            assert (await resp.json())["revision_id"] == 2

            resp = await client.delete(f"/groups/{concept_id}", headers=ADMIN)
            assert (await resp.json()) == {"concept_id": concept_id, "revision_id": 3}

            resp = await client.get(f"/groups/{concept_id}")
            assert resp.status == 404
            assert await resp.json() == {"errors": [f"Group could not be found with concept id [{concept_id}]"]}

    @pytest.mark.asyncio
    async def test_members(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/groups", json={"name": "Team", "description": "d"}, headers=ADMIN)
            concept_id = (await resp.json())["concept_id"]

            await client.post(f"/groups/{concept_id}/members", json=["u1", "u2"], headers=ADMIN)
            await client.delete(f"/groups/{concept_id}/members", json=["u1"], headers=ADMIN)

            resp = await client.get(f"/groups/{concept_id}/members")
            assert await resp.json() == ["u2"]

            resp = await client.post(f"/groups/{concept_id}/members", json="u3", headers=ADMIN)
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_search(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.get("/groups", params={"name": "administrators"})
            body = await resp.json()
            assert body["hits"] == 1
            assert body["items"][0]["members"] == ["admin"]

            resp = await client.get("/groups", params={"provider": "PROV1", "member": "USER1"})
            assert (await resp.json())["items"][0]["name"] == "PROV1 Editors"

    @pytest.mark.asyncio
    async def test_unrecognized_param(self, settings):
        async with api_client(settings) as client:
            resp = await client.get("/groups", params={"page_size": "10"})
            assert resp.status == 400
            assert await resp.json() == {"errors": ["Parameter [page_size] was not recognized."]}

            resp = await client.get("/groups", params={"name": "x", "pretty": "true"})
            assert resp.status == 200
            assert await resp.json() == {"hits": 0, "items": []}

    @pytest.mark.asyncio
    async def test_invalid_body(self, settings):
        async with api_client(settings) as client:
            resp = await client.post("/groups", json={"name": "x"}, headers=ADMIN)
            assert resp.status == 400
            assert await resp.json() == {"errors": ["description: Field required"]}

    @pytest.mark.asyncio
    async def test_malformed_json(self, settings):
        async with api_client(settings) as client:
            resp = await client.post(
                "/groups", data="{not json", headers={"Content-Type": "application/json"}
            )
            assert resp.status == 400
            assert (await resp.json())["errors"][0].startswith("Request body is not valid JSON")

    @pytest.mark.asyncio
    async def test_duplicate_group(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post(
                "/groups", json={"name": "administrators", "description": "again"}, headers=ADMIN
            )
            assert resp.status == 409
            assert await resp.json() == {
                "errors": ["A group with name [administrators] already exists for provider [CMR]."]
            }

    @pytest.mark.asyncio
    async def test_unknown_token(self, settings):
        async with api_client(settings) as client:
            resp = await client.post(
                "/groups", json={"name": "x", "description": "d"}, headers={"Echo-Token": "bad"}
            )
            assert resp.status == 401
            assert await resp.json() == {"errors": ["Token bad does not exist"]}


class TestAclRoutes:
    @pytest.mark.asyncio
    async def test_create_catalog_item_acl_requires_grant(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/acls", json=catalog_item_acl())
            assert resp.status == 400
            assert await resp.json() == {
                "errors": [
                    {
                        "path": ["catalog_item_identity"],
                        "errors": [
                            "User [guest] does not have permission to create catalog item "
                            "targeting provider-id [PROV1]"
                        ],
                    }
                ]
            }

            resp = await client.post("/acls", json=catalog_item_acl(), headers=USER1)
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_token_query_param(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/acls", json=catalog_item_acl(), params={"token": "user1-token"})
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_bearer_token(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post(
                "/acls", json=catalog_item_acl(), headers={"Authorization": "Bearer user1-token"}
            )
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_acl_lifecycle(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/acls", json=provider_acl(provider_id="PROV2", target="GROUP", permissions=["read"]))
            concept_id = (await resp.json())["concept_id"]

            resp = await client.get(f"/acls/{concept_id}")
            assert await resp.json() == provider_acl(provider_id="PROV2", target="GROUP", permissions=["read"])

            resp = await client.put(
                f"/acls/{concept_id}",
                json=provider_acl(provider_id="PROV2", target="GROUP", permissions=["create", "read"]),
            )
            assert (await resp.json())["revision_id"] == 2

            resp = await client.put(
                f"/acls/{concept_id}",
                json=provider_acl(provider_id="PROV2", target="GROUP", permissions=["delete"]),
            )
            assert resp.status == 400
            assert (await resp.json())["errors"][0]["path"] == []

            resp = await client.delete(f"/acls/{concept_id}")
            assert resp.status == 200
            assert (await client.get(f"/acls/{concept_id}")).status == 404

    @pytest.mark.asyncio
    async def test_search(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.get("/acls", params={"identity_type": "system"})
            body = await resp.json()
            assert body["hits"] == 1
            assert body["items"][0]["name"] == "System - GROUP"
            assert body["items"][0]["location"].startswith("http://localhost:3011/acls/")

            resp = await client.get("/acls", params={"provider": "prov1", "permitted_group": "registered"})
            assert (await resp.json())["hits"] == 1

            resp = await client.get("/acls", params={"identity_type": "bogus"})
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_standard_params(self, seeded_settings):
        async with api_client(seeded_settings) as client:
            resp = await client.post("/acls", json=provider_acl(target="GROUP", permissions=["read"]))
            concept_id = (await resp.json())["concept_id"]

            resp = await client.get(f"/acls/{concept_id}", params={"pretty": "true", "token": "user1-token"})
            assert resp.status == 200
            assert '\n  "group_permissions"' in await resp.text()

            resp = await client.delete(f"/acls/{concept_id}", params={"foo": "1", "bar": "2"})
            assert resp.status == 400
            assert await resp.json() == {
                "errors": ["Parameter [foo] was not recognized.", "Parameter [bar] was not recognized."]
            }
            assert (await client.get(f"/acls/{concept_id}")).status == 200

    @pytest.mark.asyncio
    async def test_metadata_db_failure(self, settings):
        app = create_app(settings)
        app["system"].metadata_db.provider_exists = AsyncMock(
            side_effect=DependencyError("metadata-db", "HTTP 503")
        )
        async with api_client(app=app) as client:
            resp = await client.post("/acls", json=provider_acl())
            assert resp.status == 500
            assert await resp.json() == {"errors": ["Call to metadata-db failed: HTTP 503"]}

    @pytest.mark.asyncio
    async def test_schema_errors(self, settings):
        async with api_client(settings) as client:
            resp = await client.post(
                "/acls",
                json={"group_permissions": [{"user_type": "guest", "permissions": ["read"]}]},
            )
            assert resp.status == 400
            assert "exactly one of" in (await resp.json())["errors"][0]
