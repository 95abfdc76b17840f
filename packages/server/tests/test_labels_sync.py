"""
Integration tests for the label sync endpoints over the HTTP surface.

Tests cover:
- Label creation scenario: push then pull by a member of the project
- Stamping of authors and timestamps on insert and update
- Stale assumptions, creator-only modification and cross-tenant rejections
- Malformed change rows and request bodies
- Pull idempotence and monotonicity
"""

from __future__ import annotations

from typing import Optional

import pytest
from httpx import AsyncClient

from conftest import T0

PULL = "/api/sync/labels/pull"
PUSH = "/api/sync/labels/push"


def label_state(label_id: str = "L1", project_id: str = "P1", **overrides) -> dict:
    state = {
        "id": label_id,
        "projectId": project_id,
        "type": "status",
        "name": "Todo",
        "color": "#fff",
        "order": 0,
        "createdAt": 1000,
        "updatedAt": 1000,
    }
    state.update(overrides)
    return state


def change(state: Optional[dict], assumed: Optional[dict] = None) -> dict:
    row = {"newDocumentState": state}
    if assumed is not None:
        row["assumedMasterState"] = assumed
    return row


async def pull(client: AsyncClient, last_pulled_at=None) -> dict:
    params = {} if last_pulled_at is None else {"lastPulledAt": last_pulled_at}
    response = await client.post(PULL, params=params)
    assert response.status_code == 200, response.text
    return response.json()


async def push(client: AsyncClient, *rows: dict) -> list:
    response = await client.post(PUSH, json={"changeRows": list(rows)})
    assert response.status_code == 200, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestLabelCreation:
    @pytest.mark.asyncio
    async def test_push_then_pull_scenario(self, client, login):
        """A member of P1 creates L1 and sees it on the next pull."""
        login("alice")
        assert await push(client, change(label_state())) == []

        data = await pull(client, 500)
        ids = [doc["id"] for doc in data["documents"]]
        assert "L1" in ids

    @pytest.mark.asyncio
    async def test_insert_stamps_caller_and_server_time(self, client, login):
        login("alice")
        await push(
            client,
            change(label_state(createdBy={"id": "mallory", "name": "M"}, updatedAt=5)),
        )

        data = await pull(client)
        doc = next(d for d in data["documents"] if d["id"] == "L1")
        assert doc["createdBy"] == {
            "id": "alice",
            "name": "Alice Adams",
            "image": "https://img.example.com/alice.png",
        }
        assert doc["updatedBy"]["id"] == "alice"
        assert doc["createdAt"] == 1000
        assert doc["updatedAt"] > T0

    @pytest.mark.asyncio
    async def test_unknown_keys_are_ignored(self, client, login):
        login("alice")
        assert await push(client, change(label_state(_deleted=False))) == []

    @pytest.mark.asyncio
    async def test_project_outside_scope_is_rejected(self, client, login):
        login("alice")
        conflicts = await push(client, change(label_state(project_id="P2")))
        assert conflicts == [
            {"error": "Project not found or access denied", "document": label_state(project_id="P2")}
        ]


# ---------------------------------------------------------------------------
# Updates and conflicts
# ---------------------------------------------------------------------------


class TestLabelUpdates:
    @pytest.mark.asyncio
    async def test_creator_updates_with_current_assumption(self, client, login):
        login("bob")
        stored = next(d for d in (await pull(client))["documents"] if d["id"] == "S1")

        conflicts = await push(client, change({**stored, "name": "Backlog"}, assumed=stored))
        assert conflicts == []

        updated = next(d for d in (await pull(client))["documents"] if d["id"] == "S1")
        assert updated["name"] == "Backlog"
        assert updated["updatedAt"] > stored["updatedAt"]
        assert updated["createdAt"] == stored["createdAt"]
        assert updated["updatedBy"]["id"] == "bob"

    @pytest.mark.asyncio
    async def test_stale_assumption_returns_stored_document(self, client, login):
        login("bob")
        stored = next(d for d in (await pull(client))["documents"] if d["id"] == "S1")
        stale = {**stored, "updatedAt": stored["updatedAt"] - 5}

        conflicts = await push(client, change({**stored, "name": "Mine"}, assumed=stale))
        assert conflicts == [stored]

    @pytest.mark.asyncio
    async def test_missing_assumption_on_existing_row_is_a_conflict(self, client, login):
        """Never a silent overwrite: the client thought it was creating S1."""
        login("bob")
        stored = next(d for d in (await pull(client))["documents"] if d["id"] == "S1")

        conflicts = await push(client, change(label_state("S1", name="Overwrite")))
        assert conflicts == [stored]

    @pytest.mark.asyncio
    async def test_only_creator_may_modify(self, client, login):
        login("alice")
        stored = next(d for d in (await pull(client))["documents"] if d["id"] == "S1")

        conflicts = await push(client, change({**stored, "name": "Hijack"}, assumed=stored))
        assert conflicts == [{"error": "Unauthorized to modify this label", "document": stored}]

    @pytest.mark.asyncio
    async def test_other_tenant_row_is_not_leaked(self, client, login):
        """S2 lives in P2; alice gets her own submission back, not bob's row."""
        login("alice")
        submitted = label_state("S2", name="Peek")

        conflicts = await push(client, change(submitted))
        assert conflicts == [{"error": "Unauthorized to modify this label", "document": submitted}]


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


class TestMalformedPush:
    @pytest.mark.asyncio
    async def test_missing_id(self, client, login):
        login("alice")
        state = label_state()
        del state["id"]

        conflicts = await push(client, change(state))
        assert conflicts == [{"error": "Invalid document format: missing id", "document": state}]

    @pytest.mark.asyncio
    async def test_schema_failure_names_the_field(self, client, login):
        login("alice")
        conflicts = await push(client, change(label_state(type="severity")))
        assert len(conflicts) == 1
        assert conflicts[0]["error"].startswith("Invalid document format: type:")

    @pytest.mark.asyncio
    async def test_one_bad_row_does_not_block_the_batch(self, client, login):
        login("alice")
        conflicts = await push(
            client,
            change(None),
            change(label_state("L2")),
        )
        assert [c["error"] for c in conflicts] == ["Invalid document format: missing id"]

        ids = [doc["id"] for doc in (await pull(client))["documents"]]
        assert "L2" in ids

    @pytest.mark.asyncio
    async def test_body_without_change_rows_is_bad_request(self, client, login):
        login("alice")
        response = await client.post(PUSH, json={"rows": []})
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_invalid_last_pulled_at_is_bad_request(self, client, login):
        login("alice")
        response = await client.post(PULL, params={"lastPulledAt": "yesterday"})
        assert response.status_code == 400
        assert response.json() == {
            "message": "Invalid lastPulledAt: expected epoch milliseconds",
            "success": False,
        }


# ---------------------------------------------------------------------------
# Pull properties
# ---------------------------------------------------------------------------


class TestLabelPull:
    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, login):
        login(None)
        response = await client.post(PULL)
        assert response.status_code == 401
        assert response.json() == {"message": "Authentication required", "success": False}

    @pytest.mark.asyncio
    async def test_scope_and_order(self, client, login):
        login("alice")
        data = await pull(client)
        assert [doc["id"] for doc in data["documents"]] == ["S1", "PR1"]
        assert data["checkpoint"] == {"updatedAt": T0 + 20}

    @pytest.mark.asyncio
    async def test_idempotent(self, client, login):
        login("bob")
        first = await pull(client, T0)
        second = await pull(client, T0)
        assert first["documents"] == second["documents"]

    @pytest.mark.asyncio
    async def test_monotonic(self, client, login):
        login("bob")
        first = await pull(client)
        checkpoint = first["checkpoint"]["updatedAt"]

        second = await pull(client, checkpoint)
        assert all(doc["updatedAt"] >= checkpoint for doc in second["documents"])
        # inclusive lower bound: the newest document is delivered again
        assert [doc["id"] for doc in second["documents"]] == ["PR2"]
