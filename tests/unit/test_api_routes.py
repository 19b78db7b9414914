"""Integration tests for the FastAPI layer."""

from __future__ import annotations

import io
import json
from zipfile import ZipFile

import pytest
from httpx import ASGITransport, AsyncClient

from hexbattle.api.app import create_app
from hexbattle.api.runtime import ApiState
from hexbattle.config import Settings
from hexbattle.savegame import MANIFEST_PATH


def _make_app(tmp_path):
    def factory() -> ApiState:
        settings = Settings(data_dir=tmp_path, default_seed=16, max_chasing_activations=4)
        return ApiState(settings=settings)

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport


async def _create_battle(client: AsyncClient, **body) -> dict:
    response = await client.post("/battles", json={"name": "Skirmish", **body})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_battle_lifecycle_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        health = await client.get("/health")
        assert health.json() == {"status": "ok", "default_seed": 16, "max_chasing_activations": 4}

        created = await _create_battle(client)
        battle_id = created["id"]
        assert created["seed"] > 16
        assert created["phase"] == "battle"
        assert created["selected_id"] == 1
        assert created["sides"]["foe"]["controller"] == "computer"

        listing = await client.get("/battles")
        assert [item["id"] for item in listing.json()] == [battle_id]

        detail = await client.get(f"/battles/{battle_id}")
        assert detail.status_code == 200
        assert detail.json()["name"] == "Skirmish"

        queue = await client.get(f"/battles/{battle_id}/queue")
        assert queue.json()[0]["id"] == 1

        targets = await client.get(f"/battles/{battle_id}/legal-targets")
        assert {"row": 0, "column": 1} in targets.json()

        moved = await client.post(
            f"/battles/{battle_id}/actions",
            json={"action": {"type": "move_to", "position": {"row": 0, "column": 1}}},
        )
        assert moved.status_code == 200
        payload = moved.json()
        assert payload["accepted"] is True
        assert payload["results"][0]["type"] == "moved"
        assert payload["battle"]["action_count"] == 1

        rejected = await client.post(
            f"/battles/{battle_id}/actions",
            json={"action": {"type": "fire_at", "target": {"row": 0, "column": 14}}},
        )
        assert rejected.status_code == 200
        assert rejected.json()["accepted"] is False
        assert rejected.json()["battle"]["action_count"] == 1

        casualties = await client.get(f"/battles/{battle_id}/casualties")
        assert casualties.status_code == 409


@pytest.mark.asyncio
async def test_errors_via_api(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        assert (await client.get("/battles/99")).status_code == 404
        assert (await client.get("/battles/99/queue")).status_code == 404
        assert (await client.get("/battles/99/export")).status_code == 404
        missing = await client.post("/battles/99/actions", json={"action": {"type": "defend"}})
        assert missing.status_code == 404

        created = await _create_battle(client, seed=3)
        assert created["seed"] > 3
        bogus = await client.post(
            f"/battles/{created['id']}/actions", json={"action": {"type": "dance"}}
        )
        assert bogus.status_code == 422
        empty_name = await client.post("/battles", json={"name": ""})
        assert empty_name.status_code == 422


@pytest.mark.asyncio
async def test_export_returns_an_archive(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        created = await _create_battle(client)
        await client.post(
            f"/battles/{created['id']}/actions", json={"action": {"type": "defend"}}
        )

        response = await client.get(f"/battles/{created['id']}/export")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert f"battle_{created['id']}.hexbattle" in response.headers["content-disposition"]
    with ZipFile(io.BytesIO(response.content)) as archive:
        manifest = json.loads(archive.read(MANIFEST_PATH))
    assert manifest["metadata"]["name"] == "Skirmish"
    assert manifest["record"]["actions"] == [{"type": "defend"}]
