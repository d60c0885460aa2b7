"""
Two users, one task each: neither can see or touch the other's task.
"""

import pytest

from conftest import bearer, register_and_login


@pytest.fixture
async def users(client):
    token_a, _ = await register_and_login(client, "userA", "a@test.com", "Passw0rd1")
    token_b, _ = await register_and_login(client, "userB", "b@test.com", "Passw0rd2")
    headers_a, headers_b = bearer(token_a), bearer(token_b)

    task_a = (
        await client.post("/tasks", json={"title": "User A's Private Task"}, headers=headers_a)
    ).json()["data"]
    task_b = (
        await client.post("/tasks", json={"title": "User B's Private Task"}, headers=headers_b)
    ).json()["data"]
    return headers_a, headers_b, task_a, task_b


class TestOwnershipIsolation:
    @pytest.mark.asyncio
    async def test_lists_only_contain_own_tasks(self, client, users):
        headers_a, headers_b, _, _ = users

        data_a = (await client.get("/tasks", headers=headers_a)).json()["data"]
        data_b = (await client.get("/tasks", headers=headers_b)).json()["data"]

        assert [t["title"] for t in data_a] == ["User A's Private Task"]
        assert [t["title"] for t in data_b] == ["User B's Private Task"]

    @pytest.mark.asyncio
    async def test_same_path_cached_per_owner(self, client, users):
        headers_a, headers_b, _, _ = users
        await client.get("/tasks", headers=headers_a)

        response = (await client.get("/tasks", headers=headers_b)).json()

        assert response["cached"] is False
        assert response["data"][0]["title"] == "User B's Private Task"

    @pytest.mark.asyncio
    async def test_cross_owner_access_is_not_found(self, client, users):
        headers_a, headers_b, _, task_b = users
        path = f"/tasks/{task_b['id']}"

        responses = [
            await client.get(path, headers=headers_a),
            await client.patch(path, json={"title": "hijacked"}, headers=headers_a),
            await client.delete(path, headers=headers_a),
        ]

        for response in responses:
            assert response.status_code == 404
            assert response.json() == {"success": False, "message": "Task not found"}
            assert "User B" not in response.text

        still_there = (await client.get(path, headers=headers_b)).json()["data"]
        assert still_there["title"] == "User B's Private Task"

    @pytest.mark.asyncio
    async def test_mutations_only_invalidate_own_cache(self, client, users, cache):
        headers_a, headers_b, _, _ = users
        await client.get("/tasks", headers=headers_b)

        await client.post("/tasks", json={"title": "another A task"}, headers=headers_a)

        response = (await client.get("/tasks", headers=headers_b)).json()
        assert response["cached"] is True
