"""Integration tests for memory workflows.

Runs the handlers against a real in-process Qdrant with a deterministic
fact provider in place of the inference backends.
"""

import uuid

import pytest

from memory_service.handlers import MemoryHandlers

# Mark all tests in this module as integration tests
pytestmark = pytest.mark.integration

USERS = ["alice", "bob"]
AGENTS = [None, "planner", "coder"]
RUNS = [None, "run-1", "run-2"]


@pytest.fixture
def handlers(memory_storage, mock_provider):
    return MemoryHandlers(memory_storage, mock_provider)


async def _seed(handlers, mock_provider):
    """One memory for every (user, agent, run) combination."""
    for user_id in USERS:
        for agent_id in AGENTS:
            for run_id in RUNS:
                fact = f"{user_id}/{agent_id}/{run_id} prefers tea"
                mock_provider.extract_facts.return_value = [fact]
                body = {"messages": fact, "user_id": user_id}
                if agent_id:
                    body["agent_id"] = agent_id
                if run_id:
                    body["run_id"] = run_id
                result = await handlers.add(body)
                assert result.output["failed"] == 0


def _identity_params(user_id, agent_id, run_id) -> dict:
    params = {"user_id": user_id}
    if agent_id:
        params["agent_id"] = agent_id
    if run_id:
        params["run_id"] = run_id
    return params


@pytest.mark.asyncio
class TestMemoryWorkflow:
    """Integration tests for complete memory workflows."""

    async def test_add_then_search(self, handlers, memory_storage, mock_provider):
        """Store a memory and retrieve it through search."""
        await memory_storage.ensure_collection()
        mock_provider.extract_facts.return_value = ["Likes tea"]

        added = await handlers.add({"messages": "I like tea", "user_id": "u1"})
        memory_id = added.output["results"][0]["id"]

        found = await handlers.search({"query": "Likes tea", "user_id": "u1"})

        assert found.success is True
        [result] = found.output["results"]
        assert result["id"] == memory_id
        assert result["memory"] == "Likes tea"
        assert result["user_id"] == "u1"
        assert "vector" not in result
        assert "embedding" not in result

    async def test_round_trip_by_identity(self, handlers, memory_storage, mock_provider):
        """Listed under its exact identity, invisible to another user."""
        await memory_storage.ensure_collection()
        mock_provider.extract_facts.return_value = ["Works on the billing service"]

        added = await handlers.add(
            {"messages": "chat", "user_id": "u1", "agent_id": "a1", "run_id": "r1"}
        )
        memory_id = added.output["results"][0]["id"]

        mine = await handlers.list_memories({"user_id": "u1", "agent_id": "a1", "run_id": "r1"})
        theirs = await handlers.list_memories({"user_id": "u2", "agent_id": "a1", "run_id": "r1"})

        assert [m["id"] for m in mine.output["memories"]] == [memory_id]
        assert mine.output["memories"][0]["created_at"]
        assert theirs.output["memories"] == []

    async def test_add_search_delete_lifecycle(self, handlers, memory_storage, mock_provider):
        await memory_storage.ensure_collection()
        mock_provider.extract_facts.return_value = ["Lives in Oslo", "Owns a cat"]

        added = await handlers.add({"messages": "chat", "user_id": "u1"})
        assert (await handlers.count({"user_id": "u1"})).output == {"count": 2}

        for result in added.output["results"]:
            deleted = await handlers.delete(result["id"])
            assert deleted.output == {"success": True}

        assert (await handlers.count({"user_id": "u1"})).output == {"count": 0}
        # Deleting again is still a success
        again = await handlers.delete(added.output["results"][0]["id"])
        assert again.output == {"success": True}

    async def test_delete_random_uuid(self, handlers, memory_storage):
        await memory_storage.ensure_collection()

        result = await handlers.delete(str(uuid.uuid4()))

        assert result.output == {"success": True}

    async def test_search_without_collection_is_500(self, handlers):
        """Collection never provisioned: backend error surfaces as 500."""
        result = await handlers.search({"query": "tea", "user_id": "u1"})

        assert result.status_code == 500


@pytest.mark.asyncio
class TestIdentityFilterConsistency:
    """search, list and count see exactly the same memories."""

    @pytest.mark.parametrize("user_id", USERS)
    @pytest.mark.parametrize("agent_id", AGENTS)
    @pytest.mark.parametrize("run_id", RUNS)
    async def test_same_scope_everywhere(
        self, handlers, memory_storage, mock_provider, user_id, agent_id, run_id
    ):
        await memory_storage.ensure_collection()
        await _seed(handlers, mock_provider)
        params = _identity_params(user_id, agent_id, run_id)

        listed = await handlers.list_memories(params)
        counted = await handlers.count(params)
        searched = await handlers.search({"query": "prefers tea", "limit": 100, **params})

        listed_ids = {m["id"] for m in listed.output["memories"]}
        searched_ids = {r["id"] for r in searched.output["results"]}
        assert listed_ids == searched_ids
        assert counted.output["count"] == len(listed_ids)

        # Absent dimensions match any value, present ones narrow by AND
        expected = (1 if agent_id else len(AGENTS)) * (1 if run_id else len(RUNS))
        assert len(listed_ids) == expected
        for memory in listed.output["memories"]:
            assert memory["user_id"] == user_id
            if agent_id:
                assert memory["agent_id"] == agent_id
            if run_id:
                assert memory["run_id"] == run_id
