"""Tests for FastAPI endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from todo_assistant.api.dependencies import create_access_token
from todo_assistant.core.exceptions import UpstreamFailure
from tests.fakes import text_reply, tool_reply


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test health endpoint returns 200."""
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["docs_url"] == "/docs"


class TestAuthEndpoints:
    """Tests for authentication endpoints."""

    @pytest.mark.asyncio
    async def test_register_login_and_me(self, client: AsyncClient):
        """Test the full registration flow."""
        response = await client.post(
            "/auth/register",
            json={"username": "testuser", "password": "securepassword123"},
        )
        assert response.status_code == 200
        assert response.json()["username"] == "testuser"

        response = await client.post(
            "/auth/login",
            data={"username": "testuser", "password": "securepassword123"},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["username"] == "testuser"

    @pytest.mark.asyncio
    async def test_duplicate_username(self, client: AsyncClient):
        payload = {"username": "testuser", "password": "securepassword123"}
        await client.post("/auth/register", json=payload)

        response = await client.post("/auth/register", json=payload)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_login_invalid_credentials(self, client: AsyncClient):
        """Test login with invalid credentials."""
        response = await client.post(
            "/auth/login",
            data={"username": "nonexistent", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, api_user):
        token = create_access_token(api_user, expires_delta=timedelta(minutes=-5))

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"


class TestUnauthorized:
    """Every assistant and task endpoint requires a token."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path",
        [
            ("POST", "/assistant/chat"),
            ("POST", "/assistant/thread"),
            ("GET", "/assistant/threads/thread_x/messages"),
            ("POST", "/assistant/generate-tasks"),
            ("GET", "/assistant/analyze-productivity"),
            ("GET", "/assistant/pending-calls"),
            ("GET", "/assistant/pending-calls/call_x"),
            ("POST", "/assistant/pending-calls/call_x/approve"),
            ("POST", "/assistant/pending-calls/call_x/reject"),
            ("GET", "/tasks"),
            ("POST", "/tasks/task_x/toggle"),
        ],
    )
    async def test_requires_token(self, client: AsyncClient, method, path):
        response = await client.request(method, path, json={"message": "hi", "prompt": "hi"})
        assert response.status_code == 401
        assert response.json() == {"error": "authentication_required", "message": "Not authenticated"}


class TestTaskEndpoints:
    """Tests for task CRUD."""

    @pytest.mark.asyncio
    async def test_crud(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/tasks",
            json={"title": "Water plants", "priority": "high", "dueDate": "2030-01-01"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        task = response.json()
        assert task["dueDate"] == "2030-01-01"
        assert task["isAIGenerated"] is False

        response = await client.patch(
            f"/tasks/{task['id']}", json={"title": "Water all plants"}, headers=auth_headers
        )
        assert response.json()["title"] == "Water all plants"
        assert response.json()["priority"] == "high"

        response = await client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers)
        assert response.json()["completed"] is True

        response = await client.get("/tasks", params={"completed": "true"}, headers=auth_headers)
        assert [t["id"] for t in response.json()] == [task["id"]]

        response = await client.delete(f"/tasks/{task['id']}", headers=auth_headers)
        assert response.json() == {"success": True, "taskId": task["id"]}

        response = await client.get(f"/tasks/{task['id']}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_invalid_body(self, client: AsyncClient, auth_headers):
        response = await client.post("/tasks", json={"priority": "high"}, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_arguments"


class TestAssistantEndpoints:
    """Tests for chat and the approval flow over HTTP."""

    @pytest.mark.asyncio
    async def test_chat_reply(self, client: AsyncClient, auth_headers, llm):
        llm.queue(text_reply("Hello there!"))

        response = await client.post("/assistant/chat", json={"message": "Hi"}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Hello there!"
        assert data["hasPendingCalls"] is False
        assert data["pendingCallsCount"] == 0
        assert data["executedFunctions"] == []

        response = await client.get(
            f"/assistant/threads/{data['threadId']}/messages", headers=auth_headers
        )
        assert [m["role"] for m in response.json()] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_approval_flow(self, client: AsyncClient, auth_headers, llm):
        llm.queue(tool_reply(("create_task", {"title": "Buy milk"})))

        response = await client.post(
            "/assistant/chat", json={"message": "Remind me to buy milk"}, headers=auth_headers
        )
        data = response.json()
        assert data["hasPendingCalls"] is True
        assert data["pendingCallsCount"] == 1

        response = await client.get("/assistant/pending-calls", headers=auth_headers)
        pending = response.json()
        assert len(pending) == 1
        call = pending[0]
        assert call["functionName"] == "create_task"
        assert call["formattedArgs"] == {"title": "Buy milk"}
        assert call["status"] == "pending"
        assert call["threadId"] == data["threadId"]

        llm.queue(text_reply("Done, it's on your list."))
        response = await client.post(
            f"/assistant/pending-calls/{call['id']}/approve", headers=auth_headers
        )
        assert response.status_code == 200
        approval = response.json()
        assert approval["success"] is True
        assert approval["result"]["title"] == "Buy milk"
        assert approval["followUp"]["message"] == "Done, it's on your list."

        response = await client.post(
            f"/assistant/pending-calls/{call['id']}/approve", headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "already_resolved"

        response = await client.get(f"/assistant/pending-calls/{call['id']}", headers=auth_headers)
        assert response.json()["status"] == "approved"

        response = await client.get("/tasks", headers=auth_headers)
        assert [t["title"] for t in response.json()] == ["Buy milk"]

    @pytest.mark.asyncio
    async def test_reject_flow(self, client: AsyncClient, auth_headers, llm):
        llm.queue(tool_reply(("delete_completed_tasks", {})))
        await client.post("/assistant/chat", json={"message": "Clean up"}, headers=auth_headers)
        call = (await client.get("/assistant/pending-calls", headers=auth_headers)).json()[0]

        response = await client.post(
            f"/assistant/pending-calls/{call['id']}/reject", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert "result" not in response.json()
        assert (await client.get("/assistant/pending-calls", headers=auth_headers)).json() == []

    @pytest.mark.asyncio
    async def test_other_users_call_is_not_found(self, client: AsyncClient, auth_headers, llm, memory_services):
        llm.queue(tool_reply(("create_task", {"title": "Mine"})))
        await client.post("/assistant/chat", json={"message": "Add"}, headers=auth_headers)
        call = (await client.get("/assistant/pending-calls", headers=auth_headers)).json()[0]

        intruder = await memory_services.users.create_user("eve", "password000")
        headers = {"Authorization": f"Bearer {create_access_token(intruder)}"}

        response = await client.post(f"/assistant/pending-calls/{call['id']}/approve", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert (await client.get("/assistant/pending-calls", headers=headers)).json() == []

    @pytest.mark.asyncio
    async def test_llm_failure_is_502(self, client: AsyncClient, auth_headers, llm):
        llm.queue(RuntimeError("boom"))

        response = await client.post("/assistant/chat", json={"message": "Hi"}, headers=auth_headers)

        assert response.status_code == 502
        assert response.json() == {
            "error": "upstream_failure",
            "message": UpstreamFailure.public_message,
        }

    @pytest.mark.asyncio
    async def test_unknown_thread_is_404(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/assistant/chat",
            json={"message": "Hi", "threadId": "thread_missing"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_new_thread(self, client: AsyncClient, auth_headers):
        response = await client.post("/assistant/thread", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["threadId"].startswith("thread_")
        assert response.json()["message"]

    @pytest.mark.asyncio
    async def test_generate_tasks(self, client: AsyncClient, auth_headers, llm):
        llm.queue(tool_reply(("create_task", {"title": "Book venue"}), ("create_task", {"title": "Send invites"})))

        response = await client.post(
            "/assistant/generate-tasks", json={"prompt": "Plan a birthday party"}, headers=auth_headers
        )

        assert response.json()["pendingCallsCount"] == 2
        assert "Plan a birthday party" in llm.histories[0][-1].content

    @pytest.mark.asyncio
    async def test_analyze_productivity(self, client: AsyncClient, auth_headers, llm):
        llm.queue(tool_reply(("analyze_productivity", {})), text_reply("You're doing fine."))

        response = await client.get("/assistant/analyze-productivity", headers=auth_headers)

        data = response.json()
        assert data["message"] == "You're doing fine."
        assert data["executedFunctions"][0]["name"] == "analyze_productivity"
        assert "summary" in data["executedFunctions"][0]["result"]
