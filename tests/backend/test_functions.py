"""Tests for the function registry and executor."""

import json

import pytest

from todo_assistant.core.exceptions import InvalidArgumentsError, NotFoundError
from todo_assistant.functions.executor import FunctionExecutor
from todo_assistant.functions.registry import FUNCTIONS, parse_call, tool_schemas
from todo_assistant.persistence.models import TaskCreate


class TestRegistry:
    """Tests for function specs and argument validation."""

    def test_approval_classes(self):
        needs_approval = {name for name, spec in FUNCTIONS.items() if spec.requires_approval}
        assert needs_approval == {
            "create_task",
            "update_task",
            "complete_task",
            "delete_task",
            "delete_completed_tasks",
        }
        assert not FUNCTIONS["get_tasks"].requires_approval
        assert not FUNCTIONS["analyze_productivity"].requires_approval

    def test_tool_schemas_use_camel_case(self):
        schemas = {s["function"]["name"]: s["function"] for s in tool_schemas()}

        assert set(schemas) == set(FUNCTIONS)
        create = schemas["create_task"]["parameters"]
        assert "dueDate" in create["properties"]
        assert create["required"] == ["title"]
        assert "taskId" in schemas["delete_task"]["parameters"]["properties"]
        assert schemas["delete_completed_tasks"]["parameters"]["properties"] == {}

    def test_parse_json_text(self):
        call = parse_call("create_task", '{"title": " Buy milk ", "priority": "high"}')

        assert call.name == "create_task"
        assert call.requires_approval
        assert call.args.title == "Buy milk"
        assert json.loads(call.args_json()) == {"title": "Buy milk", "priority": "high"}

    def test_parse_accepts_snake_and_camel_case(self):
        camel = parse_call("update_task", {"taskId": "t1", "dueDate": "2024-05-01"})
        snake = parse_call("update_task", {"task_id": "t1", "due_date": "2024-05-01"})

        assert camel.args == snake.args
        assert json.loads(camel.args_json()) == {"taskId": "t1", "dueDate": "2024-05-01"}

    def test_empty_arguments(self):
        assert parse_call("delete_completed_tasks", "").args_json() == "{}"
        assert parse_call("get_tasks", None).args_json() == "{}"

    @pytest.mark.parametrize(
        "name, raw_args, fragment",
        [
            ("launch_rocket", "{}", "Unknown function"),
            ("create_task", "{not json", "not valid JSON"),
            ("create_task", "[1, 2]", "JSON object"),
            ("create_task", "{}", "title"),
            ("create_task", {"title": "x", "priority": "urgent"}, "priority"),
            ("delete_task", {}, "Invalid arguments for delete_task"),
        ],
    )
    def test_invalid_calls(self, name, raw_args, fragment):
        with pytest.raises(InvalidArgumentsError) as exc_info:
            parse_call(name, raw_args)

        assert fragment in exc_info.value.message
        assert exc_info.value.function_name == name
        assert exc_info.value.status_code == 422


class TestExecutor:
    """Tests for dispatching functions onto the task store."""

    @pytest.mark.asyncio
    async def test_create_task(self, task_store):
        executor = FunctionExecutor(task_store)

        result = await executor.execute("user-1", "create_task", '{"title": "Buy milk"}')

        assert result["title"] == "Buy milk"
        assert result["isAIGenerated"] is True
        assert result["priority"] == "medium"
        stored = await task_store.get_task("user-1", result["id"])
        assert stored is not None

    @pytest.mark.asyncio
    async def test_update_and_complete(self, task_store):
        executor = FunctionExecutor(task_store)
        task = await task_store.create_task("user-1", TaskCreate(title="Draft report"))

        updated = await executor.execute("user-1", "update_task", {"taskId": task.id, "priority": "high"})
        assert updated["priority"] == "high"
        assert updated["title"] == "Draft report"

        completed = await executor.execute("user-1", "complete_task", {"taskId": task.id})
        assert completed["completed"] is True

    @pytest.mark.asyncio
    async def test_missing_task_raises_not_found(self, task_store):
        executor = FunctionExecutor(task_store)

        with pytest.raises(NotFoundError):
            await executor.execute("user-1", "complete_task", {"taskId": "nope"})
        with pytest.raises(NotFoundError):
            await executor.execute("user-1", "delete_task", {"taskId": "nope"})

    @pytest.mark.asyncio
    async def test_other_users_task_is_not_found(self, task_store):
        executor = FunctionExecutor(task_store)
        task = await task_store.create_task("user-2", TaskCreate(title="Private"))

        with pytest.raises(NotFoundError):
            await executor.execute("user-1", "delete_task", {"taskId": task.id})
        assert await task_store.get_task("user-2", task.id) is not None

    @pytest.mark.asyncio
    async def test_delete_task(self, task_store):
        executor = FunctionExecutor(task_store)
        task = await task_store.create_task("user-1", TaskCreate(title="Old"))

        result = await executor.execute("user-1", "delete_task", {"taskId": task.id})

        assert result == {
            "success": True,
            "message": f"Task {task.id} deleted successfully",
            "taskId": task.id,
        }

    @pytest.mark.asyncio
    async def test_delete_completed_tasks(self, task_store):
        executor = FunctionExecutor(task_store)
        await task_store.create_task("user-1", TaskCreate(title="a", completed=True))
        await task_store.create_task("user-1", TaskCreate(title="b", completed=True))
        await task_store.create_task("user-1", TaskCreate(title="c"))
        await task_store.create_task("user-2", TaskCreate(title="d", completed=True))

        result = await executor.execute("user-1", "delete_completed_tasks", "{}")

        assert result == {"deletedCount": 2}
        remaining = await task_store.list_tasks("user-1")
        assert [t.title for t in remaining] == ["c"]
        assert len(await task_store.list_tasks("user-2")) == 1

    @pytest.mark.asyncio
    async def test_get_tasks_with_filters(self, task_store):
        executor = FunctionExecutor(task_store)
        await task_store.create_task("user-1", TaskCreate(title="low", priority="low"))
        await task_store.create_task("user-1", TaskCreate(title="high", priority="high"))

        result = await executor.execute("user-1", "get_tasks", {"priority": "high"})

        assert result["count"] == 1
        assert result["tasks"][0]["title"] == "high"

    @pytest.mark.asyncio
    async def test_analyze_productivity(self, task_store):
        executor = FunctionExecutor(task_store)
        await task_store.create_task("user-1", TaskCreate(title="done", completed=True))
        await task_store.create_task("user-1", TaskCreate(title="open", priority="high"))

        result = await executor.execute("user-1", "analyze_productivity", {})

        assert result["summary"]["totalTasks"] == 2
        assert result["summary"]["completionRate"] == "50.00%"
        assert any("high priority" in r for r in result["recommendations"])
