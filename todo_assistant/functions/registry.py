"""
Function registry.

Maps every function name the assistant may call onto its argument model
and its approval class. ``parse_call`` is the single validation boundary:
anything it returns is a typed, dispatchable call.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Type, Union

from pydantic import ValidationError

from todo_assistant.core.exceptions import InvalidArgumentsError
from todo_assistant.functions.schemas import (
    AnalyzeProductivityArgs,
    CreateTaskArgs,
    FunctionArgs,
    GetTasksArgs,
    NoArgs,
    TaskIdArgs,
    UpdateTaskArgs,
)


@dataclass(frozen=True)
class FunctionSpec:
    """Description of one callable function."""

    name: str
    description: str
    args_model: Type[FunctionArgs]
    requires_approval: bool

    def tool_schema(self) -> Dict[str, Any]:
        """OpenAI-style tool definition."""
        parameters = self.args_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        parameters.setdefault("properties", {})
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


@dataclass(frozen=True)
class FunctionCall:
    """A validated call: the function name with its typed arguments."""

    spec: FunctionSpec
    args: FunctionArgs

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def requires_approval(self) -> bool:
        return self.spec.requires_approval

    def args_json(self) -> str:
        """Canonical JSON text of the arguments (camelCase, unset fields dropped)."""
        return json.dumps(self.args.model_dump(mode="json", by_alias=True, exclude_none=True))


FUNCTIONS: Dict[str, FunctionSpec] = {
    spec.name: spec
    for spec in [
        FunctionSpec(
            name="create_task",
            description="Create a new task for the user",
            args_model=CreateTaskArgs,
            requires_approval=True,
        ),
        FunctionSpec(
            name="update_task",
            description="Update an existing task",
            args_model=UpdateTaskArgs,
            requires_approval=True,
        ),
        FunctionSpec(
            name="complete_task",
            description="Mark a task as completed",
            args_model=TaskIdArgs,
            requires_approval=True,
        ),
        FunctionSpec(
            name="delete_task",
            description="Delete a task",
            args_model=TaskIdArgs,
            requires_approval=True,
        ),
        FunctionSpec(
            name="delete_completed_tasks",
            description="Delete every completed task of the user",
            args_model=NoArgs,
            requires_approval=True,
        ),
        FunctionSpec(
            name="get_tasks",
            description="Get tasks with optional filtering",
            args_model=GetTasksArgs,
            requires_approval=False,
        ),
        FunctionSpec(
            name="analyze_productivity",
            description="Analyze user productivity over a date range",
            args_model=AnalyzeProductivityArgs,
            requires_approval=False,
        ),
    ]
}


def tool_schemas() -> List[Dict[str, Any]]:
    """Tool definitions for every registered function."""
    return [spec.tool_schema() for spec in FUNCTIONS.values()]


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


def parse_call(name: str, raw_args: Union[str, Mapping[str, Any], None]) -> FunctionCall:
    """
    Validate a function call.

    Args:
        name: Function name requested by the LLM or stored in the ledger
        raw_args: JSON text or an already decoded mapping

    Raises:
        InvalidArgumentsError: unknown function, malformed JSON or failing schema
    """
    spec = FUNCTIONS.get(name)
    if spec is None:
        raise InvalidArgumentsError(f"Unknown function: {name}", function_name=name)

    if raw_args is None or raw_args == "":
        data: Any = {}
    elif isinstance(raw_args, str):
        try:
            data = json.loads(raw_args)
        except json.JSONDecodeError as e:
            raise InvalidArgumentsError(f"Arguments are not valid JSON: {e}", function_name=name) from e
    else:
        data = dict(raw_args)

    if not isinstance(data, dict):
        raise InvalidArgumentsError("Arguments must be a JSON object", function_name=name)

    try:
        args = spec.args_model.model_validate(data)
    except ValidationError as e:
        raise InvalidArgumentsError(
            f"Invalid arguments for {name}: {_format_validation_error(e)}",
            function_name=name,
        ) from e

    return FunctionCall(spec=spec, args=args)
