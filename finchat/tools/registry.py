"""Registry for tool registration, validation and execution."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from finchat.models import ToolResult
from finchat.tools.base import Tool

LOGGER = logging.getLogger(__name__)


class UnknownToolError(KeyError):
    """Raised when the model asks for a tool that is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown tool"


class ToolValidationError(ValueError):
    """Raised when tool arguments fail schema validation."""

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        self.tool_name = tool_name
        self.errors = errors
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or 'input'}: {err.get('msg', 'invalid')}"
            for err in errors
        )
        super().__init__(f"Invalid input for tool {tool_name}: {details}")


class ToolRegistry:
    """Explicit registry of read-only data tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema,
                },
            }
            for tool in self._tools.values()
        ]

    def validate(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Return validated arguments, or raise before any adapter is called."""

        tool = self._tools.get(tool_name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {tool_name}")
        try:
            value = tool.args_model.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolValidationError(tool_name, exc.errors(include_url=False)) from exc
        return value.model_dump(exclude_none=True)

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        validated = self.validate(tool_name, arguments)
        result = await self._tools[tool_name].run(**validated)
        LOGGER.info("Tool %s(%s) -> success=%s", tool_name, validated, result.success)
        return result
