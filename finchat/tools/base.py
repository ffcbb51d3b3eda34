"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel

from finchat.models import ToolResult


class NoArguments(BaseModel):
    """Argument model for tools that take no input."""


class Tool(ABC):
    """Base class for all financial data tools."""

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]] = NoArguments

    @property
    def parameters_schema(self) -> dict[str, Any]:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    @abstractmethod
    async def run(self, **kwargs: Any) -> ToolResult:
        """Execute tool with validated arguments."""
