"""Base types for the tool-calling framework."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class CallerContext:
    """Who a tool call runs on behalf of.

    Every tool receives this and must scope its reads and writes to
    ``user_id``.
    """

    user_id: str
    thread_id: str = ""


@dataclass
class ToolResult:
    """Result of a tool execution.

    Every tool returns one of these. The agent loop turns it into a
    tool-result part (and a ``tool_result`` block for the model).
    """

    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_content(self) -> str:
        """Serialize for the model's tool_result content field."""
        if self.error:
            return json.dumps({"error": self.error})
        return json.dumps(self.data or {})


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. The JSON schema is auto-generated
    via model_json_schema() for the model's tool definitions. Unknown
    arguments are rejected so a misspelled parameter is reported instead of
    silently dropped.
    """

    model_config = ConfigDict(extra="forbid")


class DateRangeParams(ToolParams):
    """Optional inclusive date range shared by the metrics tools."""

    start_date: date | None = Field(
        default=None,
        description="Start date in YYYY-MM-DD format. Defaults to 3 months ago.",
    )
    end_date: date | None = Field(
        default=None,
        description="End date in YYYY-MM-DD format. Defaults to today.",
    )

    @model_validator(mode="after")
    def _ordered(self) -> "DateRangeParams":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class BaseTool(ABC):
    """Abstract base for tool implementations.

    Tools hold their collaborators (API clients, stores) as instance state,
    so they are constructed explicitly and registered on a ``ToolRegistry``.

    Example::

        class MyTool(BaseTool):
            name = "my_tool"
            description = "Does a thing"
            category = "custom"
            params_model = MyToolParams

            async def execute(self, caller: CallerContext, **kwargs) -> ToolResult:
                return ToolResult(data={"ok": True})
    """

    name: str = ""
    description: str = ""
    category: str = ""
    params_model: type[ToolParams] = ToolParams

    @abstractmethod
    async def execute(self, caller: CallerContext, **kwargs: Any) -> ToolResult:
        """Execute the tool with validated parameters."""
        ...
