"""Tool registry — the catalog of tools the model may call."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from iridium.errors import ToolArgumentError, UpstreamProviderError
from iridium.tools.base import BaseTool, CallerContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    category: str
    params_model: type[ToolParams]
    handler: Callable[..., Awaitable[ToolResult]]


def _format_validation_error(exc: PydanticValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        problems.append(f"{loc}: {err['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """Registry of tools, validated once when they are registered.

    Usage::

        reg = ToolRegistry()
        reg.register(GetRevenueMetricsTool(billing))
        result = await reg.execute("get_revenue_metrics", {}, caller)
    """

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: dict[str, ToolDef] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool_instance: BaseTool) -> ToolDef:
        """Register a tool instance.

        Raises:
            ValueError: Missing name or description, or a duplicate name.
            TypeError: ``params_model`` is not a ToolParams subclass or
                ``execute`` is not async.
        """
        name = tool_instance.name
        if not name or not tool_instance.description:
            msg = f"Tool {type(tool_instance).__name__} needs a name and description"
            raise ValueError(msg)
        if name in self._tools:
            msg = f"Tool '{name}' is already registered"
            raise ValueError(msg)
        params_model = tool_instance.params_model
        if not (isinstance(params_model, type) and issubclass(params_model, ToolParams)):
            msg = f"Tool '{name}' params_model must be a ToolParams subclass"
            raise TypeError(msg)
        if not inspect.iscoroutinefunction(tool_instance.execute):
            msg = f"Tool handler '{name}' must be an async function"
            raise TypeError(msg)

        tool_def = ToolDef(
            name=name,
            description=tool_instance.description,
            category=tool_instance.category,
            params_model=params_model,
            handler=tool_instance.execute,
        )
        self._tools[name] = tool_def
        return tool_def

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        """All registered tool names."""
        return list(self._tools.keys())

    def get_schemas(self) -> list[dict[str, Any]]:
        """Generate provider tool schemas for all registered tools."""
        return [self._tool_schema(t) for t in self._tools.values()]

    def get_tools_by_category(self) -> dict[str, list[ToolDef]]:
        """Group registered tools by category."""
        groups: dict[str, list[ToolDef]] = {}
        for tool_def in self._tools.values():
            groups.setdefault(tool_def.category, []).append(tool_def)
        return groups

    def validate_arguments(self, name: str, arguments: Any) -> dict[str, Any]:
        """Check arguments against the tool's params model.

        Returns the validated keyword arguments.

        Raises:
            ToolArgumentError: Unknown tool, non-object arguments, or a
                schema mismatch.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            raise ToolArgumentError(name, f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            raise ToolArgumentError(name, "arguments must be a JSON object")
        try:
            params = tool_def.params_model(**arguments)
        except PydanticValidationError as exc:
            raise ToolArgumentError(name, _format_validation_error(exc)) from exc
        return dict(params)

    async def execute(
        self,
        name: str,
        arguments: Any,
        caller: CallerContext,
    ) -> ToolResult:
        """Execute a tool by name on behalf of ``caller``.

        Never raises: unknown tools, argument errors, provider failures and
        unexpected exceptions all come back as error results so the model
        can react to them.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Model requested unknown tool '%s'", name)
            return ToolResult(error=f"Unknown tool: {name}")

        logger.info("Tool '%s' called by user %s with %s", name, caller.user_id, arguments)
        t0 = time.monotonic()

        try:
            kwargs = self.validate_arguments(name, arguments)
        except ToolArgumentError as exc:
            logger.warning("Tool '%s' rejected arguments: %s", name, exc.message)
            return ToolResult(error=f"Invalid arguments: {exc.message}")

        try:
            result = await tool_def.handler(caller, **kwargs)
        except ToolArgumentError as exc:
            logger.warning("Tool '%s' rejected arguments: %s", name, exc.message)
            return ToolResult(error=f"Invalid arguments: {exc.message}")
        except UpstreamProviderError as exc:
            elapsed = time.monotonic() - t0
            logger.warning("Tool '%s' upstream failure in %.2fs: %s", name, elapsed, exc)
            return ToolResult(error=f"{exc.provider} is unavailable: {exc.message}")
        except Exception:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            return ToolResult(error=f"Tool '{name}' failed. Check logs for details.")

        elapsed = time.monotonic() - t0
        if result.success:
            logger.info("Tool '%s' succeeded in %.2fs", name, elapsed)
        else:
            logger.warning("Tool '%s' returned error in %.2fs: %s", name, elapsed, result.error)
        return result

    @staticmethod
    def _tool_schema(tool_def: ToolDef) -> dict[str, Any]:
        """Build a single provider tool schema dict."""
        input_schema = tool_def.params_model.model_json_schema()
        input_schema.setdefault("properties", {})
        return {
            "name": tool_def.name,
            "description": tool_def.description,
            "input_schema": input_schema,
        }
