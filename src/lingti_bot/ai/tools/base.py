"""Abstract tool interface for locally executed tools."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable


class Tool(ABC):
    """Base class for all model-callable local tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name as registered; sanitized by the bridge before it reaches a provider."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description for the model."""
        ...

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema dict describing accepted parameters."""
        ...

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """Run the tool and return a text result for the model.

        Raise to report failure; the bridge turns the exception into an error result.
        """
        ...


class FunctionTool(Tool):
    """Wraps a plain (sync or async) Python callable as a tool."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        func: Callable[..., str | Awaitable[str]],
    ):
        self._name = name
        self._description = description
        self._input_schema = input_schema
        self._func = func

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._input_schema

    async def execute(self, **kwargs: Any) -> str:
        result = self._func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return str(result)
