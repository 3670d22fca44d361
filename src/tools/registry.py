"""Closed tool registry with validated dispatch."""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from tools._validation import ToolInputError

logger = logging.getLogger(__name__)

EMPTY_OBJECT_SCHEMA = {
    "type": "object",
    "properties": {},
    "additionalProperties": False,
}


class ToolInput(BaseModel):
    """Base for tool argument models. Unknown arguments are rejected."""

    model_config = ConfigDict(extra="forbid")


class NoArguments(ToolInput):
    pass


class PathInput(ToolInput):
    path: str


@dataclass(frozen=True)
class Tool:
    """One callable operation exposed to the model.

    parameters is the literal JSON schema sent over the wire; input_model
    validates incoming arguments before the handler runs.
    """

    name: str
    description: str
    parameters: dict
    input_model: type[ToolInput]
    handler: Callable[[Any], Awaitable[dict]]

    def to_openai_function(self) -> dict:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_responses_function(self) -> dict:
        """Convert to Responses API function tool format (flat, not nested)."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
            "strict": False,
        }


class ToolSet:
    """A fixed set of tools dispatched through invoke()."""

    def __init__(self, tools: list[Tool]):
        self._tools = {tool.name: tool for tool in tools}

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolInputError(f"Unknown tool: {name}") from None

    def to_openai_functions(self) -> list[dict]:
        return [tool.to_openai_function() for tool in self._tools.values()]

    def to_responses_functions(self) -> list[dict]:
        return [tool.to_responses_function() for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: dict | None = None) -> dict:
        """Validate arguments and run the named tool.

        Raises:
            ToolInputError: Unknown tool, malformed arguments, or a contract
                violation raised by the handler.
        """
        tool = self.get(name)
        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolInputError(f"Invalid arguments for {name}: {e}") from e
        return await tool.handler(params)
