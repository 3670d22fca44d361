#!/usr/bin/env python3
"""Agent loop driver connecting an LLM to a batch tool set."""

import ast
import json
import logging
import re
from dataclasses import dataclass, field

import anyio
from openai import OpenAI
from pydantic import BaseModel

from config import (
    AI_ACCOUNT_ID,
    AI_API_KEY,
    AI_BASE_URL,
    AI_MODEL,
    AI_PROVIDER,
    ANTHROPIC_BASE_URL,
    CODEX_BASE_URL,
    GOOGLE_BASE_URL,
    MAX_AGENT_STEPS,
    OLLAMA_BASE_URL,
    OPENAI_BASE_URL,
    TOOL_TIMEOUT,
)
from prompts import ProviderRequestOptions
from tools.registry import ToolSet

logger = logging.getLogger(__name__)

PROVIDER_BASE_URLS = {
    "openai": OPENAI_BASE_URL,
    "anthropic": ANTHROPIC_BASE_URL,
    "google": GOOGLE_BASE_URL,
    "ollama": OLLAMA_BASE_URL,
    "codex_oauth": CODEX_BASE_URL,
}


# =============================================================================
# Model construction
# =============================================================================


class ChatConfig(BaseModel):
    """Which provider and model a batch talks to."""

    provider: str
    model: str
    api_key: str = ""
    account_id: str | None = None
    base_url: str | None = None


@dataclass
class ChatModel:
    """Handle returned by create_model: a client plus the model name."""

    client: OpenAI
    name: str
    provider: str


def create_model(config: ChatConfig) -> ChatModel:
    """Create an OpenAI-compatible client for the configured provider.

    Raises:
        ValueError: If the provider is unknown.
    """
    if config.provider not in PROVIDER_BASE_URLS:
        raise ValueError(f"Unsupported provider: {config.provider}")

    base_url = config.base_url or PROVIDER_BASE_URLS[config.provider]
    # Ollama ignores the key but the client requires one
    api_key = config.api_key or ("ollama" if config.provider == "ollama" else "")
    default_headers = None
    if config.provider == "codex_oauth" and config.account_id:
        default_headers = {"ChatGPT-Account-Id": config.account_id}

    client = OpenAI(api_key=api_key, base_url=base_url, default_headers=default_headers)
    return ChatModel(client=client, name=config.model, provider=config.provider)


def chat_config_from_env() -> ChatConfig | None:
    """Build a ChatConfig from AI_* settings, or None when incomplete."""
    if not AI_PROVIDER or not AI_MODEL:
        return None
    if AI_PROVIDER not in ("ollama", "codex_oauth") and not AI_API_KEY:
        logger.warning("AI_API_KEY not set for provider %s", AI_PROVIDER)
        return None
    return ChatConfig(
        provider=AI_PROVIDER,
        model=AI_MODEL,
        api_key=AI_API_KEY,
        account_id=AI_ACCOUNT_ID,
        base_url=AI_BASE_URL,
    )


# =============================================================================
# Tool call plumbing
# =============================================================================


@dataclass
class ToolResult:
    """Result of one tool call within a step. error is set when it raised."""

    tool_name: str
    output: dict | None = None
    error: str | None = None


@dataclass
class AgentStep:
    tool_results: list[ToolResult] = field(default_factory=list)


@dataclass
class AgentRunResult:
    steps: list[AgentStep] = field(default_factory=list)


def is_finish_success_result(result: ToolResult, finish_tool_name: str) -> bool:
    """True when result is a finish call that reported success."""
    return (
        result.tool_name == finish_tool_name
        and isinstance(result.output, dict)
        and result.output.get("success") is True
    )


def did_finish_successfully(run: AgentRunResult, finish_tool_name: str) -> bool:
    """Scan every step for a successful finish call."""
    return any(
        is_finish_success_result(result, finish_tool_name)
        for step in run.steps
        for result in step.tool_results
    )


_CONTROL_TOKEN_RE = re.compile(r"<\|[^|]+\|>")
_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _load_dict(text: str) -> dict | None:
    """Decode text as a JSON object, then as a Python dict literal.

    A JSON string holding an encoded object is unwrapped once.
    """
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        parsed = None
    if isinstance(parsed, str):
        return _load_dict(parsed.strip()) if parsed.strip().startswith("{") else None
    if isinstance(parsed, dict):
        return parsed

    try:
        parsed = ast.literal_eval(text)
    except (ValueError, TypeError, SyntaxError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _parse_tool_arguments(raw: str | None) -> dict:
    """Parse tool call arguments, repairing common model quirks.

    Each repair is tried only when the previous form did not decode:
    - control tokens such as ``\\t<|call|>`` appended by gpt-oss models
    - a markdown code fence around the JSON
    - Python-style dicts (single quotes, True/False/None)
    - trailing commas before } or ]
    - a JSON string that itself holds the encoded object

    Returns:
        The arguments, or {} when nothing decodes to an object.
    """
    if not raw or not raw.strip():
        return {}

    cleaned = _CONTROL_TOKEN_RE.sub("", raw).strip()
    fence = _CODE_FENCE_RE.match(cleaned)
    if fence:
        cleaned = fence.group(1)

    for candidate in (cleaned, _TRAILING_COMMA_RE.sub(r"\1", cleaned)):
        parsed = _load_dict(candidate)
        if parsed is not None:
            return parsed
    return {}


async def execute_tool_call(toolset: ToolSet, tool_name: str, arguments: dict) -> ToolResult:
    """Run one tool, turning failures into an error result for the model."""
    try:
        with anyio.fail_after(TOOL_TIMEOUT):
            output = await toolset.invoke(tool_name, arguments)
        return ToolResult(tool_name=tool_name, output=output)
    except TimeoutError:
        logger.warning("Tool '%s' timed out after %ds", tool_name, TOOL_TIMEOUT)
        return ToolResult(
            tool_name=tool_name,
            error=f"Tool error: '{tool_name}' timed out after {TOOL_TIMEOUT}s",
        )
    except ValueError as e:
        logger.warning("Tool '%s' rejected: %s", tool_name, e)
        return ToolResult(tool_name=tool_name, error=f"Tool error: {e}")
    except Exception as e:
        logger.exception("Tool '%s' failed", tool_name)
        return ToolResult(tool_name=tool_name, error=f"Failed to execute tool {tool_name}: {e}")


def _tool_message_content(result: ToolResult) -> str:
    if result.error is not None:
        return result.error
    return json.dumps(result.output)


# =============================================================================
# Conversations
# =============================================================================


@dataclass
class PendingToolCall:
    """A tool call requested by the model, before it is executed."""

    call_id: str
    name: str
    arguments: str


@dataclass
class Completion:
    tool_calls: list[PendingToolCall]
    prompt_tokens: int = 0
    completion_tokens: int = 0


class ChatCompletionsConversation:
    """Conversation state for /chat/completions providers."""

    def __init__(self, model: ChatModel, prompt: str, system: str | None, toolset: ToolSet):
        self.model = model
        self.tools = toolset.to_openai_functions()
        self.messages: list[dict] = []
        if system:
            self.messages.append({"role": "system", "content": system})
        self.messages.append({"role": "user", "content": prompt})

    def complete(self) -> Completion:
        response = self.model.client.chat.completions.create(
            model=self.model.name,
            messages=self.messages,
            tools=self.tools,
            tool_choice="auto",
        )
        assistant_message = response.choices[0].message
        self.messages.append(assistant_message.model_dump(exclude_none=True))

        completion = Completion(
            tool_calls=[
                PendingToolCall(call.id, call.function.name, call.function.arguments or "")
                for call in assistant_message.tool_calls or []
            ]
        )
        if response.usage:
            completion.prompt_tokens = response.usage.prompt_tokens
            completion.completion_tokens = response.usage.completion_tokens
        return completion

    def add_tool_result(self, call_id: str, content: str) -> None:
        self.messages.append({"role": "tool", "tool_call_id": call_id, "content": content})


class ResponsesConversation:
    """Conversation state for Responses API providers (codex_oauth).

    Nothing is stored server-side, so every request resends the whole
    input: the prompt, each function call and each function call output.
    """

    def __init__(self, model: ChatModel, prompt: str, instructions: str, toolset: ToolSet):
        self.model = model
        self.instructions = instructions
        self.tools = toolset.to_responses_functions()
        self.input: list[dict] = [{"role": "user", "content": prompt}]

    def complete(self) -> Completion:
        response = self.model.client.responses.create(
            model=self.model.name,
            instructions=self.instructions,
            input=self.input,
            tools=self.tools,
            tool_choice="auto",
            store=False,
        )

        completion = Completion(tool_calls=[])
        for item in response.output:
            if item.type != "function_call":
                continue
            self.input.append({
                "type": "function_call",
                "call_id": item.call_id,
                "name": item.name,
                "arguments": item.arguments or "",
            })
            completion.tool_calls.append(
                PendingToolCall(item.call_id, item.name, item.arguments or "")
            )
        if response.usage:
            completion.prompt_tokens = response.usage.input_tokens
            completion.completion_tokens = response.usage.output_tokens
        return completion

    def add_tool_result(self, call_id: str, content: str) -> None:
        self.input.append({"type": "function_call_output", "call_id": call_id, "output": content})


def start_conversation(
    model: ChatModel,
    prompt: str,
    request_options: ProviderRequestOptions,
    toolset: ToolSet,
) -> ChatCompletionsConversation | ResponsesConversation:
    """Pick the API the provider speaks, based on the request options."""
    if request_options.uses_responses_api:
        return ResponsesConversation(model, prompt, request_options.instructions, toolset)
    return ChatCompletionsConversation(model, prompt, request_options.system, toolset)


# =============================================================================
# Loop
# =============================================================================


async def run_agent(
    model: ChatModel,
    prompt: str,
    request_options: ProviderRequestOptions,
    toolset: ToolSet,
    finish_tool_name: str,
    max_steps: int = MAX_AGENT_STEPS,
) -> AgentRunResult:
    """Drive the model through the tool set until it finishes.

    One step is one completion plus its tool calls, run one at a time in
    order. The loop stops after a step containing a successful finish call,
    when the model answers without tool calls, or after max_steps steps.

    Returns:
        The steps with their tool results, in order.
    """
    conversation = start_conversation(model, prompt, request_options, toolset)
    run = AgentRunResult()
    prompt_tokens = 0
    completion_tokens = 0

    while len(run.steps) < max_steps:
        completion = conversation.complete()
        prompt_tokens += completion.prompt_tokens
        completion_tokens += completion.completion_tokens
        logger.info(
            "LLM call %d: prompt=%d completion=%d tool_calls=%d",
            len(run.steps) + 1,
            completion.prompt_tokens,
            completion.completion_tokens,
            len(completion.tool_calls),
        )

        step = AgentStep()
        for tool_call in completion.tool_calls:
            arguments = _parse_tool_arguments(tool_call.arguments)
            if not arguments and tool_call.arguments.strip():
                logger.warning(
                    "Failed to parse arguments for %s: %r", tool_call.name, tool_call.arguments,
                )

            logger.info("Tool call: %s args=%s", tool_call.name, arguments)
            result = await execute_tool_call(toolset, tool_call.name, arguments)
            step.tool_results.append(result)
            conversation.add_tool_result(tool_call.call_id, _tool_message_content(result))
        run.steps.append(step)

        if not completion.tool_calls:
            logger.info("Model stopped calling tools after %d steps", len(run.steps))
            break
        if any(is_finish_success_result(r, finish_tool_name) for r in step.tool_results):
            logger.info("%s succeeded after %d steps", finish_tool_name, len(run.steps))
            break
    else:
        logger.warning("Agent hit step budget (%d). Stopping.", max_steps)

    logger.info(
        "Agent run complete: steps=%d prompt_total=%d completion_total=%d",
        len(run.steps), prompt_tokens, completion_tokens,
    )
    return run
