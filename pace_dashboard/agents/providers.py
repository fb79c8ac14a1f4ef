"""
LLM provider adapters for the chat tool-use loop.

Each provider owns the three provider-specific pieces of the loop:
- encoding the tool catalog into its function-calling format
- extracting text and tool calls from a response (ProviderTurn)
- encoding tool results back into conversation messages

The conversation driver only sees ProviderTurn and plain message dicts, so
swapping providers never touches the loop itself.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import anthropic
import ollama

from .catalog import ToolSpec, TOOL_CATALOG, to_anthropic_tools, to_ollama_tools
from ..core.config import PROVIDER_ROUND_BUDGETS, Settings


class ProviderError(Exception):
    """Provider is misconfigured or its API call failed."""


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderTurn:
    """Provider-neutral view of one model response."""
    text_blocks: List[str]
    tool_calls: List[ToolCall]
    stop_reason: str
    assistant_message: Dict[str, Any]

    @property
    def text(self) -> str:
        return "".join(self.text_blocks)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from an SDK object or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class LLMProvider(ABC):
    """Abstract interface for the model behind the chat assistant."""

    name: str = "base"

    def __init__(self, model: str, max_rounds: Optional[int] = None):
        self.model = model
        self.max_rounds = max_rounds or PROVIDER_ROUND_BUDGETS.get(self.name, 10)

    @abstractmethod
    def format_tools(self, catalog: List[ToolSpec]) -> List[Dict[str, Any]]:
        """Translate the tool catalog into this provider's format."""
        pass

    @abstractmethod
    async def create(self, system: str, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> Any:
        """Send one request to the provider and return its raw response."""
        pass

    @abstractmethod
    def parse_response(self, response: Any) -> ProviderTurn:
        """Extract text blocks and tool calls from a raw response."""
        pass

    @abstractmethod
    def tool_result_messages(self, results: List[Tuple[ToolCall, Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Encode executed tool results as the messages that follow the assistant turn."""
        pass

    @abstractmethod
    def wants_tools(self, turn: ProviderTurn) -> bool:
        """True when the response asks for tools to be run before answering."""
        pass

    async def complete(self, system: str, messages: List[Dict[str, Any]],
                       catalog: List[ToolSpec] = None) -> ProviderTurn:
        """Run one provider round and return the parsed turn."""
        tools = self.format_tools(catalog if catalog is not None else TOOL_CATALOG)
        response = await self.create(system, messages, tools)
        return self.parse_response(response)

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": self.model, "max_rounds": self.max_rounds}


class AnthropicProvider(LLMProvider):
    """Claude via the Anthropic Messages API."""

    name = "anthropic"

    def __init__(self, model: str, api_key: Optional[str] = None, max_tokens: int = 4096,
                 max_rounds: Optional[int] = None, client: Any = None):
        super().__init__(model, max_rounds)
        self.max_tokens = max_tokens
        if client is None:
            if not api_key:
                raise ProviderError("ANTHROPIC_API_KEY is not configured")
            client = anthropic.AsyncAnthropic(api_key=api_key)
        self.client = client

    def format_tools(self, catalog: List[ToolSpec]) -> List[Dict[str, Any]]:
        return to_anthropic_tools(catalog)

    async def create(self, system: str, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> Any:
        return await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            tools=tools,
            messages=messages,
        )

    def parse_response(self, response: Any) -> ProviderTurn:
        text_blocks = []
        tool_calls = []
        content = []
        for block in _field(response, "content", []) or []:
            block_type = _field(block, "type")
            if block_type == "text":
                text = _field(block, "text", "")
                text_blocks.append(text)
                content.append({"type": "text", "text": text})
            elif block_type == "tool_use":
                call = ToolCall(
                    id=_field(block, "id", ""),
                    name=_field(block, "name", ""),
                    arguments=dict(_field(block, "input", {}) or {}),
                )
                tool_calls.append(call)
                content.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})

        return ProviderTurn(
            text_blocks=text_blocks,
            tool_calls=tool_calls,
            stop_reason=_field(response, "stop_reason", "") or "",
            assistant_message={"role": "assistant", "content": content},
        )

    def wants_tools(self, turn: ProviderTurn) -> bool:
        return turn.stop_reason == "tool_use" and bool(turn.tool_calls)

    def tool_result_messages(self, results: List[Tuple[ToolCall, Dict[str, Any]]]) -> List[Dict[str, Any]]:
        # All results of a round travel in one user message
        return [{
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": call.id, "content": json.dumps(result)}
                for call, result in results
            ],
        }]


class OllamaProvider(LLMProvider):
    """Local models served by Ollama, using its tools parameter."""

    name = "ollama"

    def __init__(self, model: str, host: Optional[str] = None, max_rounds: Optional[int] = None,
                 client: Any = None, options: Optional[Dict[str, Any]] = None):
        super().__init__(model, max_rounds)
        self.client = client or ollama.AsyncClient(host=host)
        self.options = options or {"temperature": 0.7, "top_p": 0.9}

    def format_tools(self, catalog: List[ToolSpec]) -> List[Dict[str, Any]]:
        return to_ollama_tools(catalog)

    async def create(self, system: str, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> Any:
        # Ollama takes the system prompt as the first message
        return await self.client.chat(
            model=self.model,
            messages=[{"role": "system", "content": system}] + list(messages),
            tools=tools,
            options=self.options,
        )

    def parse_response(self, response: Any) -> ProviderTurn:
        message = _field(response, "message", {}) or {}
        text = _field(message, "content", "") or ""

        tool_calls = []
        raw_calls = []
        for index, raw_call in enumerate(_field(message, "tool_calls", []) or []):
            function = _field(raw_call, "function", {}) or {}
            arguments = _field(function, "arguments", {}) or {}
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments)
                except ValueError:
                    arguments = {}
            name = _field(function, "name", "") or ""
            tool_calls.append(ToolCall(id=f"{name}_{index}", name=name, arguments=dict(arguments)))
            raw_calls.append({"function": {"name": name, "arguments": dict(arguments)}})

        assistant_message = {"role": "assistant", "content": text}
        if raw_calls:
            assistant_message["tool_calls"] = raw_calls

        return ProviderTurn(
            text_blocks=[text] if text else [],
            tool_calls=tool_calls,
            stop_reason=_field(response, "done_reason", "") or "",
            assistant_message=assistant_message,
        )

    def wants_tools(self, turn: ProviderTurn) -> bool:
        # Ollama reports done_reason "stop" even when it returns tool calls
        return bool(turn.tool_calls)

    def tool_result_messages(self, results: List[Tuple[ToolCall, Dict[str, Any]]]) -> List[Dict[str, Any]]:
        return [
            {"role": "tool", "content": json.dumps(result), "tool_name": call.name}
            for call, result in results
        ]


def get_llm_provider(settings: Settings) -> LLMProvider:
    """Build the configured provider."""
    if settings.llm_provider == "ollama":
        return OllamaProvider(
            model=settings.ollama_model,
            host=settings.ollama_host,
            max_rounds=settings.max_rounds,
        )
    return AnthropicProvider(
        model=settings.anthropic_model,
        api_key=settings.anthropic_api_key,
        max_tokens=settings.anthropic_max_tokens,
        max_rounds=settings.max_rounds,
    )
