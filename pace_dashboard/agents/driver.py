"""
Conversation driver: the chat tool-use loop.

    AWAITING_MODEL -> (TOOL_REQUESTED -> AWAITING_MODEL)* -> DONE

Each round sends the running message list, the system prompt and the tool
catalog to the provider. A response without tool calls ends the loop with its
text. Otherwise every requested tool runs in order, the assistant turn and the
tool results are appended, and the next round starts. The provider is called
at most max_rounds times; running out yields FALLBACK_RESPONSE.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.config import CHAT_LOGS_BUCKET, CHAT_LOGS_PREFIX
from ..core.schema import utc_timestamp, filename_timestamp
from ..store.index import IDocumentStore
from ..util.logging import logger
from .catalog import ToolSpec, TOOL_CATALOG
from .context import ChatContext, ContextAssembler
from .executor import ToolExecutor
from .providers import LLMProvider

FALLBACK_RESPONSE = "I processed your request but couldn't generate a text response."


@dataclass
class ChatMessage:
    """One turn of the conversation as sent by the client."""
    role: str
    content: Any
    timestamp: Optional[Any] = None

    def to_provider(self) -> Dict[str, Any]:
        role = "assistant" if self.role == "assistant" else "user"
        return {"role": role, "content": self.content}


@dataclass
class ChatResult:
    """Final answer plus what it took to produce it."""
    response: str
    rounds: int
    tool_calls: List[str] = field(default_factory=list)
    exhausted: bool = False


def build_messages(history: List[ChatMessage], message: str) -> List[Dict[str, Any]]:
    """Provider message list: replayed history then the new user message."""
    messages = [m.to_provider() for m in history]
    messages.append({"role": "user", "content": message})
    return messages


class ConversationDriver:
    """
    Runs one chat turn to completion.

    The provider, executor, context assembler and store are created once at
    startup and shared; the message list lives only for the duration of run().
    """

    def __init__(self, provider: LLMProvider, executor: ToolExecutor, assembler: ContextAssembler,
                 store: IDocumentStore, max_rounds: Optional[int] = None,
                 catalog: List[ToolSpec] = None):
        self.provider = provider
        self.executor = executor
        self.assembler = assembler
        self.store = store
        self.max_rounds = max_rounds or provider.max_rounds
        self.catalog = catalog if catalog is not None else TOOL_CATALOG

    async def run(self, message: str, history: List[ChatMessage] = None,
                  context: ChatContext = None) -> ChatResult:
        """
        Answer a user message, running tools as the model requests them.

        Args:
            message: The new user message
            history: Earlier turns replayed by the client
            context: Org/process the user is viewing

        Returns:
            ChatResult with the final text
        """
        context = context or ChatContext()
        system_prompt = await self.assembler.build_system_prompt(context)
        messages = build_messages(history or [], message)
        return await self.run_loop(system_prompt, messages, context.process_id)

    async def run_loop(self, system_prompt: str, messages: List[Dict[str, Any]],
                       process_id: Optional[str] = None) -> ChatResult:
        """The round loop over an already assembled prompt and message list."""
        executed: List[str] = []

        for round_index in range(self.max_rounds):
            turn = await self.provider.complete(system_prompt, messages, self.catalog)
            logger.log_round(round_index, turn.stop_reason, [c.name for c in turn.tool_calls])

            if not self.provider.wants_tools(turn):
                return ChatResult(
                    response=turn.text or FALLBACK_RESPONSE,
                    rounds=round_index + 1,
                    tool_calls=executed,
                )

            # Tools run one at a time, in the order the model listed them
            results = []
            for call in turn.tool_calls:
                result = await self.executor.execute(call.name, call.arguments, process_id)
                results.append((call, result))
                executed.append(call.name)

            messages.append(turn.assistant_message)
            messages.extend(self.provider.tool_result_messages(results))

        logger.warning(f"Chat loop hit the round budget ({self.max_rounds}) without a final answer")
        return ChatResult(response=FALLBACK_RESPONSE, rounds=self.max_rounds,
                          tool_calls=executed, exhausted=True)

    def save_chat_log(self, user_message: str, answer: str) -> None:
        """Persist the exchange as a markdown chat log. Errors are logged, never raised."""
        try:
            ts = filename_timestamp(utc_timestamp())
            log = f"## Dashboard Chat — {ts}\n**User:** {user_message}\n**Pace:** {answer}\n"
            self.store.upload_text(CHAT_LOGS_BUCKET, f"{CHAT_LOGS_PREFIX}/{ts}.md", log,
                                   content_type="text/markdown", overwrite=False, cache_control="no-cache")
        except Exception as e:
            logger.error(f"Failed to save chat log: {e}")
