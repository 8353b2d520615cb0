"""chat_pipeline
=================

One conversational turn against the chat model.

:class:`ChatPipeline` exposes a single entrypoint, :meth:`ChatPipeline.run_turn`,
which:

- appends the user's message to the session (creating the session on first use),
- replays the earlier messages to the model behind the persona preamble,
- answers ``google_search`` tool calls with the stubbed search, up to a fixed
  number of round trips,
- persists exactly one assistant message: the reply, a blocked-content
  placeholder, or an error placeholder.

The turn is strictly sequential. There is no retry, no streaming and no
cancellation; a caller that disconnects still gets its turn persisted.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from gembreak.api.gemini_client import SEARCH_TOOL_NAME, ModelReply, ToolCall, mock_search
from gembreak.database.config.config import settings
from gembreak.database.core.funcs import (
    NO_TEXT_SENTINEL,
    StoredMessage,
    append_assistant_turn,
    append_user_turn,
    parse_owner_id,
)
from gembreak.database.core.persona_registry import get_primary_prompt_text
from gembreak.database.entities import MessageRole
from gembreak.errors import BadRequest, ToolLoopExceeded, UpstreamBlocked

logger = logging.getLogger(__name__)

# Stored role -> LangChain message class understood by the provider adapter.
PROVIDER_MESSAGE_TYPES = {
    MessageRole.USER: HumanMessage,
    MessageRole.ASSISTANT: AIMessage,
    MessageRole.SYSTEM: SystemMessage,
}


class ChatModel(Protocol):
    def invoke(self, messages: Sequence[BaseMessage]) -> ModelReply: ...


@dataclass
class TurnResult:
    """Terminal outcome of a turn: reply text, or an error with its HTTP status."""

    text: Optional[str] = None
    error: Optional[str] = None
    is_blocked: bool = False
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> Dict[str, Any]:
        if self.ok:
            return {"text": self.text}
        body: Dict[str, Any] = {"error": self.error}
        if self.is_blocked:
            body["isBlocked"] = True
        return body


def to_provider_message(message: StoredMessage) -> BaseMessage:
    return PROVIDER_MESSAGE_TYPES[message.role](content=message.content)


def validate_turn_input(session_key, owner_id, user_text) -> str:
    """Check the fields of a turn request and return the normalised owner id.

    Raises:
        BadRequest: a field is missing or ``owner_id`` is not a UUID.
    """
    if not owner_id:
        raise BadRequest("userId is required")
    if not session_key or not isinstance(session_key, str):
        raise BadRequest("sessionId is required")
    if not user_text or not isinstance(user_text, str):
        raise BadRequest("prompt is required")
    return parse_owner_id(owner_id)


class ChatPipeline:
    """Runs chat turns against a model client.

    Args:
        model: Object with ``invoke(messages) -> ModelReply``; in production a
            :class:`~gembreak.api.gemini_client.GeminiChatModel`.
        search: Callable executing the search tool for a query.
        max_tool_rounds: Round trips allowed before the turn fails with
            :class:`~gembreak.errors.ToolLoopExceeded`. Defaults to
            ``settings.MAX_TOOL_ROUNDS``.
    """

    def __init__(
        self,
        model: ChatModel,
        search: Callable[[str], Dict[str, Any]] = mock_search,
        max_tool_rounds: Optional[int] = None,
    ):
        self.model = model
        self.search = search
        self.max_tool_rounds = settings.MAX_TOOL_ROUNDS if max_tool_rounds is None else max_tool_rounds

    def run_turn(self, session_key: str, owner_id: str, user_text: str,
                 persona_text: Optional[str] = None) -> TurnResult:
        """Run one turn and persist its outcome.

        Args:
            session_key: Client-chosen session identifier.
            owner_id: User reference owning the session (UUID hex).
            user_text: The new user message.
            persona_text: Instruction preamble. The primary persona is used
                when omitted.

        Returns:
            TurnResult: reply text, a blocked notice (400) or an error (500).

        Raises:
            BadRequest: a required field is missing or malformed; nothing is stored.
            NotFound: the session key belongs to another owner; nothing is stored.
        """
        owner_id = validate_turn_input(session_key, owner_id, user_text)

        snapshot = append_user_turn(session_key, owner_id, user_text)
        history = snapshot.history_before_append()
        logger.info("Turn started: session=%s owner=%s history=%s", session_key, owner_id, len(history))
        try:
            if not persona_text:
                persona_text = get_primary_prompt_text()
            return self._respond(session_key, history, user_text, persona_text)
        except Exception as exc:
            logger.exception("Chat turn failed for session %s", session_key)
            error_text = str(exc) or exc.__class__.__name__
            try:
                append_assistant_turn(session_key, f"[Error processing request: {error_text}]",
                                      derive_title_from=False)
            except Exception:
                logger.exception("Failed to save error message for session %s", session_key)
            return TurnResult(error=error_text, status_code=500)

    def _respond(self, session_key: str, history: List[StoredMessage], user_text: str,
                 persona_text: Optional[str]) -> TurnResult:
        messages: List[BaseMessage] = []
        if persona_text:
            messages.append(SystemMessage(content=persona_text))
        messages.extend(to_provider_message(m) for m in history)
        messages.append(HumanMessage(content=user_text))

        reply = self.model.invoke(messages)
        rounds = 0
        while reply.tool_calls:
            unknown = [c.name for c in reply.tool_calls if c.name != SEARCH_TOOL_NAME]
            if unknown:
                logger.warning("Model called unknown tool(s): %s", ", ".join(unknown))
                break
            if rounds >= self.max_tool_rounds:
                raise ToolLoopExceeded(rounds)
            rounds += 1
            messages.append(reply.message)
            for call in reply.tool_calls:
                messages.append(ToolMessage(
                    content=json.dumps(self._run_search(call)),
                    tool_call_id=call.id or call.name,
                    name=call.name,
                ))
            reply = self.model.invoke(messages)

        if reply.block_reason:
            blocked = UpstreamBlocked(reply.block_reason)
            logger.warning("Model response blocked for session %s: %s", session_key, reply.block_reason)
            append_assistant_turn(session_key, f"[AI response blocked: {reply.block_reason}]",
                                  derive_title_from=False)
            return TurnResult(error=blocked.detail, is_blocked=True, status_code=blocked.status_code)

        text = reply.text
        if not text and not reply.tool_calls:
            logger.warning("Model returned no text for session %s", session_key)
            text = NO_TEXT_SENTINEL
        append_assistant_turn(session_key, text)
        logger.info("Turn finished: session=%s tool_rounds=%s chars=%s", session_key, rounds, len(text))
        return TurnResult(text=text)

    def _run_search(self, call: ToolCall) -> Dict[str, Any]:
        query = call.args.get("query")
        if not query:
            logger.error("Search tool called without a query")
            return {"error": "Search query was missing."}
        logger.info("Model requested %s with query %r", call.name, query)
        try:
            return self.search(query)
        except Exception as exc:
            logger.exception("Search tool failed")
            return {"error": f"Failed to execute search: {exc}"}
