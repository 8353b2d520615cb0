"""
Gemini chat model client.

Wraps ``ChatGoogleGenerativeAI`` with every safety category set to
``BLOCK_NONE`` (moderation is left to the provider's own block signal) and the
``google_search`` tool bound. Each response is normalised into a
:class:`ModelReply` so the chat pipeline never inspects provider metadata.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.tools import StructuredTool
from langchain_google_genai import ChatGoogleGenerativeAI, HarmBlockThreshold, HarmCategory
from pydantic import BaseModel, Field

from gembreak.database.config.config import settings

logger = logging.getLogger(__name__)

SEARCH_TOOL_NAME = "google_search"

PERMISSIVE_SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
}

BLOCKED_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}
_UNSPECIFIED = {"", "0", "BLOCK_REASON_UNSPECIFIED", "BLOCKED_REASON_UNSPECIFIED"}


class SearchInput(BaseModel):
    query: str = Field(..., description="The search query to find information about")


def mock_search(query: str) -> Dict[str, Any]:
    """Stand-in for a web search backend; returns two canned results."""
    logger.info("Mock search for: %s", query)
    return {
        "results": [
            {
                "title": f'Mock Result 1 for "{query}"',
                "snippet": f"This is a simulated snippet for the query: {query}.",
                "url": f"https://example.com/search?q={quote(query)}&result=1",
            },
            {
                "title": f'Mock Result 2: More about "{query}"',
                "snippet": f"Another piece of information regarding {query}.",
                "url": f"https://example.com/search?q={quote(query)}&result=2",
            },
        ],
        "searchInformation": {"totalResults": "2"},
    }


def build_search_tool() -> StructuredTool:
    return StructuredTool.from_function(
        func=mock_search,
        name=SEARCH_TOOL_NAME,
        description="Performs a Google search to find information on the web based on a query.",
        args_schema=SearchInput,
    )


@dataclass
class ToolCall:
    name: str
    args: Dict[str, Any]
    id: Optional[str] = None


@dataclass
class ModelReply:
    """One model response: its text, requested tool calls and block reason."""

    message: AIMessage
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    block_reason: Optional[str] = None

    @classmethod
    def from_message(cls, message: AIMessage) -> "ModelReply":
        calls = [
            ToolCall(name=c.get("name", ""), args=dict(c.get("args") or {}), id=c.get("id"))
            for c in (message.tool_calls or [])
        ]
        return cls(message=message, text=message_text(message), tool_calls=calls,
                   block_reason=block_reason(message))


def message_text(message: BaseMessage) -> str:
    """Concatenated text parts of a message (content may be a string or a list of parts)."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _reason_name(value) -> str:
    name = getattr(value, "name", None)
    return str(name if name is not None else value).strip()


def block_reason(message: AIMessage) -> Optional[str]:
    """Provider block signal carried in the response metadata, if any."""
    metadata = message.response_metadata or {}
    feedback = metadata.get("prompt_feedback") or {}
    if isinstance(feedback, dict):
        reason = _reason_name(feedback.get("block_reason", ""))
        if reason not in _UNSPECIFIED:
            return reason
    finish_reason = _reason_name(metadata.get("finish_reason", ""))
    if finish_reason in BLOCKED_FINISH_REASONS:
        return finish_reason
    return None


class GeminiChatModel:
    """Chat model client used by the pipeline: ``invoke(messages) -> ModelReply``."""

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None,
                 temperature: Optional[float] = None):
        api_key = api_key or settings.GEMINI_API_KEY
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY not set. Please configure it in environment or .env")
        self.llm = ChatGoogleGenerativeAI(
            model=model or settings.GEMINI_MODEL,
            google_api_key=api_key,
            temperature=settings.MODEL_TEMPERATURE if temperature is None else temperature,
            safety_settings=PERMISSIVE_SAFETY_SETTINGS,
        )
        self.runnable = self.llm.bind_tools([build_search_tool()])

    def invoke(self, messages: Sequence[BaseMessage]) -> ModelReply:
        response = self.runnable.invoke(list(messages))
        reply = ModelReply.from_message(response)
        logger.info(
            "Model replied: %s chars, tool_calls=%s, block_reason=%s",
            len(reply.text),
            json.dumps([c.name for c in reply.tool_calls]),
            reply.block_reason,
        )
        return reply
