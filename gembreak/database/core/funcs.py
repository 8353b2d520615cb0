"""
Session store and session directory operations.

Each public function runs in its own transaction. A chat turn therefore
performs independent writes (user append, then assistant append), so a
persisted user message without a reply is an expected state.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from gembreak.database.config.config import settings
from gembreak.database.core.db import session_scope
from gembreak.database.daos import ChatSessionDao, HiddenChatDao
from gembreak.database.entities import ChatMessage, ChatSession, MessageRole
from gembreak.database.entities.base import isoformat_utc, utcnow
from gembreak.errors import BadRequest, Forbidden, NotFound

logger = logging.getLogger(__name__)

NO_TEXT_SENTINEL = "[The model did not provide a textual response after processing.]"


@dataclass(frozen=True)
class StoredMessage:
    role: MessageRole
    content: str
    timestamp: datetime
    id: Optional[int] = None

    @classmethod
    def from_entity(cls, message: ChatMessage) -> "StoredMessage":
        return cls(role=message.role, content=message.content, timestamp=message.timestamp, id=message.id)

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content, "timestamp": isoformat_utc(self.timestamp)}


@dataclass(frozen=True)
class SessionSnapshot:
    """Detached view of a chat session and its full message log."""

    key: str
    owner_id: str
    title: Optional[str]
    created_at: datetime
    updated_at: datetime
    messages: List[StoredMessage] = field(default_factory=list)
    appended_id: Optional[int] = None
    """Id of the message written by the append that produced this snapshot."""

    @classmethod
    def from_entity(cls, chat_session: ChatSession, messages: Iterable[ChatMessage],
                    appended_id: Optional[int] = None) -> "SessionSnapshot":
        return cls(
            key=chat_session.key,
            owner_id=chat_session.owner_id,
            title=chat_session.title,
            created_at=chat_session.created_at,
            updated_at=chat_session.updated_at,
            messages=[StoredMessage.from_entity(m) for m in messages],
            appended_id=appended_id,
        )

    def history_before_append(self) -> List[StoredMessage]:
        """The log without the appended message, whatever its position after sorting."""
        return [m for m in self.messages if m.id != self.appended_id]


def parse_owner_id(value) -> str:
    """Normalise a user reference to 32-char UUID hex, or raise BadRequest."""
    if not value or not isinstance(value, str):
        raise BadRequest("userId is required")
    try:
        return uuid.UUID(value).hex
    except ValueError:
        raise BadRequest("Invalid userId format")


def derive_title(content: str) -> Optional[str]:
    """Title for a session from an assistant reply, or None when not eligible."""
    if not content or not content.strip() or content == NO_TEXT_SENTINEL:
        return None
    limit = settings.TITLE_MAX_LENGTH
    return content[:limit] + ("..." if len(content) > limit else "")


def _append_user_turn(session_key: str, owner_id: str, text: str) -> SessionSnapshot:
    with session_scope() as db:
        dao = ChatSessionDao(db)
        # The first statement takes the write lock; stamp only once it is held.
        chat_session = dao.get(session_key)
        now = utcnow()
        if chat_session is None:
            chat_session = dao.create(session_key, owner_id, now)
            logger.info("Created chat session %s for owner %s", session_key, owner_id)
        elif chat_session.owner_id != owner_id:
            raise NotFound("Chat session not found")
        message = dao.add_message(chat_session, MessageRole.USER, text, now)
        return SessionSnapshot.from_entity(chat_session, dao.messages(session_key), appended_id=message.id)


def append_user_turn(session_key: str, owner_id: str, text: str) -> SessionSnapshot:
    """
    Append a user message, creating the session on first use.

    Raises:
        NotFound: the key already belongs to another owner.
    """
    try:
        return _append_user_turn(session_key, owner_id, text)
    except IntegrityError:
        # A concurrent request created the same key between our read and insert.
        logger.info("Chat session %s created concurrently, retrying append", session_key)
        return _append_user_turn(session_key, owner_id, text)


def append_assistant_turn(session_key: str, content: str, derive_title_from: bool = True) -> None:
    """
    Append an assistant message.

    The title is derived from the message when the session has none, unless
    `derive_title_from` is False (placeholders for blocked or failed turns).
    """
    with session_scope() as db:
        dao = ChatSessionDao(db)
        chat_session = dao.get(session_key)
        if chat_session is None:
            raise NotFound("Chat session not found")
        dao.add_message(chat_session, MessageRole.ASSISTANT, content)
        if derive_title_from and not chat_session.title:
            title = derive_title(content)
            if title:
                chat_session.title = title
                logger.info("Titled chat session %s: %r", session_key, title)


def get_history(session_key: str, owner_id: str) -> List[StoredMessage]:
    """Messages in timestamp order; empty when the (key, owner) pair has no session."""
    with session_scope() as db:
        dao = ChatSessionDao(db)
        if dao.get_owned(session_key, owner_id) is None:
            return []
        return [StoredMessage.from_entity(m) for m in dao.messages(session_key)]


def list_sessions(owner_id: str, exclude_keys: Iterable[str] = ()) -> List[dict]:
    with session_scope() as db:
        sessions = ChatSessionDao(db).list_for_owner(owner_id, exclude_keys)
        return [
            {"id": s.key, "title": s.title, "lastActivity": isoformat_utc(s.updated_at)}
            for s in sessions
        ]


def list_visible_sessions(owner_id: str) -> List[dict]:
    """The owner's sessions minus the ones they hid, most recent first."""
    with session_scope() as db:
        hidden = HiddenChatDao(db).hidden_keys(owner_id)
    return list_sessions(owner_id, hidden)


def hide_session(owner_id: str, session_key: str) -> bool:
    """
    Hide a session from the owner's listing.

    Returns:
        True when a mark was inserted, False when the session was already hidden.

    Raises:
        Forbidden: the requester does not own the session.
    """
    try:
        with session_scope() as db:
            hidden = HiddenChatDao(db)
            if hidden.find(owner_id, session_key) is not None:
                return False
            if ChatSessionDao(db).get_owned(session_key, owner_id) is None:
                raise Forbidden("Access denied or session not found for user")
            hidden.create(owner_id, session_key)
    except IntegrityError:
        logger.info("Chat session %s hidden concurrently for %s", session_key, owner_id)
        return False
    logger.info("Hid chat session %s for %s", session_key, owner_id)
    return True
