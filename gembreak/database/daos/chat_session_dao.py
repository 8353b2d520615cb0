from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gembreak.database.entities import ChatMessage, ChatSession, MessageRole
from gembreak.database.entities.base import utcnow


class ChatSessionDao:
    """Queries over chat sessions and their message log."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[ChatSession]:
        return self.db.get(ChatSession, key)

    def get_owned(self, key: str, owner_id: str) -> Optional[ChatSession]:
        stmt = select(ChatSession).where(ChatSession.key == key, ChatSession.owner_id == owner_id)
        return self.db.scalars(stmt).first()

    def create(self, key: str, owner_id: str, now: datetime) -> ChatSession:
        chat_session = ChatSession(key=key, owner_id=owner_id, created_at=now, updated_at=now)
        self.db.add(chat_session)
        self.db.flush()
        return chat_session

    def add_message(self, chat_session: ChatSession, role: MessageRole, content: str,
                    now: Optional[datetime] = None) -> ChatMessage:
        now = now or utcnow()
        message = ChatMessage(session_key=chat_session.key, role=role, content=content, timestamp=now)
        self.db.add(message)
        chat_session.updated_at = now
        self.db.flush()
        return message

    def messages(self, key: str) -> List[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.session_key == key)
            .order_by(ChatMessage.timestamp, ChatMessage.id)
        )
        return list(self.db.scalars(stmt))

    def list_for_owner(self, owner_id: str, exclude_keys: Iterable[str] = ()) -> List[ChatSession]:
        stmt = select(ChatSession).where(ChatSession.owner_id == owner_id)
        exclude_keys = list(exclude_keys)
        if exclude_keys:
            stmt = stmt.where(ChatSession.key.not_in(exclude_keys))
        stmt = stmt.order_by(ChatSession.updated_at.desc(), ChatSession.key)
        return list(self.db.scalars(stmt))

    def list_all(self) -> List[ChatSession]:
        stmt = select(ChatSession).order_by(ChatSession.updated_at.desc(), ChatSession.key)
        return list(self.db.scalars(stmt))

    def count(self, updated_since: Optional[datetime] = None) -> int:
        stmt = select(func.count()).select_from(ChatSession)
        if updated_since is not None:
            stmt = stmt.where(ChatSession.updated_at >= updated_since)
        return self.db.scalar(stmt)

    def count_messages(self) -> int:
        return self.db.scalar(select(func.count()).select_from(ChatMessage))

    def activity_by_owner(self):
        """Per-owner (owner_id, first_activity, last_activity, session_count) rows."""
        stmt = (
            select(
                ChatSession.owner_id,
                func.min(ChatSession.created_at),
                func.max(ChatSession.updated_at),
                func.count(ChatSession.key),
            )
            .group_by(ChatSession.owner_id)
        )
        return self.db.execute(stmt).all()

    def message_counts_by_owner(self) -> dict:
        stmt = (
            select(ChatSession.owner_id, func.count(ChatMessage.id))
            .join(ChatMessage, ChatMessage.session_key == ChatSession.key)
            .group_by(ChatSession.owner_id)
        )
        return {owner_id: count for owner_id, count in self.db.execute(stmt).all()}
