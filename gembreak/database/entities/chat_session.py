import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gembreak.database.entities.base import Base, isoformat_utc, utcnow


class MessageRole(str, enum.Enum):
    """Roles stored in the message log."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatSession(Base):
    """A conversation keyed by a client-chosen string and owned by one user."""

    __tablename__ = "chat_sessions"
    __table_args__ = (
        Index("ix_chat_sessions_owner_id_updated_at", "owner_id", "updated_at"),
    )

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(32), index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    messages: Mapped[List["ChatMessage"]] = relationship(
        back_populates="session",
        order_by=lambda: [ChatMessage.timestamp, ChatMessage.id],
        cascade="all, delete-orphan",
    )


class ChatMessage(Base):
    """One entry of a session's append-only message log."""

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_key: Mapped[str] = mapped_column(ForeignKey("chat_sessions.key"), index=True)
    role: Mapped[MessageRole] = mapped_column(
        Enum(MessageRole, values_callable=lambda roles: [r.value for r in roles], native_enum=False)
    )
    content: Mapped[str] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    session: Mapped[ChatSession] = relationship(back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": isoformat_utc(self.timestamp),
        }
