from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gembreak.database.entities.base import Base, utcnow


class HiddenChat(Base):
    """Per-user tombstone removing a session from that user's listing."""

    __tablename__ = "hidden_chats"
    __table_args__ = (UniqueConstraint("user_id", "session_key", name="uq_hidden_chats_user_session"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    session_key: Mapped[str] = mapped_column(String(255))
    hidden_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
