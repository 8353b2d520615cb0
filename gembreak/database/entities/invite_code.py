from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gembreak.database.entities.base import Base, isoformat_utc, utcnow

ADMIN_CREATOR = "admin"


class InviteCode(Base):
    """
    Single-use registration code.

    ``created_by`` is ``"admin"`` for codes issued from the admin API, or the
    id of the user who received the code on registration.
    """

    __tablename__ = "invite_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str] = mapped_column(String(32), index=True)
    used_by: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "isUsed": self.is_used,
            "createdBy": self.created_by,
            "usedBy": self.used_by,
            "usedAt": isoformat_utc(self.used_at) if self.used_at else None,
            "createdAt": isoformat_utc(self.created_at),
        }
