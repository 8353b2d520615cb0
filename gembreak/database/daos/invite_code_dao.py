import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gembreak.database.entities import InviteCode


def generate_invite_code() -> str:
    """16-character hex code."""
    return secrets.token_hex(8)


class InviteCodeDao:
    """Queries over the `invite_codes` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, code: str) -> Optional[InviteCode]:
        stmt = select(InviteCode).where(InviteCode.code == code)
        return self.db.scalars(stmt).first()

    def get_unused(self, code: str) -> Optional[InviteCode]:
        stmt = select(InviteCode).where(InviteCode.code == code, InviteCode.is_used.is_(False))
        return self.db.scalars(stmt).first()

    def create(self, created_by: str) -> InviteCode:
        code = generate_invite_code()
        while self.get(code) is not None:
            code = generate_invite_code()
        invite = InviteCode(code=code, is_used=False, created_by=created_by)
        self.db.add(invite)
        self.db.flush()
        return invite

    def mark_used(self, invite: InviteCode, user_id: str, now: datetime) -> None:
        invite.is_used = True
        invite.used_by = user_id
        invite.used_at = now
        self.db.flush()

    def list_created_by(self, created_by: str) -> List[InviteCode]:
        stmt = (
            select(InviteCode)
            .where(InviteCode.created_by == created_by)
            .order_by(InviteCode.created_at.desc(), InviteCode.id.desc())
        )
        return list(self.db.scalars(stmt))

    def latest_created_by(self, created_by: str) -> Optional[InviteCode]:
        codes = self.list_created_by(created_by)
        return codes[0] if codes else None

    def count(self, created_by: str, is_used: Optional[bool] = None) -> int:
        stmt = select(func.count()).select_from(InviteCode).where(InviteCode.created_by == created_by)
        if is_used is not None:
            stmt = stmt.where(InviteCode.is_used.is_(is_used))
        return self.db.scalar(stmt)
