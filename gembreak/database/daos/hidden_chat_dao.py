from typing import Optional, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from gembreak.database.entities import HiddenChat


class HiddenChatDao:
    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: str, session_key: str) -> Optional[HiddenChat]:
        stmt = select(HiddenChat).where(HiddenChat.user_id == user_id, HiddenChat.session_key == session_key)
        return self.db.scalars(stmt).first()

    def hidden_keys(self, user_id: str) -> Set[str]:
        stmt = select(HiddenChat.session_key).where(HiddenChat.user_id == user_id)
        return set(self.db.scalars(stmt))

    def create(self, user_id: str, session_key: str) -> HiddenChat:
        mark = HiddenChat(user_id=user_id, session_key=session_key)
        self.db.add(mark)
        self.db.flush()
        return mark
