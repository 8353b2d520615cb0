from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from gembreak.database.entities import User


class UserDao:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username.lower())
        return self.db.scalars(stmt).first()

    def create(self, username: str, password_hash: str, used_invite_code: str) -> User:
        user = User(username=username.lower(), password_hash=password_hash, used_invite_code=used_invite_code)
        self.db.add(user)
        self.db.flush()
        return user

    def usernames(self, user_ids: Iterable[str]) -> Dict[str, str]:
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        stmt = select(User.id, User.username).where(User.id.in_(user_ids))
        return {user_id: username for user_id, username in self.db.execute(stmt).all()}
