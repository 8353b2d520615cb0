from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from gembreak.database.entities import SystemPrompt


class SystemPromptDao:
    """Queries over the `system_prompts` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, prompt_id: str) -> Optional[SystemPrompt]:
        return self.db.get(SystemPrompt, prompt_id)

    def list_all(self, order_by_name: bool = False) -> List[SystemPrompt]:
        stmt = select(SystemPrompt)
        if order_by_name:
            stmt = stmt.order_by(SystemPrompt.name, SystemPrompt.created_at)
        else:
            stmt = stmt.order_by(SystemPrompt.created_at.desc())
        return list(self.db.scalars(stmt))

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(SystemPrompt))

    def count_primary(self, exclude_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(SystemPrompt).where(SystemPrompt.is_primary.is_(True))
        if exclude_id is not None:
            stmt = stmt.where(SystemPrompt.id != exclude_id)
        return self.db.scalar(stmt)

    def clear_primary(self, now: datetime, exclude_id: Optional[str] = None) -> None:
        stmt = (
            update(SystemPrompt)
            .where(SystemPrompt.is_primary.is_(True))
            .values(is_primary=False, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        if exclude_id is not None:
            stmt = stmt.where(SystemPrompt.id != exclude_id)
        self.db.execute(stmt)

    def create(self, name: str, prompt_text: str, is_primary: bool, now: datetime) -> SystemPrompt:
        prompt = SystemPrompt(name=name, prompt_text=prompt_text, is_primary=is_primary,
                              created_at=now, updated_at=now)
        self.db.add(prompt)
        self.db.flush()
        return prompt

    def delete(self, prompt: SystemPrompt) -> None:
        self.db.delete(prompt)
        self.db.flush()
