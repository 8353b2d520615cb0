"""
Persona (system prompt) registry.

Invariant: at most one persona is primary, and once any persona exists at
least one is primary. Create and Update maintain it inside one transaction.
Delete does not: removing the primary persona leaves none flagged.
"""

import logging
import uuid
from typing import List, Optional

from gembreak.database.core.db import session_scope
from gembreak.database.daos import SystemPromptDao
from gembreak.database.entities.base import utcnow
from gembreak.errors import BadRequest, Conflict, NotFound

logger = logging.getLogger(__name__)


def _parse_prompt_id(prompt_id) -> str:
    if not prompt_id:
        raise BadRequest("Prompt ID is required")
    try:
        return uuid.UUID(str(prompt_id)).hex
    except ValueError:
        raise BadRequest("Invalid Prompt ID format")


def list_prompts(order_by_name: bool = False) -> List[dict]:
    with session_scope() as db:
        return [p.to_dict() for p in SystemPromptDao(db).list_all(order_by_name=order_by_name)]


def create_prompt(name: str, prompt_text: str, is_primary: bool = False) -> dict:
    """Create a persona; the first persona ever created is always primary."""
    if not name or not prompt_text:
        raise BadRequest("Name and promptText are required")
    with session_scope() as db:
        dao = SystemPromptDao(db)
        now = utcnow()
        if is_primary:
            dao.clear_primary(now)
        prompt = dao.create(name, prompt_text, bool(is_primary), now)
        if not prompt.is_primary and dao.count() == 1:
            prompt.is_primary = True
            prompt.updated_at = utcnow()
            logger.info("Promoted first system prompt %s to primary", prompt.id)
        db.flush()
        logger.info("Created system prompt %s (%s), primary=%s", prompt.id, name, prompt.is_primary)
        return prompt.to_dict()


def update_prompt(prompt_id, name: Optional[str] = None, prompt_text: Optional[str] = None,
                  is_primary: Optional[bool] = None) -> dict:
    """
    Apply a partial update.

    Raises:
        BadRequest: malformed id or no field supplied.
        NotFound: no persona with that id.
        Conflict: unmarking the only primary persona.
    """
    prompt_id = _parse_prompt_id(prompt_id)
    if name is None and prompt_text is None and is_primary is None:
        raise BadRequest("No update fields provided")

    with session_scope() as db:
        dao = SystemPromptDao(db)
        prompt = dao.get(prompt_id)
        if prompt is None:
            raise NotFound("System prompt not found")

        now = utcnow()
        if is_primary is True:
            dao.clear_primary(now, exclude_id=prompt_id)
        elif is_primary is False and prompt.is_primary and dao.count_primary(exclude_id=prompt_id) == 0:
            raise Conflict("Cannot unmark the only primary system prompt. Set another prompt as primary first.")

        if name is not None:
            prompt.name = name
        if prompt_text is not None:
            prompt.prompt_text = prompt_text
        if is_primary is not None:
            prompt.is_primary = is_primary
        prompt.updated_at = now
        db.flush()
        logger.info("Updated system prompt %s", prompt_id)
        return prompt.to_dict()


def delete_prompt(prompt_id) -> None:
    prompt_id = _parse_prompt_id(prompt_id)
    with session_scope() as db:
        dao = SystemPromptDao(db)
        prompt = dao.get(prompt_id)
        if prompt is None:
            raise NotFound("System prompt not found")
        was_primary = prompt.is_primary
        dao.delete(prompt)
        if was_primary and dao.count() > 0:
            logger.warning("Deleted primary system prompt %s; no prompt is primary now", prompt_id)
        logger.info("Deleted system prompt %s", prompt_id)


def get_primary_prompt_text() -> Optional[str]:
    """Text of the primary persona, used when a turn names no persona."""
    with session_scope() as db:
        for prompt in SystemPromptDao(db).list_all():
            if prompt.is_primary:
                return prompt.prompt_text
    return None
