"""Read-only aggregates for the admin API."""

from datetime import timedelta
from typing import List

from gembreak.database.core.db import session_scope
from gembreak.database.daos import ChatSessionDao, InviteCodeDao, SystemPromptDao, UserDao
from gembreak.database.entities import MessageRole
from gembreak.database.entities.base import isoformat_utc, utcnow
from gembreak.database.entities.invite_code import ADMIN_CREATOR

# Stored role -> role shown on the dashboard.
DISPLAY_ROLES = {
    MessageRole.USER: "user",
    MessageRole.ASSISTANT: "assistant",
    MessageRole.SYSTEM: "system",
}


def display_role(role: MessageRole) -> str:
    return DISPLAY_ROLES[role]


def get_metrics() -> dict:
    now = utcnow()
    with session_scope() as db:
        sessions = ChatSessionDao(db)
        invites = InviteCodeDao(db)
        total_sessions = sessions.count()
        total_messages = sessions.count_messages()
        average = round(total_messages / total_sessions, 2) if total_sessions else 0
        return {
            "totalSessions": total_sessions,
            "totalMessages": total_messages,
            "averageMessagesPerSession": average,
            "activeSessions24h": sessions.count(updated_since=now - timedelta(hours=24)),
            "activeSessions7d": sessions.count(updated_since=now - timedelta(days=7)),
            "totalSystemPrompts": SystemPromptDao(db).count(),
            "totalAdminInviteCodes": invites.count(ADMIN_CREATOR),
            "usedAdminInviteCodes": invites.count(ADMIN_CREATOR, is_used=True),
            "unusedAdminInviteCodes": invites.count(ADMIN_CREATOR, is_used=False),
        }


def get_user_activity() -> List[dict]:
    """Per-owner activity, most recently active first."""
    with session_scope() as db:
        sessions = ChatSessionDao(db)
        rows = sessions.activity_by_owner()
        message_counts = sessions.message_counts_by_owner()
        usernames = UserDao(db).usernames(row[0] for row in rows)

    users = [
        {
            "id": owner_id,
            "username": usernames.get(owner_id),
            "firstActivity": isoformat_utc(first_activity),
            "lastActivity": isoformat_utc(last_activity),
            "sessionCount": session_count,
            "messageCount": message_counts.get(owner_id, 0),
        }
        for owner_id, first_activity, last_activity, session_count in rows
    ]
    users.sort(key=lambda u: u["lastActivity"], reverse=True)
    return users


def get_chat_histories() -> List[dict]:
    with session_scope() as db:
        dao = ChatSessionDao(db)
        histories = []
        for chat_session in dao.list_all():
            histories.append({
                "sessionId": chat_session.key,
                "userId": chat_session.owner_id,
                "title": chat_session.title,
                "messages": [
                    {
                        "role": display_role(m.role),
                        "content": m.content,
                        "timestamp": isoformat_utc(m.timestamp),
                    }
                    for m in dao.messages(chat_session.key)
                ],
                "createdAt": isoformat_utc(chat_session.created_at),
                "updatedAt": isoformat_utc(chat_session.updated_at),
            })
        return histories
