"""
The `daos` package provides the Data Access Layer for the application.

It is responsible for all interactions with the database entities,
encapsulating the queries that support the core functionality
of the system. Each DAO operates on a specific entity and abstracts
away the direct SQLAlchemy queries, offering a cleaner API to the
service layer (`database.core`). DAOs never commit; the caller owns
the transaction.

Contents
--------
- UserDao
    Handles user persistence:
    * Creates users (username stored lower-cased)
    * Fetches users by id or username

- ChatSessionDao
    Manages chat session records:
    * Creates sessions and appends messages
    * Fetches message logs in timestamp order
    * Lists sessions by owner, most recent activity first
    * Aggregates per-owner activity for the admin API

- HiddenChatDao
    Manages per-user hidden-session tombstones.

- SystemPromptDao
    Manages persona records and the primary flag.

- InviteCodeDao
    Issues, looks up and consumes invite codes.
"""

from gembreak.database.daos.chat_session_dao import ChatSessionDao
from gembreak.database.daos.hidden_chat_dao import HiddenChatDao
from gembreak.database.daos.invite_code_dao import InviteCodeDao
from gembreak.database.daos.system_prompt_dao import SystemPromptDao
from gembreak.database.daos.user_dao import UserDao

__all__ = ["ChatSessionDao", "HiddenChatDao", "InviteCodeDao", "SystemPromptDao", "UserDao"]
