"""
The `entities` package defines the ORM models of the application,
representing the database tables as Python classes via SQLAlchemy.

These entity classes are the foundation of the persistence layer,
used by DAOs (`daos` package) to perform CRUD operations.

Contents
--------
- User
    Represents a registered user in the system.
    * Stores the lower-cased username and bcrypt password hash
    * Records the invite code consumed at registration

- ChatSession
    Represents a conversation belonging to a user.
    * Keyed by a client-chosen string, owned by an immutable user reference
    * Tracks creation / last activity timestamps and an optional title

- ChatMessage
    Represents a single message within a chat session.
    * Stores content and role (user/assistant/system)
    * Records the append timestamp

- HiddenChat
    Tombstone hiding a session from one user's listing without deleting it.

- SystemPrompt
    Named persona text, at most one flagged as primary.

- InviteCode
    Single-use registration code issued by an admin or granted to a user.
"""

from gembreak.database.entities.base import Base
from gembreak.database.entities.chat_session import ChatMessage, ChatSession, MessageRole
from gembreak.database.entities.hidden_chat import HiddenChat
from gembreak.database.entities.invite_code import InviteCode
from gembreak.database.entities.system_prompt import SystemPrompt
from gembreak.database.entities.user import User

__all__ = [
    "Base",
    "ChatMessage",
    "ChatSession",
    "HiddenChat",
    "InviteCode",
    "MessageRole",
    "SystemPrompt",
    "User",
]
