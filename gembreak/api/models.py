"""
Pydantic request schemas.

Required fields are declared optional so that a missing field reaches the
service layer and is answered with the API's own 400 message instead of a
generic validation error.
"""

from typing import Optional

from pydantic import BaseModel


class AdminCredentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserCredentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegistrationData(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    inviteCodeToUse: Optional[str] = None


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    sessionId: Optional[str] = None
    userId: Optional[str] = None
    systemPrompt: Optional[str] = None


class HideChatRequest(BaseModel):
    sessionId: Optional[str] = None
    userId: Optional[str] = None


class SystemPromptCreate(BaseModel):
    name: Optional[str] = None
    promptText: Optional[str] = None
    isPrimary: bool = False


class SystemPromptUpdate(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    promptText: Optional[str] = None
    isPrimary: Optional[bool] = None
