"""
FastAPI Router: Authentication, Chat Turns, Sessions and Personas

This module defines the public and user-facing HTTP API endpoints. It handles:
- Admin login/logout, user registration, login and logout
- Chat turns through the chat pipeline
- Chat history and session listing, hiding sessions
- Read-only persona (system prompt) listing and the caller's invite code

Each endpoint validates input via Pydantic models and returns JSON. Service
errors (`gembreak.errors`) are turned into JSON error responses by the handler
registered in `gembreak.main`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from gembreak.api.chat_pipeline import ChatPipeline, validate_turn_input
from gembreak.api.models import (
    AdminCredentials,
    GenerateRequest,
    HideChatRequest,
    RegistrationData,
    UserCredentials,
)
from gembreak.api.utils import (
    ADMIN_COOKIE,
    USER_COOKIE,
    clear_session_cookie,
    create_access_token,
    require_user,
    set_session_cookie,
)
from gembreak.database.core.accounts import (
    get_user_invite_code,
    login_user,
    register_user,
    verify_admin_credentials,
)
from gembreak.database.core.funcs import get_history, hide_session, list_visible_sessions, parse_owner_id
from gembreak.database.core.persona_registry import list_prompts
from gembreak.errors import BadRequest, Forbidden, InternalError

router = APIRouter()
"""Creates the FastAPI router in which we define its routes"""


def get_pipeline(request: Request) -> ChatPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise InternalError("Chat model is not configured")
    return pipeline


@router.post("/auth/login")
def login(data: AdminCredentials, response: Response):
    """
    Authenticate the admin and set the admin session cookie.

    Request Body
    ------------
    AdminCredentials {username: str, password: str}

    Raises
    ------
    Unauthorized
        If the credentials do not match the configured pair.
    InternalError
        If no admin credentials are configured.
    """
    verify_admin_credentials(data.username, data.password)
    token = create_access_token({"username": data.username, "isAdmin": True})
    set_session_cookie(response, ADMIN_COOKIE, token)
    return {"success": True, "message": "Login successful"}


@router.post("/auth/logout")
async def logout(response: Response):
    """Clear the admin session cookie."""
    clear_session_cookie(response, ADMIN_COOKIE)
    return {"success": True, "message": "Logout successful"}


@router.post("/auth/register")
def register(data: RegistrationData, response: Response):
    """
    Register a new user with a one-time invite code.

    Request Body
    ------------
    RegistrationData {username: str, password: str, inviteCodeToUse: str}

    Returns
    -------
    dict
        {'success': True, 'userId': str, 'username': str}; the user session
        cookie is set.

    Raises
    ------
    BadRequest
        Missing fields or an invalid/used invite code.
    Conflict
        If the username already exists.
    """
    user = register_user(data.username, data.password, data.inviteCodeToUse)
    token = create_access_token({"userId": user["userId"], "username": user["username"]})
    set_session_cookie(response, USER_COOKIE, token)
    return {
        "success": True,
        "message": "Registration successful",
        "userId": user["userId"],
        "username": user["username"],
    }


@router.post("/auth/user-login")
def user_login(data: UserCredentials, response: Response):
    """
    Authenticate a user and set the user session cookie.

    Request Body
    ------------
    UserCredentials {username: str, password: str}
    """
    user = login_user(data.username, data.password)
    token = create_access_token({"userId": user["userId"], "username": user["username"]})
    set_session_cookie(response, USER_COOKIE, token)
    return {"success": True, "message": "Login successful", **user}


@router.post("/auth/user-logout")
async def user_logout(response: Response):
    """Clear the user session cookie."""
    clear_session_cookie(response, USER_COOKIE)
    return {"success": True, "message": "User logout successful"}


@router.post("/generate")
def generate(data: GenerateRequest, request: Request):
    """
    Run one chat turn.

    Request Body
    ------------
    GenerateRequest {prompt: str, sessionId: str, userId: str, systemPrompt: str|None}

    Returns
    -------
    JSONResponse
        {'text': str} on success, {'error': str, 'isBlocked': True} with
        status 400 when the provider blocked the answer, {'error': str} with
        status 500 when the turn failed.
    """
    validate_turn_input(data.sessionId, data.userId, data.prompt)
    pipeline = get_pipeline(request)
    result = pipeline.run_turn(data.sessionId, data.userId, data.prompt, data.systemPrompt)
    return JSONResponse(result.to_response(), status_code=result.status_code)


@router.get("/chat_history")
def chat_history(sessionId: Optional[str] = None, userId: Optional[str] = None):
    """
    Fetch the messages of a session in timestamp order.

    Query Parameters
    ----------------
    sessionId : str
    userId : str

    Returns
    -------
    list[dict]
        [{'role', 'content', 'timestamp'}, ...]; empty when the session does
        not exist or belongs to someone else.
    """
    if not sessionId:
        raise BadRequest("sessionId is required")
    owner_id = parse_owner_id(userId)
    return [m.to_dict() for m in get_history(sessionId, owner_id)]


@router.get("/sessions")
def sessions(userId: Optional[str] = None):
    """
    List the user's sessions that are not hidden, most recent first.

    Returns
    -------
    list[dict]
        [{'id': str, 'title': str|None, 'lastActivity': str}, ...]
    """
    owner_id = parse_owner_id(userId)
    return list_visible_sessions(owner_id)


@router.post("/user/chats/hide")
def hide_chat(data: HideChatRequest, user: dict = Depends(require_user)):
    """
    Hide a session from the caller's listing. Idempotent.

    Request Body
    ------------
    HideChatRequest {sessionId: str, userId: str}

    Raises
    ------
    Forbidden
        If the caller does not own the session or `userId` is not the caller.
    """
    if not data.sessionId:
        raise BadRequest("sessionId is required")
    owner_id = parse_owner_id(data.userId)
    if owner_id != parse_owner_id(user["userId"]):
        raise Forbidden("Access denied or session not found for user")
    if hide_session(owner_id, data.sessionId):
        return {"message": "Chat hidden successfully"}
    return {"message": "Chat already hidden"}


@router.get("/user/me/invite-code")
def my_invite_code(user: dict = Depends(require_user)):
    """Return the invite code the caller received on registration."""
    return {"success": True, **get_user_invite_code(user["userId"])}


@router.get("/system_prompts")
def system_prompts():
    """All personas sorted by name; clients pick the default via `isPrimary`."""
    return {"success": True, "systemPrompts": list_prompts(order_by_name=True)}
