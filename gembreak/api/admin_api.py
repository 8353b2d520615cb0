"""
FastAPI Router: Admin Console API

Every route requires a valid admin session (`require_admin`). Covers persona
management, invite codes, chat history dump, per-user activity and metrics.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gembreak.api.models import SystemPromptCreate, SystemPromptUpdate
from gembreak.api.utils import require_admin
from gembreak.database.core.accounts import create_admin_invite_code, list_admin_invite_codes
from gembreak.database.core.persona_registry import create_prompt, delete_prompt, list_prompts, update_prompt
from gembreak.database.core.stats import get_chat_histories, get_metrics, get_user_activity

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/system_prompts")
def get_system_prompts():
    """
    List all personas, newest first.

    Returns
    -------
    dict
        {'success': True, 'systemPrompts': [{id, name, promptText, isPrimary, createdAt, updatedAt}, ...]}
    """
    return {"success": True, "systemPrompts": list_prompts()}


@router.post("/system_prompts")
def post_system_prompt(data: SystemPromptCreate):
    """
    Create a persona.

    Request Body
    ------------
    SystemPromptCreate {name: str, promptText: str, isPrimary: bool = False}

    Returns
    -------
    JSONResponse (201)
        {'success': True, 'systemPrompt': {...}}
    """
    prompt = create_prompt(data.name, data.promptText, data.isPrimary)
    return JSONResponse({"success": True, "systemPrompt": prompt}, status_code=201)


@router.put("/system_prompts")
def put_system_prompt(data: SystemPromptUpdate):
    """
    Partially update a persona. Setting `isPrimary` to true clears it on all others.

    Raises
    ------
    NotFound
        Unknown id.
    Conflict
        Unmarking the only primary persona.
    """
    prompt = update_prompt(data.id, name=data.name, prompt_text=data.promptText, is_primary=data.isPrimary)
    return {"success": True, "systemPrompt": prompt}


@router.delete("/system_prompts")
def delete_system_prompt(id: Optional[str] = None):
    """
    Delete a persona. Deleting the primary persona does not promote another.

    Query Parameters
    ----------------
    id : str

    Raises
    ------
    BadRequest
        Missing or malformed id.
    NotFound
        Unknown id.
    """
    delete_prompt(id)
    return {"success": True, "message": "System prompt deleted successfully"}


@router.get("/chat_histories")
def chat_histories():
    """
    Dump every session with its messages, most recently active first.

    Returns
    -------
    dict
        {'success': True, 'histories': [{sessionId, userId, title, messages, createdAt, updatedAt}, ...]}
    """
    return {"success": True, "histories": get_chat_histories()}


@router.get("/users")
def users():
    """Per-user activity aggregated over their sessions, most recent first."""
    return {"success": True, "users": get_user_activity()}


@router.get("/metrics")
def metrics():
    """
    Usage counters for the dashboard.

    Returns
    -------
    dict
        {'success': True, 'metrics': {totalSessions, totalMessages, averageMessagesPerSession,
        activeSessions24h, activeSessions7d, totalSystemPrompts, totalAdminInviteCodes,
        usedAdminInviteCodes, unusedAdminInviteCodes}}
    """
    return {"success": True, "metrics": get_metrics()}


@router.get("/invite-codes")
def get_invite_codes():
    """List the invite codes issued by the admin, newest first."""
    return {"success": True, "inviteCodes": list_admin_invite_codes()}


@router.post("/invite-codes")
def post_invite_code():
    """
    Issue a new admin invite code.

    Returns
    -------
    dict
        {'success': True, 'message': str, 'inviteCode': {code, isUsed, createdBy, usedBy, usedAt, createdAt}}
    """
    return {
        "success": True,
        "message": "Invite code generated successfully.",
        "inviteCode": create_admin_invite_code(),
    }
