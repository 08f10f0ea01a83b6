"""
User controller: self-service password change and session management.

All routes require a valid access token and only ever act on the
caller's own account.
"""

import uuid

from fastapi import APIRouter, Depends

from momentum.core.dependencies import get_session_authority
from momentum.core.security import get_current_user_id
from momentum.schemas import ChangePasswordRequest, MessageResponse, SessionOut
from momentum.services.auth_service import SessionAuthority

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.put("/me/password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Change password; every refresh session is revoked afterwards."""
    await authority.change_password(user_id, body.current_password, body.new_password)
    return MessageResponse(detail="Password changed. Please log in again.")


@router.get("/me/sessions", response_model=list[SessionOut])
async def list_sessions(
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    return await authority.list_sessions(user_id)


@router.delete("/me/sessions/{session_id}", response_model=MessageResponse)
async def revoke_session(
    session_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    await authority.revoke_session(user_id, session_id)
    return MessageResponse(detail="Session revoked")


@router.delete("/me/sessions", response_model=MessageResponse)
async def revoke_all_sessions(
    user_id: uuid.UUID = Depends(get_current_user_id),
    authority: SessionAuthority = Depends(get_session_authority),
):
    await authority.logout(user_id)
    return MessageResponse(detail="All sessions revoked")
