"""Therapy session endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_accessible_session, get_chat_services, get_current_user
from app.chat.events import TitleUpdateEvent
from app.chat.models import SESSION_TYPE_PRIVATE, TherapySession
from app.chat.schemas import SessionCreate, SessionResponse, SessionUpdate
from app.chat.services import ChatServices
from app.chat.sessions import TherapySessionManager
from app.core import messages
from app.core.database import get_db
from app.models.user import User


router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    type: Optional[str] = Query(None, pattern="^(couples|private)$"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the sessions the user created or was invited to as partner."""
    return await TherapySessionManager.list_sessions(db, current_user.id, session_type=type)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a new private or couples session owned by the current user."""
    if payload.type == SESSION_TYPE_PRIVATE and payload.partner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=messages.SESSION_PARTNER_PRIVATE,
        )

    return await TherapySessionManager.create_session(
        db,
        creator_id=current_user.id,
        title=payload.title.strip(),
        session_type=payload.type,
        partner_id=payload.partner_id,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session: TherapySession = Depends(get_accessible_session)):
    return session


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    payload: SessionUpdate,
    session: TherapySession = Depends(get_accessible_session),
    db: AsyncSession = Depends(get_db),
    chat: ChatServices = Depends(get_chat_services),
):
    """Rename a session or attach a partner to a couples session."""
    if payload.partner_id and session.type == SESSION_TYPE_PRIVATE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=messages.SESSION_PARTNER_PRIVATE,
        )

    title = payload.title.strip() if payload.title else None
    if payload.title is not None and not title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=messages.SESSION_TITLE_REQUIRED,
        )

    updated = await TherapySessionManager.update_session(
        db,
        session.id,
        title=title,
        partner_id=payload.partner_id,
    )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.SESSION_NOT_FOUND,
        )

    if title:
        event = TitleUpdateEvent(session_id=updated.id, title=updated.title)
        for user_id in updated.recipient_ids():
            await chat.registry.send(user_id, event)
    return updated


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session: TherapySession = Depends(get_accessible_session),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a session and all of its messages."""
    await TherapySessionManager.delete_session(db, session.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
