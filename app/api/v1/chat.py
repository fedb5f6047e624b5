"""Message endpoints: history, posting, and the streaming poll fallback."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_accessible_session, get_chat_services, get_current_user, parse_id
from app.chat.errors import SessionNotFound
from app.chat.messages import MessageHandler
from app.chat.models import TherapySession
from app.chat.schemas import MessageCreate, MessageResponse, RoutedMessageResponse, StreamStatusResponse
from app.chat.services import ChatServices
from app.chat.sessions import TherapySessionManager
from app.core import messages
from app.core.database import get_db
from app.models.user import User


logger = logging.getLogger("app.api.chat")

router = APIRouter(tags=["chat"])


@router.get("/sessions/{session_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    session: TherapySession = Depends(get_accessible_session),
    db: AsyncSession = Depends(get_db),
):
    """Get all messages for a session, oldest first."""
    return await MessageHandler.get_session_messages(db, session.id)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=RoutedMessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_message(
    payload: MessageCreate,
    session: TherapySession = Depends(get_accessible_session),
    current_user: User = Depends(get_current_user),
    chat: ChatServices = Depends(get_chat_services),
):
    """
    Post a user message. Returns the ids of the stored message and of the
    assistant placeholder immediately; the reply arrives over the real-time
    channel or through ``GET /messages/{id}/stream``.
    """
    if not payload.content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=messages.MESSAGE_CONTENT_REQUIRED,
        )

    try:
        routed = await chat.router.route_message(
            session.id,
            current_user.id,
            current_user.display_name,
            payload.content,
            sender_image_url=current_user.profile_image_url,
        )
    except SessionNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.SESSION_NOT_FOUND,
        )

    return RoutedMessageResponse(
        user_message_id=routed.user_message_id,
        ai_message_id=routed.ai_message_id,
    )


@router.get("/messages/{message_id}/stream", response_model=StreamStatusResponse)
async def get_stream_status(
    message_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    chat: ChatServices = Depends(get_chat_services),
):
    """Polling fallback: latest persisted content of a reply and whether it is final."""
    message_pk = parse_id(message_id, messages.MESSAGE_NOT_FOUND)
    message = await MessageHandler.get_message(db, message_pk)
    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.MESSAGE_NOT_FOUND,
        )

    session = await TherapySessionManager.get_session(db, message.session_id, current_user.id)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.MESSAGE_NOT_FOUND,
        )

    is_complete = True
    if message.is_ai:
        # Final content is written before the terminal flag, so re-read after checking it
        is_complete = await chat.coordinator.is_complete(message.id)
        await db.refresh(message)

    return StreamStatusResponse(
        message_id=message.id,
        content=message.content,
        is_complete=is_complete,
    )
