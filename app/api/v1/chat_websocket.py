"""WebSocket endpoint for real-time chat."""

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError
from pydantic import ValidationError

from app.chat.errors import SessionNotFound
from app.chat.events import ClientMessageEvent, ErrorEvent
from app.chat.services import ChatServices
from app.core import messages
from app.core.security import decode_token
from app.models.user import User
from app.services.user_service import UserService


logger = logging.getLogger("app.chat.websocket")

router = APIRouter()


async def get_current_user_ws(websocket: WebSocket, token: str) -> User | None:
    """Authenticate WebSocket connection via query parameter token."""
    try:
        payload = decode_token(token, expected_type="access")
    except JWTError as e:
        logger.warning("WebSocket authentication failed: %s", e)
        await websocket.close(code=1008, reason=messages.AUTH_TOKEN_INVALID)
        return None

    async with websocket.app.state.session_factory() as db:
        return await UserService.upsert_from_claims(db, payload)


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json(ErrorEvent(message=message).to_wire())


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket, token: str = Query(...)):
    """
    WebSocket endpoint for real-time chat.

    Connection URL: ws://localhost:8000/api/v1/ws?token={access_token}

    Message Format (Client -> Server):
    {"type": "message", "sessionId": 1, "content": "...", "sender": {"id": "...", "name": "..."}}

    Message Format (Server -> Client):
    {"type": "message" | "stream" | "stream_complete" | "title_update" | "error", ...}
    """
    user = await get_current_user_ws(websocket, token)
    if not user:
        return  # Connection already closed

    chat: ChatServices = websocket.app.state.chat

    await websocket.accept()
    chat.registry.register(user.id, websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                raw = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, messages.WS_INVALID_JSON)
                continue

            if not isinstance(raw, dict) or raw.get("type") != "message":
                await _send_error(websocket, messages.WS_UNSUPPORTED_EVENT)
                continue

            try:
                event = ClientMessageEvent.model_validate(raw)
            except ValidationError as e:
                logger.info("Rejected inbound event from user %s: %s", user.id, e.errors()[:1])
                fields = {err["loc"][0] for err in e.errors() if err.get("loc")}
                detail = (
                    messages.MESSAGE_CONTENT_REQUIRED
                    if "content" in fields
                    else messages.MESSAGE_PROCESSING_FAILED
                )
                await _send_error(websocket, detail)
                continue

            if event.sender.id != user.id:
                logger.warning(
                    "Sender id %s does not match authenticated user %s; using the authenticated id",
                    event.sender.id,
                    user.id,
                )

            try:
                await chat.router.route_message(
                    event.session_id,
                    user.id,
                    event.sender.name or user.display_name,
                    event.content,
                    sender_image_url=event.sender.image_url or user.profile_image_url,
                )
            except SessionNotFound:
                await _send_error(websocket, messages.SESSION_NOT_FOUND)
            except Exception as e:
                logger.error("WebSocket message error: %s", e, exc_info=True)
                await _send_error(websocket, messages.MESSAGE_PROCESSING_FAILED)

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: user_id=%s", user.id)
    finally:
        chat.registry.unregister(user.id, websocket)
