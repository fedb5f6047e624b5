"""Registry of live real-time channels, keyed by user id."""

import logging
from typing import Dict, Iterable, List, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from .events import WireModel


logger = logging.getLogger("app.chat.websocket")


class SessionRegistry:
    """Tracks which users currently have a live channel and sends to them by id.

    At most one channel is kept per user: registering again replaces the
    previous entry (last connection wins). Sends are best effort and never
    raise; callers must not assume delivery.
    """

    def __init__(self) -> None:
        self._channels: Dict[str, WebSocket] = {}

    def register(self, user_id: str, channel: WebSocket) -> None:
        previous = self._channels.get(user_id)
        self._channels[user_id] = channel
        if previous is not None and previous is not channel:
            logger.info("WebSocket replaced: user_id=%s", user_id)
        else:
            logger.info(
                "WebSocket connected: user_id=%s, total_connections=%d",
                user_id,
                len(self._channels),
            )

    def unregister(self, user_id: str, channel: Optional[WebSocket] = None) -> None:
        """Remove the user's channel. Unknown users are ignored.

        With ``channel`` given, the entry is only removed while it still points
        at that channel, so a superseded socket closing late does not evict
        the connection that replaced it.
        """
        current = self._channels.get(user_id)
        if current is None:
            return
        if channel is not None and current is not channel:
            return
        del self._channels[user_id]
        logger.info("WebSocket disconnected: user_id=%s", user_id)

    def get(self, user_id: str) -> Optional[WebSocket]:
        return self._channels.get(user_id)

    def is_connected(self, user_id: str) -> bool:
        channel = self._channels.get(user_id)
        return channel is not None and _is_open(channel)

    def connected_users(self) -> List[str]:
        return list(self._channels)

    async def send(self, user_id: str, event: WireModel) -> bool:
        """Send one event to a user. Returns whether the channel accepted it."""
        channel = self._channels.get(user_id)
        if channel is None or not _is_open(channel):
            logger.debug("Skipping send to user %s: no open channel", user_id)
            return False

        try:
            await channel.send_json(event.to_wire())
        except Exception as e:
            logger.warning("Failed to send WebSocket message to user %s: %s", user_id, e)
            self.unregister(user_id, channel)
            return False
        return True

    async def broadcast(self, user_ids: Iterable[str], event: WireModel) -> int:
        """Send to each user in order. Returns the number of channels reached."""
        sent_count = 0
        for user_id in user_ids:
            if await self.send(user_id, event):
                sent_count += 1
        return sent_count


def _is_open(channel: WebSocket) -> bool:
    return (
        channel.client_state == WebSocketState.CONNECTED
        and channel.application_state == WebSocketState.CONNECTED
    )
