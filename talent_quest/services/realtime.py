from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketState

from talent_quest.core.logging import actor_var
from talent_quest.schemas.realtime import WsEnvelope

logger = logging.getLogger(__name__)

ADMIN_TOPIC = "admin"


class BroadcastManager:
    """
    Simple in-process pub-sub manager for WebSocket topics.

    Admin dashboards subscribe to the ``admin`` topic and refresh their tables
    when registrations or edits are published.
    """

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        if topic not in self._locks:
            self._locks[topic] = asyncio.Lock()
        return self._locks[topic]

    # PUBLIC_INTERFACE
    def subscriber_count(self, topic: str = ADMIN_TOPIC) -> int:
        return len(self._topics.get(topic, ()))

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        """Add an accepted websocket to the topic's subscribers."""
        async with self._topic_lock(topic):
            self._topics.setdefault(topic, set()).add(websocket)
            logger.info("WebSocket connected to topic=%s; subscribers=%d", topic, len(self._topics[topic]))

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        """Remove websocket from topic subscribers."""
        if topic not in self._topics:
            return
        async with self._topic_lock(topic):
            self._topics[topic].discard(websocket)
            logger.info("WebSocket disconnected from topic=%s; subscribers=%d", topic, len(self._topics[topic]))

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: dict) -> None:
        """Send a dict message to every subscriber, dropping dead sockets."""
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic)
            if not subscribers:
                return
            to_drop: list[WebSocket] = []
            for ws in list(subscribers):
                if ws.application_state == WebSocketState.DISCONNECTED or ws.client_state == WebSocketState.DISCONNECTED:
                    to_drop.append(ws)
                    continue
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                subscribers.discard(ws)

    # PUBLIC_INTERFACE
    async def publish(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """
        Publish an admin event. Failures are logged and never propagate to the caller.
        """
        try:
            env = WsEnvelope(type=event_type, payload=payload or {}, actor=actor_var.get())
            await self.broadcast(ADMIN_TOPIC, env.model_dump(mode="json"))
        except Exception:
            logger.exception("Failed to publish admin event %s", event_type)


# Singleton instance
broadcast_manager = BroadcastManager()
