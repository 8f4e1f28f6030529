"""WebSocket channel pushing execution events to dashboard clients.

Clients connect to ``/ws`` and subscribe per project::

    {"action": "join", "projectId": "<id>"}
    {"action": "leave", "projectId": "<id>"}

Events are sent as ``{"event": "execution:completed", "projectId": ..., "data": {...}}``.
"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["websocket"])

_ACKS = {"join": "joined", "leave": "left"}


class EventHub:
    """Tracks project subscriptions and fans events out to them."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def join(self, project_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._rooms[project_id].add(websocket)

    async def leave(self, project_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            room = self._rooms.get(project_id)
            if room is not None:
                room.discard(websocket)
                if not room:
                    del self._rooms[project_id]

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            for project_id in [pid for pid, room in self._rooms.items() if websocket in room]:
                self._rooms[project_id].discard(websocket)
                if not self._rooms[project_id]:
                    del self._rooms[project_id]

    def subscriber_count(self, project_id: str) -> int:
        return len(self._rooms.get(project_id, ()))

    async def publish(self, project_id: str, event: str, data: dict[str, Any]) -> int:
        """Send *event* to every subscriber of *project_id*.

        Returns:
            Number of clients the event was delivered to.
        """
        async with self._lock:
            targets = list(self._rooms.get(project_id, ()))

        delivered = 0
        stale: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_json({"event": event, "projectId": project_id, "data": data})
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as exc:
                await logger.adebug("websocket_send_failed", project_id=project_id, error=str(exc))
                stale.append(websocket)

        for websocket in stale:
            await self.disconnect(websocket)
        return delivered


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    hub: EventHub = websocket.app.state.event_hub
    await websocket.accept()
    await logger.ainfo("websocket_connected", client=str(websocket.client))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            action = message.get("action") if isinstance(message, dict) else None
            project_id = message.get("projectId") if isinstance(message, dict) else None
            if action not in _ACKS or not isinstance(project_id, str) or not project_id:
                await websocket.send_json({"event": "error", "data": {"message": "Invalid message"}})
                continue
            if action == "join":
                await hub.join(project_id, websocket)
            else:
                await hub.leave(project_id, websocket)
            await websocket.send_json({"event": _ACKS[action], "projectId": project_id})
    except WebSocketDisconnect:
        await logger.ainfo("websocket_disconnected", client=str(websocket.client))
    finally:
        await hub.disconnect(websocket)
