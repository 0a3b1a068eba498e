from typing import Any, Dict, List, Optional
import asyncio
import time

from fastapi import WebSocket


class ConnectionManager:
    """
    Per-session WebSocket connection manager.

    - Each session_id has its own list of WebSocket connections.
    - Workflow progress is pushed to every socket watching that session.
    """

    def __init__(self) -> None:
        # session_id -> list[WebSocket]
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, session_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self.active_connections.setdefault(session_id, []).append(websocket)

    async def disconnect(self, websocket: WebSocket, session_id: str) -> None:
        async with self._lock:
            connections = self.active_connections.get(session_id, [])
            if websocket in connections:
                connections.remove(websocket)
            if not connections and session_id in self.active_connections:
                del self.active_connections[session_id]

    async def send_json(self, websocket: WebSocket, data: dict) -> None:
        await websocket.send_json(data)

    async def send_to_session(self, session_id: str, message: dict) -> None:
        """
        Send a JSON message to all clients watching session_id.
        Takes a snapshot of connections under lock; dead sockets are dropped.
        """
        async with self._lock:
            connections = list(self.active_connections.get(session_id, []))

        disconnected: List[WebSocket] = []

        for ws in connections:
            try:
                await ws.send_json(message)
            except Exception:
                disconnected.append(ws)

        for ws in disconnected:
            await self.disconnect(ws, session_id)


def workflow_update(session_id: str, step: str, status: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """WORKFLOW_UPDATE message pushed while a run progresses."""
    return {
        "type": "WORKFLOW_UPDATE",
        "sessionId": session_id,
        "step": step,
        "status": status,
        "data": data or {},
        "timestamp": time.time(),
    }


manager = ConnectionManager()
