from __future__ import annotations

"""
File: counter_service/ws.py
Purpose: WebSocket connection manager that pushes tick summaries to dashboards.
"""

import asyncio
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger("counter-ws")


class WSManager:
    """Track dashboard sockets and fan out tick events."""
    def __init__(self) -> None:
        self.clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.clients.add(websocket)
            count = len(self.clients)
        logger.info("ws client connected clients=%s", count)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self.clients.discard(websocket)

    async def broadcast(self, event_type: str, payload: dict) -> int:
        """Send `{type, data}` to every client; returns the number reached."""
        data = json.dumps({"type": event_type, "data": payload}, separators=(",", ":"), sort_keys=True)
        async with self._lock:
            clients = list(self.clients)
        stale: list[WebSocket] = []
        for client in clients:
            try:
                await client.send_text(data)
            except Exception:  # noqa: BLE001
                stale.append(client)
        if stale:
            async with self._lock:
                for client in stale:
                    self.clients.discard(client)
            logger.info("ws dropped stale clients=%s", len(stale))
        return len(clients) - len(stale)
