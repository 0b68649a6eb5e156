# app/ws/manager.py

from __future__ import annotations

from typing import Dict, Optional

import structlog
from fastapi import WebSocket

logger = structlog.get_logger(__name__)


class ConnectionManager:
    """WebSocket subscribers for metric events, optionally narrowed to one unit."""

    def __init__(self) -> None:
        # socket -> unit_id filter (None = every unit)
        self._active: Dict[WebSocket, Optional[str]] = {}

    async def connect(self, ws: WebSocket, unit_id: Optional[str] = None) -> None:
        await ws.accept()
        self._active[ws] = unit_id

    def disconnect(self, ws: WebSocket) -> None:
        self._active.pop(ws, None)

    @property
    def connection_count(self) -> int:
        return len(self._active)

    async def broadcast_json(self, payload: dict) -> None:
        unit_id = payload.get("unit_id")
        dead = []
        for ws, wanted in list(self._active.items()):
            if wanted is not None and wanted != unit_id:
                continue
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        for ws in dead:
            logger.info("ws_subscriber_dropped")
            self.disconnect(ws)


ws_manager = ConnectionManager()
