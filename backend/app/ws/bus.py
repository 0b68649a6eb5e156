# app/ws/bus.py

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from app.ws.manager import ws_manager


class WsEventBus:
    """Hands events from worker threads to the FastAPI loop for WebSocket broadcast.

    - sync endpoints (backfill) run in the threadpool, so emit() only schedules
      a put_nowait on the loop via call_soon_threadsafe
    - run() drains the queue on the loop and broadcasts
    - without a live loop (before startup, after shutdown) events are dropped
    """

    def __init__(self) -> None:
        self._queue: Optional[asyncio.Queue[Dict[str, Any]]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def set_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._queue = asyncio.Queue()

    def emit(self, event: Dict[str, Any]) -> None:
        if self._loop is None or self._queue is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def backfill_progress(self, unit_id: str, done: int, total: int) -> None:
        self.emit({
            "type": "backfill_progress",
            "unit_id": unit_id,
            "done": done,
            "total": total,
            "fraction": round(done / total, 4) if total else 1.0,
        })

    async def run(self) -> None:
        while True:
            event = await self._queue.get()
            await ws_manager.broadcast_json(event)


ws_bus = WsEventBus()
