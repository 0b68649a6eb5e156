# app/api/ws.py

from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.ws.manager import ws_manager

router = APIRouter(tags=["ws"])


@router.websocket("/ws/metrics")
async def ws_metrics(ws: WebSocket, unit_id: Optional[str] = None):
    """Push-only channel for backfill progress and recompute events.

    `?unit_id=` narrows the stream to one unit. Client messages are read only to
    keep the connection alive.
    """
    await ws_manager.connect(ws, unit_id=unit_id)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)
    except Exception:
        ws_manager.disconnect(ws)
