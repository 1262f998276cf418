from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import List, Optional, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

UPDATES_EVENT = "reservations_updated"


class Notifier(Protocol):
    def broadcast(self, event: str) -> None:
        ...


class WebSocketHub:
    """
    Pushes event names to every connected WebSocket client.

    broadcast() is called from worker threads (sync routes), so sends are
    scheduled onto the event loop that owns the sockets.
    """

    def __init__(self) -> None:
        self._clients: List[WebSocket] = []
        self._lock = Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._clients.append(websocket)
        logger.debug("WebSocket client connected (%d total)", self.client_count)

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            if websocket in self._clients:
                self._clients.remove(websocket)

    def broadcast(self, event: str) -> None:
        with self._lock:
            loop = self._loop
            has_clients = bool(self._clients)
        if loop is None or not has_clients:
            return
        try:
            asyncio.run_coroutine_threadsafe(self._send_all(event), loop)
        except RuntimeError:
            logger.warning("Event loop gone, could not broadcast %s", event)

    async def _send_all(self, event: str) -> None:
        with self._lock:
            clients = list(self._clients)
        for websocket in clients:
            try:
                await websocket.send_text(event)
            except Exception as e:
                logger.warning("Dropping WebSocket client after failed send: %s", e)
                self.disconnect(websocket)
