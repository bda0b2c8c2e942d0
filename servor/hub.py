"""
Notification hub for live reload.

Holds the set of open reload connections. A broadcast sends one
``message: reloading`` frame to each of them and empties the set: every
browser tab re-opens its stream after reloading, so membership only
lasts for one change.

All methods run on the event loop thread; the loop serializes access.
"""

import asyncio
from typing import Optional, Set

from .events import RELOAD, format_event


class ClientClosedError(Exception):
    """Raised when sending to a reload client whose stream has ended."""


class ReloadClient:
    """One open streaming connection, as a queue of framed events."""

    def __init__(self, peer: Optional[str] = None):
        self.peer = peer or "?"
        self.closed = False
        self._queue: "asyncio.Queue[bytes]" = asyncio.Queue()

    def send(self, event: str, data: str):
        if self.closed:
            raise ClientClosedError(f"client {self.peer} is closed")
        self._queue.put_nowait(format_event(event, data))

    async def next_frame(self) -> bytes:
        return await self._queue.get()

    def close(self):
        self.closed = True

    def __repr__(self):
        return f"<ReloadClient {self.peer}{' closed' if self.closed else ''}>"


class NotificationHub:
    def __init__(self):
        self._clients: Set[ReloadClient] = set()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client) -> bool:
        return client in self._clients

    def register(self, client: ReloadClient):
        self._clients.add(client)

    def discard(self, client: ReloadClient):
        self._clients.discard(client)

    def broadcast(self) -> int:
        """
        Send the reload event to every registered client, then clear the set.

        Returns how many clients the event was delivered to. Clients that
        fail the send are dropped silently (beyond a log line).
        """
        clients, self._clients = self._clients, set()
        delivered = 0
        for client in clients:
            try:
                client.send(*RELOAD)
                delivered += 1
            except Exception as e:
                print(f"[RELOAD] Dropped {client.peer}: {e}", flush=True)
        if clients:
            print(f"[RELOAD] Notified {delivered} client(s)", flush=True)
        return delivered
