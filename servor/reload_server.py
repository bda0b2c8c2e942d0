"""
Reload channel: the long-lived text/event-stream endpoint on the reload port.

Protocol, per connection:
  1. Server sends ``connected: ready`` so the browser's EventSource resolves
  2. Connection is registered with the hub
  3. ``ping: waiting`` every heartbeat interval until the connection closes
  4. ``message: reloading`` once, when the watched tree changes
"""

import asyncio
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse

from .config import HEARTBEAT_INTERVAL
from .events import CONNECTED, PING, format_event
from .hub import NotificationHub, ReloadClient

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
    "Access-Control-Allow-Origin": "*",
}


async def heartbeat(client: ReloadClient, interval: float):
    """Queue a ping on ``client`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        if client.closed:
            return
        client.send(*PING)


async def event_stream(
    client: ReloadClient,
    hub: NotificationHub,
    interval: float = HEARTBEAT_INTERVAL,
) -> AsyncIterator[bytes]:
    """
    Body of one reload connection.

    The ack is yielded before the client joins the hub, so a reload can
    never overtake it. The heartbeat task lives exactly as long as this
    generator.
    """
    yield format_event(*CONNECTED)

    hub.register(client)
    pinger = asyncio.create_task(heartbeat(client, interval))
    try:
        while True:
            yield await client.next_frame()
    finally:
        pinger.cancel()
        client.close()
        hub.discard(client)


def create_reload_app(hub: NotificationHub, interval: float = HEARTBEAT_INTERVAL) -> FastAPI:
    app = FastAPI(title="servor reload", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/{path:path}")
    async def reload_events(request: Request):
        peer = f"{request.client.host}:{request.client.port}" if request.client else None
        client = ReloadClient(peer)
        return StreamingResponse(
            event_stream(client, hub, interval),
            headers=STREAM_HEADERS,
        )

    return app
