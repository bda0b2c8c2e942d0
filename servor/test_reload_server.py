"""Reload channel: ack ordering, heartbeat lifecycle, broadcast, reconnect."""

import asyncio

from servor.events import CONNECTED, PING, RELOAD, format_event
from servor.hub import NotificationHub, ReloadClient
from servor.reload_server import create_reload_app, event_stream

READY = format_event(*CONNECTED)
WAITING = format_event(*PING)
RELOADING = format_event(*RELOAD)


def test_ack_is_sent_before_registration():
    async def scenario():
        hub = NotificationHub()
        client = ReloadClient("tab")
        stream = event_stream(client, hub, interval=60)

        assert await stream.__anext__() == READY
        assert client not in hub

        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        assert client in hub

        assert hub.broadcast() == 1
        assert await asyncio.wait_for(pending, 1) == RELOADING
        assert len(hub) == 0

        await stream.aclose()
        assert client.closed

    asyncio.run(scenario())


def test_heartbeat_pings_until_closed():
    async def scenario():
        hub = NotificationHub()
        client = ReloadClient("tab")
        stream = event_stream(client, hub, interval=0.01)

        assert await stream.__anext__() == READY
        assert await asyncio.wait_for(stream.__anext__(), 1) == WAITING
        assert await asyncio.wait_for(stream.__anext__(), 1) == WAITING

        await stream.aclose()
        assert client not in hub
        queued = client._queue.qsize()
        await asyncio.sleep(0.05)
        assert client._queue.qsize() == queued

    asyncio.run(scenario())


def test_disconnect_removes_client_and_stops_heartbeat():
    async def scenario():
        hub = NotificationHub()
        client = ReloadClient("tab")
        stream = event_stream(client, hub, interval=0.01)
        await stream.__anext__()

        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        assert client in hub
        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)

        assert client not in hub
        assert client.closed
        # nothing left writing to the dead connection
        queued = client._queue.qsize()
        await asyncio.sleep(0.05)
        assert client._queue.qsize() == queued

    asyncio.run(scenario())


def test_broadcast_reaches_n_clients_then_reconnect_gets_fresh_ack():
    async def scenario():
        hub = NotificationHub()
        streams = []
        for i in range(3):
            stream = event_stream(ReloadClient(f"tab{i}"), hub, interval=60)
            assert await stream.__anext__() == READY
            streams.append(stream)
        pending = [asyncio.ensure_future(s.__anext__()) for s in streams]
        await asyncio.sleep(0)
        assert len(hub) == 3

        assert hub.broadcast() == 3
        assert len(hub) == 0
        frames = await asyncio.wait_for(asyncio.gather(*pending), 1)
        assert frames == [RELOADING] * 3

        # the tab reloads and opens a new stream
        again = event_stream(ReloadClient("tab0"), hub, interval=0.01)
        assert await again.__anext__() == READY
        assert await asyncio.wait_for(again.__anext__(), 1) == WAITING

        for s in streams + [again]:
            await s.aclose()
        assert len(hub) == 0

    asyncio.run(scenario())


def test_endpoint_headers_and_cleanup_on_disconnect():
    hub = NotificationHub()
    app = create_reload_app(hub, interval=60)
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "https",
        "path": "/",
        "raw_path": b"/",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"localhost:5000")],
        "client": ("127.0.0.1", 50000),
        "server": ("localhost", 5000),
    }
    messages = []

    async def scenario():
        got_body = asyncio.Event()

        async def receive():
            await got_body.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            messages.append(message)
            if message["type"] == "http.response.body" and message.get("body"):
                got_body.set()

        await asyncio.wait_for(app(scope, receive, send), 2)

    asyncio.run(scenario())

    start = messages[0]
    assert start["status"] == 200
    headers = {k.decode().lower(): v.decode() for k, v in start["headers"]}
    assert headers["content-type"] == "text/event-stream"
    assert headers["cache-control"] == "no-cache"
    assert headers["connection"] == "keep-alive"
    assert headers["access-control-allow-origin"] == "*"

    bodies = [m["body"] for m in messages if m["type"] == "http.response.body" and m.get("body")]
    assert bodies[0] == READY
    assert len(hub) == 0
