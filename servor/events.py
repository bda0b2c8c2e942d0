"""
Streaming-event (text/event-stream) framing for the reload channel.

Each frame is an ``event:`` line, an ``id:`` line that is always ``0``
(no replay), a ``data:`` line, then a blank-line flush.
"""

CONNECTED = ("connected", "ready")
PING = ("ping", "waiting")
RELOAD = ("message", "reloading")


def format_event(event: str, data: str) -> bytes:
    """Frame one event exactly as browsers' EventSource expects it."""
    return f"event: {event}\nid: 0\ndata: {data}\n".encode("utf-8") + b"\n\n"
