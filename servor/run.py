"""
servor entry point.

Checks TLS material and the watch target, starts the reload channel and
the change watcher (unless --no-reload), then the static file server,
prints where everything is and opens a browser tab.
"""

import sys
import socket
import asyncio
import webbrowser
from typing import List, Optional

import uvicorn

from .config import ServerConfig, check_tls, parse_args
from .errors import ServorError, WatchError
from .hub import NotificationHub
from .mime import load_mime_table
from .reload_server import create_reload_app
from .static_server import create_static_app
from .watcher import ChangeWatcher, watch


# ═══════════════════════════════════════════════════════
# NETWORK / BROWSER
# ═══════════════════════════════════════════════════════

def network_addresses() -> List[str]:
    """Non-loopback IPv4 addresses of this machine, best first."""
    addresses = []
    try:
        # UDP connect sends nothing; it only picks the outbound interface
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("10.255.255.255", 1))
            addresses.append(s.getsockname()[0])
    except OSError:
        pass
    try:
        for info in socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET):
            addresses.append(info[4][0])
    except OSError:
        pass

    seen = []
    for ip in addresses:
        if not ip.startswith("127.") and ip != "0.0.0.0" and ip not in seen:
            seen.append(ip)
    return seen


def open_browser(url: str):
    try:
        webbrowser.open(url)
    except Exception as e:
        print(f"  ⚠️ Could not open a browser: {e}", flush=True)


def print_banner(config: ServerConfig, root_arg: str):
    print(f"\n 🗂  Serving files from ./{root_arg} on {config.local_url}")
    ips = network_addresses()
    if ips:
        print(f" 📡 Exposed to the network on https://{ips[0]}:{config.main_port}")
    print(f" 🖥  Using {config.fallback_file} as the fallback for route requests")
    if config.reload_enabled:
        print(f" ♻️  Reloading the browser when files under ./{root_arg} change")
    print(flush=True)


# ═══════════════════════════════════════════════════════
# SERVERS
# ═══════════════════════════════════════════════════════

def make_server(app, config: ServerConfig, port: int) -> uvicorn.Server:
    return uvicorn.Server(uvicorn.Config(
        app,
        host=config.host,
        port=port,
        ssl_certfile=str(config.cert_file),
        ssl_keyfile=str(config.key_file),
        log_level="warning",
        access_log=False,
        # reload streams never finish on their own
        timeout_graceful_shutdown=1,
    ))


async def broadcast_changes(watcher: ChangeWatcher, hub: NotificationHub):
    """One hub broadcast per change, for as long as the watcher runs."""
    async for _ in watcher:
        hub.broadcast()


async def serve(config: ServerConfig):
    """Run every server (and the watcher) until one of them stops."""
    servers: List[uvicorn.Server] = []
    tasks = []
    watcher: Optional[ChangeWatcher] = None

    if config.reload_enabled:
        watcher = watch(config.root_dir)
        hub = NotificationHub()
        reload_server = make_server(
            create_reload_app(hub, config.heartbeat_interval), config, config.reload_port
        )
        servers.append(reload_server)
        tasks.append(asyncio.create_task(reload_server.serve()))
        tasks.append(asyncio.create_task(broadcast_changes(watcher, hub)))

    main_server = make_server(create_static_app(config, load_mime_table()), config, config.main_port)
    servers.append(main_server)
    tasks.append(asyncio.create_task(main_server.serve()))

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for server in servers:
            server.should_exit = True
        if watcher is not None:
            watcher.close()
        await asyncio.gather(*tasks, return_exceptions=True)


def main(argv: Optional[List[str]] = None):
    argv = sys.argv[1:] if argv is None else argv
    root_arg = next((a for a in argv if not a.startswith("--")), ".")

    try:
        config = parse_args(argv)
        check_tls(config)
        if config.reload_enabled and not config.root_dir.is_dir():
            # fail before binding anything; watch() re-checks at start
            raise WatchError(f"Watch target is not a directory: {config.root_dir}")
    except ServorError as e:
        print(f"\n ❌ {e}", file=sys.stderr, flush=True)
        sys.exit(1)

    print_banner(config, root_arg)
    if config.browser_enabled:
        open_browser(config.local_url)

    try:
        asyncio.run(serve(config))
    except ServorError as e:
        print(f"\n ❌ {e}", file=sys.stderr, flush=True)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n⏹️ Stopped")

