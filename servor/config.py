"""
Startup configuration.

Positional arguments are order-sensitive, as in ``servor [root] [fallback]
[port] [reload_port]``; ``--no-browser`` and ``--no-reload`` may appear
anywhere.
"""

import os
import argparse
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .errors import ConfigError

CERT_FILE = "servor.crt"
KEY_FILE = "servor.key"

DEFAULT_ROOT = "."
DEFAULT_FALLBACK = "index.html"
DEFAULT_PORT = 8080
DEFAULT_RELOAD_PORT = 5000
HEARTBEAT_INTERVAL = 60.0

# Bind host, overridable for containers / VMs
DEFAULT_HOST = os.environ.get("SERVOR_HOST", "0.0.0.0")


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    root_dir: Path
    fallback_file: str = DEFAULT_FALLBACK
    main_port: int = DEFAULT_PORT
    reload_port: int = DEFAULT_RELOAD_PORT
    browser_enabled: bool = True
    reload_enabled: bool = True
    host: str = DEFAULT_HOST
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    cert_file: Path = Path(CERT_FILE)
    key_file: Path = Path(KEY_FILE)

    @property
    def local_url(self) -> str:
        return f"https://localhost:{self.main_port}"


def _port(value: str, name: str) -> int:
    try:
        port = int(value, 10)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"{name} must be between 1 and 65535, got {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servor",
        description="HTTPS static dev server with live reload",
    )
    parser.add_argument("root", nargs="?", default=DEFAULT_ROOT, help="Directory to serve (default: .)")
    parser.add_argument("fallback", nargs="?", default=DEFAULT_FALLBACK,
                        help="Document served for route requests (default: index.html)")
    parser.add_argument("port", nargs="?", default=str(DEFAULT_PORT), help="HTTPS port (default: 8080)")
    parser.add_argument("reload_port", nargs="?", default=str(DEFAULT_RELOAD_PORT),
                        help="Reload event port (default: 5000)")
    parser.add_argument("--no-browser", action="store_true", help="Don't open a browser window")
    parser.add_argument("--no-reload", action="store_true", help="Disable file watching and live reload")
    return parser


def parse_args(argv: Optional[List[str]] = None, cwd: Optional[Path] = None) -> ServerConfig:
    """Build the immutable server configuration from command-line arguments."""
    args = build_parser().parse_intermixed_args(argv)
    base = Path(cwd) if cwd is not None else Path.cwd()

    return ServerConfig(
        root_dir=(base / args.root).resolve(),
        fallback_file=args.fallback,
        main_port=_port(args.port, "port"),
        reload_port=_port(args.reload_port, "reload port"),
        browser_enabled=not args.no_browser,
        reload_enabled=not args.no_reload,
        cert_file=base / CERT_FILE,
        key_file=base / KEY_FILE,
    )


def check_tls(config: ServerConfig):
    """Both TLS files must exist before anything is served."""
    missing = [str(p) for p in (config.cert_file, config.key_file) if not Path(p).is_file()]
    if missing:
        raise ConfigError(
            f"Missing TLS material: {', '.join(missing)}. "
            "Generate a self-signed certificate and key first."
        )
