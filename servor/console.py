"""
Console output helpers.

Status lines use ANSI background badges: green for served responses,
red for errors, blue for route requests that hand back the fallback page.
"""

GREEN = "\x1b[42m"
RED = "\x1b[41m"
BLUE = "\x1b[44m"
RESET = "\x1b[0m"


def badge(color: str, text) -> str:
    return f" {color} {text} {RESET}"


def log_status(status: int, resource: str):
    """Print one request outcome: coloured status code, then the resource."""
    color = GREEN if status < 400 else RED
    print(f"{badge(color, status)} {resource}", flush=True)


def log_reloading():
    print(f"\n{badge(BLUE, 'RELOADING')}\n", flush=True)
