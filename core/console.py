"""ANSI-colored console output for the human-facing scripts."""

import sys
from typing import TextIO

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
NC = "\033[0m"

RULE = "=" * 40

CHECK_MARK = "✓"
CROSS_MARK = "✗"
WARN_MARK = "⚠"


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{NC}"


def echo(text: str = "", stream: TextIO | None = None) -> None:
    print(text, file=stream or sys.stdout)


def banner(title: str, color: str = BLUE, stream: TextIO | None = None) -> None:
    """Print a title between two ruler lines."""
    echo(colorize(RULE, color), stream)
    echo(colorize(title, color), stream)
    echo(colorize(RULE, color), stream)


def rule(color: str = BLUE, stream: TextIO | None = None) -> None:
    echo(colorize(RULE, color), stream)


def step(index: int, total: int, text: str, stream: TextIO | None = None) -> None:
    """Numbered progress line, e.g. "[2/5] Verifying ...". """
    echo(f"{colorize(f'[{index}/{total}]', GREEN)} {text}", stream)


def ok(text: str, stream: TextIO | None = None) -> None:
    echo(f"{colorize(CHECK_MARK, GREEN)} {text}", stream)


def fail(text: str, stream: TextIO | None = None) -> None:
    echo(f"{colorize(CROSS_MARK, RED)} {text}", stream)


def warn(text: str, stream: TextIO | None = None) -> None:
    echo(f"{colorize(WARN_MARK, YELLOW)} {text}", stream)


def confirm(prompt: str) -> bool:
    """Ask a y/N question; anything but y/Y is a no."""
    try:
        reply = input(f"{prompt} (y/N) ")
    except EOFError:
        return False
    return reply.strip()[:1] in ("y", "Y")
