"""Console output helpers for the CLI."""

import sys
from enum import Enum
from typing import Optional, TextIO


class Color(str, Enum):
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"


def colorize(text: str, *colors: Color, use_color: bool = True) -> str:
    """Apply ANSI colors to text.

    Args:
        text: Text to colorize
        *colors: Colors to apply
        use_color: Whether to actually apply colors

    Returns:
        Colorized text string
    """
    if not use_color or not colors:
        return text
    color_codes = "".join(c.value for c in colors)
    return f"{color_codes}{text}{Color.RESET.value}"


def _emit(message: str, color: Color, stream: TextIO, use_color: Optional[bool]) -> None:
    if use_color is None:
        use_color = stream.isatty()
    print(colorize(message, color, use_color=use_color), file=stream)


def print_success(message: str, stream: Optional[TextIO] = None, use_color: Optional[bool] = None) -> None:
    _emit(message, Color.GREEN, stream or sys.stdout, use_color)


def print_warning(message: str, stream: Optional[TextIO] = None, use_color: Optional[bool] = None) -> None:
    _emit(message, Color.YELLOW, stream or sys.stderr, use_color)


def print_error(message: str, stream: Optional[TextIO] = None, use_color: Optional[bool] = None) -> None:
    _emit(message, Color.RED, stream or sys.stderr, use_color)
