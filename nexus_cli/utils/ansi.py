"""Colour and styling helpers built on :mod:`rich`."""

import os

from rich.console import Console
from rich.markup import escape


console = Console(highlight=False)


class Ansi:
    """Style names used for terminal output."""

    BOLD = "bold"
    DIM = "dim"

    FG_GREEN = "green"
    FG_CYAN = "cyan"
    FG_MAGENTA = "magenta"
    FG_YELLOW = "yellow"
    FG_RED = "red"

    @staticmethod
    def style(text: str, *codes: str) -> str:
        """Return *text* wrapped in rich markup unless ``NO_COLOR`` is set."""
        if os.getenv("NO_COLOR") is not None:
            return text
        style = " ".join(codes)
        return f"[{style}]{text}[/]"

    @staticmethod
    def plain(text: str) -> str:
        """Escape *text* so rich prints it verbatim."""
        return escape(text)


USER_LABEL = Ansi.style("You", Ansi.FG_CYAN, Ansi.BOLD)
ASSISTANT_LABEL = Ansi.style("Assistant", Ansi.FG_GREEN, Ansi.BOLD)
ERROR_LABEL = Ansi.style("error", Ansi.FG_RED, Ansi.BOLD)
WARNING_LABEL = Ansi.style("warning", Ansi.FG_YELLOW, Ansi.BOLD)
