"""Spinner shown while a request to the model is in flight."""
from __future__ import annotations

from typing import Optional

from yaspin import yaspin

from .ansi import console


class Spinner:
    """Display a small spinner after *text* while work is done.

    Nothing is drawn when the console is not attached to a terminal, so piped
    output and test captures stay clean.
    """

    def __init__(self, text: str = "thinking", enabled: Optional[bool] = None):
        self._enabled = console.is_terminal if enabled is None else enabled
        self._started = False
        self._spinner = yaspin(text=text, side="right") if self._enabled else None

    def start(self) -> None:
        if self._started or self._spinner is None:
            return
        self._spinner.start()
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        self._spinner.stop()
        self._started = False

    def __enter__(self) -> "Spinner":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
