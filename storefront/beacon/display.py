from __future__ import annotations
import sys
from typing import Optional, Protocol, TextIO

from ..helpers import is_number

LOADING_TEXT = "Lädt..."
FALLBACK_TEXT = "0 online · 0 Besuche"


class DisplaySink(Protocol):
    def set_text(self, text: str) -> None: ...


def _fmt(n) -> str:
    if isinstance(n, float) and n.is_integer():
        n = int(n)
    return str(n)


def format_stats(data) -> str:
    """Counter text for a /metrics/stats response; fallback if malformed."""
    if (
        isinstance(data, dict)
        and is_number(data.get("online"))
        and is_number(data.get("total"))
    ):
        return f"{_fmt(data['online'])} online · {_fmt(data['total'])} Besuche"
    return FALLBACK_TEXT


class CounterDisplay:
    """Holds the counter text and pushes changes to the attached sink.

    Text set before a sink is attached is delivered on attach, so updates
    are safe while the host is still loading.
    """

    def __init__(self, sink: Optional[DisplaySink] = None):
        self._sink = sink
        self._shown: Optional[str] = None
        self.text: Optional[str] = None

    def attach(self, sink: DisplaySink) -> None:
        self._sink = sink
        self._shown = None
        self._flush()

    def update(self, text: str) -> None:
        self.text = text
        self._flush()

    def _flush(self) -> None:
        if self._sink is None or self.text is None:
            return
        if self._shown == self.text:
            return
        self._sink.set_text(self.text)
        self._shown = self.text


class TerminalSink:
    """Redraws the counter in place on a terminal line."""

    def __init__(self, stream: TextIO = None):
        self.stream = stream or sys.stdout
        self._width = 0

    def set_text(self, text: str) -> None:
        pad = max(self._width - len(text), 0)
        self.stream.write("\r" + text + " " * pad)
        self.stream.flush()
        self._width = len(text)
