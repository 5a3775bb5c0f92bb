"""Progress reporting for long-running cluster operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TextIO

_MARKS = {"start": "⌛", "success": "✓", "failure": "✗", "warning": "⚠"}


@dataclass(frozen=True)
class Event:
    """One reported step: its kind and formatted message."""

    kind: str
    message: str


class Reporter:
    """Records status events and optionally echoes them to a stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.events: list[Event] = []
        self._stream = stream
        self._active = False

    def _record(self, kind: str, message: str, args: tuple[Any, ...]) -> str:
        text = message % args if args else message
        self.events.append(Event(kind, text))
        mark = _MARKS.get(kind)
        if self._stream is not None and mark is not None:
            self._stream.write(f"{mark} {text}\n")
        return text

    def start(self, message: str, *args: Any) -> None:
        self.end()
        self._record("start", message, args)
        self._active = True

    def end(self) -> None:
        if self._active:
            self._active = False
            self.events.append(Event("end", ""))

    def success(self, message: str, *args: Any) -> None:
        self._record("success", message, args)

    def failure(self, message: str, *args: Any) -> None:
        self._record("failure", message, args)

    def warning(self, message: str, *args: Any) -> None:
        self._record("warning", message, args)

    def error(self, err: BaseException | None, message: str, *args: Any) -> Exception | None:
        """Report ``err`` as a failure and return an exception to raise; ``None`` if there is no error."""
        if err is None:
            return None
        text = message % args if args else message
        full = f"{text}: {err}" if text else str(err)
        self._record("failure", full, ())
        wrapped = RuntimeError(full)
        wrapped.__cause__ = err
        return wrapped