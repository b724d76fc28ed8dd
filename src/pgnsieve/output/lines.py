"""Line wrapping for PGN movetext."""

from __future__ import annotations


class LineWriter:
    """Collects whitespace-separated tokens into lines of bounded length.

    A token is never split; one that is longer than the limit gets a line
    of its own. ``max_length`` 0 disables wrapping.
    """

    __slots__ = ("max_length", "_lines", "_current", "_glue")

    def __init__(self, max_length: int = 75) -> None:
        self.max_length = max_length
        self._lines: list[str] = []
        self._current: list[str] = []
        self._glue = ""

    def _fits(self, extra: int) -> bool:
        if not self.max_length or not self._current:
            return True
        width = sum(len(t) for t in self._current) + len(self._current) - 1
        return width + extra <= self.max_length

    def add(self, token: str) -> None:
        token = self._glue + token
        self._glue = ""
        if not self._fits(len(token) + 1):
            self.break_line()
        self._current.append(token)

    def prefix_next(self, text: str) -> None:
        """Glue *text* to the front of the next token, as with ``(``."""
        self._glue += text

    def append_to_last(self, text: str) -> None:
        """Glue *text* to the end of the last token, as with ``)``."""
        if not self._current:
            if self._lines:
                self._current = self._lines.pop().split(" ")
            else:
                self._current.append("")
        last = self._current.pop()
        if self._current and not self._fits(len(last) + len(text) + 1):
            self.break_line()
        self._current.append(last + text)

    def break_line(self) -> None:
        if self._current:
            self._lines.append(" ".join(self._current))
            self._current = []

    def text(self) -> str:
        self.break_line()
        return "\n".join(self._lines)
