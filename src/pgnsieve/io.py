"""Stream opening, output sinks and ECO table loading.

This is the only module that touches the filesystem.
"""

from __future__ import annotations

import io
import itertools
import logging
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import zstandard as zstd

from pgnsieve.matching.eco import EcoTable
from pgnsieve.pgn.models import Game
from pgnsieve.pgn.parser import GameReader, ParseOptions
from pgnsieve.pipeline import ProcessedGame, Sink

_LOGGER = logging.getLogger(__name__)

STDIO = "-"


@contextmanager
def open_pgn(path: str | Path) -> Iterator[TextIO]:
    """Open a PGN source for reading as text.

    ``-`` is standard input and a ``.zst`` suffix means zstandard
    compression. Undecodable bytes are replaced rather than fatal.
    """
    if str(path) == STDIO:
        yield sys.stdin
        return
    path = Path(path)
    if path.suffix == ".zst":
        with path.open("rb") as fh:
            dctx = zstd.ZstdDecompressor()
            with dctx.stream_reader(fh) as reader:
                yield io.TextIOWrapper(reader, encoding="utf-8", errors="replace")
        return
    with path.open(encoding="utf-8", errors="replace") as fh:
        yield fh


def read_games(
    paths: Iterable[str | Path],
    options: ParseOptions | None = None,
    *,
    sequence: Iterator[int] | None = None,
) -> Iterator[Game]:
    """Games from every source in turn, numbered by one shared counter."""
    sequence = sequence if sequence is not None else itertools.count(1)
    for path in paths:
        _LOGGER.debug("Reading %s", path)
        with open_pgn(path) as stream:
            source = "<stdin>" if str(path) == STDIO else str(path)
            yield from GameReader(stream, source, options, sequence=sequence)


def load_eco_table(
    path: str | Path,
    *,
    include_rights: bool = False,
    options: ParseOptions | None = None,
) -> EcoTable:
    """Build an :class:`EcoTable` from a PGN file of classified lines."""
    with open_pgn(path) as stream:
        return EcoTable.from_games(
            GameReader(stream, str(path), options), include_rights=include_rights
        )


class OutputSink:
    """One output destination: a file, standard output or a split directory.

    With ``split`` the target is a directory and game records go to
    ``1.pgn``, ``2.pgn``, ... following each route's ``file_number``. With
    ``json_array`` the records of every file are framed as a JSON array.
    """

    __slots__ = (
        "target",
        "suffix",
        "split",
        "json_array",
        "_stream",
        "_file_number",
        "_written",
    )

    def __init__(
        self,
        target: str | Path,
        *,
        suffix: str = ".pgn",
        split: bool = False,
        json_array: bool = False,
    ) -> None:
        if split and str(target) == STDIO:
            raise ValueError("a split sink needs a directory, not standard output")
        self.target = target
        self.suffix = suffix
        self.split = split
        self.json_array = json_array
        self._stream: TextIO | None = None
        self._file_number = 0
        self._written = 0

    def write(self, records: Iterable[str], file_number: int = 1) -> None:
        stream = self._stream_for(file_number)
        for record in records:
            if self.json_array:
                stream.write("[\n" if self._written == 0 else ",\n")
                stream.write(record)
            else:
                stream.write(record)
            self._written += 1

    def close(self) -> None:
        if self.json_array and (self._written or not self.split):
            stream = self._stream_for(self._file_number or 1)
            stream.write("\n]\n" if self._written else "[]\n")
        self._release()

    def _stream_for(self, file_number: int) -> TextIO:
        current = self._stream
        if current is not None and (not self.split or file_number == self._file_number):
            return current
        if self._stream is not None:
            if self.json_array and self._written:
                self._stream.write("\n]\n")
            self._release()
        self._file_number = file_number
        self._written = 0
        if str(self.target) == STDIO:
            self._stream = sys.stdout
        else:
            path = Path(self.target)
            if self.split:
                path.mkdir(parents=True, exist_ok=True)
                path = path / f"{file_number}{self.suffix}"
            _LOGGER.debug("Writing %s", path)
            self._stream = path.open("w", encoding="utf-8")
        return self._stream

    def _release(self) -> None:
        if self._stream is None:
            return
        if self._stream is sys.stdout:
            self._stream.flush()
        else:
            self._stream.close()
        self._stream = None


class SinkSet:
    """The matched, non-matching and duplicates sinks of a run."""

    __slots__ = ("_sinks",)

    def __init__(
        self,
        matched: OutputSink,
        non_matching: OutputSink | None = None,
        duplicates: OutputSink | None = None,
    ) -> None:
        self._sinks: dict[Sink, OutputSink] = {Sink.MATCHED: matched}
        if non_matching is not None:
            self._sinks[Sink.NON_MATCHING] = non_matching
        if duplicates is not None:
            self._sinks[Sink.DUPLICATES] = duplicates

    def __enter__(self) -> SinkSet:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write(self, processed: ProcessedGame) -> None:
        route = processed.route
        sink = self._sinks.get(route.sink)
        if sink is None:
            return
        sink.write(processed.records, route.file_number)

    def close(self) -> None:
        for sink in self._sinks.values():
            sink.close()
