"""Exception hierarchy.

Per-game errors (:class:`GameError` and its subclasses) carry the
provenance of the offending record; the pipeline counts and logs them and
moves on. Configuration errors are raised before any game is read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pgnsieve.pgn.models import Game, Provenance


class PgnsieveError(Exception):
    """Base class for every error raised by pgnsieve."""


class GameError(PgnsieveError):
    """A problem localised to one game record.

    ``partial`` holds whatever could be salvaged from the record, for runs
    that keep broken games.
    """

    def __init__(
        self,
        message: str,
        provenance: Provenance | None = None,
        partial: Game | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provenance = provenance
        self.partial = partial

    def __str__(self) -> str:
        if self.provenance is None:
            return self.message
        return f"{self.provenance}: {self.message}"


class MalformedRecord(GameError):
    """The record text does not follow the PGN grammar."""


class IllegalMove(GameError):
    """A move cannot be played in the position reached so far."""

    def __init__(
        self,
        message: str,
        provenance: Provenance | None = None,
        *,
        ply: int = 0,
        san: str = "",
    ) -> None:
        super().__init__(message, provenance)
        self.ply = ply
        self.san = san


class InconsistentResult(GameError):
    """The terminating result contradicts the Result tag or the final board."""


class LookupMiss(PgnsieveError):
    """The opening table has no entry for the game."""


class ConfigurationError(PgnsieveError, ValueError):
    """An option or match criterion is invalid."""


class ConfigurationConflict(ConfigurationError):
    """Two options that exclude each other were both requested."""
