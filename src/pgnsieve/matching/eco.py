"""Opening classification by position lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from pgnsieve.errors import LookupMiss
from pgnsieve.pgn.models import Game
from pgnsieve.simulation.models import SimulatedGame
from pgnsieve.simulation.simulator import BoardSimulator

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EcoEntry:
    eco: str
    opening: str = ""
    variation: str = ""
    sub_variation: str = ""
    ply: int = 0

    def tags(self) -> dict[str, str]:
        """Tag pairs describing this entry; empty names are left out."""
        pairs = {
            "ECO": self.eco,
            "Opening": self.opening,
            "Variation": self.variation,
            "SubVariation": self.sub_variation,
        }
        return {name: value for name, value in pairs.items() if value}


class EcoTable:
    """Read-only mapping from position fingerprint to :class:`EcoEntry`.

    Keying by position rather than by move order lets transpositions reach
    the same classification.
    """

    __slots__ = ("_entries", "include_rights")

    def __init__(
        self,
        entries: Mapping[int, EcoEntry] | None = None,
        *,
        include_rights: bool = False,
    ) -> None:
        self._entries: dict[int, EcoEntry] = dict(entries or {})
        self.include_rights = include_rights

    @classmethod
    def from_games(
        cls, games: Iterable[Game], *, include_rights: bool = False
    ) -> EcoTable:
        """Build a table from classification games carrying an ``ECO`` tag.

        Each game's final position is keyed to its tags. When two games end
        in the same position the first one is kept.
        """
        simulator = BoardSimulator()
        entries: dict[int, EcoEntry] = {}
        for game in games:
            code = game.tags.get("ECO")
            if not code:
                continue
            simulated = simulator.simulate(game)
            final = simulated.final
            if simulated.error is not None or final is None:
                _LOGGER.warning(
                    "%s: unusable ECO line: %s", game.provenance, simulated.error
                )
                continue
            entries.setdefault(
                final.fingerprint(include_rights),
                EcoEntry(
                    eco=code,
                    opening=game.tags.get("Opening", ""),
                    variation=game.tags.get("Variation", ""),
                    sub_variation=game.tags.get("SubVariation", ""),
                    ply=final.ply,
                ),
            )
        _LOGGER.info("Loaded %d ECO positions", len(entries))
        return cls(entries, include_rights=include_rights)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def lookup(self, fingerprint: int) -> EcoEntry:
        try:
            return self._entries[fingerprint]
        except KeyError:
            raise LookupMiss(f"no ECO entry for position {fingerprint:016x}") from None

    def classify(self, simulated: SimulatedGame) -> EcoEntry:
        """Entry for the deepest mainline position found in the table."""
        for snap in reversed(list(simulated.mainline.snapshots())):
            entry = self._entries.get(snap.fingerprint(self.include_rights))
            if entry is not None:
                return entry
        raise LookupMiss(f"{simulated.game.provenance}: no ECO classification")
