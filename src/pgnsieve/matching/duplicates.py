"""Corpus-wide duplicate detection over position-fingerprint sequences.

Fingerprints are 64-bit Zobrist keys and strict-mode signatures are 128-bit
BLAKE2b digests of the fingerprint sequence. Both can collide; a collision
makes two different games compare equal. At these widths that is accepted
rather than guarded against with a full comparison.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from pgnsieve.pgn.models import Provenance
from pgnsieve.simulation.models import SimulatedGame

_DIGEST_SIZE = 16


@dataclass(frozen=True, slots=True)
class GameSignature:
    """The fingerprint sequence of a game: initial position plus each ply."""

    fingerprints: tuple[int, ...]

    @classmethod
    def of(
        cls, simulated: SimulatedGame, include_rights: bool = False
    ) -> GameSignature:
        return cls(tuple(simulated.fingerprints(include_rights)))

    @property
    def digest(self) -> bytes:
        h = hashlib.blake2b(digest_size=_DIGEST_SIZE)
        for key in self.fingerprints:
            h.update(key.to_bytes(8, "big"))
        return h.digest()

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()

    @property
    def initial(self) -> int:
        return self.fingerprints[0] if self.fingerprints else 0

    def __len__(self) -> int:
        return len(self.fingerprints)


def edit_distance(a: tuple[int, ...], b: tuple[int, ...], limit: int) -> int:
    """Levenshtein distance between *a* and *b*, or ``limit + 1`` if it exceeds *limit*.

    Only cells within *limit* of the diagonal are computed.
    """
    if abs(len(a) - len(b)) > limit:
        return limit + 1
    too_far = limit + 1
    previous = [j if j <= limit else too_far for j in range(len(b) + 1)]
    for i in range(1, len(a) + 1):
        current = [too_far] * (len(b) + 1)
        if i <= limit:
            current[0] = i
        low = max(1, i - limit)
        high = min(len(b), i + limit)
        for j in range(low, high + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
                too_far,
            )
        if min(current) > limit:
            return too_far
        previous = current
    return previous[len(b)]


class CorpusIndex:
    """Remembers the first game seen for every signature in a run.

    With ``fuzzy_match_depth`` 0, signatures must be identical. Otherwise a
    game duplicates an earlier one from the same starting position whose
    sequence is within ``fuzzy_match_depth`` edits of its own. The index
    only grows; the earliest matching entry always wins.
    """

    __slots__ = ("fuzzy_match_depth", "_exact", "_buckets", "_size")

    def __init__(self, fuzzy_match_depth: int = 0) -> None:
        if fuzzy_match_depth < 0:
            raise ValueError("fuzzy_match_depth must not be negative")
        self.fuzzy_match_depth = fuzzy_match_depth
        self._exact: dict[bytes, Provenance] = {}
        self._buckets: dict[int, list[tuple[tuple[int, ...], Provenance]]] = {}
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def find(self, signature: GameSignature) -> Provenance | None:
        """The first game recorded as equal to *signature*, if any."""
        original = self._exact.get(signature.digest)
        if original is not None or not self.fuzzy_match_depth:
            return original

        depth = self.fuzzy_match_depth
        sequence = signature.fingerprints
        for candidate, provenance in self._buckets.get(signature.initial, ()):
            if abs(len(candidate) - len(sequence)) > depth:
                continue
            if edit_distance(candidate, sequence, depth) <= depth:
                return provenance
        return None

    def add(self, signature: GameSignature, provenance: Provenance) -> None:
        """Record *signature*; a signature already present keeps its first game."""
        digest = signature.digest
        if digest in self._exact:
            return
        self._exact[digest] = provenance
        if self.fuzzy_match_depth:
            self._buckets.setdefault(signature.initial, []).append(
                (signature.fingerprints, provenance)
            )
        self._size += 1
