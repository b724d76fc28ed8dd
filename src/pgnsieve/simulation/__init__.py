"""Board simulation: replaying parsed games to per-ply positions."""

from pgnsieve.simulation.models import (
    PlyRecord,
    PositionSnapshot,
    SimulatedGame,
    SimulatedLine,
)
from pgnsieve.simulation.simulator import BoardSimulator, initial_position, snapshot

__all__ = [
    "BoardSimulator",
    "PlyRecord",
    "PositionSnapshot",
    "SimulatedGame",
    "SimulatedLine",
    "initial_position",
    "snapshot",
]
