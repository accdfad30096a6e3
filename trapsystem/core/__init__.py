"""
Core module - podstawowe komponenty silnika pułapek.

Zawiera:
- geometry: Odcinki, obrócone prostokąty, siatka, odległości
- GameRNG, DiceSpec: Deterministyczne rzuty kośćmi
- ConfigLoader, TrapSystemConfig: Konfiguracja z defaults.yaml
- StateStore: Wstrzykiwane repozytoria stanu procesu
- join_all: Uruchomienie N zadań i oczekiwanie na wszystkie
"""

from .geometry import (
    Point,
    OrientedBox,
    GridMetrics,
    GridResolver,
    Footprint,
    Distance,
    segment_intersection,
    oriented_box_corners,
    point_in_oriented_box,
    segment_box_intersection,
    token_footprint,
    footprints_overlap,
    distance_between,
)
from .rng import GameRNG, DiceSpec, DiceRoll
from .config_loader import ConfigLoader, TrapSystemConfig
from .state import (
    StateStore,
    LockRecord,
    PendingCheck,
    RollMode,
    ExportedState,
)
from .concurrency import join_all

__all__ = [
    "Point", "OrientedBox", "GridMetrics", "GridResolver", "Footprint", "Distance",
    "segment_intersection", "oriented_box_corners", "point_in_oriented_box",
    "segment_box_intersection", "token_footprint", "footprints_overlap",
    "distance_between",
    "GameRNG", "DiceSpec", "DiceRoll",
    "ConfigLoader", "TrapSystemConfig",
    "StateStore", "LockRecord", "PendingCheck", "RollMode", "ExportedState",
    "join_all",
]
