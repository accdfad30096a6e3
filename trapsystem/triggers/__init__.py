"""
Triggers module - wyzwalanie pułapek ruchem i zarządzanie pułapkami.

Zawiera:
- MovementTriggerEngine: Test ścieżki/nakładania, blokada, dosunięcie
- calculate_trap_position: Wybór komórki dla złapanego tokena
- TrapControl: Konfiguracja, użycia, uzbrojenie, zwalnianie blokad
"""

from .placement import PlacementResult, calculate_trap_position
from .movement import MovementTriggerEngine, TriggerHit
from .control import TrapControl, TrapStatus

__all__ = [
    "PlacementResult", "calculate_trap_position",
    "MovementTriggerEngine", "TriggerHit",
    "TrapControl", "TrapStatus",
]
