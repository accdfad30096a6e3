"""
Interaction module - przebieg interakcji z wyzwoloną pułapką.

Zawiera:
- InteractionState, InteractionStateMachine: Stany i tranzycje sesji
- InteractionSession: Sesja jednej pułapki
- InteractionEngine: Akcje prowadzącego, testy umiejętności, wyniki rzutów
- menus: Teksty menu czatu
"""

from .state_machine import InteractionState, InteractionStateMachine, InteractionSession, TRANSITIONS
from .engine import InteractionEngine, RollOutcome

__all__ = [
    "InteractionState", "InteractionStateMachine", "InteractionSession", "TRANSITIONS",
    "InteractionEngine", "RollOutcome",
]
