"""
Maszyna stanów interakcji z pułapką.

Każde wyzwolenie pułapki otwiera JEDNĄ sesję. Sesja przechodzi przez
stany aż do zwolnienia ruchu złapanego tokena.

STANY:
═══════════════════════════════════════════════════════════════════

    IDLE
    ─────────────────────────────────────────────────────────────
    Brak aktywnej interakcji.
    Wyjście: -> TRIGGERED (ruch tokena / wyzwolenie ręczne)

    TRIGGERED
    ─────────────────────────────────────────────────────────────
    Pułapka wyzwolona. Pułapka standardowa (lub interakcyjna bez
    makr sukcesu/porażki) od razu przechodzi do RESOLVED.
    Inaczej prowadzący wybiera "trigger" albo "explain".
    Wyjście:
        -> RESOLVED (rozstrzygnięcie natychmiastowe)
        -> EXPLAIN_ATTEMPT (akcja explain)
        -> GM_DECISION (trigger, postać ustalona)
        -> CHARACTER_SELECTION (trigger, postać nieustalona)

    EXPLAIN_ATTEMPT
    ─────────────────────────────────────────────────────────────
    Gracz opisuje, co robi. Makro nie jest uruchamiane.
    Wyjście: -> GM_DECISION | CHARACTER_SELECTION

    CHARACTER_SELECTION
    ─────────────────────────────────────────────────────────────
    Token nie reprezentuje postaci - prowadzący wybiera z listy
    postaci kontrolowanych przez graczy.
    Wyjście: -> GM_DECISION

    GM_DECISION
    ─────────────────────────────────────────────────────────────
    Menu odpowiedzi: allow / fail / test umiejętności.
    Wyjście: -> SKILL_CHECK | RESOLVED

    SKILL_CHECK
    ─────────────────────────────────────────────────────────────
    Oczekujący test (PendingCheck). Wynik rzutu rozstrzyga.
    Wyjście: -> SKILL_CHECK (nowy test) | GM_DECISION | RESOLVED

    RESOLVED
    ─────────────────────────────────────────────────────────────
    Sukces albo porażka. Blokada zdejmowana / użycie zużyte.
    Wyjście: -> MOVEMENT_RELEASED

    MOVEMENT_RELEASED
    ─────────────────────────────────────────────────────────────
    Stan końcowy sesji.

DIAGRAM TRANZYCJI:
═══════════════════════════════════════════════════════════════════

    IDLE ──► TRIGGERED ──────────────────────────────┐
                │   │                                 │
          explain   trigger                    natychmiast
                │   │                                 │
                ▼   ▼                                 │
     EXPLAIN_ATTEMPT ──► CHARACTER_SELECTION          │
                │              │                      │
                ▼              ▼                      │
              GM_DECISION ◄────┘                      │
                │     ▲                               │
                ▼     │                               │
              SKILL_CHECK ⟲                           │
                │                                     │
                ▼                                     ▼
              RESOLVED ◄──────────────────────────────┘
                │
                ▼
          MOVEMENT_RELEASED
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional

from ..errors import InvalidTransition


class InteractionState(Enum):
    """Stan sesji interakcji."""

    IDLE = auto()
    TRIGGERED = auto()
    EXPLAIN_ATTEMPT = auto()
    CHARACTER_SELECTION = auto()
    GM_DECISION = auto()
    SKILL_CHECK = auto()
    RESOLVED = auto()
    MOVEMENT_RELEASED = auto()

    def is_terminal(self) -> bool:
        return self == InteractionState.MOVEMENT_RELEASED

    def is_pending(self) -> bool:
        """Czy sesja czeka na decyzję prowadzącego lub rzut."""
        return self not in (
            InteractionState.IDLE,
            InteractionState.RESOLVED,
            InteractionState.MOVEMENT_RELEASED,
        )

    def accepts_decision(self) -> bool:
        """Czy allow / fail / test są teraz dozwolone."""
        return self in (InteractionState.GM_DECISION, InteractionState.SKILL_CHECK)

    def __str__(self) -> str:
        return self.name


_S = InteractionState

TRANSITIONS: Dict[InteractionState, FrozenSet[InteractionState]] = {
    _S.IDLE: frozenset({_S.TRIGGERED}),
    _S.TRIGGERED: frozenset({_S.RESOLVED, _S.EXPLAIN_ATTEMPT, _S.GM_DECISION, _S.CHARACTER_SELECTION}),
    _S.EXPLAIN_ATTEMPT: frozenset({_S.GM_DECISION, _S.CHARACTER_SELECTION}),
    _S.CHARACTER_SELECTION: frozenset({_S.GM_DECISION}),
    _S.GM_DECISION: frozenset({_S.SKILL_CHECK, _S.RESOLVED}),
    _S.SKILL_CHECK: frozenset({_S.SKILL_CHECK, _S.GM_DECISION, _S.RESOLVED}),
    _S.RESOLVED: frozenset({_S.MOVEMENT_RELEASED}),
    _S.MOVEMENT_RELEASED: frozenset(),
}


class InteractionStateMachine:
    """
    Maszyna stanów jednej sesji.

    Attributes:
        trap_id (str): Pułapka, której dotyczy sesja
        current (InteractionState): Aktualny stan
        history (List[InteractionState]): Odwiedzone stany (z aktualnym)

    Example:
        >>> fsm = InteractionStateMachine("pit")
        >>> fsm.transition_to(InteractionState.TRIGGERED)
        >>> fsm.can_transition(InteractionState.SKILL_CHECK)
        False
    """

    def __init__(self, trap_id: str, initial: InteractionState = InteractionState.IDLE):
        self.trap_id = trap_id
        self.current: InteractionState = initial
        self.history: List[InteractionState] = [initial]

    def can_transition(self, new_state: InteractionState) -> bool:
        return new_state in TRANSITIONS[self.current]

    def transition_to(self, new_state: InteractionState) -> None:
        """
        Przechodzi do nowego stanu.

        Raises:
            InvalidTransition: Przejście niedozwolone z aktualnego stanu
        """
        if not self.can_transition(new_state):
            raise InvalidTransition(self.trap_id, self.current, new_state)
        self.current = new_state
        self.history.append(new_state)

    def require(self, *states: InteractionState) -> None:
        """
        Raises:
            InvalidTransition: Aktualny stan nie jest jednym z podanych
        """
        if self.current not in states:
            raise InvalidTransition(self.trap_id, self.current, "/".join(s.name for s in states))

    def is_pending(self) -> bool:
        return self.current.is_pending()

    def reset(self) -> None:
        self.current = InteractionState.IDLE
        self.history = [InteractionState.IDLE]

    def __repr__(self) -> str:
        return f"InteractionStateMachine({self.trap_id}, {self.current.name})"


@dataclass
class InteractionSession:
    """
    Sesja interakcji z pułapką.

    Attributes:
        trap_id (str): Pułapka
        machine (InteractionStateMachine): Stan sesji
        victim_id (Optional[str]): Złapany token (None = wyzwolenie ręczne)
        character_id, character_name: Ustalona postać
        outcome (Optional[str]): "success", "failure" albo "triggered"
    """
    trap_id: str
    machine: InteractionStateMachine
    victim_id: Optional[str] = None
    character_id: Optional[str] = None
    character_name: Optional[str] = None
    outcome: Optional[str] = None
    candidates: List[str] = field(default_factory=list)

    @classmethod
    def start(cls, trap_id: str, victim_id: Optional[str] = None) -> "InteractionSession":
        return cls(trap_id, InteractionStateMachine(trap_id), victim_id)

    @property
    def state(self) -> InteractionState:
        return self.machine.current

    def to_dict(self) -> dict:
        return {
            "trap_id": self.trap_id,
            "state": self.state.name,
            "victim_id": self.victim_id,
            "character_id": self.character_id,
            "character_name": self.character_name,
            "outcome": self.outcome,
            "candidates": list(self.candidates),
            "history": [s.name for s in self.machine.history],
        }
