"""
Dziennik zdarzeń systemu pułapek w formacie JSON.

Każdy krok zmieniający stan (wyzwolenie, przyciągnięcie tokena,
blokada, makro, wykrycie, zmiana aury, zmiana użyć, test, wynik)
jest zapisywany z pełnym kontekstem. Dziennik można wyeksportować
i przejrzeć po sesji albo pokazać przez API.

TYPY ZDARZEŃ:
═══════════════════════════════════════════════════════════════════

    TRAP_TRIGGERED
    ─────────────────────────────────────────────────────────────
    Token wszedł w pułapkę (lub prowadzący wyzwolił ją ręcznie).
    Data: victim_id, intersection [x, y], reason ("path"/"overlap"/"manual")

    TOKEN_SNAPPED
    ─────────────────────────────────────────────────────────────
    Token ustawiony przez system.
    Data: position [x, y], stage ("initial"/"final"/"lock")

    TOKEN_LOCKED / TOKEN_RELEASED
    ─────────────────────────────────────────────────────────────
    Data: offset [dx, dy] / depleted (bool)

    MACRO_EXECUTED / MACRO_FAILED
    ─────────────────────────────────────────────────────────────
    Data: macro, role ("primary"/"success"/"failure"/"option")

    USES_CHANGED / ARMED_CHANGED
    ─────────────────────────────────────────────────────────────
    Data: current, max / armed

    PASSIVE_NOTICE / NOTICE_SUPPRESSED
    ─────────────────────────────────────────────────────────────
    Data: observer_id, final_pp, base_pp, luck_bonus, distance

    AURA_UPDATED
    ─────────────────────────────────────────────────────────────
    Data: color, radius

    INTERACTION_STATE / CHECK_REQUESTED / CHECK_RESOLVED
    ─────────────────────────────────────────────────────────────
    Data: from_state, to_state / skill, dc / total, success

FORMAT LOGU:
═══════════════════════════════════════════════════════════════════

{
    "metadata": {"version": "2.0", "seed": 12345, "timestamp": "..."},
    "events": [
        {"time": 0.0, "type": "TRAP_TRIGGERED", "trap_id": "pit",
         "token_id": "hero", "data": {...}},
        ...
    ]
}
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
import json
from pathlib import Path


class EventType(Enum):
    """Typ zdarzenia w systemie pułapek."""

    # Wyzwalanie
    TRAP_TRIGGERED = auto()
    TOKEN_SNAPPED = auto()
    TOKEN_LOCKED = auto()
    TOKEN_RELEASED = auto()

    # Makra
    MACRO_EXECUTED = auto()
    MACRO_FAILED = auto()

    # Konfiguracja
    USES_CHANGED = auto()
    ARMED_CHANGED = auto()
    TRIGGERS_TOGGLED = auto()
    CONFIG_CHANGED = auto()

    # Wykrywanie
    PASSIVE_NOTICE = auto()
    NOTICE_SUPPRESSED = auto()
    DETECTION_RESET = auto()
    AURA_UPDATED = auto()
    AURAS_HIDDEN = auto()
    AURAS_SHOWN = auto()

    # Interakcja
    INTERACTION_STATE = auto()
    CHECK_REQUESTED = auto()
    CHECK_RESOLVED = auto()

    # Utrzymanie stołu
    MACROS_EXPORTED = auto()
    STATES_RESET = auto()
    MACROS_RESET = auto()


@dataclass
class TrapEvent:
    """
    Pojedyncze zdarzenie.

    Attributes:
        time (float): Czas zdarzenia według zegara hosta
        event_type (EventType): Typ zdarzenia
        trap_id (Optional[str]): ID pułapki (jeśli dotyczy)
        token_id (Optional[str]): ID tokena (ofiara / obserwator)
        data (Dict): Dodatkowe dane specyficzne dla typu zdarzenia
    """
    time: float
    event_type: EventType
    trap_id: Optional[str] = None
    token_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serializuje zdarzenie do słownika."""
        result = {
            "time": self.time,
            "type": self.event_type.name,
        }

        if self.trap_id:
            result["trap_id"] = self.trap_id
        if self.token_id:
            result["token_id"] = self.token_id
        if self.data:
            result["data"] = self.data

        return result


class EventLogger:
    """
    Dziennik zdarzeń systemu pułapek.

    Attributes:
        events (List[TrapEvent]): Lista wszystkich zdarzeń
        metadata (Dict): Metadane sesji
        clock (Callable[[], float]): Źródło czasu (zegar hosta)

    Example:
        >>> logger = EventLogger(seed=12345)
        >>> logger.log_trigger("pit", None, None, "manual")
        >>> logger.get_event_count()
        1
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Inicjalizuje dziennik.

        Args:
            seed: Ziarno RNG sesji (do metadanych)
            clock: Funkcja zwracająca aktualny czas
        """
        self.events: List[TrapEvent] = []
        self.clock = clock or (lambda: 0.0)
        self.metadata: Dict[str, Any] = {
            "version": "2.0",
            "seed": seed,
            "timestamp": datetime.now().isoformat(),
        }

    # ─────────────────────────────────────────────────────────────────────────
    # LOGOWANIE OGÓLNE
    # ─────────────────────────────────────────────────────────────────────────

    def log(self, event: TrapEvent) -> None:
        """Dodaje zdarzenie do dziennika."""
        self.events.append(event)

    def log_event(
        self,
        event_type: EventType,
        trap_id: Optional[str] = None,
        token_id: Optional[str] = None,
        **data: Any,
    ) -> TrapEvent:
        """
        Tworzy i loguje zdarzenie.

        Args:
            event_type: Typ zdarzenia
            trap_id: ID pułapki
            token_id: ID tokena
            **data: Dodatkowe dane

        Returns:
            TrapEvent: Utworzone zdarzenie
        """
        event = TrapEvent(
            time=self.clock(),
            event_type=event_type,
            trap_id=trap_id,
            token_id=token_id,
            data=dict(data),
        )
        self.log(event)
        return event

    # ─────────────────────────────────────────────────────────────────────────
    # POMOCNICZE METODY LOGOWANIA
    # ─────────────────────────────────────────────────────────────────────────

    def log_trigger(self, trap_id: str, victim_id: Optional[str], point, reason: str) -> None:
        """Loguje wyzwolenie pułapki."""
        position = point.to_list() if point is not None else None
        self.log_event(EventType.TRAP_TRIGGERED, trap_id, victim_id, intersection=position, reason=reason)

    def log_snap(self, trap_id: str, token_id: str, position, stage: str) -> None:
        self.log_event(EventType.TOKEN_SNAPPED, trap_id, token_id, position=position.to_list(), stage=stage)

    def log_uses(self, trap_id: str, current: int, maximum: int, armed: bool) -> None:
        self.log_event(EventType.USES_CHANGED, trap_id, current=current, max=maximum, armed=armed)

    def log_macro(self, trap_id: Optional[str], macro: str, role: str, ok: bool) -> None:
        event_type = EventType.MACRO_EXECUTED if ok else EventType.MACRO_FAILED
        self.log_event(event_type, trap_id, macro=macro, role=role)

    def log_state_change(self, trap_id: str, from_state: str, to_state: str) -> None:
        self.log_event(EventType.INTERACTION_STATE, trap_id, from_state=from_state, to_state=to_state)

    # ─────────────────────────────────────────────────────────────────────────
    # EKSPORT
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """
        Serializuje cały dziennik do słownika.

        Returns:
            Dict: Pełny dziennik w formacie dla JSON
        """
        return {
            "metadata": self.metadata,
            "events": [e.to_dict() for e in self.events],
        }

    def save(self, filepath: str) -> None:
        """
        Zapisuje dziennik do pliku JSON.

        Args:
            filepath: Ścieżka do pliku
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Zwraca dziennik jako string JSON."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    # ─────────────────────────────────────────────────────────────────────────
    # FILTRY
    # ─────────────────────────────────────────────────────────────────────────

    def get_event_count(self) -> int:
        """Zwraca liczbę zdarzeń."""
        return len(self.events)

    def get_events_by_type(self, event_type: EventType) -> List[TrapEvent]:
        """Filtruje zdarzenia po typie."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_for_trap(self, trap_id: str) -> List[TrapEvent]:
        """Filtruje zdarzenia dla pułapki."""
        return [e for e in self.events if e.trap_id == trap_id]

    def get_events_for_token(self, token_id: str) -> List[TrapEvent]:
        """Filtruje zdarzenia dla tokena."""
        return [e for e in self.events if e.token_id == token_id]

    def clear(self) -> None:
        self.events.clear()
