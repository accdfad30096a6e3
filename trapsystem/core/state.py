"""
Stan procesu systemu pułapek - repozytoria wstrzykiwane do komponentów.

Każdy TrapSystem tworzy JEDEN StateStore i przekazuje jego części
komponentom w konstruktorach. Nie ma globalnych słowników.

REPOZYTORIA:
═══════════════════════════════════════════════════════════════════

    LockRepository
    ─────────────────────────────────────────────────────────────
    token -> LockRecord. Rekord istnieje dopóki interakcja pułapki,
    która złapała token, nie zostanie rozstrzygnięta.

    PendingCheckRepository
    ─────────────────────────────────────────────────────────────
    Oczekujące testy umiejętności. Klucz główny: ID prowadzącego.
    Lustrzany indeks: ID postaci (wynik rzutu szukamy najpierw po
    postaci, potem po prowadzącym).

    NoticeDebounce
    ─────────────────────────────────────────────────────────────
    Ostatnio wysłane powiadomienia per obserwator. Identyczna treść
    w oknie (domyślnie 100 s) jest tłumiona.

    DetectionRegistry
    ─────────────────────────────────────────────────────────────
    pułapka -> zbiór obserwatorów, którzy ją zauważyli.

    SafeMoves
    ─────────────────────────────────────────────────────────────
    Tokeny przesunięte programowo - następny raport ruchu do pozycji
    docelowej jest ignorowany (jednorazowo).

    GlobalFlags
    ─────────────────────────────────────────────────────────────
    triggers_enabled, auras_hidden, uchwyt timera ukrycia aur.

    ExportedState
    ─────────────────────────────────────────────────────────────
    Treść makr oraz stan tokenów i drzwi z chwili eksportu makr
    (źródło resetu stołu).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from .geometry import Point
from ..host.scheduler import ScheduledHandle


class RollMode(Enum):
    """Sposób rzutu testu."""
    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"

    @classmethod
    def parse(cls, value: str) -> "RollMode":
        """
        Parsuje nazwę trybu ("adv", "advantage", "dis", ...).

        Raises:
            ValueError: Dla nieznanego trybu
        """
        key = (value or "").strip().lower()
        aliases = {"adv": cls.ADVANTAGE, "dis": cls.DISADVANTAGE, "disadv": cls.DISADVANTAGE}
        if key in aliases:
            return aliases[key]
        return cls(key)


# ─────────────────────────────────────────────────────────────────────────────
# BLOKADY RUCHU
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class LockRecord:
    """
    Blokada tokena złapanego przez pułapkę.

    Attributes:
        token_id (str): Zablokowany token
        trap_id (str): Pułapka, która go złapała
        locked (bool): Czy ruch jest blokowany
        macro_triggered (bool): Czy makro główne już się wykonało
            (zwolnienie blokady zużyje wtedy jedno użycie)
        offset (Point): Pozycja tokena względem środka pułapki
    """
    token_id: str
    trap_id: str
    locked: bool = True
    macro_triggered: bool = False
    offset: Point = field(default_factory=lambda: Point(0.0, 0.0))


class LockRepository:
    """Blokady ruchu wg ID tokena."""

    def __init__(self):
        self._records: Dict[str, LockRecord] = {}

    def put(self, record: LockRecord) -> None:
        self._records[record.token_id] = record

    def get(self, token_id: str) -> Optional[LockRecord]:
        return self._records.get(token_id)

    def is_locked(self, token_id: str) -> bool:
        record = self._records.get(token_id)
        return bool(record and record.locked)

    def release(self, token_id: str) -> Optional[LockRecord]:
        """Usuwa blokadę i zwraca ją (None jeśli nie było)."""
        return self._records.pop(token_id, None)

    def for_trap(self, trap_id: str) -> List[LockRecord]:
        return [r for r in self._records.values() if r.trap_id == trap_id]

    def all(self) -> List[LockRecord]:
        return list(self._records.values())


# ─────────────────────────────────────────────────────────────────────────────
# TESTY UMIEJĘTNOŚCI
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class PendingCheck:
    """
    Oczekujący test umiejętności.

    Attributes:
        trap_id (str): Pułapka, której dotyczy test
        moderator_id (str): Prowadzący, który zlecił test
        skill (str): Nazwa testu (np. "Dexterity Saving Throw")
        dc (int): Stopień trudności
        check_index (Optional[int]): Indeks w konfiguracji (None = własny)
        advantage (Optional[RollMode]): Tryb rzutu (None = jeszcze nie wybrany)
        first_roll (Optional[int]): Pierwszy rzut przy przewadze/utrudnieniu
        character_id, character_name, token_id: Kogo dotyczy test
        reveal_dc (bool): Czy pokazać DC graczom
        mismatched_roll (Optional[int]): Rzut innego testu czekający na decyzję GM
        mismatched_skill (Optional[str]): Nazwa testu, który faktycznie rzucono
    """
    trap_id: str
    moderator_id: str
    skill: str
    dc: int
    check_index: Optional[int] = None
    advantage: Optional[RollMode] = None
    first_roll: Optional[int] = None
    character_id: Optional[str] = None
    character_name: Optional[str] = None
    token_id: Optional[str] = None
    reveal_dc: bool = False
    mismatched_roll: Optional[int] = None
    mismatched_skill: Optional[str] = None


class PendingCheckRepository:
    """
    Oczekujące testy wg prowadzącego, z indeksem po postaci.

    Example:
        >>> repo = PendingCheckRepository()
        >>> repo.put(PendingCheck("trap", "gm", "Athletics", 12, character_id="c1"))
        >>> repo.find(character_id="c1").skill
        'Athletics'
    """

    def __init__(self):
        self._by_moderator: Dict[str, PendingCheck] = {}
        self._by_character: Dict[str, PendingCheck] = {}

    def put(self, check: PendingCheck) -> PendingCheck:
        """
        Zapisuje test, nadpisując poprzedni tego prowadzącego.

        Pola postaci (character_id, character_name, token_id) puste
        w nowym teście są przenoszone z poprzedniego.
        """
        previous = self._by_moderator.get(check.moderator_id)
        if previous is not None:
            if check.character_id is None:
                check.character_id = previous.character_id
            if check.character_name is None:
                check.character_name = previous.character_name
            if check.token_id is None:
                check.token_id = previous.token_id
            self._drop_character_index(previous)

        self._by_moderator[check.moderator_id] = check
        if check.character_id:
            self._by_character[check.character_id] = check
        return check

    def find(
        self,
        character_id: Optional[str] = None,
        moderator_id: Optional[str] = None,
    ) -> Optional[PendingCheck]:
        """Szuka testu najpierw po postaci, potem po prowadzącym."""
        if character_id and character_id in self._by_character:
            return self._by_character[character_id]
        if moderator_id and moderator_id in self._by_moderator:
            return self._by_moderator[moderator_id]
        return None

    def for_trap(self, trap_id: str) -> Optional[PendingCheck]:
        for check in self._by_moderator.values():
            if check.trap_id == trap_id:
                return check
        return None

    def remove(self, check: PendingCheck) -> None:
        if self._by_moderator.get(check.moderator_id) is check:
            del self._by_moderator[check.moderator_id]
        self._drop_character_index(check)

    def clear_trap(self, trap_id: str) -> None:
        for check in [c for c in self._by_moderator.values() if c.trap_id == trap_id]:
            self.remove(check)

    def _drop_character_index(self, check: PendingCheck) -> None:
        if check.character_id and self._by_character.get(check.character_id) is check:
            del self._by_character[check.character_id]

    def __len__(self) -> int:
        return len(self._by_moderator)


# ─────────────────────────────────────────────────────────────────────────────
# POWIADOMIENIA I WYKRYCIA
# ─────────────────────────────────────────────────────────────────────────────

class NoticeDebounce:
    """
    Tłumienie identycznych powiadomień w oknie czasowym.

    Attributes:
        window (float): Długość okna w sekundach
    """

    def __init__(self, window: float = 100.0):
        self.window = window
        self._entries: Dict[str, List[Tuple[str, float]]] = {}

    def is_suppressed(self, observer_id: str, content: str, now: float) -> bool:
        """Czy identyczna treść była wysłana temu obserwatorowi w oknie."""
        entries = [e for e in self._entries.get(observer_id, []) if now - e[1] < self.window]
        self._entries[observer_id] = entries
        return any(text == content for text, _ in entries)

    def record(self, observer_id: str, content: str, now: float) -> None:
        self._entries.setdefault(observer_id, []).append((content, now))

    def clear(self) -> None:
        self._entries.clear()


class DetectionRegistry:
    """Kto zauważył którą pułapkę."""

    def __init__(self):
        self._seen: Dict[str, Set[str]] = {}

    def mark(self, trap_id: str, observer_id: str) -> None:
        self._seen.setdefault(trap_id, set()).add(observer_id)

    def has_detected(self, trap_id: str, observer_id: str) -> bool:
        return observer_id in self._seen.get(trap_id, set())

    def observers_of(self, trap_id: str) -> Set[str]:
        return set(self._seen.get(trap_id, set()))

    def clear(self, trap_id: Optional[str] = None) -> None:
        """Czyści jedną pułapkę albo (trap_id=None) wszystkie."""
        if trap_id is None:
            self._seen.clear()
        else:
            self._seen.pop(trap_id, None)


class SafeMoves:
    """
    Jednorazowe zwolnienia z obsługi ruchu dla ruchów programowych.

    Wpis pamięta pozycję docelową. Raport ruchu do tej pozycji jest
    konsumowany; raport do innej pozycji usuwa nieaktualny wpis
    i jest obsługiwany normalnie.
    """

    def __init__(self, tolerance: float = 0.5):
        self.tolerance = tolerance
        self._targets: Dict[str, Point] = {}

    def add(self, token_id: str, target: Point) -> None:
        self._targets[token_id] = target

    def consume(self, token_id: str, position: Point) -> bool:
        """Zwraca True (i usuwa wpis), jeśli ruch był programowy."""
        target = self._targets.pop(token_id, None)
        if target is None:
            return False
        return target.distance_to(position) <= self.tolerance

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._targets


@dataclass
class GlobalFlags:
    """Przełączniki globalne systemu."""
    triggers_enabled: bool = True
    auras_hidden: bool = False
    hide_timer: Optional[ScheduledHandle] = None


@dataclass
class ExportedState:
    """
    Stan stołu zapamiętany przy eksporcie makr.

    Attributes:
        macros (Dict[str, str]): Makro -> treść z chwili eksportu
        tokens (Dict[str, Dict[str, Any]]): Token -> zapamiętane pola
        doors (Dict[str, Dict[str, bool]]): Drzwi/okno -> is_open, is_locked, is_secret
    """
    macros: Dict[str, str] = field(default_factory=dict)
    tokens: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    doors: Dict[str, Dict[str, bool]] = field(default_factory=dict)

    def has_states(self) -> bool:
        return bool(self.tokens or self.doors)

    def clear_states(self) -> None:
        self.tokens.clear()
        self.doors.clear()


@dataclass
class StateStore:
    """Komplet repozytoriów jednej instancji systemu."""
    locks: LockRepository = field(default_factory=LockRepository)
    pending_checks: PendingCheckRepository = field(default_factory=PendingCheckRepository)
    notices: NoticeDebounce = field(default_factory=NoticeDebounce)
    detections: DetectionRegistry = field(default_factory=DetectionRegistry)
    safe_moves: SafeMoves = field(default_factory=SafeMoves)
    flags: GlobalFlags = field(default_factory=GlobalFlags)
    exported: ExportedState = field(default_factory=ExportedState)
