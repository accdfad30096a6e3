"""
Model konfiguracji pułapki zapisanej w notatce tokena.

TrapConfig = opcjonalny blok wyzwalacza + opcjonalny blok wykrywania.
Token jest pułapką wtedy i tylko wtedy, gdy ma blok wyzwalacza.

NIEZMIENNIKI:
═══════════════════════════════════════════════════════════════════

    0 <= current_uses <= max_uses
    is_armed = False  ->  pułapka nie wyzwala się w żaden sposób
    current_uses = 0  ->  pułapka rozbrojona (auto-disarm)
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple


class TrapType(Enum):
    """Rodzaj pułapki."""
    STANDARD = "standard"
    INTERACTION = "interaction"


class PlacementMode(Enum):
    """Gdzie ustawić złapany token."""
    INTERSECTION = "intersection"  # komórka najbliższa punktowi wejścia
    CENTER = "center"              # środek pułapki
    CELL = "cell"                  # konkretna komórka względem pułapki


@dataclass(frozen=True)
class Placement:
    """
    Polityka ustawienia złapanego tokena.

    Attributes:
        mode (PlacementMode): Tryb
        cell (Optional[Tuple[int, int]]): Komórka (x, y) względem
            lewego-górnego rogu pułapki, tylko dla CELL
    """
    mode: PlacementMode = PlacementMode.INTERSECTION
    cell: Optional[Tuple[int, int]] = None

    @classmethod
    def at_cell(cls, x: int, y: int) -> "Placement":
        return cls(PlacementMode.CELL, (x, y))


@dataclass(frozen=True)
class SkillCheck:
    """Test umiejętności przypisany do pułapki (np. Athletics DC 12)."""
    skill: str
    dc: int


@dataclass
class TriggerConfig:
    """
    Blok {!traptrigger ...}.

    Attributes:
        trap_type (TrapType): standard / interaction
        current_uses (int): Pozostałe użycia
        max_uses (int): Maksymalna liczba użyć
        is_armed (bool): Czy pułapka jest uzbrojona
        primary_macro (Optional[str]): Makro główne ("#Nazwa", "!cmd", tekst)
        success_macro (Optional[str]): Makro sukcesu (interaction)
        failure_macro (Optional[str]): Makro porażki (interaction)
        options (List[str]): Dodatkowe makra do wyboru przez prowadzącego
        checks (List[SkillCheck]): Testy proponowane w menu
        position (Placement): Gdzie ustawić złapany token
        movement_trigger (bool): Czy ruch wyzwala pułapkę interakcyjną
        auto_trigger (bool): Czy od razu wykonać akcję "trigger"
    """
    trap_type: TrapType = TrapType.STANDARD
    current_uses: int = 1
    max_uses: int = 1
    is_armed: bool = True
    primary_macro: Optional[str] = None
    success_macro: Optional[str] = None
    failure_macro: Optional[str] = None
    options: List[str] = field(default_factory=list)
    checks: List[SkillCheck] = field(default_factory=list)
    position: Placement = field(default_factory=Placement)
    movement_trigger: bool = True
    auto_trigger: bool = False

    @property
    def is_interaction(self) -> bool:
        return self.trap_type == TrapType.INTERACTION

    def has_uses(self) -> bool:
        return self.current_uses > 0

    def can_trigger(self) -> bool:
        """Uzbrojona i ma użycia."""
        return self.is_armed and self.has_uses()

    def can_trigger_on_movement(self) -> bool:
        if not self.can_trigger():
            return False
        return not (self.is_interaction and not self.movement_trigger)

    def needs_moderation(self) -> bool:
        """Czy wyzwolenie wymaga decyzji prowadzącego (menu interakcji)."""
        return self.is_interaction and bool(self.success_macro or self.failure_macro)

    def set_uses(self, current: int, maximum: Optional[int] = None) -> None:
        """
        Ustawia użycia z przycięciem do [0, max]. Zero rozbraja pułapkę.
        """
        if maximum is not None:
            self.max_uses = max(0, int(maximum))
        self.current_uses = min(max(0, int(current)), self.max_uses)
        if self.current_uses == 0:
            self.is_armed = False


@dataclass
class DetectionConfig:
    """
    Blok {!trapdetection ...}.

    Attributes:
        spot_dc (Optional[int]): DC wykrycia pasywnego (None = nieskonfigurowane)
        max_range (Optional[float]): Zasięg w jednostkach mapy (None/0 = bez limitu)
        notice_player (Optional[str]): Szablon powiadomienia gracza
        notice_gm (Optional[str]): Szablon powiadomienia prowadzącego
        bar_fallback (Optional[str]): Pasek tokena z percepcją ("bar1"...)
        luck_enabled (bool): Czy dodawać kość szczęścia
        luck_die (str): Kość szczęścia (NdM)
        show_aura (bool): Czy pokazywać aurę zasięgu
        passive_enabled (bool): Czy wykrywanie pasywne jest aktywne
        detected (bool): Czy ktoś już zauważył pułapkę (trwałe)
    """
    spot_dc: Optional[int] = None
    max_range: Optional[float] = None
    notice_player: Optional[str] = None
    notice_gm: Optional[str] = None
    bar_fallback: Optional[str] = None
    luck_enabled: bool = False
    luck_die: str = "1d6"
    show_aura: bool = False
    passive_enabled: bool = True
    detected: bool = False

    @property
    def is_configured(self) -> bool:
        return self.spot_dc is not None

    @property
    def has_range_limit(self) -> bool:
        return bool(self.max_range and self.max_range > 0)


@dataclass
class TrapConfig:
    """Pełna konfiguracja: wyzwalacz i/lub wykrywanie."""
    trigger: Optional[TriggerConfig] = None
    detection: Optional[DetectionConfig] = None

    @property
    def is_trap(self) -> bool:
        return self.trigger is not None

    def copy(self) -> "TrapConfig":
        trigger = None
        if self.trigger is not None:
            trigger = replace(
                self.trigger,
                options=list(self.trigger.options),
                checks=list(self.trigger.checks),
            )
        detection = replace(self.detection) if self.detection is not None else None
        return TrapConfig(trigger=trigger, detection=detection)
