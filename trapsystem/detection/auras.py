"""
Aura zasięgu wykrywania (aura2) tokenów z blokiem wykrywania.

PIERWSZEŃSTWO:
═══════════════════════════════════════════════════════════════════

    1. aury ukryte globalnie          -> pusta
    2. showDetectionAura=off          -> pusta
    3. passiveEnabled=off             -> kolor passive_disabled
    4. uzbrojona z użyciami x wykryta:

                       nie wykryta            wykryta
        uzbrojona      detection              detected
        rozbrojona     disarmed_undetected    disarmed_detected

PROMIEŃ:
    zasięg - promień tokena (jednostki mapy, min. 0)
    brak zasięgu / nieznana strona  -> pusty
    rozbrojona / bez użyć           -> 0 (widoczny znacznik)

Przeliczenie jest idempotentne: ten sam stan daje ten sam wynik
i nie generuje zapisu ani zdarzenia.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Optional

from ..core.geometry import token_radius_units
from ..events.event_logger import EventType

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.geometry import GridResolver
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token
    from ..notes.models import TrapConfig
    from ..notes.store import TrapStore

logger = logging.getLogger(__name__)

BLANK_COLOR = "transparent"


@dataclass(frozen=True)
class AuraState:
    """Kolor i promień aury2 (radius None = pusta)."""
    color: str
    radius: Optional[float]

    @property
    def is_blank(self) -> bool:
        return self.radius is None


BLANK_AURA = AuraState(BLANK_COLOR, None)


class AuraManager:
    """
    Przelicza aury wykrywania i obsługuje ich globalne ukrywanie.

    Attributes:
        host (Host): Tokeny i scheduler
        store (TrapStore): Konfiguracje
        state (StateStore): Flaga ukrycia i uchwyt timera
        grid (GridResolver): Siatki stron (przeliczenie promienia)
        config (TrapSystemConfig): Kolory
        events (EventLogger): Dziennik
    """

    def __init__(
        self,
        host: "Host",
        store: "TrapStore",
        state: "StateStore",
        grid: "GridResolver",
        config: "TrapSystemConfig",
        events: "EventLogger",
    ):
        self.host = host
        self.store = store
        self.state = state
        self.grid = grid
        self.config = config
        self.events = events

    # ─────────────────────────────────────────────────────────────────────────
    # OBLICZENIE
    # ─────────────────────────────────────────────────────────────────────────

    def aura_for(self, token: "Token", trap: "TrapConfig") -> AuraState:
        """Aura wynikająca ze stanu (bez zapisu)."""
        detection = trap.detection
        if detection is None or self.state.flags.auras_hidden or not detection.show_aura:
            return BLANK_AURA

        armed = trap.trigger is None or trap.trigger.can_trigger()
        if not detection.passive_enabled:
            color = self.config.color("passive_disabled")
        elif armed:
            color = self.config.color("detected" if detection.detected else "detection")
        else:
            color = self.config.color("disarmed_detected" if detection.detected else "disarmed_undetected")

        if not armed:
            return AuraState(color, 0.0)

        metrics = self.grid.page_grid_metrics(token.page_id)
        if not detection.has_range_limit or not metrics.valid:
            return AuraState(color, None)

        radius = max(0.0, detection.max_range - token_radius_units(token, metrics))
        return AuraState(color, radius)

    # ─────────────────────────────────────────────────────────────────────────
    # ZAPIS
    # ─────────────────────────────────────────────────────────────────────────

    def recompute(self, token: "Token", trap: Optional["TrapConfig"] = None) -> AuraState:
        """
        Przelicza i zapisuje aurę tokena.

        Args:
            token: Token z blokiem wykrywania
            trap: Konfiguracja (odczytana z tokena, jeśli brak)
        """
        if trap is None:
            trap = self.store.read(token)
        if trap is None:
            return BLANK_AURA

        aura = self.aura_for(token, trap)
        if token.aura2_color == aura.color and token.aura2_radius == aura.radius:
            return aura

        self.host.update_token(token.id, aura2_color=aura.color, aura2_radius=aura.radius)
        self.events.log_event(
            EventType.AURA_UPDATED, token.id, color=aura.color, radius=aura.radius,
        )
        return aura

    def recompute_all(self) -> int:
        """Przelicza aury wszystkich tokenów z blokiem wykrywania."""
        tokens = self.store.all_detectable()
        for token, trap in tokens:
            self.recompute(token, trap)
        return len(tokens)

    # ─────────────────────────────────────────────────────────────────────────
    # UKRYWANIE
    # ─────────────────────────────────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        flags = self.state.flags
        if flags.hide_timer is not None:
            flags.hide_timer.cancel()
            flags.hide_timer = None

    def hide_all(self, minutes: float = 0) -> int:
        """
        Ukrywa wszystkie aury wykrywania.

        Args:
            minutes: Po ilu minutach przywrócić (0 = bezterminowo)

        Returns:
            int: Liczba przeliczonych tokenów
        """
        self._cancel_timer()
        self.state.flags.auras_hidden = True
        count = self.recompute_all()
        self.events.log_event(EventType.AURAS_HIDDEN, minutes=minutes)

        message = "👁️ All detection auras are now hidden."
        if minutes and minutes > 0:
            self.state.flags.hide_timer = self.host.scheduler.call_later(
                minutes * 60, lambda: self.show_all(auto=True)
            )
            unit = "minute" if minutes == 1 else "minutes"
            message += f" They will automatically reappear in {minutes:g} {unit}."
        self.host.whisper_gm(message)
        return count

    def show_all(self, auto: bool = False) -> int:
        """Przywraca aury (auto=True gdy wywołane przez timer)."""
        self._cancel_timer()
        self.state.flags.auras_hidden = False
        count = self.recompute_all()
        self.events.log_event(EventType.AURAS_SHOWN, auto=auto)

        if auto:
            self.host.whisper_gm("⏰ Timer expired. All detection auras have been restored.")
        else:
            self.host.whisper_gm("👁️ All detection auras are now restored.")
        return count
