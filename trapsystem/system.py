"""
Fasada systemu pułapek - składanie komponentów i zdarzenia hosta.

Jedna instancja TrapSystem = jeden komplet stanu (StateStore)
wstrzykiwany do wszystkich komponentów.

SKŁADANIE:
═══════════════════════════════════════════════════════════════════

    ConfigLoader ──► TrapSystemConfig
                          │
    Host ─────────────────┼──► GridResolver, TrapStore
                          │
    StateStore ───────────┤
                          ▼
    MacroRunner ──► TrapControl ──► InteractionEngine
                          │               │
    AuraManager ◄─────────┘               ▼
         │                     MovementTriggerEngine
         ▼
    PerceptionResolver + NoticeDispatcher ──► PassiveDetectionEngine
    DetectionSettings
    MacroExporter    (makra, tokeny i drzwi z eksportu -> reset)

ZDARZENIA HOSTA:
═══════════════════════════════════════════════════════════════════

    handle_token_moved   ruch tokena: najpierw wyzwalanie ruchem,
                         potem wykrywanie pasywne dla przesuniętego
                         tokena (po zakończeniu wszystkich par)
    handle_door_change   otwarcie drzwi/okna: sprawdzenie całej strony

    Błędy TrapSystemError na wejściu są łapane, prowadzący dostaje
    komunikat, a wynik ma ustawione pole error.

Przykład użycia:
    >>> host = InMemoryHost(ManualScheduler())
    >>> system = TrapSystem(host, seed=12345)
    >>> system.control.setup_trap("pit", uses=2, primary_macro="#PitFall")
    >>> result = asyncio.run(system.handle_token_moved("hero", 70, 70))
    >>> result.hit.trap_id
    'pit'
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, List, Optional

from .core.config_loader import ConfigLoader, TrapSystemConfig
from .core.geometry import GridResolver, Point
from .core.rng import GameRNG
from .core.state import NoticeDebounce, StateStore
from .detection import (
    AuraManager,
    DetectionSettings,
    NoticeDispatcher,
    NoticeOutcome,
    PassiveDetectionEngine,
    PerceptionResolver,
)
from .errors import MissingReference, TrapSystemError
from .events.event_logger import EventLogger
from .host.base import Host
from .interaction.engine import InteractionEngine
from .macros.export import MacroExporter
from .macros.substitution import MacroRunner
from .notes.store import TrapStore
from .triggers.control import TrapControl
from .triggers.movement import MovementTriggerEngine, TriggerHit

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """
    Wynik obsługi ruchu tokena.

    Attributes:
        token_id (str): Przesunięty token
        hit (Optional[TriggerHit]): Wyzwolona pułapka (jeśli była)
        notices (List[NoticeOutcome]): Wykrycia pasywne z tego ruchu
        error (Optional[str]): Komunikat błędu (ruch nieobsłużony)
    """
    token_id: str
    hit: Optional[TriggerHit] = None
    notices: List[NoticeOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TrapSystem:
    """
    System pułapek dla jednego hosta.

    Attributes:
        host (Host): Wirtualny stół
        config (TrapSystemConfig): Konfiguracja
        state (StateStore): Stan procesu
        rng (GameRNG): Kości (szczęście przy wykrywaniu)
        events (EventLogger): Dziennik zdarzeń
        store (TrapStore): Konfiguracje pułapek
        control (TrapControl): Zarządzanie pułapkami
        interaction (InteractionEngine): Sesje interakcji
        movement (MovementTriggerEngine): Wyzwalanie ruchem
        auras (AuraManager): Aury wykrywania
        detection (PassiveDetectionEngine): Wykrywanie pasywne
        settings (DetectionSettings): Ustawienia i reset wykrywania
        exporter (MacroExporter): Eksport makr i reset stołu
    """

    def __init__(
        self,
        host: Host,
        config: Optional[TrapSystemConfig] = None,
        seed: Optional[int] = None,
        loader: Optional[ConfigLoader] = None,
    ):
        """
        Args:
            host: Implementacja interfejsu hosta
            config: Gotowa konfiguracja (domyślnie z data/defaults.yaml)
            seed: Ziarno kości
            loader: Loader konfiguracji (gdy config nie podano)
        """
        self.host = host
        self.config = config or (loader or ConfigLoader()).load_system_config()
        self.state = StateStore(notices=NoticeDebounce(self.config.notice_debounce_seconds))
        self.rng = GameRNG(seed)
        self.events = EventLogger(seed=seed, clock=host.now)

        self.grid = GridResolver(host, self.config)
        self.store = TrapStore(host, self.state.flags, self.config)
        self.macros = MacroRunner(host, self.events)
        self.exporter = MacroExporter(host, self.state, self.events)

        self.auras = AuraManager(host, self.store, self.state, self.grid, self.config, self.events)
        self.control = TrapControl(host, self.store, self.state, self.auras, self.config, self.events)
        self.interaction = InteractionEngine(
            host, self.store, self.state, self.control, self.macros, self.config, self.events,
        )
        self.movement = MovementTriggerEngine(
            host, self.store, self.state, self.grid, self.config, self.events, self.interaction,
        )

        self.perception = PerceptionResolver(host, self.rng, self.config.perception_attribute)
        self.notices = NoticeDispatcher(host, self.state, self.config, self.events)
        self.detection = PassiveDetectionEngine(
            host, self.store, self.state, self.grid, self.config, self.events,
            self.auras, self.notices, self.perception,
        )
        self.settings = DetectionSettings(host, self.store, self.state, self.auras, self.config, self.events)

    # ─────────────────────────────────────────────────────────────────────────
    # ZDARZENIA HOSTA
    # ─────────────────────────────────────────────────────────────────────────

    async def handle_token_moved(self, token_id: str, prev_left: float, prev_top: float) -> MoveResult:
        """
        Obsługuje ruch tokena zgłoszony przez hosta.

        Args:
            token_id: Przesunięty token (pozycja w hoście już nowa)
            prev_left, prev_top: Pozycja przed ruchem
        """
        result = MoveResult(token_id)
        try:
            token = self.store.get_token(token_id)
            result.hit = self.movement.handle_move(token, Point(prev_left, prev_top))

            observer = self.host.get_token(token_id)
            if observer is not None:
                result.notices = await self.detection.run_checks_for_token(observer)
        except TrapSystemError as exc:
            self._report(exc)
            result.error = str(exc)
        return result

    async def handle_door_change(self, page_id: str, was_open: bool, is_open: bool) -> List[NoticeOutcome]:
        """Zmiana stanu drzwi/okna na stronie."""
        try:
            return await self.detection.handle_door_change(page_id, was_open, is_open)
        except TrapSystemError as exc:
            self._report(exc)
            return []

    def safe(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Any]:
        """
        Wykonuje akcję prowadzącego; błąd systemu trafia do czatu GM.

        Returns:
            Wynik akcji albo None przy błędzie
        """
        try:
            return action(*args, **kwargs)
        except TrapSystemError as exc:
            self._report(exc)
            return None

    def _report(self, exc: TrapSystemError) -> None:
        level = logging.INFO if isinstance(exc, MissingReference) else logging.WARNING
        logger.log(level, "%s: %s", type(exc).__name__, exc)
        self.host.whisper_gm(f"⚠️ {exc}")

    # ─────────────────────────────────────────────────────────────────────────
    # RAPORTY
    # ─────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """Stan procesu do podglądu (API, demo)."""
        return {
            "triggers_enabled": self.state.flags.triggers_enabled,
            "auras_hidden": self.state.flags.auras_hidden,
            "locks": [
                {
                    "token_id": r.token_id,
                    "trap_id": r.trap_id,
                    "macro_triggered": r.macro_triggered,
                    "offset": r.offset.to_list(),
                }
                for r in self.state.locks.all()
            ],
            "pending_checks": len(self.state.pending_checks),
            "sessions": {trap_id: s.to_dict() for trap_id, s in self.interaction.sessions.items()},
            "events": self.events.get_event_count(),
        }

    def save_log(self, filepath: str) -> None:
        self.events.save(filepath)
