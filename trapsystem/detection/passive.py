"""
Pasywne wykrywanie pułapek.

PARA (obserwator, pułapka):
═══════════════════════════════════════════════════════════════════

    pomiń gdy:
        brak bloku wykrywania / brak DC / passiveEnabled=off
        obserwator (postać, inaczej token) już ją zauważył
        albo jego sprawdzenie tej pułapki właśnie trwa
        obserwator poza warstwą obiektów
        brak linii wzroku (bazowo: inna strona)
        poza zasięgiem (zasięg 0 / brak = bez limitu)
        percepcja nieustalona (log, bez komunikatu)

    percepcja + szczęście >= DC:
        rejestr wykryć, trwała flaga detected w notatce,
        aura, powiadomienia gracza i prowadzącego

WYWOŁANIA:
═══════════════════════════════════════════════════════════════════

    run_checks_for_token(obserwator)   po każdym ruchu tokena
    run_page_checks(strona)            po otwarciu drzwi / okna

    Obie uruchamiają wszystkie pary przez join_all() i wracają
    dopiero gdy KAŻDA para się zakończy. Wyjątek jednej pary
    jest logowany i zgłaszany prowadzącemu, reszta działa dalej.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, List, Optional, Set, Tuple

from ..core.concurrency import join_all
from ..core.geometry import distance_between
from ..errors import PerceptionUnresolved
from .notices import NoticeOutcome

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.geometry import GridResolver
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token
    from ..notes.models import TrapConfig
    from ..notes.store import TrapStore
    from .auras import AuraManager
    from .notices import NoticeDispatcher
    from .perception import PerceptionResolver, PerceptionResult

logger = logging.getLogger(__name__)

Pair = Tuple["Token", "Token", "TrapConfig"]


class PassiveDetectionEngine:
    """
    Sprawdza, czy obserwatorzy zauważają pułapki.

    Attributes:
        host (Host): Tokeny i czat
        store (TrapStore): Konfiguracje
        state (StateStore): Rejestr wykryć
        grid (GridResolver): Siatki (odległość)
        config (TrapSystemConfig): Warstwa obiektów
        auras (AuraManager): Przeliczanie aur
        notices (NoticeDispatcher): Powiadomienia
        perception (PerceptionResolver): Percepcja obserwatora
    """

    def __init__(
        self,
        host: "Host",
        store: "TrapStore",
        state: "StateStore",
        grid: "GridResolver",
        config: "TrapSystemConfig",
        events: "EventLogger",
        auras: "AuraManager",
        notices: "NoticeDispatcher",
        perception: "PerceptionResolver",
    ):
        self.host = host
        self.store = store
        self.state = state
        self.grid = grid
        self.config = config
        self.events = events
        self.auras = auras
        self.notices = notices
        self.perception = perception
        # (trap_id, observer_id) z trwającym sprawdzeniem percepcji
        self._in_flight: Set[Tuple[str, str]] = set()

    # ─────────────────────────────────────────────────────────────────────────
    # POJEDYNCZA PARA
    # ─────────────────────────────────────────────────────────────────────────

    @staticmethod
    def has_line_of_sight(observer: "Token", target: "Token") -> bool:
        """Bazowa linia wzroku: ta sama strona."""
        return observer.page_id == target.page_id

    async def check_pair(self, observer: "Token", trap_token: "Token", trap: "TrapConfig") -> Optional[NoticeOutcome]:
        """
        Sprawdza jedną parę.

        Returns:
            Optional[NoticeOutcome]: Powiadomienia, jeśli pułapka została zauważona
        """
        detection = trap.detection
        if detection is None or not detection.is_configured or not detection.passive_enabled:
            return None
        if observer.id == trap_token.id:
            return None

        observer_id = observer.represents or observer.id
        key = (trap_token.id, observer_id)
        if self.state.detections.has_detected(*key) or key in self._in_flight:
            return None
        if not self.has_line_of_sight(observer, trap_token):
            return None

        metrics = self.grid.page_grid_metrics(trap_token.page_id)
        distance = distance_between(observer, trap_token, metrics).units
        if detection.has_range_limit and distance > detection.max_range:
            logger.debug("%s out of range of %s (%.1f > %s)", observer.id, trap_token.id, distance, detection.max_range)
            return None

        # Dwa tokeny tej samej postaci: sprawdzana jest tylko jedna para naraz
        self._in_flight.add(key)
        try:
            perception = await self.perception.resolve(observer, detection)
        except PerceptionUnresolved as exc:
            logger.warning("%s", exc)
            return None
        finally:
            self._in_flight.discard(key)

        if perception.final < detection.spot_dc:
            return None
        return self._on_detected(observer, trap_token, perception, distance)

    def _on_detected(
        self,
        observer: "Token",
        trap_token: "Token",
        perception: "PerceptionResult",
        distance: float,
    ) -> Optional[NoticeOutcome]:
        observer_id = observer.represents or observer.id
        self.state.detections.mark(trap_token.id, observer_id)

        current = self.host.get_token(trap_token.id)
        config = self.store.read(current) if current is not None else None
        if current is None or config is None or config.detection is None:
            logger.warning("Trap %s vanished during a passive check", trap_token.id)
            return None

        if not config.detection.detected:
            config.detection.detected = True
            self.store.save(current, config)
        self.auras.recompute(self.store.get_token(current.id), config)

        return self.notices.dispatch(observer, current, config.detection, perception, distance)

    # ─────────────────────────────────────────────────────────────────────────
    # ROZGAŁĘZIENIE
    # ─────────────────────────────────────────────────────────────────────────

    def _report_failure(self, exc: BaseException) -> None:
        self.host.whisper_gm("⚠️ A passive detection check failed. See the log for details.")

    async def _run_pairs(self, pairs: List[Pair]) -> List[NoticeOutcome]:
        results = await join_all(
            [self.check_pair(observer, token, trap) for observer, token, trap in pairs],
            on_error=self._report_failure,
        )
        return [r for r in results if isinstance(r, NoticeOutcome)]

    async def run_checks_for_token(self, observer: "Token") -> List[NoticeOutcome]:
        """
        Sprawdza wszystkie pułapki strony względem jednego obserwatora.

        Returns:
            List[NoticeOutcome]: Wykrycia z tego przebiegu
        """
        if self.store.is_trap(observer) or observer.layer != self.config.objects_layer:
            return []
        pairs = [
            (observer, token, trap)
            for token, trap in self.store.detectable_on_page(observer.page_id)
            if token.id != observer.id
        ]
        return await self._run_pairs(pairs)

    async def run_page_checks(self, page_id: str) -> List[NoticeOutcome]:
        """
        Sprawdza wszystkie pary (token postaci, pułapka) na stronie.
        """
        logger.info("Running page-wide passive checks for page %s", page_id)
        traps = self.store.detectable_on_page(page_id)
        observers = [
            token for token in self.host.list_tokens(page_id)
            if token.represents
            and token.layer == self.config.objects_layer
            and not self.store.is_trap(token)
        ]
        pairs = [
            (observer, token, trap)
            for observer in observers
            for token, trap in traps
            if token.id != observer.id
        ]
        return await self._run_pairs(pairs)

    async def handle_door_change(self, page_id: str, was_open: bool, is_open: bool) -> List[NoticeOutcome]:
        """Otwarcie drzwi/okna uruchamia sprawdzenie całej strony."""
        if was_open or not is_open:
            return []
        return await self.run_page_checks(page_id)
