"""
Wyzwalanie pułapek ruchem tokenów.

PRZEPŁYW handle_move():
═══════════════════════════════════════════════════════════════════

    1. Filtry (w tej kolejności, pierwszy pasujący kończy obsługę):
         triggery wyłączone globalnie
         przesunięty token sam jest pułapką
         token poza warstwą "objects"
         token odporny (marker + tag w notatce)
         ruch programowy systemu (safe move)
         token zablokowany -> cofnięcie na zablokowaną pozycję
         ruch krótszy niż 0.3 kratki

    2. Skan pułapek strony w kolejności hosta:
         - uzbrojona, ma użycia
         - interaction z movementTrigger=off -> pomijana
         - przecięcie ścieżki z krawędziami OBB pułapki
         - inaczej nakładanie footprintów (punkt = środek tokena)
       Pierwsza trafiona pułapka wygrywa, skan się kończy.

    3. Rozmieszczenie:
         initial  -> natychmiast (safe move)
         final    -> po final_snap_delay przez Scheduler (safe move)
         LockRecord(offset = final - środek pułapki)

    4. Przekazanie do maszyny interakcji.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, List, Optional

from ..core.geometry import (
    Point,
    OrientedBox,
    oriented_box_corners,
    segment_box_intersection,
    token_footprint,
    footprints_overlap,
)
from ..core.state import LockRecord
from ..events.event_logger import EventType
from .placement import PlacementResult, calculate_trap_position

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.geometry import GridMetrics, GridResolver
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token
    from ..interaction.engine import InteractionEngine
    from ..notes.models import TrapConfig
    from ..notes.store import TrapStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerHit:
    """
    Wynik wyzwolenia pułapki ruchem.

    Attributes:
        trap_id (str): Wyzwolona pułapka
        token_id (str): Token, który ją wyzwolił
        point (Point): Punkt wejścia (przecięcie lub środek tokena)
        reason (str): "path" albo "overlap"
        placement (PlacementResult): Pozycje initial / final
    """
    trap_id: str
    token_id: str
    point: Point
    reason: str
    placement: PlacementResult


class MovementTriggerEngine:
    """
    Wykrywa wejście tokena w pułapkę i blokuje go na jej polu.

    Silnik jest bezstanowy per zdarzenie. Cały stan (blokady, safe
    moves, flagi) pochodzi z wstrzykniętego StateStore.

    Attributes:
        host (Host): Tokeny, ruch, scheduler
        store (TrapStore): Konfiguracje pułapek
        state (StateStore): Blokady, safe moves, flagi
        grid (GridResolver): Siatki stron
        config (TrapSystemConfig): Progi ruchu i odporność
        events (EventLogger): Dziennik
        interaction (InteractionEngine): Odbiorca wyzwoleń
    """

    def __init__(
        self,
        host: "Host",
        store: "TrapStore",
        state: "StateStore",
        grid: "GridResolver",
        config: "TrapSystemConfig",
        events: "EventLogger",
        interaction: "InteractionEngine",
    ):
        self.host = host
        self.store = store
        self.state = state
        self.grid = grid
        self.config = config
        self.events = events
        self.interaction = interaction

    # ─────────────────────────────────────────────────────────────────────────
    # FILTRY
    # ─────────────────────────────────────────────────────────────────────────

    def is_immune(self, token: "Token") -> bool:
        """Odporność wymaga markera ORAZ tagu w notatce."""
        return token.has_marker(self.config.immunity_marker) and self.store.has_tag(
            token, self.config.immunity_tag
        )

    def _ignore_reason(self, token: "Token") -> Optional[str]:
        if not self.state.flags.triggers_enabled:
            return "triggers disabled"
        if self.store.is_trap(token):
            return "trap token"
        if token.layer != self.config.objects_layer:
            return "layer"
        if self.is_immune(token):
            return "immune"
        if self.state.safe_moves.consume(token.id, Point(token.left, token.top)):
            return "safe move"
        return None

    # ─────────────────────────────────────────────────────────────────────────
    # OBSŁUGA RUCHU
    # ─────────────────────────────────────────────────────────────────────────

    def handle_move(self, token: "Token", previous: Point) -> Optional[TriggerHit]:
        """
        Obsługuje raport ruchu tokena.

        Args:
            token: Token po ruchu (aktualna pozycja)
            previous: Pozycja przed ruchem

        Returns:
            Optional[TriggerHit]: Wyzwolenie albo None
        """
        reason = self._ignore_reason(token)
        if reason is not None:
            logger.debug("Ignoring move of %s: %s", token.id, reason)
            return None

        lock = self.state.locks.get(token.id)
        if lock is not None and lock.locked:
            self._enforce_lock(token, lock)
            return None

        metrics = self.grid.page_grid_metrics(token.page_id)
        current = Point(token.left, token.top)
        if previous.distance_to(current) < metrics.cell_size * self.config.min_movement_factor:
            logger.debug("Move of %s too small", token.id)
            return None

        moved_footprint = token_footprint(token, metrics)
        for trap_token, trap in self.store.traps_on_page(token.page_id):
            if not trap.trigger.can_trigger_on_movement():
                continue

            corners = oriented_box_corners(OrientedBox.of_token(trap_token))
            point = segment_box_intersection(previous, current, corners)
            hit_reason = "path"
            if point is None and footprints_overlap(moved_footprint, token_footprint(trap_token, metrics)):
                point = current
                hit_reason = "overlap"
            if point is None:
                continue

            return self._trigger(token, trap_token, trap, point, hit_reason, metrics, corners)
        return None

    def _trigger(
        self,
        token: "Token",
        trap_token: "Token",
        trap: "TrapConfig",
        point: Point,
        reason: str,
        metrics: "GridMetrics",
        corners: List[Point],
    ) -> TriggerHit:
        logger.info("Trap %s triggered by %s (%s)", trap_token.id, token.id, reason)
        self.events.log_trigger(trap_token.id, token.id, point, reason)

        trap_center = Point(trap_token.left, trap_token.top)
        result = calculate_trap_position(
            trap.trigger.position,
            trap_center,
            corners,
            token_footprint(trap_token, metrics),
            point,
            metrics,
            self._occupied_positions(trap_token.id, token.id),
            self.config.occupied_radius_factor,
        )

        self.safe_move(token.id, result.initial, trap_token.id, "initial")
        self.state.locks.put(LockRecord(
            token_id=token.id,
            trap_id=trap_token.id,
            offset=result.final - trap_center,
        ))
        self.events.log_event(EventType.TOKEN_LOCKED, trap_token.id, token.id)

        self.host.scheduler.call_later(
            self.config.final_snap_delay,
            lambda: self._final_snap(token.id, trap_token.id, result.final),
        )

        self.interaction.handle_trigger(trap_token, trap, token)
        return TriggerHit(trap_token.id, token.id, point, reason, result)

    def _occupied_positions(self, trap_id: str, moved_id: str) -> List[Point]:
        """Pozycje innych tokenów zablokowanych przez tę pułapkę."""
        positions = []
        for record in self.state.locks.for_trap(trap_id):
            if record.token_id == moved_id:
                continue
            other = self.host.get_token(record.token_id)
            if other is not None:
                positions.append(Point(other.left, other.top))
        return positions

    def _final_snap(self, token_id: str, trap_id: str, final: Point) -> None:
        if self.host.get_token(token_id) is None:
            return
        self.safe_move(token_id, final, trap_id, "final")

    def _enforce_lock(self, token: "Token", lock: LockRecord) -> None:
        """Cofa zablokowany token na jego pozycję przy pułapce."""
        trap_token = self.host.get_token(lock.trap_id)
        if trap_token is None:
            logger.warning("Lock of %s points at missing trap %s, releasing", token.id, lock.trap_id)
            self.state.locks.release(token.id)
            return
        target = Point(trap_token.left, trap_token.top) + lock.offset
        if target.distance_to(Point(token.left, token.top)) > self.state.safe_moves.tolerance:
            self.safe_move(token.id, target, lock.trap_id, "locked")

    # ─────────────────────────────────────────────────────────────────────────
    # RUCH PROGRAMOWY
    # ─────────────────────────────────────────────────────────────────────────

    def safe_move(self, token_id: str, position: Point, trap_id: Optional[str] = None, stage: str = "snap") -> None:
        """
        Przesuwa token tak, by raport tego ruchu nie był obsługiwany.
        """
        self.state.safe_moves.add(token_id, position)
        self.host.move_token(token_id, position.x, position.y)
        self.events.log_snap(trap_id, token_id, position, stage)
