"""
Operacje prowadzącego na pułapkach: konfiguracja, uzbrajanie,
użycia, pauza globalna, zwalnianie blokad, odporność.

Każda mutacja to odczyt -> zmiana -> zapis przez TrapStore
(kodek + synchronizacja wyglądu) -> przeliczenie aury wykrywania.
Błąd walidacji przerywa operację PRZED zapisem.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from ..errors import InvalidValue
from ..events.event_logger import EventType
from ..notes.models import (
    TrapConfig,
    TriggerConfig,
    TrapType,
    Placement,
    SkillCheck,
)
from ..macros.substitution import describe_macro

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.state import LockRecord, StateStore
    from ..detection.auras import AuraManager
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token
    from ..notes.store import TrapStore

logger = logging.getLogger(__name__)


@dataclass
class TrapStatus:
    """
    Podsumowanie stanu pułapki.

    Attributes:
        trap_id (str): ID tokena pułapki
        name (str): Nazwa
        trap_type (str): standard / interaction
        armed (bool): Czy uzbrojona
        current_uses, max_uses (int): Użycia
        triggers_enabled (bool): Globalna flaga triggerów
        locked_tokens (List[str]): Tokeny zablokowane przez pułapkę
        primary_macro (str): Opis makra głównego
    """
    trap_id: str
    name: str
    trap_type: str
    armed: bool
    current_uses: int
    max_uses: int
    triggers_enabled: bool
    locked_tokens: List[str]
    primary_macro: str

    def render(self) -> str:
        state = "🎯 ARMED" if self.armed else "🔴 DISARMED"
        if not self.triggers_enabled:
            state += " (triggers paused)"
        lines = [
            f"Trap: {self.name}",
            f"Type: {self.trap_type}",
            f"State: {state}",
            f"Uses: {self.current_uses}/{self.max_uses}",
            f"Primary: {self.primary_macro}",
        ]
        if self.locked_tokens:
            lines.append(f"Locked tokens: {len(self.locked_tokens)}")
        return "\n".join(lines)


class TrapControl:
    """
    Mutacje pułapek zlecane przez prowadzącego.

    Attributes:
        host (Host): Tokeny i czat
        store (TrapStore): Konfiguracje
        state (StateStore): Blokady i flagi
        auras (AuraManager): Przeliczanie aur wykrywania
        config (TrapSystemConfig): Marker/tag odporności
        events (EventLogger): Dziennik
    """

    def __init__(
        self,
        host: "Host",
        store: "TrapStore",
        state: "StateStore",
        auras: "AuraManager",
        config: "TrapSystemConfig",
        events: "EventLogger",
    ):
        self.host = host
        self.store = store
        self.state = state
        self.auras = auras
        self.config = config
        self.events = events

    # ─────────────────────────────────────────────────────────────────────────
    # KONFIGURACJA
    # ─────────────────────────────────────────────────────────────────────────

    def _write_trigger(self, token: "Token", trigger: TriggerConfig) -> TrapConfig:
        existing = self.store.read(token)
        detection = existing.detection if existing is not None else None
        config = TrapConfig(trigger=trigger, detection=detection)
        self.store.save(token, config)
        self.auras.recompute(self.store.get_token(token.id), config)
        self.events.log_event(EventType.CONFIG_CHANGED, token.id, trap_type=trigger.trap_type.value)
        return config

    @staticmethod
    def _validate_uses(uses: int) -> int:
        try:
            value = int(uses)
        except (TypeError, ValueError):
            value = -1
        if value < 0:
            raise InvalidValue(f"Uses must be a non-negative integer, got {uses!r}")
        return value

    def setup_trap(
        self,
        token_id: str,
        uses: int,
        primary_macro: Optional[str] = None,
        options: Optional[Sequence[str]] = None,
        position: Optional[Placement] = None,
    ) -> TrapConfig:
        """
        Zapisuje świeżą konfigurację pułapki standardowej.

        Blok wykrywania i tagi notatki zostają zachowane.

        Raises:
            MissingReference: Token nie istnieje
            InvalidValue: Ujemna liczba użyć
        """
        token = self.store.get_token(token_id)
        uses = self._validate_uses(uses)
        trigger = TriggerConfig(
            trap_type=TrapType.STANDARD,
            current_uses=uses,
            max_uses=uses,
            is_armed=uses > 0,
            primary_macro=primary_macro or None,
            options=list(options or []),
            position=position or Placement(),
        )
        config = self._write_trigger(token, trigger)
        self.host.whisper_gm(f"✅ Trap '{token.name}' set up with {uses} use(s).")
        return config

    def setup_interaction_trap(
        self,
        token_id: str,
        uses: int,
        primary_macro: Optional[str] = None,
        success_macro: Optional[str] = None,
        failure_macro: Optional[str] = None,
        checks: Optional[Sequence[SkillCheck]] = None,
        movement_trigger: bool = True,
        auto_trigger: bool = False,
        position: Optional[Placement] = None,
    ) -> TrapConfig:
        """
        Zapisuje świeżą konfigurację pułapki interakcyjnej.

        Raises:
            MissingReference: Token nie istnieje
            InvalidValue: Ujemna liczba użyć albo nieznany test
        """
        token = self.store.get_token(token_id)
        uses = self._validate_uses(uses)
        checks = list(checks or [])
        for check in checks:
            if check.skill not in self.config.skill_types:
                raise InvalidValue(f"Unknown skill type '{check.skill}'")

        trigger = TriggerConfig(
            trap_type=TrapType.INTERACTION,
            current_uses=uses,
            max_uses=uses,
            is_armed=uses > 0,
            primary_macro=primary_macro or None,
            success_macro=success_macro or None,
            failure_macro=failure_macro or None,
            checks=checks,
            movement_trigger=movement_trigger,
            auto_trigger=auto_trigger,
            position=position or Placement(),
        )
        config = self._write_trigger(token, trigger)
        self.host.whisper_gm(f"✅ Interaction trap '{token.name}' set up with {uses} use(s).")
        return config

    # ─────────────────────────────────────────────────────────────────────────
    # UZBRAJANIE I UŻYCIA
    # ─────────────────────────────────────────────────────────────────────────

    def _save_trigger_change(self, token: "Token", config: TrapConfig) -> None:
        self.store.save(token, config)
        trigger = config.trigger
        self.events.log_uses(token.id, trigger.current_uses, trigger.max_uses, trigger.is_armed)
        self.auras.recompute(self.store.get_token(token.id), config)

    def toggle_trap(self, trap_id: str) -> bool:
        """
        Przełącza uzbrojenie. Uzbrojenie pułapki bez użyć daje jej 1 użycie.

        Returns:
            bool: Nowy stan uzbrojenia
        """
        token, config = self.store.get_trap(trap_id)
        trigger = config.trigger
        if trigger.is_armed:
            trigger.is_armed = False
        else:
            self._arm(trigger)

        self._save_trigger_change(token, config)
        self.events.log_event(EventType.ARMED_CHANGED, trap_id, armed=trigger.is_armed)
        label = "ARMED" if trigger.is_armed else "DISARMED"
        self.host.whisper_gm(f"Trap '{token.name}' is now {label} ({trigger.current_uses}/{trigger.max_uses} uses).")
        return trigger.is_armed

    def rearm(self, trap_id: str) -> TriggerConfig:
        """Uzbraja pułapkę (bez przełączania); 0 użyć -> 1."""
        token, config = self.store.get_trap(trap_id)
        self._arm(config.trigger)
        self._save_trigger_change(token, config)
        self.events.log_event(EventType.ARMED_CHANGED, trap_id, armed=True)
        self.host.whisper_gm(f"🎯 Trap '{token.name}' re-armed.")
        return config.trigger

    @staticmethod
    def _arm(trigger: TriggerConfig) -> None:
        if trigger.current_uses <= 0:
            trigger.max_uses = max(trigger.max_uses, 1)
            trigger.current_uses = 1
        trigger.is_armed = True

    def update_uses(
        self,
        trap_id: str,
        current: int,
        maximum: Optional[int] = None,
        armed: Optional[bool] = None,
    ) -> TriggerConfig:
        """
        Ustawia użycia (przycięte do [0, max]); 0 rozbraja pułapkę.

        Raises:
            InvalidValue: Wartość nie jest liczbą
        """
        try:
            current = int(current)
            maximum = int(maximum) if maximum is not None else None
        except (TypeError, ValueError):
            raise InvalidValue(f"Uses must be integers, got {current!r}/{maximum!r}")

        token, config = self.store.get_trap(trap_id)
        trigger = config.trigger
        if armed is not None:
            trigger.is_armed = armed
        trigger.set_uses(current, maximum)
        self._save_trigger_change(token, config)
        return trigger

    def deplete_use(self, trap_id: str) -> int:
        """
        Zużywa jedno użycie (auto-disarm przy zerze).

        Returns:
            int: Pozostałe użycia
        """
        token, config = self.store.get_trap(trap_id)
        trigger = config.trigger
        trigger.set_uses(trigger.current_uses - 1)
        self._save_trigger_change(token, config)
        if trigger.current_uses == 0:
            self.host.whisper_gm(f"🔴 Trap '{token.name}' has no uses left and is now disarmed.")
        return trigger.current_uses

    # ─────────────────────────────────────────────────────────────────────────
    # PAUZA GLOBALNA
    # ─────────────────────────────────────────────────────────────────────────

    def _set_triggers(self, enabled: bool) -> int:
        self.state.flags.triggers_enabled = enabled
        count = self.store.sync_all_visuals()
        self.events.log_event(EventType.TRIGGERS_TOGGLED, enabled=enabled)
        return count

    def enable_triggers(self) -> int:
        count = self._set_triggers(True)
        self.host.whisper_gm("✅ Trap triggers enabled.")
        return count

    def disable_triggers(self) -> int:
        count = self._set_triggers(False)
        self.host.whisper_gm("⏸️ Trap triggers disabled.")
        return count

    # ─────────────────────────────────────────────────────────────────────────
    # BLOKADY
    # ─────────────────────────────────────────────────────────────────────────

    def mark_triggered(self, token_id: str, trap_id: str) -> bool:
        """Oznacza blokadę: makro główne wykonane, zwolnienie zużyje użycie."""
        lock = self.state.locks.get(token_id)
        if lock is None or lock.trap_id != trap_id:
            return False
        lock.macro_triggered = True
        return True

    def release_lock(self, token_id: str) -> Optional["LockRecord"]:
        """
        Zdejmuje blokadę. Blokada z wykonanym makrem zużywa jedno użycie.
        """
        record = self.state.locks.release(token_id)
        if record is None:
            return None
        self.events.log_event(
            EventType.TOKEN_RELEASED, record.trap_id, token_id,
            macro_triggered=record.macro_triggered,
        )
        if record.macro_triggered and self.host.get_token(record.trap_id) is not None:
            self.deplete_use(record.trap_id)
        return record

    def allow_movement(self, token_id: str) -> bool:
        """
        Zwalnia ruch tokena.

        Returns:
            bool: False jeśli token nie był zablokowany
        """
        token = self.store.get_token(token_id)
        if self.release_lock(token_id) is None:
            self.host.whisper_gm(f"ℹ️ '{token.name}' is not locked by any trap.")
            return False
        self.host.whisper_gm(f"✅ Movement allowed for '{token.name}'.")
        return True

    def allow_all_movement(self) -> int:
        """Zwalnia wszystkie blokady. Zwraca ich liczbę."""
        records = self.state.locks.all()
        for record in records:
            self.release_lock(record.token_id)
        self.host.whisper_gm(f"✅ Movement allowed for all tokens ({len(records)} released).")
        return len(records)

    # ─────────────────────────────────────────────────────────────────────────
    # RAPORTY I ODPORNOŚĆ
    # ─────────────────────────────────────────────────────────────────────────

    def trap_status(self, trap_id: str) -> TrapStatus:
        """Zbiera stan pułapki i wysyła raport prowadzącemu."""
        token, config = self.store.get_trap(trap_id)
        trigger = config.trigger
        status = TrapStatus(
            trap_id=token.id,
            name=token.name,
            trap_type=trigger.trap_type.value,
            armed=trigger.is_armed,
            current_uses=trigger.current_uses,
            max_uses=trigger.max_uses,
            triggers_enabled=self.state.flags.triggers_enabled,
            locked_tokens=[r.token_id for r in self.state.locks.for_trap(token.id)],
            primary_macro=describe_macro(trigger.primary_macro),
        )
        self.host.whisper_gm(status.render())
        return status

    def toggle_immunity(self, token_id: str) -> bool:
        """
        Przełącza odporność: marker statusu i tag w notatce razem.

        Returns:
            bool: True jeśli token jest teraz odporny
        """
        token = self.store.get_token(token_id)
        marker, tag = self.config.immunity_marker, self.config.immunity_tag
        immune = token.has_marker(marker) and self.store.has_tag(token, tag)

        markers = [m for m in token.status_markers if m != marker]
        if not immune:
            markers.append(marker)
        self.host.update_token(token.id, status_markers=markers)
        self.store.set_tag(token, tag, present=not immune)

        state = "ignores traps" if not immune else "no longer ignores traps"
        self.host.whisper_gm(f"🛡️ '{token.name}' {state}.")
        return not immune
