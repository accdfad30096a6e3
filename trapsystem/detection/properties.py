"""
Zmiany ustawień wykrywania pasywnego i reset wykryć.

WŁAŚCIWOŚCI set_passive_property():
═══════════════════════════════════════════════════════════════════

    dc         liczba całkowita >= 0, kopiowana też do bar2
    range      liczba >= 0 (0 = bez limitu)
    playermsg  szablon gracza (obcinany na pierwszym '|')
    gmmsg      szablon prowadzącego (obcinany na pierwszym '|')
    tokenbar   pasek z percepcją; "none" czyści
    luckroll   true/false
    luckdie    NdM
    showaura   true/false
    toggle     przełącza passiveEnabled (wartość ignorowana)

Token bez konfiguracji dostaje domyślny blok wyzwalacza
(0/0 użyć, rozbrojony). Niepoprawna wartość -> InvalidValue,
nic nie jest zapisywane.
"""

from __future__ import annotations
import logging
import math
import re
from typing import TYPE_CHECKING, Any, Optional

from ..errors import InvalidValue
from ..events.event_logger import EventType
from ..notes.models import DetectionConfig, TrapConfig, TriggerConfig

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from .auras import AuraManager
    from ..notes.store import TrapStore

logger = logging.getLogger(__name__)

PASSIVE_PROPERTIES = (
    "dc", "range", "playermsg", "gmmsg", "tokenbar",
    "luckroll", "luckdie", "showaura", "toggle",
)

_LUCK_DIE = re.compile(r"^\d+d\d+$", re.IGNORECASE)


def _truthy(value: Any) -> bool:
    return str(value).strip().lower() == "true"


class DetectionSettings:
    """
    Edycja bloku wykrywania i reset stanu wykryć.

    Attributes:
        host (Host): Tokeny i czat
        store (TrapStore): Konfiguracje
        state (StateStore): Rejestr wykryć
        auras (AuraManager): Przeliczanie aur
        config (TrapSystemConfig): Domyślna kość szczęścia
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

    def set_passive_property(self, trap_id: str, prop: str, value: Any = "") -> TrapConfig:
        """
        Zmienia jedną właściwość wykrywania.

        Raises:
            MissingReference: Token nie istnieje
            InvalidValue: Nieznana właściwość albo niepoprawna wartość
        """
        token = self.store.get_token(trap_id)
        prop = (prop or "").strip().lower()
        if prop not in PASSIVE_PROPERTIES:
            raise InvalidValue(
                f"Unknown passive property: {prop}. Use " + ", ".join(PASSIVE_PROPERTIES[:-1]) + ", or toggle."
            )

        config = self.store.read(token) or TrapConfig()
        if config.trigger is None:
            config.trigger = TriggerConfig(current_uses=0, max_uses=0, is_armed=False)
        if config.detection is None:
            config.detection = DetectionConfig(luck_die=self.config.default_luck_die)
        detection = config.detection
        text = "" if value is None else str(value)
        bar_changes = {}

        if prop == "toggle":
            detection.passive_enabled = not detection.passive_enabled
        elif prop == "dc":
            dc = self._non_negative(text, int, "Invalid DC value. Must be a non-negative number.")
            detection.spot_dc = dc
            bar_changes = {"bar2_value": dc, "bar2_max": dc}
        elif prop == "range":
            detection.max_range = self._non_negative(text, float, "Invalid Range value. Must be a non-negative number.")
        elif prop in ("playermsg", "gmmsg"):
            message = text.split("|", 1)[0]
            if prop == "playermsg":
                detection.notice_player = message or None
            else:
                detection.notice_gm = message or None
        elif prop == "tokenbar":
            parts = text.split()
            bar = parts[0] if parts else ""
            detection.bar_fallback = None if bar.lower() in ("", "none") else bar
        elif prop == "luckroll":
            detection.luck_enabled = _truthy(text)
        elif prop == "luckdie":
            die = text.strip()
            if not _LUCK_DIE.match(die):
                raise InvalidValue("Invalid die format. Please use format like '1d6'.")
            detection.luck_die = die
        elif prop == "showaura":
            detection.show_aura = _truthy(text)

        self.store.save(token, config)
        if bar_changes:
            self.host.update_token(token.id, **bar_changes)
        self.auras.recompute(self.store.get_token(token.id), config)
        self.events.log_event(EventType.CONFIG_CHANGED, token.id, property=prop, value=text)
        return config

    @staticmethod
    def _non_negative(text: str, kind: type, message: str):
        try:
            number = kind(text.strip())
        except ValueError:
            raise InvalidValue(message)
        if number < 0 or math.isnan(number):
            raise InvalidValue(message)
        return number

    # ─────────────────────────────────────────────────────────────────────────
    # RESET
    # ─────────────────────────────────────────────────────────────────────────

    def _clear_flag(self, trap_id: str) -> bool:
        token = self.host.get_token(trap_id)
        config = self.store.read(token) if token is not None else None
        if config is None or config.detection is None or not config.detection.detected:
            return False
        config.detection.detected = False
        self.store.save(token, config)
        self.auras.recompute(self.store.get_token(token.id), config)
        return True

    def reset_detection(self, trap_id: Optional[str] = None) -> int:
        """
        Czyści wykrycia jednej pułapki albo (trap_id=None) wszystkich.

        Returns:
            int: Liczba pułapek, których stan wyczyszczono
        """
        if trap_id is not None:
            token = self.store.get_token(trap_id)
            had_state = bool(self.state.detections.observers_of(trap_id))
            cleared = self._clear_flag(trap_id)
            self.state.detections.clear(trap_id)
            self.events.log_event(EventType.DETECTION_RESET, trap_id)
            name = token.name or f"Trap ID {trap_id}"
            if had_state or cleared:
                self.host.whisper_gm(f"✅ Passive detection state for selected trap '{name}' has been reset.")
                return 1
            self.host.whisper_gm(f"ℹ️ No passive detection state to reset for selected trap '{name}'.")
            return 0

        count = 0
        for token, _ in self.store.all_detectable():
            had_state = bool(self.state.detections.observers_of(token.id))
            if self._clear_flag(token.id) or had_state:
                count += 1
        self.state.detections.clear()
        self.events.log_event(EventType.DETECTION_RESET, all=True)
        if count:
            self.host.whisper_gm(
                "✅ All passive detection states have been reset. Characters will need to re-detect all traps."
            )
        else:
            self.host.whisper_gm("ℹ️ No passive detection states were active to reset.")
        return count
