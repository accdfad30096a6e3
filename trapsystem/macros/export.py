"""
Eksport makr i reset stołu do stanu z chwili eksportu.

Prowadzący eksportuje makra przed sesją (albo przed próbnym
przejściem pułapek). System zapamiętuje treść każdego makra oraz
stan tokenów i drzwi, które makra zmieniają. Reset przywraca ten
stan, więc pułapki można "przejść" wiele razy.

CO JEST ZAPAMIĘTYWANE:
═══════════════════════════════════════════════════════════════════

    !token-mod --ids A B --set ...   stan tokenów A i B (pozycja,
                                     rozmiar, warstwa, notatka,
                                     paski, aury, znaczniki)
    !door D open                     stan drzwi D
    !window W lock                   stan okna W
                                     (is_open, is_locked, is_secret)
    @{selected|token_id}             pomijane - ID znane dopiero
                                     przy użyciu makra

RESET:
═══════════════════════════════════════════════════════════════════

    reset_token_states   tokeny i drzwi -> zapamiętany stan,
                         potem zapamiętane stany są zapominane
    reset_macros         treść makr -> wyeksportowana (liczą się
                         tylko makra, które się zmieniły)
    full_reset           oba powyższe + zapomnienie listy makr

    Zmiana pozycji tokena przy resecie jest rejestrowana jako ruch
    programowy - raport tego ruchu nie wyzwala pułapek.

Przykład:
    >>> exporter = MacroExporter(host, state, events)
    >>> exporter.export_macros().tokens
    2
    >>> host.move_token("boulder", 700, 700)
    >>> exporter.reset_token_states()
    2
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import re
from typing import TYPE_CHECKING, Any, Dict, List

from ..core.geometry import Point
from ..events.event_logger import EventType

if TYPE_CHECKING:
    from ..core.state import ExportedState, StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Door, Token

logger = logging.getLogger(__name__)

# ID tokenów aż do następnej opcji TokenMod (--set, --on...) albo końca linii
_TOKEN_MOD_IDS = re.compile(r"!token-mod\s+--ids((?:[ \t]+(?!--[a-zA-Z])\S+)+)")
_DOOR_COMMAND = re.compile(
    r"!(?:door|window)\s+(\S+)\s+"
    r"(?:open|close|lock|unlock|reveal|hide|togglelock|togglesecret|toggleopen)\b"
)

SNAPSHOT_FIELDS = (
    "name", "layer", "notes", "left", "top", "width", "height", "rotation",
    "status_markers",
    "bar1_value", "bar1_max", "bar2_value", "bar2_max", "bar3_value", "bar3_max",
    "aura1_color", "aura1_radius", "aura2_color", "aura2_radius",
)


def _is_placeholder(object_id: str) -> bool:
    return object_id.startswith("@{") and object_id.endswith("}")


def token_ids_in(action: str) -> List[str]:
    """
    ID tokenów z komend !token-mod --ids (bez placeholderów).

    Example:
        >>> token_ids_in("!token-mod --ids -Ma -Mb --set layer|objects")
        ['-Ma', '-Mb']
    """
    ids: List[str] = []
    for match in _TOKEN_MOD_IDS.finditer(action):
        for object_id in match.group(1).split():
            if _is_placeholder(object_id):
                logger.debug("Skipping placeholder ID in macro export: %s", object_id)
            elif object_id not in ids:
                ids.append(object_id)
    return ids


def door_ids_in(action: str) -> List[str]:
    """ID drzwi/okien z komend !door / !window (bez placeholderów)."""
    ids: List[str] = []
    for match in _DOOR_COMMAND.finditer(action):
        object_id = match.group(1)
        if _is_placeholder(object_id):
            logger.debug("Skipping placeholder ID in door/window command: %s", object_id)
        elif object_id not in ids:
            ids.append(object_id)
    return ids


@dataclass
class ExportSummary:
    """Ile makr, tokenów i drzwi zapamiętano."""
    macros: int = 0
    tokens: int = 0
    doors: int = 0


@dataclass
class ResetSummary:
    """Ile stanów i makr przywrócono."""
    states: int = 0
    macros: int = 0

    @property
    def changed(self) -> bool:
        return self.states > 0 or self.macros > 0


class MacroExporter:
    """
    Eksport makr i przywracanie stanu stołu.

    Attributes:
        host (Host): Makra, tokeny, drzwi, czat
        state (StateStore): exported (zapamiętany stan), safe_moves
        events (EventLogger): Dziennik zdarzeń
    """

    def __init__(self, host: "Host", state: "StateStore", events: "EventLogger"):
        self.host = host
        self.state = state
        self.events = events

    @property
    def exported(self) -> "ExportedState":
        return self.state.exported

    # ─────────────────────────────────────────────────────────────────────────
    # EKSPORT
    # ─────────────────────────────────────────────────────────────────────────

    def export_macros(self) -> ExportSummary:
        """
        Zapamiętuje treść makr i stan obiektów, których dotykają.

        Poprzedni eksport jest zastępowany w całości.

        Returns:
            ExportSummary: Liczby zapamiętanych makr, tokenów i drzwi
        """
        macros = {name: action for name, action in self.host.list_macros().items() if action}
        if not macros:
            logger.warning("No macros found to export")
            self.host.whisper_gm("⚠️ No macros found to export.")
            return ExportSummary()

        self.exported.macros = dict(macros)
        self.exported.clear_states()

        for name, action in macros.items():
            for token_id in token_ids_in(action):
                token = self.host.get_token(token_id)
                if token is None:
                    logger.warning("Token %s from macro %s not found during export", token_id, name)
                    continue
                self.exported.tokens[token_id] = self.capture_token(token)
            for door_id in door_ids_in(action):
                door = self.host.get_door(door_id)
                if door is None:
                    logger.warning("Door/window %s from macro %s not found during export", door_id, name)
                    continue
                self.exported.doors[door_id] = self.capture_door(door)

        summary = ExportSummary(len(self.exported.macros), len(self.exported.tokens), len(self.exported.doors))
        logger.info("Exported %d macros, captured %d tokens and %d doors",
                    summary.macros, summary.tokens, summary.doors)
        self.events.log_event(
            EventType.MACROS_EXPORTED, macros=summary.macros, tokens=summary.tokens, doors=summary.doors,
        )
        self.host.whisper_gm("✅ Macros exported & initial states captured!")
        return summary

    @staticmethod
    def capture_token(token: "Token") -> Dict[str, Any]:
        state = {name: getattr(token, name) for name in SNAPSHOT_FIELDS}
        state["status_markers"] = list(token.status_markers)
        return state

    @staticmethod
    def capture_door(door: "Door") -> Dict[str, bool]:
        return {"is_open": door.is_open, "is_locked": door.is_locked, "is_secret": door.is_secret}

    # ─────────────────────────────────────────────────────────────────────────
    # RESET
    # ─────────────────────────────────────────────────────────────────────────

    def reset_token_states(self) -> int:
        """
        Przywraca tokeny i drzwi do stanu z eksportu.

        Returns:
            int: Liczba przywróconych obiektów
        """
        count = self._restore_states()
        if count:
            self.host.whisper_gm("✅ States reset to exported versions.")
        else:
            self.host.whisper_gm("ℹ️ No states needed resetting or were available to reset.")
        return count

    def reset_macros(self) -> int:
        """
        Przywraca treść zmienionych makr.

        Returns:
            int: Liczba przywróconych makr
        """
        count = self._restore_macros()
        if count:
            self.host.whisper_gm("✅ Macros reset to exported actions.")
        else:
            self.host.whisper_gm("ℹ️ No macros needed resetting or were available to reset.")
        return count

    def full_reset(self) -> ResetSummary:
        """Reset stanów i makr, potem zapomnienie wyeksportowanych makr."""
        summary = ResetSummary(states=self._restore_states(), macros=self._restore_macros())
        self.exported.macros.clear()
        if summary.changed:
            self.host.whisper_gm("✅ Full reset complete! States and macros restored to exported versions.")
        else:
            self.host.whisper_gm("ℹ️ Full reset: No states or macros needed resetting or were available to reset.")
        return summary

    def _restore_states(self) -> int:
        if not self.exported.has_states():
            logger.info("No token or door/window states to reset")
            return 0

        count = 0
        for token_id, saved in self.exported.tokens.items():
            token = self.host.get_token(token_id)
            if token is None:
                logger.warning("Token %s not found during state reset", token_id)
                continue
            if (token.left, token.top) != (saved["left"], saved["top"]):
                self.state.safe_moves.add(token_id, Point(saved["left"], saved["top"]))
            changes = dict(saved)
            changes["status_markers"] = list(saved["status_markers"])
            self.host.update_token(token_id, **changes)
            count += 1

        for door_id, saved in self.exported.doors.items():
            if self.host.get_door(door_id) is None:
                logger.warning("Door/window %s not found during state reset", door_id)
                continue
            self.host.update_door(door_id, **saved)
            count += 1

        self.exported.clear_states()
        logger.info("Reset %d token/door states", count)
        self.events.log_event(EventType.STATES_RESET, count=count)
        return count

    def _restore_macros(self) -> int:
        if not self.exported.macros:
            logger.info("No exported macros to reset")
            return 0

        count = 0
        current = self.host.list_macros()
        for name, action in self.exported.macros.items():
            if name not in current:
                logger.warning("Macro %s not found during reset, it might have been deleted", name)
                continue
            if current[name] != action:
                self.host.set_macro(name, action)
                logger.debug("Reset macro %s", name)
                count += 1

        if count:
            self.events.log_event(EventType.MACROS_RESET, count=count)
        return count
