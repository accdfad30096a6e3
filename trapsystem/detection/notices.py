"""
Powiadomienia o zauważeniu pułapki.

    gracz      szept do graczy (nie-GM) kontrolujących postać
               obserwatora, a gdy postaci brak - token;
               identyczna treść w oknie debounce jest tłumiona
    brak graczy  ostrzeżenie tylko dla prowadzącego
    GM         zawsze, bez debounce

Szablony: &{template:default} {{name=TYTUŁ}} {{message=TREŚĆ}}

Placeholdery: {charName} {trapName} {charPP} {trapDC}
              {distanceToTrap} {luckBonus} {basePP}
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from ..events.event_logger import EventType

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token
    from ..notes.models import DetectionConfig
    from .perception import PerceptionResult

logger = logging.getLogger(__name__)


def render_placeholders(template: Optional[str], values: Dict[str, str]) -> str:
    """
    Podstawia {nazwa} z mapy; nieznane placeholdery zostają.

    Example:
        >>> render_placeholders("{charName} sees {trapName}", {"charName": "Ann", "trapName": "Pit"})
        'Ann sees Pit'
    """
    if not template:
        return ""
    result = template
    for key, value in values.items():
        result = result.replace("{" + key + "}", value)
    return result


def default_template(title: str, body: str) -> str:
    return f"&{{template:default}} {{{{name={title}}}}} {{{{message={body}}}}}"


@dataclass
class NoticeOutcome:
    """
    Co zostało wysłane.

    Attributes:
        trap_id (str): Zauważona pułapka
        observer_id (str): Obserwator (ID postaci, inaczej tokena)
        recipients (List[str]): Gracze, którzy dostali szept
        suppressed (bool): Powiadomienie gracza stłumione (debounce)
        no_controllers (bool): Nikt nie kontroluje obserwatora
        player_message (str): Wyrenderowana wiadomość gracza
        gm_message (str): Wyrenderowana wiadomość prowadzącego
    """
    trap_id: str = ""
    observer_id: str = ""
    recipients: List[str] = field(default_factory=list)
    suppressed: bool = False
    no_controllers: bool = False
    player_message: str = ""
    gm_message: str = ""


class NoticeDispatcher:
    """
    Renderuje i wysyła powiadomienia o zauważeniu pułapki.

    Attributes:
        host (Host): Czat, postacie, gracze
        state (StateStore): Rejestr debounce
        config (TrapSystemConfig): Tytuły i domyślne szablony
        events (EventLogger): Dziennik
    """

    def __init__(
        self,
        host: "Host",
        state: "StateStore",
        config: "TrapSystemConfig",
        events: "EventLogger",
    ):
        self.host = host
        self.state = state
        self.config = config
        self.events = events

    def observer_name(self, observer: "Token") -> str:
        character = self.host.get_character(observer.represents) if observer.represents else None
        if character is not None and character.name:
            return character.name
        return observer.name or "Unnamed Token"

    def controllers(self, observer: "Token") -> List[str]:
        """Gracze nie-GM kontrolujący postać obserwatora (albo token)."""
        character = self.host.get_character(observer.represents) if observer.represents else None
        source = character.controlled_by if character is not None else observer.controlled_by
        return [pid for pid in (p.strip() for p in source) if pid and not self.host.is_gm(pid)]

    def placeholder_values(
        self,
        observer: "Token",
        trap_token: "Token",
        detection: "DetectionConfig",
        perception: "PerceptionResult",
        distance: float,
    ) -> Dict[str, str]:
        return {
            "charName": self.observer_name(observer),
            "trapName": trap_token.name or "Unnamed Trap",
            "charPP": str(perception.final),
            "trapDC": str(detection.spot_dc),
            "distanceToTrap": f"{distance:.1f}",
            "luckBonus": str(perception.luck_bonus),
            "basePP": str(perception.base),
        }

    def dispatch(
        self,
        observer: "Token",
        trap_token: "Token",
        detection: "DetectionConfig",
        perception: "PerceptionResult",
        distance: float,
    ) -> NoticeOutcome:
        """
        Wysyła powiadomienie gracza (z debounce) i prowadzącego.
        """
        values = self.placeholder_values(observer, trap_token, detection, perception, distance)
        outcome = NoticeOutcome(
            trap_id=trap_token.id,
            observer_id=observer.represents or observer.id,
            player_message=default_template(
                self.config.player_notice_title,
                render_placeholders(detection.notice_player or self.config.default_player_notice, values),
            ),
            gm_message=default_template(
                self.config.gm_notice_title,
                render_placeholders(detection.notice_gm or self.config.default_gm_notice, values),
            ),
        )

        observer_id = observer.represents or observer.id
        now = self.host.now()
        debounce = self.state.notices
        players = self.controllers(observer)

        if debounce.is_suppressed(observer_id, outcome.player_message, now):
            outcome.suppressed = True
            logger.debug("Notice for %s suppressed, identical message sent recently", observer_id)
            self.events.log_event(EventType.NOTICE_SUPPRESSED, trap_token.id, observer.id)
        elif players:
            for player_id in players:
                self.host.whisper(player_id, outcome.player_message)
            outcome.recipients = players
            debounce.record(observer_id, outcome.player_message, now)
        else:
            outcome.no_controllers = True
            self.host.whisper_gm(
                f"⚠️ No players control '{values['charName']}', which would have spotted '{values['trapName']}'."
            )

        self.host.whisper_gm(outcome.gm_message)
        self.events.log_event(
            EventType.PASSIVE_NOTICE, trap_token.id, observer.id,
            observer=observer_id, recipients=list(outcome.recipients),
            suppressed=outcome.suppressed, final=perception.final, dc=detection.spot_dc,
        )
        logger.info(
            "%s (base %s, luck %s) spotted %s (DC %s) at %.1f",
            values["charName"], perception.base, perception.luck_bonus,
            values["trapName"], detection.spot_dc, distance,
        )
        return outcome
