"""
Przebieg interakcji z wyzwoloną pułapką.

ROZSTRZYGNIĘCIE NATYCHMIASTOWE:
═══════════════════════════════════════════════════════════════════

    Pułapka standardowa albo interakcyjna bez makr sukcesu/porażki:
        makro główne -> zużycie użycia (auto-disarm przy 0)
        -> zdjęcie blokady ofiary

SESJA MODEROWANA:
═══════════════════════════════════════════════════════════════════

    handle_trigger   menu trigger / explain (autoTrigger -> trigger)
    interact         trigger: makro główne, blokada oznaczona
                              (użycie zużyje się przy zwolnieniu)
                     explain: bez makra
                     potem ustalenie postaci:
                         token reprezentuje postać -> GM_DECISION
                         inaczej lista postaci graczy -> wybór
    select_character wybór postaci z listy
    allow / fail     makro sukcesu / porażki -> rozstrzygnięcie
    start_check      test z konfiguracji (indeks)
    custom_check     własny test (umiejętność, DC)
    choose_roll_mode przewaga / normalny / utrudnienie
    set_dc, reveal_dc
    handle_roll_result  wynik rzutu z zewnątrz
    resolve_mismatch    rzucono inny test: GM przyjmuje wynik albo
                        prosi o ponowny rzut

ROZSTRZYGNIĘCIE:
    ofiara z blokadą -> blokada zdjęta (oznaczona: -1 użycie)
    brak blokady (wyzwolenie ręczne) -> -1 użycie

RZUT Z PRZEWAGĄ / UTRUDNIENIEM:
    Dwa wyniki w jednym zgłoszeniu -> max / min.
    Jeden wynik -> zapamiętany jako first_roll, czekamy na drugi,
    potem max / min z obu.

INNY TEST NIŻ ZLECONY:
    Zgłoszenie z nazwą testu (skill), która nie pasuje do zleconego,
    nie rozstrzyga testu - wynik czeka na accept / reject prowadzącego.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..core.state import PendingCheck, RollMode
from ..errors import InvalidValue, MissingReference
from ..events.event_logger import EventType
from . import menus
from .state_machine import InteractionSession, InteractionState

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.state import StateStore
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Character, Token
    from ..macros.substitution import MacroRunner
    from ..notes.models import TrapConfig
    from ..notes.store import TrapStore
    from ..triggers.control import TrapControl

logger = logging.getLogger(__name__)

_S = InteractionState


def _skill_key(name: str) -> str:
    """Klucz porównania nazw testów: "Athletics Check" ~ "athletics", "Dex Save" ~ "Dex Saving Throw"."""
    key = " ".join(name.lower().split())
    if key.endswith(" check"):
        key = key[:-len(" check")]
    if key.endswith(" save"):
        key = key[:-len(" save")] + " saving throw"
    return key


@dataclass
class RollOutcome:
    """
    Wynik zgłoszenia rzutu.

    Attributes:
        check (PendingCheck): Test, którego dotyczył rzut
        total (Optional[int]): Wynik użyty do porównania
        success (Optional[bool]): None gdy czekamy na drugi rzut
        waiting (bool): Czy czekamy na drugi rzut (albo na decyzję GM)
        mismatch (bool): Rzucono inny test niż zlecony
    """
    check: PendingCheck
    total: Optional[int] = None
    success: Optional[bool] = None
    waiting: bool = False
    mismatch: bool = False


class InteractionEngine:
    """
    Prowadzi sesje interakcji z pułapkami.

    Sesje są trzymane per pułapka. Nowe wyzwolenie tej samej pułapki
    otwiera nową sesję (blokady wcześniejszych ofiar zostają, aż
    prowadzący je zwolni).

    Attributes:
        host (Host): Czat, postacie, gracze
        store (TrapStore): Konfiguracje
        state (StateStore): Blokady i oczekujące testy
        control (TrapControl): Zużycie użyć, zwalnianie blokad
        macros (MacroRunner): Wykonanie makr
        config (TrapSystemConfig): Lista umiejętności
        events (EventLogger): Dziennik
        sessions (Dict[str, InteractionSession]): Sesje wg ID pułapki
    """

    def __init__(
        self,
        host: "Host",
        store: "TrapStore",
        state: "StateStore",
        control: "TrapControl",
        macros: "MacroRunner",
        config: "TrapSystemConfig",
        events: "EventLogger",
    ):
        self.host = host
        self.store = store
        self.state = state
        self.control = control
        self.macros = macros
        self.config = config
        self.events = events
        self.sessions: Dict[str, InteractionSession] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # SESJE
    # ─────────────────────────────────────────────────────────────────────────

    def session(self, trap_id: str) -> InteractionSession:
        """
        Raises:
            MissingReference: Pułapka nie ma sesji
        """
        session = self.sessions.get(trap_id)
        if session is None:
            raise MissingReference(f"No interaction in progress for trap '{trap_id}'")
        return session

    def _transition(self, session: InteractionSession, new_state: InteractionState) -> None:
        old = session.state
        session.machine.transition_to(new_state)
        self.events.log_state_change(session.trap_id, old.name, new_state.name)

    def _victim(self, session: InteractionSession) -> Optional["Token"]:
        return self.host.get_token(session.victim_id) if session.victim_id else None

    # ─────────────────────────────────────────────────────────────────────────
    # WYZWOLENIE
    # ─────────────────────────────────────────────────────────────────────────

    def handle_trigger(
        self,
        trap_token: "Token",
        trap: "TrapConfig",
        victim: Optional["Token"] = None,
    ) -> InteractionSession:
        """
        Otwiera sesję po wyzwoleniu pułapki.

        Args:
            trap_token: Token pułapki
            trap: Konfiguracja pułapki
            victim: Złapany token (None dla wyzwolenia ręcznego)
        """
        session = InteractionSession.start(trap_token.id, victim.id if victim is not None else None)
        previous = self.sessions.get(trap_token.id)
        if previous is not None and previous.machine.is_pending():
            logger.info("Trap %s re-triggered while a session was pending", trap_token.id)
        self.sessions[trap_token.id] = session
        self._transition(session, _S.TRIGGERED)

        trigger = trap.trigger
        if not trigger.needs_moderation():
            self._resolve_immediately(session, trap_token, trap, victim)
            return session

        if trigger.auto_trigger:
            self.interact(trap_token.id, "trigger")
        else:
            victim_name = victim.name if victim is not None else ""
            self.host.whisper_gm(menus.interaction_menu(trap_token.id, trap_token.name, victim_name, trigger))
        return session

    def manual_trigger(self, trap_id: str) -> InteractionSession:
        """
        Wyzwolenie zlecone przez prowadzącego (bez ofiary).

        Raises:
            InvalidValue: Pułapka rozbrojona albo bez użyć
        """
        token, trap = self.store.get_trap(trap_id)
        if not trap.trigger.can_trigger():
            raise InvalidValue(f"Trap '{token.name}' is disarmed or has no uses left.")
        self.events.log_trigger(token.id, None, None, "manual")
        return self.handle_trigger(token, trap, None)

    def _resolve_immediately(
        self,
        session: InteractionSession,
        trap_token: "Token",
        trap: "TrapConfig",
        victim: Optional["Token"],
    ) -> None:
        self.macros.execute(trap.trigger.primary_macro, trap_token, victim, role="primary")
        self.control.deplete_use(trap_token.id)
        session.outcome = "triggered"
        self._transition(session, _S.RESOLVED)
        if session.victim_id:
            self.control.release_lock(session.victim_id)
        self._transition(session, _S.MOVEMENT_RELEASED)

    # ─────────────────────────────────────────────────────────────────────────
    # AKCJE PROWADZĄCEGO
    # ─────────────────────────────────────────────────────────────────────────

    def interact(self, trap_id: str, action: str) -> InteractionSession:
        """
        Akcja z menu wyzwolenia: "trigger" albo "explain".

        Raises:
            InvalidValue: Nieznana akcja
            InvalidTransition: Sesja nie jest w stanie TRIGGERED
        """
        session = self.session(trap_id)
        session.machine.require(_S.TRIGGERED)
        action = (action or "").strip().lower()
        trap_token, trap = self.store.get_trap(trap_id)

        if action == "trigger":
            victim = self._victim(session)
            self.macros.execute(trap.trigger.primary_macro, trap_token, victim, role="primary")
            if session.victim_id:
                self.control.mark_triggered(session.victim_id, trap_id)
        elif action == "explain":
            self._transition(session, _S.EXPLAIN_ATTEMPT)
        else:
            raise InvalidValue(f"Unknown interaction action '{action}'")

        self._resolve_character(session, trap_token, trap)
        return session

    def player_characters(self) -> List["Character"]:
        """Postacie kontrolowane przez co najmniej jednego gracza nie-GM."""
        return [
            character for character in self.host.list_characters()
            if any(pid and not self.host.is_gm(pid) for pid in character.controlled_by)
        ]

    def _resolve_character(self, session: InteractionSession, trap_token: "Token", trap: "TrapConfig") -> None:
        victim = self._victim(session)
        character = None
        if victim is not None and victim.represents:
            character = self.host.get_character(victim.represents)

        if character is not None:
            self._set_character(session, character.id, character.name)
            self._open_decision(session, trap_token, trap)
            return

        candidates = self.player_characters()
        if not candidates:
            self._open_decision(session, trap_token, trap)
            return

        session.candidates = [c.id for c in candidates]
        self._transition(session, _S.CHARACTER_SELECTION)
        self.host.whisper_gm(menus.character_menu(
            trap_token.id, trap_token.name, [(c.id, c.name) for c in candidates],
        ))

    def _set_character(self, session: InteractionSession, character_id: str, name: str) -> None:
        session.character_id = character_id
        session.character_name = name

    def _open_decision(self, session: InteractionSession, trap_token: "Token", trap: "TrapConfig") -> None:
        self._transition(session, _S.GM_DECISION)
        self.host.whisper_gm(menus.response_menu(
            trap_token.id, trap_token.name, session.character_name or "", trap.trigger,
        ))

    def select_character(self, trap_id: str, character_id: str) -> InteractionSession:
        """
        Raises:
            MissingReference: Postać nie istnieje
            InvalidTransition: Sesja nie czeka na wybór postaci
        """
        session = self.session(trap_id)
        session.machine.require(_S.CHARACTER_SELECTION)
        character = self.host.get_character(character_id)
        if character is None:
            raise MissingReference(f"Character '{character_id}' not found")

        trap_token, trap = self.store.get_trap(trap_id)
        self._set_character(session, character.id, character.name)
        self._open_decision(session, trap_token, trap)
        return session

    def run_option(self, trap_id: str, index: int) -> bool:
        """Wykonuje jedno z dodatkowych makr pułapki."""
        trap_token, trap = self.store.get_trap(trap_id)
        options = trap.trigger.options
        if not 0 <= index < len(options):
            raise InvalidValue(f"Trap '{trap_token.name}' has no option #{index}")
        session = self.sessions.get(trap_id)
        victim = self._victim(session) if session is not None else None
        return self.macros.execute(options[index], trap_token, victim, role="option")

    # ─────────────────────────────────────────────────────────────────────────
    # DECYZJA
    # ─────────────────────────────────────────────────────────────────────────

    def allow(self, trap_id: str) -> InteractionSession:
        """Sukces: makro sukcesu i rozstrzygnięcie."""
        return self._decide(trap_id, success=True)

    def fail(self, trap_id: str) -> InteractionSession:
        """Porażka: makro porażki i rozstrzygnięcie."""
        return self._decide(trap_id, success=False)

    def _decide(self, trap_id: str, success: bool) -> InteractionSession:
        session = self.session(trap_id)
        session.machine.require(_S.GM_DECISION, _S.SKILL_CHECK)
        trap_token, trap = self.store.get_trap(trap_id)
        victim = self._victim(session)

        if success:
            self.macros.execute(trap.trigger.success_macro, trap_token, victim, role="success")
        else:
            self.macros.execute(trap.trigger.failure_macro, trap_token, victim, role="failure")
        session.outcome = "success" if success else "failure"
        self._resolve(session)
        return session

    def _resolve(self, session: InteractionSession) -> None:
        self._transition(session, _S.RESOLVED)
        self.state.pending_checks.clear_trap(session.trap_id)

        released = None
        if session.victim_id:
            released = self.control.release_lock(session.victim_id)
        if released is None:
            self.control.deplete_use(session.trap_id)

        self._transition(session, _S.MOVEMENT_RELEASED)
        trap_token = self.host.get_token(session.trap_id)
        name = trap_token.name if trap_token is not None else session.trap_id
        label = "✅ Success" if session.outcome == "success" else "❌ Failure"
        self.host.whisper_gm(f"{label}: '{name}' resolved.")

    # ─────────────────────────────────────────────────────────────────────────
    # TESTY UMIEJĘTNOŚCI
    # ─────────────────────────────────────────────────────────────────────────

    def _open_check(self, session: InteractionSession, moderator_id: str, skill: str, dc: int,
                    index: Optional[int]) -> PendingCheck:
        check = self.state.pending_checks.put(PendingCheck(
            trap_id=session.trap_id,
            moderator_id=moderator_id,
            skill=skill,
            dc=dc,
            check_index=index,
            character_id=session.character_id,
            character_name=session.character_name,
            token_id=session.victim_id,
        ))
        self._transition(session, _S.SKILL_CHECK)
        self.events.log_event(
            EventType.CHECK_REQUESTED, session.trap_id, session.victim_id, skill=skill, dc=dc,
        )
        self.host.whisper_gm(menus.roll_setup_menu(check))
        return check

    def start_check(self, trap_id: str, index: int, moderator_id: str) -> PendingCheck:
        """
        Otwiera test z konfiguracji pułapki.

        Raises:
            InvalidValue: Indeks poza listą testów
        """
        session = self.session(trap_id)
        session.machine.require(_S.GM_DECISION, _S.SKILL_CHECK)
        _, trap = self.store.get_trap(trap_id)
        checks = trap.trigger.checks
        if not 0 <= index < len(checks):
            raise InvalidValue(f"Check #{index} does not exist")
        return self._open_check(session, moderator_id, checks[index].skill, checks[index].dc, index)

    def custom_check(self, trap_id: str, skill: str, dc: int, moderator_id: str) -> PendingCheck:
        """
        Otwiera własny test prowadzącego.

        Raises:
            InvalidValue: Nieznana umiejętność albo ujemne DC
        """
        session = self.session(trap_id)
        session.machine.require(_S.GM_DECISION, _S.SKILL_CHECK)
        if skill not in self.config.skill_types:
            raise InvalidValue(f"Unknown skill type '{skill}'")
        dc = self._parse_dc(dc)
        return self._open_check(session, moderator_id, skill, dc, None)

    @staticmethod
    def _parse_dc(dc: object) -> int:
        try:
            value = int(dc)
        except (TypeError, ValueError):
            raise InvalidValue(f"Invalid DC '{dc}'")
        if value < 0:
            raise InvalidValue(f"Invalid DC '{dc}'")
        return value

    def _pending_for(self, moderator_id: str) -> PendingCheck:
        check = self.state.pending_checks.find(moderator_id=moderator_id)
        if check is None:
            raise MissingReference(f"No pending check for '{moderator_id}'")
        return check

    def choose_roll_mode(self, moderator_id: str, mode: str) -> PendingCheck:
        """
        Ustala tryb rzutu i wysyła graczom instrukcję.

        Raises:
            InvalidValue: Nieznany tryb
        """
        check = self._pending_for(moderator_id)
        try:
            check.advantage = RollMode.parse(mode)
        except ValueError:
            raise InvalidValue(f"Unknown roll mode '{mode}'")
        check.first_roll = None
        self._send_roll_instruction(check)
        return check

    def _send_roll_instruction(self, check: PendingCheck) -> None:
        instruction = menus.roll_instruction(check)
        players = self._players_of(check.character_id)
        if players:
            for player_id in players:
                self.host.whisper(player_id, instruction)
        else:
            self.host.whisper_gm(instruction)

    def _players_of(self, character_id: Optional[str]) -> List[str]:
        character = self.host.get_character(character_id) if character_id else None
        if character is None:
            return []
        return [pid for pid in character.controlled_by if pid and not self.host.is_gm(pid)]

    def set_dc(self, moderator_id: str, dc: int) -> PendingCheck:
        check = self._pending_for(moderator_id)
        check.dc = self._parse_dc(dc)
        self.host.whisper_gm(menus.roll_setup_menu(check))
        return check

    def reveal_dc(self, moderator_id: str, reveal: bool = True) -> PendingCheck:
        check = self._pending_for(moderator_id)
        check.reveal_dc = reveal
        return check

    def handle_roll_result(
        self,
        total: int,
        moderator_id: Optional[str] = None,
        character_id: Optional[str] = None,
        rolls: Optional[Sequence[int]] = None,
        skill: Optional[str] = None,
    ) -> Optional[RollOutcome]:
        """
        Przyjmuje wynik rzutu dla oczekującego testu.

        Args:
            total: Wynik rzutu
            moderator_id: Gracz, który zgłosił rzut
            character_id: Postać, która rzucała
            rolls: Oba wyniki rzutu z przewagą/utrudnieniem (jeśli są)
            skill: Nazwa rzuconego testu (z karty postaci), jeśli znana

        Returns:
            Optional[RollOutcome]: None gdy brak oczekującego testu
        """
        check = self.state.pending_checks.find(character_id=character_id, moderator_id=moderator_id)
        if check is None:
            logger.debug("No pending check for player %s / character %s", moderator_id, character_id)
            return None

        if skill and _skill_key(skill) != _skill_key(check.skill):
            logger.info("Roll of %s does not match pending %s on %s", skill, check.skill, check.trap_id)
            check.mismatched_roll = int(total)
            check.mismatched_skill = skill
            self.host.whisper_gm(menus.mismatch_menu(check))
            return RollOutcome(check, int(total), waiting=True, mismatch=True)

        mode = check.advantage or RollMode.NORMAL
        pick = max if mode == RollMode.ADVANTAGE else min
        if mode != RollMode.NORMAL:
            if rolls is not None and len(rolls) >= 2:
                total = pick(rolls[0], rolls[1])
            elif check.first_roll is None:
                check.first_roll = int(total)
                self.host.whisper_gm(f"🎲 First roll {total} recorded for {check.skill}, waiting for the second.")
                return RollOutcome(check, waiting=True)
            else:
                total = pick(check.first_roll, int(total))
        return self._finish_check(check, int(total))

    def resolve_mismatch(self, trap_id: str, accept: bool) -> Optional[RollOutcome]:
        """
        Decyzja GM o rzucie innego testu niż zlecony.

        accept: wynik rozstrzyga test. reject: rzut odrzucony, gracze
        dostają ponownie instrukcję rzutu.

        Raises:
            MissingReference: Brak rzutu czekającego na decyzję
        """
        check = self.state.pending_checks.for_trap(trap_id)
        if check is None or check.mismatched_roll is None:
            raise MissingReference(f"No mismatched roll waiting for trap '{trap_id}'")
        total = check.mismatched_roll
        check.mismatched_roll = None
        check.mismatched_skill = None

        if accept:
            self.host.whisper_gm("✅ GM accepted the roll. Processing result...")
            return self._finish_check(check, total)
        check.first_roll = None
        self.host.whisper_gm(f"↩️ Roll rejected, {check.character_name or 'Character'} rolls {check.skill} again.")
        self._send_roll_instruction(check)
        return None

    def _finish_check(self, check: PendingCheck, total: int) -> RollOutcome:
        success = total >= check.dc
        self.state.pending_checks.remove(check)
        self.events.log_event(
            EventType.CHECK_RESOLVED, check.trap_id, check.token_id,
            skill=check.skill, dc=check.dc, total=total, success=success,
        )
        who = check.character_name or "Character"
        verdict = "succeeded" if success else "failed"
        self.host.whisper_gm(f"🎲 {who} {verdict} {check.skill}: {total} vs DC {check.dc}.")

        session = self.sessions.get(check.trap_id)
        if session is not None and session.state.accepts_decision():
            self._decide(check.trap_id, success)
        return RollOutcome(check, total, success)
