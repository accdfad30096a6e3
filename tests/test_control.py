"""
Testy dla operacji prowadzącego na pułapkach.

Testuje:
- Konfigurację pułapek standardowych i interakcyjnych
- Uzbrajanie, użycia, auto-disarm
- Pauzę globalną i kolory stanu
- Zwalnianie blokad (ze zużyciem użycia)
- Raport stanu i odporność tokena
"""

import pytest
from dataclasses import replace
import sys
from pathlib import Path
from urllib.parse import quote

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem import TrapSystem
from trapsystem.core.config_loader import ConfigLoader
from trapsystem.core.state import LockRecord
from trapsystem.errors import ConfigurationInvalid, InvalidValue, MissingReference
from trapsystem.events import EventType
from trapsystem.host import InMemoryHost, ManualScheduler, Page, Token
from trapsystem.notes.codec import normalize
from trapsystem.notes.models import SkillCheck


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

def create_host() -> InMemoryHost:
    host = InMemoryHost(ManualScheduler())
    host.add_page(Page(id="p1", name="Dungeon"))
    host.add_token(Token(id="hero", page_id="p1", name="Hero", left=35, top=35))
    host.add_token(Token(id="pit", page_id="p1", name="Spiked Pit", left=245, top=35, layer="gmlayer"))
    host.add_token(Token(id="door", page_id="p1", name="Stuck Door", left=245, top=245, layer="gmlayer"))
    return host


@pytest.fixture
def host():
    return create_host()


@pytest.fixture
def system(host):
    system = TrapSystem(host, seed=1)
    system.control.setup_trap("pit", uses=2, primary_macro="#PitFall")
    host.clear_messages()
    return system


def trigger_of(system, trap_id="pit"):
    return system.store.get_trap(trap_id)[1].trigger


def last_gm(host):
    return host.messages_of("gm")[-1].content


# ═══════════════════════════════════════════════════════════════════════════
# TEST: KONFIGURACJA
# ═══════════════════════════════════════════════════════════════════════════

def test_setup_trap_writes_notes_and_visuals(system, host):
    pit = host.get_token("pit")

    assert pit.notes.startswith("%7B!traptrigger")
    assert (pit.bar1_value, pit.bar1_max) == (2, 2)
    assert pit.aura1_color == "#00ff00"
    assert trigger_of(system).primary_macro == "#PitFall"


def test_setup_with_zero_uses_is_disarmed(system, host):
    system.control.setup_trap("pit", uses=0)

    assert not trigger_of(system).is_armed
    assert host.get_token("pit").aura1_color == "#ff0000"


@pytest.mark.parametrize("uses", [-1, "many", None])
def test_setup_rejects_invalid_uses(system, host, uses):
    notes = host.get_token("pit").notes

    with pytest.raises(InvalidValue):
        system.control.setup_trap("pit", uses=uses)

    assert host.get_token("pit").notes == notes


def test_setup_interaction_trap(system, host):
    system.control.setup_interaction_trap(
        "door", uses=1, success_macro="/em ok", failure_macro="/em ouch",
        checks=[SkillCheck("Athletics", 12), SkillCheck("Dexterity Saving Throw", 14)],
    )

    trigger = trigger_of(system, "door")
    assert trigger.is_interaction
    assert [c.skill for c in trigger.checks] == ["Athletics", "Dexterity Saving Throw"]
    assert host.get_token("door").aura1_color == "#6aa84f"
    assert last_gm(host) == "✅ Interaction trap 'Stuck Door' set up with 1 use(s)."


def test_setup_interaction_rejects_unknown_skill(system, host):
    with pytest.raises(InvalidValue):
        system.control.setup_interaction_trap("door", uses=1, checks=[SkillCheck("Juggling", 10)])

    assert host.get_token("door").notes == ""


def test_setup_keeps_detection_block(system, host):
    system.settings.set_passive_property("pit", "dc", "13")

    system.control.setup_trap("pit", uses=5)

    _, config = system.store.get_trap("pit")
    assert config.detection.spot_dc == 13
    assert config.trigger.max_uses == 5


def test_missing_token(system):
    with pytest.raises(MissingReference):
        system.control.setup_trap("ghost", uses=1)


def test_plain_token_is_not_a_trap(system):
    with pytest.raises(ConfigurationInvalid):
        system.control.toggle_trap("hero")


# ═══════════════════════════════════════════════════════════════════════════
# TEST: UZBRAJANIE I UŻYCIA
# ═══════════════════════════════════════════════════════════════════════════

def test_toggle_trap(system, host):
    assert not system.control.toggle_trap("pit")
    assert last_gm(host) == "Trap 'Spiked Pit' is now DISARMED (2/2 uses)."
    assert host.get_token("pit").aura1_color == "#ff0000"

    assert system.control.toggle_trap("pit")
    assert last_gm(host) == "Trap 'Spiked Pit' is now ARMED (2/2 uses)."


def test_arming_empty_trap_gives_one_use(system):
    system.control.update_uses("pit", 0)

    system.control.toggle_trap("pit")

    trigger = trigger_of(system)
    assert (trigger.current_uses, trigger.max_uses, trigger.is_armed) == (1, 2, True)


def test_rearm_zero_max(system):
    system.control.setup_trap("pit", uses=0)

    trigger = system.control.rearm("pit")

    assert (trigger.current_uses, trigger.max_uses, trigger.is_armed) == (1, 1, True)


def test_update_uses_clamps(system, host):
    trigger = system.control.update_uses("pit", 9, 3)

    assert (trigger.current_uses, trigger.max_uses) == (3, 3)
    assert host.get_token("pit").bar1_value == 3
    assert system.events.get_events_by_type(EventType.USES_CHANGED)[-1].data["current"] == 3


def test_update_uses_zero_disarms(system):
    trigger = system.control.update_uses("pit", 0)

    assert not trigger.is_armed


def test_update_uses_rejects_text(system):
    with pytest.raises(InvalidValue):
        system.control.update_uses("pit", "lots")


def test_deplete_to_zero_reports(system, host):
    assert system.control.deplete_use("pit") == 1
    assert system.control.deplete_use("pit") == 0

    assert last_gm(host) == "🔴 Trap 'Spiked Pit' has no uses left and is now disarmed."
    assert not trigger_of(system).is_armed
    assert system.control.deplete_use("pit") == 0


# ═══════════════════════════════════════════════════════════════════════════
# TEST: PAUZA GLOBALNA
# ═══════════════════════════════════════════════════════════════════════════

def test_disable_and_enable_triggers(system, host):
    system.control.setup_interaction_trap("door", uses=1, success_macro="/em ok")

    assert system.control.disable_triggers() == 2
    assert not system.state.flags.triggers_enabled
    assert host.get_token("pit").aura1_color == "#ffa500"
    assert host.get_token("door").aura1_color == "#ffa500"
    assert last_gm(host) == "⏸️ Trap triggers disabled."

    system.control.enable_triggers()
    assert host.get_token("pit").aura1_color == "#00ff00"
    assert host.get_token("door").aura1_color == "#6aa84f"
    assert last_gm(host) == "✅ Trap triggers enabled."


# ═══════════════════════════════════════════════════════════════════════════
# TEST: BLOKADY
# ═══════════════════════════════════════════════════════════════════════════

def test_release_lock_depletes_when_macro_ran(system):
    system.state.locks.put(LockRecord("hero", "pit", macro_triggered=True))

    record = system.control.release_lock("hero")

    assert record.trap_id == "pit"
    assert trigger_of(system).current_uses == 1
    assert system.control.release_lock("hero") is None


def test_release_lock_without_macro_keeps_uses(system):
    system.state.locks.put(LockRecord("hero", "pit"))

    system.control.release_lock("hero")

    assert trigger_of(system).current_uses == 2


def test_mark_triggered_only_for_matching_trap(system):
    system.state.locks.put(LockRecord("hero", "pit"))

    assert not system.control.mark_triggered("hero", "door")
    assert system.control.mark_triggered("hero", "pit")
    assert system.state.locks.get("hero").macro_triggered


def test_allow_movement_not_locked(system, host):
    assert not system.control.allow_movement("hero")
    assert last_gm(host) == "ℹ️ 'Hero' is not locked by any trap."


def test_allow_all_movement(system, host):
    host.add_token(Token(id="rogue", page_id="p1", name="Rogue", left=105, top=35))
    system.state.locks.put(LockRecord("hero", "pit"))
    system.state.locks.put(LockRecord("rogue", "pit"))

    assert system.control.allow_all_movement() == 2

    assert not system.state.locks.is_locked("hero")
    assert not system.state.locks.is_locked("rogue")
    assert last_gm(host) == "✅ Movement allowed for all tokens (2 released)."


# ═══════════════════════════════════════════════════════════════════════════
# TEST: RAPORT I ODPORNOŚĆ
# ═══════════════════════════════════════════════════════════════════════════

def test_trap_status(system, host):
    system.state.locks.put(LockRecord("hero", "pit"))
    system.control.disable_triggers()

    status = system.control.trap_status("pit")

    assert status.locked_tokens == ["hero"]
    assert status.primary_macro == "Macro: PitFall"
    text = last_gm(host)
    assert "State: 🎯 ARMED (triggers paused)" in text
    assert "Uses: 2/2" in text
    assert "Locked tokens: 1" in text


def test_toggle_immunity(system, host):
    assert system.control.toggle_immunity("hero")
    hero = host.get_token("hero")
    assert "blue" in hero.status_markers
    assert system.store.has_tag(hero, "ignoretraps")
    assert last_gm(host) == "🛡️ 'Hero' ignores traps."

    assert not system.control.toggle_immunity("hero")
    hero = host.get_token("hero")
    assert "blue" not in hero.status_markers
    assert not system.store.has_tag(hero, "ignoretraps")
    assert last_gm(host) == "🛡️ 'Hero' no longer ignores traps."


def test_half_immunity_is_completed(system, host):
    """Sam marker bez tagu: przełączenie czyni token w pełni odpornym."""
    host.update_token("hero", status_markers=["blue", "red"])

    assert system.control.toggle_immunity("hero")

    hero = host.get_token("hero")
    assert hero.status_markers == ["red", "blue"]
    assert system.store.has_tag(hero, "ignoretraps")


# ═══════════════════════════════════════════════════════════════════════════
# TEST: NOTATKA PROWADZĄCEGO
# ═══════════════════════════════════════════════════════════════════════════

def test_trap_changes_keep_gm_notes(system, host):
    """Opis dopisany przez prowadzącego przeżywa przełączenie i zmianę użyć."""
    pit = host.get_token("pit")
    host.update_token("pit", notes=quote("Lore: built by kobolds. ", safe="") + pit.notes)

    system.control.toggle_trap("pit")
    system.control.update_uses("pit", 1)

    notes = normalize(host.get_token("pit").notes)
    assert notes.startswith("Lore: built by kobolds. {!traptrigger")
    assert notes.count("{!traptrigger") == 1
    trigger = trigger_of(system)
    assert (trigger.current_uses, trigger.is_armed) == (1, False)


def test_custom_immunity_tag_survives_save(host):
    """Tag odporności z konfiguracji (nie domyślny) nie znika przy zapisie."""
    config = replace(ConfigLoader().load_system_config(), immunity_tag="lairsafe")
    system = TrapSystem(host, config=config, seed=1)
    system.control.setup_trap("pit", uses=2)

    assert system.control.toggle_immunity("pit")
    system.control.toggle_trap("pit")
    system.control.setup_trap("pit", uses=3)

    pit = host.get_token("pit")
    assert system.store.has_tag(pit, "lairsafe")
    assert not system.store.has_tag(pit, "ignoretraps")
    assert trigger_of(system).max_uses == 3
