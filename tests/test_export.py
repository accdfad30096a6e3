"""
Testy dla eksportu makr i resetu stołu.

Testuje:
- Wyszukiwanie ID w komendach !token-mod / !door / !window
- Eksport: makra, stan tokenów i drzwi, placeholdery, brakujące obiekty
- Reset stanów (jednorazowy), reset makr, pełny reset
- Reset pułapki przywraca jej konfigurację w notatce
"""

import asyncio
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem import TrapSystem
from trapsystem.core.state import StateStore
from trapsystem.events import EventLogger, EventType
from trapsystem.host import Door, InMemoryHost, ManualScheduler, Page, Token
from trapsystem.macros import MacroExporter, token_ids_in, door_ids_in


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

def create_host() -> InMemoryHost:
    """Głaz spadający z sufitu i zamykane drzwi skarbca."""
    host = InMemoryHost(ManualScheduler())
    host.add_page(Page(id="p1", name="Vault"))
    host.add_token(Token(id="boulder", page_id="p1", name="Boulder", left=105, top=105, layer="gmlayer"))
    host.add_token(Token(id="dust", page_id="p1", name="Dust", left=175, top=105, status_markers=["grey"]))
    host.add_door(Door(id="vault", page_id="p1"))
    host.add_door(Door(id="slit", page_id="p1", kind="window", is_locked=True))
    host.add_macro("BoulderDrop", "!token-mod --ids boulder dust --set layer|objects\n!door vault lock")
    host.add_macro("OpenSlit", "!window slit unlock")
    return host


@pytest.fixture
def host():
    return create_host()


@pytest.fixture
def state():
    return StateStore()


@pytest.fixture
def events():
    return EventLogger(seed=1)


@pytest.fixture
def exporter(host, state, events):
    return MacroExporter(host, state, events)


def last_gm(host):
    return host.messages_of("gm")[-1].content


def play_boulder_drop(host):
    """To, co makro zrobiłoby na stole."""
    host.update_token("boulder", layer="objects", left=245, top=245)
    host.update_token("dust", status_markers=[])
    host.update_door("vault", is_locked=True)
    host.update_door("slit", is_locked=False, is_open=True)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: WYSZUKIWANIE ID
# ═══════════════════════════════════════════════════════════════════════════

def test_token_ids_stop_at_next_option():
    action = "!token-mod --ids -Mab--c -Mxy --set layer|objects --on showname"

    assert token_ids_in(action) == ["-Mab--c", "-Mxy"]


def test_token_ids_skip_placeholders_and_duplicates():
    action = "!token-mod --ids @{selected|token_id} boulder --flip light\n!token-mod --ids boulder"

    assert token_ids_in(action) == ["boulder"]


def test_token_ids_per_line():
    action = "!token-mod --ids boulder\n/em The ceiling shakes"

    assert token_ids_in(action) == ["boulder"]


def test_door_ids():
    action = "!door vault open\n!window @{target|token_id} lock\n!window slit togglesecret\n!door vault dance"

    assert door_ids_in(action) == ["vault", "slit"]


# ═══════════════════════════════════════════════════════════════════════════
# TEST: EKSPORT
# ═══════════════════════════════════════════════════════════════════════════

def test_export_captures_macros_tokens_and_doors(exporter, state, host, events):
    summary = exporter.export_macros()

    assert (summary.macros, summary.tokens, summary.doors) == (2, 2, 2)
    assert state.exported.macros["OpenSlit"] == "!window slit unlock"
    assert state.exported.tokens["boulder"]["layer"] == "gmlayer"
    assert state.exported.tokens["dust"]["status_markers"] == ["grey"]
    assert state.exported.doors["slit"] == {"is_open": False, "is_locked": True, "is_secret": False}
    assert last_gm(host) == "✅ Macros exported & initial states captured!"
    assert len(events.get_events_by_type(EventType.MACROS_EXPORTED)) == 1


def test_export_without_macros(state, events):
    host = InMemoryHost()

    summary = MacroExporter(host, state, events).export_macros()

    assert summary.macros == 0
    assert last_gm(host) == "⚠️ No macros found to export."


def test_export_skips_missing_objects(exporter, state, host):
    host.add_macro("Ghost", "!token-mod --ids nobody --set layer|map\n!door nowhere open")

    exporter.export_macros()

    assert "nobody" not in state.exported.tokens
    assert "nowhere" not in state.exported.doors
    assert "Ghost" in state.exported.macros


def test_export_replaces_previous_export(exporter, state, host):
    exporter.export_macros()
    host.set_macro("BoulderDrop", "/em nothing happens")

    exporter.export_macros()

    assert "boulder" not in state.exported.tokens
    assert state.exported.macros["BoulderDrop"] == "/em nothing happens"


def test_captured_state_is_a_copy(exporter, state, host):
    exporter.export_macros()

    host.get_token("dust").status_markers.append("red")

    assert state.exported.tokens["dust"]["status_markers"] == ["grey"]


# ═══════════════════════════════════════════════════════════════════════════
# TEST: RESET
# ═══════════════════════════════════════════════════════════════════════════

def test_reset_states_restores_tokens_and_doors(exporter, state, host):
    exporter.export_macros()
    play_boulder_drop(host)

    assert exporter.reset_token_states() == 4

    boulder = host.get_token("boulder")
    assert (boulder.layer, boulder.left, boulder.top) == ("gmlayer", 105, 105)
    assert host.get_token("dust").status_markers == ["grey"]
    assert not host.get_door("vault").is_locked
    assert (host.get_door("slit").is_open, host.get_door("slit").is_locked) == (False, True)
    assert last_gm(host) == "✅ States reset to exported versions."
    assert not state.exported.has_states()


def test_reset_states_registers_position_change_as_safe(exporter, state, host):
    exporter.export_macros()
    play_boulder_drop(host)

    exporter.reset_token_states()

    assert "boulder" in state.safe_moves
    assert "dust" not in state.safe_moves


def test_second_reset_has_nothing_to_do(exporter, host):
    exporter.export_macros()
    exporter.reset_token_states()

    assert exporter.reset_token_states() == 0
    assert last_gm(host) == "ℹ️ No states needed resetting or were available to reset."


def test_reset_skips_deleted_token(exporter, host):
    exporter.export_macros()
    host.remove_token("dust")

    assert exporter.reset_token_states() == 3


def test_reset_macros_counts_only_changed(exporter, host, events):
    exporter.export_macros()
    host.set_macro("OpenSlit", "!window slit lock")

    assert exporter.reset_macros() == 1

    assert host.get_macro("OpenSlit") == "!window slit unlock"
    assert last_gm(host) == "✅ Macros reset to exported actions."
    assert len(events.get_events_by_type(EventType.MACROS_RESET)) == 1


def test_reset_macros_skips_deleted_macro(exporter, host):
    exporter.export_macros()
    del host.macros["OpenSlit"]

    assert exporter.reset_macros() == 0
    assert "OpenSlit" not in host.macros
    assert last_gm(host) == "ℹ️ No macros needed resetting or were available to reset."


def test_full_reset(exporter, state, host):
    exporter.export_macros()
    play_boulder_drop(host)
    host.set_macro("BoulderDrop", "/em broken")

    summary = exporter.full_reset()

    assert (summary.states, summary.macros) == (4, 1)
    assert state.exported.macros == {}
    assert host.get_macro("BoulderDrop").startswith("!token-mod --ids boulder dust")
    assert last_gm(host) == "✅ Full reset complete! States and macros restored to exported versions."

    assert not exporter.full_reset().changed
    assert last_gm(host) == "ℹ️ Full reset: No states or macros needed resetting or were available to reset."


# ═══════════════════════════════════════════════════════════════════════════
# TEST: RESET PUŁAPKI
# ═══════════════════════════════════════════════════════════════════════════

def test_reset_rearms_spent_trap():
    host = create_host()
    host.add_token(Token(id="hero", page_id="p1", name="Hero", left=35, top=35))
    host.add_token(Token(id="pit", page_id="p1", name="Spiked Pit", left=245, top=35, layer="gmlayer"))
    host.add_macro("PitReset", "!token-mod --ids pit --set bar1_value|1")
    system = TrapSystem(host, seed=1)
    system.control.setup_trap("pit", uses=1, primary_macro="/em spikes")

    system.exporter.export_macros()
    host.update_token("hero", left=245, top=35)
    asyncio.run(system.handle_token_moved("hero", 35, 35))
    assert not system.store.get_trap("pit")[1].trigger.is_armed

    system.exporter.reset_token_states()

    trigger = system.store.get_trap("pit")[1].trigger
    assert (trigger.current_uses, trigger.is_armed) == (1, True)
