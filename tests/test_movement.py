"""
Testy dla wyzwalania pułapek ruchem.

Testuje:
- Przecięcie ścieżki i nakładanie footprintów
- Filtry: pauza, warstwa, odporność, mały ruch, token pułapki
- Ruch programowy (safe move) i drugie przyciągnięcie
- Blokadę ruchu złapanego tokena
- Pułapki rozbrojone i interakcyjne bez movementTrigger
"""

import asyncio
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem import TrapSystem
from trapsystem.core.geometry import Point
from trapsystem.events import EventType
from trapsystem.host import InMemoryHost, ManualScheduler, Page, Token


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

def create_host() -> InMemoryHost:
    """Strona 70 px, bohater w (35,35), dół w (245,35), drzwi w (245,245)."""
    host = InMemoryHost(ManualScheduler())
    host.add_page(Page(id="p1", name="Dungeon"))
    host.add_token(Token(id="hero", page_id="p1", name="Hero", left=35, top=35))
    host.add_token(Token(id="pit", page_id="p1", name="Spiked Pit", left=245, top=35, layer="gmlayer"))
    host.add_token(Token(id="door", page_id="p1", name="Stuck Door", left=245, top=245, layer="gmlayer"))
    host.add_macro("PitFall", "/em @{victim|name} falls!")
    return host


@pytest.fixture
def host():
    return create_host()


@pytest.fixture
def system(host):
    system = TrapSystem(host, seed=1)
    system.control.setup_trap("pit", uses=1, primary_macro="#PitFall")
    system.control.setup_interaction_trap(
        "door", uses=2, primary_macro="/em click", success_macro="/em opens", failure_macro="/em blade",
    )
    host.clear_messages()
    return system


def move(system, token_id, left, top):
    """Przesuwa token jak gracz i zgłasza ruch."""
    token = system.host.get_token(token_id)
    prev_left, prev_top = token.left, token.top
    system.host.update_token(token_id, left=left, top=top)
    return asyncio.run(system.handle_token_moved(token_id, prev_left, prev_top))


def position(host, token_id):
    token = host.get_token(token_id)
    return Point(token.left, token.top)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: WYZWOLENIE
# ═══════════════════════════════════════════════════════════════════════════

def test_path_through_standard_trap(system, host):
    result = move(system, "hero", 385, 35)

    assert result.ok
    assert result.hit.trap_id == "pit"
    assert result.hit.reason == "path"
    assert position(host, "hero") == Point(245, 35)
    assert host.moves == [("hero", 245, 35)]
    assert host.messages_of("public")[0].content == "/em @{hero|name} falls!"


def test_standard_trap_depletes_and_releases(system, host):
    move(system, "hero", 385, 35)

    _, trap = system.store.get_trap("pit")
    assert trap.trigger.current_uses == 0
    assert not trap.trigger.is_armed
    assert not system.state.locks.is_locked("hero")
    assert host.get_token("pit").bar1_value == 0
    assert host.get_token("pit").aura1_color == "#ff0000"
    assert any("no uses left" in m.content for m in host.messages_of("gm"))


def test_second_snap_after_delay(system, host):
    move(system, "hero", 385, 35)

    assert host.scheduler.advance(0.4) == 0
    assert host.scheduler.advance(0.1) == 1
    assert host.moves == [("hero", 245, 35), ("hero", 245, 35)]
    snaps = system.events.get_events_by_type(EventType.TOKEN_SNAPPED)
    assert [e.data["stage"] for e in snaps] == ["initial", "final"]


def test_programmatic_move_report_is_ignored(system, host):
    """Host zgłasza ruch wykonany przez system - nie jest obsługiwany."""
    move(system, "hero", 385, 35)
    system.control.rearm("pit")

    echo = asyncio.run(system.handle_token_moved("hero", 385, 35))

    assert echo.hit is None
    assert len(system.events.get_events_by_type(EventType.TRAP_TRIGGERED)) == 1


def test_overlap_inside_trap(system, host):
    """Ruch w całości wewnątrz pułapki: brak przecięcia krawędzi."""
    host.update_token("hero", left=225, top=35)

    result = move(system, "hero", 260, 35)

    assert result.hit.reason == "overlap"
    assert result.hit.point == Point(260, 35)
    assert position(host, "hero") == Point(245, 35)


def test_interaction_trap_locks_victim(system, host):
    host.update_token("hero", left=245, top=35)
    system.control.toggle_trap("pit")

    result = move(system, "hero", 245, 385)

    assert result.hit.trap_id == "door"
    assert position(host, "hero") == Point(245, 245)
    assert system.state.locks.is_locked("hero")
    assert system.interaction.session("door").state.name == "TRIGGERED"
    assert "[Trigger](!trapsystem interact door trigger)" in host.messages_of("gm")[-1].content


def test_locked_token_is_moved_back(system, host):
    host.update_token("hero", left=245, top=35)
    system.control.toggle_trap("pit")
    move(system, "hero", 245, 385)

    result = move(system, "hero", 400, 400)

    assert result.hit is None
    assert position(host, "hero") == Point(245, 245)


def test_allow_movement_releases_lock(system, host):
    host.update_token("hero", left=245, top=35)
    system.control.toggle_trap("pit")
    move(system, "hero", 245, 385)

    assert system.control.allow_movement("hero")
    system.control.toggle_trap("door")
    move(system, "hero", 455, 245)

    assert not system.state.locks.is_locked("hero")
    assert position(host, "hero") == Point(455, 245)
    assert host.messages_of("gm")[-1].content.startswith("Trap 'Stuck Door' is now DISARMED")


# ═══════════════════════════════════════════════════════════════════════════
# TEST: FILTRY
# ═══════════════════════════════════════════════════════════════════════════

def test_small_move_is_ignored(system, host):
    result = move(system, "hero", 50, 35)

    assert result.hit is None
    assert host.moves == []


def test_paused_triggers(system, host):
    system.control.disable_triggers()

    assert move(system, "hero", 385, 35).hit is None
    assert host.get_token("pit").aura1_color == "#ffa500"


def test_token_outside_objects_layer(system, host):
    host.update_token("hero", layer="gmlayer")

    assert move(system, "hero", 385, 35).hit is None


def test_immune_token(system, host):
    assert system.control.toggle_immunity("hero")

    assert move(system, "hero", 385, 35).hit is None


def test_marker_alone_is_not_immunity(system, host):
    host.update_token("hero", status_markers=["blue"])

    assert move(system, "hero", 385, 35).hit is not None


def test_moving_a_trap_does_not_trigger(system, host):
    assert move(system, "door", 245, 35).hit is None


def test_disarmed_trap_is_skipped(system, host):
    system.control.toggle_trap("pit")

    assert move(system, "hero", 385, 35).hit is None


def test_interaction_without_movement_trigger_is_skipped(system, host):
    system.control.setup_interaction_trap("pit", uses=1, success_macro="/em ok", movement_trigger=False)

    assert move(system, "hero", 385, 35).hit is None


def test_first_trap_in_host_order_wins(system, host):
    """Dwie pułapki na ścieżce - wyzwala się pierwsza w kolejności hosta."""
    host.add_token(Token(id="pit2", page_id="p1", name="Second Pit", left=105, top=35))
    system.control.setup_trap("pit2", uses=1)

    result = move(system, "hero", 385, 35)

    assert result.hit.trap_id == "pit"


def test_missing_token_is_reported(system, host):
    result = asyncio.run(system.handle_token_moved("ghost", 0, 0))

    assert not result.ok
    assert host.messages_of("gm")[-1].content == "⚠️ Token 'ghost' not found"
