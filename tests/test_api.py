"""
Testy dla API (FastAPI TestClient).

Testuje:
- Budowę stołu i ruch tokenów przez endpointy
- Konfigurację i sterowanie pułapkami
- Sesję interakcji z testem umiejętności
- Wykrywanie pasywne, aury, dziennik zdarzeń
- Eksport makr i reset stołu
- Mapowanie błędów domenowych na 404 / 400
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from api.dependencies import get_host, reset_system
from api.main import app


client = TestClient(app)


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def fresh_board():
    """Stół: GM, Alice, Valeria (PP 15), bohater, dół i drzwi."""
    reset_system(seed=1)
    client.post("/api/board/pages", json={"id": "p1", "name": "Dungeon"})
    client.post("/api/board/players", json={"id": "gm", "name": "GM", "is_gm": True})
    client.post("/api/board/players", json={"id": "alice", "name": "Alice"})
    client.post("/api/board/characters", json={
        "id": "c_hero", "name": "Valeria", "controlled_by": ["alice"],
        "attributes": {"passive_wisdom": 15},
    })
    client.post("/api/board/tokens", json={
        "id": "hero", "page_id": "p1", "name": "Hero", "left": 35, "top": 35, "represents": "c_hero",
    })
    client.post("/api/board/tokens", json={
        "id": "pit", "page_id": "p1", "name": "Spiked Pit", "left": 245, "top": 35, "layer": "gmlayer",
    })
    client.post("/api/board/tokens", json={
        "id": "door", "page_id": "p1", "name": "Stuck Door", "left": 245, "top": 245, "layer": "gmlayer",
    })
    yield


def setup_pit(uses=1):
    return client.post("/api/traps/pit/setup", json={"uses": uses, "primary_macro": "/em spikes"})


def setup_door():
    return client.post("/api/traps/door/setup-interaction", json={
        "uses": 2,
        "primary_macro": "/em click",
        "success_macro": "/em opens",
        "failure_macro": "/em blade",
        "checks": [{"skill": "Athletics", "dc": 12}],
    })


def move(token_id, left, top):
    return client.post(f"/api/board/tokens/{token_id}/move", json={"left": left, "top": top})


def walk_into_door():
    client.post("/api/traps/pit/setup", json={"uses": 0})
    move("hero", 245, 105)
    return move("hero", 245, 385)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: PLANSZA I PUŁAPKI
# ═══════════════════════════════════════════════════════════════════════════

def test_health():
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_setup_trap():
    response = setup_pit(uses=3)

    assert response.status_code == 200
    body = response.json()
    assert body["config"]["trigger"]["current_uses"] == 3
    assert body["config"]["trigger"]["trap_type"] == "standard"
    assert body["token"]["bar1_value"] == 3
    assert body["token"]["notes"].startswith("%7B!traptrigger")

    traps = client.get("/api/traps").json()
    assert [t["id"] for t in traps] == ["pit"]


def test_move_triggers_trap_and_snaps():
    setup_pit()

    body = move("hero", 385, 35).json()

    assert body["triggered"]["trap_id"] == "pit"
    assert body["triggered"]["final"] == [245, 35]
    assert body["token"]["left"] == 245

    assert client.post("/api/board/advance", json={"seconds": 0.5}).json()["executed"] == 1
    public = client.get("/api/board/messages", params={"kind": "public"}).json()
    assert [m["content"] for m in public] == ["/em spikes"]


def test_toggle_uses_and_status():
    setup_pit(uses=2)

    assert client.post("/api/traps/pit/toggle").json()["armed"] is False
    client.post("/api/traps/pit/rearm")
    body = client.post("/api/traps/pit/uses", json={"current": 7, "maximum": 4}).json()
    assert body["config"]["trigger"]["current_uses"] == 4

    status = client.get("/api/traps/pit/status").json()
    assert status["armed"] is True
    assert "Uses: 4/4" in status["report"]


def test_pause_triggers():
    setup_pit()

    assert client.post("/api/traps/triggers/disable").json()["synced"] == 1
    assert move("hero", 385, 35).json()["triggered"] is None
    assert client.get("/api/board/state").json()["triggers_enabled"] is False

    client.post("/api/traps/triggers/enable")
    assert client.get("/api/board/state").json()["triggers_enabled"] is True


def test_immunity_endpoint():
    setup_pit()

    assert client.post("/api/traps/tokens/hero/immunity").json()["immune"] is True
    assert move("hero", 385, 35).json()["triggered"] is None


def test_manual_trigger_standard_trap():
    setup_pit(uses=2)

    session = client.post("/api/traps/pit/trigger").json()

    assert session["state"] == "MOVEMENT_RELEASED"
    assert session["outcome"] == "triggered"
    assert client.get("/api/traps/pit").json()["config"]["trigger"]["current_uses"] == 1


# ═══════════════════════════════════════════════════════════════════════════
# TEST: INTERAKCJA
# ═══════════════════════════════════════════════════════════════════════════

def test_interaction_flow_with_check():
    setup_door()

    assert walk_into_door().json()["triggered"]["trap_id"] == "door"
    state = client.get("/api/board/state").json()
    assert state["locks"][0]["token_id"] == "hero"

    session = client.post("/api/interaction/door/interact", json={"action": "trigger"}).json()
    assert session["state"] == "GM_DECISION"
    assert session["character_name"] == "Valeria"

    check = client.post("/api/interaction/door/check", json={"index": 0, "moderator_id": "gm"}).json()
    assert (check["skill"], check["dc"]) == ("Athletics", 12)

    client.post("/api/interaction/checks/mode", json={"moderator_id": "gm", "mode": "advantage"})
    first = client.post("/api/interaction/checks/roll", json={"total": 5, "character_id": "c_hero"}).json()
    assert first["waiting"] is True
    assert first["check"]["first_roll"] == 5

    second = client.post("/api/interaction/checks/roll", json={"total": 13, "character_id": "c_hero"}).json()
    assert (second["total"], second["success"]) == (13, True)

    session = client.get("/api/interaction/door").json()
    assert session["state"] == "MOVEMENT_RELEASED"
    assert session["outcome"] == "success"
    assert client.get("/api/board/state").json()["locks"] == []
    assert client.get("/api/traps/door").json()["config"]["trigger"]["current_uses"] == 1


def test_explain_then_fail():
    setup_door()
    walk_into_door()

    client.post("/api/interaction/door/interact", json={"action": "explain"})
    session = client.post("/api/interaction/door/fail").json()

    assert session["outcome"] == "failure"
    assert "EXPLAIN_ATTEMPT" in session["history"]
    public = client.get("/api/board/messages", params={"kind": "public"}).json()
    assert public[-1]["content"] == "/em blade"


def test_other_skill_roll_waits_for_gm():
    setup_door()
    walk_into_door()
    client.post("/api/interaction/door/interact", json={"action": "trigger"})
    client.post("/api/interaction/door/check", json={"index": 0, "moderator_id": "gm"})

    held = client.post(
        "/api/interaction/checks/roll",
        json={"total": 16, "moderator_id": "gm", "skill": "Acrobatics"},
    ).json()
    assert (held["waiting"], held["mismatch"]) == (True, True)
    assert held["check"]["mismatched_roll"] == 16

    accepted = client.post("/api/interaction/door/mismatch", json={"accept": True}).json()
    assert accepted == {"accepted": True, "total": 16, "success": True}
    assert client.get("/api/interaction/door").json()["outcome"] == "success"

    again = client.post("/api/interaction/door/mismatch", json={"accept": False})
    assert again.status_code == 404


def test_roll_without_check():
    body = client.post("/api/interaction/checks/roll", json={"total": 18, "moderator_id": "gm"}).json()

    assert body == {"matched": False}


def test_sessions_listing():
    setup_door()
    client.post("/api/traps/door/trigger")

    sessions = client.get("/api/interaction/sessions").json()

    assert [s["trap_id"] for s in sessions] == ["door"]
    assert sessions[0]["state"] == "TRIGGERED"


# ═══════════════════════════════════════════════════════════════════════════
# TEST: WYKRYWANIE I ZDARZENIA
# ═══════════════════════════════════════════════════════════════════════════

def test_passive_detection_via_page_check():
    setup_pit()
    client.post("/api/detection/pit/property", json={"property": "dc", "value": "12"})
    client.post("/api/detection/pit/property", json={"property": "range", "value": "30"})

    body = client.post("/api/detection/pages/p1/check").json()

    assert body["detections"] == [{"trap_id": "pit", "observer_id": "c_hero", "suppressed": False}]
    whispers = client.get("/api/board/messages", params={"kind": "whisper"}).json()
    assert whispers[0]["target"] == "alice"

    assert client.post("/api/detection/reset", params={"trap_id": "pit"}).json() == {"reset": 1}


def test_door_opening_runs_checks():
    setup_pit()
    client.post("/api/detection/pit/property", json={"property": "dc", "value": "10"})

    body = client.post("/api/board/doors", json={"page_id": "p1", "was_open": False, "is_open": True}).json()

    assert body == {"detections": 1, "traps": ["pit"]}


def test_auras_hide_with_timer():
    setup_pit()
    client.post("/api/detection/pit/property", json={"property": "range", "value": "30"})
    client.post("/api/detection/pit/property", json={"property": "showaura", "value": "true"})

    client.post("/api/detection/auras/hide", json={"minutes": 1})
    assert client.get("/api/board/state").json()["auras_hidden"] is True
    assert client.get("/api/board/tokens/pit").json()["aura2_color"] == "transparent"

    client.post("/api/board/advance", json={"seconds": 60})
    assert client.get("/api/board/state").json()["auras_hidden"] is False
    pit = client.get("/api/board/tokens/pit").json()
    assert (pit["aura2_color"], pit["aura2_radius"]) == ("#808080", 27.5)


def test_events_filter():
    setup_pit()
    move("hero", 385, 35)

    body = client.get("/api/events", params={"event_type": "trap_triggered"}).json()

    assert len(body["events"]) == 1
    assert body["events"][0]["trap_id"] == "pit"
    assert client.get("/api/events", params={"event_type": "nope"}).status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# TEST: EKSPORT MAKR I RESET
# ═══════════════════════════════════════════════════════════════════════════

def test_export_and_reset_board():
    client.post("/api/board/door-objects", json={"id": "gate", "page_id": "p1"})
    client.post("/api/board/macros", json={
        "name": "Collapse", "action": "!token-mod --ids hero --set layer|map\n!door gate lock",
    })

    exported = client.post("/api/macros/export").json()
    assert exported == {"macros": 1, "tokens": 1, "doors": 1}
    assert client.get("/api/macros/export").json() == {"macros": ["Collapse"], "tokens": ["hero"], "doors": ["gate"]}

    move("hero", 105, 105)
    get_host().update_door("gate", is_locked=True)

    assert client.post("/api/macros/reset/states").json() == {"states": 2}
    hero = client.get("/api/board/tokens/hero").json()
    assert (hero["left"], hero["top"]) == (35, 35)
    assert client.get("/api/board/door-objects/gate").json()["is_locked"] is False


def test_macro_reset_and_full_reset():
    client.post("/api/board/macros", json={"name": "Alarm", "action": "/em Bells ring!"})
    client.post("/api/macros/export")
    get_host().set_macro("Alarm", "/em silence")

    assert client.post("/api/macros/reset/macros").json() == {"macros": 1}
    assert client.get("/api/board/macros").json() == {"Alarm": "/em Bells ring!"}

    assert client.post("/api/macros/reset").json() == {"states": 0, "macros": 0}
    assert client.get("/api/macros/export").json()["macros"] == []


# ═══════════════════════════════════════════════════════════════════════════
# TEST: BŁĘDY
# ═══════════════════════════════════════════════════════════════════════════

def test_missing_trap_is_404():
    response = client.get("/api/traps/ghost")

    assert response.status_code == 404
    assert response.json()["error"] == "MissingReference"


def test_token_without_config_is_400():
    response = client.post("/api/traps/hero/toggle")

    assert response.status_code == 400
    assert response.json()["error"] == "ConfigurationInvalid"


@pytest.mark.parametrize("request_body", [
    {"uses": -2},
    {"uses": 1, "position": {"mode": "sideways"}},
    {"uses": 1, "position": {"mode": "cell", "x": 1}},
])
def test_invalid_setup_is_400(request_body):
    response = client.post("/api/traps/pit/setup", json=request_body)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidValue"


def test_wrong_interaction_state_is_400():
    setup_door()
    client.post("/api/traps/door/trigger")

    response = client.post("/api/interaction/door/allow")

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidTransition"


def test_request_validation():
    assert client.post("/api/board/advance", json={"seconds": -1}).status_code == 422
