"""
Interaction router - akcje prowadzącego w sesjach interakcji.
"""

from fastapi import APIRouter
from typing import List, Dict, Any

from trapsystem.core.state import PendingCheck
from api.dependencies import get_system
from api.models import (
    ActionRequest,
    SelectCharacterRequest,
    CheckRequest,
    CustomCheckRequest,
    RollModeRequest,
    SetDcRequest,
    RevealDcRequest,
    RollResultRequest,
    MismatchRequest,
)


router = APIRouter(prefix="/interaction")


def _check_dict(check: PendingCheck) -> Dict[str, Any]:
    return {
        "trap_id": check.trap_id,
        "skill": check.skill,
        "dc": check.dc,
        "mode": check.advantage.value if check.advantage is not None else None,
        "first_roll": check.first_roll,
        "mismatched_roll": check.mismatched_roll,
        "mismatched_skill": check.mismatched_skill,
        "character_id": check.character_id,
        "reveal_dc": check.reveal_dc,
    }


# ═══════════════════════════════════════════════════════════════════════════
# SESJE
# ═══════════════════════════════════════════════════════════════════════════

@router.get("/sessions")
async def list_sessions() -> List[Dict[str, Any]]:
    return [s.to_dict() for s in get_system().interaction.sessions.values()]


@router.get("/{trap_id}")
async def get_session(trap_id: str) -> Dict[str, Any]:
    return get_system().interaction.session(trap_id).to_dict()


@router.post("/{trap_id}/interact")
async def interact(trap_id: str, request: ActionRequest) -> Dict[str, Any]:
    """Akcja z menu wyzwolenia: trigger / explain."""
    return get_system().interaction.interact(trap_id, request.action).to_dict()


@router.post("/{trap_id}/character")
async def select_character(trap_id: str, request: SelectCharacterRequest) -> Dict[str, Any]:
    return get_system().interaction.select_character(trap_id, request.character_id).to_dict()


@router.post("/{trap_id}/allow")
async def allow(trap_id: str) -> Dict[str, Any]:
    return get_system().interaction.allow(trap_id).to_dict()


@router.post("/{trap_id}/fail")
async def fail(trap_id: str) -> Dict[str, Any]:
    return get_system().interaction.fail(trap_id).to_dict()


@router.post("/{trap_id}/options/{index}")
async def run_option(trap_id: str, index: int) -> Dict[str, Any]:
    return {"executed": get_system().interaction.run_option(trap_id, index)}


# ═══════════════════════════════════════════════════════════════════════════
# TESTY I RZUTY
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/{trap_id}/check")
async def start_check(trap_id: str, request: CheckRequest) -> Dict[str, Any]:
    check = get_system().interaction.start_check(trap_id, request.index, request.moderator_id)
    return _check_dict(check)


@router.post("/{trap_id}/custom-check")
async def custom_check(trap_id: str, request: CustomCheckRequest) -> Dict[str, Any]:
    check = get_system().interaction.custom_check(trap_id, request.skill, request.dc, request.moderator_id)
    return _check_dict(check)


@router.post("/checks/mode")
async def choose_roll_mode(request: RollModeRequest) -> Dict[str, Any]:
    return _check_dict(get_system().interaction.choose_roll_mode(request.moderator_id, request.mode))


@router.post("/checks/dc")
async def set_dc(request: SetDcRequest) -> Dict[str, Any]:
    return _check_dict(get_system().interaction.set_dc(request.moderator_id, request.dc))


@router.post("/checks/reveal")
async def reveal_dc(request: RevealDcRequest) -> Dict[str, Any]:
    return _check_dict(get_system().interaction.reveal_dc(request.moderator_id, request.reveal))


@router.post("/checks/roll")
async def roll_result(request: RollResultRequest) -> Dict[str, Any]:
    """Wynik rzutu z zewnątrz; brak oczekującego testu -> matched=False."""
    outcome = get_system().interaction.handle_roll_result(
        request.total,
        moderator_id=request.moderator_id,
        character_id=request.character_id,
        rolls=request.rolls,
        skill=request.skill,
    )
    if outcome is None:
        return {"matched": False}
    return {
        "matched": True,
        "waiting": outcome.waiting,
        "mismatch": outcome.mismatch,
        "total": outcome.total,
        "success": outcome.success,
        "check": _check_dict(outcome.check),
    }


@router.post("/{trap_id}/mismatch")
async def resolve_mismatch(trap_id: str, request: MismatchRequest) -> Dict[str, Any]:
    """Rzut innego testu niż zlecony: accept rozstrzyga test, reject prosi o ponowny rzut."""
    outcome = get_system().interaction.resolve_mismatch(trap_id, request.accept)
    if outcome is None:
        return {"accepted": False}
    return {"accepted": True, "total": outcome.total, "success": outcome.success}
