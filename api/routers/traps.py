"""
Traps router - konfiguracja pułapek, użycia, uzbrojenie, blokady.
"""

from fastapi import APIRouter
from typing import List, Dict, Any, Optional

from trapsystem.errors import InvalidValue
from trapsystem.notes.models import Placement, PlacementMode, SkillCheck
from api.dependencies import get_system
from api.models import (
    PlacementModel,
    SetupTrapRequest,
    SetupInteractionRequest,
    UsesRequest,
    config_to_dict,
)


router = APIRouter(prefix="/traps")


def _placement(model: Optional[PlacementModel]) -> Optional[Placement]:
    if model is None:
        return None
    try:
        mode = PlacementMode(model.mode)
    except ValueError:
        raise InvalidValue(f"Unknown placement mode '{model.mode}'")
    if mode == PlacementMode.CELL:
        if model.x is None or model.y is None:
            raise InvalidValue("Cell placement needs x and y")
        return Placement.at_cell(model.x, model.y)
    return Placement(mode)


def _trap_response(trap_id: str) -> Dict[str, Any]:
    system = get_system()
    token = system.store.get_token(trap_id)
    return {"token": token.to_dict(), "config": config_to_dict(system.store.read(token))}


# ═══════════════════════════════════════════════════════════════════════════
# KONFIGURACJA
# ═══════════════════════════════════════════════════════════════════════════

@router.get("")
async def list_traps() -> List[Dict[str, Any]]:
    """Wszystkie pułapki na wszystkich stronach."""
    return [
        {"id": token.id, "name": token.name, "page_id": token.page_id, "config": config_to_dict(config)}
        for token, config in get_system().store.all_traps()
    ]


@router.get("/{trap_id}")
async def get_trap(trap_id: str) -> Dict[str, Any]:
    get_system().store.get_trap(trap_id)
    return _trap_response(trap_id)


@router.post("/{trap_id}/setup")
async def setup_trap(trap_id: str, request: SetupTrapRequest) -> Dict[str, Any]:
    get_system().control.setup_trap(
        trap_id,
        request.uses,
        primary_macro=request.primary_macro,
        options=request.options,
        position=_placement(request.position),
    )
    return _trap_response(trap_id)


@router.post("/{trap_id}/setup-interaction")
async def setup_interaction_trap(trap_id: str, request: SetupInteractionRequest) -> Dict[str, Any]:
    get_system().control.setup_interaction_trap(
        trap_id,
        request.uses,
        primary_macro=request.primary_macro,
        success_macro=request.success_macro,
        failure_macro=request.failure_macro,
        checks=[SkillCheck(c.skill, c.dc) for c in request.checks],
        movement_trigger=request.movement_trigger,
        auto_trigger=request.auto_trigger,
        position=_placement(request.position),
    )
    return _trap_response(trap_id)


# ═══════════════════════════════════════════════════════════════════════════
# STEROWANIE
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/{trap_id}/toggle")
async def toggle_trap(trap_id: str) -> Dict[str, Any]:
    armed = get_system().control.toggle_trap(trap_id)
    return {"armed": armed, **_trap_response(trap_id)}


@router.post("/{trap_id}/rearm")
async def rearm_trap(trap_id: str) -> Dict[str, Any]:
    get_system().control.rearm(trap_id)
    return _trap_response(trap_id)


@router.post("/{trap_id}/uses")
async def update_uses(trap_id: str, request: UsesRequest) -> Dict[str, Any]:
    get_system().control.update_uses(trap_id, request.current, request.maximum, request.armed)
    return _trap_response(trap_id)


@router.post("/{trap_id}/trigger")
async def manual_trigger(trap_id: str) -> Dict[str, Any]:
    """Wyzwolenie przez prowadzącego (bez ofiary)."""
    session = get_system().interaction.manual_trigger(trap_id)
    return session.to_dict()


@router.get("/{trap_id}/status")
async def trap_status(trap_id: str) -> Dict[str, Any]:
    status = get_system().control.trap_status(trap_id)
    return {"report": status.render(), "locked_tokens": status.locked_tokens, "armed": status.armed}


@router.post("/triggers/enable")
async def enable_triggers() -> Dict[str, Any]:
    return {"enabled": True, "synced": get_system().control.enable_triggers()}


@router.post("/triggers/disable")
async def disable_triggers() -> Dict[str, Any]:
    return {"enabled": False, "synced": get_system().control.disable_triggers()}


# ═══════════════════════════════════════════════════════════════════════════
# TOKENY
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/tokens/{token_id}/allow-movement")
async def allow_movement(token_id: str) -> Dict[str, Any]:
    return {"released": get_system().control.allow_movement(token_id)}


@router.post("/tokens/allow-all")
async def allow_all_movement() -> Dict[str, Any]:
    return {"released": get_system().control.allow_all_movement()}


@router.post("/tokens/{token_id}/immunity")
async def toggle_immunity(token_id: str) -> Dict[str, Any]:
    return {"immune": get_system().control.toggle_immunity(token_id)}
