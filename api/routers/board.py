"""
Board router - stół w pamięci: strony, tokeny, postacie, makra, drzwi, ruch, zegar.
"""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from typing import List, Dict, Any, Optional

from trapsystem.host import Token, Page, Door, Character, Player
from api.dependencies import get_system, get_host, reset_system
from api.models import (
    PageModel,
    TokenModel,
    CharacterModel,
    PlayerModel,
    MacroModel,
    DoorModel,
    MoveRequest,
    DoorRequest,
    AdvanceRequest,
)


router = APIRouter(prefix="/board")


# ═══════════════════════════════════════════════════════════════════════════
# OBIEKTY
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/reset")
async def reset(seed: Optional[int] = None) -> Dict[str, Any]:
    """Czyści stół i stan systemu."""
    reset_system(seed)
    return {"status": "reset", "seed": seed}


@router.post("/pages")
async def add_page(page: PageModel) -> Dict[str, Any]:
    get_host().add_page(Page(**page.model_dump()))
    return page.model_dump()


@router.post("/tokens")
async def add_token(token: TokenModel) -> Dict[str, Any]:
    system = get_system()
    added = system.host.add_token(Token(**token.model_dump()))
    config = system.store.read(added)
    if config is not None:
        system.store.sync_visuals(added, config)
        system.auras.recompute(added, config)
    return added.to_dict()


@router.get("/tokens")
async def list_tokens(page_id: str) -> List[Dict[str, Any]]:
    return [t.to_dict() for t in get_host().list_tokens(page_id)]


@router.get("/tokens/{token_id}")
async def get_token(token_id: str) -> Dict[str, Any]:
    return get_system().store.get_token(token_id).to_dict()


@router.post("/characters")
async def add_character(character: CharacterModel) -> Dict[str, Any]:
    get_host().add_character(Character(**character.model_dump()))
    return character.model_dump()


@router.post("/players")
async def add_player(player: PlayerModel) -> Dict[str, Any]:
    get_host().add_player(Player(**player.model_dump()))
    return player.model_dump()


@router.post("/macros")
async def add_macro(macro: MacroModel) -> Dict[str, Any]:
    get_host().add_macro(macro.name, macro.action)
    return macro.model_dump()


@router.get("/macros")
async def list_macros() -> Dict[str, str]:
    return get_host().list_macros()


@router.post("/door-objects")
async def add_door(door: DoorModel) -> Dict[str, Any]:
    get_host().add_door(Door(**door.model_dump()))
    return door.model_dump()


@router.get("/door-objects/{door_id}")
async def get_door(door_id: str) -> Dict[str, Any]:
    door = get_host().get_door(door_id)
    if door is None:
        raise HTTPException(status_code=404, detail=f"Door '{door_id}' not found")
    return asdict(door)


# ═══════════════════════════════════════════════════════════════════════════
# ZDARZENIA STOŁU
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/tokens/{token_id}/move")
async def move_token(token_id: str, request: MoveRequest) -> Dict[str, Any]:
    """
    Przesuwa token (jak gracz) i zgłasza ruch systemowi.

    Returns:
        Dict z wyzwoloną pułapką, wykryciami i pozycją po obsłudze
    """
    system = get_system()
    token = system.store.get_token(token_id)
    prev_left, prev_top = token.left, token.top
    system.host.update_token(token_id, left=request.left, top=request.top)

    result = await system.handle_token_moved(token_id, prev_left, prev_top)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)

    moved = system.host.get_token(token_id)
    hit = result.hit
    return {
        "token": moved.to_dict() if moved is not None else None,
        "triggered": None if hit is None else {
            "trap_id": hit.trap_id,
            "reason": hit.reason,
            "point": hit.point.to_list(),
            "initial": hit.placement.initial.to_list(),
            "final": hit.placement.final.to_list(),
        },
        "notices": [
            {"trap_id": n.trap_id, "recipients": n.recipients, "suppressed": n.suppressed}
            for n in result.notices
        ],
    }


@router.post("/doors")
async def door_changed(request: DoorRequest) -> Dict[str, Any]:
    """Zmiana stanu drzwi/okna (otwarcie = sprawdzenie całej strony)."""
    notices = await get_system().handle_door_change(request.page_id, request.was_open, request.is_open)
    return {"detections": len(notices), "traps": [n.trap_id for n in notices]}


@router.post("/advance")
async def advance(request: AdvanceRequest) -> Dict[str, Any]:
    """Przesuwa wirtualny zegar (odroczone przyciągnięcia, timer aur)."""
    executed = get_host().scheduler.advance(request.seconds)
    return {"executed": executed, "now": get_host().now()}


@router.get("/messages")
async def messages(kind: Optional[str] = None) -> List[Dict[str, Any]]:
    """Historia czatu (public / whisper / gm)."""
    host = get_host()
    selected = host.messages_of(kind) if kind else host.messages
    return [
        {"kind": m.kind, "sender": m.sender, "content": m.content, "target": m.target}
        for m in selected
    ]


@router.get("/state")
async def state() -> Dict[str, Any]:
    return get_system().snapshot()
