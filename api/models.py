"""
Modele request/response API i serializacja obiektów systemu.
"""

from dataclasses import asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from trapsystem.notes.models import TrapConfig


# ═══════════════════════════════════════════════════════════════════════════
# PLANSZA
# ═══════════════════════════════════════════════════════════════════════════

class PageModel(BaseModel):
    """Strona z ustawieniami siatki."""
    id: str
    name: str = ""
    grid_size: float = 70.0
    snapping_increment: float = 1.0
    scale_number: float = 5.0
    grid_type: str = "square"


class TokenModel(BaseModel):
    """Token na stronie."""
    id: str
    page_id: str
    name: str = ""
    left: float = 0.0
    top: float = 0.0
    width: float = 70.0
    height: float = 70.0
    rotation: float = 0.0
    layer: str = "objects"
    notes: str = ""
    represents: Optional[str] = None
    status_markers: List[str] = []
    controlled_by: List[str] = []
    bar1_value: Optional[Any] = None
    bar1_max: Optional[Any] = None
    bar2_value: Optional[Any] = None
    bar2_max: Optional[Any] = None
    bar3_value: Optional[Any] = None
    bar3_max: Optional[Any] = None


class CharacterModel(BaseModel):
    """Postać z atrybutami (sync) i polami arkusza (async)."""
    id: str
    name: str = ""
    controlled_by: List[str] = []
    attributes: Dict[str, Any] = {}
    sheet_items: Dict[str, Any] = {}


class PlayerModel(BaseModel):
    id: str
    name: str = ""
    is_gm: bool = False


class MacroModel(BaseModel):
    name: str
    action: str


class DoorModel(BaseModel):
    """Drzwi albo okno (obiekt stołu)."""
    id: str
    page_id: str
    kind: str = "door"
    is_open: bool = False
    is_locked: bool = False
    is_secret: bool = False


class MoveRequest(BaseModel):
    """Nowa pozycja tokena (środek w pikselach)."""
    left: float
    top: float


class DoorRequest(BaseModel):
    page_id: str
    was_open: bool = False
    is_open: bool = True


class AdvanceRequest(BaseModel):
    seconds: float = Field(ge=0)


# ═══════════════════════════════════════════════════════════════════════════
# PUŁAPKI
# ═══════════════════════════════════════════════════════════════════════════

class PlacementModel(BaseModel):
    """intersection | center | cell (z x, y)."""
    mode: str = "intersection"
    x: Optional[int] = None
    y: Optional[int] = None


class SkillCheckModel(BaseModel):
    skill: str
    dc: int


class SetupTrapRequest(BaseModel):
    uses: int
    primary_macro: Optional[str] = None
    options: List[str] = []
    position: Optional[PlacementModel] = None


class SetupInteractionRequest(BaseModel):
    uses: int
    primary_macro: Optional[str] = None
    success_macro: Optional[str] = None
    failure_macro: Optional[str] = None
    checks: List[SkillCheckModel] = []
    movement_trigger: bool = True
    auto_trigger: bool = False
    position: Optional[PlacementModel] = None


class UsesRequest(BaseModel):
    current: int
    maximum: Optional[int] = None
    armed: Optional[bool] = None


# ═══════════════════════════════════════════════════════════════════════════
# WYKRYWANIE I INTERAKCJA
# ═══════════════════════════════════════════════════════════════════════════

class PassivePropertyRequest(BaseModel):
    property: str
    value: Any = ""


class HideAurasRequest(BaseModel):
    minutes: float = Field(default=0, ge=0)


class ActionRequest(BaseModel):
    action: str


class SelectCharacterRequest(BaseModel):
    character_id: str


class CheckRequest(BaseModel):
    index: int
    moderator_id: str


class CustomCheckRequest(BaseModel):
    skill: str
    dc: int
    moderator_id: str


class RollModeRequest(BaseModel):
    moderator_id: str
    mode: str


class SetDcRequest(BaseModel):
    moderator_id: str
    dc: int


class RevealDcRequest(BaseModel):
    moderator_id: str
    reveal: bool = True


class RollResultRequest(BaseModel):
    total: int
    moderator_id: Optional[str] = None
    character_id: Optional[str] = None
    rolls: Optional[List[int]] = None
    skill: Optional[str] = None


class MismatchRequest(BaseModel):
    accept: bool


# ═══════════════════════════════════════════════════════════════════════════
# SERIALIZACJA
# ═══════════════════════════════════════════════════════════════════════════

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def config_to_dict(config: Optional[TrapConfig]) -> Optional[Dict[str, Any]]:
    """TrapConfig -> słownik JSON (enumy jako wartości)."""
    if config is None:
        return None
    return _plain(asdict(config))
