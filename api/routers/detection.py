"""
Detection router - ustawienia wykrywania pasywnego, reset, aury.
"""

from fastapi import APIRouter
from typing import Dict, Any, Optional

from api.dependencies import get_system
from api.models import PassivePropertyRequest, HideAurasRequest, config_to_dict


router = APIRouter(prefix="/detection")


@router.post("/{trap_id}/property")
async def set_passive_property(trap_id: str, request: PassivePropertyRequest) -> Dict[str, Any]:
    """Zmienia jedną właściwość (dc, range, playermsg, ..., toggle)."""
    config = get_system().settings.set_passive_property(trap_id, request.property, request.value)
    return {"config": config_to_dict(config)}


@router.post("/reset")
async def reset_detection(trap_id: Optional[str] = None) -> Dict[str, Any]:
    """Reset wykryć jednej pułapki albo wszystkich."""
    return {"reset": get_system().settings.reset_detection(trap_id)}


@router.post("/pages/{page_id}/check")
async def run_page_checks(page_id: str) -> Dict[str, Any]:
    notices = await get_system().detection.run_page_checks(page_id)
    return {
        "detections": [
            {"trap_id": n.trap_id, "observer_id": n.observer_id, "suppressed": n.suppressed}
            for n in notices
        ]
    }


@router.post("/auras/hide")
async def hide_auras(request: HideAurasRequest) -> Dict[str, Any]:
    """Ukrywa aury (minutes=0 -> bezterminowo)."""
    return {"hidden": True, "updated": get_system().auras.hide_all(request.minutes)}


@router.post("/auras/show")
async def show_auras() -> Dict[str, Any]:
    return {"hidden": False, "updated": get_system().auras.show_all()}


@router.post("/auras/recompute")
async def recompute_auras() -> Dict[str, Any]:
    return {"updated": get_system().auras.recompute_all()}
