"""
Macros router - eksport makr i reset stołu do stanu z eksportu.
"""

from dataclasses import asdict

from fastapi import APIRouter
from typing import Dict, Any

from api.dependencies import get_system


router = APIRouter(prefix="/macros")


@router.post("/export")
async def export_macros() -> Dict[str, Any]:
    """Zapamiętuje makra oraz stan tokenów i drzwi, które zmieniają."""
    return asdict(get_system().exporter.export_macros())


@router.get("/export")
async def exported_state() -> Dict[str, Any]:
    exported = get_system().state.exported
    return {
        "macros": sorted(exported.macros),
        "tokens": sorted(exported.tokens),
        "doors": sorted(exported.doors),
    }


@router.post("/reset/states")
async def reset_states() -> Dict[str, Any]:
    return {"states": get_system().exporter.reset_token_states()}


@router.post("/reset/macros")
async def reset_macros() -> Dict[str, Any]:
    return {"macros": get_system().exporter.reset_macros()}


@router.post("/reset")
async def full_reset() -> Dict[str, Any]:
    """Reset stanów i makr; lista wyeksportowanych makr jest zapominana."""
    return asdict(get_system().exporter.full_reset())
