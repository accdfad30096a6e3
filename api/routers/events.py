"""
Events router - dziennik zdarzeń systemu.
"""

from fastapi import APIRouter, HTTPException
from typing import Dict, Any, Optional

from trapsystem.events import EventType
from api.dependencies import get_system


router = APIRouter()


@router.get("/events")
async def get_events(
    event_type: Optional[str] = None,
    trap_id: Optional[str] = None,
    token_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Zwraca dziennik, opcjonalnie filtrowany.

    Args:
        event_type: Nazwa typu (np. "TRAP_TRIGGERED")
        trap_id: Tylko zdarzenia pułapki
        token_id: Tylko zdarzenia tokena
    """
    events = get_system().events
    selected = events.events
    if event_type is not None:
        try:
            kind = EventType[event_type.upper()]
        except KeyError:
            raise HTTPException(status_code=400, detail=f"Unknown event type: {event_type}")
        selected = [e for e in selected if e.event_type == kind]
    if trap_id is not None:
        selected = [e for e in selected if e.trap_id == trap_id]
    if token_id is not None:
        selected = [e for e in selected if e.token_id == token_id]
    return {"metadata": events.metadata, "events": [e.to_dict() for e in selected]}
