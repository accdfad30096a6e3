"""
Events module - dziennik zdarzeń systemu pułapek.

Zawiera:
- EventType: Typy zdarzeń
- TrapEvent: Pojedyncze zdarzenie
- EventLogger: Dziennik z eksportem do JSON
"""

from .event_logger import EventType, TrapEvent, EventLogger

__all__ = ["EventType", "TrapEvent", "EventLogger"]
