"""
Host module - granica między systemem pułapek a wirtualnym stołem.

Zawiera:
- Host: Wymagany interfejs możliwości stołu
- InMemoryHost: Implementacja w pamięci (testy, demo, API)
- Token, Page, Door, Character, Player, ChatMessage: Obiekty hosta
- ManualScheduler, AsyncioScheduler: Planiści odroczonych wywołań
"""

from .objects import Token, Page, Door, Character, Player, ChatMessage
from .scheduler import Scheduler, ScheduledHandle, ManualScheduler, AsyncioScheduler
from .base import Host
from .memory import InMemoryHost

__all__ = [
    "Token", "Page", "Door", "Character", "Player", "ChatMessage",
    "Scheduler", "ScheduledHandle", "ManualScheduler", "AsyncioScheduler",
    "Host", "InMemoryHost",
]
