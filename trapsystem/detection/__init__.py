"""
Detection module - pasywne wykrywanie pułapek.

Zawiera:
- PassiveDetectionEngine: Sprawdzanie par (obserwator, pułapka)
- PerceptionResolver: Percepcja z arkusza / atrybutu / paska + szczęście
- NoticeDispatcher: Powiadomienia gracza i prowadzącego z debounce
- AuraManager: Aury zasięgu, ukrywanie z timerem
- DetectionSettings: set_passive_property, reset_detection
"""

from .auras import AuraManager, AuraState, BLANK_AURA
from .notices import NoticeDispatcher, NoticeOutcome, render_placeholders
from .passive import PassiveDetectionEngine
from .perception import PerceptionResolver, PerceptionResult, parse_score
from .properties import DetectionSettings, PASSIVE_PROPERTIES

__all__ = [
    "AuraManager", "AuraState", "BLANK_AURA",
    "NoticeDispatcher", "NoticeOutcome", "render_placeholders",
    "PassiveDetectionEngine",
    "PerceptionResolver", "PerceptionResult", "parse_score",
    "DetectionSettings", "PASSIVE_PROPERTIES",
]
