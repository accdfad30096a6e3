"""
Trap System - pułapki dla wirtualnego stołu.

Zawiera:
- TrapSystem: Fasada składająca komponenty, zdarzenia hosta
- MoveResult: Wynik obsługi ruchu tokena
- errors: Hierarchia wyjątków TrapSystemError
"""

from .errors import (
    TrapSystemError,
    ConfigurationInvalid,
    MissingReference,
    PerceptionUnresolved,
    InvalidTransition,
    InvalidValue,
    SchedulerUnavailable,
)
from .system import TrapSystem, MoveResult

__all__ = [
    "TrapSystem", "MoveResult",
    "TrapSystemError", "ConfigurationInvalid", "MissingReference",
    "PerceptionUnresolved", "InvalidTransition", "InvalidValue", "SchedulerUnavailable",
]
