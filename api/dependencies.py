"""
Współdzielona instancja systemu dla API.

API działa na InMemoryHost z wirtualnym zegarem (ManualScheduler):
odroczone przyciągnięcia i timer aur wykonują się przy
POST /api/board/advance.
"""

from typing import Optional
from pathlib import Path

from trapsystem import TrapSystem
from trapsystem.core.config_loader import ConfigLoader
from trapsystem.host import InMemoryHost, ManualScheduler


DATA_PATH = Path(__file__).parent.parent / "data"
_loader = ConfigLoader(str(DATA_PATH))

_system: Optional[TrapSystem] = None


def reset_system(seed: Optional[int] = None) -> TrapSystem:
    """Tworzy świeży stół i system (np. przed każdym testem)."""
    global _system
    host = InMemoryHost(ManualScheduler())
    _system = TrapSystem(host, seed=seed, loader=_loader)
    return _system


def get_system() -> TrapSystem:
    if _system is None:
        return reset_system()
    return _system


def get_host() -> InMemoryHost:
    return get_system().host
