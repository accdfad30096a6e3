"""
Notes module - konfiguracja pułapki zapisana w notatce tokena.

Zawiera:
- TrapConfig, TriggerConfig, DetectionConfig: Model konfiguracji
- codec: decode/encode notatek, tagi (jedyny parser tekstu)
- TrapStore: Odczyt/zapis konfiguracji przez hosta
- sync_trap_visuals: Pasek użyć i kolor stanu pułapki
"""

from .models import (
    TrapConfig,
    TriggerConfig,
    DetectionConfig,
    TrapType,
    Placement,
    PlacementMode,
    SkillCheck,
)
from .codec import decode, encode, require_config, has_tag, add_tag, remove_tag
from .store import TrapStore
from .sync import sync_trap_visuals, trap_state_color

__all__ = [
    "TrapConfig", "TriggerConfig", "DetectionConfig", "TrapType",
    "Placement", "PlacementMode", "SkillCheck",
    "decode", "encode", "require_config", "has_tag", "add_tag", "remove_tag",
    "TrapStore", "sync_trap_visuals", "trap_state_color",
]
