"""
Synchronizacja wyglądu tokena pułapki ze stanem konfiguracji.

    bar1        użycia (current / max)
    aura1       stan pułapki:
                  triggery wstrzymane globalnie  -> paused
                  uzbrojona, standard            -> armed
                  uzbrojona, interaction         -> armed_interaction
                  rozbrojona, standard           -> disarmed
                  rozbrojona, interaction        -> disarmed_interaction
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .models import TriggerConfig

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..host.base import Host
    from ..host.objects import Token


def trap_state_color(trigger: TriggerConfig, triggers_enabled: bool, config: "TrapSystemConfig") -> str:
    """Kolor aury1 dla stanu pułapki."""
    if not triggers_enabled:
        return config.color("paused")
    if trigger.can_trigger():
        return config.color("armed_interaction" if trigger.is_interaction else "armed")
    return config.color("disarmed_interaction" if trigger.is_interaction else "disarmed")


def sync_trap_visuals(
    host: "Host",
    token: "Token",
    trigger: TriggerConfig,
    triggers_enabled: bool,
    config: "TrapSystemConfig",
) -> None:
    """Zapisuje pasek użyć i kolor stanu na tokenie pułapki."""
    host.update_token(
        token.id,
        bar1_value=trigger.current_uses,
        bar1_max=trigger.max_uses,
        aura1_color=trap_state_color(trigger, triggers_enabled, config),
    )
