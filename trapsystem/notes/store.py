"""
Repozytorium pułapek - odczyt i zapis konfiguracji przez hosta.

Jedyne miejsce, w którym komponenty dotykają notatek tokenów.
Każdy zapis przechodzi przez kodek i od razu synchronizuje wygląd
tokena (pasek użyć, kolor stanu).
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..errors import MissingReference, ConfigurationInvalid
from . import codec
from .models import TrapConfig
from .sync import sync_trap_visuals

if TYPE_CHECKING:
    from ..core.config_loader import TrapSystemConfig
    from ..core.state import GlobalFlags
    from ..host.base import Host
    from ..host.objects import Token


class TrapStore:
    """
    Dostęp do konfiguracji pułapek zapisanych na tokenach.

    Attributes:
        host (Host): Źródło tokenów
        flags (GlobalFlags): Flagi globalne (pauza triggerów)
        config (TrapSystemConfig): Kolory aur

    Example:
        >>> store = TrapStore(host, flags, config)
        >>> token, trap = store.get_trap("pit")
        >>> trap.trigger.current_uses
        1
    """

    def __init__(self, host: "Host", flags: "GlobalFlags", config: "TrapSystemConfig"):
        self.host = host
        self.flags = flags
        self.config = config

    # ─────────────────────────────────────────────────────────────────────────
    # ODCZYT
    # ─────────────────────────────────────────────────────────────────────────

    def get_token(self, token_id: str) -> "Token":
        """
        Raises:
            MissingReference: Jeśli token nie istnieje
        """
        token = self.host.get_token(token_id)
        if token is None:
            raise MissingReference(f"Token '{token_id}' not found")
        return token

    def read(self, token: "Token") -> Optional[TrapConfig]:
        """Dekoduje notatkę tokena (None gdy brak bloków)."""
        return codec.decode(token.notes)

    def is_trap(self, token: "Token") -> bool:
        config = self.read(token)
        return config is not None and config.is_trap

    def get_trap(self, trap_id: str) -> Tuple["Token", TrapConfig]:
        """
        Zwraca token pułapki i jego konfigurację.

        Raises:
            MissingReference: Jeśli token nie istnieje
            ConfigurationInvalid: Jeśli token nie jest pułapką
        """
        token = self.get_token(trap_id)
        return token, codec.require_config(token.notes, token.name or token.id)

    def traps_on_page(self, page_id: str) -> List[Tuple["Token", TrapConfig]]:
        """Pułapki strony w kolejności hosta."""
        result = []
        for token in self.host.list_tokens(page_id):
            config = self.read(token)
            if config is not None and config.is_trap:
                result.append((token, config))
        return result

    def detectable_on_page(self, page_id: str) -> List[Tuple["Token", TrapConfig]]:
        """Tokeny strony z blokiem wykrywania."""
        result = []
        for token in self.host.list_tokens(page_id):
            config = self.read(token)
            if config is not None and config.detection is not None:
                result.append((token, config))
        return result

    def all_traps(self) -> List[Tuple["Token", TrapConfig]]:
        result = []
        for page in self.host.list_pages():
            result.extend(self.traps_on_page(page.id))
        return result

    def all_detectable(self) -> List[Tuple["Token", TrapConfig]]:
        result = []
        for page in self.host.list_pages():
            result.extend(self.detectable_on_page(page.id))
        return result

    # ─────────────────────────────────────────────────────────────────────────
    # ZAPIS
    # ─────────────────────────────────────────────────────────────────────────

    def save(self, token: "Token", config: TrapConfig) -> None:
        """
        Zapisuje konfigurację (z zachowaniem tagów) i synchronizuje wygląd.
        """
        if config.trigger is None and config.detection is None:
            raise ConfigurationInvalid(f"Refusing to save an empty configuration on '{token.id}'")
        self.host.update_token(token.id, notes=codec.rewrite(token.notes, config))
        if config.trigger is not None:
            self.sync_visuals(token, config)

    def sync_visuals(self, token: "Token", config: TrapConfig) -> None:
        if config.trigger is not None:
            sync_trap_visuals(self.host, token, config.trigger, self.flags.triggers_enabled, self.config)

    def sync_all_visuals(self) -> int:
        """Odświeża wygląd wszystkich pułapek. Zwraca ich liczbę."""
        traps = self.all_traps()
        for token, config in traps:
            self.sync_visuals(token, config)
        return len(traps)

    # ─────────────────────────────────────────────────────────────────────────
    # TAGI
    # ─────────────────────────────────────────────────────────────────────────

    def has_tag(self, token: "Token", tag: str) -> bool:
        return codec.has_tag(token.notes, tag)

    def set_tag(self, token: "Token", tag: str, present: bool) -> None:
        notes = codec.add_tag(token.notes, tag) if present else codec.remove_tag(token.notes, tag)
        self.host.update_token(token.id, notes=notes)
