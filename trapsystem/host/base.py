"""
Interfejs hosta - wszystko, czego system pułapek potrzebuje od stołu.

System NIE sprawdza, czy host "przypadkiem" coś potrafi. Każda
metoda poniżej jest wymagana; host, który czegoś nie wspiera,
musi to jawnie zaimplementować (np. query_sheet_item zwracające None).

MOŻLIWOŚCI:
═══════════════════════════════════════════════════════════════════

    Tokeny       get_token, list_tokens (stabilna kolejność),
                 update_token, move_token
    Strony       get_page, list_pages
    Drzwi        get_door, update_door
    Postacie     get_character, list_characters, get_attribute,
                 query_sheet_item (asynchronicznie)
    Gracze       get_player, is_gm
    Makra        get_macro, list_macros, set_macro
    Czat         send_chat, whisper, whisper_gm
    Czas         scheduler, now
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .objects import Token, Page, Door, Character, Player
from .scheduler import Scheduler


class Host(ABC):
    """Wymagany interfejs wirtualnego stołu."""

    # ─────────────────────────────────────────────────────────────────────────
    # TOKENY
    # ─────────────────────────────────────────────────────────────────────────

    @abstractmethod
    def get_token(self, token_id: str) -> Optional[Token]:
        """Zwraca token albo None."""

    @abstractmethod
    def list_tokens(self, page_id: str) -> List[Token]:
        """Zwraca tokeny strony w stabilnej kolejności hosta."""

    @abstractmethod
    def update_token(self, token_id: str, **changes: Any) -> Token:
        """
        Zapisuje zmiany pól tokena.

        Raises:
            MissingReference: Jeśli token nie istnieje
        """

    @abstractmethod
    def move_token(self, token_id: str, left: float, top: float) -> Token:
        """
        Przesuwa token programowo.

        Host może zgłosić ten ruch z powrotem jako zdarzenie ruchu -
        dlatego system rejestruje go wcześniej jako "bezpieczny".
        """

    # ─────────────────────────────────────────────────────────────────────────
    # STRONY, DRZWI, POSTACIE, GRACZE
    # ─────────────────────────────────────────────────────────────────────────

    @abstractmethod
    def get_page(self, page_id: str) -> Optional[Page]:
        ...

    @abstractmethod
    def list_pages(self) -> List[Page]:
        ...

    @abstractmethod
    def get_door(self, door_id: str) -> Optional[Door]:
        ...

    @abstractmethod
    def update_door(self, door_id: str, **changes: Any) -> Door:
        """
        Zapisuje stan drzwi/okna (is_open, is_locked, is_secret).

        Raises:
            MissingReference: Jeśli drzwi nie istnieją
        """

    @abstractmethod
    def get_character(self, character_id: str) -> Optional[Character]:
        ...

    @abstractmethod
    def list_characters(self) -> List[Character]:
        ...

    @abstractmethod
    def get_attribute(self, character_id: str, name: str) -> Optional[Any]:
        """Synchroniczny odczyt atrybutu postaci."""

    @abstractmethod
    async def query_sheet_item(self, character_id: str, name: str) -> Optional[Any]:
        """Asynchroniczny odczyt pola arkusza postaci."""

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]:
        ...

    @abstractmethod
    def is_gm(self, player_id: str) -> bool:
        ...

    # ─────────────────────────────────────────────────────────────────────────
    # MAKRA I CZAT
    # ─────────────────────────────────────────────────────────────────────────

    @abstractmethod
    def get_macro(self, name: str) -> Optional[str]:
        """Zwraca treść zapisanego makra albo None."""

    @abstractmethod
    def list_macros(self) -> Dict[str, str]:
        """Wszystkie zapisane makra: nazwa -> treść."""

    @abstractmethod
    def set_macro(self, name: str, action: str) -> None:
        """
        Nadpisuje treść istniejącego makra.

        Raises:
            MissingReference: Jeśli makro nie istnieje
        """

    @abstractmethod
    def send_chat(self, sender: str, content: str) -> None:
        """Publiczna wiadomość (lub komenda API, jeśli zaczyna się od '!')."""

    @abstractmethod
    def whisper(self, player_id: str, content: str, sender: str = "TrapSystem") -> None:
        ...

    @abstractmethod
    def whisper_gm(self, content: str, sender: str = "TrapSystem") -> None:
        ...

    # ─────────────────────────────────────────────────────────────────────────
    # CZAS
    # ─────────────────────────────────────────────────────────────────────────

    @property
    @abstractmethod
    def scheduler(self) -> Scheduler:
        ...

    def now(self) -> float:
        """Aktualny czas (sekundy) według planisty hosta."""
        return self.scheduler.now()
