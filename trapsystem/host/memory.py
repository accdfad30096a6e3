"""
Host w pamięci - pełna implementacja interfejsu Host bez stołu.

Używany przez testy, demo (main.py) i HTTP API. Przechowuje obiekty
w słownikach (kolejność wstawiania = stabilna kolejność enumeracji)
i zapisuje każdą wysłaną wiadomość w `messages`.

Przykład:
    >>> host = InMemoryHost()
    >>> host.add_page(Page(id="p1"))
    >>> host.add_token(Token(id="hero", page_id="p1", left=35, top=35))
    >>> host.whisper_gm("hello")
    >>> host.messages[-1].kind
    'gm'
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..errors import MissingReference
from .base import Host
from .objects import Token, Page, Door, Character, Player, ChatMessage, DOOR_FIELDS, TOKEN_FIELDS
from .scheduler import Scheduler, ManualScheduler


class InMemoryHost(Host):
    """
    Host przechowujący stan w pamięci.

    Attributes:
        tokens (Dict[str, Token]): Tokeny wg ID
        pages (Dict[str, Page]): Strony wg ID
        doors (Dict[str, Door]): Drzwi i okna wg ID
        characters (Dict[str, Character]): Postacie wg ID
        players (Dict[str, Player]): Gracze wg ID
        macros (Dict[str, str]): Zapisane makra wg nazwy
        messages (List[ChatMessage]): Historia czatu
        moves (List[tuple]): Historia programowych ruchów (id, left, top)
        chat_error (Optional[Exception]): Jeśli ustawione, send_chat
            rzuca ten wyjątek (symulacja awarii hosta)
    """

    def __init__(self, scheduler: Optional[Scheduler] = None):
        self._scheduler = scheduler or ManualScheduler()
        self.tokens: Dict[str, Token] = {}
        self.pages: Dict[str, Page] = {}
        self.doors: Dict[str, Door] = {}
        self.characters: Dict[str, Character] = {}
        self.players: Dict[str, Player] = {}
        self.macros: Dict[str, str] = {}
        self.messages: List[ChatMessage] = []
        self.moves: List[tuple] = []
        self.chat_error: Optional[Exception] = None

    # ─────────────────────────────────────────────────────────────────────────
    # REJESTRACJA OBIEKTÓW
    # ─────────────────────────────────────────────────────────────────────────

    def add_page(self, page: Page) -> Page:
        self.pages[page.id] = page
        return page

    def add_token(self, token: Token) -> Token:
        self.tokens[token.id] = token
        return token

    def add_door(self, door: Door) -> Door:
        self.doors[door.id] = door
        return door

    def add_character(self, character: Character) -> Character:
        self.characters[character.id] = character
        return character

    def add_player(self, player: Player) -> Player:
        self.players[player.id] = player
        return player

    def add_macro(self, name: str, action: str) -> None:
        self.macros[name] = action

    def remove_token(self, token_id: str) -> None:
        self.tokens.pop(token_id, None)

    # ─────────────────────────────────────────────────────────────────────────
    # TOKENY
    # ─────────────────────────────────────────────────────────────────────────

    def get_token(self, token_id: str) -> Optional[Token]:
        return self.tokens.get(token_id)

    def list_tokens(self, page_id: str) -> List[Token]:
        return [t for t in self.tokens.values() if t.page_id == page_id]

    def update_token(self, token_id: str, **changes: Any) -> Token:
        token = self.tokens.get(token_id)
        if token is None:
            raise MissingReference(f"Token '{token_id}' not found")
        for name, value in changes.items():
            if name not in TOKEN_FIELDS:
                raise AttributeError(f"Token has no field '{name}'")
            setattr(token, name, value)
        return token

    def move_token(self, token_id: str, left: float, top: float) -> Token:
        token = self.update_token(token_id, left=left, top=top)
        self.moves.append((token_id, left, top))
        return token

    # ─────────────────────────────────────────────────────────────────────────
    # STRONY, DRZWI, POSTACIE, GRACZE
    # ─────────────────────────────────────────────────────────────────────────

    def get_page(self, page_id: str) -> Optional[Page]:
        return self.pages.get(page_id)

    def list_pages(self) -> List[Page]:
        return list(self.pages.values())

    def get_door(self, door_id: str) -> Optional[Door]:
        return self.doors.get(door_id)

    def update_door(self, door_id: str, **changes: Any) -> Door:
        door = self.doors.get(door_id)
        if door is None:
            raise MissingReference(f"Door '{door_id}' not found")
        for name, value in changes.items():
            if name not in DOOR_FIELDS:
                raise AttributeError(f"Door has no field '{name}'")
            setattr(door, name, value)
        return door

    def get_character(self, character_id: str) -> Optional[Character]:
        return self.characters.get(character_id)

    def list_characters(self) -> List[Character]:
        return list(self.characters.values())

    def get_attribute(self, character_id: str, name: str) -> Optional[Any]:
        character = self.characters.get(character_id)
        if character is None:
            return None
        return character.attributes.get(name)

    async def query_sheet_item(self, character_id: str, name: str) -> Optional[Any]:
        character = self.characters.get(character_id)
        if character is None:
            return None
        value = character.sheet_items.get(name)
        if isinstance(value, Exception):
            raise value
        return value

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def is_gm(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        return bool(player and player.is_gm)

    # ─────────────────────────────────────────────────────────────────────────
    # MAKRA I CZAT
    # ─────────────────────────────────────────────────────────────────────────

    def get_macro(self, name: str) -> Optional[str]:
        return self.macros.get(name)

    def list_macros(self) -> Dict[str, str]:
        return dict(self.macros)

    def set_macro(self, name: str, action: str) -> None:
        if name not in self.macros:
            raise MissingReference(f"Macro '{name}' not found")
        self.macros[name] = action

    def send_chat(self, sender: str, content: str) -> None:
        if self.chat_error is not None:
            raise self.chat_error
        self.messages.append(ChatMessage(kind="public", sender=sender, content=content))

    def whisper(self, player_id: str, content: str, sender: str = "TrapSystem") -> None:
        self.messages.append(
            ChatMessage(kind="whisper", sender=sender, content=content, target=player_id)
        )

    def whisper_gm(self, content: str, sender: str = "TrapSystem") -> None:
        self.messages.append(ChatMessage(kind="gm", sender=sender, content=content))

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    # ─────────────────────────────────────────────────────────────────────────
    # POMOCNICZE (testy / API)
    # ─────────────────────────────────────────────────────────────────────────

    def messages_of(self, kind: str) -> List[ChatMessage]:
        """Filtruje historię czatu po rodzaju wiadomości."""
        return [m for m in self.messages if m.kind == kind]

    def clear_messages(self) -> None:
        self.messages.clear()
