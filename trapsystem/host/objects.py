"""
Obiekty hosta (wirtualnego stołu): tokeny, strony, drzwi, postacie, gracze.

To są proste kontenery danych - jedynym źródłem prawdy o nich
jest host. System pułapek czyta je przez interfejs Host
i zapisuje zmiany przez Host.update_token().

UKŁAD WSPÓŁRZĘDNYCH:
═══════════════════════════════════════════════════════════════════

    (0,0) ───────────────► x (left)
      │
      │     ┌───────────┐
      │     │     ●     │  ● = (left, top) = ŚRODEK tokena
      │     └───────────┘      width x height w pikselach
      ▼                        rotation w stopniach, zgodnie z zegarem
      y (top)

Aura i paski:
    aura1_*   kolor stanu pułapki (uzbrojona / rozbrojona / pauza)
    aura2_*   zasięg wykrywania pasywnego
    bar1_*    pozostałe użycia (value / max)
    bar2_*    DC wykrywania pasywnego

Promień aury None oznacza "pusty" (aura ukryta), 0 oznacza
widoczny znacznik o zerowym zasięgu.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


TOKEN_FIELDS = (
    "page_id", "name", "left", "top", "width", "height", "rotation",
    "layer", "notes", "represents", "status_markers", "controlled_by",
    "bar1_value", "bar1_max", "bar2_value", "bar2_max", "bar3_value", "bar3_max",
    "aura1_color", "aura1_radius", "aura2_color", "aura2_radius",
)

DOOR_FIELDS = ("is_open", "is_locked", "is_secret")


@dataclass
class Token:
    """
    Token na mapie.

    Attributes:
        id (str): Unikalny identyfikator
        page_id (str): Strona, na której leży token
        name (str): Nazwa wyświetlana
        left, top (float): Środek tokena w pikselach
        width, height (float): Rozmiar w pikselach
        rotation (float): Obrót w stopniach
        layer (str): Warstwa ("objects", "gmlayer", "map")
        notes (str): Notatka prowadzącego (zakodowana konfiguracja)
        represents (Optional[str]): ID postaci, którą token reprezentuje
        status_markers (List[str]): Znaczniki statusu (np. "blue")
        controlled_by (List[str]): ID graczy kontrolujących token
    """
    id: str
    page_id: str
    name: str = ""
    left: float = 0.0
    top: float = 0.0
    width: float = 70.0
    height: float = 70.0
    rotation: float = 0.0
    layer: str = "objects"
    notes: str = ""
    represents: Optional[str] = None
    status_markers: List[str] = field(default_factory=list)
    controlled_by: List[str] = field(default_factory=list)
    bar1_value: Optional[Any] = None
    bar1_max: Optional[Any] = None
    bar2_value: Optional[Any] = None
    bar2_max: Optional[Any] = None
    bar3_value: Optional[Any] = None
    bar3_max: Optional[Any] = None
    aura1_color: Optional[str] = None
    aura1_radius: Optional[float] = None
    aura2_color: Optional[str] = None
    aura2_radius: Optional[float] = None

    def has_marker(self, marker: str) -> bool:
        """Sprawdza czy token ma znacznik statusu."""
        return marker in self.status_markers

    def bar_value(self, bar: str) -> Optional[Any]:
        """
        Zwraca wartość paska ("bar1", "bar2_value" itd.).

        Returns:
            Optional[Any]: None dla nieznanego paska
        """
        name = bar if bar.endswith("_value") else f"{bar}_value"
        if name not in ("bar1_value", "bar2_value", "bar3_value"):
            return None
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        """Serializuje token (np. dla API)."""
        result: Dict[str, Any] = {"id": self.id}
        for name in TOKEN_FIELDS:
            value = getattr(self, name)
            result[name] = list(value) if isinstance(value, list) else value
        return result


@dataclass
class Page:
    """
    Strona (mapa) z ustawieniami siatki.

    Attributes:
        id (str): Identyfikator strony
        name (str): Nazwa
        grid_size (float): Rozmiar kratki w pikselach
        snapping_increment (float): Przyciąganie; 0 = siatka wyłączona
        scale_number (float): Jednostki mapy na kratkę (np. 5 ft)
        grid_type (str): "square" / "hex" / "hexr"
    """
    id: str
    name: str = ""
    grid_size: float = 70.0
    snapping_increment: float = 1.0
    scale_number: float = 5.0
    grid_type: str = "square"


@dataclass
class Character:
    """
    Karta postaci.

    Attributes:
        attributes (Dict[str, Any]): Atrybuty czytane synchronicznie
        sheet_items (Dict[str, Any]): Pola arkusza czytane asynchronicznie
    """
    id: str
    name: str = ""
    controlled_by: List[str] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    sheet_items: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Player:
    """Gracz przy stole."""
    id: str
    name: str = ""
    is_gm: bool = False


@dataclass
class Door:
    """
    Drzwi albo okno na stronie.

    Attributes:
        kind (str): "door" albo "window"
        is_open (bool): Otwarte
        is_locked (bool): Zamknięte na klucz
        is_secret (bool): Ukryte przed graczami
    """
    id: str
    page_id: str
    kind: str = "door"
    is_open: bool = False
    is_locked: bool = False
    is_secret: bool = False


@dataclass
class ChatMessage:
    """
    Wiadomość wysłana przez system.

    Attributes:
        kind (str): "public", "whisper" albo "gm"
        sender (str): Nadawca (np. nazwa pułapki)
        content (str): Treść
        target (Optional[str]): Odbiorca szeptu (ID gracza)
    """
    kind: str
    sender: str
    content: str
    target: Optional[str] = None
