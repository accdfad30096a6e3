"""
Makra pułapek: podstawianie tagów tokenów i wykonanie przez czat hosta.

ODWOŁANIA DO MAKR:
═══════════════════════════════════════════════════════════════════

    #Nazwa        zapisane makro hosta (treść z Host.get_macro)
    $komenda      komenda API zapisana bez '!' -> wysyłana jako !komenda
    !komenda      komenda API
    &{template..} szablon czatu
    tekst         zwykła wiadomość

TAGI:
═══════════════════════════════════════════════════════════════════

    Mapa tagów budowana z nazw tokenów (małe litery, tylko [a-z0-9])
    plus aliasy "trap" i "victim":

        "Goblin Archer"  ->  goblinarcher -> ID tokena

    @{goblinarcher|token_id}  ->  -Mabc123
    @{goblinarcher|bar1}      ->  @{-Mabc123|bar1}
    @{nieznany|bar1}          ->  bez zmian
"""

from __future__ import annotations
import logging
import re
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from ..events.event_logger import EventLogger
    from ..host.base import Host
    from ..host.objects import Token

logger = logging.getLogger(__name__)

_TAG_REF = re.compile(r"@\{([^|}]+)\|([^}]+)\}")
_TEMPLATE_NAME = re.compile(r"\{\{name=([^}]+)\}\}")


def tag_for(name: str) -> str:
    """Tag tokena: nazwa małymi literami, tylko znaki alfanumeryczne."""
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def build_tag_map(
    tokens: Iterable["Token"],
    aliases: Optional[Dict[str, "Token"]] = None,
) -> Dict[str, str]:
    """
    Buduje mapę tag -> ID tokena.

    Args:
        tokens: Tokeny, do których makro może się odwołać
        aliases: Dodatkowe nazwy (np. {"trap": trap_token})

    Returns:
        Dict[str, str]: Mapa tagów
    """
    tag_map: Dict[str, str] = {}
    for token in tokens:
        if token is None:
            continue
        tag = tag_for(token.name)
        if tag:
            tag_map[tag] = token.id
    for alias, token in (aliases or {}).items():
        if token is not None:
            tag_map[tag_for(alias)] = token.id
    return tag_map


def substitute_tags(text: str, tag_map: Dict[str, str]) -> str:
    """
    Zamienia @{tag|pole} na odwołania do ID tokenów.

    Example:
        >>> substitute_tags("!hit @{victim|token_id} @{victim|hp}", {"victim": "t1"})
        '!hit t1 @{t1|hp}'
    """
    if not text:
        return text

    def replace(match: "re.Match") -> str:
        tag = tag_for(match.group(1))
        prop = match.group(2)
        if tag not in tag_map:
            return match.group(0)
        if prop == "token_id":
            return tag_map[tag]
        return f"@{{{tag_map[tag]}|{prop}}}"

    return _TAG_REF.sub(replace, text)


def describe_macro(ref: Optional[str], max_length: int = 25) -> str:
    """
    Krótka nazwa makra do menu i dziennika.

    Example:
        >>> describe_macro("#Spikes")
        'Macro: Spikes'
        >>> describe_macro("$alarm")
        'Cmd: !alarm'
    """
    if not ref or not ref.strip():
        return "(none)"
    display = ref.strip()
    if display.startswith("#"):
        return f"Macro: {display[1:]}"
    if display.startswith("$"):
        display = f"Cmd: !{display[1:]}"
    elif display.startswith("!"):
        display = f"Cmd: {display}"
    elif display.startswith("&{"):
        match = _TEMPLATE_NAME.search(display)
        return f'Template: "{match.group(1).strip()}"' if match else "Chat Template"
    else:
        display = f'Text: "{display}"'
    if len(display) > max_length:
        return display[:max_length - 3] + "..."
    return display


class MacroRunner:
    """
    Wykonuje makra pułapek przez czat hosta.

    Błąd hosta podczas wysyłania jest logowany, prowadzący dostaje
    ogólny komunikat, a execute() zwraca False.

    Attributes:
        host (Host): Czat i zapisane makra
        events (EventLogger): Dziennik zdarzeń
    """

    def __init__(self, host: "Host", events: "EventLogger"):
        self.host = host
        self.events = events

    def resolve(self, ref: str) -> Optional[List[str]]:
        """
        Zamienia odwołanie na linie do wysłania.

        Returns:
            Optional[List[str]]: None dla nieznanego makra #Nazwa
        """
        ref = ref.strip()
        if ref.startswith("#"):
            action = self.host.get_macro(ref[1:].strip())
            if action is None:
                return None
            return [line for line in action.splitlines() if line.strip()]
        if ref.startswith("$"):
            return ["!" + ref[1:]]
        return [ref]

    def execute(
        self,
        ref: Optional[str],
        trap: "Token",
        victim: Optional["Token"] = None,
        role: str = "primary",
    ) -> bool:
        """
        Wykonuje makro w kontekście pułapki i ofiary.

        Args:
            ref: Odwołanie do makra
            trap: Token pułapki (nadawca wiadomości, alias "trap")
            victim: Złapany token (alias "victim")
            role: Rola makra (do dziennika)

        Returns:
            bool: True jeśli wszystkie linie zostały wysłane
        """
        if not ref or not ref.strip():
            return False

        lines = self.resolve(ref)
        if lines is None:
            logger.warning("Macro %s not found for trap %s", ref, trap.id)
            self.host.whisper_gm(f"⚠️ Macro '{ref.strip()[1:]}' not found (trap '{trap.name}').")
            self.events.log_macro(trap.id, ref, role, ok=False)
            return False

        tag_map = build_tag_map([trap, victim], aliases={"trap": trap, "victim": victim})
        sender = trap.name or "Trap"
        try:
            for line in lines:
                self.host.send_chat(sender, substitute_tags(line, tag_map))
        except Exception as exc:
            logger.error("Macro %s failed on trap %s: %s", describe_macro(ref), trap.id, exc)
            self.host.whisper_gm(f"⚠️ Failed to run {describe_macro(ref)} for '{sender}'.")
            self.events.log_macro(trap.id, ref, role, ok=False)
            return False

        self.events.log_macro(trap.id, ref, role, ok=True)
        return True
