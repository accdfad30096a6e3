"""
Pasywna percepcja obserwatora.

ŁAŃCUCH ŹRÓDEŁ:
═══════════════════════════════════════════════════════════════════

    1. Host.query_sheet_item(postać, "passive_wisdom")   (async)
       błąd hosta -> ostrzeżenie w logu, dalej
    2. Host.get_attribute(postać, "passive_wisdom")      (sync)
    3. pasek tokena z konfiguracji (bar1 / bar2_value / ...)

    Wartość musi dać się sparsować jako liczba całkowita
    ("14", 14, " 14 "). Pierwsze poprawne źródło wygrywa.
    Żadne -> PerceptionUnresolved.

KOŚĆ SZCZĘŚCIA:
    Gdy enableLuckRoll=on, do wyniku dodawany jest rzut NdM[+/-K]
    (GameRNG). Niepoprawne wyrażenie -> premia 0.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..errors import PerceptionUnresolved

if TYPE_CHECKING:
    from ..core.rng import GameRNG
    from ..host.base import Host
    from ..host.objects import Token
    from ..notes.models import DetectionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerceptionResult:
    """
    Wynik percepcji.

    Attributes:
        base (int): Percepcja bazowa
        luck_bonus (int): Premia z kości szczęścia
        source (str): "sheet", "attribute" albo nazwa paska
    """
    base: int
    luck_bonus: int
    source: str

    @property
    def final(self) -> int:
        return self.base + self.luck_bonus


def parse_score(value: Any) -> Optional[int]:
    """
    Liczba całkowita z wartości hosta (None dla pustych i nieliczbowych).

    Słowniki z kluczem "value" są rozpakowywane.
    """
    if isinstance(value, dict):
        value = value.get("value")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    sign = ""
    if text[0] in "+-":
        sign, text = text[0], text[1:]
    digits = ""
    for char in text:
        if not char.isdigit():
            break
        digits += char
    return int(sign + digits) if digits else None


class PerceptionResolver:
    """
    Ustala pasywną percepcję obserwatora.

    Attributes:
        host (Host): Arkusze, atrybuty, tokeny
        rng (GameRNG): Kość szczęścia
        attribute (str): Nazwa atrybutu percepcji
    """

    def __init__(self, host: "Host", rng: "GameRNG", attribute: str = "passive_wisdom"):
        self.host = host
        self.rng = rng
        self.attribute = attribute

    async def base_score(self, observer: "Token", detection: "DetectionConfig") -> PerceptionResult:
        """
        Raises:
            PerceptionUnresolved: Żadne źródło nie dało liczby
        """
        character_id = observer.represents
        if character_id:
            try:
                score = parse_score(await self.host.query_sheet_item(character_id, self.attribute))
            except Exception as exc:
                logger.warning(
                    "Sheet query for %s on %s failed: %s, falling back", self.attribute, character_id, exc,
                )
                score = None
            if score is not None:
                return PerceptionResult(score, 0, "sheet")

            score = parse_score(self.host.get_attribute(character_id, self.attribute))
            if score is not None:
                return PerceptionResult(score, 0, "attribute")

        bar = detection.bar_fallback
        if bar and bar.lower() != "none":
            score = parse_score(observer.bar_value(bar))
            if score is not None:
                return PerceptionResult(score, 0, bar)

        raise PerceptionUnresolved(
            f"No passive perception for '{observer.name or observer.id}' (character {character_id})"
        )

    def luck_bonus(self, detection: "DetectionConfig") -> int:
        if not detection.luck_enabled:
            return 0
        roll = self.rng.roll_dice(detection.luck_die or "1d6")
        if roll is None:
            logger.warning("Invalid luck die %r, using 0", detection.luck_die)
            return 0
        return roll.total

    async def resolve(self, observer: "Token", detection: "DetectionConfig") -> PerceptionResult:
        """
        Percepcja bazowa plus kość szczęścia.

        Raises:
            PerceptionUnresolved: Żadne źródło nie dało liczby
        """
        base = await self.base_score(observer, detection)
        return PerceptionResult(base.base, self.luck_bonus(detection), base.source)
