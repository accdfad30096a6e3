"""
Deterministyczny generator liczb losowych (RNG) dla rzutów kośćmi.

System pułapek rzuca kośćmi w jednym miejscu: kość szczęścia
dodawana do pasywnej percepcji ("1d6", "2d4+1"). Testy muszą być
powtarzalne, więc każdy TrapSystem ma WŁASNĄ instancję GameRNG
z podanym seedem.

Jak używać:
    - Każdy TrapSystem dostaje swoją instancję GameRNG
    - NIE używaj globalnego random - jest współdzielony
    - W testach podawaj stały seed

Przykład użycia:
    >>> rng = GameRNG(seed=12345)
    >>> rng.roll_dice("1d6").total   # zawsze to samo dla seed=12345
    >>> DiceSpec.parse("2d4+1")
    DiceSpec(count=2, sides=4, modifier=1)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import random
import re
from typing import List, Optional

DICE_PATTERN = re.compile(r"^\s*(\d+)d(\d+)\s*([+-]\s*\d+)?\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class DiceSpec:
    """
    Opis rzutu w notacji NdM[+/-K].

    Attributes:
        count (int): Liczba kości (N)
        sides (int): Liczba ścian (M)
        modifier (int): Stały modyfikator (K)
    """
    count: int
    sides: int
    modifier: int = 0

    @classmethod
    def parse(cls, expression: str) -> Optional["DiceSpec"]:
        """
        Parsuje wyrażenie kości.

        Args:
            expression: np. "1d6", "2d4+1", "1d8-2"

        Returns:
            Optional[DiceSpec]: None jeśli wyrażenie jest niepoprawne
        """
        match = DICE_PATTERN.match(expression or "")
        if not match:
            return None
        count, sides = int(match.group(1)), int(match.group(2))
        if count <= 0 or sides <= 0:
            return None
        modifier = int(match.group(3).replace(" ", "")) if match.group(3) else 0
        return cls(count=count, sides=sides, modifier=modifier)

    def __str__(self) -> str:
        if self.modifier:
            return f"{self.count}d{self.sides}{self.modifier:+d}"
        return f"{self.count}d{self.sides}"


@dataclass
class DiceRoll:
    """Wynik rzutu: pojedyncze kości i suma z modyfikatorem."""
    spec: DiceSpec
    rolls: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.rolls) + self.spec.modifier


class GameRNG:
    """
    Deterministyczny generator losowości.

    Opakowuje random.Random z konkretnym seedem.

    Attributes:
        seed (int): Ziarno użyte do inicjalizacji
        _rng (random.Random): Wewnętrzny generator

    Example:
        >>> rng1 = GameRNG(42)
        >>> rng2 = GameRNG(42)
        >>> rng1.randint(1, 20) == rng2.randint(1, 20)
        True
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Tworzy nowy generator z podanym seedem.

        Args:
            seed: Ziarno losowości. Ten sam seed = te same wyniki.
        """
        self.seed = seed
        self._rng = random.Random(seed)

    # ─────────────────────────────────────────────────────────────────────────
    # PODSTAWOWE METODY
    # ─────────────────────────────────────────────────────────────────────────

    def randint(self, a: int, b: int) -> int:
        """
        Zwraca losową liczbę całkowitą z przedziału [a, b] (włącznie).

        Args:
            a: Dolna granica (włącznie)
            b: Górna granica (włącznie)
        """
        return self._rng.randint(a, b)

    # ─────────────────────────────────────────────────────────────────────────
    # KOŚCI
    # ─────────────────────────────────────────────────────────────────────────

    def roll(self, spec: DiceSpec) -> DiceRoll:
        """
        Rzuca kośćmi według specyfikacji.

        Args:
            spec: Opis rzutu

        Returns:
            DiceRoll: Pojedyncze wyniki i suma
        """
        rolls = [self.randint(1, spec.sides) for _ in range(spec.count)]
        return DiceRoll(spec=spec, rolls=rolls)

    def roll_dice(self, expression: str) -> Optional[DiceRoll]:
        """
        Parsuje i rzuca wyrażenie kości.

        Args:
            expression: np. "1d6"

        Returns:
            Optional[DiceRoll]: None jeśli wyrażenie jest niepoprawne

        Example:
            >>> GameRNG(1).roll_dice("nonsense") is None
            True
        """
        spec = DiceSpec.parse(expression)
        if spec is None:
            return None
        return self.roll(spec)

    # ─────────────────────────────────────────────────────────────────────────
    # STAN
    # ─────────────────────────────────────────────────────────────────────────

    def get_state(self) -> tuple:
        """Zwraca aktualny stan RNG (do zapisania/odtworzenia)."""
        return self._rng.getstate()

    def set_state(self, state: tuple) -> None:
        """Ustawia stan RNG (do odtworzenia z zapisanego stanu)."""
        self._rng.setstate(state)

    def __repr__(self) -> str:
        return f"GameRNG(seed={self.seed})"
