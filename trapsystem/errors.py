"""
Hierarchia wyjątków systemu pułapek.

Wszystkie błędy domenowe dziedziczą po TrapSystemError, dzięki czemu
fasada (TrapSystem) może je łapać w jednym miejscu i zamieniać na
ostrzeżenie szeptane do prowadzącego (GM).

HIERARCHIA:
═══════════════════════════════════════════════════════════════════

    TrapSystemError
    ├── ConfigurationInvalid   notatka tokena nie zawiera bloków pułapki
    ├── MissingReference       token / postać / strona nie istnieje
    ├── PerceptionUnresolved   nie udało się ustalić percepcji obserwatora
    ├── InvalidTransition      niedozwolone przejście maszyny interakcji
    ├── InvalidValue           niepoprawna wartość od prowadzącego
    └── SchedulerUnavailable   brak pętli zdarzeń dla planisty asyncio

Błędy geometrii NIE są wyjątkami - zdegenerowane dane wejściowe
(równoległe odcinki, zerowy ruch) oznaczają po prostu "brak przecięcia".
"""

from __future__ import annotations


class TrapSystemError(Exception):
    """Bazowy wyjątek systemu pułapek."""


class ConfigurationInvalid(TrapSystemError):
    """Token nie ma poprawnej konfiguracji pułapki."""


class MissingReference(TrapSystemError):
    """Odwołanie do obiektu, którego host nie zna."""


class PerceptionUnresolved(TrapSystemError):
    """Żadne źródło nie zwróciło pasywnej percepcji obserwatora."""


class InvalidTransition(TrapSystemError):
    """Próba niedozwolonego przejścia stanu interakcji."""

    def __init__(self, trap_id: str, current: object, target: object):
        super().__init__(
            f"Trap '{trap_id}': cannot go from {current} to {target}"
        )
        self.trap_id = trap_id
        self.current = current
        self.target = target


class InvalidValue(TrapSystemError):
    """Wartość podana przez prowadzącego nie przeszła walidacji."""


class SchedulerUnavailable(TrapSystemError):
    """Planista nie ma pętli zdarzeń, na której mógłby zaplanować wywołanie."""
