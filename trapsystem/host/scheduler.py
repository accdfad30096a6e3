"""
Planista odroczonych wywołań.

Dwie rzeczy w systemie dzieją się "później":
    - drugie przyciągnięcie tokena po wyzwoleniu pułapki (0.5 s)
    - automatyczne przywrócenie aur wykrywania po N minutach

Oba przypadki to krótkie, synchroniczne callbacki. Scheduler zwraca
uchwyt z metodą cancel(), żeby timer aur można było anulować.

IMPLEMENTACJE:
═══════════════════════════════════════════════════════════════════

    ManualScheduler
    ─────────────────────────────────────────────────────────────
    Wirtualny zegar przesuwany ręcznie (advance). Do testów i dema.

    AsyncioScheduler
    ─────────────────────────────────────────────────────────────
    Opakowuje loop.call_later. Do hosta działającego w pętli asyncio.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional

from ..errors import SchedulerUnavailable


class ScheduledHandle(ABC):
    """Uchwyt zaplanowanego wywołania."""

    @abstractmethod
    def cancel(self) -> None:
        """Anuluje wywołanie (no-op, jeśli już się wykonało)."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    """Interfejs planisty."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        """
        Planuje callback po `delay` sekundach.

        Args:
            delay: Opóźnienie w sekundach (>= 0)
            callback: Funkcja bez argumentów

        Returns:
            ScheduledHandle: Uchwyt do anulowania
        """

    @abstractmethod
    def now(self) -> float:
        """Aktualny czas w sekundach."""


# ─────────────────────────────────────────────────────────────────────────────
# ZEGAR RĘCZNY
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(order=True)
class _ManualEntry:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualHandle(ScheduledHandle):
    def __init__(self, entry: _ManualEntry):
        self._entry = entry

    def cancel(self) -> None:
        self._entry.cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._entry.cancelled


class ManualScheduler(Scheduler):
    """
    Planista z wirtualnym zegarem.

    Example:
        >>> s = ManualScheduler()
        >>> calls = []
        >>> _ = s.call_later(0.5, lambda: calls.append("snap"))
        >>> s.advance(0.4); calls
        []
        >>> s.advance(0.1); calls
        ['snap']
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[_ManualEntry] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        entry = _ManualEntry(self._now + max(0.0, delay), next(self._counter), callback)
        heapq.heappush(self._queue, entry)
        return ManualHandle(entry)

    def advance(self, seconds: float) -> int:
        """
        Przesuwa zegar i wykonuje wszystkie wymagalne callbacki.

        Callbacki zaplanowane w trakcie (z opóźnieniem mieszczącym się
        w oknie) też zostaną wykonane.

        Returns:
            int: Liczba wykonanych callbacków
        """
        target = self._now + seconds
        executed = 0
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            self._now = entry.due
            if entry.cancelled:
                continue
            entry.callback()
            executed += 1
        self._now = target
        return executed

    def pending(self) -> int:
        """Liczba zaplanowanych (nieanulowanych) wywołań."""
        return sum(1 for e in self._queue if not e.cancelled)


# ─────────────────────────────────────────────────────────────────────────────
# ASYNCIO
# ─────────────────────────────────────────────────────────────────────────────

class AsyncioHandle(ScheduledHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """
    Planista oparty o pętlę asyncio (loop.call_later).

    Bez wstrzykniętej pętli używa pętli działającej w chwili wywołania,
    więc przeżywa kolejne asyncio.run() (każde ma nową pętlę).
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise SchedulerUnavailable("AsyncioScheduler needs a running event loop or an injected one")

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        return AsyncioHandle(self._get_loop().call_later(max(0.0, delay), callback))
