"""
Jawny prymityw "uruchom N zadań i poczekaj na wszystkie".

Wykrywanie pasywne sprawdza wiele par (obserwator, pułapka)
jednocześnie - każda para może czekać na asynchroniczny odczyt
arkusza postaci. join_all() uruchamia wszystkie, czeka na
wszystkie i izoluje błędy: wyjątek jednej pary jest logowany
i przekazywany do on_error, pozostałe pary kończą się normalnie.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


async def join_all(
    tasks: Iterable[Awaitable[Any]],
    on_error: Optional[Callable[[BaseException], None]] = None,
) -> List[Any]:
    """
    Uruchamia wszystkie zadania współbieżnie i czeka na ich koniec.

    Args:
        tasks: Korutyny / awaitable do uruchomienia
        on_error: Wywoływane dla każdego zadania zakończonego wyjątkiem

    Returns:
        List[Any]: Wyniki w kolejności zadań; dla zadań z błędem
            w liście jest obiekt wyjątku

    Raises:
        asyncio.CancelledError: Gdy anulowano samo oczekiwanie
    """
    results = await asyncio.gather(*tasks, return_exceptions=True)

    for result in results:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.error("Concurrent task failed: %s", result, exc_info=result)
            if on_error is not None:
                on_error(result)

    return list(results)
