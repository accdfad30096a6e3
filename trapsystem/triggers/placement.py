"""
Gdzie ustawić token złapany przez pułapkę.

POLITYKI:
═══════════════════════════════════════════════════════════════════

    center
    ─────────────────────────────────────────────────────────────
    Komórka środka pułapki; jeśli zajęta - najbliższa wolna
    komórka sąsiednia WEWNĄTRZ footprintu pułapki.

    x,y (komórka)
    ─────────────────────────────────────────────────────────────
    Komórka względem lewego-górnego rogu pułapki, przycięta do
    footprintu; zajęta -> jak wyżej.

    intersection (domyślna)
    ─────────────────────────────────────────────────────────────
    Spośród 3x3 komórek wokół punktu wejścia wybierz tę, której
    środek leży w obróconym prostokącie pułapki i jest najbliżej
    punktu wejścia. Brak takiej -> zwykłe przyciągnięcie do siatki.
    Jeśli wynik jest zajęty, pozycja końcowa to najbliższa wolna
    komórka sąsiednia (bez ograniczenia do footprintu).

ZAJĘTOŚĆ:
    Pozycja jest zajęta, jeśli inny token zablokowany przez tę samą
    pułapkę stoi bliżej niż pół kratki.

KOLEJNOŚĆ SĄSIADÓW:
    (0,0) (1,0) (-1,0) (0,1) (0,-1) (1,1) (-1,-1) (1,-1) (-1,1)
"""

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import Optional, Sequence, Tuple

from ..core.geometry import (
    Point,
    Footprint,
    GridMetrics,
    point_in_oriented_box,
)
from ..notes.models import Placement, PlacementMode

NEIGHBOUR_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (0, 0),
    (1, 0), (-1, 0),
    (0, 1), (0, -1),
    (1, 1), (-1, -1),
    (1, -1), (-1, 1),
)


@dataclass(frozen=True)
class PlacementResult:
    """
    Wynik rozmieszczenia.

    Attributes:
        initial (Point): Pierwsze przyciągnięcie (natychmiast)
        final (Point): Pozycja docelowa (po krótkim opóźnieniu)
    """
    initial: Point
    final: Point


def is_occupied(candidate: Point, occupied: Sequence[Point], radius: float) -> bool:
    """Czy któraś z zajętych pozycji leży bliżej niż radius."""
    return any(math.hypot(o.x - candidate.x, o.y - candidate.y) < radius for o in occupied)


def find_free_cell_near(
    base: Point,
    footprint: Footprint,
    metrics: GridMetrics,
    occupied: Sequence[Point],
    occupied_radius: float,
    bounded: bool = True,
) -> Point:
    """
    Środek wolnej komórki najbliższej punktowi bazowemu.

    Args:
        base: Punkt bazowy (piksele)
        footprint: Footprint pułapki
        metrics: Siatka strony
        occupied: Pozycje innych złapanych tokenów
        occupied_radius: Promień zajętości (piksele)
        bounded: Czy ograniczyć się do footprintu pułapki

    Returns:
        Point: Środek komórki (główna, jeśli wszystkie sąsiednie zajęte)
    """
    col, row = metrics.cell_of(base.x), metrics.cell_of(base.y)
    if bounded:
        col, row = footprint.clamp_cell(col, row)

    primary = Point(metrics.cell_center(col), metrics.cell_center(row))
    if not is_occupied(primary, occupied, occupied_radius):
        return primary

    for dx, dy in NEIGHBOUR_OFFSETS:
        c, r = col + dx, row + dy
        if bounded and not footprint.contains_cell(c, r):
            continue
        candidate = Point(metrics.cell_center(c), metrics.cell_center(r))
        if not is_occupied(candidate, occupied, occupied_radius):
            return candidate
    return primary


def best_cell_in_box(intersection: Point, corners: Sequence[Point], metrics: GridMetrics) -> Optional[Point]:
    """Środek komórki 3x3 wokół punktu, leżący w prostokącie, najbliższy punktowi."""
    center_col, center_row = metrics.cell_of(intersection.x), metrics.cell_of(intersection.y)
    best: Optional[Point] = None
    best_dist = math.inf

    for d_row in (-1, 0, 1):
        for d_col in (-1, 0, 1):
            candidate = Point(
                metrics.cell_center(center_col + d_col),
                metrics.cell_center(center_row + d_row),
            )
            if not point_in_oriented_box(candidate, corners):
                continue
            dist = (candidate.x - intersection.x) ** 2 + (candidate.y - intersection.y) ** 2
            if dist < best_dist:
                best_dist = dist
                best = candidate
    return best


def calculate_trap_position(
    placement: Placement,
    trap_center: Point,
    trap_corners: Sequence[Point],
    footprint: Footprint,
    intersection: Point,
    metrics: GridMetrics,
    occupied: Sequence[Point],
    occupied_factor: float = 0.5,
) -> PlacementResult:
    """
    Oblicza pozycję początkową i końcową złapanego tokena.

    Args:
        placement: Polityka z konfiguracji pułapki
        trap_center: Środek tokena pułapki
        trap_corners: Rogi obróconego prostokąta pułapki (TL, TR, BR, BL)
        footprint: Footprint pułapki na siatce
        intersection: Punkt wejścia w pułapkę
        metrics: Siatka strony
        occupied: Pozycje innych tokenów zablokowanych przez tę pułapkę
        occupied_factor: Promień zajętości jako ułamek kratki

    Returns:
        PlacementResult: initial i final
    """
    radius = metrics.cell_size * occupied_factor

    if placement.mode == PlacementMode.CENTER:
        spot = find_free_cell_near(trap_center, footprint, metrics, occupied, radius, bounded=True)
        return PlacementResult(spot, spot)

    if placement.mode == PlacementMode.CELL and placement.cell is not None:
        col, row = footprint.clamp_cell(footprint.x + placement.cell[0], footprint.y + placement.cell[1])
        target = Point(metrics.cell_center(col), metrics.cell_center(row))
        spot = find_free_cell_near(target, footprint, metrics, occupied, radius, bounded=True)
        return PlacementResult(spot, spot)

    initial = best_cell_in_box(intersection, trap_corners, metrics)
    if initial is None:
        initial = Point(
            metrics.cell_center(metrics.cell_of(intersection.x)),
            metrics.cell_center(metrics.cell_of(intersection.y)),
        )

    if not is_occupied(initial, occupied, radius):
        return PlacementResult(initial, initial)
    final = find_free_cell_near(initial, footprint, metrics, occupied, radius, bounded=False)
    return PlacementResult(initial, final)