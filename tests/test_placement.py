"""
Testy dla rozmieszczenia złapanego tokena.

Testuje:
- Politykę intersection (komórka najbliższa punktowi wejścia w OBB)
- Fallback do zwykłego przyciągnięcia
- Zajęte pozycje i kolejność sąsiadów
- Politykę center i komórkę względną (przycięcie do footprintu)
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem.core.geometry import (
    Point,
    OrientedBox,
    GridMetrics,
    Footprint,
    oriented_box_corners,
)
from trapsystem.notes.models import Placement, PlacementMode
from trapsystem.triggers.placement import (
    calculate_trap_position,
    find_free_cell_near,
    best_cell_in_box,
    is_occupied,
)


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def metrics():
    return GridMetrics(cell_size=70, units_per_cell=5)


def create_trap(center=Point(245, 35), size=70, footprint=Footprint(3, 0, 1, 1)):
    """Środek, rogi i footprint pułapki."""
    box = OrientedBox(center, size, size)
    return center, oriented_box_corners(box), footprint


def place(placement, trap, intersection, metrics, occupied=()):
    center, corners, footprint = trap
    return calculate_trap_position(
        placement, center, corners, footprint, intersection, metrics, list(occupied),
    )


# ═══════════════════════════════════════════════════════════════════════════
# TEST: INTERSECTION
# ═══════════════════════════════════════════════════════════════════════════

def test_intersection_picks_cell_inside_trap(metrics):
    """Wejście lewą krawędzią -> komórka pułapki, nie komórka przed nią."""
    result = place(Placement(), create_trap(), Point(210, 35), metrics)

    assert result.initial == Point(245, 35)
    assert result.final == result.initial


def test_intersection_occupied_moves_to_first_free_neighbour(metrics):
    """Kolejność sąsiadów: najpierw (1,0), bez ograniczenia do footprintu."""
    result = place(Placement(), create_trap(), Point(210, 35), metrics, occupied=[Point(245, 35)])

    assert result.initial == Point(245, 35)
    assert result.final == Point(315, 35)


def test_intersection_without_cell_in_box_falls_back_to_grid_snap(metrics):
    tiny = (Point(70, 70), oriented_box_corners(OrientedBox(Point(70, 70), 20, 20)), Footprint(1, 1, 1, 1))

    result = place(Placement(), tiny, Point(70, 70), metrics)

    assert result.initial == Point(105, 105)


def test_best_cell_prefers_closest_center(metrics):
    corners = oriented_box_corners(OrientedBox(Point(140, 140), 140, 140))

    assert best_cell_in_box(Point(80, 100), corners, metrics) == Point(105, 105)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: CENTER I KOMÓRKA
# ═══════════════════════════════════════════════════════════════════════════

def test_center_placement(metrics):
    result = place(Placement(PlacementMode.CENTER), create_trap(), Point(210, 35), metrics)

    assert result.initial == Point(245, 35)
    assert result.final == Point(245, 35)


def test_center_occupied_stays_inside_footprint(metrics):
    """Pułapka 2x2: sąsiad (1,0) wypada poza footprint, wybierany jest (-1,0)."""
    big = create_trap(Point(140, 140), 140, Footprint(1, 1, 2, 2))

    result = place(Placement(PlacementMode.CENTER), big, Point(70, 140), metrics, occupied=[Point(175, 175)])

    assert result.final == Point(105, 175)


def test_cell_placement_relative_to_trap(metrics):
    big = create_trap(Point(140, 140), 140, Footprint(1, 1, 2, 2))

    result = place(Placement.at_cell(1, 0), big, Point(70, 140), metrics)

    assert result.final == Point(175, 105)


def test_cell_placement_is_clamped_to_footprint(metrics):
    big = create_trap(Point(140, 140), 140, Footprint(1, 1, 2, 2))

    result = place(Placement.at_cell(5, 5), big, Point(70, 140), metrics)

    assert result.final == Point(175, 175)


def test_all_cells_occupied_returns_primary(metrics):
    footprint = Footprint(3, 0, 1, 1)

    spot = find_free_cell_near(Point(245, 35), footprint, metrics, [Point(245, 35)], 35, bounded=True)

    assert spot == Point(245, 35)


def test_is_occupied_radius():
    assert is_occupied(Point(0, 0), [Point(30, 0)], 35)
    assert not is_occupied(Point(0, 0), [Point(35, 0)], 35)
