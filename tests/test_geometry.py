"""
Testy dla geometrii.

Testuje:
- Przecięcie odcinków (w tym równoległe i zdegenerowane)
- Rogi obróconego prostokąta i test punktu w środku
- Przecięcie ścieżki z krawędziami prostokąta
- Ustawienia siatki strony (domyślne, ostrzeżenie raz)
- Footprint, nakładanie, odległość
"""

import math
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem.core.config_loader import ConfigLoader
from trapsystem.core.geometry import (
    Point,
    OrientedBox,
    GridMetrics,
    GridResolver,
    Footprint,
    Distance,
    segment_intersection,
    oriented_box_corners,
    point_in_oriented_box,
    segment_box_intersection,
    token_footprint,
    footprints_overlap,
    distance_between,
    token_radius_units,
    cell_of,
    cell_center,
)
from trapsystem.host import InMemoryHost, Page, Token


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def config():
    return ConfigLoader().load_system_config()


@pytest.fixture
def metrics():
    """Siatka 70 px, 5 ft na kratkę."""
    return GridMetrics(cell_size=70, units_per_cell=5)


def create_token(token_id="t", left=35, top=35, width=70, height=70, page_id="p1", rotation=0):
    return Token(id=token_id, page_id=page_id, left=left, top=top, width=width, height=height, rotation=rotation)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: SEGMENT INTERSECTION
# ═══════════════════════════════════════════════════════════════════════════

def test_crossing_diagonals_meet_in_middle():
    """(0,0)-(10,10) x (0,10)-(10,0) = (5,5)."""
    hit = segment_intersection(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))

    assert hit == Point(5, 5)


def test_parallel_segments_do_not_intersect():
    assert segment_intersection(Point(0, 0), Point(10, 0), Point(0, 5), Point(10, 5)) is None


def test_collinear_segments_do_not_intersect():
    assert segment_intersection(Point(0, 0), Point(10, 0), Point(5, 0), Point(15, 0)) is None


def test_zero_length_move_does_not_intersect():
    assert segment_intersection(Point(3, 3), Point(3, 3), Point(0, 0), Point(10, 10)) is None


def test_disjoint_segments_do_not_intersect():
    """Proste się przecinają, ale poza odcinkami."""
    assert segment_intersection(Point(0, 0), Point(1, 1), Point(0, 10), Point(10, 0)) is None


def test_touching_endpoint_counts():
    hit = segment_intersection(Point(0, 0), Point(5, 5), Point(5, 5), Point(10, 0))

    assert hit == Point(5, 5)


# ═══════════════════════════════════════════════════════════════════════════
# TEST: ORIENTED BOX
# ═══════════════════════════════════════════════════════════════════════════

def test_unrotated_corners_order():
    """Kolejność TL, TR, BR, BL."""
    corners = oriented_box_corners(OrientedBox(Point(35, 35), 70, 70))

    assert corners == [Point(0, 0), Point(70, 0), Point(70, 70), Point(0, 70)]


@pytest.mark.parametrize("rotation", [0, 15, 30, 45, 90, 133, 180, 270, 359])
def test_center_inside_box_at_any_rotation(rotation):
    box = OrientedBox(Point(100, 200), 140, 70, rotation)

    assert point_in_oriented_box(box.center, oriented_box_corners(box))


def test_rotation_swaps_extent():
    """Po obrocie o 90° dłuższy bok leży wzdłuż osi Y."""
    box = OrientedBox(Point(0, 0), 140, 70, 90)
    corners = oriented_box_corners(box)

    assert point_in_oriented_box(Point(0, 60), corners)
    assert not point_in_oriented_box(Point(60, 0), corners)


def test_point_outside_box():
    corners = oriented_box_corners(OrientedBox(Point(35, 35), 70, 70))

    assert not point_in_oriented_box(Point(100, 35), corners)


def test_malformed_corners_are_rejected():
    assert not point_in_oriented_box(Point(0, 0), [Point(0, 0), Point(1, 1)])


# ═══════════════════════════════════════════════════════════════════════════
# TEST: PATH VS BOX
# ═══════════════════════════════════════════════════════════════════════════

def test_path_through_box_reports_first_edge_in_order():
    """Krawędź prawa (TR-BR) jest sprawdzana przed lewą (BL-TL)."""
    corners = oriented_box_corners(OrientedBox(Point(245, 35), 70, 70))

    hit = segment_box_intersection(Point(35, 35), Point(385, 35), corners)

    assert (hit.x, hit.y) == (pytest.approx(280), pytest.approx(35))


def test_first_edge_in_order_wins():
    """Ruch z góry na dół: krawędź górna sprawdzana jest przed dolną."""
    corners = oriented_box_corners(OrientedBox(Point(35, 35), 70, 70))

    hit = segment_box_intersection(Point(35, -100), Point(35, 200), corners)

    assert (hit.x, hit.y) == (pytest.approx(35), pytest.approx(0))


def test_path_missing_box():
    corners = oriented_box_corners(OrientedBox(Point(245, 245), 70, 70))

    assert segment_box_intersection(Point(35, 35), Point(385, 35), corners) is None


# ═══════════════════════════════════════════════════════════════════════════
# TEST: GRID METRICS
# ═══════════════════════════════════════════════════════════════════════════

def test_page_metrics_from_page(config):
    host = InMemoryHost()
    host.add_page(Page(id="p1", grid_size=50, scale_number=10, grid_type="hex"))

    metrics = GridResolver(host, config).page_grid_metrics("p1")

    assert metrics == GridMetrics(50.0, 10.0, "hex", True)


def test_missing_page_uses_defaults_and_warns_once(config):
    host = InMemoryHost()
    resolver = GridResolver(host, config)

    first = resolver.page_grid_metrics("ghost")
    second = resolver.page_grid_metrics("ghost")

    assert first.cell_size == 70
    assert first.units_per_cell == 5
    assert not first.valid
    assert second == first
    assert len(host.messages_of("gm")) == 1
    assert resolver.warned_pages() == ["ghost"]


def test_tiny_grid_falls_back_to_default_cell_size(config):
    host = InMemoryHost()
    host.add_page(Page(id="p1", grid_size=1))

    metrics = GridResolver(host, config).page_grid_metrics("p1")

    assert metrics.cell_size == 70
    assert metrics.valid


def test_grid_without_snapping_falls_back(config):
    host = InMemoryHost()
    host.add_page(Page(id="p1", grid_size=50, snapping_increment=0))

    assert GridResolver(host, config).page_grid_metrics("p1").cell_size == 70


def test_cell_helpers():
    assert cell_of(35, 70) == 0
    assert cell_of(70, 70) == 1
    assert cell_of(245, 70) == 3
    assert cell_center(3, 70) == 245


# ═══════════════════════════════════════════════════════════════════════════
# TEST: FOOTPRINT I ODLEGŁOŚĆ
# ═══════════════════════════════════════════════════════════════════════════

def test_token_footprint(metrics):
    footprint = token_footprint(create_token(left=245, top=35), metrics)

    assert (footprint.x, footprint.y, footprint.width, footprint.height) == (3, 0, 1, 1)
    assert footprint.center == Point(245, 35)


def test_large_token_footprint(metrics):
    footprint = token_footprint(create_token(left=70, top=70, width=140, height=140), metrics)

    assert (footprint.x, footprint.y, footprint.width, footprint.height) == (0, 0, 2, 2)
    assert footprint.center == Point(70, 70)
    assert footprint == Footprint(0, 0, 2, 2)


def test_footprints_overlap(metrics):
    big = token_footprint(create_token(left=70, top=70, width=140, height=140), metrics)
    inside = token_footprint(create_token(left=105, top=105), metrics)
    outside = token_footprint(create_token(left=245, top=35), metrics)

    assert footprints_overlap(big, inside)
    assert not footprints_overlap(big, outside)


def test_distance_in_pixels_and_map_units(metrics):
    a = create_token("a", left=35, top=35)
    b = create_token("b", left=245, top=35)

    distance = distance_between(a, b, metrics)

    assert distance.pixels == pytest.approx(210.0)
    assert distance.units == pytest.approx(15.0)


def test_distance_across_pages_is_infinite(metrics):
    a = create_token("a", page_id="p1")
    b = create_token("b", page_id="p2")

    assert distance_between(a, b, metrics) == Distance(math.inf, math.inf)


def test_token_radius_units(metrics):
    assert token_radius_units(create_token(width=140, height=70), metrics) == pytest.approx(5.0)
