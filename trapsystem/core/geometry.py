"""
Geometria płaszczyzny mapy: odcinki, obrócone prostokąty, siatka.

Wszystkie funkcje są czyste - nie dotykają stanu ani hosta - poza
GridResolver, który czyta ustawienia strony z hosta.

OBRÓCONY PROSTOKĄT (OBB):
═══════════════════════════════════════════════════════════════════

    Token o środku (cx, cy), rozmiarze w x h i obrocie θ.
    Rogi w kolejności TL, TR, BR, BL, obrócone wokół środka:

            TL ─────────── TR
            │               │
            │    (cx,cy)    │     x' = cx + lx·cosθ - ly·sinθ
            │               │     y' = cy + lx·sinθ + ly·cosθ
            BL ─────────── BR

    Punkt P leży w środku, jeśli jego rzuty na krawędzie AB (TL→TR)
    i AD (TL→BL) mieszczą się w [0, |AB|²] oraz [0, |AD|²].

PRZECIĘCIE ODCINKÓW:
═══════════════════════════════════════════════════════════════════

    P(t) = P1 + t·(P2 - P1),  Q(u) = P3 + u·(P4 - P3)
    Przecięcie istnieje gdy mianownik != 0 i t, u ∈ [0, 1].
    Równoległe / współliniowe -> brak przecięcia.

SIATKA:
═══════════════════════════════════════════════════════════════════

    cell_size        piksele na kratkę
    units_per_cell   jednostki mapy na kratkę (np. 5 ft)

    komórka(px)    = round(px / cell_size - 0.5)
    środek(kom)    = kom · cell_size + cell_size / 2
    odległość_mapy = piksele / cell_size · units_per_cell
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import math
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from ..host.base import Host
    from ..host.objects import Token
    from .config_loader import TrapSystemConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """Punkt na mapie (piksele)."""
    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_list(self) -> List[float]:
        return [self.x, self.y]


# ─────────────────────────────────────────────────────────────────────────────
# ODCINKI I PROSTOKĄTY
# ─────────────────────────────────────────────────────────────────────────────

def segment_intersection(p1: Point, p2: Point, p3: Point, p4: Point) -> Optional[Point]:
    """
    Punkt przecięcia odcinków P1P2 i P3P4.

    Returns:
        Optional[Point]: None dla odcinków rozłącznych, równoległych
            lub zdegenerowanych

    Example:
        >>> segment_intersection(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))
        Point(x=5.0, y=5.0)
    """
    denom = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if denom == 0:
        return None

    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / denom
    u = -((p1.x - p2.x) * (p1.y - p3.y) - (p1.y - p2.y) * (p1.x - p3.x)) / denom

    if 0 <= t <= 1 and 0 <= u <= 1:
        return Point(p1.x + t * (p2.x - p1.x), p1.y + t * (p2.y - p1.y))
    return None


@dataclass(frozen=True)
class OrientedBox:
    """
    Obrócony prostokąt.

    Attributes:
        center (Point): Środek
        width (float): Szerokość (px)
        height (float): Wysokość (px)
        rotation (float): Obrót w stopniach
    """
    center: Point
    width: float
    height: float
    rotation: float = 0.0

    @classmethod
    def of_token(cls, token: "Token") -> "OrientedBox":
        return cls(Point(token.left, token.top), token.width, token.height, token.rotation or 0.0)


def oriented_box_corners(box: OrientedBox) -> List[Point]:
    """
    Rogi prostokąta w kolejności TL, TR, BR, BL.

    Returns:
        List[Point]: Cztery rogi w pikselach mapy
    """
    rad = math.radians(box.rotation)
    cos_r, sin_r = math.cos(rad), math.sin(rad)
    half_w, half_h = box.width / 2, box.height / 2
    local = [(-half_w, -half_h), (half_w, -half_h), (half_w, half_h), (-half_w, half_h)]

    return [
        Point(box.center.x + lx * cos_r - ly * sin_r, box.center.y + lx * sin_r + ly * cos_r)
        for lx, ly in local
    ]


def point_in_oriented_box(point: Point, corners: Sequence[Point]) -> bool:
    """
    Sprawdza czy punkt leży w prostokącie (krawędzie włącznie).

    Args:
        point: Badany punkt
        corners: Rogi z oriented_box_corners()
    """
    if len(corners) != 4:
        return False
    a, b, d = corners[0], corners[1], corners[3]
    ab_x, ab_y = b.x - a.x, b.y - a.y
    ad_x, ad_y = d.x - a.x, d.y - a.y
    ap_x, ap_y = point.x - a.x, point.y - a.y

    dot_ab = ap_x * ab_x + ap_y * ab_y
    dot_ad = ap_x * ad_x + ap_y * ad_y
    return 0 <= dot_ab <= ab_x * ab_x + ab_y * ab_y and 0 <= dot_ad <= ad_x * ad_x + ad_y * ad_y


def segment_box_intersection(start: Point, end: Point, corners: Sequence[Point]) -> Optional[Point]:
    """
    Pierwsze przecięcie odcinka ruchu z krawędzią prostokąta.

    Krawędzie badane w kolejności: góra (TL-TR), prawa (TR-BR),
    dół (BR-BL), lewa (BL-TL). Wygrywa pierwsza trafiona krawędź,
    nie najbliższa punktowi startu.
    """
    for i in range(4):
        hit = segment_intersection(start, end, corners[i], corners[(i + 1) % 4])
        if hit is not None:
            return hit
    return None


# ─────────────────────────────────────────────────────────────────────────────
# SIATKA
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GridMetrics:
    """
    Ustawienia siatki strony.

    Attributes:
        cell_size (float): Piksele na kratkę
        units_per_cell (float): Jednostki mapy na kratkę
        grid_kind (str): Rodzaj siatki
        valid (bool): False gdy strony nie znaleziono (użyto domyślnych)
    """
    cell_size: float
    units_per_cell: float
    grid_kind: str = "square"
    valid: bool = True

    def to_map_units(self, pixels: float) -> float:
        return pixels / self.cell_size * self.units_per_cell

    def cell_of(self, pixel: float) -> int:
        return cell_of(pixel, self.cell_size)

    def cell_center(self, cell: int) -> float:
        return cell_center(cell, self.cell_size)


def round_half_up(value: float) -> int:
    """Zaokrąglenie połówek w górę (round() w Pythonie zaokrągla do parzystej)."""
    return int(math.floor(value + 0.5))


def cell_of(pixel: float, cell_size: float) -> int:
    """Indeks komórki zawierającej współrzędną w pikselach."""
    return round_half_up(pixel / cell_size - 0.5)


def cell_center(cell: int, cell_size: float) -> float:
    """Współrzędna środka komórki w pikselach."""
    return cell * cell_size + cell_size / 2


class GridResolver:
    """
    Odczytuje ustawienia siatki stron z hosta.

    Dla nieznanej strony zwraca wartości domyślne z valid=False
    i ostrzega prowadzącego TYLKO RAZ na każdą stronę.

    Attributes:
        host (Host): Źródło stron
        config (TrapSystemConfig): Wartości domyślne
        _warned (set): Strony, o których już ostrzeżono
    """

    def __init__(self, host: "Host", config: "TrapSystemConfig"):
        self.host = host
        self.config = config
        self._warned: set = set()

    def page_grid_metrics(self, page_id: Optional[str]) -> GridMetrics:
        """
        Zwraca ustawienia siatki strony.

        Args:
            page_id: ID strony

        Returns:
            GridMetrics: Ustawienia (domyślne, jeśli strony brak)
        """
        page = self.host.get_page(page_id) if page_id else None
        if page is None:
            key = page_id or "unknown"
            if key not in self._warned:
                self._warned.add(key)
                logger.warning("Page %s not found, using default grid settings", key)
                self.host.whisper_gm(f"⚠️ Page '{key}' not found - using default grid settings.")
            return GridMetrics(
                cell_size=self.config.default_cell_size,
                units_per_cell=self.config.default_units_per_cell,
                grid_kind=self.config.default_grid_kind,
                valid=False,
            )

        cell_size = page.grid_size
        if page.snapping_increment == 0 or not cell_size or cell_size < self.config.min_cell_size:
            cell_size = self.config.default_cell_size

        return GridMetrics(
            cell_size=float(cell_size),
            units_per_cell=float(page.scale_number or self.config.default_units_per_cell),
            grid_kind=page.grid_type or self.config.default_grid_kind,
            valid=True,
        )

    def warned_pages(self) -> List[str]:
        return sorted(self._warned)


# ─────────────────────────────────────────────────────────────────────────────
# FOOTPRINT I ODLEGŁOŚĆ
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Footprint:
    """
    Prostokąt komórek zajmowanych przez token.

    Attributes:
        x, y (int): Lewa-górna komórka
        width, height (int): Liczba komórek
        center (Optional[Point]): Środek tokena w pikselach (nie bierze
            udziału w porównaniu - footprint to zbiór komórek)
    """
    x: int
    y: int
    width: int
    height: int
    center: Optional[Point] = field(default=None, compare=False)

    def contains_cell(self, col: int, row: int) -> bool:
        return self.x <= col < self.x + self.width and self.y <= row < self.y + self.height

    def clamp_cell(self, col: int, row: int) -> Tuple[int, int]:
        """Przycina komórkę do wnętrza footprintu."""
        col = min(max(self.x, col), self.x + self.width - 1)
        row = min(max(self.y, row), self.y + self.height - 1)
        return col, row


def token_footprint(token: "Token", metrics: GridMetrics) -> Footprint:
    """
    Footprint tokena na siatce.

    x = round((left - w/2) / g),  width = ceil(w / g)
    """
    g = metrics.cell_size
    return Footprint(
        x=round_half_up((token.left - token.width / 2) / g),
        y=round_half_up((token.top - token.height / 2) / g),
        width=max(1, int(math.ceil(token.width / g))),
        height=max(1, int(math.ceil(token.height / g))),
        center=Point(token.left, token.top),
    )


def footprints_overlap(a: Footprint, b: Footprint) -> bool:
    """Czy prostokąty komórek mają wspólną komórkę."""
    return (
        a.x < b.x + b.width and a.x + a.width > b.x
        and a.y < b.y + b.height and a.y + a.height > b.y
    )


@dataclass(frozen=True)
class Distance:
    """
    Odległość środków dwóch tokenów.

    Attributes:
        pixels (float): W pikselach
        units (float): W jednostkach mapy (ft, m...)
    """
    pixels: float
    units: float


def distance_between(a: "Token", b: "Token", metrics: GridMetrics) -> Distance:
    """
    Odległość środków tokenów w pikselach i w jednostkach mapy.

    Returns:
        Distance: Obie wartości math.inf dla tokenów na różnych stronach
    """
    if a.page_id != b.page_id:
        return Distance(math.inf, math.inf)
    pixels = math.hypot(a.left - b.left, a.top - b.top)
    return Distance(pixels, metrics.to_map_units(pixels))


def token_radius_units(token: "Token", metrics: GridMetrics) -> float:
    """Połowa większego wymiaru tokena w jednostkach mapy."""
    return metrics.to_map_units(max(token.width, token.height) / 2)
