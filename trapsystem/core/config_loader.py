"""
Loader konfiguracji systemu pułapek z automatycznym merge defaults.

Wszystkie stałe (kolory aur, progi ruchu, szablony powiadomień,
lista testów umiejętności) żyją w plikach YAML:
- defaults.yaml: wartości bazowe
- overrides.yaml: (opcjonalny) nadpisania dla konkretnej kampanii

Logika merge:
    1. Wczytaj defaults.yaml
    2. Jeśli istnieje overrides.yaml - nałóż go rekurencyjnie
    3. Jeśli podano słownik overrides - nałóż go na końcu
    4. Zbuduj TrapSystemConfig (typowany widok na słownik)

Przykład:
    defaults.yaml:
        movement:
            min_movement_factor: 0.3
            final_snap_delay: 0.5

    overrides.yaml:
        movement:
            final_snap_delay: 0.0   # nadpisuje default
            # min_movement_factor nie podane -> 0.3 z defaults

Użycie:
    >>> loader = ConfigLoader("data/")
    >>> config = loader.load_system_config()
    >>> config.min_movement_factor
    0.3
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional
import yaml
import copy


DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent.parent / "data"


@dataclass
class TrapSystemConfig:
    """
    Typowany widok na połączoną konfigurację.

    Attributes:
        default_cell_size (float): Rozmiar kratki (px) dla nieznanej strony
        default_units_per_cell (float): Jednostki mapy na kratkę
        default_grid_kind (str): Rodzaj siatki dla nieznanej strony
        min_cell_size (float): Poniżej tej wartości siatka jest ignorowana
        objects_layer (str): Warstwa, na której tokeny uruchamiają pułapki
        min_movement_factor (float): Minimalny ruch (ułamek kratki)
        final_snap_delay (float): Opóźnienie drugiego przyciągnięcia (s)
        occupied_radius_factor (float): Promień zajętości (ułamek kratki)
        immunity_marker (str): Znacznik statusu odporności
        immunity_tag (str): Tag w notatce odporności
        perception_attribute (str): Atrybut arkusza z pasywną percepcją
        notice_debounce_seconds (float): Okno tłumienia powiadomień
        default_luck_die (str): Kość szczęścia, gdy nie podano
        aura_colors (Dict[str, str]): Kolory aur wg nazwy
        skill_types (List[str]): Znane nazwy testów
    """
    default_cell_size: float = 70.0
    default_units_per_cell: float = 5.0
    default_grid_kind: str = "square"
    min_cell_size: float = 2.0
    objects_layer: str = "objects"
    min_movement_factor: float = 0.3
    final_snap_delay: float = 0.5
    occupied_radius_factor: float = 0.5
    immunity_marker: str = "blue"
    immunity_tag: str = "ignoretraps"
    perception_attribute: str = "passive_wisdom"
    notice_debounce_seconds: float = 100.0
    default_luck_die: str = "1d6"
    player_notice_title: str = "⚠️ Alert!"
    gm_notice_title: str = "🎯 Passive Spot"
    default_player_notice: str = "You notice something odd about {trapName}..."
    default_gm_notice: str = "{charName} spotted {trapName} (DC {trapDC})."
    aura_colors: Dict[str, str] = field(default_factory=dict)
    skill_types: List[str] = field(default_factory=list)

    def color(self, name: str) -> str:
        """Zwraca kolor aury po nazwie (np. 'armed')."""
        return self.aura_colors[name]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrapSystemConfig":
        """
        Buduje konfigurację z połączonego słownika YAML.

        Brakujące sekcje dostają wartości domyślne dataclassy.
        """
        grid = data.get("grid", {})
        movement = data.get("movement", {})
        immunity = data.get("immunity", {})
        detection = data.get("detection", {})
        base = cls()

        return cls(
            default_cell_size=float(grid.get("default_cell_size", base.default_cell_size)),
            default_units_per_cell=float(grid.get("default_units_per_cell", base.default_units_per_cell)),
            default_grid_kind=grid.get("default_kind", base.default_grid_kind),
            min_cell_size=float(grid.get("min_cell_size", base.min_cell_size)),
            objects_layer=movement.get("objects_layer", base.objects_layer),
            min_movement_factor=float(movement.get("min_movement_factor", base.min_movement_factor)),
            final_snap_delay=float(movement.get("final_snap_delay", base.final_snap_delay)),
            occupied_radius_factor=float(movement.get("occupied_radius_factor", base.occupied_radius_factor)),
            immunity_marker=immunity.get("status_marker", base.immunity_marker),
            immunity_tag=immunity.get("tag", base.immunity_tag),
            perception_attribute=detection.get("perception_attribute", base.perception_attribute),
            notice_debounce_seconds=float(detection.get("notice_debounce_seconds", base.notice_debounce_seconds)),
            default_luck_die=detection.get("default_luck_die", base.default_luck_die),
            player_notice_title=detection.get("player_notice_title", base.player_notice_title),
            gm_notice_title=detection.get("gm_notice_title", base.gm_notice_title),
            default_player_notice=detection.get("default_player_notice", base.default_player_notice),
            default_gm_notice=detection.get("default_gm_notice", base.default_gm_notice),
            aura_colors=dict(data.get("aura_colors", {})),
            skill_types=list(data.get("skill_types", [])),
        )


class ConfigLoader:
    """
    Ładuje konfigurację z plików YAML z automatycznym merge defaults.

    Attributes:
        data_path (Path): Ścieżka do folderu data/
        _defaults (Dict): Cache wczytanych defaults
        _overrides (Dict): Cache wczytanego overrides.yaml

    Example:
        >>> loader = ConfigLoader("data/")
        >>> loader.load_system_config({"movement": {"final_snap_delay": 0}}).final_snap_delay
        0.0
    """

    def __init__(self, data_path: Optional[str] = None):
        """
        Inicjalizuje loader ze ścieżką do danych.

        Args:
            data_path: Ścieżka do folderu z plikami YAML
                (domyślnie data/ w katalogu projektu)
        """
        self.data_path = Path(data_path) if data_path else DEFAULT_DATA_PATH
        self._defaults: Optional[Dict] = None
        self._overrides: Optional[Dict] = None

    # ─────────────────────────────────────────────────────────────────────────
    # WCZYTYWANIE PLIKÓW
    # ─────────────────────────────────────────────────────────────────────────

    def _load_yaml(self, filename: str) -> Dict:
        """
        Wczytuje plik YAML.

        Args:
            filename: Nazwa pliku (bez ścieżki)

        Returns:
            Dict: Zawartość pliku YAML

        Raises:
            FileNotFoundError: Jeśli plik nie istnieje
        """
        filepath = self.data_path / filename
        with open(filepath, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def get_defaults(self) -> Dict:
        """
        Zwraca słownik z wartościami domyślnymi.

        Cache'uje wczytany plik - kolejne wywołania są szybkie.
        """
        if self._defaults is None:
            self._defaults = self._load_yaml("defaults.yaml")
        return self._defaults

    def get_overrides(self) -> Dict:
        """Zwraca overrides.yaml albo pusty słownik, jeśli pliku nie ma."""
        if self._overrides is None:
            if (self.data_path / "overrides.yaml").exists():
                self._overrides = self._load_yaml("overrides.yaml")
            else:
                self._overrides = {}
        return self._overrides

    def get_aura_colors(self) -> Dict[str, str]:
        """Zwraca mapę nazwa -> kolor aury."""
        return self.get_defaults().get("aura_colors", {})

    def get_skill_types(self) -> List[str]:
        """Zwraca listę znanych testów umiejętności."""
        return self.get_defaults().get("skill_types", [])

    # ─────────────────────────────────────────────────────────────────────────
    # KONFIGURACJA SYSTEMU
    # ─────────────────────────────────────────────────────────────────────────

    def load_merged(self, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Zwraca defaults z nałożonymi overrides (plik, potem słownik).

        Args:
            overrides: Dodatkowe nadpisania (np. z testów)

        Returns:
            Dict: Połączona konfiguracja (głęboka kopia)
        """
        result = copy.deepcopy(self.get_defaults())
        result = self._deep_merge(result, self.get_overrides())
        if overrides:
            result = self._deep_merge(result, overrides)
        return result

    def load_system_config(
        self,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TrapSystemConfig:
        """
        Buduje TrapSystemConfig z plików YAML.

        Args:
            overrides: Dodatkowe nadpisania

        Returns:
            TrapSystemConfig: Gotowa konfiguracja
        """
        return TrapSystemConfig.from_dict(self.load_merged(overrides))

    # ─────────────────────────────────────────────────────────────────────────
    # HELPERS
    # ─────────────────────────────────────────────────────────────────────────

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """
        Rekurencyjnie łączy dwa słowniki.

        Wartości z override nadpisują base.
        Zagnieżdżone słowniki są łączone rekurencyjnie.

        Args:
            base: Słownik bazowy
            override: Słownik z nadpisaniami

        Returns:
            Dict: Połączony słownik
        """
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def reload(self) -> None:
        """Czyści cache - wymusza ponowne wczytanie plików."""
        self._defaults = None
        self._overrides = None
