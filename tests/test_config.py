"""
Testy dla loadera konfiguracji.

Testuje:
- Wartości z defaults.yaml
- Nadpisania słownikiem i plikiem overrides.yaml
- Rekurencyjny merge
- Cache i reload
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem.core.config_loader import ConfigLoader, TrapSystemConfig


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def loader():
    return ConfigLoader()


@pytest.fixture
def campaign_dir(tmp_path):
    """Folder danych kampanii z własnymi defaults i overrides."""
    (tmp_path / "defaults.yaml").write_text(
        "movement:\n"
        "  min_movement_factor: 0.3\n"
        "  final_snap_delay: 0.5\n"
        "aura_colors:\n"
        "  armed: '#00ff00'\n",
        encoding="utf-8",
    )
    (tmp_path / "overrides.yaml").write_text(
        "movement:\n"
        "  final_snap_delay: 0.0\n",
        encoding="utf-8",
    )
    return tmp_path


# ═══════════════════════════════════════════════════════════════════════════
# TEST: DEFAULTS
# ═══════════════════════════════════════════════════════════════════════════

def test_defaults_are_loaded(loader):
    config = loader.load_system_config()

    assert config.default_cell_size == 70
    assert config.default_units_per_cell == 5
    assert config.min_movement_factor == pytest.approx(0.3)
    assert config.final_snap_delay == pytest.approx(0.5)
    assert config.immunity_marker == "blue"
    assert config.immunity_tag == "ignoretraps"
    assert config.notice_debounce_seconds == 100
    assert config.default_luck_die == "1d6"


def test_aura_colors(loader):
    config = loader.load_system_config()

    assert config.color("armed") == "#00ff00"
    assert config.color("disarmed") == "#ff0000"
    assert config.color("paused") == "#ffa500"
    assert loader.get_aura_colors()["detection"] == "#808080"


def test_skill_types(loader):
    skills = loader.get_skill_types()

    assert "Athletics" in skills
    assert "Dexterity Saving Throw" in skills
    assert skills[0] == "Flat Roll"


def test_empty_dict_gives_dataclass_defaults():
    config = TrapSystemConfig.from_dict({})

    assert config == TrapSystemConfig()


# ═══════════════════════════════════════════════════════════════════════════
# TEST: OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════

def test_dict_override_keeps_siblings(loader):
    config = loader.load_system_config({"movement": {"final_snap_delay": 0}})

    assert config.final_snap_delay == 0.0
    assert config.min_movement_factor == pytest.approx(0.3)


def test_overrides_file_is_applied(campaign_dir):
    loader = ConfigLoader(str(campaign_dir))

    config = loader.load_system_config()

    assert config.final_snap_delay == 0.0
    assert config.min_movement_factor == pytest.approx(0.3)
    assert config.color("armed") == "#00ff00"


def test_merge_does_not_mutate_cache(loader):
    loader.load_merged({"movement": {"final_snap_delay": 9}})

    assert loader.get_defaults()["movement"]["final_snap_delay"] == 0.5


def test_deep_merge(loader):
    merged = loader._deep_merge(
        {"a": {"b": 1, "c": 2}, "d": [1]},
        {"a": {"c": 3}, "d": [2], "e": 4},
    )

    assert merged == {"a": {"b": 1, "c": 3}, "d": [2], "e": 4}


def test_reload_reads_files_again(campaign_dir):
    loader = ConfigLoader(str(campaign_dir))
    assert loader.load_system_config().final_snap_delay == 0.0

    (campaign_dir / "overrides.yaml").write_text("movement:\n  final_snap_delay: 1.5\n", encoding="utf-8")
    assert loader.load_system_config().final_snap_delay == 0.0

    loader.reload()
    assert loader.load_system_config().final_snap_delay == 1.5
