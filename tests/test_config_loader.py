import sys
import os

# srcディレクトリをパスに追加
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from config_loader import DEFAULTS, load_guard_config


def test_missing_file_returns_defaults(tmp_path):
    cfg = load_guard_config(str(tmp_path / "none.yml"))
    assert cfg == DEFAULTS
    assert cfg is not DEFAULTS


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "guard.yml"
    path.write_text("sub_depts: ['85']\nscan_interval_seconds: 30\n", encoding="utf-8")

    cfg = load_guard_config(str(path))

    assert cfg["sub_depts"] == [85]
    assert cfg["scan_interval_seconds"] == 30
    assert cfg["day_boundary_hour"] == 2


def test_env_selects_config_path(tmp_path, monkeypatch):
    path = tmp_path / "guard.yml"
    path.write_text("day_boundary_hour: 3\n", encoding="utf-8")
    monkeypatch.setenv("PALLET_GUARD_CONFIG", str(path))

    assert load_guard_config()["day_boundary_hour"] == 3


def test_bundled_config_matches_defaults(monkeypatch):
    monkeypatch.delenv("PALLET_GUARD_CONFIG", raising=False)
    assert load_guard_config() == DEFAULTS
