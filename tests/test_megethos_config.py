from __future__ import annotations

import json
from pathlib import Path

import pytest

import megethos_config
from megethos_config import DEFAULTS_FILE, MegethosConfig, SharedConfigManager, load_defaults


def test_bundled_defaults_file_loads():
    defaults = load_defaults(DEFAULTS_FILE)
    assert defaults.files_min_size == 500 * 1024**2
    assert defaults.folders_min_size == 0
    assert "node_modules" in defaults.presets["dev"].exclude_dirs
    assert "bak" in defaults.presets["scratch"].exclude_extensions


def test_missing_defaults_file_uses_builtins(tmp_path: Path):
    defaults = load_defaults(tmp_path / "absent.toml")
    assert defaults.files_min_size == 500 * 1024**2
    assert defaults.presets == {}


def test_custom_defaults_file(tmp_path: Path):
    f = tmp_path / "d.toml"
    f.write_text('[defaults]\nfiles_min_size = "1G"\n\n[presets.media]\nexclude_dirs = ["Photos"]\n')
    defaults = load_defaults(f)
    assert defaults.files_min_size == 1024**3
    assert defaults.presets["media"].exclude_dirs == ["Photos"]


def test_save_preserves_other_tool_sections(tmp_path: Path):
    kosmos = tmp_path / ".kosmos"
    kosmos.mkdir()
    (kosmos / "config.json").write_text(json.dumps({"version": "1.0", "monosis": {"target_location": "/t"}}))

    manager = SharedConfigManager(kosmos)
    cfg = manager.load()
    cfg.add_exclude_dirs(["node_modules"])
    manager.save(cfg)

    data = json.loads((kosmos / "config.json").read_text())
    assert data["monosis"] == {"target_location": "/t"}
    assert data["megethos"]["exclude_dirs"] == ["node_modules"]
    assert manager.load().exclude_dirs == ["node_modules"]


def test_corrupt_config_falls_back_to_defaults(tmp_path: Path):
    (tmp_path / "config.json").write_text("{not json")
    assert SharedConfigManager(tmp_path).load() == MegethosConfig()


def test_add_exclusions_deduplicates_and_normalizes():
    cfg = MegethosConfig()
    assert cfg.add_exclude_extensions(["BAK", ".bak", "tmp"]) == [".bak", ".tmp"]
    assert cfg.add_exclude_dirs([".git", ".git"]) == [".git"]
    with pytest.raises(ValueError):
        cfg.add_exclude_extensions(["."])


def test_record_run_tracks_largest():
    cfg = MegethosConfig()
    cfg.record_run(10)
    cfg.record_run(5)
    assert cfg.stats == {"total_runs": 2, "largest_seen_bytes": 10}
    assert cfg.last_run is not None


def test_defaults_top_key(tmp_path: Path):
    f = tmp_path / "d.toml"
    f.write_text("[defaults]\ntop = 3\n")
    assert load_defaults(f).top == 3
    assert load_defaults(DEFAULTS_FILE).top is None


@pytest.mark.parametrize("value", ["0", "-2", '"ten"', "true"])
def test_defaults_top_must_be_positive_integer(tmp_path: Path, value):
    f = tmp_path / "d.toml"
    f.write_text(f"[defaults]\ntop = {value}\n")
    with pytest.raises(ValueError, match="top"):
        load_defaults(f)


def test_failed_save_keeps_previous_config(tmp_path: Path, monkeypatch):
    manager = SharedConfigManager(tmp_path)
    cfg = manager.load()
    cfg.add_exclude_dirs(["build"])
    manager.save(cfg)
    before = manager.config_file.read_text()

    def broken_replace(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(megethos_config.os, "replace", broken_replace)
    cfg.add_exclude_dirs(["dist"])
    with pytest.raises(OSError, match="No space left"):
        manager.save(cfg)

    assert manager.config_file.read_text() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["config.json"]
