import json
from pathlib import Path

from pathfinderx.settings import EngineSettings, load_settings, settings_from_mapping


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "nope.json") == EngineSettings()


def test_malformed_file_gives_defaults(tmp_path: Path) -> None:
    broken = tmp_path / "config.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_settings(broken) == EngineSettings()

    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    assert load_settings(listing) == EngineSettings()


def test_values_are_read_and_clamped(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "strategy": " Basic ",
                "max_candidates": 3,
                "max_relations": 0,
                "anchor_max_hops": "4",
                "css_length_limit": "wide",
                "text_max_length": True,
                "theme": "dark",
            }
        ),
        encoding="utf-8",
    )
    settings = load_settings(path)

    assert settings.strategy == "basic"
    assert settings.max_candidates == 3
    assert settings.max_relations == 1
    assert settings.anchor_max_hops == 4
    assert settings.css_length_limit == 100
    assert settings.text_max_length == 50


def test_settings_from_mapping_keeps_base_values() -> None:
    base = EngineSettings(max_alternates=2)
    settings = settings_from_mapping({"triangulation_attribute_limit": 5}, base)
    assert settings.max_alternates == 2
    assert settings.triangulation_attribute_limit == 5
