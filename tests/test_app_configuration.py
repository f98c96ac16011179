from pathlib import Path

import pytest

from group_inspector.configuration.app_configuration import AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "group_inspector.yml"


def test_reload_parses_yaml_section(config_path: Path) -> None:
    config_path.write_text(
        "group_inspector:\n"
        "  interval: 7\n"
        "  manual:\n"
        "    enabled: true\n"
        "    notify_target: 'guild:111'\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.inspector_section == {"interval": 7, "manual": {"enabled": True, "notify_target": "guild:111"}}
    assert config.get("missing", "fallback") == "fallback"


def test_top_level_mapping_used_without_section(config_path: Path) -> None:
    config_path.write_text("interval: 3\n", encoding="utf-8")

    assert AppConfig(config_path).inspector_section == {"interval": 3}


def test_missing_file_returns_empty(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.inspector_section == {}


def test_invalid_yaml_returns_empty(config_path: Path) -> None:
    config_path.write_text("interval: [unclosed\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_non_mapping_yaml_returns_empty(config_path: Path) -> None:
    config_path.write_text("- a\n- b\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("interval: 1\n", encoding="utf-8")
    config = AppConfig(config_path)

    config_path.write_text("interval: 2\n", encoding="utf-8")

    assert config.reload() == {"interval": 2}
