import json
from pathlib import Path

import pytest

from lead_harvester.config import ConfigurationError, Settings, load_configuration, load_settings


def test_load_configuration_from_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"data_dir": "leads"}), encoding="utf-8")

    assert load_configuration(config_path) == {"data_dir": "leads"}


def test_load_configuration_from_yaml(tmp_path: Path) -> None:
    pytest.importorskip("yaml")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("crawler:\n  max_pages: 5\npipeline:\n  lead_delay: 0\n", encoding="utf-8")

    settings = load_settings(config_path, environ={})

    assert settings.crawler.max_pages == 5
    assert settings.pipeline.lead_delay == 0


def test_empty_yaml_is_empty_mapping(tmp_path: Path) -> None:
    pytest.importorskip("yaml")
    config_path = tmp_path / "config.yml"
    config_path.write_text("", encoding="utf-8")

    assert load_configuration(config_path) == {}


@pytest.mark.parametrize(
    "name, content",
    [
        ("config.json", "{not json"),
        ("config.json", "[1, 2]"),
        ("config.toml", "a = 1"),
    ],
)
def test_bad_configuration_files(tmp_path: Path, name: str, content: str) -> None:
    config_path = tmp_path / name
    config_path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(config_path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_configuration(tmp_path / "absent.json")


def test_environment_overrides_file_values(tmp_path: Path) -> None:
    settings = Settings.from_mapping(
        {
            "data_dir": "from-file",
            "dataforseo": {"login": "file-login", "password": "file-secret", "rate_limit_per_minute": 30},
            "scoring": {"tracking_id_length": 16},
            "daily_target": 250,
        },
        environ={"DATAFORSEO_LOGIN": "env-login", "LEAD_HARVESTER_DATA_DIR": str(tmp_path)},
    )

    assert settings.dataforseo.login == "env-login"
    assert settings.dataforseo.password == "file-secret"
    assert settings.dataforseo.configured
    assert settings.dataforseo.calls_per_minute == 30
    assert settings.tracking_id_length == 16
    assert settings.daily_target == 250
    assert settings.document_path("dnc") == tmp_path / "dnc-list.json"


def test_defaults_without_configuration() -> None:
    settings = Settings.from_mapping(None, environ={})

    assert settings.data_dir == Path("data")
    assert not settings.dataforseo.configured
    assert settings.pipeline.min_rating == 3.5
    assert settings.crawler.max_pages == 3


def test_non_numeric_values_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_mapping({"pipeline": {"lead_delay": "soon"}}, environ={})
    with pytest.raises(ConfigurationError):
        Settings.from_mapping({"crawler": "fast"}, environ={})
