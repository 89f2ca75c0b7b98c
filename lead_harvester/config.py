"""Configuration helpers for the lead harvesting pipeline."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .emails.crawler import CrawlerConfig
from .emails.scoring import DEFAULT_TRACKING_ID_LENGTH
from .orchestrator.service import PipelineSettings
from .search.dataforseo import DEFAULT_LOCATION_CODE

LOGGER = logging.getLogger(__name__)

ENV_DATA_DIR = "LEAD_HARVESTER_DATA_DIR"
ENV_LOGIN = "DATAFORSEO_LOGIN"
ENV_PASSWORD = "DATAFORSEO_PASSWORD"

DEFAULT_DATA_DIR = "data"

DOCUMENT_FILES = {
    "dnc": "dnc-list.json",
    "pool": "leads-pool.json",
    "leads": "local-leads.json",
    "progress": "scrape-progress.json",
    "logs": "logs.json",
}


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return value


def _number(section: Mapping[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Configuration value '{key}' must be a number, got {value!r}") from exc


@dataclass
class DataForSEOSettings:
    login: Optional[str] = None
    password: Optional[str] = None
    location_code: int = DEFAULT_LOCATION_CODE
    language_code: str = "en"
    calls_per_minute: Optional[float] = None

    @property
    def configured(self) -> bool:
        return bool(self.login and self.password)


@dataclass
class Settings:
    """Typed view of the configuration file plus environment overrides."""

    data_dir: Path = Path(DEFAULT_DATA_DIR)
    dataforseo: DataForSEOSettings = field(default_factory=DataForSEOSettings)
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    tracking_id_length: int = DEFAULT_TRACKING_ID_LENGTH
    daily_target: int = 1000

    def document_path(self, name: str) -> Path:
        return self.data_dir / DOCUMENT_FILES[name]

    @classmethod
    def from_mapping(
        cls,
        config: Optional[Mapping[str, Any]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        config = config or {}
        environ = os.environ if environ is None else environ

        api = _section(config, "dataforseo")
        crawler = _section(config, "crawler")
        pipeline = _section(config, "pipeline")
        scoring = _section(config, "scoring")

        calls_per_minute = api.get("rate_limit_per_minute")
        dataforseo = DataForSEOSettings(
            login=environ.get(ENV_LOGIN) or api.get("login"),
            password=environ.get(ENV_PASSWORD) or api.get("password"),
            location_code=int(_number(api, "location_code", DEFAULT_LOCATION_CODE)),
            language_code=str(api.get("language_code") or "en"),
            calls_per_minute=float(calls_per_minute) if calls_per_minute else None,
        )

        defaults = PipelineSettings()
        pipeline_settings = PipelineSettings(
            location_delay=_number(pipeline, "location_delay", defaults.location_delay),
            category_delay=_number(pipeline, "category_delay", defaults.category_delay),
            broad_location_delay=_number(pipeline, "broad_location_delay", defaults.broad_location_delay),
            lead_delay=_number(pipeline, "lead_delay", defaults.lead_delay),
            min_rating=_number(pipeline, "min_rating", defaults.min_rating),
            limit_per_target=int(_number(pipeline, "limit_per_target", defaults.limit_per_target)),
            limit_per_category=int(_number(pipeline, "limit_per_category", defaults.limit_per_category)),
        )

        crawler_defaults = CrawlerConfig()
        crawler_settings = CrawlerConfig(
            timeout_seconds=_number(crawler, "timeout_seconds", crawler_defaults.timeout_seconds),
            page_delay_seconds=_number(crawler, "page_delay_seconds", crawler_defaults.page_delay_seconds),
            max_pages=int(_number(crawler, "max_pages", crawler_defaults.max_pages)),
        )

        data_dir = environ.get(ENV_DATA_DIR) or config.get("data_dir") or DEFAULT_DATA_DIR
        settings = cls(
            data_dir=Path(data_dir),
            dataforseo=dataforseo,
            crawler=crawler_settings,
            pipeline=pipeline_settings,
            tracking_id_length=int(_number(scoring, "tracking_id_length", DEFAULT_TRACKING_ID_LENGTH)),
            daily_target=int(_number(config, "daily_target", 1000)),
        )
        LOGGER.debug("Loaded settings with data directory %s", settings.data_dir)
        return settings


def load_settings(path: Optional[str | Path] = None, *, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load :class:`Settings` from ``path`` (optional) and the environment."""

    config = load_configuration(path) if path else {}
    return Settings.from_mapping(config, environ=environ)


__all__ = [
    "ConfigurationError",
    "DataForSEOSettings",
    "Settings",
    "load_configuration",
    "load_settings",
]
