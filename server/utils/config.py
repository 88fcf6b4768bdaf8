"""Configuration utilities for loading CI ingestion settings from YAML."""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CI_CONFIG: dict[str, Any] = {
    "verify_api_key": True,
    "default_reporter": {"user_id": None, "email": None},
    "link_base_url": "https://github.com",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def _default_config_path() -> Path:
    env_path = os.getenv("CI_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    # Default to config/ci.yaml relative to project root
    project_root = Path(__file__).parent.parent.parent
    return project_root / "config" / "ci.yaml"


def load_ci_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load CI ingestion configuration.

    Values from the YAML file are laid over DEFAULT_CI_CONFIG, then the
    ``CI_*`` environment variables are applied on top.

    Args:
        config_path: Path to config file. If None, uses $CI_CONFIG_PATH or config/ci.yaml.

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CI_CONFIG)
    path = Path(config_path) if config_path else _default_config_path()

    if path.exists():
        try:
            with open(path) as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load CI config from %s: %s", path, e)
            loaded = {}

        section = loaded.get("ci", loaded) if isinstance(loaded, dict) else {}
        if not isinstance(section, dict):
            logger.warning("Ignoring CI config in %s: expected a mapping", path)
            section = {}
        for key, value in section.items():
            if key == "default_reporter" and isinstance(value, dict):
                config["default_reporter"].update(value)
            elif key in config:
                config[key] = value

    verify = os.getenv("CI_VERIFY_API_KEY")
    if verify is not None:
        config["verify_api_key"] = verify
    if os.getenv("CI_DEFAULT_REPORTER_ID"):
        config["default_reporter"]["user_id"] = os.getenv("CI_DEFAULT_REPORTER_ID")
    if os.getenv("CI_DEFAULT_REPORTER_EMAIL"):
        config["default_reporter"]["email"] = os.getenv("CI_DEFAULT_REPORTER_EMAIL")
    if os.getenv("CI_LINK_BASE_URL"):
        config["link_base_url"] = os.getenv("CI_LINK_BASE_URL")

    config["verify_api_key"] = _as_bool(config["verify_api_key"])
    config["link_base_url"] = str(config["link_base_url"]).rstrip("/")
    return config
