"""Runtime configuration for lightdao connections and marshaling."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from lightdao.utils.logging import logger

DEFAULTS = {
    "connection": {
        "timeout": 60.0,
        "journal_mode": "WAL",
        "synchronous": "NORMAL",
        "foreign_keys": True,
        "check_same_thread": True,
    },
    "marshal": {
        "strict": False,
    },
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce(value: str, default_value: Any) -> Any:
    """Convert an environment string to the type of ``default_value``."""
    if isinstance(default_value, bool):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    return value


def load_runtime_config(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load runtime configuration from a JSON file and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (LIGHTDAO_<SECTION>_<KEY>)
    2. JSON file at ``path`` (or LIGHTDAO_CONFIG when ``path`` is None)
    3. Built-in defaults

    Unknown sections, unknown keys and values of the wrong type are ignored.

    Args:
        path: Optional JSON config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    if path is None:
        path = os.environ.get("LIGHTDAO_CONFIG")

    if path is not None:
        config_path = Path(path)
        try:
            if config_path.exists():
                with open(config_path, encoding="utf-8") as f:
                    user = json.load(f)

                if isinstance(user, dict):
                    for section, values in user.items():
                        if section not in cfg or not isinstance(values, dict):
                            continue
                        for key, value in values.items():
                            if key not in cfg[section]:
                                continue
                            default_value = cfg[section][key]
                            if isinstance(value, type(default_value)):
                                cfg[section][key] = value
                            elif isinstance(default_value, float) and type(value) is int:
                                cfg[section][key] = float(value)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load config file from {config_path}: {e}")
            logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"LIGHTDAO_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce(value, cfg[section][key])
                except ValueError as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )

    return cfg
