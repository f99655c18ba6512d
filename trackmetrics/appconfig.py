"""Configuration defaults and loading for trackmetrics.

The parsing functions never read configuration on their own; callers load a
config dict here (or build one) and pass it to ``parse_workout``/``parse_file``.

A JSON config file is optional. The first one found is merged over
``DEFAULT_CONFIG``:
  1. the path in the ``TRACKMETRICS_CONFIG`` environment variable
  2. ``trackmetrics_config.json`` in the working directory
  3. ``../trackmetrics_config.json``
"""

import copy
import json
import os
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "debug": False,
    # Raise CorruptFileError on a FIT CRC mismatch instead of logging a warning
    "strict_crc": False,
    # Extra GPX <extensions> element names, tried after the built-in ones
    "extension_fields": {
        "heart_rate": [],
        "cadence": [],
    },
}

CONFIG_ENV_VAR = "TRACKMETRICS_CONFIG"

# Candidate JSON config file locations (searched in order)
_FILE_PATHS: list[Path] = [
    Path("trackmetrics_config.json"),
    Path("../trackmetrics_config.json"),
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _candidate_paths() -> list[Path]:
    paths = list(_FILE_PATHS)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.insert(0, Path(env_path))
    return paths


def _load_from_file() -> dict[str, Any] | None:
    """Try each candidate path; return parsed JSON or ``None``."""
    for path in _candidate_paths():
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    loaded = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ValueError(f"Could not read config file {path}: {e}") from e
            if not isinstance(loaded, dict):
                raise ValueError(f"Config file {path} must contain a JSON object")
            return loaded
    return None


def merge_config(overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Return a fresh copy of the defaults with *overrides* applied.

    ``extension_fields`` is merged per key so a file can extend just one of
    the tables.

    Raises:
        ValueError: ``extension_fields`` is not a mapping of name lists.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not overrides:
        return config
    for key, value in overrides.items():
        if key == "extension_fields":
            config["extension_fields"].update(_extension_tables(value))
        else:
            config[key] = value
    return config


def _extension_tables(value: Any) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        raise ValueError(f"Config key 'extension_fields' must be an object, got {type(value).__name__}")
    tables = {}
    for field, names in value.items():
        if isinstance(names, str) or not isinstance(names, (list, tuple)):
            raise ValueError(f"Config key 'extension_fields.{field}' must be a list of element names")
        tables[field] = [str(name) for name in names]
    return tables


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config() -> dict[str, Any]:
    """Return the effective configuration (defaults plus any config file)."""
    return merge_config(_load_from_file())
