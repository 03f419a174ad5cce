from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "data_file": "data.json",
    "host": "127.0.0.1",
    "port": 3000,
    "api_url": "http://127.0.0.1:3000/api",
    "page_size": 25,
    "currency": "₹",
    "monthly_goal": 0,
    "client_timeout": 10,
    "output_modules": {
        "csv": "budget_tracker.outputs.csv_output.CSVOutput",
        "json": "budget_tracker.outputs.json_output.JSONOutput",
    },
    "loaders": {
        "csv": "budget_tracker.loaders.csv_loader.CSVLoader",
        "json": "budget_tracker.loaders.json_loader.JSONLoader",
    },
    "quick_adds": {
        "food": {"type": "expense", "category": "Food", "amount": 200},
        "rent": {"type": "expense", "category": "Rent", "amount": 10000},
        "salary": {"type": "income", "category": "Salary", "amount": 50000},
    },
}

# Environment variable -> (config key, converter)
ENV_OVERRIDES = {
    "PORT": ("port", int),
    "BUDGET_TRACKER_DATA_FILE": ("data_file", str),
    "BUDGET_TRACKER_API_URL": ("api_url", str),
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def _apply_env(config: Dict[str, object]) -> Dict[str, object]:
    for var, (key, convert) in ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if raw:
            config[key] = convert(raw)
    return config


def _read_file(path: str | Path | None) -> Dict[str, object]:
    if path is None or not Path(path).exists():
        return {}
    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    """Load a YAML config file merged over the defaults.

    A missing file yields the defaults. Environment overrides are applied
    last.
    """
    return _apply_env(_merge_defaults(_read_file(path), DEFAULT_CONFIG))


def save_config(config: Dict[str, object], path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)


def update_config(path: str | Path, **values: object) -> Dict[str, object]:
    """Write ``values`` into the file at ``path``, keeping its other keys.

    Only what the file already holds is rewritten, so defaults and
    environment overrides are not persisted. Returns the merged config.
    """
    data = _read_file(path)
    data.update(values)
    save_config(data, path)
    return load_config(path)
