# harupan/config.py
import json
from pathlib import Path

import yaml

DEFAULT_CONFIG = {
    "assets_dir": "./assets",
    "files_dir": "./files",
    "model": None,
    "device": "cpu",
    "imgsz": 640,
    "warmup_runs": 0,
    "log_level": "INFO",
}


def load_config(path: str = None):
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    if p.suffix.lower() in {".yml", ".yaml"}:
        return yaml.safe_load(p.read_text()) or {}
    if p.suffix.lower() == ".json":
        return json.loads(p.read_text())
    raise ValueError("Config must be .yml/.yaml or .json")


def with_defaults(config: dict) -> dict:
    # file values win over defaults, explicit None does not
    merged = dict(DEFAULT_CONFIG)
    merged.update({k: v for k, v in (config or {}).items() if v is not None})
    return merged


def pick(*vals):
    # first non-None
    for v in vals:
        if v is not None:
            return v
    return None
