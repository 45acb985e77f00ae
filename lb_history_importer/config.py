# -*- coding: utf-8 -*-
"""Cached credentials and run defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict

CONFIG_FILE = Path.home() / ".lb_history_importer_config.json"
TOKEN_ENV = "LISTENBRAINZ_TOKEN"

DEFAULT_BATCH_SIZE = 1000
DEFAULT_MIN_PLAY_TIME = 30  # seconds; also the Spotify de-dup window


def config_path() -> Path:
    override = os.environ.get("LB_IMPORTER_CONFIG")
    return Path(override).expanduser() if override else CONFIG_FILE


def load_config() -> Dict[str, str]:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(cfg: Dict[str, str]) -> None:
    path = config_path()
    path.write_text(json.dumps(cfg, ensure_ascii=False, indent=2), encoding="utf-8")
    try:
        path.chmod(0o600)
    except OSError:
        pass


def delete_config() -> None:
    try:
        config_path().unlink()
    except FileNotFoundError:
        pass
