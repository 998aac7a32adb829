# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Process configuration for the ops app and the CLI.

Layers, lowest first: built-in defaults, ``config.yml`` (or the file named by
ESTILES_CONFIG), then ESTILES_SECTION__KEY environment variables (a ``.env``
file is read first). The store adapter itself never reads this module; it is
configured only through its connection URI.
"""

from __future__ import annotations
import os, yaml, threading
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlencode
from dotenv import load_dotenv

_ENV_PREFIX = "ESTILES_"

_DEFAULTS = {
    "store": {"uri": None, "options": {}},
    "log": {"level": "INFO"},
    "ops_log": None,
    "server": {"host": "127.0.0.1", "port": 8087},
}

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        elif v is not None:
            out[k] = v
    return out

def _env_value(s: str) -> Any:
    low = s.lower()
    if low in {"true", "false"}:
        return low == "true"
    return int(s) if s.isdigit() else s

def _env_to_dict() -> Dict[str, Any]:
    # ESTILES_STORE__OPTIONS__INDEX=tiles -> {"store": {"options": {"index": "tiles"}}}
    envmap: Dict[str, Any] = {}
    for k, v in os.environ.items():
        if not k.startswith(_ENV_PREFIX) or k == _ENV_PREFIX + "CONFIG":
            continue
        *parents, leaf = k[len(_ENV_PREFIX):].lower().split("__")
        cur = envmap
        for part in parents:
            cur = cur.setdefault(part, {})
        cur[leaf] = _env_value(v)
    return envmap

def _load(path: str | Path | None) -> Dict[str, Any]:
    load_dotenv()
    p = Path(path or os.environ.get(_ENV_PREFIX + "CONFIG", "./config.yml"))
    file_cfg: Dict[str, Any] = {}
    if p.is_file():
        with p.open("r", encoding="utf-8") as f:
            file_cfg = yaml.safe_load(f) or {}
    return _deep_merge(_deep_merge(_DEFAULTS, file_cfg), _env_to_dict())


class Config:
    """Thread-safe dotted-path view over one backing dict."""

    def __init__(self, data: Dict[str, Any] | None = None,
                 path: str | Path | None = None):
        self._lock = threading.RLock()
        self._cfg: Dict[str, Any] = dict(data) if data is not None else _load(path)

    def get(self, path: str, default: Any = None) -> Any:
        """Value at `path`; a non-None default is stored on first read."""
        with self._lock:
            cur: Any = self._cfg
            for part in path.split("."):
                if not isinstance(cur, dict) or part not in cur:
                    cur = None
                    break
                cur = cur[part]
            if cur is None and default is not None:
                self.set(path, default)
                return default
            return cur

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            cur = self._cfg
            *parents, leaf = path.split(".")
            for p in parents:
                cur = cur.setdefault(p, {})
            cur[leaf] = value

    def store_uri(self) -> str | None:
        """
        `store.uri` when set, otherwise an ``elasticsearch:`` URI built from
        the `store.options` mapping (host, index, minzoom, ...).
        """
        uri = self.get("store.uri")
        if uri:
            return uri
        opts = self.get("store.options")
        if opts:
            return "elasticsearch://?" + urlencode(opts, doseq=True)
        return None

    def reload(self, path: str | Path | None = None) -> None:
        fresh = _load(path)
        with self._lock:
            self._cfg.clear()
            self._cfg.update(fresh)

# --- singleton access (ops app + CLI + tests share this) ---
_CFG_SINGLETON = Config()

def get_cfg() -> Config:
    return _CFG_SINGLETON

def reload_cfg(path: str | None = None) -> Config:
    _CFG_SINGLETON.reload(path)
    return _CFG_SINGLETON

CFG = _CFG_SINGLETON
