# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Connection descriptor parsing.

A store is described by a URI whose query string carries the options, e.g.
``elasticsearch://?host=localhost:9200&index=tiles&minzoom=0&maxzoom=14``.

=============== ===========================================================
option          effect
=============== ===========================================================
host            endpoint(s); mandatory, may repeat or be comma-separated
index           target index name; mandatory
log             client verbosity: trace, debug, info, warning, error
createIfMissing create the index on init() when it does not exist
minzoom         lowest zoom served/accepted, default 0
maxzoom         highest zoom served/accepted, default 22
maxBatchSize    enables batched writes while start_writing() is active
=============== ===========================================================
"""

from __future__ import annotations
import logging
from typing import Any, List, Mapping
from urllib.parse import urlsplit, parse_qs
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, \
    model_validator

from ..errors import ConfigError

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_FALSY = {"", "0", "false", "no", "off"}


class StoreOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    hosts: List[str] = Field(min_length=1)
    index: str = Field(min_length=1)
    create_if_missing: bool = False
    minzoom: int = Field(0, ge=0)
    maxzoom: int = Field(22, ge=0)
    max_batch_size: int | None = Field(None, gt=0)
    log: str | None = None

    @field_validator("log")
    @classmethod
    def _known_level(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.lower()
        if v not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {v!r}")
        return v

    @model_validator(mode="after")
    def _zoom_order(self) -> "StoreOptions":
        if self.minzoom > self.maxzoom:
            raise ValueError(f"minzoom {self.minzoom} is above maxzoom {self.maxzoom}")
        return self

    @property
    def log_level(self) -> int | None:
        return _LOG_LEVELS[self.log] if self.log else None


def _single(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if len(value) == 1 else value
    return value

def _hosts(value: Any) -> List[str]:
    raw = value if isinstance(value, list) else [value]
    out: List[str] = []
    for item in raw:
        for h in str(item).split(","):
            h = h.strip()
            if not h:
                continue
            out.append(h if "://" in h else f"http://{h}")
    return out

def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(_single(value)).strip().lower() not in _FALSY


def query_params(uri: str | Mapping[str, Any]) -> dict[str, Any]:
    """Query parameters of a URI; a mapping is taken as already parsed."""
    if isinstance(uri, Mapping):
        return dict(uri.get("query", uri))
    parts = urlsplit(uri)
    return {k: _single(v) for k, v in parse_qs(parts.query, keep_blank_values=True).items()}


def parse_uri(uri: str | Mapping[str, Any]) -> StoreOptions:
    params = query_params(uri)

    if not params.get("host"):
        raise ConfigError("missing host")
    hosts = _hosts(params["host"])
    if not hosts:
        raise ConfigError("missing host")

    index = params.get("index")
    if not isinstance(index, str) or not index:
        raise ConfigError("missing or invalid index")

    data: dict[str, Any] = {"hosts": hosts, "index": index}
    if "createIfMissing" in params:
        data["create_if_missing"] = _flag(params["createIfMissing"])
    for src, dst in (("minzoom", "minzoom"), ("maxzoom", "maxzoom"),
                     ("maxBatchSize", "max_batch_size"), ("log", "log")):
        if params.get(src) not in (None, ""):
            data[dst] = _single(params[src])

    try:
        return StoreOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid store options: {e}") from e
