# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict
from urllib.parse import urlsplit
from .base import BaseTileStore
from ..config import CFG, Config
from ..errors import ConfigError

# scheme ("elasticsearch:") -> async opener(uri, callback=None)
PROTOCOLS: Dict[str, Callable[..., Awaitable[Any]]] = {}

def register_protocols(registry: Dict[str, Any] = PROTOCOLS) -> Dict[str, Any]:
    from .elastic_store import ElasticSearchStore
    ElasticSearchStore.register_protocols(registry)
    return registry

def _scheme(uri: str) -> str:
    scheme = urlsplit(uri).scheme.lower()
    if not scheme:
        raise ConfigError(f"uri has no scheme: {uri!r}")
    return scheme + ":"

def make_store(uri: str) -> BaseTileStore:
    """Builds an uninitialized store for `uri`."""
    match _scheme(uri):
        case "elasticsearch:":
            from .elastic_store import ElasticSearchStore
            return ElasticSearchStore(uri)
        case scheme:
            raise ConfigError(f"Unknown store protocol: {scheme}")

async def open_store(uri: str) -> BaseTileStore:
    """Opens `uri` through the protocol registry and returns the initialized store."""
    if not PROTOCOLS:
        register_protocols()
    scheme = _scheme(uri)
    opener = PROTOCOLS.get(scheme)
    if opener is None:
        raise ConfigError(f"Unknown store protocol: {scheme}")
    return await opener(uri)

def get_store(cfg: Config = CFG) -> BaseTileStore:
    uri = cfg.store_uri()
    if not uri:
        raise ConfigError("store.uri is not configured")
    return make_store(uri)
