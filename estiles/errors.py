# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""Exceptions raised by tile stores."""

from __future__ import annotations


class TileStoreError(Exception):
    """Base class for tile store errors."""


class ConfigError(TileStoreError, ValueError):
    """Malformed or missing connection parameters."""


class ConnectivityError(TileStoreError, ConnectionError):
    """Store is unreachable or was never initialized."""


class NoTileError(TileStoreError):
    """Tile does not exist. A normal negative result, not a fault."""

    def __init__(self, message: str = "Tile does not exist"):
        super().__init__(message)


class UnknownRequestTypeError(TileStoreError, ValueError):
    pass


class ZoomRangeError(TileStoreError, ValueError):
    def __init__(self, zoom: int, minzoom: int, maxzoom: int):
        self.zoom = zoom
        self.minzoom = minzoom
        self.maxzoom = maxzoom
        # message text is matched by callers; keep it verbatim
        super().__init__(
            f"This ElasticSearch source cannot save zoom {zoom}, "
            f"because its configured for zooms {minzoom}..{maxzoom}"
        )


class ImbalancedCallError(TileStoreError, RuntimeError):
    pass


class UnimplementedError(TileStoreError, NotImplementedError):
    pass
