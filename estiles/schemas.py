# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic models for read requests and the document identifier scheme."""

from __future__ import annotations
from typing import Annotated, Any, Literal, Mapping, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .errors import UnknownRequestTypeError

INFO_ID = "info"

TILE_HEADERS = {
    "Content-Type": "application/x-protobuf",
    "Content-Encoding": "gzip",
}


def tile_id(z: int, x: int, y: int) -> str:
    """Document id of a tile: ``"{z}_{x}_{y}"``."""
    return f"{z}_{x}_{y}"


class TileRequest(BaseModel):
    """Lookup of a single tile."""
    model_config = ConfigDict(frozen=True)

    type: Literal["tile"] = "tile"
    z: int = Field(ge=0)
    x: int = Field(ge=0)
    y: int = Field(ge=0)

    @property
    def doc_id(self) -> str:
        return tile_id(self.z, self.x, self.y)


class InfoRequest(BaseModel):
    """Lookup of the tileset metadata document."""
    model_config = ConfigDict(frozen=True)

    type: Literal["info"] = "info"


Request = Annotated[Union[TileRequest, InfoRequest], Field(discriminator="type")]

_REQUEST = TypeAdapter(Request)


def parse_request(opts: TileRequest | InfoRequest | Mapping[str, Any]) -> TileRequest | InfoRequest:
    """
    Accepts a request model or a plain mapping such as ``{"z": 0, "x": 0,
    "y": 0}`` or ``{"type": "info"}``. A missing type means tile.
    """
    if isinstance(opts, (TileRequest, InfoRequest)):
        return opts
    data = dict(opts)
    if data.get("type") is None:
        data["type"] = "tile"
    if data["type"] not in ("tile", INFO_ID):
        raise UnknownRequestTypeError(f"unknown type {data['type']}")
    return _REQUEST.validate_python(data)
