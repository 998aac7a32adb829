# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar, Union

from ..schemas import InfoRequest, TileRequest

T = TypeVar("T")

Callback = Callable[[Optional[BaseException], Any], None]
ReadRequest = Union[TileRequest, InfoRequest, Mapping[str, Any]]


async def nodeify(aw: Awaitable[T], callback: Callback | None = None) -> T | None:
    """
    Await `aw`; when a node-style ``callback(err, result)`` is given the
    outcome goes to it and errors are not re-raised.
    """
    if callback is None:
        return await aw
    try:
        result = await aw
    except Exception as err:
        callback(err, None)
        return None
    callback(None, result)
    return result


class BaseTileStore(ABC):
    @abstractmethod
    async def init(self) -> "BaseTileStore": ...

    @abstractmethod
    async def get(self, request: ReadRequest) -> Dict[str, Any]: ...

    @abstractmethod
    async def put_tile(self, z: int, x: int, y: int, data: bytes | str | None,
                       callback: Callback | None = None) -> None: ...

    @abstractmethod
    async def put_info(self, info: Dict[str, Any],
                       callback: Callback | None = None) -> None: ...

    @abstractmethod
    async def start_writing(self, callback: Callback | None = None) -> None: ...

    @abstractmethod
    async def stop_writing(self, callback: Callback | None = None) -> None: ...

    @abstractmethod
    async def flush(self, callback: Callback | None = None) -> None: ...

    @abstractmethod
    async def close(self, callback: Callback | None = None) -> None: ...

    async def get_tile(self, z: int, x: int, y: int) -> Dict[str, Any]:
        return await self.get(TileRequest(z=z, x=x, y=y))

    async def __aenter__(self):
        return await self.init()

    async def __aexit__(self, *exc) -> None:
        await self.close()
