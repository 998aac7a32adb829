# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations
import base64, json, logging
from typing import Any, Dict, List, Mapping
from elasticsearch import AsyncElasticsearch, NotFoundError, TransportError

from estiles import __version__
from estiles.errors import ConnectivityError, ImbalancedCallError, NoTileError, \
    UnimplementedError, ZoomRangeError
from estiles.log import get_logger, ops_event
from estiles.metrics import inc as m_inc
from estiles.schemas import INFO_ID, TILE_HEADERS, InfoRequest, TileRequest, \
    parse_request, tile_id
from estiles.stores.base import BaseTileStore, Callback, ReadRequest, nodeify
from estiles.stores.options import StoreOptions, parse_uri

log = get_logger("stores.elastic")

PROTOCOL = "elasticsearch:"

_CLIENT_LOGGERS = ("elasticsearch", "elastic_transport")


def _coords(args: dict, _result) -> str:
    return tile_id(args["z"], args["x"], args["y"])


class ElasticSearchStore(BaseTileStore):
    """
    Tile store backed by one Elasticsearch index. Each tile is a document
    ``{"data": <base64>}`` with id ``"{z}_{x}_{y}"``; the tileset metadata
    lives under the id ``"info"``.
    """

    def __init__(self, uri: str | Mapping[str, Any]):
        self.options: StoreOptions = parse_uri(uri)
        self._client: AsyncElasticsearch | None = None
        self._batch_depth = 0
        self._pending: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"<ElasticSearchStore index={self.options.index!r} hosts={self.options.hosts!r}>"

    @property
    def batch_depth(self) -> int:
        return self._batch_depth

    @property
    def pending(self) -> List[Dict[str, Any]]:
        return list(self._pending)

    @property
    def client(self) -> AsyncElasticsearch:
        if self._client is None:
            raise ConnectivityError(f"{self!r} is not initialized, call init() first")
        return self._client

    # ----------------- lifecycle -----------------

    async def init(self) -> "ElasticSearchStore":
        if self.options.log_level is not None:
            for ns in _CLIENT_LOGGERS:
                logging.getLogger(ns).setLevel(self.options.log_level)
        if self._client is None:
            self._client = AsyncElasticsearch(hosts=list(self.options.hosts))
        try:
            alive = await self._client.ping()
        except TransportError as e:
            await self._release()
            raise ConnectivityError(f"cannot reach {self.options.hosts}: {e}") from e
        if not alive:
            await self._release()
            raise ConnectivityError(f"cannot reach {self.options.hosts}")

        if self.options.create_if_missing:
            idx = self.options.index
            if not await self._client.indices.exists(index=idx):
                log.info("creating missing index %s", idx)
                await self._client.indices.create(index=idx)
        log.debug("connected to %s, index %s", self.options.hosts, self.options.index)
        return self

    async def _release(self) -> None:
        cl, self._client = self._client, None
        if cl is not None:
            await cl.close()

    async def close(self, callback: Callback | None = None) -> None:
        return await nodeify(self._close(), callback)

    async def _close(self) -> None:
        if self._client is None:
            self._batch_depth = 0
            return
        if self._batch_depth and self.options.max_batch_size:
            await self._flush()
        await self._release()
        self._batch_depth = 0
        log.debug("closed %r", self)

    # ----------------- read path -----------------

    async def get(self, request: ReadRequest) -> Dict[str, Any]:
        req = parse_request(request)
        if isinstance(req, InfoRequest):
            return await self._get_info()
        return await self._get_tile(req.z, req.x, req.y)

    @ops_event("get", tile=_coords)
    async def _get_tile(self, z: int, x: int, y: int) -> Dict[str, Any]:
        o = self.options
        if z < o.minzoom or z > o.maxzoom:
            m_inc("tiles_missed_total")
            raise NoTileError()
        data = await self._fetch(tile_id(z, x, y))
        if data is None:
            m_inc("tiles_missed_total")
            raise NoTileError()
        m_inc("tiles_read_total")
        return {"data": data, "headers": dict(TILE_HEADERS)}

    @ops_event("get_info")
    async def _get_info(self) -> Dict[str, Any]:
        m_inc("info_read_total")
        data = await self._fetch(INFO_ID)
        if data is not None:
            return {"data": json.loads(data.decode("utf-8"))}
        return {
            "data": {
                "tilejson": "2.1.0",
                "name": f"ElasticSearch {__version__}",
                "bounds": "-180,-85.0511,180,85.0511",
                "minzoom": self.options.minzoom,
                "maxzoom": self.options.maxzoom,
            }
        }

    async def _fetch(self, doc_id: str) -> bytes | None:
        try:
            doc = await self.client.get(index=self.options.index, id=doc_id)
        except NotFoundError:
            return None
        if not doc["found"]:
            return None
        return base64.b64decode(doc["_source"]["data"])

    # ----------------- write path -----------------

    async def put_tile(self, z: int, x: int, y: int, data: bytes | str | None,
                       callback: Callback | None = None) -> None:
        return await nodeify(self._put_tile(z, x, y, data), callback)

    @ops_event("put", tile=_coords, bytes=lambda a, _: len(a.get("data") or b""))
    async def _put_tile(self, z: int, x: int, y: int, data: bytes | str | None) -> None:
        req = TileRequest(z=z, x=x, y=y)
        o = self.options
        if z < o.minzoom or z > o.maxzoom:
            raise ZoomRangeError(z, o.minzoom, o.maxzoom)
        await self._put(req.doc_id, data, batched=True)

    async def put_info(self, info: Dict[str, Any],
                       callback: Callback | None = None) -> None:
        return await nodeify(self._put_info(info), callback)

    @ops_event("put_info")
    async def _put_info(self, info: Dict[str, Any]) -> None:
        await self._put(INFO_ID, json.dumps(info).encode("utf-8"))
        m_inc("info_written_total")

    async def _put(self, doc_id: str, data: bytes | str | None, batched: bool = False) -> None:
        index = self.options.index
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not data:
            try:
                await self.client.delete(index=index, id=doc_id)
            except NotFoundError:
                pass
            m_inc("tiles_deleted_total")
            return

        body = {"data": base64.b64encode(data).decode("ascii")}
        if batched and self._batch_depth and self.options.max_batch_size:
            raise UnimplementedError("bulk not implemented")
        await self.client.index(index=index, id=doc_id, document=body)
        if batched:
            m_inc("tiles_written_total")

    # ----------------- batching -----------------

    async def start_writing(self, callback: Callback | None = None) -> None:
        self._batch_depth += 1
        log.debug("start_writing, depth %d", self._batch_depth)
        if callback is not None:
            callback(None, None)

    async def stop_writing(self, callback: Callback | None = None) -> None:
        return await nodeify(self._stop_writing(), callback)

    async def _stop_writing(self) -> None:
        if self._batch_depth == 0:
            raise ImbalancedCallError("stop_writing() called more times than start_writing()")
        self._batch_depth -= 1
        log.debug("stop_writing, depth %d", self._batch_depth)
        await self._flush()

    async def flush(self, callback: Callback | None = None) -> None:
        return await nodeify(self._flush(), callback)

    async def _flush(self) -> None:
        # writes never accumulate: the batched branch of _put fails instead
        self._pending.clear()

    # ----------------- protocol registration -----------------

    @classmethod
    def register_protocols(cls, registry: Dict[str, Any]) -> None:
        async def opener(uri, callback: Callback | None = None):
            async def _open():
                return await cls(uri).init()
            return await nodeify(_open(), callback)
        registry[PROTOCOL] = opener
