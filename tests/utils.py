# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from typing import Any, Dict, List, Tuple
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import NotFoundError


def not_found(index: str, doc_id: str) -> NotFoundError:
    meta = ApiResponseMeta(
        status=404, http_version="1.1", headers=HttpHeaders(), duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    return NotFoundError(
        message="NotFoundError",
        meta=meta,
        body={"_index": index, "_id": doc_id, "found": False},
    )


class FakeCluster:
    """Shared in-memory state outliving individual clients."""
    def __init__(self):
        self.indices: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.alive = True
        self.error: Exception | None = None  # raised by every data call
        self.ping_error: Exception | None = None
        self.calls: List[Tuple] = []
        self.clients: List["FakeAsyncElasticsearch"] = []


class _FakeIndices:
    def __init__(self, cluster: FakeCluster):
        self._c = cluster

    async def exists(self, index):
        self._c.calls.append(("indices.exists", index))
        return index in self._c.indices

    async def create(self, index):
        self._c.calls.append(("indices.create", index))
        self._c.indices.setdefault(index, {})
        return {"acknowledged": True, "index": index}


class FakeAsyncElasticsearch:
    """Tiny stand-in for AsyncElasticsearch. Keeps the calls the store makes."""
    def __init__(self, cluster: FakeCluster, hosts=None, **kwargs):
        self._c = cluster
        self.hosts = hosts
        self.closed = False
        self.indices = _FakeIndices(cluster)
        cluster.clients.append(self)

    def _check(self, op, **kw):
        assert not self.closed, "client used after close()"
        self._c.calls.append((op, kw.get("index"), kw.get("id")))
        if self._c.error is not None:
            raise self._c.error

    async def ping(self):
        self._c.calls.append(("ping", None, None))
        if self._c.ping_error is not None:
            raise self._c.ping_error
        return self._c.alive

    async def get(self, index, id):
        self._check("get", index=index, id=id)
        docs = self._c.indices.get(index, {})
        if id not in docs:
            raise not_found(index, id)
        return {"_index": index, "_id": id, "found": True, "_source": dict(docs[id])}

    async def index(self, index, id, document):
        self._check("index", index=index, id=id)
        docs = self._c.indices.setdefault(index, {})
        result = "updated" if id in docs else "created"
        docs[id] = dict(document)
        return {"_index": index, "_id": id, "result": result}

    async def delete(self, index, id):
        self._check("delete", index=index, id=id)
        docs = self._c.indices.get(index, {})
        if id not in docs:
            raise not_found(index, id)
        del docs[id]
        return {"_index": index, "_id": id, "result": "deleted"}

    async def close(self):
        self.closed = True


def network_calls(cluster: FakeCluster) -> List[Tuple]:
    return [c for c in cluster.calls if c[0] in ("get", "index", "delete")]
