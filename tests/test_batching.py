# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

import pytest
from estiles.errors import ImbalancedCallError, UnimplementedError
from estiles.stores.elastic_store import ElasticSearchStore
from utils import network_calls

BATCHED = "elasticsearch://?host=localhost:9200&index=tiletest&maxBatchSize=100"


@pytest.mark.asyncio
async def test_stop_without_start_fails(store):
    await store.init()
    with pytest.raises(ImbalancedCallError):
        await store.stop_writing()
    assert store.batch_depth == 0
    await store.close()


@pytest.mark.asyncio
async def test_nested_start_stop(store):
    await store.init()
    await store.start_writing()
    await store.start_writing()
    assert store.batch_depth == 2
    await store.stop_writing()
    assert store.batch_depth == 1
    await store.stop_writing()
    assert store.batch_depth == 0
    with pytest.raises(ImbalancedCallError):
        await store.stop_writing()
    await store.close()


@pytest.mark.asyncio
async def test_writes_go_straight_through_without_batch_size(store):
    await store.init()
    await store.start_writing()
    await store.put_tile(1, 0, 0, b"abc")
    assert (await store.get_tile(1, 0, 0))["data"] == b"abc"
    await store.stop_writing()
    assert store.pending == []
    await store.close()


@pytest.mark.asyncio
async def test_batched_write_fails_loudly(cluster):
    s = ElasticSearchStore(BATCHED)
    await s.init()
    await s.start_writing()
    with pytest.raises(UnimplementedError, match="bulk not implemented"):
        await s.put_tile(1, 0, 0, b"abc")
    assert not any(c[0] == "index" for c in network_calls(cluster))
    assert s.pending == []
    await s.stop_writing()
    await s.close()


@pytest.mark.asyncio
async def test_batched_mode_still_deletes_and_writes_info(cluster):
    s = ElasticSearchStore(BATCHED)
    await s.init()
    await s.start_writing()
    await s.put_tile(1, 0, 0, None)
    await s.put_info({"name": "x"})
    assert ("delete", "tiletest", "1_0_0") in cluster.calls
    assert ("index", "tiletest", "info") in cluster.calls
    await s.stop_writing()
    await s.close()


@pytest.mark.asyncio
async def test_writes_outside_batching_with_batch_size(cluster):
    s = ElasticSearchStore(BATCHED)
    await s.init()
    await s.put_tile(1, 0, 0, b"abc")
    assert (await s.get_tile(1, 0, 0))["data"] == b"abc"
    await s.close()


@pytest.mark.asyncio
async def test_close_resets_depth(cluster):
    s = ElasticSearchStore(BATCHED)
    await s.init()
    await s.start_writing()
    await s.start_writing()
    await s.close()
    assert s.batch_depth == 0
    assert s.pending == []
    assert cluster.clients[0].closed


@pytest.mark.asyncio
async def test_close_resets_depth_when_never_opened(cluster):
    s = ElasticSearchStore(BATCHED)
    await s.start_writing()
    assert s.batch_depth == 1
    await s.close()
    assert s.batch_depth == 0
    with pytest.raises(ImbalancedCallError):
        await s.stop_writing()
    assert cluster.clients == []


@pytest.mark.asyncio
async def test_flush_and_start_callbacks(store):
    await store.init()
    seen = []
    await store.start_writing(lambda err, res: seen.append(("start", err)))
    await store.flush(lambda err, res: seen.append(("flush", err)))
    await store.stop_writing(lambda err, res: seen.append(("stop", err)))
    await store.stop_writing(lambda err, res: seen.append(("stop", type(err))))
    assert seen == [("start", None), ("flush", None), ("stop", None),
                    ("stop", ImbalancedCallError)]
    await store.close()
