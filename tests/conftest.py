# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

import pytest
from fastapi.testclient import TestClient
from estiles import log as ops_log, metrics
from estiles.config import get_cfg, reload_cfg
from estiles.main import build_app
from utils import FakeAsyncElasticsearch, FakeCluster

URI = "elasticsearch://?host=localhost:9200&index=tiletest"

@pytest.fixture(autouse=True)
def _reset_cfg_between_tests(monkeypatch):
    for k in ("ESTILES_STORE__URI", "ESTILES_LOG__LEVEL", "ESTILES_OPS_LOG"):
        monkeypatch.delenv(k, raising=False)
    reload_cfg()
    cfg = get_cfg()
    cfg.set("store.uri", URI)
    metrics.reset()
    ops_log.configure(None)
    yield
    ops_log.configure(None)

@pytest.fixture()
def cluster():
    return FakeCluster()

@pytest.fixture(autouse=True)
def fake_es(monkeypatch, cluster):
    """No test talks to a real cluster."""
    import estiles.stores.elastic_store as store_mod
    monkeypatch.setattr(
        store_mod, "AsyncElasticsearch",
        lambda **kw: FakeAsyncElasticsearch(cluster, **kw),
        raising=True,
    )
    return cluster

@pytest.fixture()
def store():
    from estiles.stores.elastic_store import ElasticSearchStore
    return ElasticSearchStore(URI)

@pytest.fixture()
def app():
    return build_app(get_cfg())

@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def cfg(app):
    return app.state.cfg
