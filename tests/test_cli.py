# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

import json
import pytest
from estiles import cli as escli

URI = "elasticsearch://?host=localhost:9200&index=clitest"

@pytest.fixture
def cli_env(cluster, monkeypatch):
    monkeypatch.setattr(escli, "store", None)
    return escli, cluster

def _last_json(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])

def test_cli_put_get_delete(cli_env, tmp_path, capsys):
    cli, cluster = cli_env
    tile = tmp_path / "t.pbf"
    tile.write_bytes(b"\x1f\x8bdata")
    out = tmp_path / "out.pbf"

    assert cli.main_cli(["--uri", URI, "put", "3", "1", "2", str(tile)]) == 0
    assert "3_1_2" in cluster.indices["clitest"]

    assert cli.main_cli(["--uri", URI, "get", "3", "1", "2", "-o", str(out)]) == 0
    res = _last_json(capsys)
    assert res["ok"] is True and res["bytes"] == 6
    assert out.read_bytes() == b"\x1f\x8bdata"

    cli.main_cli(["--uri", URI, "delete", "3", "1", "2"])
    assert cli.main_cli(["--uri", URI, "get", "3", "1", "2"]) == 1
    assert _last_json(capsys) == {"ok": False, "error": "no tile"}
    # every invocation releases its client
    assert all(c.closed for c in cluster.clients)

def test_cli_uses_configured_uri(cli_env, capsys):
    cli, cluster = cli_env
    assert cli.main_cli(["ping"]) == 0
    assert _last_json(capsys) == {"ok": True}
    assert cluster.clients[0].hosts == ["http://localhost:9200"]

def test_cli_info(cli_env, tmp_path, capsys):
    cli, _ = cli_env
    cli.main_cli(["--uri", URI, "info"])
    assert _last_json(capsys)["tilejson"] == "2.1.0"

    meta = tmp_path / "info.json"
    meta.write_text(json.dumps({"name": "osm", "maxzoom": 14}), encoding="utf-8")
    cli.main_cli(["--uri", URI, "put-info", str(meta)])
    cli.main_cli(["--uri", URI, "info"])
    assert _last_json(capsys) == {"name": "osm", "maxzoom": 14}

def test_cli_load_tree(cli_env, tmp_path, capsys):
    cli, cluster = cli_env
    for z, x, y in [(0, 0, 0), (1, 0, 1), (1, 1, 1)]:
        p = tmp_path / "tiles" / str(z) / str(x)
        p.mkdir(parents=True, exist_ok=True)
        (p / f"{y}.pbf").write_bytes(f"{z}/{x}/{y}".encode())
    (tmp_path / "tiles" / "README").write_text("ignored")

    cli.main_cli(["--uri", URI, "load", str(tmp_path / "tiles")])
    assert _last_json(capsys) == {"ok": True, "tiles": 3}
    assert set(cluster.indices["clitest"]) == {"0_0_0", "1_0_1", "1_1_1"}

def test_cli_injected_store(cli_env, store, capsys):
    cli, cluster = cli_env
    cli.store = store
    cli.main_cli(["ping"])
    assert store.batch_depth == 0
    assert cluster.clients[0].closed

def test_cli_ops_log(cli_env, tmp_path, capsys):
    cli, _ = cli_env
    dest = tmp_path / "ops.jsonl"
    cli.main_cli(["--uri", URI, "--ops-log", str(dest), "get", "0", "0", "0"])
    ev = json.loads(dest.read_text().strip().splitlines()[-1])
    assert ev["op"] == "get"
    assert ev["status"] == "miss"
    assert ev["tile"] == "0_0_0"
    assert ev["index"] == "clitest"
