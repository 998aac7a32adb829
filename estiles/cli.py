# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations
import argparse, asyncio, json, pathlib, sys
from estiles import log as ops_log
from estiles.log import setup_logging
from estiles.config import get_cfg
from estiles.errors import NoTileError
from estiles.stores.base import BaseTileStore
from estiles.stores.factory import make_store

# set by tests or embedding code; otherwise built from --uri / store.uri
store: BaseTileStore | None = None

def _out(obj) -> None:
    print(json.dumps(obj, ensure_ascii=False))

def _tiles(root: pathlib.Path):
    """Yields (z, x, y, path) for a {z}/{x}/{y}.<ext> tree."""
    for p in sorted(root.glob("*/*/*")):
        if not p.is_file():
            continue
        try:
            z, x, y = int(p.parent.parent.name), int(p.parent.name), int(p.name.split(".")[0])
        except ValueError:
            continue
        yield z, x, y, p

async def cmd_ping(st, args):
    _out({"ok": True})

async def cmd_get(st, args):
    try:
        res = await st.get_tile(args.z, args.x, args.y)
    except NoTileError:
        _out({"ok": False, "error": "no tile"})
        return 1
    if args.output:
        pathlib.Path(args.output).write_bytes(res["data"])
    _out({"ok": True, "bytes": len(res["data"]), "headers": res["headers"],
          "output": args.output})

async def cmd_put(st, args):
    data = pathlib.Path(args.file).read_bytes()
    await st.put_tile(args.z, args.x, args.y, data)
    _out({"ok": True, "tile": [args.z, args.x, args.y], "bytes": len(data)})

async def cmd_delete(st, args):
    await st.put_tile(args.z, args.x, args.y, None)
    _out({"ok": True, "deleted": [args.z, args.x, args.y]})

async def cmd_info(st, args):
    res = await st.get({"type": "info"})
    _out(res["data"])

async def cmd_put_info(st, args):
    info = json.loads(pathlib.Path(args.file).read_text(encoding="utf-8"))
    await st.put_info(info)
    _out({"ok": True})

async def cmd_load(st, args):
    count = 0
    await st.start_writing()
    try:
        for z, x, y, path in _tiles(pathlib.Path(args.dir)):
            await st.put_tile(z, x, y, path.read_bytes())
            count += 1
    finally:
        await st.stop_writing()
    _out({"ok": True, "tiles": count})

async def _run(args) -> int:
    st = store or make_store(args.uri or get_cfg().store_uri() or "")
    await st.init()
    try:
        return await args.func(st, args) or 0
    finally:
        await st.close()

def _tile_args(p):
    p.add_argument("z", type=int)
    p.add_argument("x", type=int)
    p.add_argument("y", type=int)

def main_cli(argv=None):
    p = argparse.ArgumentParser(prog="estilescli")
    p.add_argument("--uri", help="store uri, e.g. elasticsearch://?host=localhost:9200&index=tiles")
    p.add_argument("--ops-log", help="ops event destination: 'stdout' or a file path")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ping = sub.add_parser("ping")
    p_ping.set_defaults(func=cmd_ping)

    p_get = sub.add_parser("get")
    _tile_args(p_get)
    p_get.add_argument("-o", "--output", help="write tile bytes to this file")
    p_get.set_defaults(func=cmd_get)

    p_put = sub.add_parser("put")
    _tile_args(p_put)
    p_put.add_argument("file")
    p_put.set_defaults(func=cmd_put)

    p_delete = sub.add_parser("delete")
    _tile_args(p_delete)
    p_delete.set_defaults(func=cmd_delete)

    p_info = sub.add_parser("info")
    p_info.set_defaults(func=cmd_info)

    p_put_info = sub.add_parser("put-info")
    p_put_info.add_argument("file", help="JSON file with the tileset metadata")
    p_put_info.set_defaults(func=cmd_put_info)

    p_load = sub.add_parser("load")
    p_load.add_argument("dir", help="directory laid out as {z}/{x}/{y}.<ext>")
    p_load.set_defaults(func=cmd_load)

    args = p.parse_args(argv)
    setup_logging(get_cfg())
    if args.ops_log:
        ops_log.configure(args.ops_log)
    try:
        return asyncio.run(_run(args))
    finally:
        if args.ops_log:
            ops_log.close()

if __name__ == "__main__":
    raise SystemExit(main_cli())
