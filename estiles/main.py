# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, Dict
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn
from . import __version__, log as ops_log
from .config import CFG
from .log import get_logger, setup_logging
from .metrics import inc, set_error, snapshot, to_prometheus
from .stores.base import BaseTileStore
from .stores.factory import get_store

VERSION = __version__

log = get_logger("main")

# Ops surface only: health and metrics of the configured tile store.

def build_app(cfg=CFG) -> FastAPI:
    setup_logging(cfg)
    ops_log.configure(cfg.get("ops_log"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store = app.state.store
        if store is not None:
            await store.close()
        ops_log.close()

    app = FastAPI(title="estiles — Elasticsearch tile store", lifespan=lifespan)
    app.state.cfg = cfg
    app.state.store = None

    def current_store() -> BaseTileStore:
        if app.state.store is None:
            app.state.store = get_store(cfg)
        return app.state.store

    # -------------------- Health --------------------

    async def _readiness_check() -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "store_uri": cfg.store_uri(),
            "store_init": False,
        }
        try:
            store = current_store()
            await store.init()
            details["store_init"] = True
            details["index"] = store.options.index
        except Exception as e:
            log.warning("store not ready: %s", e)
            set_error(f"store: {e}")
        details["ok"] = details["store_init"]
        details["version"] = VERSION
        return details

    @app.get("/health")
    async def health():
        inc("requests_total")
        d = await _readiness_check()
        status = "ready" if d.get("ok") else "degraded"
        return {"ok": d["ok"], "status": status, "version": VERSION}

    @app.get("/health/live")
    def health_live():
        inc("requests_total")
        return {"ok": True, "status": "live", "version": VERSION}

    @app.get("/health/ready")
    async def health_ready():
        inc("requests_total")
        d = await _readiness_check()
        code = 200 if d.get("ok") else 503
        return JSONResponse(d, status_code=code)

    @app.get("/health/metrics")
    def health_metrics():
        inc("requests_total")
        return snapshot({"version": VERSION, "store_uri": cfg.store_uri()})

    @app.get("/metrics")
    def metrics_prom():
        inc("requests_total")
        txt = to_prometheus(build={"version": VERSION})
        return PlainTextResponse(txt, media_type="text/plain; version=0.0.4")

    return app

def main_srv():
    """
    Ops server entrypoint.
    Precedence: CFG (reads env first) > defaults.
    """
    host = str(CFG.get("server.host", "127.0.0.1"))
    port = int(CFG.get("server.port", 8087))
    workers = int(CFG.get("server.workers", 1))
    log_level = str(CFG.get("server.log_level", "info"))

    uvicorn.run("estiles.main:app",
                host=host,
                port=port,
                workers=workers,
                log_level=log_level)

# Default app instance for `uvicorn estiles.main:app`
app = build_app()

if __name__ == "__main__":
    main_srv()
