# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import functools, inspect, json, logging, sys, threading, time
from datetime import datetime, timezone
from typing import Any

from estiles.errors import NoTileError
from estiles.metrics import set_error

_dest: str | None = None
_handle = None
_lock = threading.Lock()


def configure(dest: str | None) -> None:
    """
    Called from build_app() and the CLI. dest is None/null, 'stdout', or a
    file path. Opens the file handle if needed. No-op if dest is None/null.
    """
    global _dest, _handle
    with _lock:
        if _handle is not None:
            try:
                _handle.flush()
                _handle.close()
            finally:
                _handle = None
        _dest = None

    if not dest or str(dest).strip().lower() in ("null", "none", ""):
        return

    _dest = str(dest).strip()
    if _dest != "stdout":
        with _lock:
            _handle = open(_dest, "a", encoding="utf-8", buffering=1)


def emit(**fields) -> None:
    """
    Write one JSON line. No-op if not configured. None values are dropped
    before serialisation.
    """
    if _dest is None:
        return
    ts = (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
    payload: dict = {"ts": ts}
    payload.update({k: v for k, v in fields.items() if v is not None})
    line = json.dumps(payload, separators=(",", ":")) + "\n"
    if _dest == "stdout":
        sys.stdout.write(line)
    else:
        with _lock:
            if _handle is not None:
                _handle.write(line)


def close() -> None:
    """Flush and close the file handle if open."""
    global _handle
    with _lock:
        if _handle is not None:
            try:
                _handle.flush()
                _handle.close()
            finally:
                _handle = None


# --------------- dev stream (stderr) ---------------

class _ColorFormatter(logging.Formatter):
    """Formatter with ANSI colors for terminal output."""
    COLORS = {
        logging.DEBUG:    "\033[36m",   # cyan
        logging.INFO:     "\033[32m",   # green
        logging.WARNING:  "\033[33m",   # yellow
        logging.ERROR:    "\033[31m",   # red
        logging.CRITICAL: "\033[35m",   # magenta
    }
    RESET = "\033[0m"
    BOLD  = "\033[1m"

    def __init__(self, fmt: str, datefmt: str, use_color: bool = True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color:
            color = self.COLORS.get(record.levelno, "")
            if record.name.startswith("estiles"):
                record.name = f"{self.BOLD}{record.name}{self.RESET}{color}"
            record.levelname = f"{color}{record.levelname}{self.RESET}"
            record.msg = f"{color}{record.msg}{self.RESET}"
        return super().format(record)


def shift(level: int, delta: int) -> int:
    return min(logging.CRITICAL, max(logging.DEBUG, level + 10 * delta))


_handler: logging.Handler | None = None


def setup_logging(cfg=None) -> logging.Logger:
    """
    Application-side logging setup, called from build_app() and the CLI.
    Importing estiles never touches the host's logging.
      - estiles (base) → bold + colored, to stderr
      - watch namespaces (base -1 → more verbose)
      - quiet namespaces (base +1 → less verbose)
      - all others (base +2)
    Calling it again swaps the stderr handler instead of stacking a new one.
    """
    global _handler
    if cfg is None:
        from estiles.config import get_cfg
        cfg = get_cfg()
    base_level = getattr(logging, str(cfg.get("log.level")).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(shift(base_level, +2))
    if _handler is not None:
        root.removeHandler(_handler)

    use_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setLevel(logging.DEBUG)
    _handler.setFormatter(_ColorFormatter(
        "%(asctime)s %(levelname)-5s %(name)s: %(message)s",
        "%H:%M:%S",
        use_color=use_color,
    ))
    root.addHandler(_handler)

    es_log = logging.getLogger("estiles")
    es_log.setLevel(logging.DEBUG if cfg.get("dev", 0) else base_level)

    for ns in cfg.get("log.debug", []):
        logging.getLogger(ns).setLevel(logging.DEBUG)

    for ns in cfg.get("log.watch", []):
        logging.getLogger(ns).setLevel(shift(base_level, -1))

    for ns in cfg.get("log.quiet", ["elasticsearch", "elastic_transport", "aiohttp",
                                     "uvicorn", "uvicorn.access", "uvicorn.error",
                                     "fastapi", "urllib3", "httpx"]):
        logging.getLogger(ns).setLevel(shift(base_level, +1))

    return es_log


def get_logger(name: str | None = None) -> logging.Logger:
    """Returns the estiles logger, or a child of it."""
    return logging.getLogger(f"estiles.{name}" if name else "estiles")

# --------------- ops stream ---------------

def _result_status(err: BaseException | None) -> tuple[str, str | None]:
    """Return (status, error_code) for a finished store call."""
    if err is None:
        return "ok", None
    if isinstance(err, NoTileError):
        return "miss", None
    return "error", type(err).__name__


def ops_event(op: str, **extra_keys):
    """
    Store method decorator: times the coroutine and emits one ops_log line.

    Parameters
    ----------
    op:
        Operation name emitted in the ``op`` field (e.g. ``"get"``).
    **extra_keys:
        Additional event fields.
        - str value  → resolved from the bound call arguments
        - callable   → called as ``fn(arguments, result)`` after the call
    """
    def decorator(fn):
        sig = inspect.signature(fn)

        def _extras(arguments: dict, result: Any) -> dict:
            out: dict = {}
            for field, src in extra_keys.items():
                try:
                    out[field] = src(arguments, result) if callable(src) \
                        else arguments.get(src)
                except Exception:
                    out[field] = None
            return out

        @functools.wraps(fn)
        async def awrapper(self, *args, **kwargs):
            _t0 = time.perf_counter()
            _err: BaseException | None = None
            result = None
            try:
                result = await fn(self, *args, **kwargs)
                return result
            except BaseException as e:
                _err = e
                raise
            finally:
                _s, _c = _result_status(_err)
                if _s == "error":
                    set_error(f"{op}: {_err}")
                bound = sig.bind_partial(self, *args, **kwargs).arguments
                emit(
                    op=op,
                    index=getattr(getattr(self, "options", None), "index", None),
                    latency_ms=round((time.perf_counter() - _t0) * 1000, 2),
                    status=_s, error_code=_c,
                    **_extras(bound, result),
                )
        return awrapper
    return decorator
