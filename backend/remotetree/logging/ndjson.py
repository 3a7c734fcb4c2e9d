from __future__ import annotations

import json
import os
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from remotetree.config import data_dir

_lock = threading.Lock()

LOG_PREFIX = "remotetree"


def log_dir() -> Path:
    p = os.environ.get("REMOTETREE_LOG_DIR")
    if p:
        return Path(p)
    return data_dir() / "logs"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _max_bytes() -> int:
    return _env_int("REMOTETREE_LOG_MAX_BYTES", 50 * 1024 * 1024)


def _retention_days() -> int:
    return _env_int("REMOTETREE_LOG_RETENTION_DAYS", 7)


def _day_prefix(ts: Optional[float] = None) -> str:
    dt = datetime.fromtimestamp(ts or time.time())
    return dt.strftime(f"{LOG_PREFIX}-%Y-%m-%d")


def _truncate(v: Any, *, max_len: int = 600) -> Any:
    if v is None or isinstance(v, (int, float, bool)):
        return v
    if isinstance(v, str):
        if len(v) <= max_len:
            return v
        return v[:max_len] + f"...(+{len(v) - max_len} chars)"
    if isinstance(v, dict):
        out: dict[str, Any] = {}
        for k, vv in list(v.items())[:80]:
            out[str(k)] = _truncate(vv, max_len=max_len)
        if len(v) > 80:
            out["_truncated_keys"] = len(v) - 80
        return out
    if isinstance(v, (list, tuple)):
        items = [_truncate(x, max_len=max_len) for x in list(v)[:80]]
        if len(v) > 80:
            items.append({"_truncated_items": len(v) - 80})
        return items
    return _truncate(str(v), max_len=max_len)


def _pick_log_file(*, ts: Optional[float] = None) -> Path:
    d = log_dir()
    d.mkdir(parents=True, exist_ok=True)
    prefix = _day_prefix(ts)
    max_b = _max_bytes()

    # rotate by size within the day: base, .1, .2, ...
    candidates = [d / f"{prefix}.ndjson"] + [d / f"{prefix}.{i}.ndjson" for i in range(1, 1000)]
    for p in candidates:
        if not p.exists() or p.stat().st_size < max_b:
            return p
    return candidates[0]


def _prune_old_files() -> None:
    d = log_dir()
    if not d.exists():
        return
    cutoff = datetime.now() - timedelta(days=_retention_days())
    for p in d.glob(f"{LOG_PREFIX}-*.ndjson"):
        try:
            if datetime.fromtimestamp(p.stat().st_mtime) < cutoff:
                p.unlink(missing_ok=True)
        except OSError:
            continue


def init_logging() -> None:
    """
    Best-effort init: ensure log dir exists and prune old files.
    """
    with _lock:
        log_dir().mkdir(parents=True, exist_ok=True)
        _prune_old_files()


def log_event(
    *,
    level: str,
    event: str,
    data: Optional[dict[str, Any]] = None,
    explorer: Optional[str] = None,
    requestId: Optional[str] = None,
) -> None:
    """
    Append a single structured NDJSON record.
    Never include credentials; callers pass names, paths and sizes.
    """
    rec: dict[str, Any] = {
        "ts": int(time.time() * 1000),
        "level": level,
        "event": event,
    }
    if explorer:
        rec["explorer"] = explorer
    if requestId:
        rec["requestId"] = requestId
    if data:
        rec["data"] = _truncate(data)

    line = json.dumps(rec, ensure_ascii=False, default=str)
    with _lock:
        try:
            _prune_old_files()
            with open(_pick_log_file(), "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            # Logging must never break a tree operation.
            pass
