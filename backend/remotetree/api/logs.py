from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Query

from remotetree.logging.ndjson import LOG_PREFIX, log_dir

router = APIRouter()


def _read_tail_lines(path: Path, *, max_lines: int) -> list[str]:
    """
    Reads up to the last 512KB of a log file and returns its last lines.
    """
    if not path.exists():
        return []
    try:
        size = path.stat().st_size
        read_bytes = min(size, 512 * 1024)
        with open(path, "rb") as f:
            f.seek(max(0, size - read_bytes))
            buf = f.read(read_bytes)
    except OSError:
        return []
    lines = [ln for ln in buf.decode("utf-8", errors="ignore").splitlines() if ln.strip()]
    return lines[-max_lines:]


@router.get("/api/logs/tail")
def get_logs_tail(lines: int = Query(200, ge=1, le=2000)) -> dict[str, Any]:
    d = log_dir()
    files = sorted(d.glob(f"{LOG_PREFIX}-*.ndjson"), key=lambda p: p.name, reverse=True)
    out_lines: list[str] = []
    for p in files:
        remaining = lines - len(out_lines)
        if remaining <= 0:
            break
        # older files go first so the tail stays chronological
        out_lines = _read_tail_lines(p, max_lines=remaining) + out_lines
    tail = out_lines[-lines:]
    return {"dir": str(d), "lines": tail, "count": len(tail)}
