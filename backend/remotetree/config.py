from __future__ import annotations

import os
from pathlib import Path


SETTINGS_SECTION = "remotetree"


def backend_dir() -> Path:
    # backend/remotetree/config.py -> backend/
    return Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    return backend_dir() / "data"


def db_path() -> Path:
    p = os.environ.get("REMOTETREE_DB_PATH", "").strip()
    if p:
        return Path(p)
    return data_dir() / "remotetree.db"


def home_dir() -> Path:
    raw = (
        os.environ.get("REMOTETREE_HOME_DIR")
        or os.environ.get("USERPROFILE")
        or os.environ.get("HOME")
        or "/"
    )
    return Path(raw.strip() or "/").expanduser()


def kubectl_path() -> str:
    return os.environ.get("KUBECTL_PATH", "kubectl").strip() or "kubectl"


def cors_origins() -> list[str]:
    raw = os.environ.get("REMOTETREE_CORS_ORIGINS", "http://localhost:5173")
    return [o.strip() for o in raw.split(",") if o.strip()]
