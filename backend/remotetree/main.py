from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from remotetree.api.events import router as events_router
from remotetree.api.explorers import router as explorers_router
from remotetree.api.kube import router as kube_router
from remotetree.api.logs import router as logs_router
from remotetree.api.settings import router as settings_router
from remotetree.config import backend_dir, cors_origins
from remotetree.db import init_db
from remotetree.explorers.router import Workbench, create_workbench
from remotetree.logging.ndjson import init_logging, log_event


def _load_dotenvs() -> None:
    """
    Load environment variables from:
    - backend/.env
    - repo-root/.env
    """
    backend = backend_dir()
    load_dotenv(backend / ".env")
    load_dotenv(backend.parent / ".env")


def create_app(workbench: Optional[Workbench] = None) -> FastAPI:
    """
    App factory; serve with `uvicorn --factory remotetree.main:create_app`.
    """
    _load_dotenvs()
    init_db()
    init_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log_event(level="info", event="app.startup", data={"explorers": sorted(app.state.workbench.explorers)})
        try:
            yield
        finally:
            app.state.workbench.close()

    app = FastAPI(title="remotetree API", version="0.1.0", lifespan=lifespan)
    app.state.workbench = workbench or create_workbench()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict:
        return {"ok": True}

    @app.middleware("http")
    async def log_exceptions(request, call_next):  # type: ignore[no-untyped-def]
        try:
            return await call_next(request)
        except Exception as e:  # noqa: BLE001
            log_event(
                level="error",
                event="api.exception",
                data={"method": request.method, "path": str(request.url.path), "error": str(e)},
            )
            raise

    app.include_router(explorers_router)
    app.include_router(events_router)
    app.include_router(kube_router)
    app.include_router(logs_router)
    app.include_router(settings_router)
    return app
