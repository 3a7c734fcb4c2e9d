from __future__ import annotations

import json
from typing import Any, AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse


router = APIRouter()


def _sse(event: str, data: Any) -> bytes:
    payload = json.dumps(data, ensure_ascii=False)
    return f"event: {event}\ndata: {payload}\n\n".encode("utf-8")


@router.get("/api/events")
async def get_events(request: Request) -> StreamingResponse:
    bus = request.app.state.workbench.bus

    async def gen() -> AsyncIterator[bytes]:
        yield _sse("ready", {"explorers": sorted(request.app.state.workbench.explorers)})
        async for ev in bus.subscribe():
            yield _sse(ev.type, {"id": ev.id, "payload": ev.payload, "createdAt": ev.created_at})

    return StreamingResponse(gen(), media_type="text/event-stream")
