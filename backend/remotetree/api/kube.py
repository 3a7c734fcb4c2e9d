from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from remotetree.kube.namespace import use_namespace
from remotetree.tree.interaction import ScriptedInteraction


router = APIRouter()


class NamespaceBody(BaseModel):
    namespace: Optional[str] = None
    preferPick: bool = False
    picks: list[Optional[str]] = Field(default_factory=list)
    inputs: list[Optional[str]] = Field(default_factory=list)


@router.post("/api/kube/namespace")
async def api_use_namespace(body: NamespaceBody) -> dict:
    ui = ScriptedInteraction.answering(inputs=body.inputs, picks=body.picks)
    switched = await use_namespace(ui, body.namespace, prefer_pick=body.preferPick)
    return {"namespace": switched, "notifications": [n.to_dict() for n in ui.notifications]}
