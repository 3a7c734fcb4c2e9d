from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from remotetree.explorers.git import GitNode, create_merge_request
from remotetree.explorers.home import FileNode, copy_path
from remotetree.explorers.router import ExplorerError, Workbench
from remotetree.tree.interaction import ScriptedInteraction
from remotetree.tree.node import TreeNode
from remotetree.tree.providerresult import map_result


router = APIRouter()


class RefreshBody(BaseModel):
    nodeId: Optional[str] = None


class AddProfileBody(BaseModel):
    inputs: list[Optional[str]] = Field(default_factory=list, description="Answers to the add prompts, in order")


class RemoveBody(BaseModel):
    selection: list[str] = Field(default_factory=list)
    confirm: bool = False


class NodeBody(BaseModel):
    nodeId: str


class MergeRequestBody(BaseModel):
    nodeId: str
    picks: list[Optional[str]] = Field(default_factory=list, description="source, target, assignee")
    inputs: list[Optional[str]] = Field(default_factory=list, description="title, description")


def _workbench(request: Request) -> Workbench:
    return request.app.state.workbench


def _describe(node: TreeNode[Any]) -> dict[str, Any]:
    return {
        "id": node.node_id,
        "name": node.name,
        "path": node.path,
        "leaf": node.leaf,
        "item": node.get_tree_item().to_dict(),
    }


def _not_found(e: ExplorerError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@router.get("/api/explorers")
def api_list_explorers(request: Request) -> dict:
    return {"explorers": sorted(_workbench(request).explorers)}


@router.get("/api/explorers/{name}/children")
async def api_children(request: Request, name: str, nodeId: Optional[str] = Query(None)) -> dict:
    try:
        nodes = await map_result(_workbench(request).children(name, nodeId), _describe)
    except ExplorerError as e:
        raise _not_found(e) from e
    return {"explorer": name, "nodeId": nodeId, "nodes": nodes or []}


@router.post("/api/explorers/{name}/refresh")
def api_refresh(request: Request, name: str, body: RefreshBody) -> dict:
    try:
        _workbench(request).refresh(name, body.nodeId)
    except ExplorerError as e:
        raise _not_found(e) from e
    return {"ok": True}


@router.post("/api/explorers/{name}/profiles")
async def api_add_profile(request: Request, name: str, body: AddProfileBody) -> dict:
    ui = ScriptedInteraction.answering(inputs=body.inputs)
    try:
        profile = await _workbench(request).add_profile(name, ui)
    except ExplorerError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {
        "ok": profile is not None,
        "profile": _redact(profile),
        "notifications": [n.to_dict() for n in ui.notifications],
    }


@router.post("/api/explorers/{name}/remove")
async def api_remove_profiles(request: Request, name: str, body: RemoveBody) -> dict:
    ui = ScriptedInteraction.answering(picks=[body.selection], confirmations=[body.confirm])
    try:
        removed = await _workbench(request).remove_profiles(name, ui)
    except ExplorerError as e:
        raise _not_found(e) from e
    return {"removed": removed, "notifications": [n.to_dict() for n in ui.notifications]}


@router.get("/api/explorers/{name}/content")
async def api_content(request: Request, name: str, nodeId: str = Query(...)) -> dict:
    try:
        doc = await _workbench(request).content(name, nodeId)
    except ExplorerError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"nodeId": nodeId, "document": doc.to_dict() if doc else None}


@router.post("/api/explorers/home/copy-path")
async def api_copy_path(request: Request, body: NodeBody) -> dict:
    wb = _workbench(request)
    try:
        node = wb.node("home", body.nodeId)
    except ExplorerError as e:
        raise _not_found(e) from e
    if not isinstance(node, FileNode):
        raise HTTPException(status_code=400, detail="Not a file node")
    return {"path": await copy_path(node, wb.clipboard)}


@router.post("/api/explorers/git/merge-requests")
async def api_create_merge_request(request: Request, body: MergeRequestBody) -> dict:
    try:
        node = _workbench(request).node("git", body.nodeId)
    except ExplorerError as e:
        raise _not_found(e) from e
    if not isinstance(node, GitNode):
        raise HTTPException(status_code=400, detail="Not a repository node")
    ui = ScriptedInteraction.answering(inputs=body.inputs, picks=body.picks)
    mr = await create_merge_request(node, ui)
    return {
        "ok": mr is not None,
        "mergeRequest": None if mr is None else {"title": mr.title, "source": mr.source, "target": mr.target, "url": mr.url},
        "notifications": [n.to_dict() for n in ui.notifications],
    }


_SECRET_FIELDS = ("token", "secretKey", "password")


def _redact(profile: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if profile is None:
        return None
    return {k: ("***" if k in _SECRET_FIELDS and v else v) for k, v in profile.items()}
