from __future__ import annotations

import asyncio
import json
import shutil
import subprocess
from typing import Optional

from remotetree.config import kubectl_path
from remotetree.logging.ndjson import log_event
from remotetree.tree.interaction import Interaction


DEFAULT_NAMESPACE = "default"


class KubectlError(RuntimeError):
    pass


def _run(args: list[str], *, timeout: int = 60) -> str:
    binary = shutil.which(kubectl_path())
    if not binary:
        raise KubectlError(f"kubectl not found: {kubectl_path()}")
    try:
        proc = subprocess.run(
            [binary, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise KubectlError(f"kubectl {' '.join(args)} failed: {e}") from e
    if proc.returncode != 0:
        raise KubectlError((proc.stderr or proc.stdout or "").strip() or f"kubectl exited {proc.returncode}")
    return proc.stdout


async def current_namespace() -> str:
    out = await asyncio.to_thread(_run, ["config", "view", "--minify", "-o", "jsonpath={..namespace}"])
    return out.strip() or DEFAULT_NAMESPACE


async def list_namespaces() -> list[str]:
    out = await asyncio.to_thread(_run, ["get", "namespaces", "-o", "json"])
    try:
        items = json.loads(out).get("items") or []
    except ValueError as e:
        raise KubectlError(f"Unexpected kubectl output: {e}") from e
    return [str(i["metadata"]["name"]) for i in items if i.get("metadata", {}).get("name")]


async def switch_namespace(namespace: str) -> None:
    await asyncio.to_thread(_run, ["config", "set-context", "--current", f"--namespace={namespace}"])
    log_event(level="info", event="kube.namespace.switch", data={"namespace": namespace})


def _strip_kind(resource: str) -> str:
    # quick-pick answers look like `namespace/<name>`
    return resource.rsplit("/", 1)[-1]


async def use_namespace(
    ui: Interaction,
    namespace: Optional[str] = None,
    *,
    prefer_pick: bool = False,
) -> Optional[str]:
    """
    Switch the current kubectl context to `namespace`, or ask which one.
    Returns the namespace switched to, or None when nothing changed.
    """
    try:
        if namespace:
            await switch_namespace(namespace)
            ui.notify("info", f"Switched to namespace {namespace}")
            return namespace

        current = await current_namespace()
        if prefer_pick:
            candidates = [f"namespace/{n}" for n in await list_namespaces() if n != current]
            answer = await ui.pick_one(candidates, title="What namespace do you want to use?")
        else:
            answer = await ui.input_box(
                "What namespace do you want to use?",
                placeholder="Enter the namespace to switch to or press enter to select from available list",
            )
        if not answer:
            return None
        target = _strip_kind(answer)
        if not target or target == current:
            return None
        await switch_namespace(target)
    except KubectlError as e:
        ui.notify("warning", f"Unable to switch namespace: {e}")
        return None
    ui.notify("info", f"Switched to namespace {target}")
    return target
