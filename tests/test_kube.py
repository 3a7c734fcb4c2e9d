from __future__ import annotations

import json

import pytest

from conftest import run
from remotetree.kube import namespace as kube
from remotetree.tree.interaction import ScriptedInteraction


class FakeKubectl:
    def __init__(self, current: str = "default", namespaces=("default", "kube-system", "team-a"), fail: bool = False):
        self.current = current
        self.namespaces = list(namespaces)
        self.fail = fail
        self.calls: list[list[str]] = []

    def __call__(self, args: list[str], *, timeout: int = 60) -> str:
        self.calls.append(args)
        if self.fail:
            raise kube.KubectlError("The connection to the server localhost:8080 was refused")
        if args[:2] == ["config", "view"]:
            return self.current
        if args[:2] == ["get", "namespaces"]:
            return json.dumps({"items": [{"metadata": {"name": n}} for n in self.namespaces]})
        if args[:2] == ["config", "set-context"]:
            self.current = args[-1].split("=", 1)[1]
            return ""
        raise AssertionError(args)


@pytest.fixture
def kubectl(monkeypatch) -> FakeKubectl:
    fake = FakeKubectl()
    monkeypatch.setattr(kube, "_run", fake)
    return fake


def test_direct_switch(kubectl):
    ui = ScriptedInteraction()
    assert run(kube.use_namespace(ui, "team-a")) == "team-a"
    assert kubectl.current == "team-a"
    assert ui.prompts == []
    assert ui.notifications[0].message == "Switched to namespace team-a"


def test_typed_answer(kubectl):
    ui = ScriptedInteraction.answering(inputs=["kube-system"])
    assert run(kube.use_namespace(ui)) == "kube-system"
    assert ui.prompts == ["What namespace do you want to use?"]


def test_pick_excludes_current_and_strips_kind(kubectl):
    ui = ScriptedInteraction.answering(picks=["namespace/team-a"])
    assert run(kube.use_namespace(ui, prefer_pick=True)) == "team-a"
    assert kubectl.current == "team-a"


def test_picking_current_namespace_is_not_offered(kubectl):
    ui = ScriptedInteraction.answering(picks=["namespace/default"])
    assert run(kube.use_namespace(ui, prefer_pick=True)) is None
    assert not any(c[:2] == ["config", "set-context"] for c in kubectl.calls)


def test_same_namespace_does_not_switch(kubectl):
    ui = ScriptedInteraction.answering(inputs=["default"])
    assert run(kube.use_namespace(ui)) is None
    assert ui.notifications == []


def test_dismissed_prompt(kubectl):
    assert run(kube.use_namespace(ScriptedInteraction())) is None


def test_kubectl_failure_warns(monkeypatch):
    monkeypatch.setattr(kube, "_run", FakeKubectl(fail=True))
    ui = ScriptedInteraction.answering(inputs=["team-a"])
    assert run(kube.use_namespace(ui)) is None
    assert ui.notifications[0].level == "warning"
    assert "refused" in ui.notifications[0].message


def test_empty_namespace_means_default(monkeypatch):
    monkeypatch.setattr(kube, "_run", FakeKubectl(current="\n"))
    assert run(kube.current_namespace()) == "default"


def test_missing_binary(monkeypatch):
    monkeypatch.setenv("KUBECTL_PATH", "definitely-not-kubectl-xyz")
    with pytest.raises(kube.KubectlError):
        kube._run(["version"])
