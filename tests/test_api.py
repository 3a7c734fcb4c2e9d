from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import MemoryState
from remotetree.explorers.etcd import STATE as ETCD_STATE
from remotetree.explorers.router import create_workbench
from remotetree.main import create_app


@pytest.fixture
def workbench():
    return create_workbench(state=MemoryState())


@pytest.fixture
def client(workbench):
    with TestClient(create_app(workbench)) as c:
        yield c


def test_health_and_explorers(client):
    assert client.get("/api/health").json() == {"ok": True}
    assert client.get("/api/explorers").json() == {"explorers": ["etcd", "git", "home", "minio"]}


def test_unknown_explorer_is_404(client):
    assert client.get("/api/explorers/nope/children").status_code == 404
    assert client.post("/api/explorers/nope/refresh", json={}).status_code == 404


def test_unknown_node_is_404(client):
    r = client.get("/api/explorers/etcd/children", params={"nodeId": "never-listed"})
    assert r.status_code == 404


def test_etcd_profile_lifecycle(client, workbench):
    r = client.post("/api/explorers/etcd/profiles", json={"inputs": ["127.0.0.1:2379", "local"]})
    body = r.json()
    assert body["ok"] is True
    assert body["profile"] == {"name": "local", "options": {"hosts": "127.0.0.1:2379"}}
    assert ETCD_STATE in workbench.profiles.state.values

    nodes = client.get("/api/explorers/etcd/children").json()["nodes"]
    assert [(n["id"], n["name"], n["leaf"]) for n in nodes] == [("local\n/", "local", False)]
    assert nodes[0]["item"]["collapsibleState"] == "collapsed"

    r = client.post("/api/explorers/etcd/remove", json={"selection": ["local"], "confirm": False})
    assert r.json()["removed"] == []
    r = client.post("/api/explorers/etcd/remove", json={"selection": ["local"], "confirm": True})
    assert r.json()["removed"] == ["local"]
    assert client.get("/api/explorers/etcd/children").json()["nodes"] == []


def test_whole_tree_refresh_forgets_listed_nodes(client):
    client.post("/api/explorers/etcd/profiles", json={"inputs": ["127.0.0.1:2379", "local"]})
    client.get("/api/explorers/etcd/children")
    assert client.post("/api/explorers/etcd/refresh", json={"nodeId": "local\n/"}).json() == {"ok": True}

    assert client.post("/api/explorers/etcd/refresh", json={}).json() == {"ok": True}
    assert client.post("/api/explorers/etcd/refresh", json={"nodeId": "local\n/"}).status_code == 404


def test_removed_cluster_is_no_longer_addressable(client):
    client.post("/api/explorers/etcd/profiles", json={"inputs": ["127.0.0.1:2379", "local"]})
    client.get("/api/explorers/etcd/children")
    client.post("/api/explorers/etcd/remove", json={"selection": ["local"], "confirm": True})
    assert client.get("/api/explorers/etcd/children", params={"nodeId": "local\n/"}).status_code == 404


def test_add_without_answers_reports_error(client):
    body = client.post("/api/explorers/etcd/profiles", json={"inputs": []}).json()
    assert body["ok"] is False
    assert body["notifications"] == [{"level": "error", "message": "Cluster hosts is required."}]


def test_add_redacts_secrets(client):
    body = client.post("/api/explorers/minio/profiles", json={"inputs": ["127.0.0.1:9000", "ak:sk"]}).json()
    assert body["profile"]["secretKey"] == "***"
    assert body["profile"]["accessKey"] == "ak"


def test_home_has_no_add_command(client):
    assert client.post("/api/explorers/home/profiles", json={"inputs": []}).status_code == 400


def test_home_children_content_and_copy_path(client, workbench, tmp_path: Path):
    (tmp_path / "home" / "hello.py").write_text("print('hello')\n", encoding="utf-8")
    nodes = client.get("/api/explorers/home/children").json()["nodes"]
    assert [n["name"] for n in nodes] == ["hello.py"]
    node_id = nodes[0]["id"]

    doc = client.get("/api/explorers/home/content", params={"nodeId": node_id}).json()["document"]
    assert doc == {"language": "python", "content": "print('hello')\n"}

    assert client.post("/api/explorers/home/copy-path", json={"nodeId": node_id}).json() == {"path": node_id}
    assert workbench.clipboard.text == node_id


def test_settings_change_refreshes_explorers(client, workbench):
    fired = []
    workbench.explorers["git"].on_did_change_tree_data.subscribe(fired.append)

    r = client.put("/api/settings", json={"settings": {"remotetree.gitlab.ref": "main"}})
    assert r.status_code == 200
    assert r.json()["settings"] == {"remotetree.gitlab.ref": "main"}
    assert fired == [None]
    assert client.get("/api/settings").json() == {"settings": {"remotetree.gitlab.ref": "main"}}


def test_settings_outside_section_are_rejected(client, workbench):
    fired = []
    workbench.explorers["etcd"].on_did_change_tree_data.subscribe(fired.append)
    assert client.put("/api/settings", json={"settings": {"editor.fontSize": "12"}}).status_code == 400
    assert fired == []


def test_refresh_fires_tree_change(client, workbench):
    fired = []
    workbench.explorers["minio"].on_did_change_tree_data.subscribe(fired.append)
    assert client.post("/api/explorers/minio/refresh", json={}).json() == {"ok": True}
    assert fired == [None]


def test_logs_tail_sees_startup(client):
    body = client.get("/api/logs/tail", params={"lines": 50}).json()
    assert any('"app.startup"' in line for line in body["lines"])


def test_kube_namespace_direct(client, monkeypatch):
    from remotetree.kube import namespace as kube

    calls = []
    monkeypatch.setattr(kube, "_run", lambda args, timeout=60: calls.append(args) or "")
    body = client.post("/api/kube/namespace", json={"namespace": "team-a"}).json()
    assert body["namespace"] == "team-a"
    assert calls == [["config", "set-context", "--current", "--namespace=team-a"]]
