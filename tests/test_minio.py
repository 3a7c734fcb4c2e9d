from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
from minio.error import MinioException

from conftest import MemoryState, run
from remotetree.events.bus import ConfigurationEmitter
from remotetree.explorers.minio import MINIO_STATE, MinioExplorer, MinioNode, add_existing_minio_cluster, get_content
from remotetree.minio.client import Endpoint, MinioStore
from remotetree.state.store import ProfileStore
from remotetree.tree.errors import ConfigParseError
from remotetree.tree.interaction import ScriptedInteraction
from remotetree.tree.node import Bound


class TestEndpoint:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("https://s3.example.com", Endpoint("s3.example.com", 443, True)),
            ("https://s3.example.com:9443", Endpoint("s3.example.com", 443, True)),
            ("http://minio.local:9001", Endpoint("minio.local", 9001, False)),
            ("http://minio.local", Endpoint("minio.local", 9000, False)),
            ("127.0.0.1:9000", Endpoint("127.0.0.1", 9000, False)),
            ("localhost", Endpoint("localhost", 9000, False)),
        ],
    )
    def test_parse(self, raw, expected):
        assert Endpoint.parse(raw) == expected

    @pytest.mark.parametrize("raw", ["", "http://", "http://host:port"])
    def test_invalid(self, raw):
        with pytest.raises(ConfigParseError):
            Endpoint.parse(raw)


class FakeResponse:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.closed = False
        self.released = False

    def read(self, *args, **kwargs) -> bytes:
        return self.data

    def close(self) -> None:
        self.closed = True

    def release_conn(self) -> None:
        self.released = True


class FakeMinio:
    def __init__(self, objects: dict[str, dict[str, bytes]], fail: bool = False) -> None:
        self.objects = objects
        self.fail = fail
        self.calls: list[tuple] = []
        self.responses: list[FakeResponse] = []

    def _maybe_fail(self) -> None:
        if self.fail:
            raise MinioException("Access Denied.")

    def list_buckets(self):
        self.calls.append(("list_buckets",))
        self._maybe_fail()
        return [SimpleNamespace(name=b) for b in sorted(self.objects)]

    def list_objects(self, bucket, prefix=None, recursive=False):
        self.calls.append(("list_objects", bucket, prefix))
        self._maybe_fail()
        prefix = prefix or ""
        seen: dict[str, bool] = {}
        for name in sorted(self.objects[bucket]):
            if not name.startswith(prefix):
                continue
            head, sep, _ = name[len(prefix):].partition("/")
            seen[prefix + head + sep] = bool(sep)
        for name, is_dir in seen.items():
            yield SimpleNamespace(object_name=name, is_dir=is_dir)

    def get_object(self, bucket, name):
        self._maybe_fail()
        resp = FakeResponse(self.objects[bucket][name])
        self.responses.append(resp)
        return resp


OBJECTS = {
    "logs": {"2024/01/a.log": b"line a", "2024/b.log": b"line b", "top.txt": b"top"},
    "media": {},
}


def _store(fake: FakeMinio) -> MinioStore:
    return MinioStore(Endpoint("minio.local", 9000, False), client=fake)


def _root(fake: FakeMinio, notifier=None) -> MinioNode:
    return MinioNode(
        "http://minio.local:9000",
        "",
        leaf=False,
        bucket=None,
        endpoint="http://minio.local:9000",
        connection=Bound(_store(fake)),
        notifier=notifier or ScriptedInteraction(),
    )


class TestMinioNodes:
    def test_root_lists_buckets(self):
        buckets = run(_root(FakeMinio(OBJECTS)).get_children())
        assert [(b.name, b.bucket, b.path, b.leaf) for b in buckets] == [
            ("logs", "logs", "", False),
            ("media", "media", "", False),
        ]

    def test_bucket_lists_one_level_with_relative_names(self):
        fake = FakeMinio(OBJECTS)
        logs = run(_root(fake).get_children())[0]
        level1 = run(logs.get_children())
        assert [(n.name, n.path, n.leaf) for n in level1] == [("2024/", "2024/", False), ("top.txt", "top.txt", True)]
        level2 = run(level1[0].get_children())
        assert [(n.name, n.path, n.leaf) for n in level2] == [("01/", "2024/01/", False), ("b.log", "2024/b.log", True)]
        assert fake.calls[-1] == ("list_objects", "logs", "2024/")

    def test_leaf_item_has_get_content_command(self):
        fake = FakeMinio(OBJECTS)
        logs = run(_root(fake).get_children())[0]
        top = run(logs.get_children())[1]
        assert top.get_tree_item().command.command == "remotetree.minioExplorer.getContent"
        assert logs.get_tree_item().command is None

    def test_minio_error_is_warning(self):
        notifier = ScriptedInteraction()
        assert run(_root(FakeMinio(OBJECTS, fail=True), notifier).get_children()) == []
        assert notifier.notifications[0].level == "warning"

    def test_get_content_releases_response(self):
        fake = FakeMinio(OBJECTS)
        node = MinioNode("top.txt", "top.txt", leaf=True, bucket="logs", endpoint="e", connection=Bound(_store(fake)), notifier=ScriptedInteraction())
        doc = run(get_content(node))
        assert doc.content == "top"
        assert doc.language == "plaintext"
        assert fake.responses[0].closed and fake.responses[0].released

    def test_get_content_on_bucket_is_refused(self):
        notifier = ScriptedInteraction()
        node = MinioNode("logs", "", leaf=False, bucket="logs", endpoint="e", connection=Bound(_store(FakeMinio(OBJECTS))), notifier=notifier)
        assert run(get_content(node)) is None
        assert notifier.notifications


class TestMinioExplorer:
    def _explorer(self, state: MemoryState) -> MinioExplorer:
        return MinioExplorer(ProfileStore(state), ConfigurationEmitter(), ScriptedInteraction())

    def test_add_splits_credentials_and_upserts(self):
        state = MemoryState()
        explorer = self._explorer(state)
        run(add_existing_minio_cluster(explorer, ScriptedInteraction.answering(inputs=["127.0.0.1:9000", "ak:sk"])))
        run(add_existing_minio_cluster(explorer, ScriptedInteraction.answering(inputs=["127.0.0.1:9000", "ak2:sk2:x"])))
        assert json.loads(state.values[MINIO_STATE]) == [
            {"endPoint": "127.0.0.1:9000", "accessKey": "ak2", "secretKey": "sk2:x"}
        ]

    def test_roots_skip_bad_endpoints(self):
        state = MemoryState({MINIO_STATE: json.dumps([{"endPoint": "http://:9000"}, {"endPoint": "https://s3.local"}])})
        roots = run(self._explorer(state).get_clusters())
        assert [r.name for r in roots] == ["https://s3.local"]
        assert roots[0].handle.endpoint == Endpoint("s3.local", 443, True)
