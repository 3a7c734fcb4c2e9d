from __future__ import annotations

import asyncio
import json

from conftest import MemoryState, run
from remotetree.events.bus import ConfigurationChange, EventBus, EventEmitter
from remotetree.settings.store import list_settings, set_settings
from remotetree.state.store import ProfileStore, SqliteStateStore


class TestSqliteStateStore:
    def test_get_missing(self):
        assert SqliteStateStore().get("remotetree.etcd-explorer") is None

    def test_set_is_an_upsert(self):
        store = SqliteStateStore()
        store.set("k", "[]")
        store.set("k", '[{"name": "a"}]')
        assert store.get("k") == '[{"name": "a"}]'


class TestProfileStore:
    def test_round_trip_through_sqlite(self):
        profiles = ProfileStore(SqliteStateStore())
        profiles.save("remotetree.minio-explorer", [{"endPoint": "127.0.0.1:9000", "note": "é"}])
        assert profiles.load("remotetree.minio-explorer") == [{"endPoint": "127.0.0.1:9000", "note": "é"}]

    def test_invalid_json_reads_as_empty(self):
        profiles = ProfileStore(MemoryState({"k": "{not json"}))
        assert profiles.load("k") == []
        assert profiles.raw("k") == "{not json"

    def test_non_list_reads_as_empty(self):
        assert ProfileStore(MemoryState({"k": json.dumps({"name": "a"})})).load("k") == []

    def test_non_object_entries_are_dropped(self):
        profiles = ProfileStore(MemoryState({"k": json.dumps([1, "x", {"name": "a"}])}))
        assert profiles.load("k") == [{"name": "a"}]

    def test_lock_serializes_writers(self):
        profiles = ProfileStore(MemoryState())
        order: list[str] = []

        async def writer(tag: str) -> None:
            async with profiles.locked("k"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0)
                order.append(f"{tag}-end")

        async def main() -> None:
            await asyncio.gather(writer("a"), writer("b"))

        run(main())
        assert order == ["a-start", "a-end", "b-start", "b-end"]


class TestSettings:
    def test_upsert_and_prefix_listing(self):
        assert list_settings("remotetree.") == {}
        set_settings({"remotetree.refresh": "on", "other.key": "x"})
        set_settings({"remotetree.refresh": "auto", "remotetree.gitlab.ref": "main"})
        assert list_settings("remotetree.") == {"remotetree.gitlab.ref": "main", "remotetree.refresh": "auto"}
        assert list_settings() == {"other.key": "x", "remotetree.gitlab.ref": "main", "remotetree.refresh": "auto"}

    def test_empty_update_is_a_noop(self):
        set_settings({})
        assert list_settings() == {}


class TestEvents:
    def test_emitter_dispose(self):
        emitter: EventEmitter[int] = EventEmitter()
        seen: list[int] = []
        dispose = emitter.subscribe(seen.append)
        emitter.fire(1)
        dispose()
        dispose()
        emitter.fire(2)
        assert seen == [1]
        assert emitter.listener_count == 0

    def test_configuration_change_affects(self):
        change = ConfigurationChange(keys=("remotetree.minio",))
        assert change.affects("remotetree")
        assert not change.affects("remote")
        assert ConfigurationChange(keys=("remotetree",)).affects("remotetree")
        assert not ConfigurationChange(keys=("remotetreex.a",)).affects("remotetree")

    def test_bus_delivers_to_subscribers(self):
        bus = EventBus()

        async def main():
            events = bus.subscribe()
            first = asyncio.ensure_future(events.__anext__())
            await asyncio.sleep(0)
            assert bus.subscriber_count == 1
            bus.publish("tree.changed", {"explorer": "etcd", "nodeId": None})
            ev = await first
            await events.aclose()
            return ev

        ev = run(main())
        assert ev.type == "tree.changed"
        assert ev.payload == {"explorer": "etcd", "nodeId": None}
        assert bus.subscriber_count == 0

    def test_publish_without_subscribers(self):
        assert EventBus().publish("notification", {"level": "info", "message": "hi"}).type == "notification"
