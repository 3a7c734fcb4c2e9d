from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from remotetree.config import SETTINGS_SECTION
from remotetree.events.bus import ConfigurationChange, ConfigurationEmitter, EventEmitter
from remotetree.logging.ndjson import log_event
from remotetree.state.store import ProfileStore
from remotetree.tree.interaction import Interaction, Notifier
from remotetree.tree.node import TreeItem, TreeNode


T = TypeVar("T", bound=TreeNode[Any])

Profile = dict[str, Any]


class ClusterExplorer(ABC, Generic[T]):
    """
    Maps the persisted profile list of one backend to root nodes and delegates
    everything below the roots to the nodes themselves.
    """

    #: Explorer name used by the registry and in logs.
    kind: str = ""
    #: State key holding this backend's JSON profile list.
    storage_key: str = ""

    def __init__(
        self,
        profiles: ProfileStore,
        configuration: ConfigurationEmitter,
        notifier: Notifier,
    ) -> None:
        self.profiles = profiles
        self.notifier = notifier
        self.on_did_change_tree_data: EventEmitter[Optional[T]] = EventEmitter()
        self._unsubscribe = configuration.subscribe(self._on_configuration_changed)

    def _on_configuration_changed(self, change: ConfigurationChange) -> None:
        if change.affects(SETTINGS_SECTION):
            self.refresh()

    def dispose(self) -> None:
        self._unsubscribe()

    @abstractmethod
    async def get_clusters(self) -> list[T]: ...

    def name(self, profile: Profile) -> str:
        """Display name (and identity) of a persisted profile."""
        return json.dumps(profile, sort_keys=True)

    def get_tree_item(self, node: T) -> TreeItem:
        return node.get_tree_item()

    async def get_children(self, parent: Optional[T] = None) -> list[T]:
        if parent is not None:
            return await parent.get_children()  # type: ignore[return-value]
        return await self.get_clusters()

    def refresh(self, node: Optional[T] = None) -> None:
        self.on_did_change_tree_data.fire(node)

    def load_profiles(self) -> list[Profile]:
        return self.profiles.load(self.storage_key)

    def skip_profile(self, profile: Profile, err: Exception) -> None:
        log_event(
            level="warning",
            event="explorer.profile.skipped",
            explorer=self.kind,
            data={"profile": self.name(profile), "error": str(err)},
        )

    async def upsert_profile(self, identity: str, update: Profile, new: Profile) -> bool:
        """
        Update the profile whose display name equals `identity` in place, or
        append `new`. Entries without a usable display name are dropped.
        Returns True when an existing profile was updated.
        """
        async with self.profiles.locked(self.storage_key):
            kept: list[Profile] = []
            exists = False
            for profile in self.load_profiles():
                if not self.is_valid(profile):
                    continue
                if self.name(profile) == identity:
                    profile.update(update)
                    exists = True
                kept.append(profile)
            if not exists:
                kept.append(new)
            self.profiles.save(self.storage_key, kept)
        log_event(
            level="info",
            event="explorer.profile.added",
            explorer=self.kind,
            data={"profile": identity, "updated": exists},
        )
        self.refresh()
        return exists

    def is_valid(self, profile: Profile) -> bool:
        return bool(profile)

    async def remove_clusters(self, ui: Interaction) -> list[str]:
        """
        Let the user pick profiles to remove, confirm, then rewrite the stored
        list without them. Returns the removed display names ([] on cancel).
        """
        async with self.profiles.locked(self.storage_key):
            clusters = self.load_profiles()
            if not clusters:
                ui.notify("info", "No clusters found ... ")
                return []
            candidates = [self.name(c) for c in clusters]
            selection = await ui.pick_many(candidates, title="Please select clusters you want to remove:")
            if not selection:
                ui.notify("info", "User cancelled removing clusters ... ")
                return []
            if not await ui.confirm(f"Are you sure to remove clusters: {json.dumps(selection)}?"):
                ui.notify("info", "User cancelled removing clusters ... ")
                return []
            deleting = set(selection)
            kept = [c for c in clusters if self.name(c) not in deleting]
            self.profiles.save(self.storage_key, kept)
        log_event(
            level="info",
            event="explorer.profiles.removed",
            explorer=self.kind,
            data={"removed": sorted(deleting), "kept": len(kept)},
        )
        self.refresh()
        return list(selection)
