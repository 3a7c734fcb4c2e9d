from __future__ import annotations


class TreeError(RuntimeError):
    pass


class ConfigParseError(TreeError):
    """A persisted profile cannot be turned into a usable backend client."""


class BackendUnavailable(TreeError):
    """A remote listing or fetch failed (network, auth, missing object)."""


class UserCancelled(TreeError):
    """An interactive prompt returned no answer."""


class InvariantViolation(TreeError):
    """A node was constructed without serialized options or a live handle."""
