"""Exception hierarchy for the adaptive learning engine."""

from __future__ import annotations


class HypeOSError(Exception):
    """Base class for engine errors."""


class StateStoreError(HypeOSError):
    """Reading or writing persisted engine state failed."""


class StaleStateError(StateStoreError):
    """A save lost an optimistic-concurrency race."""

    def __init__(self, kind: str, key: tuple, expected_version: int):
        self.kind = kind
        self.key = key
        self.expected_version = expected_version
        super().__init__(
            f"Stale {kind} {key}: expected version {expected_version} no longer current"
        )


class CatalogError(HypeOSError):
    """A task catalog could not be read."""
