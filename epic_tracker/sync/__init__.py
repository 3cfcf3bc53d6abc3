"""Synchronization of cached epics to the remote tracker."""

from .engine import RemoteTracker, SyncEngine, SyncReport

__all__ = ["RemoteTracker", "SyncEngine", "SyncReport"]
