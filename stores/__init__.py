from stores.base import SnapshotStore
from stores.memory import InMemorySnapshotStore

__all__ = ["SnapshotStore", "InMemorySnapshotStore"]
