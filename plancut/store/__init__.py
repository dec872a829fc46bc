from plancut.store.repository import CutoutRepository, InMemoryRepository, PersistenceError

__all__ = ["CutoutRepository", "InMemoryRepository", "PersistenceError"]
