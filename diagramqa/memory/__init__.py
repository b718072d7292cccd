from .bank import DEFAULT_MEMORY_PATH, MemoryBank

__all__ = ["DEFAULT_MEMORY_PATH", "MemoryBank"]
