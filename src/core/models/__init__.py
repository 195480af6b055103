from src.core.models.base import Base
from src.core.models.memory_note import MemoryNote

__all__ = ["Base", "MemoryNote"]
