# Infrastructure Stats Adapters Package
from .json_storage import JsonFileStorage
from .memory_storage import InMemoryStorage

__all__ = ["JsonFileStorage", "InMemoryStorage"]
