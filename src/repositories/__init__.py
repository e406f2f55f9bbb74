"""Repository implementations."""

from .asana import AsanaRepository
from .cache import ResourceCache
from .memory import InMemoryEntityRepository

__all__ = [
    "AsanaRepository",
    "ResourceCache",
    "InMemoryEntityRepository",
]
