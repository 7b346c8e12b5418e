"""Backend collaborators for reservation storage and arbitration."""

from .base import BaseBackend, HttpBackend
from .memory import InMemoryBackend

__all__ = ["BaseBackend", "HttpBackend", "InMemoryBackend"]
