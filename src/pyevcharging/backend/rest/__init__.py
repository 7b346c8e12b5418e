"""REST reservation backend."""

from .api import Backend

__all__ = ["Backend"]
