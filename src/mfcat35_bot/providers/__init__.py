"""Message providers."""

from .qq_napcat import NapcatProvider

__all__ = ["NapcatProvider"]
