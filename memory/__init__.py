"""Memory subsystem exports."""

from .context import ContextCache, ContextPair

__all__ = ["ContextCache", "ContextPair"]
