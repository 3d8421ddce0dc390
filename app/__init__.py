"""Application helper package."""

from . import constants, errors, settings, runtime, chat_context

__all__ = ["constants", "errors", "settings", "runtime", "chat_context"]
