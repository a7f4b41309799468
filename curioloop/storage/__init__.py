"""Local JSON persistence."""

from curioloop.storage.store import LearningStore

__all__ = ["LearningStore"]
