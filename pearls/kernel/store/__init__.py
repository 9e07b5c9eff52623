"""
Store - typed data access over threads, grants and pearls.
"""

from pearls.kernel.store.pearls import PearlStore
from pearls.kernel.store.search import SearchHit, backend_for
from pearls.kernel.store.threads import ThreadStore

__all__ = [
    "PearlStore",
    "SearchHit",
    "ThreadStore",
    "backend_for",
]
