"""
Cache Services

Distributed byte-blob cache over the shared document store.
"""

from .distributed_cache import DistributedCache

__all__ = ["DistributedCache"]
