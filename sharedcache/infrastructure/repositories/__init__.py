"""
Repositories built on the shared document store.
"""

from .key_ring_repository import KeyRingRepository

__all__ = ["KeyRingRepository"]
