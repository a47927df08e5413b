"""
Cache Domain Module

Entities, value objects and collection interfaces for the shared cache.
"""
