"""
Caching package for the Kitchen Display Service.
"""

from .tiered_cache import TieredOrderCache

__all__ = ["TieredOrderCache"]
