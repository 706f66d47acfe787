"""
Storage adapters.

Concrete adapters are imported by the registry on demand, so their drivers
(aiohttp, redis) are only needed for the backends actually used.
"""

from .base import Adapter, BaseAdapter

__all__ = ["Adapter", "BaseAdapter"]
