"""
Cache package.

- base.py: CacheProtocol, the abstract cache interface
- file_cache.py: FileCache, the sharded file-backed TTL cache
"""

from pie_cache.cache.base import CacheProtocol
from pie_cache.cache.file_cache import FileCache

__all__ = ["CacheProtocol", "FileCache"]
