"""
Runtime for live objects.

The recompilation cache re-reads its source on every access and swaps in a
freshly compiled unit and instance whenever the text changed.
"""

from .recompilation_cache import RecompilationCache, bind

__all__ = ["RecompilationCache", "bind"]
