"""
Live Object: hot-swappable behavior from an editable source file.

Bind a cache to a source, ask it for the instance whenever you need it, and
edit the source while the process runs. The cache re-reads the source on
every call and only recompiles when the text actually changed.

Example:
    >>> from live_object import bind
    >>>
    >>> greeter = bind('scripts/greeter.py')
    >>> greeter.configure_hook(lambda instance: instance.setup())
    >>>
    >>> greeter.get_instance().greet('World')
    >>> # ... edit scripts/greeter.py ...
    >>> greeter.get_instance().greet('World')   # new code, new instance

Failures (missing source, syntax errors, broken constructors, failing hooks)
are raised to the caller and leave the last good instance in place.
"""

__version__ = "0.1.0"

from .core.compiler import Compiler, DefaultInstantiator, Instantiator, PythonCompiler
from .core.errors import (
    CompilationError,
    HookError,
    InstantiationError,
    LiveObjectError,
    ResourceNotFoundError,
)
from .core.source_resolver import (
    FileResolver,
    HttpResolver,
    MemoryResolver,
    PackageResolver,
    SourceResolver,
)
from .runtime.recompilation_cache import RecompilationCache, bind

__all__ = [
    "__version__",
    "bind",
    "RecompilationCache",
    # Resolvers
    "SourceResolver",
    "FileResolver",
    "PackageResolver",
    "HttpResolver",
    "MemoryResolver",
    # Compilation
    "Compiler",
    "PythonCompiler",
    "Instantiator",
    "DefaultInstantiator",
    # Errors
    "LiveObjectError",
    "ResourceNotFoundError",
    "CompilationError",
    "InstantiationError",
    "HookError",
]
