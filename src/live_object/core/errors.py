"""
Errors

Everything a refresh can raise. The cache never swallows or retries these:
they surface at the accessor call that triggered the refresh, and the
previously committed snapshot/unit/instance stays in place.
"""


class LiveObjectError(Exception):
    """Base exception for live object errors"""
    pass


class ResourceNotFoundError(LiveObjectError, LookupError):
    """Raised when the resolver can't locate the source for an identifier"""
    pass


class CompilationError(LiveObjectError):
    """Raised when source text can't be compiled into a unit"""
    pass


class InstantiationError(LiveObjectError):
    """Raised when a compiled unit can't be constructed without arguments"""
    pass


class HookError(LiveObjectError):
    """Raised when the post-instantiation hook fails"""
    pass
