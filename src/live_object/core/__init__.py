"""
Core primitives of live objects.

- errors: the error taxonomy every refresh can raise
- source_resolver: identifier -> current source text
- compiler: source text -> class -> instance
- self_logger: per-identifier TSV refresh log

The runtime package builds the recompilation cache on top of these.
"""
