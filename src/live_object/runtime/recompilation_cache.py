"""
Recompilation Cache

Keeps one source artifact live: every accessor call re-reads the source and,
only when the text changed, recompiles it, builds a fresh instance, runs the
post-instantiation hook and commits the new triple.

Guarantees:
- Unchanged text never re-runs the compiler, instantiator or hook
- Unit and instance always come from the same snapshot
- A failed refresh commits nothing; the last good triple stays the answer
- Failures are not remembered: the same failing text is retried next call
"""

import contextlib
import csv
import hashlib
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config import get_config
from ..core.compiler import Compiler, DefaultInstantiator, Instantiator, PythonCompiler
from ..core.errors import HookError
from ..core.self_logger import SelfLogger
from ..core.source_resolver import FileResolver, SourceResolver


Hook = Callable[[Any], None]


class RecompilationCache:
    """
    Live, hot-swappable view of one source artifact.

    Create with bind(), not the constructor, so a missing source is
    reported before the first accessor call.
    """

    def __init__(
        self,
        identifier: str,
        resolver: SourceResolver,
        compiler: Optional[Compiler] = None,
        instantiator: Optional[Instantiator] = None,
        logger: Optional[SelfLogger] = None,
        thread_safe: bool = False,
    ):
        """
        Initialize cache.

        Args:
            identifier: Name the resolver locates the source by
            resolver: Source resolver
            compiler: Compiler (default: PythonCompiler)
            instantiator: Instantiator (default: DefaultInstantiator)
            logger: Self-logger for refresh events (default: no logging)
            thread_safe: Serialize refreshes with a lock
        """
        self.identifier = identifier
        self.resolver = resolver
        self.compiler = compiler or PythonCompiler()
        self.instantiator = instantiator or DefaultInstantiator()
        self.logger = logger
        self.thread_safe = thread_safe

        self._hook: Optional[Hook] = None
        self._lock = threading.RLock() if thread_safe else None

        # Committed state, replaced as a whole by _commit()
        self._snapshot: Optional[str] = None
        self._snapshot_hash: Optional[str] = None
        self._unit: Any = None
        self._instance: Any = None
        self._generation = 0
        self._committed_at: Optional[str] = None

        self._stats = {'hits': 0, 'misses': 0, 'failures': 0}

    @classmethod
    def bind(
        cls,
        identifier: str,
        resolver: Optional[SourceResolver] = None,
        compiler: Optional[Compiler] = None,
        instantiator: Optional[Instantiator] = None,
        base_dir: Path | str | None = None,
        thread_safe: Optional[bool] = None,
    ) -> 'RecompilationCache':
        """
        Bind a cache to an identifier.

        Arguments left as None are taken from the global config.

        Args:
            identifier: Name of the source, e.g. 'scripts/greeter.py'
            resolver: Source resolver (default: FileResolver)
            compiler: Compiler (default: PythonCompiler)
            instantiator: Instantiator (default: DefaultInstantiator)
            base_dir: Directory for the self-log; '' turns logging off even
                      when the config sets one (default: from config)
            thread_safe: Serialize refreshes with a lock

        Returns:
            A cache with no snapshot yet

        Raises:
            ResourceNotFoundError: If the resolver can't locate identifier
        """
        config = get_config()

        if resolver is None:
            resolver = FileResolver(encoding=config.encoding)

        # Fail fast if it isn't there
        resolver.locate(identifier)

        if base_dir is None:
            base_dir = config.base_dir

        logger = None
        if base_dir is not None and base_dir != '':
            logger = SelfLogger(
                identifier=identifier,
                base_dir=base_dir,
                max_log_size=config.max_log_size,
            )

        if thread_safe is None:
            thread_safe = config.thread_safe

        return cls(
            identifier=identifier,
            resolver=resolver,
            compiler=compiler,
            instantiator=instantiator,
            logger=logger,
            thread_safe=thread_safe,
        )

    def configure_hook(self, hook: Optional[Hook]) -> 'RecompilationCache':
        """
        Set the post-instantiation hook.

        The hook is called with every new instance before it is committed
        and returned. Replaces any previous hook; None removes it. Instances
        that are already committed are not affected.

        Returns:
            self
        """
        self._hook = hook
        return self

    def get_compiled_unit(self) -> Any:
        """
        Get the compiled unit for the current source.

        Can be a different unit on every call, whenever the source changed.
        """
        self.refresh()
        return self._unit

    def get_instance(self) -> Any:
        """
        Get the instance for the current source.

        Can be a different instance on every call, whenever the source changed.
        """
        self.refresh()
        return self._instance

    def refresh(self) -> bool:
        """
        Re-read the source and rebuild if it changed.

        Returns:
            True if a new unit/instance was committed

        Raises:
            ResourceNotFoundError, CompilationError, InstantiationError,
            HookError: Nothing is committed when these are raised
        """
        with self._lock if self._lock is not None else contextlib.nullcontext():
            return self._refresh()

    def _refresh(self) -> bool:
        stage = 'resolve'
        unit = None
        try:
            text = self.resolver.resolve(self.identifier)

            if self._snapshot is not None and text == self._snapshot:
                self._stats['hits'] += 1
                self._log('debug', 'Source unchanged', generation=self._generation)
                return False

            self._stats['misses'] += 1
            snapshot_hash = _hash(text)
            self._log('info', 'Source changed', snapshot_hash=snapshot_hash)

            stage = 'compile'
            unit = self.compiler.compile(text, self.identifier)

            stage = 'instantiate'
            instance = self.instantiator.instantiate(unit)

            stage = 'hook'
            self._run_hook(instance)

        except Exception as e:
            if stage != 'resolve':
                self._stats['failures'] += 1
            if unit is not None:
                # Discarded, never committed
                self._release(unit)
            self._log(
                'error',
                'Refresh failed',
                stage=stage,
                error=f'{type(e).__name__}: {e}',
            )
            raise

        previous = self._unit
        self._commit(text, snapshot_hash, unit, instance)
        if previous is not None and previous is not unit:
            self._release(previous)

        self._log(
            'info',
            f'Committed generation {self._generation}',
            generation=self._generation,
            unit=_qualname(unit),
            snapshot_hash=snapshot_hash,
        )
        return True

    def _run_hook(self, instance: Any) -> None:
        hook = self._hook
        if hook is None:
            return

        try:
            hook(instance)
        except HookError:
            raise
        except Exception as e:
            raise HookError(
                f"Post-instantiation hook failed for {self.identifier}: "
                f"{type(e).__name__}: {e}"
            ) from e

    def _commit(self, text: str, snapshot_hash: str, unit: Any, instance: Any) -> None:
        self._snapshot = text
        self._snapshot_hash = snapshot_hash
        self._unit = unit
        self._instance = instance
        self._generation += 1
        self._committed_at = datetime.now().isoformat()

    def _release(self, unit: Any) -> None:
        release = getattr(self.compiler, 'release', None)
        if release is not None:
            release(unit)

    def _log(self, level: str, message: str, **fields) -> None:
        if self.logger is None:
            return

        try:
            getattr(self.logger, level)(message, **fields)
        except (OSError, csv.Error):
            # A broken log never changes the outcome of a refresh
            pass

    @property
    def snapshot(self) -> Optional[str]:
        """Source text of the committed generation"""
        return self._snapshot

    @property
    def generation(self) -> int:
        """Number of commits so far"""
        return self._generation

    def get_stats(self) -> Dict[str, int]:
        """
        Get refresh statistics.

        Returns:
            Dict with 'hits', 'misses', 'failures', 'generation'
        """
        return {
            'hits': self._stats['hits'],
            'misses': self._stats['misses'],
            'failures': self._stats['failures'],
            'generation': self._generation,
        }

    def get_metadata(self) -> Dict[str, Any]:
        """Describe the committed state without refreshing"""
        return {
            'identifier': self.identifier,
            'generation': self._generation,
            'snapshot_hash': self._snapshot_hash,
            'unit': _qualname(self._unit) if self._unit is not None else None,
            'committed_at': self._committed_at,
            **self.get_stats(),
        }

    def __repr__(self) -> str:
        return f"<RecompilationCache {self.identifier!r} generation={self._generation}>"


def bind(identifier: str, **kwargs) -> RecompilationCache:
    """Shortcut for RecompilationCache.bind()"""
    return RecompilationCache.bind(identifier, **kwargs)


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8', 'surrogatepass')).hexdigest()


def _qualname(unit: Any) -> str:
    module = getattr(unit, '__module__', None)
    name = getattr(unit, '__qualname__', None) or repr(unit)
    return f'{module}.{name}' if module else name
