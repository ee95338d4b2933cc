"""
Compiler and Instantiator

Turns source text into a class (the compiled unit) and a class into an
instance.

Design principles:
- Every compile gets a brand new module, nothing is reused between compiles
- The module is registered in sys.modules so dataclasses, pickle and
  friends can find it; it is removed again if the compile fails, and
  when the cache releases the unit
- Errors are wrapped with context, the original exception is chained
"""

import importlib.util
import inspect
import itertools
import sys
from pathlib import Path
from typing import Any, List, Optional, Set

from .errors import CompilationError, InstantiationError


# Unique suffix for generated module names
_module_counter = itertools.count(1)


class Compiler:
    """Base class for compilers"""

    def compile(self, text: str, identifier: str) -> Any:
        """
        Compile source text into a unit.

        Raises:
            CompilationError: If the text can't be compiled
        """
        raise NotImplementedError

    def release(self, unit: Any) -> None:
        """
        Forget a unit the cache discarded or replaced.

        Called once per unit, after a failed refresh or when a newer
        generation is committed. Default: nothing to clean up.
        """
        pass


class Instantiator:
    """Base class for instantiators"""

    def instantiate(self, unit: Any) -> Any:
        """
        Build a new instance from a compiled unit.

        Raises:
            InstantiationError: If the unit can't be constructed
        """
        raise NotImplementedError


class PythonCompiler(Compiler):
    """
    Compiles Python source into a class.

    The class is picked in this order:
    1. class_name given to the constructor
    2. __live_class__ in the module (a class, or the name of one)
    3. the only class defined by the module itself
    """

    def __init__(self, class_name: Optional[str] = None):
        self.class_name = class_name

        # Names this compiler put into sys.modules and hasn't released yet
        self._registered: Set[str] = set()

    def compile(self, text: str, identifier: str) -> type:
        module_name = f"live_object_{_module_stem(identifier)}_{next(_module_counter)}"

        try:
            code = compile(text, identifier, 'exec')
        except SyntaxError as e:
            raise CompilationError(f"Syntax error in {identifier}: {e}") from e

        spec = importlib.util.spec_from_loader(module_name, loader=None, origin=identifier)
        module = importlib.util.module_from_spec(spec)
        module.__file__ = identifier

        sys.modules[module_name] = module
        try:
            exec(code, module.__dict__)
            unit = self._select_class(module, identifier)
        except CompilationError:
            sys.modules.pop(module_name, None)
            raise
        except (Exception, SystemExit) as e:
            sys.modules.pop(module_name, None)
            raise CompilationError(
                f"Failed to load {identifier}: {type(e).__name__}: {e}"
            ) from e

        if getattr(unit, '__module__', None) == module_name:
            self._registered.add(module_name)
        else:
            # Unit lives elsewhere, nothing needs this module any more
            sys.modules.pop(module_name, None)
        return unit

    def release(self, unit: Any) -> None:
        module_name = getattr(unit, '__module__', None)
        if module_name in self._registered:
            self._registered.discard(module_name)
            sys.modules.pop(module_name, None)

    def _select_class(self, module: Any, identifier: str) -> type:
        name = self.class_name or getattr(module, '__live_class__', None)

        if isinstance(name, type):
            return name

        if name is not None:
            cls = getattr(module, name, None)
            if not isinstance(cls, type):
                raise CompilationError(f"No class named '{name}' in {identifier}")
            return cls

        candidates = _own_classes(module)
        if not candidates:
            raise CompilationError(f"No class defined in {identifier}")

        if len(candidates) > 1:
            names = ', '.join(c.__name__ for c in candidates)
            raise CompilationError(
                f"Several classes defined in {identifier} ({names}); "
                f"set __live_class__ to pick one"
            )

        return candidates[0]


class DefaultInstantiator(Instantiator):
    """Instantiates a unit by calling it with no arguments"""

    def instantiate(self, unit: Any) -> Any:
        if not callable(unit):
            raise InstantiationError(f"Compiled unit is not callable: {unit!r}")

        if inspect.isabstract(unit):
            raise InstantiationError(f"Can't instantiate abstract class {unit.__qualname__}")

        try:
            return unit()
        except (Exception, SystemExit) as e:
            raise InstantiationError(
                f"Failed to instantiate {getattr(unit, '__qualname__', unit)!r}: "
                f"{type(e).__name__}: {e}"
            ) from e


def _own_classes(module: Any) -> List[type]:
    """Classes defined in the module itself, in definition order"""
    return [
        value for value in vars(module).values()
        if isinstance(value, type) and value.__module__ == module.__name__
    ]


def _module_stem(identifier: str) -> str:
    stem = Path(identifier.rstrip('/')).stem or 'source'
    return ''.join(c if c.isalnum() else '_' for c in stem)
