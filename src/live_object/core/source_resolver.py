"""
Source Resolvers

Turn an identifier into the current source text.

Design principles:
- A resolver only fetches text, it never caches it
- locate() is the cheap existence check used at bind time
- resolve() is called on every accessor, so it must return fresh text
- Anything that means "the source isn't there" or "can't be read" becomes
  ResourceNotFoundError
- Bytes that don't decode in the configured encoding aren't valid source,
  they become CompilationError
"""

from importlib import resources
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urljoin

import requests

from .errors import CompilationError, ResourceNotFoundError


class SourceResolver:
    """
    Base class for resolvers.

    Subclasses implement resolve(). locate() defaults to resolving and
    discarding the text; override it when there is a cheaper check.
    """

    def locate(self, identifier: str) -> None:
        """
        Check that the source for identifier exists.

        Raises:
            ResourceNotFoundError: If it doesn't
        """
        self.resolve(identifier)

    def resolve(self, identifier: str) -> str:
        """
        Fetch the current source text for identifier.

        Raises:
            ResourceNotFoundError: If the source can't be found
        """
        raise NotImplementedError


class FileResolver(SourceResolver):
    """Reads sources from the file system"""

    def __init__(self, base_dir: Path | str | None = None, encoding: str = 'utf-8'):
        """
        Initialize file resolver.

        Args:
            base_dir: Directory relative identifiers are resolved against
                      (default: current working directory)
            encoding: Text encoding of the source files
        """
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.encoding = encoding

    def path_for(self, identifier: str) -> Path:
        """Map an identifier to a file path"""
        path = Path(identifier)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def locate(self, identifier: str) -> None:
        path = self.path_for(identifier)

        if not path.exists():
            raise ResourceNotFoundError(f"Source file not found: {path}")

        if not path.is_file():
            raise ResourceNotFoundError(f"Path is not a file: {path}")

    def resolve(self, identifier: str) -> str:
        self.locate(identifier)
        path = self.path_for(identifier)

        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            # Deleted between the check and the read
            raise ResourceNotFoundError(f"Source file not found: {path}") from e
        except OSError as e:
            raise ResourceNotFoundError(f"Can't read source file {path}: {e}") from e

        return decode_source(data, identifier, self.encoding)


class PackageResolver(SourceResolver):
    """
    Reads sources shipped as package resources.

    The identifier is a resource path inside the package, e.g.
    'scripts/greeter.py' inside package 'myapp'.
    """

    def __init__(self, package: str, encoding: str = 'utf-8'):
        self.package = package
        self.encoding = encoding

    def _traversable(self, identifier: str):
        try:
            root = resources.files(self.package)
        except ModuleNotFoundError as e:
            raise ResourceNotFoundError(
                f"Package not found: {self.package}"
            ) from e

        resource = root.joinpath(*identifier.split('/'))
        if not resource.is_file():
            raise ResourceNotFoundError(
                f"No resource '{identifier}' in package '{self.package}'"
            )
        return resource

    def locate(self, identifier: str) -> None:
        self._traversable(identifier)

    def resolve(self, identifier: str) -> str:
        resource = self._traversable(identifier)

        try:
            data = resource.read_bytes()
        except OSError as e:
            raise ResourceNotFoundError(
                f"Can't read resource '{identifier}' in package '{self.package}': {e}"
            ) from e

        return decode_source(data, identifier, self.encoding)


class HttpResolver(SourceResolver):
    """
    Fetches sources over HTTP.

    Identifiers are absolute URLs, or paths joined onto base_url.
    """

    NOT_FOUND_STATUSES = (404, 410)

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize HTTP resolver.

        Args:
            base_url: Prefix for relative identifiers
            session: requests session to use (default: a new one)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, identifier: str) -> str:
        """Map an identifier to a URL"""
        if self.base_url:
            return urljoin(self.base_url, identifier)
        return identifier

    def resolve(self, identifier: str) -> str:
        url = self.url_for(identifier)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResourceNotFoundError(f"Failed to fetch source {url}: {e}") from e

        if response.status_code in self.NOT_FOUND_STATUSES:
            raise ResourceNotFoundError(f"Source not found: {url}")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ResourceNotFoundError(f"Failed to fetch source {url}: {e}") from e

        return response.text


class MemoryResolver(SourceResolver):
    """Serves sources from an in-memory dict"""

    def __init__(self, sources: Optional[Dict[str, str]] = None):
        self.sources: Dict[str, str] = dict(sources or {})

    def put(self, identifier: str, text: str) -> None:
        """Add or replace a source"""
        self.sources[identifier] = text

    def remove(self, identifier: str) -> None:
        """Remove a source (no-op if absent)"""
        self.sources.pop(identifier, None)

    def locate(self, identifier: str) -> None:
        if identifier not in self.sources:
            raise ResourceNotFoundError(f"No source registered for: {identifier}")

    def resolve(self, identifier: str) -> str:
        self.locate(identifier)
        return self.sources[identifier]


def decode_source(data: bytes, identifier: str, encoding: str) -> str:
    """
    Decode raw source bytes.

    Raises:
        CompilationError: If the bytes aren't valid in the encoding
    """
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        raise CompilationError(f"Can't decode {identifier} as {encoding}: {e}") from e
