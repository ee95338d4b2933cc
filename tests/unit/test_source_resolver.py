"""
Unit tests for source resolvers
"""

from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from live_object import (
    CompilationError,
    FileResolver,
    HttpResolver,
    MemoryResolver,
    PackageResolver,
    ResourceNotFoundError,
    bind,
)
from live_object.core.source_resolver import decode_source


SOURCES_DIR = Path(__file__).parent.parent / 'fixtures' / 'sources'


class TestFileResolver:
    """Test reading sources from files"""

    def test_resolve_absolute_path(self):
        """Should read a file by absolute path"""
        path = SOURCES_DIR / 'greeter.py'

        text = FileResolver().resolve(str(path))

        assert 'class Greeter' in text

    def test_resolve_relative_to_base_dir(self):
        """Should resolve relative identifiers against base_dir"""
        resolver = FileResolver(base_dir=SOURCES_DIR)

        assert 'class Square' in resolver.resolve('shapes.py')

    def test_resolve_returns_current_content(self, tmp_path):
        """Should re-read the file on every call"""
        path = tmp_path / 'live.py'
        path.write_text('one')
        resolver = FileResolver(base_dir=tmp_path)

        assert resolver.resolve('live.py') == 'one'
        path.write_text('two')
        assert resolver.resolve('live.py') == 'two'

    def test_encoding(self, tmp_path):
        """Should decode with the configured encoding"""
        (tmp_path / 'latin.py').write_bytes('name = "café"'.encode('latin-1'))

        text = FileResolver(base_dir=tmp_path, encoding='latin-1').resolve('latin.py')

        assert text == 'name = "café"'

    def test_missing_file(self, tmp_path):
        """Should raise ResourceNotFoundError for missing files"""
        resolver = FileResolver(base_dir=tmp_path)

        with pytest.raises(ResourceNotFoundError):
            resolver.locate('nope.py')
        with pytest.raises(ResourceNotFoundError):
            resolver.resolve('nope.py')

    def test_directory_is_not_a_source(self, tmp_path):
        """Should refuse directories"""
        (tmp_path / 'pkg').mkdir()

        with pytest.raises(ResourceNotFoundError, match='not a file'):
            FileResolver(base_dir=tmp_path).locate('pkg')

    def test_undecodable_file(self, tmp_path):
        """Should raise CompilationError when bytes don't decode"""
        (tmp_path / 'garbled.py').write_bytes(b'\xff\xfeclass A: pass\n')

        with pytest.raises(CompilationError) as exc_info:
            FileResolver(base_dir=tmp_path).resolve('garbled.py')

        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_unreadable_file(self, tmp_path, monkeypatch):
        """Should raise ResourceNotFoundError when the file can't be read"""
        (tmp_path / 'locked.py').write_text('class A:\n    pass\n')

        def deny(self):
            raise PermissionError(13, 'Permission denied')

        monkeypatch.setattr(Path, 'read_bytes', deny)

        with pytest.raises(ResourceNotFoundError, match='Permission denied') as exc_info:
            FileResolver(base_dir=tmp_path).resolve('locked.py')

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_undecodable_file_through_cache(self, tmp_path):
        """Should keep the accessor inside the documented error set"""
        path = tmp_path / 'greeter.py'
        path.write_text('class Greeter:\n    pass\n')
        cache = bind(str(path))
        good = cache.get_instance()

        path.write_bytes(b'\xff\xfe')
        with pytest.raises(CompilationError):
            cache.get_instance()

        path.write_text('class Greeter:\n    pass\n')
        assert cache.get_instance() is good

    def test_not_found_is_a_lookup_error(self, tmp_path):
        """Should be catchable as LookupError"""
        with pytest.raises(LookupError):
            FileResolver(base_dir=tmp_path).resolve('nope.py')


class TestPackageResolver:
    """Test reading sources from package resources"""

    def test_resolve_resource(self):
        """Should read a resource inside an importable package"""
        resolver = PackageResolver('tests.fixtures')

        text = resolver.resolve('sources/greeter.py')

        assert 'class Greeter' in text

    def test_missing_resource(self):
        """Should raise ResourceNotFoundError for unknown resources"""
        resolver = PackageResolver('tests.fixtures')

        with pytest.raises(ResourceNotFoundError):
            resolver.locate('sources/missing.py')

    def test_missing_package(self):
        """Should raise ResourceNotFoundError for unknown packages"""
        resolver = PackageResolver('no_such_package_here')

        with pytest.raises(ResourceNotFoundError):
            resolver.resolve('anything.py')


class TestDecodeSource:
    """Test decoding raw source bytes"""

    def test_decode(self):
        assert decode_source('café'.encode(), 'a.py', 'utf-8') == 'café'

    def test_invalid_bytes(self):
        with pytest.raises(CompilationError, match='a.py'):
            decode_source(b'\xff', 'a.py', 'utf-8')


class TestHttpResolver:
    """Test fetching sources over HTTP (with a stub session)"""

    def _session(self, status_code=200, text=''):
        response = Mock(status_code=status_code, text=text)
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f'{status_code} Error')
        session = Mock()
        session.get.return_value = response
        return session

    def test_resolve_url(self):
        """Should return the response body"""
        session = self._session(text='class Remote:\n    pass\n')
        resolver = HttpResolver(session=session, timeout=3)

        text = resolver.resolve('http://example.test/remote.py')

        assert text.startswith('class Remote')
        session.get.assert_called_once_with('http://example.test/remote.py', timeout=3)

    def test_base_url(self):
        """Should join relative identifiers onto base_url"""
        session = self._session(text='x')
        resolver = HttpResolver(base_url='http://example.test/scripts/', session=session)

        resolver.resolve('remote.py')

        assert session.get.call_args[0][0] == 'http://example.test/scripts/remote.py'

    def test_not_found(self):
        """Should map 404 to ResourceNotFoundError"""
        resolver = HttpResolver(session=self._session(status_code=404))

        with pytest.raises(ResourceNotFoundError):
            resolver.locate('http://example.test/missing.py')

    def test_server_error(self):
        """Should map other HTTP errors to ResourceNotFoundError"""
        resolver = HttpResolver(session=self._session(status_code=500))

        with pytest.raises(ResourceNotFoundError) as exc_info:
            resolver.resolve('http://example.test/broken.py')

        assert isinstance(exc_info.value.__cause__, requests.HTTPError)

    def test_connection_error(self):
        """Should map transport errors to ResourceNotFoundError"""
        session = Mock()
        session.get.side_effect = requests.ConnectionError('refused')
        resolver = HttpResolver(session=session)

        with pytest.raises(ResourceNotFoundError, match='refused'):
            resolver.resolve('http://example.test/remote.py')


class TestMemoryResolver:
    """Test in-memory sources"""

    def test_put_and_resolve(self):
        resolver = MemoryResolver()
        resolver.put('a', 'text')

        assert resolver.resolve('a') == 'text'

    def test_remove(self):
        resolver = MemoryResolver({'a': 'text'})
        resolver.remove('a')
        resolver.remove('a')

        with pytest.raises(ResourceNotFoundError):
            resolver.resolve('a')

    def test_copies_initial_sources(self):
        """Should not share the dict it was given"""
        sources = {'a': 'text'}
        resolver = MemoryResolver(sources)
        sources['a'] = 'changed'

        assert resolver.resolve('a') == 'text'
