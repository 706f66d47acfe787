"""
Tests for backend registration and resolution.
"""

import sys

import pytest

from anykv.adapters.base import Adapter
from anykv.adapters.sqlite import SQLiteAdapter
from anykv.config import OpenOptions, SQLiteOptions, SurrealDBOptions
from anykv.errors import AdapterUnavailableError, ConfigError, UnsupportedBackendError
from anykv.registry import AdapterRegistry, coerce_options, default_registry


class TestDefaultRegistry:
    """Tests for the built-in backends."""

    def test_builtin_names(self):
        assert default_registry().names() == ["redis", "sqlite", "surrealdb"]

    def test_unknown_backend(self):
        with pytest.raises(UnsupportedBackendError) as exc_info:
            default_registry().resolve("mongo")
        assert exc_info.value.message == 'Adapter "mongo" not supported'

    @pytest.mark.asyncio
    async def test_resolve_sqlite(self):
        adapter = default_registry().resolve("sqlite", path=":memory:")
        try:
            assert isinstance(adapter, SQLiteAdapter)
            assert isinstance(adapter, Adapter)
        finally:
            await adapter.close()

    def test_unloadable_driver(self, monkeypatch):
        """A missing driver surfaces an install hint instead of an ImportError."""
        monkeypatch.setitem(sys.modules, "aiohttp", None)
        monkeypatch.delitem(sys.modules, "anykv.adapters.surrealdb", raising=False)

        with pytest.raises(AdapterUnavailableError) as exc_info:
            default_registry().resolve("surrealdb", auth="tok")

        error = exc_info.value
        assert error.backend == "surrealdb"
        assert "pip install aiohttp" in error.install_hint
        assert "anykv[" not in error.install_hint
        assert isinstance(error.cause, ImportError)

    def test_unloadable_sqlite_module(self, monkeypatch):
        """sqlite3 ships with Python, so the hint is about the build, not pip."""
        monkeypatch.setitem(sys.modules, "sqlite3", None)
        monkeypatch.delitem(sys.modules, "anykv.adapters.sqlite", raising=False)

        with pytest.raises(AdapterUnavailableError) as exc_info:
            default_registry().resolve("sqlite")

        hint = exc_info.value.install_hint
        assert "_sqlite3" in hint
        assert "standard library" in hint
        assert "pip install" not in hint


class TestCustomRegistry:
    """Tests for registering backends."""

    def test_register_and_resolve(self):
        registry = AdapterRegistry()
        built = []

        def factory(options):
            built.append(options)
            return object()

        registry.register("memory", factory)
        registry.resolve("memory", {"namespace": "app"})
        assert "memory" in registry
        assert built == [OpenOptions(namespace="app")]

    def test_duplicate_name(self):
        registry = AdapterRegistry()
        registry.register("memory", lambda o: o)
        with pytest.raises(ValueError, match="already registered"):
            registry.register("memory", lambda o: o)
        registry.register("memory", lambda o: o, replace=True)

    def test_unregister(self):
        registry = AdapterRegistry()
        registry.register("memory", lambda o: o)
        assert registry.unregister("memory") is True
        assert registry.unregister("memory") is False
        assert "memory" not in registry

    def test_import_error_hint_names_missing_module(self):
        registry = AdapterRegistry()

        def factory(options):
            raise ModuleNotFoundError("No module named 'motor'", name="motor")

        registry.register("mongo", factory)
        with pytest.raises(AdapterUnavailableError, match="pip install motor"):
            registry.resolve("mongo")

    def test_registered_hint_wins(self):
        registry = AdapterRegistry()

        def factory(options):
            raise ImportError("cannot load the embedded engine")

        registry.register("embedded", factory, requirement="engine", hint="Rebuild with the engine enabled.")
        with pytest.raises(AdapterUnavailableError) as exc_info:
            registry.resolve("embedded")
        assert exc_info.value.install_hint == "Rebuild with the engine enabled."

    def test_hint_without_known_module(self):
        registry = AdapterRegistry()

        def factory(options):
            raise ImportError("broken build")

        registry.register("embedded", factory)
        with pytest.raises(AdapterUnavailableError) as exc_info:
            registry.resolve("embedded")
        assert "pip install" not in exc_info.value.install_hint
        assert '"embedded"' in exc_info.value.install_hint


class TestCoerceOptions:
    """Tests for turning caller input into typed options."""

    def test_instance_passes_through(self):
        options = SQLiteOptions(path="a.db")
        assert coerce_options(SQLiteOptions, options) is options

    def test_kwargs_override_instance(self):
        options = coerce_options(SQLiteOptions, SQLiteOptions(path="a.db"), wal=True)
        assert options.path == "a.db"
        assert options.wal is True

    def test_mapping(self):
        options = coerce_options(SurrealDBOptions, {"url": "https://db.test", "namespace": "app"})
        assert options.url == "https://db.test"
        assert options.namespace == "app"

    def test_unknown_option(self):
        with pytest.raises(ConfigError, match="colour"):
            coerce_options(SQLiteOptions, {"colour": "red"})

    def test_wrong_options_type(self):
        with pytest.raises(ConfigError):
            coerce_options(SQLiteOptions, SurrealDBOptions())

    def test_invalid_values(self):
        with pytest.raises(ConfigError):
            coerce_options(SurrealDBOptions, {"url": "ftp://db.test"})
