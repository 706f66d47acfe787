"""
Tests for configuration: options, settings, env and file loading.
"""

import os

import pytest

from anykv.config import (
    LoggingConfig,
    OpenOptions,
    RedisOptions,
    Settings,
    SQLiteOptions,
    SurrealDBOptions,
    configure,
    get_settings,
    load_env,
)
from anykv.errors import ConfigError
from anykv.types import BasicAuth


class TestOpenOptions:
    """Tests for the shared open options."""

    def test_defaults(self):
        options = OpenOptions()
        assert options.readonly is False
        assert options.namespace_or_default == "anykv"
        assert options.database_or_default == "anykv"

    def test_auth_forms(self):
        OpenOptions(auth="token")
        OpenOptions(auth={"user": "a", "pass": "b"})
        OpenOptions(auth=BasicAuth("a", "b"))

    def test_invalid_auth(self):
        with pytest.raises(ConfigError):
            OpenOptions(auth={"user": "a"})

    def test_auth_not_in_repr(self):
        assert "secret" not in repr(OpenOptions(auth="secret"))


class TestBackendOptions:
    def test_sqlite(self):
        assert SQLiteOptions().in_memory
        assert not SQLiteOptions(path="kv.db").in_memory
        with pytest.raises(ConfigError):
            SQLiteOptions(path="")

    def test_surrealdb(self):
        assert SurrealDBOptions().url == "http://localhost:8000"
        with pytest.raises(ConfigError):
            SurrealDBOptions(url="localhost:8000")
        with pytest.raises(ConfigError):
            SurrealDBOptions(namespace_header="")

    def test_redis(self):
        assert RedisOptions().port == 6379
        with pytest.raises(ConfigError):
            RedisOptions(port=0)
        with pytest.raises(ConfigError):
            RedisOptions(db=-1)


class TestLoggingConfig:
    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "text"
        assert config.log_operations is True

    def test_invalid_level(self):
        with pytest.raises(ConfigError):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ConfigError):
            LoggingConfig(format="xml")


class TestSettings:
    """Tests for the master configuration."""

    def test_defaults(self):
        settings = Settings()
        assert settings.backend == "sqlite"
        assert settings.options_for_backend() is settings.sqlite
        assert settings.options_for_backend("redis") is settings.redis

    def test_invalid_backend(self):
        with pytest.raises(ConfigError):
            Settings(backend="mongo")
        with pytest.raises(ConfigError):
            Settings().options_for_backend("mongo")

    def test_to_dict_leaves_out_secrets(self):
        settings = Settings(
            surrealdb=SurrealDBOptions(auth="secret"),
            redis=RedisOptions(password="secret"),
        )
        data = settings.to_dict()
        assert "auth" not in data["surrealdb"]
        assert "password" not in data["redis"]
        assert "session" not in data["surrealdb"]
        assert "client" not in data["redis"]
        assert data["surrealdb"]["url"] == "http://localhost:8000"


class TestFromEnv:
    """Tests for environment loading."""

    def test_backend_and_shared_options(self, monkeypatch):
        monkeypatch.setenv("ANYKV_BACKEND", "surrealdb")
        monkeypatch.setenv("ANYKV_SURREALDB_URL", "https://db.test")
        monkeypatch.setenv("ANYKV_NAMESPACE", "app")
        monkeypatch.setenv("ANYKV_READONLY", "true")
        monkeypatch.setenv("ANYKV_TOKEN", "tok")

        settings = Settings.from_env()
        assert settings.backend == "surrealdb"
        assert settings.surrealdb.url == "https://db.test"
        assert settings.surrealdb.namespace == "app"
        assert settings.redis.namespace == "app"
        assert settings.sqlite.readonly is True
        assert settings.surrealdb.auth == "tok"

    def test_basic_auth(self, monkeypatch):
        monkeypatch.delenv("ANYKV_TOKEN", raising=False)
        monkeypatch.setenv("ANYKV_USER", "root")
        monkeypatch.setenv("ANYKV_PASS", "root")
        assert Settings.from_env().surrealdb.auth == BasicAuth("root", "root")

    def test_backend_specific(self, monkeypatch):
        monkeypatch.setenv("ANYKV_SQLITE_PATH", "/tmp/kv.db")
        monkeypatch.setenv("ANYKV_SQLITE_WAL", "1")
        monkeypatch.setenv("ANYKV_REDIS_PORT", "6380")
        monkeypatch.setenv("ANYKV_LOG_LEVEL", "debug")

        settings = Settings.from_env()
        assert settings.sqlite.path == "/tmp/kv.db"
        assert settings.sqlite.wal is True
        assert settings.redis.port == 6380
        assert settings.logging.level == "DEBUG"

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("ANYKV_BACKEND", "mongo")
        with pytest.raises(ConfigError):
            Settings.from_env()

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("ANYKV_REDIS_PORT", "70000")
        with pytest.raises(ConfigError):
            Settings.from_env()


class TestFromFile:
    """Tests for YAML and TOML loading."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "anykv.yaml"
        path.write_text(
            "backend: redis\n"
            "redis:\n"
            "  host: cache.local\n"
            "  namespace: app\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  format: json\n"
        )
        settings = Settings.from_file(path)
        assert settings.backend == "redis"
        assert settings.redis.host == "cache.local"
        assert settings.redis.namespace == "app"
        assert settings.logging.format == "json"

    def test_toml(self, tmp_path):
        path = tmp_path / "anykv.toml"
        path.write_text(
            'backend = "surrealdb"\n'
            "\n"
            "[surrealdb]\n"
            'url = "https://db.test"\n'
            'auth = { user = "root", pass = "root" }\n'
        )
        settings = Settings.from_file(path)
        assert settings.backend == "surrealdb"
        assert settings.surrealdb.url == "https://db.test"
        assert settings.surrealdb.auth == {"user": "root", "pass": "root"}

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "anykv.yaml"
        path.write_text("backend: mongo\n")
        with pytest.raises(ConfigError, match="validation failed"):
            Settings.from_file(path)

    def test_unknown_section(self, tmp_path):
        path = tmp_path / "anykv.yaml"
        path.write_text("cache:\n  ttl: 5\n")
        with pytest.raises(ConfigError):
            Settings.from_file(path)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "anykv.ini"
        path.write_text("[anykv]\n")
        with pytest.raises(ConfigError, match="Unsupported"):
            Settings.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / "missing.yaml")


class TestGlobals:
    def test_configure(self, monkeypatch):
        import anykv.config.settings as settings_module

        monkeypatch.setattr(settings_module, "_global_settings", None)
        settings = configure(Settings(backend="redis"))
        assert get_settings() is settings
        configure(backend="sqlite")
        assert get_settings().backend == "sqlite"

    def test_load_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANYKV_TEST_VALUE", "")
        monkeypatch.delenv("ANYKV_TEST_VALUE")
        env = tmp_path / ".env"
        env.write_text("ANYKV_TEST_VALUE=loaded\n")
        assert load_env(str(env)) is True
        assert os.environ["ANYKV_TEST_VALUE"] == "loaded"
