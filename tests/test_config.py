"""Settings and logging setup tests."""

from __future__ import annotations

import pytest

from infrabase import config
from infrabase.config import Settings, load_settings
from infrabase.utils.logging import level_for


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """No per-user env file, no stray variables, an empty working directory."""
    monkeypatch.setitem(Settings.model_config, "env_file", (tmp_path / "user-env", ".env"))
    for name in ("DATABASE_URL", "DATABASE_URL_SYNC", "RESOLVE_TIMEOUT", "LOG_LEVEL", "LOG_FORMAT", "DB_POOL_SIZE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.database_url_sync.startswith("postgresql+psycopg2://")
        assert settings.resolve_timeout == 30.0
        assert settings.log_level == "warning"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
        monkeypatch.setenv("resolve_timeout", "2.5")
        settings = load_settings()
        assert settings.database_url == "sqlite+aiosqlite:///x.db"
        assert settings.resolve_timeout == 2.5

    def test_dotenv_overrides_user_file(self, isolated_env):
        (isolated_env / "user-env").write_text("LOG_LEVEL=info\nLOG_FORMAT=json\n")
        (isolated_env / ".env").write_text("LOG_LEVEL=debug\n")
        settings = load_settings()
        assert settings.log_level == "debug"
        assert settings.log_format == "json"

    def test_overrides(self):
        assert load_settings(db_pool_size=3).db_pool_size == 3

    def test_user_env_file_location(self):
        assert config.USER_ENV_FILE.parts[-3:] == (".config", "infrabase", "env")


class TestLogLevel:
    @pytest.mark.parametrize("base,verbose,expected", [
        ("warning", 0, "warning"),
        ("warning", 1, "info"),
        ("warning", 2, "debug"),
        ("warning", 5, "debug"),
        ("INFO", 1, "debug"),
        ("nonsense", 0, "warning"),
    ])
    def test_level_for(self, base: str, verbose: int, expected: str):
        assert level_for(base, verbose) == expected
