"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from core.config import Settings
from core.container import Container


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("CACHE_MAX", "CACHE_TTL", "REDIS_URL", "DATABASE_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.cache_max == 100
        assert settings.cache_ttl == 300000
        assert settings.cache_ttl_seconds == 300.0
        assert settings.shared_cache_ttl_seconds == 300
        assert settings.shared_cache_enabled is False
        assert settings.database_fallback_url == "sqlite+aiosqlite:///:memory:"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CACHE_MAX", "25")
        monkeypatch.setenv("CACHE_TTL", "1500")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")

        settings = Settings(_env_file=None)

        assert settings.cache_max == 25
        assert settings.cache_ttl_seconds == 1.5
        assert settings.shared_cache_ttl_seconds == 1
        assert settings.shared_cache_enabled is True

    def test_blank_redis_url_disables_shared_cache(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "")

        assert Settings(_env_file=None).shared_cache_enabled is False

    def test_sub_second_ttl_still_sets_shared_expiry(self):
        assert Settings(_env_file=None, cache_ttl=400).shared_cache_ttl_seconds == 1

    @pytest.mark.parametrize("overrides", [{"cache_max": 0}, {"cache_ttl": 0}])
    def test_rejects_invalid_cache_bounds(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)


class TestContainer:

    def test_builds_memory_cache_from_settings(self):
        container = Container()
        container.settings.override(Settings(_env_file=None, cache_max=7, cache_ttl=2000, redis_url=None))

        memory_cache = container.memory_cache()

        assert memory_cache.max_size == 7
        assert memory_cache.default_ttl == 2.0
        assert container.shared_cache() is None
        assert container.item_service().shared_cache is None
        assert container.item_service() is container.item_service()
