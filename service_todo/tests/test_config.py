"""
Unit tests for service configuration.
"""

from shared.config import get_config


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TODO_CACHE_TTL_SECONDS", raising=False)
        config = get_config("todo", 8020)

        assert config.service_name == "todo"
        assert config.port == 8020
        assert config.cache_ttl_seconds == 3600
        assert config.cache_flush_on_start is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TODO_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("TODO_REDIS_URL", "redis://cache:6379/2")

        config = get_config("todo", 8020)

        assert config.cache_ttl_seconds == 60
        assert config.redis_url == "redis://cache:6379/2"

    def test_ttl_threads_into_store(self, monkeypatch, repository):
        from service_todo.app.main import TodoService

        monkeypatch.setenv("TODO_CACHE_TTL_SECONDS", "90")
        service = TodoService(repository=repository)

        assert service.cache_store.ttl_seconds == 90
