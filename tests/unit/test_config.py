"""Unit tests for settings loading."""

import pytest

from memory_service.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("QDRANT_URL", "EMBED_DIMS", "EMBED_PROVIDER", "API_KEY", "PORT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.qdrant_url == "http://localhost:6333"
        assert settings.collection_name == "memories"
        assert settings.embed_dims == 768
        assert settings.embed_provider == "ollama"
        assert settings.port == 7890
        assert settings.api_key is None

    def test_reads_deployment_variables(self, monkeypatch):
        monkeypatch.setenv("QDRANT_URL", "http://qdrant:6333")
        monkeypatch.setenv("EMBED_DIMS", "1536")
        monkeypatch.setenv("EMBED_PROVIDER", "openai")
        monkeypatch.setenv("OLLAMA_LLM_MODEL", "llama3.2")
        monkeypatch.setenv("API_KEY", "token")

        settings = Settings(_env_file=None)

        assert settings.qdrant_url == "http://qdrant:6333"
        assert settings.embed_dims == 1536
        assert settings.embed_provider == "openai"
        assert settings.llm_model == "llama3.2"
        assert settings.api_key == "token"

    def test_load_rejects_unknown_provider(self, monkeypatch):
        monkeypatch.setenv("EMBED_PROVIDER", "cohere")

        with pytest.raises(SystemExit, match="Invalid configuration"):
            Settings.load()

    def test_load_rejects_non_positive_dims(self, monkeypatch):
        monkeypatch.setenv("EMBED_DIMS", "0")

        with pytest.raises(SystemExit):
            Settings.load()

    def test_load_uses_config_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / "memory.env"
        env_file.write_text("COLLECTION_NAME=agent_memories\n")
        monkeypatch.setenv("MEMORY_SERVICE_CONFIG_FILE", str(env_file))
        monkeypatch.delenv("COLLECTION_NAME", raising=False)

        assert Settings.load().collection_name == "agent_memories"
