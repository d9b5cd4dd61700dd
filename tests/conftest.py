"""Shared fixtures: deterministic embeddings and in-process Qdrant."""

from unittest.mock import AsyncMock

import pytest
from qdrant_client import AsyncQdrantClient

from memory_service.storage import MemoryStorage

DIMS = 8


def fake_embedding(text: str) -> list[float]:
    """Deterministic, never-zero vector derived from character codes."""
    vector = [1.0] * DIMS
    for ch in text.lower():
        vector[ord(ch) % DIMS] += 1.0
    return vector


@pytest.fixture
def mock_provider():
    """Provider double: embeddings from fake_embedding, extraction configurable."""
    provider = AsyncMock()
    provider.embed.side_effect = lambda text: fake_embedding(text)
    provider.extract_facts.return_value = []
    return provider


@pytest.fixture
def memory_storage():
    """MemoryStorage over an in-process Qdrant. Call ensure_collection first."""
    client = AsyncQdrantClient(location=":memory:")
    return MemoryStorage(client, collection_name="test_memories", dimensions=DIMS)
