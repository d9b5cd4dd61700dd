"""Fact-extracting memory service backed by Qdrant."""

__version__ = "1.0.0"

from .models import Memory, SearchResult, AddResult
from .filters import build_filter, to_qdrant_filter
from .embeddings import (
    EmbeddingGenerator,
    OllamaEmbeddingGenerator,
    OpenAIEmbeddingGenerator,
)
from .extraction import FactExtractor
from .provider import FactProvider
from .storage import MemoryStorage
from .handlers import HandlerResult, MemoryHandlers

__all__ = [
    "Memory",
    "SearchResult",
    "AddResult",
    "build_filter",
    "to_qdrant_filter",
    "EmbeddingGenerator",
    "OllamaEmbeddingGenerator",
    "OpenAIEmbeddingGenerator",
    "FactExtractor",
    "FactProvider",
    "MemoryStorage",
    "HandlerResult",
    "MemoryHandlers",
]
