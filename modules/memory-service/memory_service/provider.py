"""Fact provider: the single inference interface the handlers depend on."""

from .embeddings import EmbeddingGenerator, make_embedding_generator
from .extraction import FactExtractor


class FactProvider:
    """Embedding plus fact extraction behind one interface.

    The embedding backend is chosen once at construction; extraction always
    goes through the Ollama generation endpoint.
    """

    def __init__(self, embedder: EmbeddingGenerator, extractor: FactExtractor):
        self.embedder = embedder
        self.extractor = extractor

    @classmethod
    def from_settings(cls, settings) -> "FactProvider":
        return cls(
            embedder=make_embedding_generator(settings),
            extractor=FactExtractor(
                base_url=settings.ollama_url,
                model=settings.llm_model,
                timeout=settings.request_timeout,
            ),
        )

    async def embed(self, text: str) -> list[float]:
        """Raises ProviderError on backend failure."""
        return await self.embedder.generate(text)

    async def extract_facts(self, conversation: str) -> list[str]:
        """Never raises; see FactExtractor.extract."""
        return await self.extractor.extract(conversation)

    async def close(self) -> None:
        await self.embedder.close()
        await self.extractor.close()
