"""Embedding generation backends: Ollama and OpenAI-compatible."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from .errors import ProviderError

logger = logging.getLogger(__name__)


class EmbeddingGenerator(ABC):
    """Common interface for text embedding backends."""

    model: str

    @abstractmethod
    async def generate(self, content: str) -> list[float]:
        """Encode content into a fixed-dimension vector.

        Raises:
            ProviderError: If the backend fails or returns no vector
        """

    async def close(self) -> None:
        """Release any HTTP resources held by the backend."""


class OllamaEmbeddingGenerator(EmbeddingGenerator):
    """Ollama ``/api/embeddings`` wrapper.

    Request body is ``{model, prompt}``, response ``{embedding: [...]}``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, content: str) -> list[float]:
        try:
            resp = await self.http.post(
                f"{self.base_url}/api/embeddings",
                json={"model": self.model, "prompt": content},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Embed request failed: {exc}") from exc

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(embedding, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding
        ):
            raise ProviderError("Embed response decode failed: missing 'embedding'")
        return [float(x) for x in embedding]

    async def close(self) -> None:
        await self.http.aclose()


class OpenAIEmbeddingGenerator(EmbeddingGenerator):
    """OpenAI-compatible embeddings API wrapper.

    Works against api.openai.com or any server exposing ``/v1/embeddings``.
    The bearer token is only sent when an API key is configured.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com",
        timeout: float = 30.0,
    ):
        self.model = model
        self.client = AsyncOpenAI(
            api_key=api_key or "",
            base_url=f"{base_url.rstrip('/')}/v1",
            timeout=timeout,
            max_retries=0,
        )

    async def generate(self, content: str) -> list[float]:
        try:
            response = await self.client.embeddings.create(
                model=self.model, input=content
            )
        except (OpenAIError, ValueError) as exc:
            raise ProviderError(f"Embed request failed: {exc}") from exc

        # An empty vector would silently corrupt similarity search
        if not response.data:
            raise ProviderError("OpenAI returned empty embeddings array")
        return list(response.data[0].embedding)

    async def close(self) -> None:
        await self.client.close()


def make_embedding_generator(settings) -> EmbeddingGenerator:
    """Pick the embedding backend named by ``settings.embed_provider``."""
    if settings.embed_provider == "openai":
        logger.info(
            "Using OpenAI-compatible embeddings at %s (model %s)",
            settings.openai_base_url,
            settings.embed_model,
        )
        return OpenAIEmbeddingGenerator(
            model=settings.embed_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    return OllamaEmbeddingGenerator(
        base_url=settings.ollama_url,
        model=settings.embed_model,
        timeout=settings.request_timeout,
    )
