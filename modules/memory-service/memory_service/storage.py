"""Qdrant-backed memory storage with identity-scoped access."""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    Filter,
    PointIdsList,
    PointStruct,
    ScoredPoint,
    VectorParams,
)

from .errors import StorageError
from .filters import to_qdrant_filter
from .models import Memory, SearchResult

logger = logging.getLogger(__name__)

SCROLL_PAGE_SIZE = 250
MAX_SCROLL_PAGES = 100


class _SearchResponse(BaseModel):
    result: list[ScoredPoint] = Field(default_factory=list)


class MemoryStorage:
    """Vector store client over a remote Qdrant collection.

    Design decisions:
    - One shared collection, tenants separated by payload filters
    - search, scroll_all and count all build the same identity filter
    - Cosine distance, fixed dimensionality set at provisioning time
    - Every backend failure surfaces as StorageError
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection_name: str = "memories",
        dimensions: int = 768,
        rest_search: Optional[bool] = None,
    ):
        self.client = client
        self.collection = collection_name
        self.dimensions = dimensions
        # Local (:memory: or path) clients have no REST API to post to
        self.rest_search = _has_rest_api(client) if rest_search is None else rest_search

    @classmethod
    def from_settings(cls, settings) -> "MemoryStorage":
        client = AsyncQdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout=int(settings.request_timeout),
        )
        return cls(
            client,
            collection_name=settings.collection_name,
            dimensions=settings.embed_dims,
        )

    async def ensure_collection(self) -> None:
        """Create the collection if it doesn't exist.

        Raises:
            StorageError: If the backend can't be reached or rejects creation
        """
        try:
            if await self.client.collection_exists(self.collection):
                logger.info("Collection '%s' already exists", self.collection)
                return

            await self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(
                    size=self.dimensions, distance=Distance.COSINE
                ),
            )
        except Exception as exc:
            raise StorageError(f"ensure_collection failed: {exc}") from exc

        logger.info(
            "Created collection '%s' with %d dims", self.collection, self.dimensions
        )

    async def upsert(self, point_id: str, vector: list[float], payload: dict) -> None:
        """Insert or replace a single point."""
        try:
            await self.client.upsert(
                collection_name=self.collection,
                points=[PointStruct(id=point_id, vector=vector, payload=payload)],
            )
        except Exception as exc:
            raise StorageError(f"upsert failed: {exc}") from exc

    async def search(
        self,
        vector: list[float],
        user_id: str,
        limit: int = 5,
        agent_id: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> list[SearchResult]:
        """Nearest neighbours within the caller's identity scope.

        Scores are passed through exactly as the backend reports them.
        """
        query_filter = to_qdrant_filter(user_id, agent_id, run_id)
        try:
            if self.rest_search:
                points = await self._search_rest(vector, query_filter, limit)
            else:
                response = await self.client.query_points(
                    collection_name=self.collection,
                    query=vector,
                    query_filter=query_filter,
                    limit=limit,
                    with_payload=True,
                )
                points = response.points
        except Exception as exc:
            raise StorageError(f"search failed: {exc}") from exc

        results = []
        for point in points:
            memory = Memory.from_point(point.id, point.payload)
            results.append(
                SearchResult(
                    id=memory.id,
                    memory=memory.memory,
                    score=point.score,
                    user_id=memory.user_id or None,
                    agent_id=memory.agent_id,
                    run_id=memory.run_id,
                )
            )
        return results

    async def _search_rest(self, vector: list[float], query_filter: Filter, limit: int):
        body = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
            "filter": query_filter.model_dump(mode="json", exclude_none=True),
        }
        response = await self.client.http.client.request(
            type_=_SearchResponse,
            method="POST",
            url="/collections/{collection_name}/points/search",
            path_params={"collection_name": self.collection},
            json=body,
        )
        return response.result

    async def delete(self, point_id: str) -> None:
        """Delete a point by id. Unknown ids are not an error."""
        try:
            await self.client.delete(
                collection_name=self.collection,
                points_selector=PointIdsList(points=[point_id]),
            )
        except Exception as exc:
            raise StorageError(f"delete failed: {exc}") from exc

    async def scroll_all(
        self,
        user_id: str,
        agent_id: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> list[Memory]:
        """Enumerate every memory in scope, following the scroll cursor.

        Stops after MAX_SCROLL_PAGES pages and returns what it has so far.
        """
        scroll_filter = to_qdrant_filter(user_id, agent_id, run_id)
        memories: list[Memory] = []
        offset: Any = None

        for _ in range(MAX_SCROLL_PAGES):
            records, offset = await self._scroll_page(scroll_filter, offset)
            memories.extend(Memory.from_point(r.id, r.payload) for r in records)
            if offset is None:
                return memories

        logger.warning(
            "scroll_all hit %d-page limit for user=%s, returning %d memories",
            MAX_SCROLL_PAGES,
            user_id,
            len(memories),
        )
        return memories

    async def _scroll_page(self, scroll_filter: Filter, offset: Any):
        try:
            return await self.client.scroll(
                collection_name=self.collection,
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as exc:
            raise StorageError(f"scroll failed: {exc}") from exc

    async def count(
        self,
        user_id: str,
        agent_id: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> int:
        """Exact number of memories in scope."""
        try:
            result = await self.client.count(
                collection_name=self.collection,
                count_filter=to_qdrant_filter(user_id, agent_id, run_id),
                exact=True,
            )
        except Exception as exc:
            raise StorageError(f"count failed: {exc}") from exc
        return result.count

    async def close(self) -> None:
        await self.client.close()


def _has_rest_api(client) -> bool:
    try:
        client.http
    except (AttributeError, NotImplementedError):
        return False
    return True
