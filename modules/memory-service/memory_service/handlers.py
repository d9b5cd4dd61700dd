"""Request handlers composing the fact provider and memory storage."""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import MemoryServiceError, ValidationError
from .models import AddRequest, AddResult, Memory, SearchRequest
from .provider import FactProvider
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)

RequestT = TypeVar("RequestT", bound=BaseModel)


class HandlerResult(BaseModel):
    """Outcome of one handler call: either an output body or an error."""

    success: bool
    status_code: int = 200
    output: Optional[dict[str, Any]] = None
    error: Optional[dict[str, str]] = None

    @classmethod
    def ok(cls, output: dict[str, Any]) -> "HandlerResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, message: str, status_code: int = 400) -> "HandlerResult":
        return cls(success=False, status_code=status_code, error={"message": message})

    def body(self) -> dict[str, Any]:
        """JSON body for the wire."""
        if self.success:
            return self.output or {}
        return {"error": (self.error or {}).get("message", "")}


def is_valid_uuid(value: str) -> bool:
    return bool(UUID_RE.fullmatch(value))


def parse_request(model: Type[RequestT], body: Any) -> RequestT:
    """Validate a decoded JSON body against a request model.

    Raises:
        ValidationError: With a short, client-facing description
    """
    if not isinstance(body, dict):
        raise ValidationError("Validation failed: body must be a JSON object")
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(f"Validation failed: {problems}") from exc


class MemoryHandlers:
    """Add, search, delete, list and count memories.

    Design decisions:
    - Each call is a single linear pipeline with no internal retries
    - Handlers never raise; every outcome is a HandlerResult
    - Validation runs before any extraction or storage work
    - Per-fact failures during add are counted, never abort siblings
    """

    def __init__(
        self,
        storage: MemoryStorage,
        provider: FactProvider,
        max_message_length: int = 50_000,
        max_query_length: int = 1000,
        add_concurrency: int = 8,
    ):
        self.storage = storage
        self.provider = provider
        self.max_message_length = max_message_length
        self.max_query_length = max_query_length
        self.add_concurrency = add_concurrency

    async def add(self, body: Any) -> HandlerResult:
        """Extract facts from a conversation and store each one."""
        try:
            request = parse_request(AddRequest, body)
            if len(request.messages) > self.max_message_length:
                raise ValidationError(
                    "Validation failed: messages exceeds "
                    f"{self.max_message_length} characters"
                )
        except ValidationError as e:
            return HandlerResult.fail(e.message, 400)

        try:
            facts = await self.provider.extract_facts(request.messages)
            if not facts:
                return HandlerResult.ok({"results": [], "failed": 0})

            created_at = datetime.now(timezone.utc).isoformat()
            semaphore = asyncio.Semaphore(self.add_concurrency)
            outcomes = await asyncio.gather(
                *(
                    self._store_fact(fact, request, created_at, semaphore)
                    for fact in facts
                )
            )
        except Exception:
            logger.exception("Unhandled error while adding memories")
            return HandlerResult.fail("Internal server error", 500)

        stored = [o.model_dump() for o in outcomes if o is not None]
        failed = len(outcomes) - len(stored)
        return HandlerResult.ok({"results": stored, "failed": failed})

    async def _store_fact(
        self,
        fact: str,
        request: AddRequest,
        created_at: str,
        semaphore: asyncio.Semaphore,
    ) -> Optional[AddResult]:
        async with semaphore:
            try:
                vector = await self.provider.embed(fact)
                memory = Memory(
                    memory=fact,
                    user_id=request.user_id,
                    agent_id=request.agent_id or None,
                    run_id=request.run_id or None,
                    created_at=created_at,
                )
                await self.storage.upsert(memory.id, vector, memory.dict_for_storage())
            except Exception as e:
                logger.error("Failed to store fact %r: %s", fact[:40], e)
                return None

        logger.info("Stored memory %s: %r", memory.id, fact[:60])
        return AddResult(id=memory.id, memory=fact)

    async def search(self, body: Any) -> HandlerResult:
        """Embed the query and return the nearest memories in scope."""
        try:
            request = parse_request(SearchRequest, body)
            if len(request.query) > self.max_query_length:
                raise ValidationError(
                    "Validation failed: query exceeds "
                    f"{self.max_query_length} characters"
                )
        except ValidationError as e:
            return HandlerResult.fail(e.message, 400)

        try:
            vector = await self.provider.embed(request.query)
            results = await self.storage.search(
                vector,
                request.user_id,
                limit=request.limit,
                agent_id=request.agent_id or None,
                run_id=request.run_id or None,
            )
        except Exception as e:
            logger.error("Search error: %s", _describe(e))
            return HandlerResult.fail("Search failed", 500)

        logger.info(
            "Search query=%r user=%s -> %d results",
            request.query[:40],
            request.user_id,
            len(results),
        )
        return HandlerResult.ok(
            {"results": [r.model_dump(exclude_none=True) for r in results]}
        )

    async def delete(self, memory_id: str) -> HandlerResult:
        """Delete one memory by id. Unknown ids still succeed."""
        if not is_valid_uuid(memory_id):
            return HandlerResult.fail("Invalid memory ID: must be a valid UUID", 400)

        try:
            await self.storage.delete(memory_id)
        except Exception as e:
            logger.error("Delete error: %s", _describe(e))
            return HandlerResult.fail("Delete failed", 500)

        logger.info("Deleted memory %s", memory_id)
        return HandlerResult.ok({"success": True})

    async def list_memories(self, params: Mapping[str, str]) -> HandlerResult:
        """Every memory in the caller's identity scope."""
        user_id = params.get("user_id")
        if not user_id:
            return HandlerResult.fail("Missing query param: user_id", 400)

        try:
            memories = await self.storage.scroll_all(
                user_id,
                agent_id=params.get("agent_id") or None,
                run_id=params.get("run_id") or None,
            )
        except Exception as e:
            logger.error("List error: %s", _describe(e))
            return HandlerResult.fail("Failed to list memories", 500)

        logger.info("Listed %d memories for user=%s", len(memories), user_id)
        return HandlerResult.ok(
            {"memories": [m.model_dump(exclude_none=True) for m in memories]}
        )

    async def count(self, params: Mapping[str, str]) -> HandlerResult:
        """Exact memory count in the caller's identity scope."""
        user_id = params.get("user_id")
        if not user_id:
            return HandlerResult.fail("Missing query param: user_id", 400)

        try:
            total = await self.storage.count(
                user_id,
                agent_id=params.get("agent_id") or None,
                run_id=params.get("run_id") or None,
            )
        except Exception as e:
            logger.error("Count error: %s", _describe(e))
            return HandlerResult.fail("Failed to count memories", 500)

        logger.info("Count user=%s -> %d memories", user_id, total)
        return HandlerResult.ok({"count": total})


def _describe(exc: Exception) -> str:
    if isinstance(exc, MemoryServiceError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"
