"""Data models for stored memories and the service wire format."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, StrictInt, field_validator


class Memory(BaseModel):
    """A stored fact.

    Design decisions:
    - id: Auto-generated UUID4 (Qdrant requires valid UUIDs)
    - user_id: Required tenant key, agent_id/run_id narrow it further
    - created_at: Set once at creation, never mutated
    - embedding: Lives in Qdrant's vector field, never returned to callers
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    memory: str
    user_id: str = Field(min_length=1)
    agent_id: Optional[str] = None
    run_id: Optional[str] = None
    created_at: Optional[str] = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def dict_for_storage(self) -> dict:
        """Return the Qdrant payload for this memory.

        The id is the point id and the embedding the point vector, so neither
        is repeated here. Absent identity dimensions are left out entirely.
        """
        payload: dict[str, Any] = {
            "memory": self.memory,
            "user_id": self.user_id,
        }
        if self.agent_id:
            payload["agent_id"] = self.agent_id
        if self.run_id:
            payload["run_id"] = self.run_id
        payload["created_at"] = self.created_at
        return payload

    @classmethod
    def from_point(cls, point_id: Any, payload: Optional[dict]) -> "Memory":
        """Rebuild a memory from a Qdrant point id and payload.

        Missing payload fields default to empty/absent rather than raising.
        """
        payload = payload or {}
        return cls.model_construct(
            id=str(point_id),
            memory=_text(payload.get("memory")) or "",
            user_id=_text(payload.get("user_id")) or "",
            agent_id=_text(payload.get("agent_id")),
            run_id=_text(payload.get("run_id")),
            created_at=_text(payload.get("created_at")),
        )


class SearchResult(BaseModel):
    """A memory plus its backend-reported similarity score."""

    id: str
    memory: str
    score: float
    user_id: Optional[str] = None
    agent_id: Optional[str] = None
    run_id: Optional[str] = None


class AddResult(BaseModel):
    id: str
    memory: str
    event: str = "ADD"


class AddRequest(BaseModel):
    """Body of POST /add."""

    messages: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    agent_id: Optional[str] = None
    run_id: Optional[str] = None

    @field_validator("messages")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("messages cannot be empty")
        return value


class SearchRequest(BaseModel):
    """Body of POST /search."""

    query: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    agent_id: Optional[str] = None
    run_id: Optional[str] = None
    limit: StrictInt = Field(5, ge=1, le=100)

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query cannot be empty")
        return value


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
