"""Identity filter shared by every scoped storage operation."""

from typing import Optional

from qdrant_client.models import FieldCondition, Filter, MatchValue


def build_filter(
    user_id: str, agent_id: Optional[str] = None, run_id: Optional[str] = None
) -> list[FieldCondition]:
    """Build the conjunctive identity predicates.

    user_id always comes first, then agent_id and run_id in that order when
    they are non-empty strings. An absent dimension emits no predicate, so it
    matches any stored value.

    Raises:
        ValueError: If user_id is empty
    """
    if not user_id:
        raise ValueError("user_id is required for identity filtering")

    must = [FieldCondition(key="user_id", match=MatchValue(value=user_id))]
    if agent_id:
        must.append(FieldCondition(key="agent_id", match=MatchValue(value=agent_id)))
    if run_id:
        must.append(FieldCondition(key="run_id", match=MatchValue(value=run_id)))
    return must


def to_qdrant_filter(
    user_id: str, agent_id: Optional[str] = None, run_id: Optional[str] = None
) -> Filter:
    """Wrap the identity predicates in a Qdrant ``must`` filter."""
    return Filter(must=build_filter(user_id, agent_id, run_id))
