"""Lookups and fakes used by the territory tests."""

import json
from collections.abc import Callable
from uuid import UUID

import httpx
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.models import ActionType, Agent, HexHistory


async def fetch_agent(session: AsyncSession, agent_id: UUID) -> Agent:
    return await session.get(Agent, agent_id, populate_existing=True)


async def history_for(session: AsyncSession, hex_id: UUID) -> list[HexHistory]:
    result = await session.execute(
        select(HexHistory).where(HexHistory.hex_id == hex_id).order_by(HexHistory.id)
    )
    return list(result.scalars().all())


async def steal_count(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(HexHistory).where(HexHistory.action_type == ActionType.STEAL.value)
    )
    return result.scalar() or 0


def oracle_client(
    content: str | None = None,
    status_code: int = 200,
    raise_exc: Exception | None = None,
    on_request: Callable[[httpx.Request], None] | None = None,
) -> httpx.AsyncClient:
    """An httpx client whose transport answers like a chat-completions endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if on_request is not None:
            on_request(request)
        if raise_exc is not None:
            raise raise_exc
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "upstream"})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def verdict(is_valid: bool, similarity: float, explanation: str = "judged", confidence: float = 0.9) -> str:
    return json.dumps(
        {"isValid": is_valid, "similarity": similarity, "explanation": explanation, "confidence": confidence}
    )
