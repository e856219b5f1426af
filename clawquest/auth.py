"""Agent bearer tokens, the shared-secret verify flow and the admin guard."""

import hashlib
import random
import secrets

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.logging_config import bind_request_context, get_logger
from clawquest.models import Agent

logger = get_logger(__name__)

TOKEN_PREFIX = "cq_"
TOKEN_LOOKUP_LENGTH = 12


def generate_api_token(prefix: str = TOKEN_PREFIX) -> str:
    """Generate a secure API token with the cq_ prefix."""
    return f"{prefix}{secrets.token_urlsafe(32)}"


def hash_token(token: str) -> str:
    """Hash a token for storage using SHA-256."""
    return hashlib.sha256(token.encode()).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode(), b.encode())


def issue_token(agent: Agent) -> str:
    """Attach a fresh token to the agent and return the raw value (shown once)."""
    raw_token = generate_api_token()
    agent.token_hash = hash_token(raw_token)
    agent.token_prefix = raw_token[:TOKEN_LOOKUP_LENGTH]
    return raw_token


def random_agent_color() -> str:
    return f"hsl({random.randrange(360)}, 70%, 50%)"


# ---------------------------------------------------------------------------
# FastAPI Auth Dependencies
# ---------------------------------------------------------------------------


async def get_current_agent(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Agent:
    """
    FastAPI dependency: extract and validate the Bearer token.

    Returns the Agent ORM object or raises 401.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )

    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Empty token")

    token_hash_value = hash_token(token)
    result = await db.execute(
        select(Agent).where(Agent.token_prefix == token[:TOKEN_LOOKUP_LENGTH])
    )
    for agent in result.scalars().all():
        if agent.token_hash and constant_time_compare(agent.token_hash, token_hash_value):
            bind_request_context(
                request_id=getattr(request.state, "request_id", "-"),
                agent_id=agent.id,
            )
            return agent

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_admin(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Admin routes need X-Admin-Token to match the configured admin token."""
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    supplied = request.headers.get("X-Admin-Token", "")
    if not constant_time_compare(supplied, settings.admin_token):
        logger.warning("admin_auth_rejected", path=request.url.path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin token")


def shared_secret_matches(settings: Settings, supplied: str) -> bool:
    """The verify flow is disabled while no shared secret is configured."""
    return bool(settings.shared_secret) and constant_time_compare(supplied, settings.shared_secret)


async def get_current_agent_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Agent | None:
    """
    FastAPI dependency: optional agent auth.

    Returns Agent or None (no exception if the header is missing).
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    try:
        return await get_current_agent(request, db)
    except HTTPException:
        return None
