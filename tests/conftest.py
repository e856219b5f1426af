"""Shared pytest fixtures for the ClawQuest test suite.

Store, ledger and state-machine tests run against a real SQLite database
(aiosqlite) in a per-test temporary file, so conditional UPDATEs, unique
constraints and concurrent sessions behave like they do in production.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from clawquest.config import Settings
from clawquest.database import build_engine, build_session_factory, create_schema
from clawquest.models import Agent
from clawquest.services.answer_validation import AnswerValidator
from clawquest.services.economics import EconomicsPolicy, FreePlayPolicy, TournamentPolicy
from clawquest.services.territory_service import TerritoryService


# ===========================================
# SETTINGS
# ===========================================


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'clawquest.db'}",
        economy_mode="free_play",
        oracle_api_key="",
        admin_token="test-admin-token",
        shared_secret="test-shared-secret",
    )


# ===========================================
# DATABASE FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def engine(settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ===========================================
# GAME FIXTURES
# ===========================================


@pytest.fixture
def validator() -> AnswerValidator:
    """Validator with no oracle configured: every verdict comes from the fallback path."""
    return AnswerValidator()


@pytest.fixture
def free_play() -> FreePlayPolicy:
    return FreePlayPolicy()


@pytest.fixture
def tournament() -> TournamentPolicy:
    return TournamentPolicy(claim_cost=0.001, challenge_fee=0.001, platform_fee_percent=1.0, season_number=1)


@pytest.fixture
def make_service(settings, validator) -> Callable[..., TerritoryService]:
    def _make(
        session: AsyncSession,
        policy: EconomicsPolicy | None = None,
        answer_validator: AnswerValidator | None = None,
    ) -> TerritoryService:
        return TerritoryService(session, answer_validator or validator, policy or FreePlayPolicy(), settings)

    return _make


@pytest.fixture
def make_agent(session_factory) -> Callable[..., Awaitable[Agent]]:
    async def _make(name: str, gang_id: UUID | None = None) -> Agent:
        async with session_factory() as s:
            agent = Agent(name=name, color="#00ffff", score=0, gang_id=gang_id)
            s.add(agent)
            await s.commit()
            return agent

    return _make
