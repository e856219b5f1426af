"""Season pool reporting and tournament season close."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.config import Settings
from clawquest.errors import ValidationFailedError
from clawquest.logging_config import get_logger
from clawquest.models import ActionType, Hex, PrizePayout
from clawquest.services.economics import EconomicsPolicy
from clawquest.services.ledger import Ledger, to_units
from clawquest.services.provenance import ProvenanceLog
from clawquest.services.stats_service import season_standings

logger = get_logger(__name__)


DEFAULT_PRIZE_TIERS: list[dict[str, Any]] = [
    {"rank_range": [1, 1], "pool_pct": 0.25},
    {"rank_range": [2, 2], "pool_pct": 0.15},
    {"rank_range": [3, 3], "pool_pct": 0.10},
    {"rank_range": [4, 10], "pool_pct": 0.20},
    {"rank_range": [11, 50], "pool_pct": 0.30},
]


@dataclass
class SeasonCloseResult:
    season_number: int
    pool: float
    distributed: float
    carried_over: float
    next_season: int
    awards: list[dict[str, Any]] = field(default_factory=list)


async def open_season(db: AsyncSession, settings: Settings) -> int:
    """Create the running season's pool row up front so fee collection only ever updates it."""
    ledger = Ledger(db)
    try:
        season = await ledger.current_season(settings.season_number)
        await ledger.ensure_pool(season)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("season_open", season_number=season)
    return season


async def pool_stats(db: AsyncSession, policy: EconomicsPolicy, settings: Settings) -> dict[str, Any]:
    ledger = Ledger(db)
    season = await ledger.current_season(settings.season_number)
    pool = await ledger.get_pool(season)
    active_players = (
        await db.execute(select(func.count(func.distinct(Hex.owner_id))).where(Hex.owner_id.is_not(None)))
    ).scalar() or 0
    log = ProvenanceLog(db)
    return {
        "mode": policy.mode,
        "season_number": season,
        "pool_balance": to_units(pool.pool_balance) if pool else 0.0,
        "platform_fees": to_units(pool.platform_fees) if pool else 0.0,
        "total_claims": await log.count(ActionType.CLAIM),
        "total_challenges": await log.count(ActionType.STEAL),
        "active_players": active_players,
    }


async def close_season(
    db: AsyncSession,
    policy: EconomicsPolicy,
    settings: Settings,
    prize_tiers: list[dict[str, Any]] | None = None,
) -> SeasonCloseResult:
    """Pay the season pool out to the standings and open the next season.

    Each tier's share is split evenly among the agents ranked inside it.
    A tier with nobody in it carries its share into the next season's pool.
    Payouts, the drained pool and the new season commit together.
    """
    if policy.mode != "tournament":
        raise ValidationFailedError("Season payouts only run in tournament mode")

    tiers = prize_tiers if prize_tiers else DEFAULT_PRIZE_TIERS
    ledger = Ledger(db)

    try:
        season = await ledger.current_season(settings.season_number)
        standings = await season_standings(db, settings.prize_ranks)
        pool = await ledger.drain_pool(season)

        awards: list[dict[str, Any]] = []
        distributed = 0.0
        for tier in tiers:
            rank_lo, rank_hi = tier["rank_range"]
            tier_agents: list[tuple[int, UUID]] = [
                (s.rank, s.agent_id) for s in standings if rank_lo <= s.rank <= min(rank_hi, settings.prize_ranks)
            ]
            if not tier_agents:
                continue
            per_agent = to_units(pool * tier["pool_pct"] / len(tier_agents))
            if per_agent <= 0:
                continue
            for rank, agent_id in tier_agents:
                await ledger.credit(agent_id, per_agent, won=True)
                db.add(PrizePayout(season_number=season, agent_id=agent_id, rank=rank, amount=per_agent))
                awards.append({"agent_id": str(agent_id), "rank": rank, "amount": per_agent})
                distributed += per_agent

        distributed = to_units(distributed)
        carried_over = to_units(max(pool - distributed, 0.0))
        next_season = season + 1
        await ledger.ensure_pool(next_season)
        if carried_over > 0:
            await ledger.credit_pool(next_season, carried_over, platform_fee_percent=0.0)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "season_closed",
        season_number=season,
        pool=pool,
        distributed=distributed,
        carried_over=carried_over,
        awards=len(awards),
    )
    return SeasonCloseResult(
        season_number=season,
        pool=pool,
        distributed=distributed,
        carried_over=carried_over,
        next_season=next_season,
        awards=awards,
    )
