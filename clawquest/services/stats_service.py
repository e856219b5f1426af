"""Leaderboards, season standings and history export."""

import csv
import io
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clawquest.errors import NotFoundError
from clawquest.models import ActionType, Agent, ChallengeResult, Gang, Hex, HexHistory
from clawquest.services.provenance import ProvenanceLog

TOTAL_GRID_HEXES = 5000

EXPORT_COLUMNS = [
    "timestamp",
    "action_type",
    "hex_q",
    "hex_r",
    "hex_s",
    "from_agent",
    "to_agent",
    "challenge_result",
]


@dataclass
class Standing:
    rank: int
    agent_id: UUID
    agent_name: str
    hex_count: int
    challenges_won: int
    challenges_lost: int
    win_rate: float
    badge: str | None


def badge_for_rank(rank: int, prize_ranks: int = 50) -> str | None:
    if rank < 1 or rank > prize_ranks:
        return None
    if rank == 1:
        return "Champion"
    if rank <= 3:
        return "Top 3"
    if rank <= 10:
        return "Top 10"
    if rank <= 25:
        return "Top 25"
    return "Top 50"


async def agent_leaderboard(db: AsyncSession, limit: int = 50) -> list[tuple[int, Agent]]:
    result = await db.execute(
        select(Agent)
        .options(selectinload(Agent.gang))
        .order_by(Agent.score.desc(), Agent.created_at)
        .limit(limit)
    )
    return [(i, agent) for i, agent in enumerate(result.scalars().all(), start=1)]


async def gang_leaderboard(db: AsyncSession, limit: int = 50) -> list[tuple[int, Gang, int]]:
    total_score = func.coalesce(func.sum(Agent.score), 0)
    result = await db.execute(
        select(Gang, total_score.label("total_score"))
        .outerjoin(Agent, Agent.gang_id == Gang.id)
        .group_by(Gang.id)
        .order_by(total_score.desc(), Gang.created_at)
        .limit(limit)
    )
    return [(i, gang, int(score)) for i, (gang, score) in enumerate(result.all(), start=1)]


async def _steal_counts(db: AsyncSession) -> tuple[dict[UUID, int], dict[UUID, int]]:
    """Successful steals per winner and per loser."""
    won_rows = await db.execute(
        select(HexHistory.to_agent_id, func.count())
        .where(HexHistory.challenge_result == ChallengeResult.SUCCESS.value)
        .group_by(HexHistory.to_agent_id)
    )
    lost_rows = await db.execute(
        select(HexHistory.from_agent_id, func.count())
        .where(
            HexHistory.action_type == ActionType.STEAL.value,
            HexHistory.from_agent_id.is_not(None),
        )
        .group_by(HexHistory.from_agent_id)
    )
    return dict(won_rows.all()), dict(lost_rows.all())


async def season_standings(db: AsyncSession, prize_ranks: int = 50) -> list[Standing]:
    """Every hex owner ranked by hex count, then win rate, then name."""
    hex_count = func.count(Hex.id)
    rows = await db.execute(
        select(Agent.id, Agent.name, hex_count)
        .join(Hex, Hex.owner_id == Agent.id)
        .group_by(Agent.id, Agent.name)
    )
    won, lost = await _steal_counts(db)

    players = []
    for agent_id, name, count in rows.all():
        w, l = won.get(agent_id, 0), lost.get(agent_id, 0)
        players.append((agent_id, name, count, w, l, w / (w + l) if w + l else 0.0))
    players.sort(key=lambda p: (-p[2], -p[5], p[1]))

    return [
        Standing(
            rank=rank,
            agent_id=agent_id,
            agent_name=name,
            hex_count=count,
            challenges_won=w,
            challenges_lost=l,
            win_rate=round(rate, 4),
            badge=badge_for_rank(rank, prize_ranks),
        )
        for rank, (agent_id, name, count, w, l, rate) in enumerate(players, start=1)
    ]


async def player_prize_info(db: AsyncSession, agent_id: UUID, prize_ranks: int = 50) -> Standing | None:
    """The agent's place in the season standings; None without any hexes."""
    for standing in await season_standings(db, prize_ranks):
        if standing.agent_id == agent_id:
            return standing
    return None


async def agent_stats(db: AsyncSession, agent_id: UUID) -> dict:
    agent = await db.get(Agent, agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")
    hex_count = (
        await db.execute(select(func.count()).select_from(Hex).where(Hex.owner_id == agent_id))
    ).scalar() or 0
    record = await ProvenanceLog(db).combat_record(agent_id)
    return {
        "agent_id": str(agent_id),
        "name": agent.name,
        "score": agent.score,
        "hex_count": hex_count,
        "claims": record.claims,
        "steals_won": record.steals_won,
        "steals_lost": record.steals_lost,
        "failed_challenges": record.failed_attempts,
    }


async def overview(db: AsyncSession) -> dict:
    claimed = (
        await db.execute(select(func.count()).select_from(Hex).where(Hex.owner_id.is_not(None)))
    ).scalar() or 0
    agents = (await db.execute(select(func.count()).select_from(Agent))).scalar() or 0
    gangs = (await db.execute(select(func.count()).select_from(Gang))).scalar() or 0
    log = ProvenanceLog(db)
    return {
        "total_hexes": TOTAL_GRID_HEXES,
        "claimed_hexes": claimed,
        "unclaimed_hexes": max(TOTAL_GRID_HEXES - claimed, 0),
        "active_agents": agents,
        "total_gangs": gangs,
        "total_challenges": await log.count(ActionType.STEAL),
        "coverage_percent": round(claimed / TOTAL_GRID_HEXES * 100, 2),
    }


def history_row(entry: HexHistory) -> dict:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "action_type": entry.action_type,
        "hex_q": entry.hex.q,
        "hex_r": entry.hex.r,
        "hex_s": entry.hex.s,
        "from_agent": entry.from_agent.name if entry.from_agent else None,
        "to_agent": entry.to_agent.name,
        "challenge_result": entry.challenge_result,
    }


async def export_history(db: AsyncSession) -> list[dict]:
    return [history_row(e) for e in await ProvenanceLog(db).export()]


def history_to_csv(rows: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "NULL" if v is None else v for k, v in row.items()})
    return buffer.getvalue()
