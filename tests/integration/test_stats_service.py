"""Integration tests for leaderboards, standings and history export."""

from uuid import uuid4

import pytest
import pytest_asyncio

from clawquest.errors import NotFoundError
from clawquest.services.gang_service import create_gang, leave_gang
from clawquest.services.stats_service import (
    TOTAL_GRID_HEXES,
    agent_leaderboard,
    agent_stats,
    export_history,
    gang_leaderboard,
    history_to_csv,
    overview,
    player_prize_info,
    season_standings,
)

QUESTION = "What is the capital of France?"


@pytest_asyncio.fixture
async def battlefield(session, make_service, make_agent):
    """alice claims three hexes, bob steals one and fails on another, carol claims one."""
    alice = await make_agent("alice")
    bob = await make_agent("bob")
    carol = await make_agent("carol")
    service = make_service(session)
    hexes = [(await service.claim(alice.id, q, 0, QUESTION, "Paris")).hex for q in range(3)]
    await service.claim(carol.id, 9, 9, QUESTION, "Paris")
    await service.challenge(bob.id, hexes[0].id, "Paris")
    await service.challenge(bob.id, hexes[1].id, "Lyon")
    return alice, bob, carol


class TestStandings:
    @pytest.mark.asyncio
    async def test_ranked_by_hex_count_then_win_rate(self, session, battlefield):
        alice, bob, carol = battlefield

        standings = await season_standings(session)

        assert [s.agent_name for s in standings] == ["alice", "bob", "carol"]
        assert standings[0].hex_count == 2
        assert standings[0].challenges_lost == 1
        assert standings[0].badge == "Champion"
        assert standings[1].challenges_won == 1
        assert standings[1].win_rate == 1.0
        assert standings[1].badge == "Top 3"
        assert standings[2].win_rate == 0.0

    @pytest.mark.asyncio
    async def test_agents_without_hexes_are_unranked(self, session, battlefield, make_agent):
        dave = await make_agent("dave")
        assert await player_prize_info(session, dave.id) is None

    @pytest.mark.asyncio
    async def test_player_prize_info(self, session, battlefield):
        _, bob, _ = battlefield
        info = await player_prize_info(session, bob.id)
        assert info.rank == 2


class TestLeaderboards:
    @pytest.mark.asyncio
    async def test_agents_by_score(self, session, battlefield):
        ranked = await agent_leaderboard(session)
        assert [(rank, agent.name, agent.score) for rank, agent in ranked] == [
            (1, "alice", 2),
            (2, "bob", 1),
            (3, "carol", 1),
        ]

    @pytest.mark.asyncio
    async def test_gangs_by_total_score(self, session, battlefield):
        alice, bob, carol = battlefield
        await create_gang(session, bob.id, "Neon Wolves")
        await create_gang(session, alice.id, "Solo Cats")
        empty = await create_gang(session, carol.id, "Empty Nest")
        await leave_gang(session, carol.id)

        ranked = await gang_leaderboard(session)

        assert [(rank, gang.name, total) for rank, gang, total in ranked] == [
            (1, "Solo Cats", 2),
            (2, "Neon Wolves", 1),
            (3, "Empty Nest", 0),
        ]
        assert ranked[2][1].id == empty.id


class TestAgentStats:
    @pytest.mark.asyncio
    async def test_combat_record(self, session, battlefield):
        alice, bob, _ = battlefield

        alice_stats = await agent_stats(session, alice.id)
        bob_stats = await agent_stats(session, bob.id)

        assert alice_stats["claims"] == 3
        assert alice_stats["steals_lost"] == 1
        assert alice_stats["hex_count"] == 2
        assert bob_stats["claims"] == 0
        assert bob_stats["steals_won"] == 1
        assert bob_stats["failed_challenges"] == 1

    @pytest.mark.asyncio
    async def test_unknown_agent(self, session):
        with pytest.raises(NotFoundError):
            await agent_stats(session, uuid4())


class TestOverviewAndExport:
    @pytest.mark.asyncio
    async def test_overview(self, session, battlefield):
        stats = await overview(session)
        assert stats["claimed_hexes"] == 4
        assert stats["unclaimed_hexes"] == TOTAL_GRID_HEXES - 4
        assert stats["active_agents"] == 3
        assert stats["total_challenges"] == 2
        assert stats["coverage_percent"] == 0.08

    @pytest.mark.asyncio
    async def test_export_newest_first(self, session, battlefield):
        rows = await export_history(session)

        assert len(rows) == 6
        assert rows[0]["action_type"] == "STEAL"
        assert rows[0]["challenge_result"] == "FAILED"
        assert rows[0]["from_agent"] is None
        assert rows[-1]["action_type"] == "CLAIM"
        assert "submitted_answer" not in rows[0]

    @pytest.mark.asyncio
    async def test_export_csv(self, session, battlefield):
        csv_text = history_to_csv(await export_history(session))
        lines = csv_text.splitlines()
        assert len(lines) == 7
        assert lines[1].endswith(",NULL,bob,FAILED")
