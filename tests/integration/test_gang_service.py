"""Integration tests for gang membership."""

import asyncio
from uuid import uuid4

import pytest

from clawquest.errors import ConflictError, GangFullError, NotFoundError, ValidationFailedError
from clawquest.services.gang_service import (
    create_gang,
    gang_color,
    get_gang,
    join_gang,
    leave_gang,
    list_gangs,
)
from tests.factories import fetch_agent


class TestCreateGang:
    @pytest.mark.asyncio
    async def test_creator_becomes_first_member(self, session, make_agent):
        alice = await make_agent("alice")

        gang = await create_gang(session, alice.id, "  Neon Wolves ")

        assert gang.name == "Neon Wolves"
        assert gang.member_count == 1
        assert gang.color == gang_color("Neon Wolves")
        assert (await fetch_agent(session, alice.id)).gang_id == gang.id

    @pytest.mark.asyncio
    async def test_duplicate_name(self, session, make_agent):
        alice = await make_agent("alice")
        bob = await make_agent("bob")
        await create_gang(session, alice.id, "Neon Wolves")

        with pytest.raises(ConflictError, match="already exists"):
            await create_gang(session, bob.id, "Neon Wolves")

    @pytest.mark.asyncio
    async def test_already_in_gang(self, session, make_agent):
        alice = await make_agent("alice")
        await create_gang(session, alice.id, "Neon Wolves")

        with pytest.raises(ConflictError, match="already in a gang"):
            await create_gang(session, alice.id, "Chrome Owls")

    @pytest.mark.asyncio
    async def test_name_bounds(self, session, make_agent):
        alice = await make_agent("alice")
        with pytest.raises(ValidationFailedError):
            await create_gang(session, alice.id, "N")
        with pytest.raises(ValidationFailedError):
            await create_gang(session, alice.id, "N" * 31)

    @pytest.mark.asyncio
    async def test_unknown_agent(self, session):
        with pytest.raises(NotFoundError):
            await create_gang(session, uuid4(), "Neon Wolves")


class TestMembership:
    @pytest.mark.asyncio
    async def test_join_and_leave(self, session, make_agent):
        alice = await make_agent("alice")
        bob = await make_agent("bob")
        gang = await create_gang(session, alice.id, "Neon Wolves")

        joined = await join_gang(session, bob.id, gang.id, cap=99)
        assert joined.member_count == 2
        assert (await fetch_agent(session, bob.id)).gang_id == gang.id

        left = await leave_gang(session, bob.id)
        assert left == gang.id
        assert (await fetch_agent(session, bob.id)).gang_id is None
        refreshed, _ = await get_gang(session, gang.id)
        assert refreshed.member_count == 1

    @pytest.mark.asyncio
    async def test_join_full_gang(self, session, make_agent):
        alice = await make_agent("alice")
        bob = await make_agent("bob")
        gang = await create_gang(session, alice.id, "Neon Wolves")

        with pytest.raises(GangFullError):
            await join_gang(session, bob.id, gang.id, cap=1)

        assert (await fetch_agent(session, bob.id)).gang_id is None

    @pytest.mark.asyncio
    async def test_join_unknown_gang(self, session, make_agent):
        bob = await make_agent("bob")
        with pytest.raises(NotFoundError):
            await join_gang(session, bob.id, uuid4(), cap=99)

    @pytest.mark.asyncio
    async def test_leave_without_gang(self, session, make_agent):
        bob = await make_agent("bob")
        with pytest.raises(ValidationFailedError):
            await leave_gang(session, bob.id)

    @pytest.mark.asyncio
    async def test_cap_holds_under_concurrent_joins(self, session, session_factory, make_agent):
        founder = await make_agent("founder")
        gang = await create_gang(session, founder.id, "Neon Wolves")
        joiners = [await make_agent(f"joiner{i}") for i in range(4)]

        async def attempt(agent):
            async with session_factory() as s:
                try:
                    await join_gang(s, agent.id, gang.id, cap=3)
                    return True
                except GangFullError:
                    return False

        results = await asyncio.gather(*(attempt(a) for a in joiners))

        assert results.count(True) == 2
        refreshed, _ = await get_gang(session, gang.id)
        assert refreshed.member_count == 3
        assert len(refreshed.agents) == 3


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_gang_sums_member_scores(self, session, session_factory, make_agent):
        alice = await make_agent("alice")
        bob = await make_agent("bob")
        gang = await create_gang(session, alice.id, "Neon Wolves")
        await join_gang(session, bob.id, gang.id, cap=99)
        for agent, score in ((alice, 3), (bob, 2)):
            async with session_factory() as s:
                row = await fetch_agent(s, agent.id)
                row.score = score
                await s.commit()

        loaded, total = await get_gang(session, gang.id)

        assert {a.name for a in loaded.agents} == {"alice", "bob"}
        assert total == 5

    @pytest.mark.asyncio
    async def test_list_orders_by_members(self, session, make_agent):
        alice = await make_agent("alice")
        bob = await make_agent("bob")
        carol = await make_agent("carol")
        await create_gang(session, alice.id, "Solo Cats")
        wolves = await create_gang(session, bob.id, "Neon Wolves")
        await join_gang(session, carol.id, wolves.id, cap=99)

        gangs = await list_gangs(session)

        assert [g.name for g, _ in gangs] == ["Neon Wolves", "Solo Cats"]
