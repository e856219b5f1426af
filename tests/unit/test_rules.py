"""Unit tests for small pure helpers: gang colors, badges, CSV export, errors."""

import pytest

from clawquest.errors import GangFullError, InsufficientBalanceError, SelfChallengeError
from clawquest.services.gang_service import GANG_COLORS, gang_color
from clawquest.services.stats_service import EXPORT_COLUMNS, badge_for_rank, history_to_csv


class TestGangColor:
    def test_deterministic(self):
        assert gang_color("Neon Wolves") == gang_color("Neon Wolves")

    def test_from_palette(self):
        assert gang_color("Neon Wolves") in GANG_COLORS

    def test_code_point_sum(self):
        # ord("A") + ord("B") = 131, 131 % 16 = 3
        assert gang_color("AB") == GANG_COLORS[3]


class TestBadgeForRank:
    @pytest.mark.parametrize(
        "rank,badge",
        [
            (1, "Champion"),
            (2, "Top 3"),
            (3, "Top 3"),
            (4, "Top 10"),
            (10, "Top 10"),
            (11, "Top 25"),
            (25, "Top 25"),
            (26, "Top 50"),
            (50, "Top 50"),
            (51, None),
            (0, None),
        ],
    )
    def test_tiers(self, rank, badge):
        assert badge_for_rank(rank) == badge

    def test_prize_ranks_cutoff(self):
        assert badge_for_rank(20, prize_ranks=10) is None


class TestHistoryCsv:
    def test_header_and_null(self):
        row = {
            "timestamp": "2026-01-01T00:00:00+00:00",
            "action_type": "CLAIM",
            "hex_q": 0,
            "hex_r": 1,
            "hex_s": -1,
            "from_agent": None,
            "to_agent": "alice",
            "challenge_result": None,
        }
        lines = history_to_csv([row]).splitlines()
        assert lines[0] == ",".join(EXPORT_COLUMNS)
        assert lines[1] == "2026-01-01T00:00:00+00:00,CLAIM,0,1,-1,NULL,alice,NULL"

    def test_empty(self):
        assert history_to_csv([]) == ",".join(EXPORT_COLUMNS) + "\n"


class TestErrors:
    def test_insufficient_balance_payload(self):
        err = InsufficientBalanceError(required=0.001, current=0.0, action="claiming a hex")
        body = err.to_dict()
        assert body["success"] is False
        assert body["required_balance"] == 0.001
        assert body["current_balance"] == 0.0
        assert body["error"].startswith("Insufficient balance. Claiming a hex costs 0.001 UDC.")

    def test_self_challenge_is_a_400(self):
        assert SelfChallengeError().status_code == 400

    def test_gang_full_is_a_409(self):
        err = GangFullError(99)
        assert err.status_code == 409
        assert err.detail == "Gang is full (max 99 members)"
