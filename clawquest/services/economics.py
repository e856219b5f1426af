"""Economic policies — selected once at startup from ``economy_mode``.

The rule that a failed challenge pays its fee to the defender is shared by
every policy; policies only decide what happens to money that is not owed to
a defender (claim costs, fees from successful steals).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any
from uuid import UUID

from clawquest.config import Settings
from clawquest.models import ChallengeResult
from clawquest.services.ledger import Ledger


@dataclass
class Settlement:
    """Where the money of one transition went."""
    fee_paid: float
    recipient: str                 # defender | pool | none
    defender_earned: float = 0.0
    pool_share: float = 0.0
    platform_share: float = 0.0
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EconomicsPolicy(ABC):
    mode: str = ""

    @abstractmethod
    def claim_cost(self) -> float:
        ...

    @abstractmethod
    def challenge_fee(self) -> float:
        ...

    @abstractmethod
    async def collect(self, ledger: Ledger, amount: float, note: str) -> Settlement:
        """Route money that nobody in particular is owed."""

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        ...

    async def on_claim_paid(self, ledger: Ledger, amount: float) -> Settlement:
        return await self.collect(ledger, amount, "Claim cost deducted from your wallet")

    async def on_challenge_resolved(
        self,
        ledger: Ledger,
        outcome: ChallengeResult,
        fee: float,
        defender_id: UUID,
    ) -> Settlement:
        if outcome is ChallengeResult.FAILED:
            await ledger.credit(defender_id, fee)
            return Settlement(
                fee_paid=fee,
                recipient="defender",
                defender_earned=fee,
                note="Defender earned your challenge fee!",
            )
        return await self.collect(ledger, fee, "You gained territory! No win bonus is paid.")


class FreePlayPolicy(EconomicsPolicy):
    """Nothing costs anything; play for score and badges."""

    mode = "free_play"

    def claim_cost(self) -> float:
        return 0.0

    def challenge_fee(self) -> float:
        return 0.0

    async def collect(self, ledger: Ledger, amount: float, note: str) -> Settlement:
        return Settlement(fee_paid=amount, recipient="none", note=note)

    def describe(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "claim_cost": 0.0,
            "challenge_fee": 0.0,
            "platform_fee_percent": 0.0,
            "key_points": [
                "Claims and challenges are free",
                "Compete for score and leaderboard rank",
                "Top 50 players earn season badges",
            ],
        }


class TournamentPolicy(EconomicsPolicy):
    """Fee-funded season pool, paid out to the top ranks when the season closes."""

    mode = "tournament"

    def __init__(self, claim_cost: float, challenge_fee: float, platform_fee_percent: float, season_number: int):
        self._claim_cost = claim_cost
        self._challenge_fee = challenge_fee
        self.platform_fee_percent = platform_fee_percent
        self.default_season = season_number

    def claim_cost(self) -> float:
        return self._claim_cost

    def challenge_fee(self) -> float:
        return self._challenge_fee

    async def collect(self, ledger: Ledger, amount: float, note: str) -> Settlement:
        season = await ledger.current_season(self.default_season)
        pool_share, platform_share = await ledger.credit_pool(season, amount, self.platform_fee_percent)
        return Settlement(
            fee_paid=amount,
            recipient="pool",
            pool_share=pool_share,
            platform_share=platform_share,
            note=f"{note} Fee added to the season pool.",
        )

    def describe(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "claim_cost": self._claim_cost,
            "challenge_fee": self._challenge_fee,
            "platform_fee_percent": self.platform_fee_percent,
            "key_points": [
                f"Claims cost {self._claim_cost} UDC, challenges {self._challenge_fee} UDC",
                "Failed challenges pay the fee to the defender",
                f"{100 - self.platform_fee_percent:g}% of other fees go to the season pool",
                "At season end the top 50 share the pool",
            ],
        }


def build_policy(settings: Settings) -> EconomicsPolicy:
    if settings.economy_mode == "free_play":
        return FreePlayPolicy()
    if settings.economy_mode == "tournament":
        return TournamentPolicy(
            claim_cost=settings.claim_cost,
            challenge_fee=settings.challenge_fee,
            platform_fee_percent=settings.platform_fee_percent,
            season_number=settings.season_number,
        )
    raise ValueError(f"Unknown economy_mode: {settings.economy_mode!r}")
