"""Economic ledger — wallet balances and the season prize pool.

Every write here runs inside the caller's transaction; the caller commits or
rolls back together with the ownership change the money belongs to.
"""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.errors import InsufficientBalanceError
from clawquest.logging_config import get_logger
from clawquest.models import SeasonPool, Wallet, utcnow

logger = get_logger(__name__)

PRECISION = 6


def to_units(amount: float) -> float:
    return round(float(amount), PRECISION)


class Ledger:
    """Atomic debit/credit against wallets, plus pool accounting."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- wallets --------------------------------------------------------

    async def get_wallet(self, agent_id: UUID) -> Wallet | None:
        result = await self.session.execute(
            select(Wallet).where(Wallet.agent_id == agent_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_balance(self, agent_id: UUID) -> float:
        result = await self.session.execute(select(Wallet.balance).where(Wallet.agent_id == agent_id))
        balance = result.scalar_one_or_none()
        return to_units(balance) if balance is not None else 0.0

    async def ensure_wallet(self, agent_id: UUID) -> Wallet:
        """Wallets are created lazily with a zero balance."""
        wallet = await self.get_wallet(agent_id)
        if wallet is None:
            wallet = Wallet(agent_id=agent_id, balance=0.0, total_deposited=0.0, total_won=0.0)
            self.session.add(wallet)
            await self.session.flush()
        return wallet

    async def debit(self, agent_id: UUID, amount: float, action: str = "this action") -> float:
        """Take `amount` from the wallet or raise InsufficientBalanceError.

        The balance check and the subtraction are one conditional UPDATE, so
        two concurrent debits can never overdraw. Returns the new balance.
        """
        amount = to_units(amount)
        if amount <= 0:
            return await self.get_balance(agent_id)

        result = await self.session.execute(
            update(Wallet)
            .where(Wallet.agent_id == agent_id, Wallet.balance >= amount)
            .values(balance=Wallet.balance - amount, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await self.get_balance(agent_id)
            logger.info("debit_rejected", agent_id=str(agent_id), required=amount, current=current)
            raise InsufficientBalanceError(required=amount, current=current, action=action)
        return await self.get_balance(agent_id)

    async def credit(
        self,
        agent_id: UUID,
        amount: float,
        *,
        deposited: bool = False,
        won: bool = False,
    ) -> float:
        """Add `amount` to the wallet, creating it if needed. Returns the new balance."""
        amount = to_units(amount)
        if amount <= 0:
            return await self.get_balance(agent_id)

        await self.ensure_wallet(agent_id)
        values = {"balance": Wallet.balance + amount, "updated_at": utcnow()}
        if deposited:
            values["total_deposited"] = Wallet.total_deposited + amount
        if won:
            values["total_won"] = Wallet.total_won + amount
        await self.session.execute(
            update(Wallet)
            .where(Wallet.agent_id == agent_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return await self.get_balance(agent_id)

    async def deposit(self, agent_id: UUID, amount: float) -> float:
        balance = await self.credit(agent_id, amount, deposited=True)
        logger.info("wallet_deposit", agent_id=str(agent_id), amount=to_units(amount), balance=balance)
        return balance

    # -- season pool ----------------------------------------------------

    async def get_pool(self, season_number: int) -> SeasonPool | None:
        result = await self.session.execute(
            select(SeasonPool)
            .where(SeasonPool.season_number == season_number)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def current_season(self, default: int) -> int:
        """The open season; `default` until a pool row exists."""
        result = await self.session.execute(
            select(func.max(SeasonPool.season_number)).where(SeasonPool.closed_at.is_(None))
        )
        open_season = result.scalar()
        if open_season is not None:
            return open_season
        result = await self.session.execute(select(func.max(SeasonPool.season_number)))
        last_closed = result.scalar()
        return max(default, last_closed + 1) if last_closed is not None else default

    async def ensure_pool(self, season_number: int) -> SeasonPool:
        pool = await self.get_pool(season_number)
        if pool is None:
            pool = SeasonPool(season_number=season_number, pool_balance=0.0, platform_fees=0.0)
            self.session.add(pool)
            await self.session.flush()
        return pool

    async def credit_pool(
        self, season_number: int, amount: float, platform_fee_percent: float
    ) -> tuple[float, float]:
        """Split `amount` between the prize pool and the platform fee.

        Returns (pool_share, platform_share).
        """
        amount = to_units(amount)
        if amount <= 0:
            return 0.0, 0.0
        platform_share = to_units(amount * platform_fee_percent / 100)
        pool_share = to_units(amount - platform_share)

        await self.ensure_pool(season_number)
        await self.session.execute(
            update(SeasonPool)
            .where(SeasonPool.season_number == season_number)
            .values(
                pool_balance=SeasonPool.pool_balance + pool_share,
                platform_fees=SeasonPool.platform_fees + platform_share,
            )
            .execution_options(synchronize_session=False)
        )
        return pool_share, platform_share

    async def drain_pool(self, season_number: int) -> float:
        """Zero the pool, close the season and return what it held."""
        pool = await self.ensure_pool(season_number)
        amount = to_units(pool.pool_balance)
        await self.session.execute(
            update(SeasonPool)
            .where(SeasonPool.season_number == season_number)
            .values(pool_balance=0.0, closed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return amount
