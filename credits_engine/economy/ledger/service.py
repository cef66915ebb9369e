from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.ledger_entries import LedgerEntry
from credits_engine.db.repo.ledger_repo import LedgerRepo
from credits_engine.db.repo.wallets_repo import WalletsRepo
from credits_engine.economy.ledger.errors import (
    InsufficientDiamondsError,
    InvalidExchangeQuantityError,
    WalletClosedError,
    WalletNotFoundError,
)
from credits_engine.economy.ledger.types import (
    Asset,
    Balance,
    ClosureResult,
    CreditResult,
    DebitResult,
    ExchangeResult,
    LedgerEntryType,
)

logger = structlog.get_logger(__name__)


def action_debit_key(request_id: UUID) -> str:
    return f"action_debit:{request_id}"


def action_reversal_key(request_id: UUID) -> str:
    return f"action_reversal:{request_id}"


def _balance_of(balances: tuple[int, int], asset: Asset) -> int:
    credits, diamonds = balances
    return credits if asset == Asset.CREDITS else diamonds


class LedgerService:
    """Sole writer of wallet balances.

    Every mutation is one conditional statement on the wallet row plus one
    journal row in the caller's transaction, so a failed call leaves nothing
    behind and concurrent callers for the same user serialize on the row.
    """

    @staticmethod
    async def ensure_wallet(
        session: AsyncSession,
        *,
        user_id: UUID,
        welcome_credits: int,
        now_utc: datetime,
    ) -> bool:
        created = await WalletsRepo.create_if_absent(
            session,
            user_id=user_id,
            welcome_credits=welcome_credits,
            now_utc=now_utc,
        )
        if not created:
            return False

        if welcome_credits > 0:
            await LedgerRepo.create(
                session,
                entry=LedgerEntry(
                    user_id=user_id,
                    entry_type=LedgerEntryType.WELCOME_CREDIT.value,
                    asset=Asset.CREDITS.value,
                    direction="CREDIT",
                    amount=welcome_credits,
                    balance_after=welcome_credits,
                    source="SIGNUP",
                    idempotency_key=f"welcome:{user_id}",
                    metadata_={},
                    created_at=now_utc,
                ),
            )
        logger.info("wallet_created", user_id=str(user_id), welcome_credits=welcome_credits)
        return True

    @staticmethod
    async def get_balance(
        session: AsyncSession,
        *,
        user_id: UUID,
        welcome_credits: int,
        now_utc: datetime,
    ) -> Balance:
        balances = await WalletsRepo.get_balances(session, user_id)
        if balances is None:
            await LedgerService.ensure_wallet(
                session,
                user_id=user_id,
                welcome_credits=welcome_credits,
                now_utc=now_utc,
            )
            balances = await WalletsRepo.get_balances(session, user_id)
        if balances is None:
            raise WalletNotFoundError(str(user_id))

        credits, diamonds = balances
        closed = await WalletsRepo.is_closed(session, user_id)
        return Balance(credits=max(0, credits), diamonds=max(0, diamonds), closed=closed)

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: UUID,
        amount: int,
        request_id: UUID,
        now_utc: datetime,
        source: str = "ACTION",
    ) -> DebitResult:
        if amount <= 0:
            raise ValueError("amount must be positive")

        balances = await WalletsRepo.decrement_if_sufficient(
            session,
            user_id=user_id,
            asset=Asset.CREDITS.value,
            amount=amount,
            now_utc=now_utc,
        )
        if balances is None:
            if await WalletsRepo.is_closed(session, user_id):
                raise WalletClosedError(str(user_id))
            current = await WalletsRepo.get_balances(session, user_id) or (0, 0)
            return DebitResult(applied=False, amount=amount, credits=current[0], diamonds=current[1])

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                request_id=request_id,
                entry_type=LedgerEntryType.ACTION_DEBIT.value,
                asset=Asset.CREDITS.value,
                direction="DEBIT",
                amount=amount,
                balance_after=balances[0],
                source=source,
                idempotency_key=action_debit_key(request_id),
                metadata_={},
                created_at=now_utc,
            ),
        )
        return DebitResult(applied=True, amount=amount, credits=balances[0], diamonds=balances[1])

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: UUID,
        amount: int,
        asset: Asset,
        idempotency_key: str,
        entry_type: LedgerEntryType,
        source: str,
        welcome_credits: int,
        now_utc: datetime,
        request_id: UUID | None = None,
        metadata: dict[str, object] | None = None,
        allow_closed: bool = False,
    ) -> CreditResult:
        if amount <= 0:
            raise ValueError("amount must be positive")

        existing_entry = await LedgerRepo.get_by_idempotency_key(session, idempotency_key)
        if existing_entry is not None:
            current = await WalletsRepo.get_balances(session, user_id) or (0, 0)
            return CreditResult(
                amount=existing_entry.amount,
                asset=Asset(existing_entry.asset),
                idempotent_replay=True,
                credits=current[0],
                diamonds=current[1],
            )

        await LedgerService.ensure_wallet(
            session,
            user_id=user_id,
            welcome_credits=welcome_credits,
            now_utc=now_utc,
        )
        balances = await WalletsRepo.increment(
            session,
            user_id=user_id,
            asset=asset.value,
            amount=amount,
            now_utc=now_utc,
            allow_closed=allow_closed,
        )
        if balances is None:
            if await WalletsRepo.is_closed(session, user_id):
                raise WalletClosedError(str(user_id))
            raise WalletNotFoundError(str(user_id))

        # The unique idempotency key aborts the whole transaction on a concurrent duplicate.
        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                request_id=request_id,
                entry_type=entry_type.value,
                asset=asset.value,
                direction="CREDIT",
                amount=amount,
                balance_after=_balance_of(balances, asset),
                source=source,
                idempotency_key=idempotency_key,
                metadata_=metadata or {},
                created_at=now_utc,
            ),
        )
        return CreditResult(
            amount=amount,
            asset=asset,
            idempotent_replay=False,
            credits=balances[0],
            diamonds=balances[1],
        )

    @staticmethod
    async def reverse(
        session: AsyncSession,
        *,
        user_id: UUID,
        amount: int,
        request_id: UUID,
        now_utc: datetime,
        reason: str,
    ) -> CreditResult:
        """Compensating credit for a prior action debit; repeat calls are no-ops.

        Applies to closed wallets as well.
        """
        return await LedgerService.credit(
            session,
            user_id=user_id,
            amount=amount,
            asset=Asset.CREDITS,
            idempotency_key=action_reversal_key(request_id),
            entry_type=LedgerEntryType.ACTION_REVERSAL,
            source="COMPENSATION",
            welcome_credits=0,
            now_utc=now_utc,
            request_id=request_id,
            metadata={"reason": reason},
            allow_closed=True,
        )

    @staticmethod
    async def exchange_diamonds(
        session: AsyncSession,
        *,
        user_id: UUID,
        diamonds: int,
        rate: int,
        idempotency_key: str,
        welcome_credits: int,
        now_utc: datetime,
    ) -> ExchangeResult:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if diamonds <= 0 or diamonds % rate != 0:
            raise InvalidExchangeQuantityError(f"diamonds must be a positive multiple of {rate}")

        credits_received = diamonds // rate
        debit_key = f"exchange:{user_id}:{idempotency_key}:diamonds"
        existing_entry = await LedgerRepo.get_by_idempotency_key(session, debit_key)
        if existing_entry is not None:
            current = await WalletsRepo.get_balances(session, user_id) or (0, 0)
            return ExchangeResult(
                diamonds_spent=existing_entry.amount,
                credits_received=existing_entry.amount // rate,
                idempotent_replay=True,
                credits=current[0],
                diamonds=current[1],
            )

        await LedgerService.ensure_wallet(
            session,
            user_id=user_id,
            welcome_credits=welcome_credits,
            now_utc=now_utc,
        )
        balances = await WalletsRepo.exchange_diamonds_if_sufficient(
            session,
            user_id=user_id,
            diamonds=diamonds,
            credits=credits_received,
            now_utc=now_utc,
        )
        if balances is None:
            if await WalletsRepo.is_closed(session, user_id):
                raise WalletClosedError(str(user_id))
            raise InsufficientDiamondsError(str(user_id))

        credits_after, diamonds_after = balances
        metadata: dict[str, object] = {"rate": rate}
        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                entry_type=LedgerEntryType.DIAMOND_EXCHANGE.value,
                asset=Asset.DIAMONDS.value,
                direction="DEBIT",
                amount=diamonds,
                balance_after=diamonds_after,
                source="EXCHANGE",
                idempotency_key=debit_key,
                metadata_=metadata,
                created_at=now_utc,
            ),
        )
        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                entry_type=LedgerEntryType.DIAMOND_EXCHANGE.value,
                asset=Asset.CREDITS.value,
                direction="CREDIT",
                amount=credits_received,
                balance_after=credits_after,
                source="EXCHANGE",
                idempotency_key=f"exchange:{user_id}:{idempotency_key}:credits",
                metadata_=metadata,
                created_at=now_utc,
            ),
        )
        logger.info(
            "diamonds_exchanged",
            user_id=str(user_id),
            diamonds_spent=diamonds,
            credits_received=credits_received,
        )
        return ExchangeResult(
            diamonds_spent=diamonds,
            credits_received=credits_received,
            idempotent_replay=False,
            credits=credits_after,
            diamonds=diamonds_after,
        )

    @staticmethod
    async def close_wallet(
        session: AsyncSession,
        *,
        user_id: UUID,
        now_utc: datetime,
    ) -> ClosureResult:
        wallet = await WalletsRepo.get_by_user_id_for_update(session, user_id)
        if wallet is None:
            raise WalletNotFoundError(str(user_id))
        if wallet.closed_at is not None:
            return ClosureResult(credits_removed=0, diamonds_removed=0, already_closed=True)

        removed = {Asset.CREDITS: wallet.credits, Asset.DIAMONDS: wallet.diamonds}
        wallet.credits = 0
        wallet.diamonds = 0
        wallet.closed_at = now_utc
        wallet.updated_at = now_utc
        wallet.version += 1

        for asset, amount in removed.items():
            if amount <= 0:
                continue
            await LedgerRepo.create(
                session,
                entry=LedgerEntry(
                    user_id=user_id,
                    entry_type=LedgerEntryType.ACCOUNT_CLOSURE.value,
                    asset=asset.value,
                    direction="DEBIT",
                    amount=amount,
                    balance_after=0,
                    source="ACCOUNT_DELETION",
                    idempotency_key=f"closure:{user_id}:{asset.value.lower()}",
                    metadata_={},
                    created_at=now_utc,
                ),
            )
        await session.flush()
        logger.info(
            "wallet_closed",
            user_id=str(user_id),
            credits_removed=removed[Asset.CREDITS],
            diamonds_removed=removed[Asset.DIAMONDS],
        )
        return ClosureResult(
            credits_removed=removed[Asset.CREDITS],
            diamonds_removed=removed[Asset.DIAMONDS],
            already_closed=False,
        )
