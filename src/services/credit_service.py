"""Credit Service - Balance store and ledger commit.

Every balance change goes through append_entry(), which mutates a row that
was locked with lock_account() and adds the ledger entry describing the
change. Callers wrap the whole use case in ``atomic(db)`` so the entries and
the balance rows commit together or not at all.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.config import get_settings
from src.core.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    RecipientNotFoundError,
    SelfTransferError,
    ValidationError,
)
from src.db.engine import atomic, retry_on_conflict
from src.models.credit import UserCredits
from src.models.ledger import (
    CreditLedger,
    CreditType,
    LedgerEntryType,
    LedgerReference,
    ReferenceType,
)
from src.models.notification import Notification, NotificationType
from src.models.user import User
from src.services.notification_service import NotificationService
from src.utils.amount import require_positive_amount
from src.utils.helpers import utcnow
from src.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
WHOLE_CREDIT = Decimal("1")

# References a spend may point at
SPEND_REFERENCE_TYPES = frozenset({ReferenceType.STREAM_TIP, ReferenceType.ORDER})


@dataclass(frozen=True)
class Balances:
    """Point-in-time view of an account's pools."""

    genesis: Decimal
    earned: Decimal

    @property
    def total(self) -> Decimal:
        return self.genesis + self.earned


@dataclass(frozen=True)
class DebitAllocation:
    """How a debit is split across the two pools (Genesis first)."""

    genesis: Decimal
    earned: Decimal

    @property
    def total(self) -> Decimal:
        return self.genesis + self.earned


def allocate_debit(genesis_balance: Decimal, earned_balance: Decimal, amount: Decimal) -> DebitAllocation:
    """Split ``amount`` Genesis-first across the pools.

    Raises:
        InsufficientBalanceError: Pools together hold less than ``amount``
    """
    total = genesis_balance + earned_balance
    if total < amount:
        raise InsufficientBalanceError(
            required=amount,
            available=total,
            message=f"Insufficient balance. You have {total.normalize():f} LC "
            f"but need {amount.normalize():f} LC.",
        )
    genesis_part = min(genesis_balance, amount)
    return DebitAllocation(genesis=genesis_part, earned=amount - genesis_part)


@dataclass
class SpendResult:
    """Outcome of a Genesis-first debit, plus the payee side of a spend."""

    allocation: DebitAllocation
    balance_after: Decimal
    entries: list[CreditLedger] = field(default_factory=list)
    payee_id: int | None = None
    payee_credited: Decimal = ZERO
    platform_fee: Decimal = ZERO


@dataclass(frozen=True)
class PayoutResult:
    """Earned credits converted towards a payout."""

    entry: CreditLedger
    amount: Decimal
    earned_balance_after: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class ReplayResult:
    """Balances rebuilt from the ledger next to the stored row."""

    user_id: int
    entry_count: int
    replayed: Balances
    stored: Balances

    @property
    def matches(self) -> bool:
        return self.replayed == self.stored


class CreditService:
    """Service for balances and the append-only ledger."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        self.db = db
        self.notifier = notifier or NotificationService(db)

    # =========================================================================
    # Balance Store
    # =========================================================================

    async def get_account(self, user_id: int) -> UserCredits | None:
        """Read an account row without locking."""
        result = await self.db.execute(
            select(UserCredits)
            .where(UserCredits.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_balances(self, user_id: int) -> Balances:
        """Return {genesis, earned, total}; zeros for accounts with no row."""
        account = await self.get_account(user_id)
        if account is None:
            return Balances(genesis=ZERO, earned=ZERO)
        return Balances(genesis=account.genesis_balance, earned=account.earned_balance)

    async def lock_account(self, user_id: int) -> UserCredits:
        """Lock an account row for update, creating an empty one if missing.

        populate_existing makes sure values already loaded in this session
        are replaced by the locked row's current values.
        """
        result = await self.db.execute(
            select(UserCredits)
            .where(UserCredits.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if account is None:
            account = UserCredits(user_id=user_id)
            self.db.add(account)
            await self.db.flush()
        return account

    async def lock_accounts(self, *user_ids: int) -> dict[int, UserCredits]:
        """Lock several accounts in ascending id order (deadlock-free)."""
        return {uid: await self.lock_account(uid) for uid in sorted(set(user_ids))}

    async def get_user(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    # =========================================================================
    # Ledger commit
    # =========================================================================

    def append_entry(
        self,
        account: UserCredits,
        entry_type: LedgerEntryType,
        credit_type: CreditType,
        genesis_amount: Decimal = ZERO,
        earned_amount: Decimal = ZERO,
        description: str | None = None,
        reference: LedgerReference | None = None,
        verified_by: int | None = None,
        verification_type: str | None = None,
    ) -> CreditLedger:
        """Apply one signed change to a locked account and record it.

        Args:
            account: Row obtained from lock_account() in this transaction
            entry_type: Ledger entry type
            credit_type: Pool the entry is attributed to
            genesis_amount: Signed change of the Genesis pool
            earned_amount: Signed change of the Earned pool

        Returns:
            CreditLedger: The (pending) ledger entry

        Raises:
            InsufficientBalanceError: A pool would go negative
        """
        new_genesis = account.genesis_balance + genesis_amount
        new_earned = account.earned_balance + earned_amount
        if new_genesis < 0 or new_earned < 0:
            raise InsufficientBalanceError(
                required=-(genesis_amount + earned_amount),
                available=account.balance,
            )

        amount = genesis_amount + earned_amount
        account.genesis_balance = new_genesis
        account.earned_balance = new_earned
        account.balance = new_genesis + new_earned

        if genesis_amount > 0:
            account.genesis_lifetime_minted += genesis_amount
        elif genesis_amount < 0:
            account.genesis_burned += -genesis_amount
        if earned_amount > 0:
            account.lifetime_earned += earned_amount
        if amount < 0:
            account.lifetime_spent += -amount
        account.updated_at = utcnow()
        self.db.add(account)

        entry = CreditLedger(
            user_id=account.user_id,
            amount=amount,
            balance_after=account.balance,
            type=entry_type,
            credit_type=credit_type,
            genesis_amount=genesis_amount,
            earned_amount=earned_amount,
            description=description,
            reference_type=reference.type if reference else None,
            reference_id=reference.id if reference else None,
            verified_by=verified_by,
            verification_type=verification_type,
        )
        self.db.add(entry)
        return entry

    def debit_genesis_first(
        self,
        account: UserCredits,
        amount: Decimal,
        entry_type: LedgerEntryType,
        description: str | None = None,
        reference: LedgerReference | None = None,
    ) -> SpendResult:
        """Debit a locked account Genesis-first, one entry per pool touched.

        The Genesis portion is burned: nothing re-enters a Genesis pool.
        """
        allocation = allocate_debit(account.genesis_balance, account.earned_balance, amount)
        result = SpendResult(allocation=allocation, balance_after=account.balance)
        if allocation.genesis > 0:
            result.entries.append(
                self.append_entry(
                    account,
                    entry_type,
                    CreditType.GENESIS,
                    genesis_amount=-allocation.genesis,
                    description=description,
                    reference=reference,
                )
            )
        if allocation.earned > 0:
            result.entries.append(
                self.append_entry(
                    account,
                    entry_type,
                    CreditType.EARNED,
                    earned_amount=-allocation.earned,
                    description=description,
                    reference=reference,
                )
            )
        result.balance_after = account.balance
        return result

    # =========================================================================
    # Issuance / awards / spending
    # =========================================================================

    @retry_on_conflict
    async def grant_genesis(
        self,
        user_id: int,
        amount: Decimal,
        description: str | None = None,
        reference: LedgerReference | None = None,
    ) -> CreditLedger:
        """Mint Genesis credits (purchase or platform grant).

        Raises:
            InvalidAmountError: amount <= 0
            NotFoundError: User does not exist
        """
        amount = require_positive_amount(amount)
        async with atomic(self.db):
            if await self.get_user(user_id) is None:
                raise NotFoundError("User not found", {"user_id": user_id})
            account = await self.lock_account(user_id)
            entry = self.append_entry(
                account,
                LedgerEntryType.PURCHASE,
                CreditType.GENESIS,
                genesis_amount=amount,
                description=description or f"Received {amount.normalize():f} Genesis LC",
                reference=reference,
            )
        logger.info(f"Genesis granted: user={user_id} amount={amount} ledger_id={entry.id}")
        return entry

    @retry_on_conflict
    async def award_earned(
        self,
        user_id: int,
        amount: Decimal,
        description: str,
        reference: LedgerReference | None = None,
    ) -> CreditLedger:
        """Mint Earned credits directly (admin award, not rate limited).

        Raises:
            InvalidAmountError: amount <= 0
            ValidationError: Missing description
            NotFoundError: User does not exist
        """
        amount = require_positive_amount(amount)
        if not description or not description.strip():
            raise ValidationError("Description required")

        notifications: list[Notification] = []
        async with atomic(self.db):
            if await self.get_user(user_id) is None:
                raise NotFoundError("User not found", {"user_id": user_id})
            account = await self.lock_account(user_id)
            entry = self.append_entry(
                account,
                LedgerEntryType.EARN,
                CreditType.EARNED,
                earned_amount=amount,
                description=description,
                reference=reference,
            )
            notifications.append(
                self.notifier.queue(
                    user_id,
                    NotificationType.CREDITS_AWARDED,
                    title=f"You earned {amount.normalize():f} LC Credits!",
                    body=description,
                    data={
                        "amount": str(amount),
                        "reference_type": reference.type.value if reference else None,
                        "reference_id": reference.id if reference else None,
                    },
                )
            )
        logger.info(f"Credits awarded: user={user_id} amount={amount} balance={account.balance}")
        self.notifier.dispatch(notifications)
        return entry

    @retry_on_conflict
    async def spend(
        self,
        user_id: int,
        amount: Decimal,
        reference: LedgerReference,
        payee_id: int,
        description: str | None = None,
    ) -> SpendResult:
        """Pay a stream host (tip) or a store seller (order) with credits.

        The payer is debited Genesis-first, so any Genesis is burned. The payee
        is credited in the Earned pool: a tip in full as an ``earn`` entry, an
        order as a ``sale`` entry for the seller's share rounded down to whole
        LC. The remainder of an order is the platform fee and is not credited
        to anyone.

        Raises:
            InvalidAmountError: amount <= 0
            ValidationError: Reference is not a spendable kind
            SelfTransferError: payee is the payer
            RecipientNotFoundError: payee is unknown or disabled
            InsufficientBalanceError: Not enough credits
        """
        amount = require_positive_amount(amount)
        if reference.type not in SPEND_REFERENCE_TYPES:
            raise ValidationError(
                f"Cannot spend credits on {reference.type.value}",
                {"allowed": sorted(t.value for t in SPEND_REFERENCE_TYPES)},
            )
        if payee_id == user_id:
            raise SelfTransferError("Cannot pay yourself")

        is_tip = reference.type == ReferenceType.STREAM_TIP
        if is_tip:
            payee_amount = amount
        else:
            share = get_settings().store_seller_share
            payee_amount = (amount * share).quantize(WHOLE_CREDIT, rounding=ROUND_FLOOR)

        notifications: list[Notification] = []
        async with atomic(self.db):
            payee = await self.get_user(payee_id)
            if payee is None or not payee.is_active:
                raise RecipientNotFoundError(payee_id, message="Payee not found")

            accounts = await self.lock_accounts(user_id, payee_id)
            result = self.debit_genesis_first(
                accounts[user_id],
                amount,
                LedgerEntryType.SPEND,
                description=description
                or (f"Tip to stream {reference.id}" if is_tip else f"Store order {reference.id}"),
                reference=reference,
            )
            result.payee_id = payee_id
            result.payee_credited = payee_amount
            result.platform_fee = amount - payee_amount

            if payee_amount > 0:
                self.append_entry(
                    accounts[payee_id],
                    LedgerEntryType.EARN if is_tip else LedgerEntryType.SALE,
                    CreditType.EARNED,
                    earned_amount=payee_amount,
                    description="Tip received on stream" if is_tip else f"Sale: order {reference.id}",
                    reference=reference,
                )
                if is_tip:
                    notifications.append(
                        self.notifier.queue(
                            payee_id,
                            NotificationType.TIP_RECEIVED,
                            title="You received a tip!",
                            body=f"Someone tipped you {payee_amount.normalize():f} LC on your stream",
                            data={"stream_id": reference.id, "amount": str(payee_amount)},
                        )
                    )
                else:
                    notifications.append(
                        self.notifier.queue(
                            payee_id,
                            NotificationType.ITEM_SOLD,
                            title="You made a sale!",
                            body=f"You received {payee_amount.normalize():f} LC "
                            f"for order {reference.id}.",
                            data={
                                "order_id": reference.id,
                                "amount": str(payee_amount),
                                "platform_fee": str(result.platform_fee),
                            },
                        )
                    )
        logger.info(
            f"Credits spent: user={user_id} payee={payee_id} amount={amount} "
            f"genesis_burned={result.allocation.genesis} earned_spent={result.allocation.earned} "
            f"payee_credited={payee_amount} platform_fee={result.platform_fee}"
        )
        self.notifier.dispatch(notifications)
        return result

    @retry_on_conflict
    async def convert_to_payout(
        self,
        user_id: int,
        amount: Decimal,
        reference: LedgerReference | None = None,
        description: str | None = None,
    ) -> PayoutResult:
        """Withdraw Earned credits towards a payout.

        Only the Earned pool can be withdrawn; Genesis credits are never
        converted, however large the Genesis balance.

        Raises:
            InvalidAmountError: amount <= 0
            ValidationError: Reference is not a project
            InsufficientBalanceError: Earned pool holds less than amount
        """
        amount = require_positive_amount(amount)
        if reference is not None and reference.type != ReferenceType.PROJECT:
            raise ValidationError("Payouts can only reference a project")

        async with atomic(self.db):
            account = await self.lock_account(user_id)
            earned = account.earned_balance
            if earned < amount:
                raise InsufficientBalanceError(
                    required=amount,
                    available=earned,
                    message=f"Insufficient Earned Credit. You have {earned.normalize():f} Earned LC, "
                    f"need {amount.normalize():f} LC. Only Earned Credit can be withdrawn.",
                )
            entry = self.append_entry(
                account,
                LedgerEntryType.PAYOUT_CONVERSION,
                CreditType.EARNED,
                earned_amount=-amount,
                description=description or f"Converted {amount.normalize():f} Earned LC to payout",
                reference=reference,
            )
        logger.info(
            f"Payout conversion: user={user_id} amount={amount} "
            f"earned_after={account.earned_balance} ledger_id={entry.id}"
        )
        return PayoutResult(
            entry=entry,
            amount=amount,
            earned_balance_after=account.earned_balance,
            balance_after=account.balance,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_ledger(
        self,
        user_id: int,
        params: PaginationParams,
        credit_type: CreditType | None = None,
        entry_type: LedgerEntryType | None = None,
    ) -> tuple[list[CreditLedger], int]:
        """List a user's ledger entries, newest first."""
        query = select(CreditLedger).where(CreditLedger.user_id == user_id)
        if credit_type is not None:
            query = query.where(CreditLedger.credit_type == credit_type)
        if entry_type is not None:
            query = query.where(CreditLedger.type == entry_type)
        query = query.order_by(CreditLedger.created_at.desc(), CreditLedger.id.desc())
        return await paginate_query(self.db, query, params)

    async def replay(self, user_id: int) -> ReplayResult:
        """Rebuild pools from the ledger in append order and compare."""
        result = await self.db.execute(
            select(CreditLedger)
            .where(CreditLedger.user_id == user_id)
            .order_by(CreditLedger.created_at, CreditLedger.id)
        )
        entries = result.scalars().all()

        genesis = ZERO
        earned = ZERO
        for entry in entries:
            genesis += entry.genesis_amount
            earned += entry.earned_amount

        replay = ReplayResult(
            user_id=user_id,
            entry_count=len(entries),
            replayed=Balances(genesis=genesis, earned=earned),
            stored=await self.get_balances(user_id),
        )
        if not replay.matches:
            logger.error(
                f"Ledger drift for user {user_id}: replayed={replay.replayed} stored={replay.stored}"
            )
        return replay
