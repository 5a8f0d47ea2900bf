"""Transfer Service - peer-to-peer credit transfers.

Spending order is Genesis first, then Earned. Whatever pool the sender
draws from, the recipient is credited in the Earned pool only: Genesis
credits are burned on transfer and never reach a second holder as Genesis.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import RecipientNotFoundError, SelfTransferError
from src.db.engine import atomic, retry_on_conflict
from src.models.ledger import CreditType, LedgerEntryType, LedgerReference
from src.models.notification import NotificationType
from src.services.credit_service import CreditService
from src.services.notification_service import NotificationService
from src.utils.amount import require_positive_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a committed transfer."""

    sender_id: int
    recipient_id: int
    amount_transferred: Decimal
    genesis_burned: Decimal
    earned_spent: Decimal
    recipient_credited: Decimal
    recipient_name: str | None
    sender_balance_after: Decimal


class TransferService:
    """Service for credit transfers between members."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self.credits = CreditService(db, self.notifier)

    @retry_on_conflict
    async def transfer(
        self,
        sender_id: int,
        recipient_id: int,
        amount: Decimal,
        message: str | None = None,
    ) -> TransferResult:
        """Transfer credits from sender to recipient.

        All ledger entries and both balance rows commit as one unit. The
        recipient notification is dispatched only after commit.

        Args:
            sender_id: Authenticated sender
            recipient_id: Target user
            amount: Credits to move (> 0)
            message: Optional note; used as entry description and notification body

        Returns:
            TransferResult

        Raises:
            InvalidAmountError: amount <= 0
            SelfTransferError: sender_id == recipient_id
            RecipientNotFoundError: Recipient is not a known user
            InsufficientBalanceError: Sender holds less than amount
        """
        amount = require_positive_amount(amount)
        if sender_id == recipient_id:
            raise SelfTransferError()

        logger.info(f"Transfer request: sender={sender_id} recipient={recipient_id} amount={amount}")

        async with atomic(self.db):
            recipient = await self.credits.get_user(recipient_id)
            if recipient is None or not recipient.is_active:
                raise RecipientNotFoundError(recipient_id)
            sender = await self.credits.get_user(sender_id)
            sender_name = (sender.display_name if sender else None) or "Someone"
            recipient_label = recipient.display_name or "user"

            accounts = await self.credits.lock_accounts(sender_id, recipient_id)
            sender_account = accounts[sender_id]
            recipient_account = accounts[recipient_id]

            logger.info(
                f"Sender balances: genesis={sender_account.genesis_balance} "
                f"earned={sender_account.earned_balance} requested={amount}"
            )

            # Sender: Genesis portion is burned, Earned portion spent
            debit = self.credits.debit_genesis_first(
                sender_account,
                amount,
                LedgerEntryType.TRANSFER_OUT,
                description=message or f"Sent {amount.normalize():f} LC to {recipient_label}",
                reference=LedgerReference.transfer(recipient_id),
            )
            logger.info(
                f"Credit allocation: genesis_to_spend={debit.allocation.genesis} "
                f"earned_to_spend={debit.allocation.earned}"
            )

            # Recipient: always Earned, full amount
            self.credits.append_entry(
                recipient_account,
                LedgerEntryType.TRANSFER_IN,
                CreditType.EARNED,
                earned_amount=amount,
                description=message or f"Received {amount.normalize():f} LC from {sender_name}",
                reference=LedgerReference.transfer(sender_id),
            )

            notification = self.notifier.queue(
                recipient_id,
                NotificationType.CREDITS_RECEIVED,
                title=f"You received {amount.normalize():f} LC!",
                body=message or f"{sender_name} sent you {amount.normalize():f} LC Credit.",
                data={
                    "amount": str(amount),
                    "sender_id": sender_id,
                    "genesis_burned": str(debit.allocation.genesis),
                },
            )

        logger.info(
            f"Transfer complete: sender={sender_id} recipient={recipient_id} amount={amount} "
            f"genesis_burned={debit.allocation.genesis} earned_spent={debit.allocation.earned}"
        )
        self.notifier.dispatch([notification])

        return TransferResult(
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount_transferred=amount,
            genesis_burned=debit.allocation.genesis,
            earned_spent=debit.allocation.earned,
            recipient_credited=amount,
            recipient_name=recipient.display_name,
            sender_balance_after=debit.balance_after,
        )
