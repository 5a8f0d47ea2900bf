"""Contribution Service - claims, verification and rejection.

A claim is created pending by its claimant and resolved exactly once by an
authorized verifier. Verification mints Earned credits after applying the
claimant's reputation multiplier and the rolling daily/weekly caps; the
ledger entry, the claim update and the limit accumulators commit together.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.exceptions import (
    AlreadyResolvedError,
    AuthorizationError,
    LimitReachedError,
    NotFoundError,
    ValidationError,
)
from src.db.engine import atomic, retry_on_conflict
from src.models.contribution import ContributionStatus, ContributionType, CreditContribution
from src.models.ledger import CreditType, LedgerEntryType, LedgerReference, ReferenceType
from src.models.notification import NotificationType
from src.models.project import Event, Project
from src.models.user import User
from src.services import rate_limit_service as limits
from src.services.credit_service import CreditService
from src.services.notification_service import NotificationService
from src.utils.amount import require_positive_amount
from src.utils.helpers import utcnow
from src.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

# Reference kinds a contribution claim may point at
CLAIM_REFERENCE_TYPES = frozenset({ReferenceType.PROJECT, ReferenceType.EVENT})


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verify() / reject()."""

    contribution_id: int
    status: ContributionStatus
    amount_awarded: Decimal | None = None
    was_capped: bool | None = None


class ContributionService:
    """Service for contribution claims."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self.credits = CreditService(db, self.notifier)
        self.rate_limits = limits.RateLimitService(db)

    # =========================================================================
    # Claims
    # =========================================================================

    async def create(
        self,
        claimant_id: int,
        contribution_type: ContributionType,
        amount_requested: Decimal,
        description: str | None = None,
        reference: LedgerReference | None = None,
    ) -> CreditContribution:
        """Submit a contribution claim for verification.

        Raises:
            InvalidAmountError: amount_requested <= 0
            ValidationError: Reference is not a project or event
        """
        amount = require_positive_amount(amount_requested)
        if reference is not None and reference.type not in CLAIM_REFERENCE_TYPES:
            raise ValidationError(
                "Contributions can only reference a project or an event",
                {"reference_type": reference.type.value},
            )

        contribution = CreditContribution(
            user_id=claimant_id,
            contribution_type=contribution_type,
            description=description,
            reference_type=reference.type if reference else None,
            reference_id=reference.id if reference else None,
            amount_requested=amount,
        )
        async with atomic(self.db):
            self.db.add(contribution)
        logger.info(
            f"Contribution submitted: id={contribution.id} user={claimant_id} "
            f"type={contribution_type.value} amount={amount}"
        )
        return contribution

    async def list_for_user(
        self, user_id: int, params: PaginationParams
    ) -> tuple[list[CreditContribution], int]:
        """List a claimant's own contributions, newest first."""
        query = (
            select(CreditContribution)
            .where(CreditContribution.user_id == user_id)
            .order_by(CreditContribution.created_at.desc(), CreditContribution.id.desc())
        )
        return await paginate_query(self.db, query, params)

    async def list_pending(
        self,
        verifier: User,
        params: PaginationParams,
        reference: LedgerReference | None = None,
    ) -> tuple[list[CreditContribution], int]:
        """List pending claims the verifier may resolve.

        Admins may list everything; other users must name a project/event
        they created, and do not see their own claims.

        Raises:
            AuthorizationError: Non-admin without an owned reference
        """
        if not verifier.is_admin:
            if reference is None or not await self._owns_reference(verifier.id, reference):
                raise AuthorizationError("You don't have permission to view these contributions")

        query = select(CreditContribution).where(
            CreditContribution.status == ContributionStatus.PENDING
        )
        if reference is not None:
            query = query.where(
                CreditContribution.reference_type == reference.type,
                CreditContribution.reference_id == reference.id,
            )
        if not verifier.is_admin:
            query = query.where(CreditContribution.user_id != verifier.id)
        query = query.order_by(CreditContribution.created_at.desc(), CreditContribution.id.desc())
        return await paginate_query(self.db, query, params)

    # =========================================================================
    # Resolution
    # =========================================================================

    async def reject(self, contribution_id: int, verifier_id: int) -> VerificationResult:
        """Reject a pending claim. No balance change.

        Raises:
            NotFoundError, AlreadyResolvedError, AuthorizationError
        """
        now = utcnow()
        async with atomic(self.db):
            contribution = await self._lock_pending(contribution_id)
            await self._authorize(verifier_id, contribution)

            contribution.status = ContributionStatus.REJECTED
            contribution.verified_by = verifier_id
            contribution.verified_at = now
            self.db.add(contribution)

            notification = self.notifier.queue(
                contribution.user_id,
                NotificationType.CONTRIBUTION_REJECTED,
                title="Contribution Not Verified",
                body=f"Your contribution claim for "
                f"{contribution.amount_requested.normalize():f} LC was not verified.",
                data={"contribution_id": contribution_id, "status": ContributionStatus.REJECTED.value},
            )

        logger.info(f"Contribution rejected: id={contribution_id} verifier={verifier_id}")
        self.notifier.dispatch([notification])
        return VerificationResult(contribution_id=contribution_id, status=ContributionStatus.REJECTED)

    @retry_on_conflict
    async def verify(
        self,
        contribution_id: int,
        verifier_id: int,
        amount_override: Decimal | None = None,
        now: datetime | None = None,
    ) -> VerificationResult:
        """Verify a pending claim and mint Earned credits.

        Args:
            contribution_id: Claim to verify
            verifier_id: Authenticated verifier
            amount_override: Amount to award instead of amount_requested
            now: Clock override (defaults to current UTC time)

        Returns:
            VerificationResult with the awarded amount and whether a cap bound it

        Raises:
            NotFoundError: Unknown contribution
            AlreadyResolvedError: Claim is not pending
            AuthorizationError: Verifier may not resolve this claim
            InvalidAmountError: amount_override <= 0
            LimitReachedError: Daily or weekly cap exhausted (nothing written)
        """
        now = now or utcnow()
        override = require_positive_amount(amount_override) if amount_override is not None else None

        async with atomic(self.db):
            contribution = await self._lock_pending(contribution_id)
            await self._authorize(verifier_id, contribution)

            amount_to_award = override if override is not None else contribution.amount_requested

            limit_row = await self.rate_limits.lock_limits(contribution.user_id)
            allowance = limits.build_allowance(limit_row, now)
            decision = limits.compute_award(amount_to_award, allowance)

            logger.info(
                f"Rate limit check: requested={amount_to_award} adjusted={decision.adjusted} "
                f"capped={decision.capped} daily_remaining={allowance.daily_remaining} "
                f"weekly_remaining={allowance.weekly_remaining} multiplier={allowance.multiplier}"
            )
            if decision.capped <= 0:
                raise LimitReachedError(
                    daily_remaining=max(allowance.daily_remaining, Decimal("0")),
                    weekly_remaining=max(allowance.weekly_remaining, Decimal("0")),
                )

            account = await self.credits.lock_account(contribution.user_id)
            self.credits.append_entry(
                account,
                LedgerEntryType.EARN,
                CreditType.EARNED,
                earned_amount=decision.capped,
                description="Verified contribution: "
                f"{contribution.description or contribution.contribution_type.value}",
                reference=LedgerReference.parse(
                    contribution.reference_type, contribution.reference_id
                ),
                verified_by=verifier_id,
                verification_type=contribution.contribution_type.value,
            )

            contribution.status = ContributionStatus.VERIFIED
            contribution.amount_earned = decision.capped
            contribution.verified_by = verifier_id
            contribution.verified_at = now
            self.db.add(contribution)

            limits.apply_award(limit_row, allowance, decision.capped, now)
            self.db.add(limit_row)

            notification = self.notifier.queue(
                contribution.user_id,
                NotificationType.CONTRIBUTION_VERIFIED,
                title=f"You earned {decision.capped.normalize():f} LC!",
                body="Your contribution was verified. "
                f"You earned {decision.capped.normalize():f} Earned Credit.",
                data={
                    "contribution_id": contribution_id,
                    "amount": str(decision.capped),
                    "status": ContributionStatus.VERIFIED.value,
                },
            )

        logger.info(
            f"Contribution verified: id={contribution_id} user={contribution.user_id} "
            f"awarded={decision.capped} was_capped={decision.was_capped}"
        )
        self.notifier.dispatch([notification])
        return VerificationResult(
            contribution_id=contribution_id,
            status=ContributionStatus.VERIFIED,
            amount_awarded=decision.capped,
            was_capped=decision.was_capped,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _lock_pending(self, contribution_id: int) -> CreditContribution:
        """Lock a claim row and ensure it is still pending."""
        result = await self.db.execute(
            select(CreditContribution)
            .where(CreditContribution.id == contribution_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        contribution = result.scalar_one_or_none()
        if contribution is None:
            raise NotFoundError("Contribution not found", {"contribution_id": contribution_id})
        if contribution.status != ContributionStatus.PENDING:
            raise AlreadyResolvedError(contribution.status.value)
        return contribution

    async def _authorize(self, verifier_id: int, contribution: CreditContribution) -> None:
        """Admin, then project creator, then event creator.

        Only an admin may resolve their own claim.

        Raises:
            AuthorizationError: No rule grants permission
        """
        verifier = await self.db.get(User, verifier_id)
        if verifier is not None and verifier.is_admin:
            logger.info(f"Admin permission granted: verifier={verifier_id}")
            return

        if verifier_id == contribution.user_id:
            raise AuthorizationError("You cannot verify your own contribution")

        reference = None
        if contribution.reference_type is not None and contribution.reference_id:
            reference = LedgerReference(contribution.reference_type, contribution.reference_id)
        if reference is not None and await self._owns_reference(verifier_id, reference):
            logger.info(f"{reference.type.value.capitalize()} owner permission granted: verifier={verifier_id}")
            return

        raise AuthorizationError("You don't have permission to verify this contribution")

    async def _owns_reference(self, user_id: int, reference: LedgerReference) -> bool:
        """Whether user_id created the referenced project or event."""
        model = {ReferenceType.PROJECT: Project, ReferenceType.EVENT: Event}.get(reference.type)
        if model is None:
            return False
        try:
            object_id = int(reference.id)
        except ValueError:
            return False
        target = await self.db.get(model, object_id)
        return target is not None and target.creator_id == user_id
