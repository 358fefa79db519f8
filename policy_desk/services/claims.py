"""Claims: the claim sub-state carried on each policy."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ClaimStatus, Policy
from ..schemas import parse_money
from .activity_log import Actor
from .policies import PolicyService

logger = logging.getLogger(__name__)


class ClaimError(Exception):
    """Base exception for claim operations."""
    pass


class ClaimValidationError(ClaimError):
    """Settlement input rejected before anything is read or written."""
    pass


class ClaimAlreadySettledError(ClaimError):
    pass


@dataclass(frozen=True)
class Settlement:
    amount: Decimal
    settlement_date: date


def validate_settlement(amount: str | int | Decimal | None, settlement_date: date | None) -> Settlement:
    """Check a settlement as typed. Needs a positive amount and a date."""
    if amount is None or not str(amount).strip():
        raise ClaimValidationError("Please enter the settled amount")
    try:
        parsed = parse_money(amount)
    except ValueError:
        raise ClaimValidationError("Settled amount must be a number")
    if parsed is None or parsed <= 0:
        raise ClaimValidationError("Settled amount must be greater than zero")
    if settlement_date is None:
        raise ClaimValidationError("Please select the settlement date")
    return Settlement(amount=parsed, settlement_date=settlement_date)


class ClaimService:
    def __init__(self, session: AsyncSession):
        self._policies = PolicyService(session)

    async def mark_claim_in_progress(self, policy_id: UUID, actor: Actor) -> Policy:
        policy = await self._policies.get_policy(policy_id, actor.owner_id)
        if policy.claim_status == ClaimStatus.SETTLED:
            raise ClaimAlreadySettledError(
                f"Claim on policy {policy.policy_number} is already settled"
            )
        return await self._policies.update_policy(
            policy.id,
            {"claim_status": ClaimStatus.IN_PROGRESS},
            actor,
        )

    async def settle_claim(
        self,
        policy_id: UUID,
        amount: str | int | Decimal | None,
        settlement_date: date | None,
        actor: Actor,
    ) -> Policy:
        """Record a settlement. Input is validated before the policy is loaded."""
        settlement = validate_settlement(amount, settlement_date)

        policy = await self._policies.get_policy(policy_id, actor.owner_id)
        if policy.has_claim_settled or policy.claim_status == ClaimStatus.SETTLED:
            raise ClaimAlreadySettledError(
                f"Claim on policy {policy.policy_number} is already settled"
            )

        policy = await self._policies.update_policy(
            policy.id,
            {
                "claim_status": ClaimStatus.SETTLED,
                "has_claim_settled": True,
                "settled_amount": settlement.amount,
                "settlement_date": settlement.settlement_date,
                "last_claim_amount": settlement.amount,
                "last_claim_date": settlement.settlement_date,
            },
            actor,
        )
        logger.info(f"Claim settled on policy {policy.id} for {settlement.amount}")
        return policy
