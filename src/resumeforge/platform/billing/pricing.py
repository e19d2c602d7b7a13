"""
Region and plan price lookups.

A user's target region comes from the billing country (INDIA for the
configured Indian country code, GLOBAL otherwise) and selects both the plan
price row and the expected transaction currency.
"""

from decimal import Decimal

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.enums import TargetRegion
from resumeforge.platform.billing.models import PlanPricingTable, UserBillingDetailsTable
from resumeforge.platform.settings import settings


def region_for_country(country: str | None) -> TargetRegion:
    if country and country.strip().upper() == settings.billing.india_country_code:
        return TargetRegion.INDIA
    return TargetRegion.GLOBAL


def currency_for_region(region: TargetRegion | str) -> str:
    return settings.currency_for_region(TargetRegion(region).value)


async def get_billing_details(db: AsyncSession, user_id: int) -> UserBillingDetailsTable | None:
    result = await db.execute(
        select(UserBillingDetailsTable).where(UserBillingDetailsTable.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_user_region(db: AsyncSession, user_id: int) -> TargetRegion:
    """Target region of a user; users without billing details are GLOBAL."""
    details = await get_billing_details(db, user_id)
    return region_for_country(details.country if details else None)


async def get_plan_pricing(
    db: AsyncSession, plan_id: int, region: TargetRegion
) -> PlanPricingTable | None:
    """Price row for a plan in a region, falling back to the GLOBAL price."""
    regions = [region.value]
    if region is not TargetRegion.GLOBAL:
        regions.append(TargetRegion.GLOBAL.value)

    for target in regions:
        result = await db.execute(
            select(PlanPricingTable).where(
                and_(
                    PlanPricingTable.plan_id == plan_id,
                    PlanPricingTable.target_region == target,
                )
            )
        )
        pricing = result.scalar_one_or_none()
        if pricing is not None:
            return pricing
    return None


async def get_plan_price(db: AsyncSession, plan_id: int, region: TargetRegion) -> Decimal:
    """Plan price in a region; plans without pricing are free."""
    pricing = await get_plan_pricing(db, plan_id, region)
    return pricing.price if pricing is not None else Decimal("0")
