"""
Tax calculation.

Exclusive mode adds tax on top of a subtotal. Inclusive mode extracts tax from
a total that already contains it, and is the only correct way to back-compute
an invoice whose total is fixed:

    tax = total * rate / (100 + rate)
    subtotal = total - tax

All enabled rules matching country, region, currency and state are summed;
mutual exclusivity of CGST/SGST and IGST is a configuration convention and is
not enforced here.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

import structlog

from resumeforge.platform.billing.enums import TargetRegion, TaxType
from resumeforge.platform.billing.money_utils import round_amount, to_decimal
from resumeforge.platform.billing.tax.models import (
    TaxBreakdownItem,
    TaxComputation,
    TaxMode,
    TaxRule,
)

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


def exclusive_tax(subtotal: Decimal, rate: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(tax, total)`` for tax added on top of ``subtotal``."""
    tax = subtotal * rate / HUNDRED
    return tax, subtotal + tax


def inclusive_tax(total: Decimal, rate: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(subtotal, tax)`` for tax embedded in ``total``."""
    tax = total * rate / (HUNDRED + rate)
    return total - tax, tax


def _state_matches(rule: TaxRule, state: str | None) -> bool:
    if not rule.state_applicable:
        return True
    if not state:
        return False
    return rule.state_applicable.strip().casefold() == state.strip().casefold()


def select_applicable_rules(
    rules: Iterable[TaxRule],
    *,
    country: str,
    state: str | None,
    region: TargetRegion | str,
    currency: str,
    tax_types: Sequence[TaxType | str] | None = None,
) -> list[TaxRule]:
    """
    Filter tax rules down to the ones that apply to a sale.

    A rule applies when it is enabled and matches the country, target region
    and currency; state-scoped rules (CGST/SGST) additionally require the
    buyer's state to equal ``state_applicable``.

    Args:
        rules: Candidate rules
        country: Buyer country code
        state: Buyer state, if known
        region: Target region of the price
        currency: Currency of the amount
        tax_types: Optional whitelist of tax types

    Returns:
        Matching rules ordered by id then name
    """
    region_value = TargetRegion(region).value
    allowed_types = {TaxType(t) for t in tax_types} if tax_types else None
    selected = [
        rule
        for rule in rules
        if rule.enabled
        and rule.country.upper() == country.upper()
        and rule.apply_to_region.value == region_value
        and rule.apply_currency.upper() == currency.upper()
        and _state_matches(rule, state)
        and (allowed_types is None or rule.tax_type in allowed_types)
    ]
    return sorted(selected, key=lambda r: (r.id if r.id is not None else 0, r.name))


def _breakdown(rules: Sequence[TaxRule], rate: Decimal, tax: Decimal) -> list[TaxBreakdownItem]:
    """Split ``tax`` across rules in proportion to their percentage."""
    items: list[TaxBreakdownItem] = []
    allocated = Decimal("0")
    for index, rule in enumerate(rules):
        if index == len(rules) - 1:
            share = tax - allocated
        else:
            share = round_amount(tax * rule.percentage / rate) if rate else Decimal("0")
            allocated += share
        items.append(
            TaxBreakdownItem(
                name=rule.name,
                type=rule.tax_type.value,
                percentage=rule.percentage,
                amount=share,
            )
        )
    return items


def _tax_type_label(rules: Sequence[TaxRule]) -> str:
    if not rules:
        return TaxType.NONE.value
    return "+".join(dict.fromkeys(rule.tax_type.value for rule in rules))


def compute_invoice_tax(
    amount: Decimal | float | str,
    *,
    country: str,
    state: str | None,
    region: TargetRegion | str,
    currency: str,
    rules: Iterable[TaxRule],
    mode: TaxMode = TaxMode.EXCLUSIVE,
    tax_types: Sequence[TaxType | str] | None = None,
) -> TaxComputation:
    """
    Compute subtotal, tax and total for an invoice amount.

    In exclusive mode ``amount`` is the subtotal; in inclusive mode it is the
    fixed total, which is preserved exactly. No matching rule is a valid
    zero-tax outcome.

    Args:
        amount: Subtotal (exclusive) or total (inclusive)
        country: Buyer country code
        state: Buyer state
        region: Target region
        currency: Currency of ``amount``
        rules: Configured tax rules
        mode: Exclusive or inclusive calculation
        tax_types: Optional whitelist of tax types

    Returns:
        Rounded computation with per-rule breakdown
    """
    value = to_decimal(amount)
    applicable = select_applicable_rules(
        rules,
        country=country,
        state=state,
        region=region,
        currency=currency,
        tax_types=tax_types,
    )
    rate = sum((rule.percentage for rule in applicable), Decimal("0"))

    if not applicable:
        logger.debug(
            "No tax rules matched",
            country=country,
            state=state,
            region=str(region),
            currency=currency,
        )

    if mode is TaxMode.INCLUSIVE:
        _, raw_tax = inclusive_tax(value, rate)
        tax = round_amount(raw_tax)
        total = value
        subtotal = total - tax
    else:
        raw_tax, _ = exclusive_tax(value, rate)
        tax = round_amount(raw_tax)
        subtotal = value
        total = subtotal + tax

    return TaxComputation(
        mode=mode,
        tax_type=_tax_type_label(applicable),
        tax_percentage=rate,
        tax_amount=tax,
        subtotal=subtotal,
        total=total,
        tax_breakdown=_breakdown(applicable, rate, tax),
    )
