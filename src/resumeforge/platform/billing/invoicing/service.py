"""
Invoice service.

Invoices are issued from payment transactions. The total always equals the
amount charged; for INR payments GST is extracted from that total rather
than added to it.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.enums import InvoiceStatus, TargetRegion
from resumeforge.platform.billing.exceptions import InvoiceError, TransactionNotFoundError
from resumeforge.platform.billing.invoicing.models import invoice_status_for
from resumeforge.platform.billing.models import (
    InvoiceSettingsTable,
    InvoiceTable,
    PaymentTransactionTable,
    SubscriptionPlanTable,
    UserSubscriptionTable,
)
from resumeforge.platform.billing.money_utils import round_amount, to_decimal
from resumeforge.platform.billing.pricing import get_billing_details
from resumeforge.platform.billing.schemas import BatchResult
from resumeforge.platform.billing.tax.calculator import (
    compute_invoice_tax,
    inclusive_tax,
    select_applicable_rules,
)
from resumeforge.platform.billing.tax.models import TaxComputation, TaxMode
from resumeforge.platform.billing.tax.service import TaxService
from resumeforge.platform.logging import log_audit_event
from resumeforge.platform.settings import settings

logger = structlog.get_logger(__name__)

INR = "INR"


class InvoiceService:
    """Service for invoice generation and bulk INR invoice correction."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tax_service = TaxService(db)

    async def get_invoice_for_transaction(self, transaction_id: int) -> InvoiceTable | None:
        result = await self.db.execute(
            select(InvoiceTable).where(InvoiceTable.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def _get_invoice_settings(self) -> InvoiceSettingsTable:
        result = await self.db.execute(
            select(InvoiceSettingsTable).order_by(InvoiceSettingsTable.id).limit(1)
        )
        invoice_settings = result.scalar_one_or_none()
        if invoice_settings is None:
            invoice_settings = InvoiceSettingsTable(
                prefix=settings.billing.invoice_prefix,
                next_number=settings.billing.invoice_start_number,
                default_due_days=settings.billing.invoice_due_days,
                footer_text=settings.billing.invoice_footer,
            )
            self.db.add(invoice_settings)
            await self.db.flush()
        return invoice_settings

    async def _compute_tax(
        self, amount: Decimal, currency: str, country: str, state: str | None
    ) -> TaxComputation:
        if currency.upper() != INR:
            return compute_invoice_tax(
                amount,
                country=country,
                state=state,
                region=TargetRegion.GLOBAL,
                currency=currency,
                rules=[],
                mode=TaxMode.INCLUSIVE,
            )
        return compute_invoice_tax(
            amount,
            country=country,
            state=state,
            region=TargetRegion.INDIA,
            currency=INR,
            rules=await self.tax_service.get_rules(),
            mode=TaxMode.INCLUSIVE,
            tax_types=settings.billing.invoice_tax_types,
        )

    async def generate_invoice(self, transaction_id: int) -> InvoiceTable:
        """
        Issue the invoice for a payment transaction.

        Calling this again for the same transaction returns the existing
        invoice. The invoice number takes the next value of the
        ``invoice_settings`` sequence.

        Args:
            transaction_id: Paid transaction

        Returns:
            The invoice

        Raises:
            TransactionNotFoundError: Unknown transaction
        """
        existing = await self.get_invoice_for_transaction(transaction_id)
        if existing is not None:
            return existing

        transaction = await self.db.get(PaymentTransactionTable, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found", transaction_id=transaction_id
            )

        details = await get_billing_details(self.db, transaction.user_id)
        country = details.country if details else settings.billing.india_country_code
        state = details.state if details else None

        computation = await self._compute_tax(
            transaction.amount, transaction.currency, country, state
        )

        plan_name: str | None = None
        next_payment_date: datetime | None = None
        if transaction.subscription_id is not None:
            subscription = await self.db.get(UserSubscriptionTable, transaction.subscription_id)
            if subscription is not None:
                next_payment_date = subscription.end_date
                plan = await self.db.get(SubscriptionPlanTable, subscription.plan_id)
                plan_name = plan.name if plan else None

        company = await self.tax_service.get_company_tax_info()
        invoice_settings = await self._get_invoice_settings()
        invoice_number = f"{invoice_settings.prefix}{invoice_settings.next_number}"
        invoice_settings.next_number += 1

        now = datetime.now(UTC)
        status = invoice_status_for(transaction.status)
        subtotal = float(computation.subtotal)
        invoice = InvoiceTable(
            invoice_number=invoice_number,
            user_id=transaction.user_id,
            transaction_id=transaction.id,
            subscription_id=transaction.subscription_id,
            subscription_plan=plan_name,
            gateway_transaction_id=transaction.gateway_transaction_id,
            subtotal=computation.subtotal,
            tax_amount=computation.tax_amount,
            total=computation.total,
            currency=transaction.currency.upper(),
            status=status.value,
            billing_details=_billing_details_json(details),
            company_details=_company_details_json(company),
            tax_details=computation.to_tax_details(),
            items=[
                {
                    "description": f"{plan_name or 'Subscription'} Plan Subscription",
                    "quantity": 1,
                    "unitPrice": subtotal,
                    "total": subtotal,
                }
            ],
            next_payment_date=next_payment_date,
            paid_at=transaction.created_at if status is InvoiceStatus.PAID else None,
            due_date=now + timedelta(days=invoice_settings.default_due_days),
            notes=invoice_settings.footer_text,
        )
        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)

        logger.info(
            "Invoice generated",
            invoice_number=invoice_number,
            transaction_id=transaction_id,
            currency=invoice.currency,
            total=str(invoice.total),
            tax_amount=str(invoice.tax_amount),
        )
        return invoice

    async def _current_inr_rate(self) -> Decimal:
        rules = select_applicable_rules(
            await self.tax_service.get_rules(),
            country=settings.billing.india_country_code,
            state=None,
            region=TargetRegion.INDIA,
            currency=INR,
            tax_types=settings.billing.invoice_tax_types,
        )
        return sum((rule.percentage for rule in rules), Decimal("0"))

    @staticmethod
    def _stored_rate(tax_details: dict[str, Any]) -> Decimal | None:
        percentage = tax_details.get("taxPercentage")
        if percentage is not None:
            return to_decimal(percentage)
        breakdown = tax_details.get("taxBreakdown") or []
        if breakdown:
            return sum(
                (to_decimal(item.get("percentage", 0)) for item in breakdown), Decimal("0")
            )
        return None

    async def fix_inr_invoices(self, user_id: str | None = None) -> BatchResult:
        """
        Re-derive subtotal and tax of every INR invoice from its unchanged total.

        The rate comes from ``taxDetails.taxPercentage``, else the sum of the
        ``taxBreakdown`` percentages, else the currently configured GST rate.
        Only ``subtotal``, ``tax_amount`` and ``items[].unitPrice`` are
        rewritten. Each invoice is committed on its own; failures are logged,
        counted and skipped.

        Returns:
            Per-invoice counts
        """
        result_ids = await self.db.execute(
            select(InvoiceTable.id).where(InvoiceTable.currency == INR).order_by(InvoiceTable.id)
        )
        invoice_ids = list(result_ids.scalars().all())
        result = BatchResult(total=len(invoice_ids))
        current_rate: Decimal | None = None

        for invoice_id in invoice_ids:
            try:
                invoice = await self.db.get(InvoiceTable, invoice_id)
                if invoice is None:
                    raise InvoiceError(f"Invoice {invoice_id} disappeared during correction")

                rate = self._stored_rate(invoice.tax_details or {})
                if rate is None:
                    if current_rate is None:
                        current_rate = await self._current_inr_rate()
                    rate = current_rate

                total = to_decimal(invoice.total)
                _, tax_raw = inclusive_tax(total, rate)
                tax = round_amount(tax_raw)
                subtotal = total - tax
                items = _rescale_unit_prices(invoice.items or [], subtotal)

                if (
                    to_decimal(invoice.subtotal) == subtotal
                    and to_decimal(invoice.tax_amount) == tax
                    and items == (invoice.items or [])
                ):
                    result.skipped += 1
                    continue

                invoice.subtotal = subtotal
                invoice.tax_amount = tax
                invoice.items = items
                await self.db.commit()
                result.succeeded += 1

                logger.info(
                    "INR invoice corrected",
                    invoice_id=invoice_id,
                    rate=str(rate),
                    total=str(total),
                    subtotal=str(subtotal),
                    tax_amount=str(tax),
                )
            except Exception as e:
                await self.db.rollback()
                logger.exception(
                    "Failed to correct INR invoice", invoice_id=invoice_id, error=str(e)
                )
                result.record_failure(f"invoice {invoice_id}: {e}")

        logger.info(
            "INR invoice correction completed",
            total=result.total,
            corrected=result.succeeded,
            unchanged=result.skipped,
            failed=result.failed,
        )
        log_audit_event(
            "invoice.inr_correction_run",
            "invoice",
            user_id=user_id,
            resource_type="invoices",
            corrected=result.succeeded,
            failed=result.failed,
        )
        return result


def _rescale_unit_prices(items: list[dict[str, Any]], subtotal: Decimal) -> list[dict[str, Any]]:
    """Spread ``subtotal`` over the line items in proportion to their current value."""
    if not items:
        return items

    def line_value(item: dict[str, Any]) -> Decimal:
        return to_decimal(item.get("unitPrice", 0)) * to_decimal(item.get("quantity", 1) or 1)

    current = sum((line_value(item) for item in items), Decimal("0"))
    updated: list[dict[str, Any]] = []
    remaining = subtotal
    for index, item in enumerate(items):
        quantity = to_decimal(item.get("quantity", 1) or 1)
        if index == len(items) - 1:
            share = remaining
        elif current > 0:
            share = round_amount(subtotal * line_value(item) / current)
        else:
            share = round_amount(subtotal / len(items))
        remaining -= share
        updated.append({**item, "unitPrice": float(round_amount(share / quantity))})
    return updated


def _billing_details_json(details: Any) -> dict[str, Any]:
    if details is None:
        return {}
    return {
        "fullName": details.full_name,
        "address": details.address,
        "city": details.city,
        "state": details.state,
        "country": details.country,
        "postalCode": details.postal_code,
        "phoneNumber": details.phone_number,
        "taxId": details.tax_id,
    }


def _company_details_json(company: Any) -> dict[str, Any]:
    if company is None:
        return {}
    return {
        "companyName": company.company_name,
        "address": company.address,
        "city": company.city,
        "state": company.state,
        "country": company.country,
        "postalCode": company.postal_code,
        "gstin": company.gstin,
        "pan": company.pan,
        "taxRegNumber": company.tax_reg_number,
        "email": company.email,
        "phone": company.phone,
    }

