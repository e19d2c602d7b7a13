"""
Billing ledger service.

Read-side view of payment transactions with duplicate gateway records
resolved, plus the administrative currency repair and the daily currency
consistency scan.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.exceptions import TransactionNotFoundError
from resumeforge.platform.billing.ledger.grouping import group_and_mark_primary
from resumeforge.platform.billing.ledger.models import (
    CurrencyCorrection,
    CurrencyCorrectionResult,
    CurrencyMismatch,
    CurrencyValidationReport,
    PaymentMetadata,
    TransactionView,
)
from resumeforge.platform.billing.models import PaymentTransactionTable
from resumeforge.platform.billing.money_utils import money_handler
from resumeforge.platform.billing.pricing import currency_for_region, get_user_region
from resumeforge.platform.logging import log_audit_event

logger = structlog.get_logger(__name__)


class LedgerService:
    """Service for the payment transaction ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_transaction(self, transaction_id: int) -> PaymentTransactionTable:
        transaction = await self.db.get(PaymentTransactionTable, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found", transaction_id=transaction_id
            )
        return transaction

    async def list_user_transactions(self, user_id: int) -> list[TransactionView]:
        """A user's transactions with primary/duplicate flags derived."""
        result = await self.db.execute(
            select(PaymentTransactionTable)
            .where(PaymentTransactionTable.user_id == user_id)
            .order_by(PaymentTransactionTable.id)
        )
        views = [TransactionView.from_row(row) for row in result.scalars().all()]
        return group_and_mark_primary(views)

    async def correct_transaction_currency(
        self,
        transaction_id: int,
        currency: str,
        corrected_by: str | None = None,
    ) -> CurrencyCorrectionResult:
        """
        Reclassify a transaction's currency.

        The amount is never touched. Applying the currency the row already
        has is a no-op, so repeating a correction changes nothing.

        Args:
            transaction_id: Transaction to repair
            currency: ISO 4217 code the operator asserts is correct
            corrected_by: Admin user id for the audit trail

        Returns:
            The updated transaction view and whether anything changed

        Raises:
            TransactionNotFoundError: Unknown transaction
            UnsupportedCurrencyError: Unknown currency code
        """
        target = money_handler.validate_currency(currency).code
        transaction = await self._get_transaction(transaction_id)
        previous = transaction.currency

        if previous.upper() == target:
            logger.info(
                "Currency correction is a no-op",
                transaction_id=transaction_id,
                currency=target,
            )
            return CurrencyCorrectionResult(
                transaction=TransactionView.from_row(transaction),
                changed=False,
                previous_currency=previous,
            )

        metadata = PaymentMetadata.model_validate(transaction.metadata_json or {})
        metadata.currency_corrections.append(
            CurrencyCorrection(
                previous_currency=previous,
                new_currency=target,
                corrected_at=datetime.now(UTC),
                corrected_by=corrected_by,
            )
        )
        if metadata.payment_details is not None:
            expected = metadata.payment_details.expected_currency
            metadata.payment_details.has_currency_mismatch = bool(expected and expected != target)

        transaction.currency = target
        # New dict so the JSON column is flagged dirty
        transaction.metadata_json = metadata.to_json()
        await self.db.commit()
        await self.db.refresh(transaction)

        logger.info(
            "Transaction currency corrected",
            transaction_id=transaction_id,
            previous_currency=previous,
            new_currency=target,
        )
        log_audit_event(
            action="transaction.currency_corrected",
            category="billing",
            user_id=corrected_by,
            resource_type="payment_transaction",
            resource_id=str(transaction_id),
            previous_currency=previous,
            new_currency=target,
        )
        return CurrencyCorrectionResult(
            transaction=TransactionView.from_row(transaction),
            changed=True,
            previous_currency=previous,
        )

    async def _expected_currency(self, view: TransactionView, cache: dict[int, str]) -> str:
        if view.expected_currency:
            return view.expected_currency
        if view.user_id not in cache:
            region = await get_user_region(self.db, view.user_id)
            cache[view.user_id] = currency_for_region(region)
        return cache[view.user_id]

    async def validate_transaction_currencies(self) -> CurrencyValidationReport:
        """
        Scan every transaction for a currency that differs from the expected one.

        The expected currency is ``paymentDetails.expectedCurrency`` when the
        gateway callback recorded it, else the currency of the user's region.
        Nothing is modified.
        """
        result = await self.db.execute(
            select(PaymentTransactionTable).order_by(PaymentTransactionTable.id)
        )
        rows = list(result.scalars().all())
        report = CurrencyValidationReport(total=len(rows))
        region_currencies: dict[int, str] = {}

        for row in rows:
            try:
                view = TransactionView.from_row(row)
                expected = await self._expected_currency(view, region_currencies)
            except Exception as e:
                logger.exception(
                    "Currency validation failed for transaction",
                    transaction_id=row.id,
                    error=str(e),
                )
                report.record_failure(f"transaction {row.id}: {e}")
                continue

            if view.currency.upper() == expected.upper():
                report.succeeded += 1
                continue

            report.mismatches.append(
                CurrencyMismatch(
                    transaction_id=view.id,
                    user_id=view.user_id,
                    currency=view.currency,
                    expected_currency=expected,
                )
            )

        logger.info(
            "Transaction currency validation completed",
            total=report.total,
            mismatches=len(report.mismatches),
            failed=report.failed,
        )
        if report.mismatches:
            logger.warning(
                "Transactions with unexpected currency found",
                transaction_ids=[m.transaction_id for m in report.mismatches],
            )
        return report
