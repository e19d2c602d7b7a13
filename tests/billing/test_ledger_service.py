"""
Tests for LedgerService.

Tests cover:
- Grouped transaction listing
- Idempotent currency correction with audit trail
- The currency consistency scan
"""

from decimal import Decimal

import pytest

from resumeforge.platform.billing.exceptions import (
    TransactionNotFoundError,
    UnsupportedCurrencyError,
)
from resumeforge.platform.billing.ledger.service import LedgerService

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return LedgerService(db_session)


class TestListUserTransactions:
    """Tests for the grouped ledger view."""

    @pytest.mark.asyncio
    async def test_duplicate_gateway_records(self, service, make_user, make_transaction):
        user = await make_user(country="IN")
        usd = await make_transaction(user, "12.00", "USD", "pay_123", expected_currency="INR")
        inr = await make_transaction(user, "999.00", "INR", "pay_123", expected_currency="INR")
        single = await make_transaction(user, "499.00", "INR", "pay_456")

        views = await service.list_user_transactions(user.id)

        by_id = {v.id: v for v in views}
        assert by_id[inr.id].is_primary is True
        assert by_id[usd.id].is_duplicate is True
        assert by_id[single.id].is_primary is None
        assert by_id[inr.id].display_amount == "₹999.00"
        assert by_id[usd.id].display_amount == "$12.00"
        assert by_id[inr.id].expected_currency == "INR"

    @pytest.mark.asyncio
    async def test_other_users_are_excluded(self, service, make_user, make_transaction):
        user = await make_user()
        other = await make_user()
        await make_transaction(other, "10.00", "USD", "pay_x")

        assert await service.list_user_transactions(user.id) == []

    @pytest.mark.asyncio
    async def test_invalid_metadata_does_not_hide_the_ledger(
        self, service, db_session, make_user, make_transaction
    ):
        user = await make_user(country="IN")
        broken = await make_transaction(user, "999.00", "INR", "pay_1")
        healthy = await make_transaction(user, "499.00", "INR", "pay_2", expected_currency="INR")
        broken.metadata_json = {"paymentDetails": {"correctPlanPrice": "N/A"}}
        await db_session.commit()
        broken_id, healthy_id = broken.id, healthy.id

        views = await service.list_user_transactions(user.id)

        by_id = {v.id: v for v in views}
        assert set(by_id) == {broken_id, healthy_id}
        assert by_id[broken_id].metadata.payment_details is None
        assert by_id[broken_id].display_amount == "₹999.00"
        assert by_id[healthy_id].expected_currency == "INR"


class TestCorrectTransactionCurrency:
    """Tests for manual currency reclassification."""

    @pytest.mark.asyncio
    async def test_correction_updates_currency_and_audit_trail(
        self, service, make_user, make_transaction
    ):
        # Arrange
        user = await make_user(country="IN")
        transaction = await make_transaction(
            user, "999.00", "USD", "pay_1", expected_currency="INR"
        )

        # Act
        result = await service.correct_transaction_currency(
            transaction.id, "inr", corrected_by="1"
        )

        # Assert
        assert result.changed is True
        assert result.previous_currency == "USD"
        assert result.transaction.currency == "INR"
        assert result.transaction.amount == Decimal("999.00")

        metadata = result.transaction.metadata
        assert metadata.payment_details.has_currency_mismatch is False
        assert len(metadata.currency_corrections) == 1
        correction = metadata.currency_corrections[0]
        assert correction.previous_currency == "USD"
        assert correction.new_currency == "INR"
        assert correction.corrected_by == "1"

    @pytest.mark.asyncio
    async def test_stored_metadata_is_camel_case(
        self, service, db_session, make_user, make_transaction
    ):
        user = await make_user()
        transaction = await make_transaction(
            user, "10.00", "INR", "pay_2", expected_currency="USD"
        )

        await service.correct_transaction_currency(transaction.id, "USD")

        await db_session.refresh(transaction)
        stored = transaction.metadata_json
        assert stored["paymentDetails"]["expectedCurrency"] == "USD"
        assert stored["paymentDetails"]["hasCurrencyMismatch"] is False
        assert stored["currencyCorrections"][0]["newCurrency"] == "USD"

    @pytest.mark.asyncio
    async def test_second_identical_correction_is_a_no_op(
        self, service, make_user, make_transaction
    ):
        """Test idempotency: repeating a correction adds no audit entry."""
        user = await make_user()
        transaction = await make_transaction(
            user, "999.00", "USD", "pay_3", expected_currency="INR"
        )

        first = await service.correct_transaction_currency(transaction.id, "INR")
        second = await service.correct_transaction_currency(transaction.id, "INR")

        assert first.changed is True
        assert second.changed is False
        assert second.transaction.currency == "INR"
        assert len(second.transaction.metadata.currency_corrections) == 1

    @pytest.mark.asyncio
    async def test_correction_away_from_expected_marks_mismatch(
        self, service, make_user, make_transaction
    ):
        user = await make_user()
        transaction = await make_transaction(
            user, "10.00", "INR", "pay_4", expected_currency="INR"
        )

        result = await service.correct_transaction_currency(transaction.id, "USD")

        assert result.transaction.metadata.payment_details.has_currency_mismatch is True

    @pytest.mark.asyncio
    async def test_unknown_currency_is_rejected(self, service, make_user, make_transaction):
        user = await make_user()
        transaction = await make_transaction(user, "10.00", "USD", "pay_5")

        with pytest.raises(UnsupportedCurrencyError):
            await service.correct_transaction_currency(transaction.id, "XYZ")

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, service):
        with pytest.raises(TransactionNotFoundError) as exc_info:
            await service.correct_transaction_currency(404, "USD")

        assert exc_info.value.status_code == 404


class TestValidateTransactionCurrencies:
    """Tests for the daily currency scan."""

    @pytest.mark.asyncio
    async def test_report_lists_mismatches(self, service, make_user, make_transaction):
        indian = await make_user(country="IN")
        american = await make_user(country="US")
        await make_transaction(indian, "999.00", "INR", "pay_a")
        wrong = await make_transaction(indian, "12.00", "USD", "pay_b")
        await make_transaction(american, "9.99", "USD", "pay_c")
        explicit = await make_transaction(
            american, "9.99", "USD", "pay_d", expected_currency="INR"
        )

        report = await service.validate_transaction_currencies()

        assert report.total == 4
        assert report.succeeded == 2
        assert report.failed == 0
        assert {m.transaction_id for m in report.mismatches} == {wrong.id, explicit.id}
        mismatch = next(m for m in report.mismatches if m.transaction_id == wrong.id)
        assert mismatch.expected_currency == "INR"

    @pytest.mark.asyncio
    async def test_scan_does_not_modify_rows(
        self, service, db_session, make_user, make_transaction
    ):
        user = await make_user(country="IN")
        transaction = await make_transaction(user, "12.00", "USD", "pay_e")

        await service.validate_transaction_currencies()

        await db_session.refresh(transaction)
        assert transaction.currency == "USD"
