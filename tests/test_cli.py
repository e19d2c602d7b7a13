"""
Tests for CLI commands.

Tests cover schema creation, the billing jobs on demand, the INR invoice
correction, the India GST default and admin token issuance.
"""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from click.testing import CliRunner

from resumeforge.platform.billing.ledger.models import (
    CurrencyMismatch,
    CurrencyValidationReport,
)
from resumeforge.platform.billing.schemas import BatchResult
from resumeforge.platform.billing.subscriptions.models import SubscriptionCycleResult
from resumeforge.platform.billing.tax.models import DefaultGSTResult
from resumeforge.platform.cli import (
    CLIDependencies,
    cli,
    create_default_gst,
    fix_inr_invoices,
    init_database,
    issue_admin_token,
    process_subscriptions,
    validate_currencies,
)

pytestmark = pytest.mark.unit


def _make_async_context_manager() -> AsyncMock:
    """Create a reusable async context manager mock."""
    cm = AsyncMock()
    cm.__aenter__.return_value = cm
    cm.__aexit__.return_value = None
    return cm


def build_cli_dependencies(**overrides) -> CLIDependencies:
    """Construct a CLI dependency bundle for testing."""
    session_cm = _make_async_context_manager()
    defaults = {
        "session_factory": lambda: session_cm,
        "create_tables": AsyncMock(),
        "token_factory": Mock(return_value="signed-token"),
    }
    defaults.update(overrides)
    return CLIDependencies(**defaults)


def _service_mock(method: str, result) -> MagicMock:
    """Service class mock whose instances return ``result`` from ``method``."""
    instance = MagicMock()
    setattr(instance, method, AsyncMock(return_value=result))
    return MagicMock(return_value=instance)


@pytest.fixture
def runner():
    return CliRunner()


class TestCLIGroup:
    """Test the command group."""

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "ResumeForge Platform CLI" in result.output
        for command in [
            "init-database",
            "process-subscriptions",
            "validate-currencies",
            "fix-inr-invoices",
            "create-default-gst",
            "issue-admin-token",
        ]:
            assert command in result.output


class TestInitDatabase:
    """Test database initialization command."""

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_init_database_success(self, mock_get_deps, runner):
        deps = build_cli_dependencies()
        mock_get_deps.return_value = deps

        result = runner.invoke(init_database)

        assert result.exit_code == 0
        assert "Initializing database..." in result.output
        assert "Database initialized successfully!" in result.output
        deps.create_tables.assert_awaited_once_with()

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_init_database_failure(self, mock_get_deps, runner):
        deps = build_cli_dependencies(
            create_tables=AsyncMock(side_effect=Exception("Database connection failed"))
        )
        mock_get_deps.return_value = deps

        result = runner.invoke(init_database)

        assert result.exit_code != 0
        assert "Database connection failed" in str(result.exception)


class TestProcessSubscriptions:
    """Test the on-demand subscription cycle."""

    @patch("resumeforge.platform.cli.RazorpayGatewayClient")
    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_reports_each_step(self, mock_get_deps, mock_gateway_cls, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        gateway = MagicMock(close=AsyncMock())
        mock_gateway_cls.return_value = gateway
        cycle = SubscriptionCycleResult(renewals=BatchResult(total=3, succeeded=2, skipped=1))
        service_cls = _service_mock("process_subscription_cycle", cycle)

        with patch("resumeforge.platform.cli.SubscriptionService", service_cls):
            result = runner.invoke(process_subscriptions)

        assert result.exit_code == 0
        assert "Renewals: 3 examined, 2 changed, 1 unchanged, 0 failed" in result.output
        assert "Grace periods expired: 0 examined" in result.output
        gateway.close.assert_awaited_once()

    @patch("resumeforge.platform.cli.RazorpayGatewayClient")
    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_failures_give_non_zero_exit(self, mock_get_deps, mock_gateway_cls, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        mock_gateway_cls.return_value = MagicMock(close=AsyncMock())
        cycle = SubscriptionCycleResult(grace_started=BatchResult(total=2, failed=2))
        service_cls = _service_mock("process_subscription_cycle", cycle)

        with patch("resumeforge.platform.cli.SubscriptionService", service_cls):
            result = runner.invoke(process_subscriptions)

        assert result.exit_code == 1
        assert "2 subscription update(s) failed" in result.output


class TestValidateCurrencies:
    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_lists_mismatches(self, mock_get_deps, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        report = CurrencyValidationReport(
            total=2,
            succeeded=1,
            mismatches=[
                CurrencyMismatch(
                    transaction_id=7, user_id=3, currency="USD", expected_currency="INR"
                )
            ],
        )

        with patch(
            "resumeforge.platform.cli.LedgerService",
            _service_mock("validate_transaction_currencies", report),
        ):
            result = runner.invoke(validate_currencies)

        assert result.exit_code == 0
        assert "Checked 2 transactions, 1 mismatches" in result.output
        assert "transaction 7 (user 3): USD, expected INR" in result.output


class TestFixInrInvoices:
    """Test the bulk INR invoice correction command."""

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_requires_confirmation(self, mock_get_deps, runner):
        service_cls = _service_mock("fix_inr_invoices", BatchResult())

        with patch("resumeforge.platform.cli.InvoiceService", service_cls):
            result = runner.invoke(fix_inr_invoices, input="n\n")

        assert result.exit_code == 1
        assert "Aborted" in result.output
        service_cls.assert_not_called()
        mock_get_deps.assert_not_called()

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_yes_skips_prompt(self, mock_get_deps, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        batch = BatchResult(total=5, succeeded=3, skipped=2)

        with patch(
            "resumeforge.platform.cli.InvoiceService", _service_mock("fix_inr_invoices", batch)
        ):
            result = runner.invoke(fix_inr_invoices, ["--yes"])

        assert result.exit_code == 0
        assert "INR invoices: 5 examined, 3 changed, 2 unchanged, 0 failed" in result.output

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_failures_are_reported(self, mock_get_deps, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        batch = BatchResult(total=1)
        batch.record_failure("invoice 4: boom")

        with patch(
            "resumeforge.platform.cli.InvoiceService", _service_mock("fix_inr_invoices", batch)
        ):
            result = runner.invoke(fix_inr_invoices, ["--yes"])

        assert result.exit_code == 1
        assert "1 invoice(s) could not be corrected" in result.output


class TestCreateDefaultGst:
    """Test the India GST default command."""

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_passes_company_state(self, mock_get_deps, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        gst = DefaultGSTResult(total=5, succeeded=5, deleted=1, created=4)
        service_cls = _service_mock("create_default_india_gst", gst)

        with patch("resumeforge.platform.cli.TaxService", service_cls):
            result = runner.invoke(
                create_default_gst, ["--company-state", "Karnataka", "--yes"]
            )

        assert result.exit_code == 0
        assert "Deleted 1 tax settings, created 4, 0 failed" in result.output
        service_cls.return_value.create_default_india_gst.assert_awaited_once_with(
            company_state="Karnataka"
        )

    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_partial_failure(self, mock_get_deps, runner):
        mock_get_deps.return_value = build_cli_dependencies()
        gst = DefaultGSTResult(total=4, succeeded=3, created=3)
        gst.record_failure("create IGST: boom")

        with patch(
            "resumeforge.platform.cli.TaxService",
            _service_mock("create_default_india_gst", gst),
        ):
            result = runner.invoke(create_default_gst, ["--yes"])

        assert result.exit_code == 1
        assert "partially applied" in result.output


class TestIssueAdminToken:
    @patch("resumeforge.platform.cli._get_cli_dependencies")
    def test_prints_token_with_admin_role(self, mock_get_deps, runner):
        deps = build_cli_dependencies()
        mock_get_deps.return_value = deps

        result = runner.invoke(
            issue_admin_token,
            ["--user-id", "42", "--email", "ops@example.com", "--expire-minutes", "30"],
        )

        assert result.exit_code == 0
        assert result.output.strip() == "signed-token"
        deps.token_factory.assert_called_once_with(
            "42",
            additional_claims={"roles": ["admin"], "email": "ops@example.com"},
            expire_minutes=30,
        )

    def test_user_id_is_required(self, runner):
        result = runner.invoke(issue_admin_token, [])

        assert result.exit_code == 2
        assert "--user-id" in result.output
