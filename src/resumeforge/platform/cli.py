#!/usr/bin/env python
"""
CLI management commands for the ResumeForge platform.

Maintenance tools for operators: schema creation, the daily billing jobs on
demand, the bulk INR invoice correction and the India GST default.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import click

from resumeforge.platform.auth.core import create_access_token
from resumeforge.platform.billing.invoicing.service import InvoiceService
from resumeforge.platform.billing.ledger.service import LedgerService
from resumeforge.platform.billing.subscriptions.gateway import RazorpayGatewayClient
from resumeforge.platform.billing.subscriptions.service import SubscriptionService
from resumeforge.platform.billing.tax.service import TaxService
from resumeforge.platform.db import create_all_tables_async, get_async_db
from resumeforge.platform.settings import settings


class AsyncSessionManager(Protocol):
    async def __aenter__(self) -> Any: ...  # pragma: no cover - protocol definition
    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> Any: ...  # pragma: no cover


@dataclass
class CLIDependencies:
    """Bundle of injectable dependencies used by CLI commands."""

    session_factory: Callable[[], AsyncSessionManager]
    create_tables: Callable[[], Awaitable[None]]
    token_factory: Callable[..., str]


def _get_cli_dependencies() -> CLIDependencies:
    """Return the default dependency bundle for CLI commands."""
    return CLIDependencies(
        session_factory=get_async_db,
        create_tables=create_all_tables_async,
        token_factory=create_access_token,
    )


def _echo_batch(label: str, total: int, succeeded: int, skipped: int, failed: int) -> None:
    click.echo(
        f"{label}: {total} examined, {succeeded} changed, {skipped} unchanged, {failed} failed"
    )


@click.group()
def cli() -> None:
    """ResumeForge Platform CLI."""
    pass


@cli.command()
def init_database() -> None:
    """Create all database tables."""
    deps = _get_cli_dependencies()
    click.echo("Initializing database...")
    asyncio.run(deps.create_tables())
    click.echo("Database initialized successfully!")


@cli.command()
def process_subscriptions() -> None:
    """Run the daily subscription cycle now."""
    deps = _get_cli_dependencies()

    async def _process() -> int:
        gateway = RazorpayGatewayClient()
        try:
            async with deps.session_factory() as session:
                result = await SubscriptionService(
                    session, gateway=gateway
                ).process_subscription_cycle()
        finally:
            await gateway.close()

        for label, step in (
            ("Scheduled plan changes", result.scheduled_changes),
            ("Renewals", result.renewals),
            ("Grace periods started", result.grace_started),
            ("Grace periods expired", result.grace_expired),
            ("Cancellations expired", result.cancellations_expired),
        ):
            _echo_batch(label, step.total, step.succeeded, step.skipped, step.failed)
        return result.failed

    failed = asyncio.run(_process())
    if failed:
        raise click.ClickException(f"{failed} subscription update(s) failed, see logs")


@cli.command()
def validate_currencies() -> None:
    """Report transactions recorded in an unexpected currency."""
    deps = _get_cli_dependencies()

    async def _validate() -> None:
        async with deps.session_factory() as session:
            report = await LedgerService(session).validate_transaction_currencies()

        click.echo(f"Checked {report.total} transactions, {len(report.mismatches)} mismatches")
        for mismatch in report.mismatches:
            click.echo(
                f"  transaction {mismatch.transaction_id} (user {mismatch.user_id}): "
                f"{mismatch.currency}, expected {mismatch.expected_currency}"
            )

    asyncio.run(_validate())


@cli.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
def fix_inr_invoices(yes: bool) -> None:
    """Re-derive subtotal and GST of every INR invoice from its total."""
    if not yes:
        click.confirm("Rewrite subtotal and tax of all INR invoices?", abort=True)
    deps = _get_cli_dependencies()

    async def _fix() -> int:
        async with deps.session_factory() as session:
            result = await InvoiceService(session).fix_inr_invoices()
        _echo_batch("INR invoices", result.total, result.succeeded, result.skipped, result.failed)
        for error in result.errors:
            click.echo(f"  {error}", err=True)
        return result.failed

    failed = asyncio.run(_fix())
    if failed:
        raise click.ClickException(f"{failed} invoice(s) could not be corrected")


@cli.command()
@click.option("--company-state", default=None, help="State for CGST/SGST")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
def create_default_gst(company_state: str | None, yes: bool) -> None:
    """Replace all tax settings with the default India GST structure."""
    if not yes:
        click.confirm("This deletes every existing tax setting. Continue?", abort=True)
    deps = _get_cli_dependencies()

    async def _create() -> int:
        async with deps.session_factory() as session:
            result = await TaxService(session).create_default_india_gst(
                company_state=company_state
            )
        click.echo(
            f"Deleted {result.deleted} tax settings, created {result.created}, "
            f"{result.failed} failed"
        )
        for error in result.errors:
            click.echo(f"  {error}", err=True)
        return result.failed

    failed = asyncio.run(_create())
    if failed:
        raise click.ClickException("Default GST settings only partially applied")


@cli.command()
@click.option("--user-id", required=True, help="Subject of the token")
@click.option("--email", default=None, help="Email claim")
@click.option("--expire-minutes", type=int, default=None, help="Token lifetime")
def issue_admin_token(user_id: str, email: str | None, expire_minutes: int | None) -> None:
    """Print an admin access token."""
    deps = _get_cli_dependencies()
    claims: dict[str, Any] = {"roles": [settings.jwt.admin_role]}
    if email:
        claims["email"] = email
    token = deps.token_factory(user_id, additional_claims=claims, expire_minutes=expire_minutes)
    click.echo(token)


if __name__ == "__main__":
    cli()
