"""
Maintenance CLI.

Usage:
    washq-maintenance bootstrap
    washq-maintenance migrate-statuses
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import click
from sqlalchemy.ext.asyncio import AsyncSession

from washq.db import close_db, get_session_context, init_db
from washq.maintenance.bootstrap import ensure_default_subscription_plan
from washq.maintenance.statuses import migrate_job_statuses
from washq.observability.logging import setup_logging

logger = logging.getLogger(__name__)


async def _run_in_session(action: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    await init_db()
    try:
        async with get_session_context() as session:
            return await action(session)
    finally:
        await close_db()


@click.group()
@click.option("--log-level", "-l", default=None, help="Log level")
@click.option("--console", is_flag=True, help="Human-readable log output")
def cli(log_level: str | None, console: bool) -> None:
    """WashQ maintenance commands"""
    setup_logging(level=log_level, log_format="console" if console else None)


@cli.command()
def bootstrap() -> None:
    """Create the default subscription plan if none exists."""
    plan = asyncio.run(_run_in_session(ensure_default_subscription_plan))
    if plan is None:
        click.echo("Subscription plans already present, nothing to do.")
    else:
        click.echo(f"Created default plan '{plan.name}' ({plan.id}).")


@cli.command("migrate-statuses")
def migrate_statuses() -> None:
    """Fold retired job statuses into the current flow."""
    count = asyncio.run(_run_in_session(migrate_job_statuses))
    click.echo(f"Migrated {count} job(s) to new statuses.")


def run() -> None:
    """Run the maintenance CLI."""
    cli()


if __name__ == "__main__":
    run()
