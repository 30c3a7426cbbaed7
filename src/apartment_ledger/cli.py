"""Apartment ledger command line interface.

Provides operational tools for:
- Schema creation
- Overdue sweeps (for cron)
- Balance reconciliation
- Monthly fee generation

Usage:
    python -m apartment_ledger.cli init-db
    python -m apartment_ledger.cli sweep [--as-of 2026-01-31]
    python -m apartment_ledger.cli reconcile
    python -m apartment_ledger.cli generate --fee-category-id X --month 1 --year 2026
    python -m apartment_ledger.cli serve
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apartment_ledger.config import configure_logging, get_settings
from apartment_ledger.database import create_schema, create_session_factory, get_engine
from apartment_ledger.services.errors import LedgerError
from apartment_ledger.services.ledger_service import LedgerService
from apartment_ledger.services.overdue_sweeper import OverdueSweeper
from apartment_ledger.services.reconciliation import ReconciliationService


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class LedgerCli:
    """Apartment ledger command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m apartment_ledger.cli",
            description="Apartment ledger operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: DATABASE_URL from the environment)",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Logging level (default: LOG_LEVEL from the environment)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create ledger tables")

        sweep = subparsers.add_parser(
            "sweep",
            help="Mark pending payments past their due date as overdue",
        )
        sweep.add_argument(
            "--as-of",
            type=parse_date,
            help="Sweep as of this date, no later than today (ISO format, default: today at UTC)",
        )

        subparsers.add_parser(
            "reconcile",
            help="Compare stored household balances with outstanding payments",
        )

        generate = subparsers.add_parser(
            "generate",
            help="Generate one month of payments for a fee category",
        )
        generate.add_argument(
            "--fee-category-id",
            type=parse_uuid,
            required=True,
            help="Fee category to charge",
        )
        generate.add_argument("--month", type=int, help="Month 1-12 (default: current)")
        generate.add_argument("--year", type=int, help="Year (default: current)")

        subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run CLI with arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        if parsed.command == "serve":
            from apartment_ledger.__main__ import main as serve

            serve()
            return 0

        commands: dict[str, Callable[..., Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "sweep": self._cmd_sweep,
            "reconcile": self._cmd_reconcile,
            "generate": self._cmd_generate,
        }
        handler = commands[parsed.command]

        try:
            return asyncio.run(self._with_database(parsed, handler))
        except LedgerError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    async def _with_database(
        self,
        args: argparse.Namespace,
        handler: Callable[[argparse.Namespace, Any], Awaitable[int]],
    ) -> int:
        engine = get_engine(args.database_url)
        try:
            if handler == self._cmd_init_db:
                return await handler(args, engine)
            return await handler(args, create_session_factory(engine))
        finally:
            await engine.dispose()

    async def _cmd_init_db(self, args: argparse.Namespace, engine: Any) -> int:
        await create_schema(engine)
        print("Ledger tables created")
        return 0

    async def _cmd_sweep(
        self, args: argparse.Namespace, factory: async_sessionmaker[AsyncSession]
    ) -> int:
        count = await OverdueSweeper(factory).sweep(args.as_of)
        print(f"Updated {count} payments to overdue")
        return 0

    async def _cmd_reconcile(
        self, args: argparse.Namespace, factory: async_sessionmaker[AsyncSession]
    ) -> int:
        result = await ReconciliationService(factory).check()

        print(f"Households checked: {result.households_checked}")
        if result.success:
            print("All balances match outstanding payments")
            return 0

        print(f"{len(result.drifts)} household(s) drifted:")
        for drift in result.drifts:
            print(
                f"  - unit {drift.unit}: stored {drift.stored}, "
                f"expected {drift.expected} (difference {drift.difference})"
            )
        return 2

    async def _cmd_generate(
        self, args: argparse.Namespace, factory: async_sessionmaker[AsyncSession]
    ) -> int:
        settings = get_settings()
        ledger = LedgerService(
            factory,
            max_retries=settings.ledger_max_retries,
            default_payment_method=settings.default_payment_method,
        )
        count = await ledger.generate_monthly(
            args.fee_category_id, month=args.month, year=args.year
        )
        print(f"Created {count} payments")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = LedgerCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
