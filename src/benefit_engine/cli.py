"""Benefit engine command line interface.

Provides batch and operational tools for:
- Schema creation
- Monthly fee aggregation
- Offline benefit calculation

Usage:
    benefit-engine-admin init-db
    benefit-engine-admin generate-fees 2024-04
    benefit-engine-admin calculate --category 04 --enrolled 2018-04-01 \\
        --params '{"standard_monthly_remuneration": 200000, "absence_days": 10}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from datetime import date

from benefit_engine.calculators import BenefitCategory, MemberProfile, calculate
from benefit_engine.config import Settings, configure_logging, get_settings
from benefit_engine.database import create_schema, get_engine, make_session_factory
from benefit_engine.errors import BenefitEngineError
from benefit_engine.services import FeeService
from benefit_engine.services.notifications import DatabaseAuditSink


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


class BenefitCli:
    """Benefit engine command line interface."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="benefit-engine-admin",
            description="Benefit engine batch and operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        fees = subparsers.add_parser(
            "generate-fees",
            help="Rebuild monthly fee rows for one month",
        )
        fees.add_argument("year_month", help="Target month (YYYY-MM)")
        fees.add_argument("--actor", default="batch", help="Actor recorded in the audit trail")

        calc = subparsers.add_parser(
            "calculate",
            help="Calculate a benefit amount without touching the database",
        )
        calc.add_argument(
            "--category",
            required=True,
            choices=[c.value for c in BenefitCategory],
            help="Benefit category code",
        )
        calc.add_argument(
            "--enrolled", required=True, type=parse_date, help="Enrollment date (YYYY-MM-DD)"
        )
        calc.add_argument(
            "--base-date",
            type=parse_date,
            default=None,
            help="Calculation base date (default: today)",
        )
        calc.add_argument(
            "--salary",
            type=int,
            default=None,
            help="Member's standard monthly remuneration on file",
        )
        calc.add_argument("--params", default="{}", help="Category parameters as JSON")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        handlers: dict[str, Callable[..., int]] = {
            "init-db": self._cmd_init_db,
            "generate-fees": self._cmd_generate_fees,
            "calculate": self._cmd_calculate,
        }

        handler = handlers.get(parsed.command)
        if handler:
            try:
                return handler(parsed)
            except BenefitEngineError as e:
                print(f"ERROR [{e.code}]: {e.message}", file=sys.stderr)
                return 1

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        asyncio.run(self._init_db())
        print("Schema created")
        return 0

    async def _init_db(self) -> None:
        engine = get_engine(self.settings)
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    def _cmd_generate_fees(self, args: argparse.Namespace) -> int:
        companies = asyncio.run(self._generate_fees(args.year_month, args.actor))
        print(f"Generated fees for {args.year_month}: {companies} companies")
        return 0

    async def _generate_fees(self, year_month: str, actor: str) -> int:
        engine = get_engine(self.settings)
        factory = make_session_factory(engine)
        try:
            async with factory() as session:
                service = FeeService(session, audit=DatabaseAuditSink(factory))
                return await service.generate_monthly_fees(year_month, actor)
        finally:
            await engine.dispose()

    def _cmd_calculate(self, args: argparse.Namespace) -> int:
        try:
            params = json.loads(args.params)
        except json.JSONDecodeError as e:
            print(f"ERROR: --params is not valid JSON: {e}", file=sys.stderr)
            return 1

        result = calculate(
            args.category,
            params,
            MemberProfile(
                enrollment_date=args.enrolled,
                standard_monthly_remuneration=args.salary,
            ),
            base_date=args.base_date or date.today(),
        )
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0


def main() -> int:
    """CLI entry point."""
    configure_logging()
    cli = BenefitCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
