"""Seeding CLI — ``portfolio-seed``.

Loads YAML portfolio definitions and upserts them into the database.  An
existing portfolio (matched by slug) is updated in place and its question
set replaced; question ids are stable across runs, so stored responses
stay attached to their questions.

Examples::

    # Seed every definition under portfolios/
    uv run portfolio-seed

    # Seed one file
    uv run portfolio-seed portfolios/accommodation-info.yaml

    # Parse and report without touching the database
    uv run portfolio-seed --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from portfolio_forms.loader import PortfolioLoader, load_portfolio_file
from portfolio_forms.models.question import Portfolio

from portfolio_server.config import load_settings

logger = logging.getLogger(__name__)


def collect_portfolios(paths: list[str], portfolio_dir: str | None = None) -> list[Portfolio]:
    """Parse the given files, or every file in *portfolio_dir* when none are given."""
    if paths:
        return [load_portfolio_file(Path(p)) for p in paths]
    loader = PortfolioLoader(portfolio_dir)
    loader.load()
    return list(loader.portfolios.values())


async def run_seed(portfolios: list[Portfolio]) -> int:
    """Upsert *portfolios* in one transaction; return how many were written."""
    # Lazy imports to avoid loading DB machinery at module import time
    from portfolio_db.engine import dispose_engine, get_session_factory
    from portfolio_db.repository import FormRepository

    repo = FormRepository()
    factory = get_session_factory()
    try:
        async with factory() as db:
            for p in portfolios:
                await repo.upsert_portfolio(
                    db,
                    portfolio_id=p.id,
                    slug=p.slug,
                    title=p.title,
                    description=p.description,
                    is_active=p.is_active,
                    display_order=p.display_order,
                    collections=[c.model_dump() for c in p.collections],
                    questions=[q.model_dump() for q in p.questions],
                )
                logger.info("Seeded %s (%d questions)", p.slug, len(p.questions))
            await db.commit()
        return len(portfolios)
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``portfolio-seed``."""
    parser = argparse.ArgumentParser(
        prog="portfolio-seed",
        description="Load YAML portfolio definitions into the database.",
    )
    parser.add_argument(
        "paths", nargs="*", help="Definition files (default: every file in --dir)",
    )
    parser.add_argument(
        "--dir",
        default=None,
        help="Definition directory (default: $SERVER_PORTFOLIO_DIR, else portfolios/ at the repo root)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Parse and validate only; do not connect to the database",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    portfolio_dir = args.dir or load_settings().portfolio_dir
    portfolios = collect_portfolios(args.paths, portfolio_dir)
    if args.dry_run:
        for p in portfolios:
            print(f"{p.slug}: {len(p.questions)} questions")
        sys.exit(0)

    count = asyncio.run(run_seed(portfolios))
    print(f"Seeded portfolios: {count}")
    sys.exit(0)
