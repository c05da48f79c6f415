"""Command line entry point.

Usage:
    # Prompt for anything not set in the environment or .env
    settlement-recon

    # Fully specified, JSON output
    settlement-recon report.csv --product prod_ammo \\
        --customers cus_A,cus_B --format json
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from settlement_recon.clients.stripe import StripeAPIError, StripeClient
from settlement_recon.config import (
    SavedState,
    Settings,
    configure_logging,
    get_settings,
    load_state,
    save_state,
    split_ids,
)
from settlement_recon.errors import MalformedInputError
from settlement_recon.models import ReconciliationConfig
from settlement_recon.reconciler import reconcile
from settlement_recon.render import render_json, render_text
from settlement_recon.report import read_report

logger = structlog.get_logger(__name__)

Prompt = Callable[[str], str]


@dataclass(frozen=True)
class ResolvedInputs:
    """Everything a run needs once prompting is over."""

    secret_key: str
    report_path: Path
    config: ReconciliationConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="settlement-recon",
        description="Reconcile a Stripe settlement report into platform gross and net figures",
    )
    parser.add_argument(
        "report",
        nargs="?",
        type=Path,
        help="Path to the settlement report CSV (prompted if omitted)",
    )
    parser.add_argument(
        "--product",
        type=str,
        help="Product ID whose invoice lines are excluded",
    )
    parser.add_argument(
        "--customers",
        type=str,
        help="Comma separated customer IDs on the exclusion list",
    )
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not remember this run's inputs",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override LOG_LEVEL",
    )
    return parser


def _ask(prompt: Prompt, question: str, default: str | None) -> str:
    suffix = f" [{default}]" if default else ""
    answer = prompt(f"{question}{suffix}: ").strip()
    return answer or (default or "")


def resolve_inputs(
    args: argparse.Namespace,
    settings: Settings,
    saved: SavedState,
    prompt: Prompt = input,
    secret_prompt: Prompt = getpass.getpass,
) -> ResolvedInputs:
    """Fill in run inputs from arguments, then settings, then prompts.

    Previously saved values are offered as prompt defaults.
    """
    if settings.stripe_secret_key is not None:
        secret_key = settings.stripe_secret_key.get_secret_value()
    else:
        secret_key = secret_prompt("Please enter your Stripe secret key: ").strip()

    product_id = args.product or settings.excluded_product_id
    if not product_id:
        product_id = _ask(
            prompt, "Please enter the product ID to exclude", saved.excluded_product_id
        )

    report_path = args.report
    if report_path is None:
        report_path = Path(
            _ask(prompt, "Where is your Stripe report located?", saved.report_path)
        ).expanduser()

    if args.customers is not None:
        customer_ids = split_ids(args.customers)
    elif settings.exclusion_customer_ids is not None:
        customer_ids = settings.exclusion_customer_id_list
    else:
        customer_ids = split_ids(
            _ask(
                prompt,
                "Please paste your comma separated customer IDs",
                ",".join(saved.exclusion_customer_ids),
            )
        )

    config = ReconciliationConfig.build(
        excluded_product_id=product_id,
        exclusion_customer_ids=customer_ids,
        suppression_markers=settings.suppression_marker_list,
    )
    return ResolvedInputs(secret_key=secret_key, report_path=report_path, config=config)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Run one reconciliation and print the result. Returns an exit status."""
    saved = load_state(settings.state_file)
    inputs = resolve_inputs(args, settings, saved)

    if not inputs.config.excluded_product_id:
        logger.error("missing_excluded_product_id")
        return 2

    try:
        records = read_report(inputs.report_path)
    except MalformedInputError as e:
        logger.error("report_unreadable", path=str(inputs.report_path), error=str(e))
        return 1

    if not args.no_save:
        save_state(
            settings.state_file,
            SavedState(
                excluded_product_id=inputs.config.excluded_product_id,
                exclusion_customer_ids=sorted(inputs.config.exclusion_customer_ids),
                report_path=str(inputs.report_path),
            ),
        )

    try:
        async with StripeClient(secret_key=inputs.secret_key) as client:
            result = await reconcile(records, inputs.config, client.latest_invoice)
    except StripeAPIError as e:
        # Only raised here when no key is available; lookups recover per customer
        logger.error("stripe_client_error", error=str(e))
        return 1

    if args.format == "json":
        print(render_json(result))
    else:
        print(render_text(result))
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(level=args.log_level)

    try:
        status = asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("reconciliation_interrupted")
        status = 130
    sys.exit(status)


if __name__ == "__main__":
    main()
