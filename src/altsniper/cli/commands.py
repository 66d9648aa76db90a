"""Command-line entry points for scans and dead-letter draining.

Usage:
    python -m altsniper.cli scan --shop SHOP [--force-all] [-v]
    python -m altsniper.cli retry-failed --shop SHOP [-v]

Examples:
    # Fill in missing alt text for one shop
    python -m altsniper.cli scan --shop example.myshopify.com

    # Regenerate alt text for every image
    python -m altsniper.cli scan --shop example.myshopify.com --force-all

    # Cron entry draining the dead-letter queue every five minutes
    */5 * * * * python -m altsniper.cli retry-failed --shop example.myshopify.com
"""

import asyncio
import sys
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from typing import Sequence

import structlog

from altsniper.core.config import Settings, configure_logging
from altsniper.core.database import setup_db_session
from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.exceptions import (
    InvalidShopDomainError,
    ScanInProgressError,
    ServiceError,
)
from altsniper.services.retry_queue import drain_failed_jobs
from altsniper.services.scan_orchestrator import ScanOrchestrator
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient, normalize_shop_domain
from altsniper.uow import create_uow_factory

logger = structlog.get_logger()


def shop_domain(value: str) -> str:
    """argparse type for --shop: the same normalization as the X-Shop-Domain header."""
    try:
        return normalize_shop_domain(value)
    except InvalidShopDomainError as e:
        raise ArgumentTypeError(str(e)) from e


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Generate and write back alt text for Shopify images")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Scan the catalog and fill in alt text")
    scan_parser.add_argument(
        "--shop", required=True, type=shop_domain, help="Shop domain (*.myshopify.com)"
    )
    scan_parser.add_argument(
        "--force-all",
        action="store_true",
        help="Regenerate alt text for images that already have it",
    )

    retry_parser = subparsers.add_parser(
        "retry-failed", help="Retry every due job in the dead-letter queue"
    )
    retry_parser.add_argument(
        "--shop", required=True, type=shop_domain, help="Shop domain (*.myshopify.com)"
    )

    for sub in (scan_parser, retry_parser):
        sub.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Enable verbose logging (DEBUG level)",
        )

    return parser.parse_args(argv)


def build_services(settings: Settings, shop: str) -> tuple:
    """Wire the Unit of Work factory, Shopify client and caption generator."""
    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    catalog_client = ShopifyCatalogClient(
        shop=shop,
        access_token=settings.shopify_access_token,
        api_version=settings.shopify_api_version,
    )
    caption_generator = CaptionGenerator(
        uow_factory=uow_factory,
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
    )
    return uow_factory, catalog_client, caption_generator


async def run_scan_command(args: Namespace, settings: Settings) -> int:
    uow_factory, catalog_client, caption_generator = build_services(settings, args.shop)
    orchestrator = ScanOrchestrator(
        uow_factory=uow_factory,
        catalog_client=catalog_client,
        caption_generator=caption_generator,
        page_size=settings.catalog_page_size,
        write_back_pause_seconds=settings.write_back_pause_seconds,
    )

    result = await orchestrator.run_scan(args.shop, force_all=args.force_all)

    print("\n" + "=" * 60)
    print("Scan Summary")
    print("=" * 60)
    print(f"Scan ID: {result.scan_id}")
    print(f"Status: {result.status.value}")
    print(f"Products: {result.total_products}")
    print(f"Images: {result.total_images}")
    print(f"Missing alt text: {result.missing_alt_text}")
    print(f"Updated: {result.updated}")
    print(f"Failed: {result.failed}")
    print(f"Skipped: {result.skipped}")
    print("=" * 60 + "\n")

    if result.failed == 0:
        return 0
    if result.updated > 0:
        return 2  # Partial success
    return 1


async def run_retry_command(args: Namespace, settings: Settings) -> int:
    uow_factory, catalog_client, caption_generator = build_services(settings, args.shop)

    result = await drain_failed_jobs(
        args.shop,
        uow_factory,
        catalog_client,
        caption_generator,
        retry_delay_seconds=settings.failed_job_retry_delay_seconds,
        write_back_pause_seconds=settings.write_back_pause_seconds,
    )

    print("\n" + "=" * 60)
    print("Dead-Letter Drain Summary")
    print("=" * 60)
    print(f"Jobs attempted: {result.attempted}")
    print(f"Succeeded: {result.succeeded}")
    print(f"Rescheduled: {result.rescheduled}")
    print(f"Failed permanently: {result.failed_permanent}")

    if result.errors:
        print(f"\nErrors encountered: {len(result.errors)}")
        for error in result.errors[:5]:  # Show first 5 errors
            print(f"  - {error}")
        if len(result.errors) > 5:
            print(f"  ... and {len(result.errors) - 5} more errors")

    print("=" * 60 + "\n")

    if result.attempted == result.succeeded:
        return 0
    if result.succeeded > 0:
        return 2
    return 1


COMMANDS = {
    "scan": run_scan_command,
    "retry-failed": run_retry_command,
}


async def async_main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (partial success), 130 (interrupted)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    logger.info("cli.started", command=args.command, shop=args.shop)

    try:
        return await COMMANDS[args.command](args, settings)

    except ScanInProgressError as e:
        logger.warning("cli.scan_in_progress", shop=args.shop)
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except ServiceError as e:
        logger.error(
            "cli.service_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nInterrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
