"""
Main CLI entry point for the live auction recovery engine.
"""

import argparse
import json
import logging
import os
import sys
from concurrent.futures import wait
from pathlib import Path

from . import config
from .resume.local_cache import LocalCache, cleanup_stale_auctions, purge_auction_cache
from .resume.log_io import export_resume_csv, load_resume_csv
from .resume.photo_store import PhotoStore
from .resume.recovery_service import AuctionRecoveryService, NoRecoverableAuctionError
from .resume.remote_store import RemoteStore


def setup_logging(verbose: bool = False):
    """
    Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Live Auction Recovery - resume an auction across devices',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List auctions cached on this device
  python -m auction_recovery.main recent

  # Resume an auction and write the setup handoff to a file
  python -m auction_recovery.main resume 7KQ2MX --output setup.json

  # Also write the resume log CSV
  python -m auction_recovery.main resume 7KQ2MX --log-csv auction-log.csv

  # Inspect a downloaded resume log
  python -m auction_recovery.main import-log auction-log-7KQ2MX.csv

  # Run the recovery API
  python -m auction_recovery.main serve --port 8000
        """
    )

    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help=f'Remote store URL (default: ${config.DATABASE_URL_ENV} or built-in)'
    )
    parser.add_argument(
        '--cache-file',
        type=str,
        default=config.LOCAL_CACHE_FILE,
        help=f'Local cache file (default: {config.LOCAL_CACHE_FILE})'
    )
    parser.add_argument(
        '--photo-dir',
        type=str,
        default=config.PHOTO_STORE_DIR,
        help=f'Local photo store directory (default: {config.PHOTO_STORE_DIR})'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose (DEBUG) logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('recent', help='List resumable auctions cached on this device')
    subparsers.add_parser('new', help='Start a new auction id on this device')
    subparsers.add_parser('purge', help='Clear all cached auction records')

    resume_parser = subparsers.add_parser('resume', help='Resume an auction onto a new session')
    resume_parser.add_argument('auction_id', type=str, help='Auction id to resume')
    resume_parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Write the setup handoff JSON here (default: stdout)'
    )
    resume_parser.add_argument(
        '--log-csv',
        type=str,
        default=None,
        help='Also write the resume log CSV here'
    )

    import_parser = subparsers.add_parser('import-log', help='Read a resume log CSV')
    import_parser.add_argument('csv_path', type=str, help='Path to resume log CSV')

    serve_parser = subparsers.add_parser('serve', help='Run the recovery API')
    serve_parser.add_argument('--host', type=str, default=config.API_HOST)
    serve_parser.add_argument('--port', type=int, default=config.API_PORT)

    return parser.parse_args(argv)


def build_service(args) -> AuctionRecoveryService:
    """Build the recovery service from CLI arguments and environment."""
    database_url = (
        args.database_url
        or os.getenv(config.DATABASE_URL_ENV)
        or config.REMOTE_DATABASE_URL
    )
    cache = LocalCache(Path(args.cache_file))
    cleanup_stale_auctions(cache)

    return AuctionRecoveryService(
        remote_store=RemoteStore(database_url, auth_token=os.getenv(config.DATABASE_AUTH_ENV)),
        cache=cache,
        photo_store=PhotoStore(Path(args.photo_dir))
    )


def run_resume(args, service: AuctionRecoveryService) -> int:
    """Resume an auction and emit the setup handoff."""
    logger = logging.getLogger(__name__)

    try:
        outcome = service.resume(args.auction_id)
    except NoRecoverableAuctionError as e:
        logger.error(str(e))
        logger.info("Start a new auction with: python -m auction_recovery.main new")
        return 1

    payload = outcome.setup.model_dump_json(indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding='utf-8')
        logger.info(f"Setup written to {args.output}")
    else:
        print(payload)

    if args.log_csv:
        export_resume_csv(outcome.state, Path(args.log_csv))

    # Give the detached copy-forward a chance to finish before the process exits
    if outcome.copy_forward is not None:
        wait([outcome.copy_forward])

    logger.info("=" * 60)
    logger.info(f"New auction id: {outcome.setup.auctionId}")
    logger.info(f"Share link: ?auction={outcome.setup.auctionId}")
    logger.info("=" * 60)
    return 0


def main(argv=None) -> int:
    """Main execution function."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.command == 'import-log':
        try:
            state = load_resume_csv(Path(args.csv_path))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read resume log: {e}")
            return 1
        print(json.dumps(state.to_dict(), indent=2))
        return 0

    service = build_service(args)

    if args.command == 'serve':
        import uvicorn
        from .resume.api_server import app, get_recovery_service
        app.dependency_overrides[get_recovery_service] = lambda: service
        uvicorn.run(app, host=args.host, port=args.port)
        return 0

    if args.command == 'recent':
        auctions = service.list_recent_auctions()
        if not auctions:
            logger.info("No recent auctions found. Start a new auction.")
        for auction in auctions:
            print(
                f"{auction.id:10s}  Round {auction.round:<3d}  "
                f"Sold: {auction.playersSold:<4d}  {auction.status}"
            )
        return 0

    if args.command == 'new':
        context = service.start_new_auction()
        print(context.current_auction_id)
        return 0

    if args.command == 'purge':
        cleared = purge_auction_cache(service.cache)
        print(f"Cleared {cleared} cached auction records")
        return 0

    return run_resume(args, service)


if __name__ == '__main__':
    sys.exit(main())
