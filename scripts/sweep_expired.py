"""
Delete expired sightings on demand.

Counts sightings whose last activity is older than the expiry window and,
in live mode, deletes them. Useful when the API's background sweeper is
disabled (SWEEP_ENABLED=false) or the API is not running.

Usage:
    python scripts/sweep_expired.py                     # Dry-run (count only)
    python scripts/sweep_expired.py --no-dry-run --yes  # Delete

Defaults to dry-run mode. Use --no-dry-run to write to database.
Use --yes to skip the confirmation prompt.
"""

import logging
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from wildlife_tracker.config import Settings
from wildlife_tracker.database.connection import check_connection, create_db_engine, create_session_factory
from wildlife_tracker.exceptions import StoreUnavailable
from wildlife_tracker.script_utils import get_arg_parser, log_dry_run_mode
from wildlife_tracker.services.sighting_store import SightingStore


logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    args = get_arg_parser(description=__doc__).parse_args()

    settings = Settings.from_env()
    window = args.window or settings.expiry_window
    log_dry_run_mode(args, window)

    engine = create_db_engine(settings.database_url)

    try:
        check_connection(engine)
    except StoreUnavailable as e:
        logger.error(str(e))
        return 1

    db = create_session_factory(engine)()
    try:
        store = SightingStore(db, expiry_window=window)
        expired = store.count_expired()
        logger.info(f"Expired sightings (window {store.expiry_window}): {expired}")

        if expired == 0:
            logger.info("Nothing to do.")
            return 0

        if args.dry_run:
            logger.info("DRY RUN complete. Run with --no-dry-run --yes to delete.")
            return 0

        if not args.yes:
            logger.info("WARNING: This will permanently delete sightings!")
            response = input("Type 'yes' to confirm: ").strip().lower()
            if response != 'yes':
                logger.info("Aborted.")
                return 0

        deleted = store.delete_expired()
        logger.info(f"Deleted {deleted} expired sightings")
        return 0
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
