"""Argument parsing and mode logging for the sweep scripts."""

import argparse
import logging
from datetime import timedelta
from typing import Optional

logger = logging.getLogger(__name__)


def get_arg_parser(description: Optional[str] = None, **kwargs) -> argparse.ArgumentParser:
    """
    Build the parser shared by scripts that delete sightings.

    Every such script is dry-run unless --no-dry-run is given, asks for
    confirmation unless --yes is given, and can override the expiry window
    for one run with --window-minutes.

    Args:
        description: Description of the script (typically from __doc__)
        **kwargs: Additional keyword arguments to pass to ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        **kwargs
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--dry-run',
        dest='dry_run',
        action='store_true',
        default=True,
        help='Only count expired sightings (default)'
    )
    mode.add_argument(
        '--no-dry-run',
        dest='dry_run',
        action='store_false',
        help='Delete expired sightings'
    )
    parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Delete without asking for confirmation'
    )
    parser.add_argument(
        '--window-minutes',
        dest='window',
        type=_positive_minutes,
        default=None,
        metavar='N',
        help='Treat sightings idle for N minutes as expired (default: EXPIRY_WINDOW_MINUTES)'
    )

    return parser


def _positive_minutes(value: str) -> timedelta:
    try:
        minutes = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a whole number of minutes: {value!r}")
    if minutes <= 0:
        raise argparse.ArgumentTypeError("window must be at least one minute")
    return timedelta(minutes=minutes)


def log_dry_run_mode(args: argparse.Namespace, expiry_window: timedelta) -> None:
    """Log whether this run will delete anything and the window it applies."""
    if args.dry_run:
        logger.info(f"Dry-run mode: counting sightings idle for {expiry_window} or longer")
    else:
        logger.info(f"Live mode: deleting sightings idle for {expiry_window} or longer")
