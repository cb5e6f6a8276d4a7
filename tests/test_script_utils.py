"""Tests for the shared sweep-script argument parser."""

import logging
from datetime import timedelta

import pytest

from wildlife_tracker.script_utils import get_arg_parser, log_dry_run_mode


def test_defaults_to_dry_run():
    args = get_arg_parser().parse_args([])

    assert args.dry_run is True
    assert args.yes is False
    assert args.window is None


def test_live_run_with_window_override():
    args = get_arg_parser().parse_args(["--no-dry-run", "-y", "--window-minutes", "90"])

    assert args.dry_run is False
    assert args.yes is True
    assert args.window == timedelta(minutes=90)


@pytest.mark.parametrize("value", ["0", "-10", "soon"])
def test_window_must_be_positive_minutes(value):
    with pytest.raises(SystemExit):
        get_arg_parser().parse_args(["--window-minutes", value])


def test_dry_run_and_live_are_exclusive():
    with pytest.raises(SystemExit):
        get_arg_parser().parse_args(["--dry-run", "--no-dry-run"])


def test_log_reports_mode_and_window(caplog):
    parser = get_arg_parser()

    with caplog.at_level(logging.INFO, logger="wildlife_tracker.script_utils.arg_parser"):
        log_dry_run_mode(parser.parse_args([]), timedelta(hours=1))
        log_dry_run_mode(parser.parse_args(["--no-dry-run"]), timedelta(minutes=5))

    assert "Dry-run mode: counting sightings idle for 1:00:00 or longer" in caplog.text
    assert "Live mode: deleting sightings idle for 0:05:00 or longer" in caplog.text
