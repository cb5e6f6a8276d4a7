"""Shared helpers for operational scripts."""

from .arg_parser import get_arg_parser, log_dry_run_mode

__all__ = ['get_arg_parser', 'log_dry_run_mode']
