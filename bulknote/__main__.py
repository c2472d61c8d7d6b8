"""Command line entry point for bulknote."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from bulknote.core import DEFAULT_BASE
from bulknote.commands import (
    cmd_auth_set,
    cmd_auth_info,
    cache_info,
    cache_clear,
    cmd_config_show,
    cmd_config_set,
    cmd_list,
    cmd_export,
    cmd_save,
)

DEFAULT_OUT_DIR = str(Path("~") / "Downloads")


def _add_selection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--folder", default="all", help="Filter: 'all', 'orphans' or a folder id (default: all)")
    p.add_argument("--ids", nargs="+", help="Explicit note ids; overrides --folder")
    p.add_argument("-i", "--interactive", action="store_true", help="Pick folder and notes interactively")
    p.add_argument("--batch-size", type=int, help="Override the configured max batch size for this run")
    p.add_argument("--workers", type=int, default=8, help="Parallel workers for listing requests")
    p.add_argument("--refresh-cache", action="store_true", help="Ignore cache and refetch notes/folders")
    p.add_argument("--show-details", action="store_true", help="Print raw error details for failed notes")
    p.add_argument("--open", action="store_true", help="Open the first result when done")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="bulknote", description="Bulk note export and save CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    sub = parser.add_subparsers(dest="cmd")

    # auth
    p_auth = sub.add_parser("auth", help="Authentication")
    sub_auth = p_auth.add_subparsers(dest="auth_cmd")

    p_auth_set = sub_auth.add_parser("set", help="Save base URL and token to ~/.bulknote.json")
    p_auth_set.add_argument("--base-url", help=f"Base API URL (default: {DEFAULT_BASE})")
    p_auth_set.add_argument("--token", help="Bearer token")
    p_auth_set.set_defaults(func=cmd_auth_set)

    p_auth_info = sub_auth.add_parser("info", help="Show auth info")
    p_auth_info.set_defaults(func=cmd_auth_info)

    # cache utils
    p_cache = sub.add_parser("cache", help="Cache utilities")
    sub_cache = p_cache.add_subparsers(dest="cache_cmd")
    p_cache_info = sub_cache.add_parser("info", help="Show cache location and summary")
    p_cache_info.set_defaults(func=cache_info)
    p_cache_clear = sub_cache.add_parser("clear", help="Delete cache file")
    p_cache_clear.set_defaults(func=cache_clear)

    # batch settings
    p_config = sub.add_parser("config", help="Batch engine settings")
    sub_config = p_config.add_subparsers(dest="config_cmd")
    p_config_show = sub_config.add_parser("show", help="Show effective batch settings")
    p_config_show.set_defaults(func=cmd_config_show)
    p_config_set = sub_config.add_parser("set", help="Change batch settings")
    p_config_set.add_argument("--max-batch-size", type=int, help="Notes processed concurrently (>= 1)")
    p_config_set.add_argument("--max-retries", type=int, help="Retries per note when rate limited")
    p_config_set.add_argument("--base-delay-ms", type=int, help="First backoff delay in ms")
    p_config_set.add_argument("--max-delay-ms", type=int, help="Backoff delay ceiling in ms")
    p_config_set.add_argument("--save-timeout", type=float, help="Seconds before a save is left to finish in background")
    p_config_set.set_defaults(func=cmd_config_set)

    # list
    p_list = sub.add_parser("list", help="List notes or folders")
    p_list.add_argument("--folder", default="all", help="Filter: 'all', 'orphans' or a folder id")
    p_list.add_argument("--folders", action="store_true", help="List folders with note counts")
    p_list.add_argument("--workers", type=int, default=8, help="Parallel workers")
    p_list.add_argument("--refresh-cache", action="store_true", help="Ignore cache and refetch notes/folders")
    p_list.set_defaults(func=cmd_list)

    # export
    p_exp = sub.add_parser("export", help="Export selected notes to a zip archive")
    p_exp.add_argument("--out-dir", default=DEFAULT_OUT_DIR, help="Directory for the archive (default: ~/Downloads)")
    p_exp.add_argument("--kind", choices=["notes", "transcripts"], default="notes", help="What to export")
    _add_selection_args(p_exp)
    p_exp.set_defaults(func=cmd_export)

    # save
    p_save = sub.add_parser("save", help="Save selected notes to the external service")
    _add_selection_args(p_save)
    p_save.set_defaults(func=cmd_save)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.cmd:
        parser.print_help()
        return 0
    if args.cmd == "auth" and not getattr(args, "auth_cmd", None):
        p_auth.print_help()
        return 0
    if args.cmd == "cache" and not getattr(args, "cache_cmd", None):
        p_cache.print_help()
        return 0
    if args.cmd == "config" and not getattr(args, "config_cmd", None):
        p_config.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
