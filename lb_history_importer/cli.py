# -*- coding: utf-8 -*-
"""
Command line entry point.

    lb-history-importer --spotify -t <token> endsong_*.json
    lb-history-importer --listenbrainz --after 2022-01-01 user_lb-2023-01-01.json

The token is checked once before any file is read; an invalid token is the
only thing that stops a run early. Unreadable files and rejected batches are
reported and skipped.
"""

from __future__ import annotations

import argparse
import datetime as dt
import os
import time
import uuid
from pathlib import Path
from typing import Callable, List, Optional

from lb_history_importer import __version__
from lb_history_importer.client import ListenBrainzClient
from lb_history_importer.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MIN_PLAY_TIME,
    TOKEN_ENV,
    delete_config,
    load_config,
    save_config,
)
from lb_history_importer.errors import SubmissionError
from lb_history_importer.loader import DumpFormat, LoaderConfig
from lb_history_importer.pipeline import ImportOptions, make_submitter, prepare_listens, run_import
from lb_history_importer.utils import enable_debug_log, error, log_debug, parse_datetime

# ---------------------------
# Argument types
# ---------------------------

def datetime_arg(s: str) -> dt.datetime:
    try:
        return parse_datetime(s)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def token_arg(s: str) -> str:
    try:
        return str(uuid.UUID(s.strip()))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a ListenBrainz token: {s!r}") from exc


def positive_int(s: str) -> int:
    try:
        n = int(s)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {s!r}") from exc
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def non_negative_int(s: str) -> int:
    try:
        n = int(s)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {s!r}") from exc
    if n < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lb-history-importer",
        description="Import play history from a history dump into a ListenBrainz instance.",
    )
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-t", "--token", type=token_arg, help=f"ListenBrainz API token (env: {TOKEN_ENV})")
    p.add_argument("-u", "--url", help="URL of the ListenBrainz compatible API to import into")
    p.add_argument("-b", "--before", type=datetime_arg, help="Only import tracks played before this date/time")
    p.add_argument("-a", "--after", type=datetime_arg, help="Only import tracks played after this date/time")
    p.add_argument("--batch-size", type=positive_int, default=DEFAULT_BATCH_SIZE,
                   help=f"How many listens to import per request (default: {DEFAULT_BATCH_SIZE})")
    p.add_argument("--dry-run", action="store_true", help="Build requests but do not submit")
    p.add_argument("--debug", action="store_true", help="Write lb_import_debug.log")
    p.add_argument("--save-token", action="store_true", help="Remember the token and URL for later runs")
    p.add_argument("--auth-reset", action="store_true", help="Forget a remembered token")

    services = p.add_argument_group("Services")
    which = services.add_mutually_exclusive_group(required=True)
    which.add_argument("--spotify", dest="fmt", action="store_const", const=DumpFormat.SPOTIFY,
                       help=r"Import files from a spotify dump (endsong_\d+.json | StreamingHistory\d+.json)")
    which.add_argument("--listenbrainz", dest="fmt", action="store_const", const=DumpFormat.LISTENBRAINZ,
                       help=r"Import files from a listenbrainz dump (\w+_lb-\d{4}-\d{2}-\d{2}.json)")

    spotify = p.add_argument_group("Spotify Options")
    spotify.add_argument("--min-play-time", type=non_negative_int, default=None,
                         help=f"Minimum play time in seconds for a track to be imported (default: {DEFAULT_MIN_PLAY_TIME})")

    p.add_argument("files", nargs="+", type=Path, help="One or more json files, directories or zip archives")
    return p


def options_from_args(args: argparse.Namespace) -> ImportOptions:
    min_play_ms = None
    if args.fmt is DumpFormat.SPOTIFY:
        secs = DEFAULT_MIN_PLAY_TIME if args.min_play_time is None else args.min_play_time
        min_play_ms = secs * 1000
    return ImportOptions(
        fmt=args.fmt,
        before=int(args.before.timestamp()) if args.before else None,
        after=int(args.after.timestamp()) if args.after else None,
        min_play_ms=min_play_ms,
        batch_size=args.batch_size,
        dry_run=args.dry_run,
    )

# ---------------------------
# Main
# ---------------------------

def main(argv: Optional[List[str]] = None, sleep: Callable[[float], None] = time.sleep) -> None:
    p = build_parser()
    args = p.parse_args(argv)

    if args.debug:
        enable_debug_log()
    if args.auth_reset:
        delete_config()
        print("Cleared cached credentials.")
    if args.min_play_time is not None and args.fmt is not DumpFormat.SPOTIFY:
        p.error("--min-play-time requires --spotify")

    cfg = load_config()
    token = args.token or os.environ.get(TOKEN_ENV) or cfg.get("token")
    url = args.url or cfg.get("url")
    if token and not args.token:
        try:
            token = token_arg(token)
        except argparse.ArgumentTypeError as exc:
            p.error(str(exc))
    if not token and not args.dry_run:
        p.error(f"a token is required (--token or {TOKEN_ENV})")

    client = ListenBrainzClient(url)
    if not args.dry_run:
        try:
            valid = client.validate_token(token)
        except SubmissionError as exc:
            error(str(exc))
            raise SystemExit(1)
        if not valid:
            error("Invalid token")
            raise SystemExit(1)
        if args.save_token:
            cfg.update({"token": token})
            if args.url:
                cfg["url"] = args.url
            save_config(cfg)

    opts = options_from_args(args)
    log_debug(f"[RUN] {opts!r} files={[str(f) for f in args.files]}")

    submitter = make_submitter(client, token or "", opts, sleep=sleep)
    try:
        listens = prepare_listens(args.files, opts, LoaderConfig.default())
        state = run_import(listens, submitter, opts)
    except KeyboardInterrupt:
        print(f"\nInterrupted. {submitter.state.summary()}")
        raise SystemExit(130)

    print(f"Finished. {state.summary()}")
    if state.failed_windows:
        print(f"{len(state.failed_windows)} batch(es) failed; rerun them with the --after/--before hints above.")


if __name__ == "__main__":
    main()
