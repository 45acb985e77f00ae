# -*- coding: utf-8 -*-
"""load -> filter -> sort -> de-dup -> batch -> submit"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from lb_history_importer.batching import batches
from lb_history_importer.config import DEFAULT_BATCH_SIZE
from lb_history_importer.dedup import dedup_listens
from lb_history_importer.filters import filter_listens
from lb_history_importer.listen import Listen
from lb_history_importer.loader import DumpFormat, LoaderConfig, load_all
from lb_history_importer.submit import ListenSink, RunState, Submitter


@dataclass(frozen=True)
class ImportOptions:
    fmt: DumpFormat
    before: Optional[int] = None
    after: Optional[int] = None
    min_play_ms: Optional[int] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    dry_run: bool = False

    @property
    def dedup_window(self) -> int:
        return (self.min_play_ms or 0) // 1000


def prepare_listens(files: List[Path], opts: ImportOptions, config: LoaderConfig) -> List[Listen]:
    """Everything that should be submitted, oldest first."""
    kept = filter_listens(load_all(files, opts.fmt, config), opts.before, opts.after, opts.min_play_ms)
    ordered = sorted(kept, key=lambda l: l.listened_at)
    if opts.fmt.dedups:
        before = len(ordered)
        ordered = dedup_listens(ordered, opts.dedup_window)
        if len(ordered) != before:
            print(f"Removed {before - len(ordered)} duplicate listens.")
    return ordered


def make_submitter(client: ListenSink, token: str, opts: ImportOptions,
                   sleep: Callable[[float], None] = time.sleep) -> Submitter:
    return Submitter(client, token, dry_run=opts.dry_run, sleep=sleep)


def run_import(listens: List[Listen], submitter: Submitter, opts: ImportOptions) -> RunState:
    if not listens:
        print("Nothing to import after filtering.")
        return submitter.state
    print(f"{len(listens)} listens to import in batches of {opts.batch_size}.")
    return submitter.run(batches(listens, opts.batch_size))
