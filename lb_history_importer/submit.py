# -*- coding: utf-8 -*-
"""
Batch-by-batch submission.

Batches go out strictly one after another in the order they are produced.
A rejected batch is reported together with the --after/--before window that
selects it, and the run carries on with the next one. When the server says
the rate limit is used up, the next batch waits for the announced reset.
"""

from __future__ import annotations

import json
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from lb_history_importer.batching import Batch
from lb_history_importer.client import RateLimit
from lb_history_importer.errors import SubmissionError
from lb_history_importer.utils import format_timestamp, log_debug


class ListenSink(Protocol):
    def submit_listens(self, token: str, payloads: List[Dict[str, Any]]) -> RateLimit: ...


@dataclass
class RunState:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    rate_limit: Optional[RateLimit] = None
    # (after, before) windows of rejected batches
    failed_windows: List[Tuple[int, int]] = field(default_factory=list)

    def summary(self) -> str:
        return f"Succeeded: {self.succeeded}, Failed: {self.failed}, Total: {self.total}"


def rerun_window(batch: Batch) -> Tuple[int, int]:
    """Earliest and latest listened_at of a batch, i.e. its --after/--before."""
    stamps = [l.listened_at for l in batch]
    return min(stamps), max(stamps)


def rerun_hint(batch: Batch) -> str:
    after, before = rerun_window(batch)
    return f"> Rerun batch using: --after {format_timestamp(after)} --before {format_timestamp(before)}"


class Submitter:
    """Owns the RunState of one import run."""

    def __init__(
        self,
        client: ListenSink,
        token: str,
        *,
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.token = token
        self.dry_run = dry_run
        self.sleep = sleep
        self.state = RunState()
        # seconds to hold off before the next batch, set by an exhausted rate limit
        self._pending_wait: Optional[int] = None

    def _wait_for_reset(self) -> None:
        if self._pending_wait is None:
            return
        wait, self._pending_wait = self._pending_wait, None
        print(f"API rate limit reached; Will continue in {wait} seconds...")
        self.sleep(wait)

    def submit_batch(self, batch: Batch) -> bool:
        self._wait_for_reset()
        payloads = [l.to_payload() for l in batch]
        if self.dry_run:
            log_debug("[DRY_RUN] PAYLOAD: " + json.dumps(payloads, ensure_ascii=False)[:6000])
            self._record_success(batch, RateLimit())
            return True
        try:
            limit = self.client.submit_listens(self.token, payloads)
        except SubmissionError as exc:
            self._record_failure(batch, exc)
            return False
        self._record_success(batch, limit)
        if limit.exhausted:
            self._pending_wait = limit.reset_in or 0
        return True

    def _record_success(self, batch: Batch, limit: RateLimit) -> None:
        st = self.state
        st.total += len(batch)
        st.succeeded += len(batch)
        st.rate_limit = limit
        verb = "Prepared" if self.dry_run else "Imported"
        print(f"{verb} {len(batch)} listens | {st.summary()}")

    def _record_failure(self, batch: Batch, exc: SubmissionError) -> None:
        st = self.state
        st.total += len(batch)
        st.failed += len(batch)
        st.failed_windows.append(rerun_window(batch))
        print(f"Batch {st.total - len(batch)}-{st.total} failed: {exc}", file=sys.stderr)
        print(rerun_hint(batch), file=sys.stderr)

    def run(self, batches: Iterable[Batch]) -> RunState:
        for batch in batches:
            self.submit_batch(batch)
        return self.state
