# -*- coding: utf-8 -*-
"""
Collapse near-duplicate Spotify plays.

Spotify logs a new row every time playback of a track is interrupted and
resumed, so one real listen can show up several times. Rows for the same
track that end within the de-dup window of the next kept play, or that ended
because of an interruption, are folded into that play.
"""

from __future__ import annotations

import sys
from typing import List, Sequence

from lb_history_importer.listen import Listen
from lb_history_importer.utils import log_debug


def is_duplicate(candidate: Listen, kept: Listen, window_seconds: int) -> bool:
    """`candidate` is earlier than `kept`, which was already accepted."""
    if candidate.identity != kept.identity:
        return False
    if abs(kept.listened_at - candidate.listened_at) <= window_seconds:
        return True
    return candidate.end_reason is not None and candidate.end_reason.is_interruption


def dedup_listens(listens: Sequence[Listen], window_seconds: int) -> List[Listen]:
    """
    `listens` must be sorted ascending by listened_at. Scans latest to
    earliest, comparing each play against the last one kept; the result is
    ascending again.
    """
    kept: List[Listen] = []
    for listen in reversed(listens):
        if kept and is_duplicate(listen, kept[-1], window_seconds):
            print(f"Ignoring duplicate listen for `{listen.track_name}` by `{listen.artist_name}`", file=sys.stderr)
            log_debug(f"[DEDUP] dropped {listen!r} (kept {kept[-1]!r})")
            continue
        kept.append(listen)
    kept.reverse()
    return kept
