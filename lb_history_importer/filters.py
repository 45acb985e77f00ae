# -*- coding: utf-8 -*-
"""Time window and play-duration filtering."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from lb_history_importer.listen import Listen


def keep(
    listen: Listen,
    before: Optional[int] = None,
    after: Optional[int] = None,
    min_play_ms: Optional[int] = None,
) -> bool:
    """
    True when `after < listened_at < before` (each bound only if set) and the
    listen was played for at least `min_play_ms`. Listens without a known
    duration always pass the duration check.
    """
    if before is not None and listen.listened_at >= before:
        return False
    if after is not None and listen.listened_at <= after:
        return False
    if min_play_ms is not None and listen.ms_played is not None and listen.ms_played < min_play_ms:
        return False
    return True


def filter_listens(
    listens: Iterable[Listen],
    before: Optional[int] = None,
    after: Optional[int] = None,
    min_play_ms: Optional[int] = None,
) -> Iterator[Listen]:
    return (l for l in listens if keep(l, before, after, min_play_ms))
