# -*- coding: utf-8 -*-
"""Fixed-size batching of an ordered listen stream."""

from __future__ import annotations

from itertools import islice
from typing import Iterable, Iterator, Tuple

from lb_history_importer.listen import Listen

Batch = Tuple[Listen, ...]


def batches(listens: Iterable[Listen], size: int) -> Iterator[Batch]:
    """Yield consecutive batches of at most `size` listens, in input order."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    it = iter(listens)
    while True:
        batch = tuple(islice(it, size))
        if not batch:
            return
        yield batch
