# -*- coding: utf-8 -*-
"""Exceptions raised by the importer."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ImporterError(Exception):
    """Base class for importer failures."""


class LoadError(ImporterError):
    """A dump file could not be read or does not hold a recognizable dump."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class SubmissionError(ImporterError):
    """The ListenBrainz API rejected a request or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(f"HTTP {status}: {message}" if status else message)
        self.status = status
