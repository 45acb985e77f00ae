# -*- coding: utf-8 -*-
"""
Dump loading.

Accepts JSON files, directories (searched recursively) and .zip archives.
A file that cannot be read or parsed is skipped with a warning; a single bad
entry inside an otherwise good file is skipped on its own.
"""

from __future__ import annotations

import enum
import json
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Pattern, Tuple

from lb_history_importer.errors import LoadError
from lb_history_importer.listen import InvalidEntry, Listen, ListenBrainzListen, SpotifyListen
from lb_history_importer.utils import log_debug, warn


class DumpFormat(enum.Enum):
    SPOTIFY = "spotify"
    LISTENBRAINZ = "listenbrainz"

    @property
    def dedups(self) -> bool:
        """Whether this dump logs interrupted plays as separate entries."""
        return self is DumpFormat.SPOTIFY


# file names as they appear inside each service's export
DEFAULT_PATTERNS: Dict[DumpFormat, str] = {
    DumpFormat.SPOTIFY: r"^(endsong_\d+|StreamingHistory(_music_)?\d+|Streaming_History_Audio_[\w-]+)\.json$",
    DumpFormat.LISTENBRAINZ: r"^(\w+_lb-\d{4}-\d{2}-\d{2}\.json|\d+\.jsonl)$",
}


@dataclass(frozen=True)
class LoaderConfig:
    patterns: Dict[DumpFormat, Pattern[str]]
    offline_guard: int = 0

    @classmethod
    def default(cls, offline_guard: int = 0) -> "LoaderConfig":
        return cls(
            patterns={fmt: re.compile(p) for fmt, p in DEFAULT_PATTERNS.items()},
            offline_guard=offline_guard,
        )

    def matches(self, fmt: DumpFormat, name: str) -> bool:
        return bool(self.patterns[fmt].match(Path(name).name))

# ---------------------------
# Input discovery
# ---------------------------

def resolve_inputs(paths: Iterable[Path], fmt: DumpFormat, config: LoaderConfig) -> List[Path]:
    """
    Expand directories into the dump files (and archives) they contain. Files
    named explicitly are kept even if their name looks unfamiliar.
    """
    out: List[Path] = []
    for p in paths:
        if p.is_dir():
            found = [
                f for f in sorted(p.rglob("*"))
                if f.is_file() and (f.suffix.lower() == ".zip" or config.matches(fmt, f.name))
            ]
            if not found:
                warn(f"no {fmt.value} dump files found in {p}")
            out.extend(found)
        elif p.is_file():
            if p.suffix.lower() != ".zip" and not config.matches(fmt, p.name):
                warn(f"'{p.name}' does not look like a {fmt.value} dump; trying anyway")
            out.append(p)
        else:
            warn(f"{p} not found or unsupported, skipped.")
    return out

# ---------------------------
# Parsing
# ---------------------------

def _decode_entries(name: str, raw: bytes) -> Tuple[List[Any], int]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise LoadError(Path(name), f"not UTF-8 text ({exc})") from exc

    if name.lower().endswith(".jsonl"):
        entries: List[Any] = []
        bad = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                entries.append(json.loads(line))
            except ValueError:
                bad += 1
        return entries, bad

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise LoadError(Path(name), f"invalid JSON ({exc})") from exc
    if not isinstance(data, list):
        raise LoadError(Path(name), "expected a list of listens")
    return data, 0


def normalize(entry: Any, fmt: DumpFormat, config: LoaderConfig) -> Listen:
    if fmt is DumpFormat.SPOTIFY:
        return SpotifyListen.from_entry(entry, offline_guard=config.offline_guard)
    return ListenBrainzListen.from_entry(entry)


def parse_dump(name: str, raw: bytes, fmt: DumpFormat, config: LoaderConfig) -> List[Listen]:
    """Raw dump bytes -> listens. Raises LoadError if the content is unusable."""
    entries, skipped = _decode_entries(name, raw)
    listens: List[Listen] = []
    for entry in entries:
        try:
            listens.append(normalize(entry, fmt, config))
        except InvalidEntry as exc:
            skipped += 1
            log_debug(f"[SKIP] {name}: {exc}: {json.dumps(entry, ensure_ascii=False, default=str)[:500]}")
    if skipped:
        print(f"Skipped {skipped} unusable entr{'y' if skipped == 1 else 'ies'} in '{name}'.")
    return listens


def load_file(path: Path, fmt: DumpFormat, config: LoaderConfig) -> List[Listen]:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise LoadError(path, str(exc)) from exc
    return parse_dump(path.name, raw, fmt, config)


def load_zip(path: Path, fmt: DumpFormat, config: LoaderConfig) -> Iterator[Listen]:
    """Matching members of an archive; a bad member is skipped with a warning."""
    try:
        zf = zipfile.ZipFile(path, "r")
    except (OSError, zipfile.BadZipFile) as exc:
        raise LoadError(path, f"cannot open archive ({exc})") from exc
    with zf:
        for name in sorted(zf.namelist()):
            if name.endswith("/") or not config.matches(fmt, name):
                continue
            print(f"Importing '{name}' from '{path.name}'")
            try:
                listens = parse_dump(name, zf.read(name), fmt, config)
            except LoadError as exc:
                warn(f"{path.name}: {exc}")
                continue
            except (OSError, zipfile.BadZipFile) as exc:
                warn(f"{path.name}: cannot read {name} ({exc})")
                continue
            yield from listens


def load_all(paths: Iterable[Path], fmt: DumpFormat, config: LoaderConfig) -> Iterator[Listen]:
    """Every listen from every input, in file order. Unusable files are skipped."""
    for p in resolve_inputs(paths, fmt, config):
        try:
            if p.suffix.lower() == ".zip":
                yield from load_zip(p, fmt, config)
            else:
                print(f"Importing file '{p}'")
                yield from load_file(p, fmt, config)
        except LoadError as exc:
            warn(str(exc))
