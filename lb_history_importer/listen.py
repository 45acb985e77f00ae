# -*- coding: utf-8 -*-
"""
Uniform listen model.

Every dump format is normalized into a Listen. Each source variant knows how
to build itself from one raw dump entry and how to describe itself in the
`additional_info` block of a ListenBrainz submission payload.
"""

from __future__ import annotations

import datetime as dt
import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from lb_history_importer import CLIENT_NAME, __version__
from lb_history_importer.utils import parse_rfc3339

# Spotify 'endTime' in the account-data export (UTC, minute precision)
SIMPLE_TIME_FMT = "%Y-%m-%d %H:%M"

# offline_timestamp is milliseconds in extended history; smaller values are seconds
MS_TIMESTAMP_CUTOFF = 10 ** 11

SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{}"

# dump-internal ids that must not be re-submitted
LB_DROPPED_INFO_KEYS = ("recording_msid", "release_msid", "artist_msid")
LB_MBID_KEYS = ("recording_mbid", "release_mbid", "artist_mbids")


class InvalidEntry(ValueError):
    """A dump entry that cannot be normalized into a Listen."""


class EndReason(enum.Enum):
    """Why Spotify stopped playing a track (`reason_end`)."""

    APPLOAD = "appload"
    BACKBTN = "backbtn"
    CLICKROW = "clickrow"
    ENDPLAY = "endplay"
    FWDBTN = "fwdbtn"
    LOGOUT = "logout"
    PLAYBTN = "playbtn"
    REMOTE = "remote"
    TRACKDONE = "trackdone"
    TRACKERROR = "trackerror"
    UNEXPECTED_EXIT = "unexpected-exit"
    UNEXPECTED_EXIT_WHILE_PAUSED = "unexpected-exit-while-paused"
    UNKNOWN = "unknown"
    # any other "unexpected-*" tag
    UNEXPECTED_OTHER = "unexpected-*"
    UNRECOGNIZED = "*"

    @classmethod
    def parse(cls, tag: Optional[str]) -> Optional["EndReason"]:
        if not tag:
            return None
        try:
            reason = cls(tag)
        except ValueError:
            reason = None
        if reason is None or reason in (cls.UNEXPECTED_OTHER, cls.UNRECOGNIZED):
            return cls.UNEXPECTED_OTHER if tag.startswith("unexpected-") else cls.UNRECOGNIZED
        return reason

    @property
    def is_interruption(self) -> bool:
        return self in INTERRUPTIONS


INTERRUPTIONS = frozenset({
    EndReason.LOGOUT,
    EndReason.REMOTE,
    EndReason.TRACKERROR,
    EndReason.UNKNOWN,
    EndReason.UNEXPECTED_EXIT,
    EndReason.UNEXPECTED_EXIT_WHILE_PAUSED,
    EndReason.UNEXPECTED_OTHER,
})


@dataclass(frozen=True)
class Listen:
    listened_at: int
    track_name: str
    artist_name: str
    release_name: Optional[str] = None
    ms_played: Optional[int] = None
    track_identifier: Optional[str] = None
    end_reason: Optional[EndReason] = None
    extra_metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.track_name, str) or not isinstance(self.artist_name, str):
            raise InvalidEntry("track and artist names must be strings")
        if not self.track_name or not self.artist_name:
            raise InvalidEntry("missing track or artist name")

    @property
    def identity(self) -> Union[str, Tuple[str, str]]:
        """What makes two plays 'the same track' for de-duplication."""
        return self.track_identifier or (self.artist_name, self.track_name)

    def additional_info(self) -> Dict[str, Any]:
        return dict(self.extra_metadata)

    def to_payload(self) -> Dict[str, Any]:
        info = self.additional_info()
        info["submission_client"] = CLIENT_NAME
        info["submission_client_version"] = __version__
        meta: Dict[str, Any] = {
            "track_name": self.track_name,
            "artist_name": self.artist_name,
        }
        if self.release_name:
            meta["release_name"] = self.release_name
        meta["additional_info"] = info
        return {"listened_at": self.listened_at, "track_metadata": meta}

def _opt_str(value: Any, name: str) -> Optional[str]:
    """Empty or missing -> None; anything but a string is a bad entry."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidEntry(f"bad {name}: {value!r}")
    return value


# ---------------------------
# Spotify
# ---------------------------

def _first(entry: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        v = entry.get(k)
        if v is not None:
            return v
    return None


def parse_spotify_time(raw: Any) -> int:
    """'ts' (RFC3339) or 'endTime' ('YYYY-MM-DD HH:MM', UTC) -> unix seconds."""
    if not isinstance(raw, str):
        raise InvalidEntry(f"bad timestamp: {raw!r}")
    try:
        return int(parse_rfc3339(raw).timestamp())
    except ValueError:
        pass
    try:
        d = dt.datetime.strptime(raw, SIMPLE_TIME_FMT).replace(tzinfo=dt.timezone.utc)
    except ValueError as exc:
        raise InvalidEntry(f"bad timestamp: {raw!r}") from exc
    return int(d.timestamp())


def parse_offline_time(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    return value // 1000 if value >= MS_TIMESTAMP_CUTOFF else value


@dataclass(frozen=True)
class SpotifyListen(Listen):
    """One play from a Spotify extended-history or account-data export."""

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any], offline_guard: int = 0) -> "SpotifyListen":
        if not isinstance(entry, Mapping):
            raise InvalidEntry("entry is not an object")
        listened_at = parse_spotify_time(_first(entry, "ts", "endTime"))
        offline = parse_offline_time(entry.get("offline_timestamp"))
        if offline is not None and offline > offline_guard:
            listened_at = offline

        ms_raw = _first(entry, "ms_played", "msPlayed")
        try:
            ms_played = int(ms_raw) if ms_raw is not None else None
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidEntry(f"bad ms_played: {ms_raw!r}") from exc
        if ms_played is not None and ms_played < 0:
            raise InvalidEntry(f"bad ms_played: {ms_raw!r}")

        return cls(
            listened_at=listened_at,
            track_name=_first(entry, "master_metadata_track_name", "trackName") or "",
            artist_name=_first(entry, "master_metadata_album_artist_name", "artistName") or "",
            release_name=_opt_str(entry.get("master_metadata_album_album_name"), "album"),
            ms_played=ms_played,
            track_identifier=_opt_str(entry.get("spotify_track_uri"), "spotify_track_uri"),
            end_reason=EndReason.parse(_opt_str(entry.get("reason_end"), "reason_end")),
        )

    def additional_info(self) -> Dict[str, Any]:
        info = super().additional_info()
        info["music_service"] = "spotify.com"
        if self.track_identifier and ":" in self.track_identifier:
            url = SPOTIFY_TRACK_URL.format(self.track_identifier.rsplit(":", 1)[1])
            info["spotify_id"] = url
            info["origin_url"] = url
        return info

# ---------------------------
# ListenBrainz
# ---------------------------

@dataclass(frozen=True)
class ListenBrainzListen(Listen):
    """One listen from a ListenBrainz user export."""

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "ListenBrainzListen":
        if not isinstance(entry, Mapping):
            raise InvalidEntry("entry is not an object")
        listened_at = entry.get("listened_at")
        if isinstance(listened_at, bool) or not isinstance(listened_at, (int, float)):
            raise InvalidEntry(f"bad listened_at: {listened_at!r}")
        if not math.isfinite(listened_at):
            raise InvalidEntry(f"bad listened_at: {listened_at!r}")
        listened_at = int(listened_at)
        meta = entry.get("track_metadata")
        if not isinstance(meta, Mapping):
            raise InvalidEntry("missing track_metadata")

        info = meta.get("additional_info")
        extra: Dict[str, Any] = dict(info) if isinstance(info, Mapping) else {}
        for k in LB_DROPPED_INFO_KEYS:
            extra.pop(k, None)
        mapping = meta.get("mbid_mapping")
        if isinstance(mapping, Mapping):
            for k in LB_MBID_KEYS:
                if mapping.get(k):
                    extra[k] = mapping[k]

        return cls(
            listened_at=listened_at,
            track_name=meta.get("track_name") or "",
            artist_name=meta.get("artist_name") or "",
            release_name=_opt_str(meta.get("release_name"), "release_name"),
            extra_metadata=extra,
        )
