from typing import Optional

import pytest

from lb_history_importer.config import TOKEN_ENV
from lb_history_importer.listen import EndReason, Listen
from lb_history_importer.utils import disable_debug_log


def make_listen(
    ts: int,
    track: str = "Burn Brighter",
    artist: str = "Lansdowne",
    uri: Optional[str] = "spotify:track:6BUMVGOnIeOIE6YetJGGDT",
    reason: Optional[EndReason] = None,
    ms_played: Optional[int] = None,
) -> Listen:
    return Listen(
        listened_at=ts,
        track_name=track,
        artist_name=artist,
        ms_played=ms_played,
        track_identifier=uri,
        end_reason=reason,
    )


@pytest.fixture
def listen():
    return make_listen


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real config file, token and debug log."""
    monkeypatch.setenv("LB_IMPORTER_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.delenv(TOKEN_ENV, raising=False)
    yield
    disable_debug_log()
