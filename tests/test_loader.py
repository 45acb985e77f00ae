import json
import zipfile

import pytest

from lb_history_importer.errors import LoadError
from lb_history_importer.loader import (
    DumpFormat,
    LoaderConfig,
    load_all,
    load_file,
    parse_dump,
    resolve_inputs,
)
from lb_history_importer.listen import ListenBrainzListen, SpotifyListen
from tests.test_listen import FULL_SAMPLE, LB_SAMPLE, SIMPLE_SAMPLE

SPOTIFY = DumpFormat.SPOTIFY
LB = DumpFormat.LISTENBRAINZ


@pytest.fixture
def config():
    return LoaderConfig.default()


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.mark.parametrize("name, fmt, expected", [
    ("endsong_0.json", SPOTIFY, True),
    ("StreamingHistory3.json", SPOTIFY, True),
    ("StreamingHistory_music_0.json", SPOTIFY, True),
    ("Streaming_History_Audio_2019-2020_0.json", SPOTIFY, True),
    ("Streaming_History_Video_2019-2020.json", SPOTIFY, False),
    ("StreamingHistory_podcast_0.json", SPOTIFY, False),
    ("someone_lb-2023-01-01.json", LB, True),
    ("listens/2023/1.jsonl", LB, True),
    ("endsong_0.json", LB, False),
    ("someone_lb-2023-01-01.json", SPOTIFY, False),
])
def test_file_name_patterns(config, name, fmt, expected):
    assert config.matches(fmt, name) is expected


def test_bad_entries_are_skipped(config, capsys):
    raw = json.dumps([FULL_SAMPLE, {"ts": "nope"}, 42, SIMPLE_SAMPLE, dict(FULL_SAMPLE, master_metadata_track_name=None)])
    listens = parse_dump("endsong_0.json", raw.encode(), SPOTIFY, config)
    assert len(listens) == 2
    assert all(isinstance(l, SpotifyListen) for l in listens)
    assert "Skipped 3 unusable entries in 'endsong_0.json'." in capsys.readouterr().out


@pytest.mark.parametrize("raw", [b"{not json", b'{"an": "object"}', b"\xff\xfe\x00"])
def test_unusable_file_raises(config, raw):
    with pytest.raises(LoadError):
        parse_dump("endsong_0.json", raw, SPOTIFY, config)


def test_jsonl_export(config):
    lines = [json.dumps(LB_SAMPLE), "", "{broken", json.dumps(dict(LB_SAMPLE, listened_at=1669318400))]
    listens = parse_dump("1.jsonl", "\n".join(lines).encode(), LB, config)
    assert [l.listened_at for l in listens] == [1669318360, 1669318400]
    assert all(isinstance(l, ListenBrainzListen) for l in listens)


def test_missing_file_raises(tmp_path, config):
    with pytest.raises(LoadError):
        load_file(tmp_path / "endsong_9.json", SPOTIFY, config)


def test_resolve_inputs_walks_directories(tmp_path, config, capsys):
    d = tmp_path / "export"
    d.mkdir()
    write_json(d / "endsong_1.json", [])
    write_json(d / "endsong_0.json", [])
    write_json(d / "Streaming_History_Video_2020.json", [])
    write_json(d / "Userdata.json", {})
    explicit = write_json(tmp_path / "renamed.json", [])

    found = resolve_inputs([d, explicit, tmp_path / "missing.json"], SPOTIFY, config)
    assert [p.name for p in found] == ["endsong_0.json", "endsong_1.json", "renamed.json"]
    err = capsys.readouterr().err
    assert "'renamed.json' does not look like a spotify dump" in err
    assert "missing.json not found" in err


def test_load_all_skips_bad_files(tmp_path, config, capsys):
    good = write_json(tmp_path / "endsong_0.json", [FULL_SAMPLE])
    bad = tmp_path / "endsong_1.json"
    bad.write_text("[{", encoding="utf-8")
    later = write_json(tmp_path / "endsong_2.json", [SIMPLE_SAMPLE])

    listens = list(load_all([good, bad, later], SPOTIFY, config))
    assert len(listens) == 2
    assert "endsong_1.json: invalid JSON" in capsys.readouterr().err


def test_zip_archive(tmp_path, config, capsys):
    archive = tmp_path / "my_spotify_data.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("MyData/endsong_0.json", json.dumps([FULL_SAMPLE]))
        zf.writestr("MyData/endsong_1.json", "garbage")
        zf.writestr("MyData/Streaming_History_Video_2020.json", json.dumps([FULL_SAMPLE]))
        zf.writestr("MyData/Userdata.json", "{}")

    listens = list(load_all([archive], SPOTIFY, config))
    assert len(listens) == 1
    captured = capsys.readouterr()
    assert "Importing 'MyData/endsong_0.json' from 'my_spotify_data.zip'" in captured.out
    assert "invalid JSON" in captured.err


def test_broken_zip_is_skipped(tmp_path, config, capsys):
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"not a zip")
    assert list(load_all([archive], SPOTIFY, config)) == []
    assert "cannot open archive" in capsys.readouterr().err


def test_wrongly_typed_entries_are_skipped(config, capsys):
    raw = json.dumps([
        FULL_SAMPLE,
        dict(FULL_SAMPLE, reason_end=5),
        dict(FULL_SAMPLE, spotify_track_uri=12345),
        dict(FULL_SAMPLE, master_metadata_track_name=7),
        SIMPLE_SAMPLE,
    ])
    listens = parse_dump("endsong_0.json", raw.encode(), SPOTIFY, config)
    assert len(listens) == 2
    # every kept listen can be turned into a payload
    assert [l.to_payload()["listened_at"] for l in listens]
    assert "Skipped 3 unusable entries" in capsys.readouterr().out


def test_overflowing_listenbrainz_timestamp_is_skipped(config, capsys):
    raw = "[" + json.dumps(LB_SAMPLE) + ', {"listened_at": 1e400, "track_metadata": {}}]'
    listens = parse_dump("someone_lb-2023-01-01.json", raw.encode(), LB, config)
    assert [l.listened_at for l in listens] == [1669318360]
    assert "Skipped 1 unusable entry" in capsys.readouterr().out
