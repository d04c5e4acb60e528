import asyncio

import aiohttp
import pytest

from conftest import FakeResponse, FakeSession
from sptlyrics.errors import InvalidResponseError, NetworkError, NotFoundError
from sptlyrics.lrc import LyricLine
from sptlyrics.sources import fetch_lrclib, fetch_spotify

TRACK_ID = "4uLU6hMCjMI75M1A2tKUQC"


def spotify_url(config):
	return f"{config.LYRICS_URL}{TRACK_ID}"


def spotify_payload(sync_type="LINE_SYNCED"):
	return {
		"lyrics": {
			"syncType": sync_type,
			"lines": [
				{"startTimeMs": "1000", "words": "first", "syllables": [], "endTimeMs": "0"},
				{"startTimeMs": "oops", "words": "broken"},
				{"startTimeMs": "2500", "words": "second"},
			],
		}
	}


def test_spotify_normalizes_lines_and_skips_bad_times(config):
	session = FakeSession({spotify_url(config): FakeResponse(payload=spotify_payload())})
	result = asyncio.run(fetch_spotify(config, TRACK_ID, "tok", session=session))

	assert result.is_line_synced
	assert result.lines == (LyricLine(1000, "first"), LyricLine(2500, "second"))

	call = session.calls[0]
	assert call["headers"]["Authorization"] == "Bearer tok"
	assert call["headers"]["App-platform"] == "WebPlayer"
	assert call["params"] == {"format": "json", "market": "from_token"}


def test_spotify_unsynced_type(config):
	session = FakeSession({spotify_url(config): FakeResponse(payload=spotify_payload("UNSYNCED"))})
	assert not asyncio.run(fetch_spotify(config, TRACK_ID, "tok", session=session)).is_line_synced


@pytest.mark.parametrize("response, error", [
	(FakeResponse(status=404), NotFoundError),
	(FakeResponse(status=401), InvalidResponseError),
	(FakeResponse(text="<html>"), InvalidResponseError),
	(FakeResponse(payload={"unexpected": True}), InvalidResponseError),
	(FakeResponse(payload={"lyrics": {"syncType": "LINE_SYNCED", "lines": 7}}), InvalidResponseError),
	(aiohttp.ClientConnectionError("reset"), NetworkError),
	(asyncio.TimeoutError(), NetworkError),
])
def test_spotify_error_mapping(config, response, error):
	session = FakeSession({spotify_url(config): response})
	with pytest.raises(error):
		asyncio.run(fetch_spotify(config, TRACK_ID, "tok", session=session))


def test_lrclib_parses_synced_blob(config):
	blob = "[00:01.00] one\n[00:02.50] two\n"
	session = FakeSession({config.LRCLIB_API_URL: FakeResponse(payload={"syncedLyrics": blob, "plainLyrics": "one\ntwo"})})
	result = asyncio.run(fetch_lrclib(config, "Song", "Band", "Record", 215, session=session))

	assert result.is_line_synced
	assert result.lines == (LyricLine(1000, "one"), LyricLine(2500, "two"))
	assert (result.title, result.artist, result.album) == ("Song", "Band", "Record")
	assert session.calls[0]["params"] == {
		"track_name": "Song",
		"artist_name": "Band",
		"album_name": "Record",
		"duration": "215",
	}
	assert session.calls[0]["headers"]["User-Agent"] == config.LRCLIB_USER_AGENT


@pytest.mark.parametrize("response, error", [
	(FakeResponse(status=404), NotFoundError),
	(FakeResponse(status=500), InvalidResponseError),
	(FakeResponse(payload={"syncedLyrics": None, "plainLyrics": "words"}), InvalidResponseError),
	(FakeResponse(payload={"syncedLyrics": "   \n "}), InvalidResponseError),
	(FakeResponse(payload={"syncedLyrics": "no timestamps here"}), InvalidResponseError),
	(FakeResponse(payload=[]), InvalidResponseError),
	(FakeResponse(payload={"syncedLyrics": 12}), InvalidResponseError),
	(FakeResponse(payload={"syncedLyrics": ["[00:01.00] one"]}), InvalidResponseError),
	(aiohttp.ClientConnectionError("reset"), NetworkError),
])
def test_lrclib_error_mapping(config, response, error):
	session = FakeSession({config.LRCLIB_API_URL: response})
	with pytest.raises(error):
		asyncio.run(fetch_lrclib(config, "Song", "Band", "Record", 215, session=session))


def test_spotify_skips_lines_without_text(config):
	payload = {
		"lyrics": {
			"syncType": "LINE_SYNCED",
			"lines": [
				{"startTimeMs": "1000", "words": None},
				{"startTimeMs": "2000", "words": 42},
				{"startTimeMs": "3000", "words": "kept"},
			],
		}
	}
	session = FakeSession({spotify_url(config): FakeResponse(payload=payload)})
	result = asyncio.run(fetch_spotify(config, TRACK_ID, "tok", session=session))
	assert result.lines == (LyricLine(3000, "kept"),)
