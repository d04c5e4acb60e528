import pytest

from sptlyrics.errors import DecodeError, IntegrityError
from sptlyrics.lrc import LyricLine, LyricSet, Track, decode_line, decode_lines, encode_line, encode_lines


@pytest.mark.parametrize("start_ms, expected", [
	(0, "[00:00.00]x"),
	(1234, "[00:01.23]x"),
	(1235, "[00:01.24]x"),
	(59995, "[01:00.00]x"),
	(754321, "[12:34.32]x"),
])
def test_encode_line_rounds_to_nearest_centisecond(start_ms, expected):
	assert encode_line(LyricLine(start_ms, "x")) == expected


def test_decode_line_parses_minutes_seconds_fraction():
	assert decode_line("[01:02.34] hello ") == LyricLine(62340, "hello")
	assert decode_line("[00:01.234]ms") == LyricLine(1234, "ms")
	assert decode_line("[00:01.5]tenths") == LyricLine(1500, "tenths")
	assert decode_line("[00:07.00]") == LyricLine(7000, "")


@pytest.mark.parametrize("line", ["no timestamp", "[ti:Song]", "[0102.34]x", "[aa:bb.cc]x"])
def test_decode_line_rejects_malformed(line):
	with pytest.raises(DecodeError):
		decode_line(line)


def test_round_trip_keeps_times_to_ten_milliseconds():
	for start_ms in (0, 7, 995, 61234, 3599999):
		decoded = decode_line(encode_line(LyricLine(start_ms, "words")))
		assert abs(decoded.start_time_ms - start_ms) <= 5
		assert decoded.start_time_ms % 10 == 0
		assert decoded.text == "words"


def test_decode_lines_reads_tags_and_skips_bad_lines():
	lyric_set = decode_lines([
		"[sync:line]",
		"[ti:Title]",
		"[ar:Artist]",
		"[al:Album]",
		"[00:01.00]first",
		"garbage",
		"",
		"[00:02.50]second",
	])
	assert lyric_set.is_line_synced
	assert (lyric_set.title, lyric_set.artist, lyric_set.album) == ("Title", "Artist", "Album")
	assert lyric_set.lines == (LyricLine(1000, "first"), LyricLine(2500, "second"))


def test_encode_lines_puts_sync_flag_first():
	lyric_set = LyricSet(lines=(LyricLine(0, "a"),), is_line_synced=False, title="T")
	assert encode_lines(lyric_set) == ["[sync:unknown]", "[ti:T]", "[ar:]", "[al:]", "[00:00.00]a"]


def test_lyric_set_sorts_lines_and_guards_error_state():
	lyric_set = LyricSet(lines=(LyricLine(2000, "b"), LyricLine(1000, "a")), is_line_synced=True)
	assert [line.text for line in lyric_set.lines] == ["a", "b"]
	assert lyric_set.is_usable

	with pytest.raises(IntegrityError):
		LyricSet(lines=(LyricLine(0, "a"),), is_error=True)

	assert not LyricSet.error().is_usable
	assert not LyricSet(lines=(LyricLine(0, "a"),), is_line_synced=False).is_usable


def test_track_display_title():
	assert Track("id", artist="A", title="T").display_title == "A - T"
	assert Track("id", title="T").display_title == "T"
	assert Track("id").display_title == "Unknown Track"
