import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import DecodeError, IntegrityError
from .logger import LOGGER

LINE_PATTERN = re.compile(r'^\[(\d+):(\d+)\.(\d{1,3})\](.*)$')
TAG_PATTERN = re.compile(r'^\[(ti|ar|al):(.*)\]$')
SYNC_LINE_TAG = "[sync:line]"
SYNC_UNKNOWN_TAG = "[sync:unknown]"


@dataclass(frozen=True)
class Track:
	track_id: str
	artist: str = ""
	title: str = ""
	album: str = ""
	length_ms: int = 0

	@property
	def display_title(self):
		if self.artist and self.title:
			return f"{self.artist} - {self.title}"
		return self.title or self.artist or "Unknown Track"


@dataclass(frozen=True)
class LyricLine:
	start_time_ms: int
	text: str


@dataclass(frozen=True)
class LyricSet:
	lines: Tuple[LyricLine, ...] = field(default_factory=tuple)
	is_line_synced: bool = False
	is_error: bool = False
	is_not_found: bool = False
	fetched_at: Optional[int] = None
	title: str = ""
	artist: str = ""
	album: str = ""

	def __post_init__(self):
		if self.is_error and self.lines:
			raise IntegrityError("error lyric set must not carry lines")
		object.__setattr__(self, "lines", tuple(sorted(self.lines, key=lambda line: line.start_time_ms)))

	@classmethod
	def error(cls, not_found=False, fetched_at=None):
		return cls(is_error=True, is_not_found=not_found, fetched_at=fetched_at)

	@property
	def is_usable(self):
		"""Line-synced with at least one line"""
		return not self.is_error and self.is_line_synced and bool(self.lines)


# ================
#  LRC CODEC
# ================
def decode_line(line):
	"""Parse "[mm:ss.cc]text" into a LyricLine"""
	match = LINE_PATTERN.match(line.strip())
	if not match:
		raise DecodeError(f"invalid LRC line format: {line}")

	minutes, seconds, fraction, text = match.groups()
	# fraction may be tenths, hundredths or thousandths
	fraction_ms = int(fraction.ljust(3, "0"))
	start_time_ms = int(minutes) * 60000 + int(seconds) * 1000 + fraction_ms
	return LyricLine(start_time_ms=start_time_ms, text=text.strip())


def encode_line(line):
	centis = (max(0, line.start_time_ms) + 5) // 10
	return f"[{centis // 6000:02d}:{(centis // 100) % 60:02d}.{centis % 100:02d}]{line.text}"


def decode_lines(lines, title="", artist="", album="", is_line_synced=False):
	"""Decode LRC lines (tags and timed lines) into a LyricSet"""
	lyrics = []
	for raw_line in lines:
		line = raw_line.rstrip("\r\n")
		tag = TAG_PATTERN.match(line)
		if tag:
			key, value = tag.groups()
			if key == "ti":
				title = value
			elif key == "ar":
				artist = value
			else:
				album = value
		elif line == SYNC_LINE_TAG:
			is_line_synced = True
		elif line == SYNC_UNKNOWN_TAG:
			is_line_synced = False
		elif line.strip():
			try:
				lyrics.append(decode_line(line))
			except DecodeError as e:
				LOGGER.log_warn(f"error decoding line '{line}': {e}")

	return LyricSet(
		lines=tuple(lyrics),
		is_line_synced=is_line_synced,
		title=title,
		artist=artist,
		album=album,
	)


def encode_lines(lyric_set):
	"""Header and timed lines of a LyricSet, sync flag first"""
	lines = [
		SYNC_LINE_TAG if lyric_set.is_line_synced else SYNC_UNKNOWN_TAG,
		f"[ti:{lyric_set.title}]",
		f"[ar:{lyric_set.artist}]",
		f"[al:{lyric_set.album}]",
	]
	lines.extend(encode_line(line) for line in lyric_set.lines)
	return lines
