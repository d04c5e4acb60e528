import os
import shutil
import time
from dataclasses import dataclass
from datetime import datetime

from .errors import DecodeError
from .logger import LOGGER
from .lrc import SYNC_LINE_TAG, SYNC_UNKNOWN_TAG, LyricSet, decode_lines, encode_lines

MARKER_NOT_FOUND = "404"
MARKER_ERROR = "error"
MARKERS = (MARKER_NOT_FOUND, MARKER_ERROR)


@dataclass(frozen=True)
class CacheEntry:
	lyrics: LyricSet
	stale: bool = False


def decode_cache(content, now, refetch_interval_sec, refetch_interval_sec_404):
	"""Decode the text of a cache file into a CacheEntry"""
	lines = content.strip().split("\n")
	if not lines or not lines[0].strip():
		raise DecodeError("invalid cache format: empty file")

	head = lines[0].strip()
	if head in MARKERS:
		if len(lines) < 2:
			raise DecodeError("invalid cache format: marker without timestamp")
		try:
			fetched_at = int(lines[1].strip())
		except ValueError as e:
			raise DecodeError(f"invalid cache timestamp '{lines[1]}'") from e

		threshold = refetch_interval_sec_404 if head == MARKER_NOT_FOUND else refetch_interval_sec
		stale = now - fetched_at >= threshold
		lyrics = LyricSet.error(not_found=head == MARKER_NOT_FOUND, fetched_at=fetched_at)
		return CacheEntry(lyrics=lyrics, stale=stale)

	if not head.startswith("["):
		raise DecodeError(f"invalid cache format: unexpected first line '{head}'")
	if not any(line.strip() in (SYNC_LINE_TAG, SYNC_UNKNOWN_TAG) for line in lines):
		raise DecodeError("invalid cache format: missing sync tag")

	lyrics = decode_lines(lines)
	# lyric files are never written without lines, so an empty body means truncation
	if not lyrics.lines:
		raise DecodeError("invalid cache format: no lyric lines")
	return CacheEntry(lyrics=lyrics)


def encode_marker(kind, fetched_at):
	return f"{kind}\n{int(fetched_at)}\n"


def write_atomic(path, content):
	"""Write content next to path, then rename over it so readers never see a partial file"""
	tmp_path = f"{path}.{os.getpid()}.tmp"
	try:
		with open(tmp_path, "w", encoding="utf-8") as f:
			f.write(content)
		os.replace(tmp_path, path)
	except OSError:
		if os.path.exists(tmp_path):
			os.remove(tmp_path)
		raise


class LyricsCache:
	"""One LRC file per track id, plus negative markers with a fetch timestamp"""

	def __init__(self, cache_dir, refetch_interval_sec=300, refetch_interval_sec_404=3600 * 24, clock=time.time):
		self.cache_dir = cache_dir
		self.refetch_interval_sec = refetch_interval_sec
		self.refetch_interval_sec_404 = refetch_interval_sec_404
		self.clock = clock

	@classmethod
	def from_config(cls, config, clock=time.time):
		return cls(
			config.CACHE_DIR,
			refetch_interval_sec=config.REFETCH_INTERVAL_SEC,
			refetch_interval_sec_404=config.REFETCH_INTERVAL_SEC_404,
			clock=clock,
		)

	def path_for(self, track_id):
		return os.path.join(self.cache_dir, f"{track_id}.lrc")

	def load(self, track_id):
		"""CacheEntry for track_id, or None on a cache miss"""
		path = self.path_for(track_id)
		try:
			with open(path, "r", encoding="utf-8") as f:
				content = f.read()
		except FileNotFoundError:
			return None
		except (OSError, UnicodeDecodeError) as e:
			raise DecodeError(f"cannot read cache file {path}: {e}") from e

		return decode_cache(content, self.clock(), self.refetch_interval_sec, self.refetch_interval_sec_404)

	def _write(self, track_id, content):
		os.makedirs(self.cache_dir, exist_ok=True)
		path = self.path_for(track_id)
		write_atomic(path, content)
		return path

	def save(self, track_id, lyric_set):
		if lyric_set.is_error:
			kind = MARKER_NOT_FOUND if lyric_set.is_not_found else MARKER_ERROR
			return self.save_error_marker(track_id, kind, lyric_set.fetched_at)
		path = self._write(track_id, "\n".join(encode_lines(lyric_set)) + "\n")
		LOGGER.log_debug(f"Saved lyrics to: {path}")
		return path

	def save_error_marker(self, track_id, kind, fetched_at=None):
		if kind not in MARKERS:
			raise ValueError(f"unknown marker kind: {kind}")
		if fetched_at is None:
			fetched_at = self.clock()
		path = self._write(track_id, encode_marker(kind, fetched_at))
		LOGGER.log_debug(f"Saved '{kind}' marker to: {path}")
		return path

	def clear(self, track_id=None):
		"""Remove one track file, or the whole cache directory"""
		if track_id:
			os.remove(self.path_for(track_id))
			LOGGER.log_info(f"Cache for track ID {track_id} cleared")
		elif os.path.isdir(self.cache_dir):
			shutil.rmtree(self.cache_dir)
			LOGGER.log_info("Cache directory cleared")

	def append_fetch_log(self, track_id, message):
		"""Record a fetch outcome in fetch.log"""
		try:
			os.makedirs(self.cache_dir, exist_ok=True)
			with open(os.path.join(self.cache_dir, "fetch.log"), "a", encoding="utf-8") as f:
				f.write(f"{datetime.now().astimezone().isoformat(timespec='seconds')} [{track_id}] {message}\n")
		except OSError as e:
			LOGGER.log_error(f"error writing to fetch log file: {e}")
