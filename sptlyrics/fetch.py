import asyncio
import dataclasses

from .cache import MARKER_ERROR, MARKER_NOT_FOUND
from .errors import DecodeError, InvalidResponseError, NetworkError, NoCredentialError, NotFoundError
from .logger import LOGGER
from .lrc import LyricSet
from .sources import fetch_lrclib, fetch_spotify


class LyricsFetcher:
	"""Cache lookup, Spotify with LRCLIB fallback, and persistence of the outcome"""

	def __init__(self, config, cache, token_manager, session=None, sleep=asyncio.sleep):
		self.config = config
		self.cache = cache
		self.token_manager = token_manager
		self.session = session
		self.sleep = sleep

	def load_cached(self, track_id):
		try:
			entry = self.cache.load(track_id)
		except DecodeError as e:
			LOGGER.log_warn(f"Error parsing cached lyrics: {e}")
			return None

		if entry is None:
			return None
		if entry.stale:
			LOGGER.log_info(f"Cached marker for {track_id} expired, refetching")
			return None
		LOGGER.log_debug(f"Cache hit for track ID: {track_id}")
		return entry.lyrics

	async def with_retries(self, name, attempt):
		"""
		Run attempt() up to RETRY_TIMES times.

		Returns the LyricSet, or raises NotFoundError (never retried) or the
		last transient error once the budget is spent.
		"""
		last_error = None
		for index in range(self.config.RETRY_TIMES):
			if index:
				await self.sleep(self.config.RETRY_INTERVAL_SEC)
			try:
				return await attempt()
			except NotFoundError:
				LOGGER.log_info(f"{name}: lyrics not found")
				raise
			except (NetworkError, InvalidResponseError) as e:
				LOGGER.log_warn(f"{name}: attempt {index + 1}/{self.config.RETRY_TIMES} failed: {e}")
				last_error = e
		raise last_error

	async def _spotify_attempt(self, track):
		token = await self.token_manager.get_token(session=self.session)
		return await fetch_spotify(self.config, track.track_id, token, session=self.session)

	async def _lrclib_attempt(self, track):
		return await fetch_lrclib(
			self.config, track.title, track.artist, track.album,
			track.length_ms // 1000, session=self.session
		)

	async def fetch_remote(self, track):
		"""Return (LyricSet or None, every attempted source answered NotFound)"""
		outcomes = []
		result = None

		sources = (
			("Spotify", self._spotify_attempt),
			("LRCLIB", self._lrclib_attempt),
		)
		for name, attempt in sources:
			try:
				candidate = await self.with_retries(name, lambda: attempt(track))
			except NoCredentialError as e:
				LOGGER.log_warn(f"{name}: {e}, skipping")
				continue
			except NotFoundError:
				outcomes.append(MARKER_NOT_FOUND)
				continue
			except (NetworkError, InvalidResponseError):
				outcomes.append(MARKER_ERROR)
				continue

			if candidate.is_usable:
				result = candidate
				break
			LOGGER.log_info(f"{name}: lyrics are not line-synced")
			outcomes.append(MARKER_ERROR)

		all_not_found = bool(outcomes) and all(kind == MARKER_NOT_FOUND for kind in outcomes)
		return result, all_not_found

	async def acquire(self, track):
		"""LyricSet for track; failures degrade to a cached negative marker"""
		LOGGER.log_info(f"Fetching lyrics for track ID: {track.track_id}")
		cached = self.load_cached(track.track_id)
		if cached is not None:
			return cached

		result, all_not_found = await self.fetch_remote(track)
		if result is not None:
			result = dataclasses.replace(
				result,
				title=result.title or track.title,
				artist=result.artist or track.artist,
				album=result.album or track.album,
			)
			self._persist(track.track_id, result)
			self.cache.append_fetch_log(track.track_id, f"fetched {len(result.lines)} lines")
			return result

		kind = MARKER_NOT_FOUND if all_not_found else MARKER_ERROR
		fetched_at = int(self.cache.clock())
		failed = LyricSet.error(not_found=all_not_found, fetched_at=fetched_at)
		self._persist(track.track_id, failed)
		self.cache.append_fetch_log(track.track_id, f"no usable lyrics ({kind})")
		return failed

	def _persist(self, track_id, lyric_set):
		try:
			self.cache.save(track_id, lyric_set)
		except OSError as e:
			LOGGER.log_error(f"Error creating cache file: {e}")
