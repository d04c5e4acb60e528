import asyncio
import enum
from dataclasses import dataclass, field
from typing import Optional

import aiohttp

from .auth import TokenManager
from .cache import LyricsCache
from .display import Display
from .errors import PlayerError
from .fetch import LyricsFetcher
from .gate import Admission, AdmissionGate, InstanceLock
from .logger import LOGGER
from .lrc import LyricSet, Track
from .player import PlayerctlBridge


class TrackStatus(enum.Enum):
	NO_TRACK = "no_track"
	PENDING = "pending"
	SYNCED = "synced"
	UNSYNCED = "unsynced"
	UNAVAILABLE = "unavailable"


@dataclass
class PlaybackState:
	track_id: Optional[str] = None
	status: TrackStatus = TrackStatus.NO_TRACK
	lyrics: LyricSet = field(default_factory=LyricSet)
	next_index: int = 0
	offset_ms: int = 0
	has_emitted_lookahead: bool = False
	previous_position_ms: int = 0


def snapshot_track(player, track_id):
	"""Read the Track metadata once, at track change"""
	try:
		length_ms = player.length_ms()
	except PlayerError as e:
		LOGGER.log_warn(f"Error getting track length: {e}")
		length_ms = 0
	return Track(
		track_id=track_id,
		artist=player.artist() or "",
		title=player.title() or "",
		album=player.album() or "",
		length_ms=length_ms,
	)


# ================
#  SYNC LOOP
# ================
class Listener:
	"""Poll the player and push lyric lines into the display as playback advances"""

	def __init__(self, player, fetcher, display, ahead=0, offset_ms=0, offset_file=None):
		self.player = player
		self.fetcher = fetcher
		self.display = display
		self.ahead = max(0, ahead)
		self.offset_file = offset_file
		self.state = PlaybackState(offset_ms=offset_ms)
		self.gate = AdmissionGate()
		self.current_tick = None

	async def _call(self, func, *args):
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, func, *args)

	def read_offset(self):
		"""Offset in ms; the offset file, when configured, wins over the static value"""
		if not self.offset_file:
			return self.state.offset_ms

		try:
			with open(self.offset_file, "r", encoding="utf-8") as f:
				content = f.read()
		except FileNotFoundError:
			try:
				with open(self.offset_file, "w", encoding="utf-8") as f:
					f.write("0")
			except OSError as e:
				LOGGER.log_error(f"error creating offset file: {e}")
				return self.state.offset_ms
			LOGGER.log_info(f"Offset file created at {self.offset_file} with initial value 0")
			return 0
		except OSError as e:
			LOGGER.log_error(f"Error reading offset file: {e}")
			return self.state.offset_ms

		try:
			return int(content.strip())
		except ValueError:
			LOGGER.log_error(f"error parsing offset from file: {content.strip()!r}")
			return self.state.offset_ms

	def reset_progress(self):
		self.state.next_index = 0
		self.state.has_emitted_lookahead = False
		self.state.previous_position_ms = 0

	def advance(self, position_ms):
		"""Emit every line reached by position_ms; returns True if the display changed"""
		state = self.state
		lines = state.lyrics.lines
		changed = False

		if position_ms < state.previous_position_ms:
			LOGGER.log_debug(f"Seek backwards detected: {state.previous_position_ms} -> {position_ms}")
			self.display.lines.clear()
			self.reset_progress()
			changed = True
		state.previous_position_ms = position_ms

		if not state.has_emitted_lookahead:
			for line in lines[:self.ahead]:
				self.display.add_line(line.text)
			state.has_emitted_lookahead = True
			changed = changed or self.ahead > 0

		while state.next_index < len(lines) and lines[state.next_index].start_time_ms + state.offset_ms <= position_ms:
			shown = state.next_index + self.ahead
			self.display.add_line(lines[shown].text if shown < len(lines) else "")
			state.next_index += 1
			changed = True

		return changed

	async def on_track_changed(self):
		state = self.state
		LOGGER.log_info(f"Switching to track ID: {state.track_id}")
		self.display.clear()
		self.reset_progress()
		state.status = TrackStatus.PENDING
		state.lyrics = LyricSet()

		track = await self._call(snapshot_track, self.player, state.track_id)
		try:
			lyrics = await self.fetcher.acquire(track)
		except Exception:
			# forget the track so the next tick starts the switch over again
			state.track_id = None
			state.status = TrackStatus.NO_TRACK
			raise
		state.lyrics = lyrics

		if lyrics.is_error or not lyrics.lines:
			state.status = TrackStatus.UNAVAILABLE
			self._show_info(track, "Lyrics unavailable")
			LOGGER.log_info(f"Lyrics for track ID {state.track_id} unavailable")
		elif not lyrics.is_line_synced:
			state.status = TrackStatus.UNSYNCED
			self._show_info(track, "Lyrics unsynchronized")
			LOGGER.log_info(f"Lyrics for track ID {state.track_id} unsynced")
		else:
			state.status = TrackStatus.SYNCED

	def _show_info(self, track, status_line):
		self.display.lines.clear()
		self.display.add_line(track.display_title)
		self.display.add_line(status_line)
		self.display.render()

	async def proc(self):
		"""One poll tick"""
		state = self.state
		try:
			track_id = await self._call(self.player.track_id)
		except PlayerError as e:
			if state.track_id is not None or state.status is not TrackStatus.NO_TRACK:
				LOGGER.log_warn(f"Error getting track ID: {e}")
				state.track_id = None
				state.status = TrackStatus.NO_TRACK
				state.lyrics = LyricSet()
				self.display.single_line("No track found")
			return

		if track_id != state.track_id:
			state.track_id = track_id
			await self.on_track_changed()

		if state.status is not TrackStatus.SYNCED:
			return

		try:
			position_ms = await self._call(self.player.position_ms)
		except PlayerError as e:
			LOGGER.log_warn(f"Error getting position: {e}")
			self.display.single_line("Error getting position")
			# the next successful poll redraws from the start of the track
			self.display.lines.clear()
			self.reset_progress()
			return

		state.offset_ms = self.read_offset()
		LOGGER.log_trace(f"Current position: {position_ms}, Offset: {state.offset_ms}")
		if self.advance(position_ms):
			self.display.render()

	async def _guarded_proc(self):
		try:
			await self.proc()
		except Exception as e:
			# a failing tick must not take the polling loop down
			LOGGER.log_error(f"Tick failed: {e!r}")
		finally:
			self.gate.release()

	def schedule_tick(self):
		"""Start a tick unless one is still running; overlapping ticks are dropped"""
		admission = self.gate.try_acquire()
		if admission is Admission.ALREADY_RUNNING:
			LOGGER.log_trace("Previous tick still running, skipping")
			return admission
		self.current_tick = asyncio.get_running_loop().create_task(self._guarded_proc())
		return admission

	async def loop(self, interval_ms):
		interval = interval_ms / 1000.0
		while True:
			self.schedule_tick()
			await asyncio.sleep(interval)


# ================
#  ENTRY POINTS
# ================
def build_listener(config, session, player=None, num_lines=None, output_path=None, offset_ms=None,
				   offset_file=None, ahead=None, cls=None):
	cache = LyricsCache.from_config(config)
	fetcher = LyricsFetcher(config, cache, TokenManager(config), session=session)
	display = Display(
		config.NUM_LINES if num_lines is None else num_lines,
		output_path or config.OUTPUT_PATH,
		cls=config.CLS if cls is None else cls,
		alignment=config.ALIGNMENT,
		width=config.WIDTH,
	)
	return Listener(
		player or PlayerctlBridge(config.PLAYER_NAME, config.PLAYER_TIMEOUT_SEC),
		fetcher,
		display,
		ahead=config.AHEAD if ahead is None else ahead,
		offset_ms=config.OFFSET_MS if offset_ms is None else offset_ms,
		offset_file=offset_file or config.OFFSET_FILE,
	)


async def listen_async(config, interval_ms, **kwargs):
	async with aiohttp.ClientSession() as session:
		listener = build_listener(config, session, **kwargs)
		await listener.loop(interval_ms)


async def print_async(config, **kwargs):
	async with aiohttp.ClientSession() as session:
		listener = build_listener(config, session, **kwargs)
		await listener.proc()


def listen(config, interval_ms=None, **kwargs):
	"""Continuous mode, guarded by the single-instance lock"""
	interval_ms = config.LISTEN_INTERVAL_MS if interval_ms is None else interval_ms
	if interval_ms < config.MIN_LISTEN_INTERVAL_MS:
		LOGGER.log_warn(f"Minimum listen interval is {config.MIN_LISTEN_INTERVAL_MS} milliseconds, using that instead")
		interval_ms = config.MIN_LISTEN_INTERVAL_MS

	config.ensure_cache_dir()
	lock = InstanceLock(config.lock_file)
	if lock.try_acquire() is Admission.ALREADY_RUNNING:
		LOGGER.log_fatal("another instance is already running")
		return 1

	try:
		asyncio.run(listen_async(config, interval_ms, **kwargs))
	finally:
		lock.release()
	return 0


def print_once(config, **kwargs):
	config.ensure_cache_dir()
	asyncio.run(print_async(config, **kwargs))
	return 0
