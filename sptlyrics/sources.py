from .errors import InvalidResponseError, NotFoundError
from .logger import LOGGER
from .lrc import LyricLine, LyricSet, decode_lines
from .net import get_json


# ================
#  SPOTIFY
# ================
def parse_spotify_lyrics(data):
	"""Normalize a color-lyrics payload into a LyricSet"""
	try:
		lyrics = data["lyrics"]
		sync_type = lyrics.get("syncType", "")
		raw_lines = lyrics.get("lines") or []
	except (KeyError, TypeError, AttributeError) as e:
		raise InvalidResponseError(f"failed to parse lyrics response: {e}") from e
	if not isinstance(raw_lines, list):
		raise InvalidResponseError("failed to parse lyrics response: lines is not a list")

	lines = []
	for raw in raw_lines:
		start = raw.get("startTimeMs") if isinstance(raw, dict) else None
		try:
			start_time_ms = int(start)
		except (TypeError, ValueError):
			LOGGER.log_warn(f"Error parsing time tag '{start}', skipping line")
			continue
		words = raw.get("words", "")
		if not isinstance(words, str):
			LOGGER.log_warn(f"Invalid lyric text {words!r}, skipping line")
			continue
		lines.append(LyricLine(start_time_ms=start_time_ms, text=words))

	return LyricSet(lines=tuple(lines), is_line_synced=sync_type == "LINE_SYNCED")


async def fetch_spotify(config, track_id, token, session=None):
	"""Line-synced lyrics from the Spotify web-player API"""
	LOGGER.log_debug(f"Querying Spotify lyrics API: {track_id}")
	url = f"{config.LYRICS_URL}{track_id}"
	params = {"format": "json", "market": "from_token"}
	headers = {
		"User-Agent": config.USER_AGENT,
		"App-platform": "WebPlayer",
		"Authorization": f"Bearer {token}",
	}
	status, data = await get_json(url, params=params, headers=headers, timeout=config.FETCH_TIMEOUT_SEC, session=session)
	if status == 404:
		raise NotFoundError(f"no lyrics found on Spotify for {track_id}")
	if status != 200:
		raise InvalidResponseError(f"Spotify API returned status code: {status}")

	result = parse_spotify_lyrics(data)
	LOGGER.log_info(f"Spotify returned {'synced' if result.is_line_synced else 'unsynced'} lyrics ({len(result.lines)} lines)")
	return result


# ================
#  LRCLIB
# ================
async def fetch_lrclib(config, title, artist, album="", length_sec=0, session=None):
	"""Synced lyrics from LRCLIB, looked up by track metadata"""
	LOGGER.log_debug(f"Querying LRCLIB API: {artist} - {title}")
	params = {
		"track_name": title or "",
		"artist_name": artist or "",
		"album_name": album or "",
		"duration": str(int(length_sec or 0)),
	}
	headers = {"User-Agent": config.LRCLIB_USER_AGENT}
	status, data = await get_json(config.LRCLIB_API_URL, params=params, headers=headers, timeout=config.FETCH_TIMEOUT_SEC, session=session)
	if status == 404:
		raise NotFoundError(f"no lyrics found on LRCLIB for {artist} - {title}")
	if status != 200:
		raise InvalidResponseError(f"LRCLIB returned status code: {status}")
	if not isinstance(data, dict):
		raise InvalidResponseError("invalid lrclib response format")

	synced = data.get("syncedLyrics")
	if synced is not None and not isinstance(synced, str):
		raise InvalidResponseError(f"invalid lrclib response format: syncedLyrics is {type(synced).__name__}")
	synced = (synced or "").strip()
	if not synced:
		raise InvalidResponseError("invalid lrclib response format: no synced lyrics")

	result = decode_lines(synced.split("\n"), title=title or "", artist=artist or "", album=album or "", is_line_synced=True)
	if not result.lines:
		raise InvalidResponseError("failed to decode lrclib lyrics")

	LOGGER.log_info(f"LRCLIB returned synced lyrics ({len(result.lines)} lines)")
	return result
