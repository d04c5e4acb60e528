import subprocess

from .errors import PlayerError
from .logger import LOGGER


# ==============
#  PLAYER DETECTION
# ==============
class PlayerctlBridge:
	"""Query and control the Spotify desktop client through playerctl"""

	def __init__(self, player_name="spotify", timeout=1):
		self.player_name = player_name
		self.timeout = timeout

	def _run(self, *args):
		cmd = ["playerctl", *args, f"--player={self.player_name}"]
		try:
			result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout, check=True)
		except FileNotFoundError as e:
			raise PlayerError("playerctl is not installed") from e
		except subprocess.TimeoutExpired as e:
			raise PlayerError(f"playerctl timed out: {' '.join(args)}") from e
		except subprocess.CalledProcessError as e:
			raise PlayerError(f"error running playerctl {' '.join(args)}: {(e.stderr or '').strip()}") from e
		return result.stdout.strip()

	def _metadata(self, key):
		return self._run("metadata", key)

	def track_id(self):
		track_id = self._metadata("mpris:trackid")
		if not track_id:
			raise PlayerError("no track ID found")
		# "/com/spotify/track/<id>" or "spotify:track:<id>"
		return track_id.replace(":", "/").split("/")[-1]

	def position_ms(self):
		position = self._run("position")
		try:
			return int(float(position) * 1000)
		except ValueError as e:
			raise PlayerError(f"invalid position value: {position}") from e

	def length_ms(self):
		length = self._metadata("mpris:length")
		try:
			# microseconds
			return int(length) // 1000
		except ValueError as e:
			raise PlayerError(f"invalid length value: {length}") from e

	def _optional_metadata(self, key):
		try:
			return self._metadata(key)
		except PlayerError as e:
			LOGGER.log_debug(f"Error getting {key}: {e}")
			return ""

	def artist(self):
		return self._optional_metadata("xesam:artist")

	def title(self):
		return self._optional_metadata("xesam:title")

	def album(self):
		return self._optional_metadata("xesam:album")

	def playing_status(self):
		try:
			return self._run("status").lower() == "playing"
		except PlayerError:
			return False

	def set_position(self, position_ms):
		self._run("position", f"{position_ms / 1000.0:.3f}")

