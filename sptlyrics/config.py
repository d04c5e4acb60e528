import copy
import json
import os

import appdirs

APP_NAME = "sptlyrics"
config_files = ["config.json"]


def deep_merge_dicts(base, updates):
	for key, value in updates.items():
		if key in base and isinstance(base[key], dict) and isinstance(value, dict):
			deep_merge_dicts(base[key], value)
		else:
			base[key] = value


def resolve_value(item):
	"""Resolve {"env": ..., "default": ...} into actual value"""
	if isinstance(item, dict) and "env" in item and "default" in item:
		return os.environ.get(item["env"], item["default"])
	return item


# Default configuration
DEFAULT_CONFIG = {
	"global": {
		"cache_dir": {"env": "SPTLYRICS_CACHE_DIR", "default": None},
		"log_level": {"env": "SPTLYRICS_LOG_LEVEL", "default": "WARN"},
		"log_file": None,
		"max_log_count": 1000
	},
	"spotify": {
		"sp_dc": {"env": "SP_DC", "default": ""},
		"token_url": "https://open.spotify.com/api/token",
		"lyrics_url": "https://spclient.wg.spotify.com/color-lyrics/v2/track/",
		"server_time_url": "https://open.spotify.com/api/server-time",
		"secret_key_url": "https://raw.githubusercontent.com/xyloflake/spot-secrets-go/refs/heads/main/secrets/secrets.json",
		"user_agent": "Mozilla/5.0 (X11; Linux x86_64; rv:143.0) Gecko/20100101 Firefox/143.0"
	},
	"lrclib": {
		"api_url": "https://lrclib.net/api/get",
		"user_agent": "sptlyrics (https://github.com/Uyanide/Spotify_Lyrics)"
	},
	"fetch": {
		"refetch_interval_sec": 300,
		"refetch_interval_sec_404": 3600 * 24,
		"retry_interval_sec": 1,
		"retry_times": 3,
		"timeout_sec": 30
	},
	"player": {
		"name": "spotify",
		"timeout_sec": 1
	},
	"listen": {
		"min_interval_ms": 50,
		"interval_ms": 200,
		"lines": 5,
		"ahead": 0,
		"offset_ms": 0,
		"offset_file": None,
		"output": "/dev/stdout",
		"cls": False,
		"alignment": "left",
		"width": 0
	}
}


class ConfigManager:
	def __init__(self, config_path=None, use_default=False, overrides=None):
		self.user_config_dir = appdirs.user_config_dir(APP_NAME)
		self.use_default = use_default
		self.config_path = config_path
		self.overrides = overrides or {}

		self.config = self.load_config()
		self.setup_logging()
		self.setup_spotify()
		self.setup_lrclib()
		self.setup_fetch()
		self.setup_player()
		self.setup_listen()

	@staticmethod
	def normalize_path(path: str) -> str:
		path = os.path.expanduser(path)
		if os.path.isabs(path):
			return os.path.normpath(path)
		return os.path.normpath(os.path.abspath(path))

	def load_config(self):
		merged_config = copy.deepcopy(DEFAULT_CONFIG)

		if not self.use_default:
			config_paths = [self.config_path] if self.config_path else [os.path.join(self.user_config_dir, f) for f in config_files]
			for path in config_paths:
				if path and os.path.exists(os.path.expanduser(path)):
					# a broken config file is a user error worth stopping for
					with open(os.path.expanduser(path), "r", encoding="utf-8") as f:
						file_config = json.load(f)
					deep_merge_dicts(merged_config, file_config)
					break

		deep_merge_dicts(merged_config, self.overrides)
		return merged_config

	def setup_logging(self):
		section = self.config["global"]
		self.LOG_LEVEL = str(resolve_value(section["log_level"])).upper()
		log_file = resolve_value(section["log_file"])
		self.LOG_FILE = self.normalize_path(log_file) if log_file else None
		self.MAX_LOG_COUNT = section["max_log_count"]

		cache_dir = resolve_value(section["cache_dir"])
		if not cache_dir:
			cache_dir = appdirs.user_cache_dir(APP_NAME)
		self.CACHE_DIR = self.normalize_path(cache_dir)

	def setup_spotify(self):
		section = self.config["spotify"]
		self.SP_DC = resolve_value(section["sp_dc"]) or ""
		self.TOKEN_URL = section["token_url"]
		self.LYRICS_URL = section["lyrics_url"]
		self.SERVER_TIME_URL = section["server_time_url"]
		self.SECRET_KEY_URL = section["secret_key_url"]
		self.USER_AGENT = section["user_agent"]

	def setup_lrclib(self):
		section = self.config["lrclib"]
		self.LRCLIB_API_URL = section["api_url"]
		self.LRCLIB_USER_AGENT = section["user_agent"]

	def setup_fetch(self):
		section = self.config["fetch"]
		self.REFETCH_INTERVAL_SEC = section["refetch_interval_sec"]
		self.REFETCH_INTERVAL_SEC_404 = section["refetch_interval_sec_404"]
		self.RETRY_INTERVAL_SEC = section["retry_interval_sec"]
		self.RETRY_TIMES = max(1, int(section["retry_times"]))
		self.FETCH_TIMEOUT_SEC = section["timeout_sec"]

	def setup_player(self):
		section = self.config["player"]
		self.PLAYER_NAME = section["name"]
		self.PLAYER_TIMEOUT_SEC = section["timeout_sec"]

	def setup_listen(self):
		section = self.config["listen"]
		self.MIN_LISTEN_INTERVAL_MS = section["min_interval_ms"]
		self.LISTEN_INTERVAL_MS = section["interval_ms"]
		self.NUM_LINES = section["lines"]
		self.AHEAD = section["ahead"]
		self.OFFSET_MS = section["offset_ms"]
		offset_file = resolve_value(section["offset_file"])
		self.OFFSET_FILE = self.normalize_path(offset_file) if offset_file else None
		self.OUTPUT_PATH = section["output"]
		self.CLS = bool(section["cls"])
		self.ALIGNMENT = section["alignment"]
		self.WIDTH = section["width"]

	def ensure_cache_dir(self):
		os.makedirs(self.CACHE_DIR, exist_ok=True)
		return self.CACHE_DIR

	@property
	def token_cache_file(self):
		return os.path.join(self.CACHE_DIR, "spotify_token.json")

	@property
	def lock_file(self):
		return os.path.join(self.CACHE_DIR, "sptlyrics.lock")
