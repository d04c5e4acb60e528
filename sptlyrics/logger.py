import os
import sys
import time
from datetime import datetime

LOG_LEVELS = {
	"FATAL": 5,
	"ERROR": 4,
	"WARN": 3,
	"INFO": 2,
	"DEBUG": 1,
	"TRACE": 0
}


# ================
#  LOGGING SYSTEM
# ================
class Logger:
	"""Handle application logging"""

	def __init__(self, log_level="INFO", log_file=None, max_log_count=1000, stream=None):
		self.log_level = log_level
		self.log_file = log_file
		self.max_log_count = max_log_count
		self.stream = stream

	def clean_log(self):
		"""Maintain log size by keeping only the last max_log_count entries"""
		if not self.log_file or not os.path.exists(self.log_file):
			return

		try:
			with open(self.log_file, "r+", encoding="utf-8") as f:
				lines = f.readlines()
				if len(lines) > self.max_log_count:
					keep = lines[-self.max_log_count:]
					f.seek(0)
					f.truncate()
					f.writelines(keep)
		except OSError as e:
			self._stderr().write(f"Log cleanup failed: {e}\n")

	def _stderr(self):
		return self.stream or sys.stderr

	def log_message(self, level: str, message: str):
		"""Unified logging function with level-based filtering"""
		configured_level = LOG_LEVELS.get(str(self.log_level).upper(), 2)
		message_level = LOG_LEVELS.get(level.upper(), 2)
		if message_level < configured_level:
			return

		timestamp = f"{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}.{int(time.time() * 1000000) % 1000000:06d}"
		entry = f"{timestamp} | {level.upper()} | {message}\n"

		# stderr is line buffered by hand so partial lines never interleave
		stream = self._stderr()
		stream.write(entry)
		stream.flush()

		if self.log_file:
			try:
				os.makedirs(os.path.dirname(self.log_file) or ".", exist_ok=True)
				with open(self.log_file, "a", encoding="utf-8") as f:
					f.write(entry)
				if os.path.getsize(self.log_file) > self.max_log_count * 1024:
					self.clean_log()
			except OSError as e:
				stream.write(f"Logging failed: {e}\n")

	# Specific level helpers
	def log_fatal(self, message: str):
		self.log_message("FATAL", message)

	def log_error(self, message: str):
		self.log_message("ERROR", message)

	def log_warn(self, message: str):
		self.log_message("WARN", message)

	def log_info(self, message: str):
		self.log_message("INFO", message)

	def log_debug(self, message: str):
		self.log_message("DEBUG", message)

	def log_trace(self, message: str):
		self.log_message("TRACE", message)


# Initialize logger
LOGGER = Logger()


def configure_logger(config):
	"""Apply the logging section of a ConfigManager to the shared LOGGER"""
	LOGGER.log_level = config.LOG_LEVEL
	LOGGER.log_file = config.LOG_FILE
	LOGGER.max_log_count = config.MAX_LOG_COUNT
	return LOGGER
