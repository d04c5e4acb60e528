import enum
import fcntl
import os

from .logger import LOGGER


class Admission(enum.Enum):
	ACQUIRED = "acquired"
	ALREADY_RUNNING = "already_running"


class AdmissionGate:
	"""One slot for the event loop thread; a second caller is turned away instead of waiting"""

	def __init__(self):
		self._busy = False

	def try_acquire(self):
		if self._busy:
			return Admission.ALREADY_RUNNING
		self._busy = True
		return Admission.ACQUIRED

	def release(self):
		self._busy = False

	@property
	def busy(self):
		return self._busy


class InstanceLock:
	"""Exclusive advisory lock on a file holding the owner's PID"""

	def __init__(self, path):
		self.path = path
		self._file = None

	def try_acquire(self):
		os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
		handle = open(self.path, "a+", encoding="utf-8")
		try:
			fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
		except OSError:
			handle.close()
			return Admission.ALREADY_RUNNING

		handle.seek(0)
		handle.truncate()
		handle.write(str(os.getpid()))
		handle.flush()
		os.fsync(handle.fileno())
		self._file = handle
		LOGGER.log_debug(f"Acquired instance lock {self.path}")
		return Admission.ACQUIRED

	def release(self):
		if self._file is None:
			return
		try:
			fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
		finally:
			self._file.close()
			self._file = None
		try:
			os.remove(self.path)
		except FileNotFoundError:
			pass

	def __enter__(self):
		return self.try_acquire()

	def __exit__(self, *exc):
		self.release()
