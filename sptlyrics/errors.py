# ==============
#  ERRORS
# ==============
class LyricsError(Exception):
	"""Base class for every error raised by sptlyrics"""


class NoCredentialError(LyricsError):
	"""The sp_dc cookie is not configured"""


class NetworkError(LyricsError):
	"""Transport failure or timeout"""


class InvalidResponseError(LyricsError):
	"""Malformed or unexpected payload from a remote endpoint"""


class NotFoundError(LyricsError):
	"""The source definitively has no lyrics for the track"""


class DecodeError(LyricsError):
	"""Corrupted cache file or unparsable LRC line"""


class IntegrityError(LyricsError):
	"""Internal state that should be impossible"""


class PlayerError(LyricsError):
	"""The player bridge could not answer"""
