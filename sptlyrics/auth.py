import json
import os
import time
from dataclasses import dataclass

from .cache import write_atomic
from .errors import InvalidResponseError, NoCredentialError
from .logger import LOGGER
from .net import get_json
from .totp import fetch_latest_secret, generate_totp


@dataclass(frozen=True)
class TokenRecord:
	access_token: str
	expires_at_ms: int
	is_anonymous: bool = False

	@classmethod
	def from_json(cls, data):
		"""Build from the token endpoint payload (also the cache file format)"""
		try:
			return cls(
				access_token=str(data["accessToken"]),
				expires_at_ms=int(data["accessTokenExpirationTimestampMs"]),
				is_anonymous=bool(data.get("isAnonymous", False)),
			)
		except (KeyError, TypeError, ValueError, AttributeError) as e:
			raise InvalidResponseError(f"invalid token payload: {e}") from e

	def to_json(self):
		return {
			"accessToken": self.access_token,
			"accessTokenExpirationTimestampMs": self.expires_at_ms,
			"isAnonymous": self.is_anonymous,
		}

	def is_valid(self, now_ms):
		return self.expires_at_ms > now_ms


class TokenManager:
	"""Obtain a web-player bearer token, caching it on disk until it expires"""

	def __init__(self, config, cache_file=None, clock=time.time):
		self.config = config
		self.cache_file = cache_file or config.token_cache_file
		self.clock = clock

	def _now_ms(self):
		return int(self.clock() * 1000)

	def read_cache(self):
		"""Return a still valid cached TokenRecord or None"""
		if not os.path.exists(self.cache_file):
			LOGGER.log_debug("Token cache file does not exist")
			return None
		try:
			with open(self.cache_file, "r", encoding="utf-8") as f:
				record = TokenRecord.from_json(json.load(f))
		except (OSError, json.JSONDecodeError, InvalidResponseError) as e:
			LOGGER.log_warn(f"Error reading token cache file: {e}")
			return None

		if not record.is_valid(self._now_ms()):
			LOGGER.log_debug("Token has expired")
			return None
		LOGGER.log_debug("Token is valid")
		return record

	def write_cache(self, record):
		os.makedirs(os.path.dirname(self.cache_file) or ".", exist_ok=True)
		write_atomic(self.cache_file, json.dumps(record.to_json()))
		LOGGER.log_debug("Token cache file written successfully")

	async def build_token_params(self, session=None):
		"""Query parameters of the token request, including a fresh TOTP"""
		timeout = self.config.FETCH_TIMEOUT_SEC
		status, data = await get_json(self.config.SERVER_TIME_URL, timeout=timeout, session=session)
		if status != 200:
			raise InvalidResponseError(f"server time endpoint returned status: {status}")
		try:
			server_time = int(data["serverTime"])
		except (KeyError, TypeError, ValueError) as e:
			raise InvalidResponseError(f"invalid server time response: {e}") from e

		secret, version = await fetch_latest_secret(self.config.SECRET_KEY_URL, timeout=timeout, session=session)

		return {
			"reason": "transport",
			"productType": "web-player",
			"totp": generate_totp(server_time, secret),
			"totpVer": str(version),
			"ts": str(int(self.clock())),
		}

	async def get_token(self, session=None):
		record = self.read_cache()
		if record is not None:
			return record.access_token

		if not self.config.SP_DC:
			raise NoCredentialError("SP_DC is not set")

		params = await self.build_token_params(session=session)
		headers = {
			"User-Agent": self.config.USER_AGENT,
			"Cookie": f"sp_dc={self.config.SP_DC}",
		}
		status, data = await get_json(
			self.config.TOKEN_URL, params=params, headers=headers,
			timeout=self.config.FETCH_TIMEOUT_SEC, session=session
		)
		if status != 200:
			raise InvalidResponseError(f"token request failed with status code: {status}")

		record = TokenRecord.from_json(data)
		if not record.is_valid(self._now_ms()):
			raise InvalidResponseError("invalid token response: already expired")

		# anonymous tokens are cached too, so a wrong SP_DC does not hammer the endpoint
		try:
			self.write_cache(record)
		except OSError as e:
			LOGGER.log_error(f"Failed to write token cache: {e}")
		LOGGER.log_info("Token fetched and cached successfully")
		if record.is_anonymous:
			LOGGER.log_warn("Token is anonymous, maybe caused by invalid SP_DC")

		return record.access_token
