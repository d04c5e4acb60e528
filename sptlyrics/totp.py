"""
TOTP derivation for the Spotify web-player token endpoint.

The secret is published as a versioned list of obfuscated strings; the
de-obfuscation below has to match the web player bit for bit.
"""
import hashlib
import hmac
import struct

from .errors import IntegrityError, InvalidResponseError
from .logger import LOGGER
from .net import get_json

TOTP_PERIOD_SEC = 30
TOTP_DIGITS = 6


def generate_totp(server_time_sec, secret, period=TOTP_PERIOD_SEC, digits=TOTP_DIGITS):
	"""RFC 6238 style code from server time and secret (str or bytes)"""
	if isinstance(secret, str):
		secret = secret.encode("utf-8")

	counter = int(server_time_sec) // period
	digest = hmac.new(secret, struct.pack(">Q", counter), hashlib.sha1).digest()

	# dynamic truncation
	offset = digest[-1] & 0x0F
	if len(digest) - offset < 4:
		raise IntegrityError("hmac digest too short")
	binary_code = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF

	return str(binary_code % (10 ** digits)).zfill(digits)


def deobfuscate_secret(secret):
	return "".join(str(ord(char) ^ ((index % 33) + 9)) for index, char in enumerate(secret))


def pick_latest_secret(secrets):
	"""Select the highest version from [{"version": .., "secret": ..}] and deobfuscate it"""
	if not isinstance(secrets, list) or not secrets:
		raise InvalidResponseError("secret list empty")
	try:
		latest = max(secrets, key=lambda item: int(item["version"]))
		return deobfuscate_secret(str(latest["secret"])), int(latest["version"])
	except (KeyError, TypeError, ValueError) as e:
		raise InvalidResponseError(f"invalid secret list: {e}") from e


async def fetch_latest_secret(url, timeout=30, session=None):
	"""Fetch the secret list and return (secret, version)"""
	status, data = await get_json(url, timeout=timeout, session=session)
	if status != 200:
		raise InvalidResponseError(f"secret endpoint returned status: {status}")
	secret, version = pick_latest_secret(data)
	LOGGER.log_debug(f"Using TOTP secret version {version}")
	return secret, version
