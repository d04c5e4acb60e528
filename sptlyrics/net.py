import asyncio
import json

import aiohttp

from .errors import InvalidResponseError, NetworkError


# ================
#  ASYNC HELPERS
# ================
async def get_json(url, params=None, headers=None, timeout=30, session=None):
	"""GET url and decode a JSON body. Returns (status, data); data is None unless status is 200"""
	# Create a new session only if one isn't passed
	own_session = False
	if session is None:
		session = aiohttp.ClientSession()
		own_session = True

	try:
		async with session.get(url, params=params, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
			if response.status != 200:
				return response.status, None
			try:
				return response.status, await response.json(content_type=None)
			except (aiohttp.ContentTypeError, json.JSONDecodeError, UnicodeDecodeError) as e:
				raise InvalidResponseError(f"invalid JSON from {url}: {e}") from e
	except (aiohttp.ClientError, asyncio.TimeoutError) as e:
		raise NetworkError(f"request to {url} failed: {e}") from e
	finally:
		if own_session:
			await session.close()
