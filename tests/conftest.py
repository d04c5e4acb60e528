import json

import pytest

from sptlyrics.config import ConfigManager


class FakeResponse:
	def __init__(self, status=200, payload=None, text=None):
		self.status = status
		self.payload = payload
		self.raw = text

	async def json(self, content_type=None):
		if self.raw is not None:
			return json.loads(self.raw)
		return self.payload

	async def text(self):
		return self.raw if self.raw is not None else json.dumps(self.payload)

	async def __aenter__(self):
		return self

	async def __aexit__(self, *exc):
		return False


class FakeSession:
	"""Stands in for aiohttp.ClientSession.get; routes by exact URL"""

	def __init__(self, routes=None):
		self.routes = routes or {}
		self.calls = []

	def get(self, url, params=None, headers=None, timeout=None):
		self.calls.append({"url": url, "params": params, "headers": headers})
		if url not in self.routes:
			raise AssertionError(f"unexpected request to {url}")
		response = self.routes[url]
		if isinstance(response, list):
			response = response.pop(0)
		if isinstance(response, Exception):
			raise response
		return response

	def calls_to(self, url):
		return [call for call in self.calls if call["url"] == url]


def make_config(tmp_path, **sections):
	overrides = {
		"global": {"cache_dir": str(tmp_path / "cache"), "log_level": "FATAL"},
		"spotify": {"sp_dc": "cookie-value"},
		"fetch": {"retry_interval_sec": 0},
	}
	for name, values in sections.items():
		overrides.setdefault(name, {}).update(values)
	return ConfigManager(use_default=True, overrides=overrides)


@pytest.fixture
def config(tmp_path):
	return make_config(tmp_path)
