import asyncio

import aiohttp
import pytest

from conftest import FakeResponse, FakeSession
from sptlyrics.errors import InvalidResponseError, NetworkError
from sptlyrics.totp import deobfuscate_secret, fetch_latest_secret, generate_totp, pick_latest_secret

RFC_SECRET = "12345678901234567890"
SECRET_URL = "https://secrets.example/secrets.json"


@pytest.mark.parametrize("server_time, expected", [
	(59, "94287082"),
	(1111111109, "07081804"),
	(1234567890, "89005924"),
	(2000000000, "69279037"),
])
def test_generate_totp_matches_rfc6238_sha1_vectors(server_time, expected):
	assert generate_totp(server_time, RFC_SECRET, digits=8) == expected


def test_generate_totp_defaults_to_six_zero_padded_digits():
	assert generate_totp(59, RFC_SECRET) == "287082"
	assert generate_totp(1111111109, RFC_SECRET) == "081804"
	assert generate_totp(1111111109, RFC_SECRET.encode()) == "081804"


def test_codes_are_stable_within_one_period():
	assert generate_totp(60, RFC_SECRET) == generate_totp(89, RFC_SECRET)
	assert generate_totp(89, RFC_SECRET) != generate_totp(90, RFC_SECRET)


def test_deobfuscate_xors_with_index_dependent_key():
	# 'A' ^ 9 == 72, 'B' ^ 10 == 72
	assert deobfuscate_secret("AB") == "7272"
	# the key cycles every 33 characters: index 32 uses 41, index 33 uses 9 again
	assert deobfuscate_secret("A" * 34).endswith("10472")


def test_pick_latest_secret_uses_highest_version_not_list_order():
	secrets = [
		{"version": 14, "secret": "B"},
		{"version": 61, "secret": "A"},
		{"version": 7, "secret": "C"},
	]
	assert pick_latest_secret(secrets) == ("72", 61)


@pytest.mark.parametrize("payload", [[], {}, [{"version": "x", "secret": "A"}], [{"secret": "A"}]])
def test_pick_latest_secret_rejects_bad_lists(payload):
	with pytest.raises(InvalidResponseError):
		pick_latest_secret(payload)


def test_fetch_latest_secret_over_http():
	session = FakeSession({SECRET_URL: FakeResponse(payload=[{"version": 3, "secret": "AB"}])})
	assert asyncio.run(fetch_latest_secret(SECRET_URL, session=session)) == ("7272", 3)


def test_fetch_latest_secret_errors():
	session = FakeSession({SECRET_URL: [
		FakeResponse(status=500),
		FakeResponse(text="not json"),
		aiohttp.ClientConnectionError("down"),
	]})
	with pytest.raises(InvalidResponseError):
		asyncio.run(fetch_latest_secret(SECRET_URL, session=session))
	with pytest.raises(InvalidResponseError):
		asyncio.run(fetch_latest_secret(SECRET_URL, session=session))
	with pytest.raises(NetworkError):
		asyncio.run(fetch_latest_secret(SECRET_URL, session=session))
