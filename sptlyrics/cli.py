import argparse
import asyncio
import sys

import aiohttp

from . import VERSION
from .auth import TokenManager
from .cache import LyricsCache
from .config import ConfigManager
from .errors import PlayerError
from .fetch import LyricsFetcher
from .listener import listen, print_once, snapshot_track
from .logger import LOGGER, configure_logger
from .lrc import encode_lines
from .player import PlayerctlBridge


def add_display_args(parser, with_interval=False):
	parser.add_argument("-l", "--lines", type=int, default=None, help="Number of lines to display")
	parser.add_argument("-o", "--output", default=None, help="Output file path")
	parser.add_argument("-f", "--offset-file", default=None, help="File to read offset from (if not set, uses --offset)")
	parser.add_argument("-O", "--offset", type=int, default=None, help="Offset in milliseconds for lyrics timing (ignored if --offset-file is set)")
	parser.add_argument("-a", "--ahead", type=int, default=None, help="Number of lines to display ahead of current position")
	parser.add_argument("-c", "--cls", action="store_true", default=None, help="Clear the terminal before displaying lyrics")
	if with_interval:
		parser.add_argument("-i", "--interval", type=int, default=None, help="Interval in milliseconds between updates")


def build_parser():
	parser = argparse.ArgumentParser(prog="sptlyrics", description="Fetch and display synchronized Spotify lyrics")
	parser.add_argument("--config", help="Path to configuration file")
	parser.add_argument("-d", "--default", action="store_true", help="Use default settings without loading a config file")
	parser.add_argument("--version", action="version", version=VERSION)
	subparsers = parser.add_subparsers(dest="command", required=True)

	fetch = subparsers.add_parser("fetch", help="Fetch lyrics for current track")
	fetch.add_argument("-p", "--pure", action="store_true", help="Output lyrics without times")

	add_display_args(subparsers.add_parser("listen", help="Listen mode - continuously display lyrics"), with_interval=True)
	add_display_args(subparsers.add_parser("print", help="Print mode - single shot display"))

	clear = subparsers.add_parser("clear", help="Clear all cached lyrics or for a specific track")
	clear.add_argument("trackid", nargs="?")

	subparsers.add_parser("length", help="Get the length of the current track (in ms)")
	subparsers.add_parser("position", help="Get the current position of the track (in ms)")
	set_position = subparsers.add_parser("set-position", help="Set the current position of the track (in ms)")
	set_position.add_argument("position", type=int)
	subparsers.add_parser("info", help="Get information about the current track")
	subparsers.add_parser("trackid", help="Get the current track ID")
	subparsers.add_parser("status", help="Exit 0 if the current track is playing, 1 otherwise")
	return parser


def display_kwargs(args):
	"""Validated listen/print options; unset ones fall back to the config"""
	num_lines = args.lines
	if num_lines is not None and num_lines < 1:
		LOGGER.log_warn("Number of lines must be positive, correcting to 1")
		num_lines = 1
	ahead = args.ahead
	if ahead is not None and ahead < 0:
		LOGGER.log_warn("Ahead lines must be non-negative, correcting to 0")
		ahead = 0
	return {
		"num_lines": num_lines,
		"output_path": args.output,
		"offset_ms": args.offset,
		"offset_file": args.offset_file,
		"ahead": ahead,
		"cls": args.cls,
	}


async def fetch_current(config, player):
	track_id = player.track_id()
	track = snapshot_track(player, track_id)
	async with aiohttp.ClientSession() as session:
		fetcher = LyricsFetcher(config, LyricsCache.from_config(config), TokenManager(config), session=session)
		return await fetcher.acquire(track)


def cmd_fetch(config, player, args):
	lyrics = asyncio.run(fetch_current(config, player))
	if lyrics.is_error:
		LOGGER.log_error("No lyrics found" if lyrics.is_not_found else "Failed to fetch lyrics")
		return 1
	if args.pure:
		for line in lyrics.lines:
			print(line.text)
	else:
		print("\n".join(encode_lines(lyrics)))
	return 0


def cmd_clear(config, args):
	cache = LyricsCache.from_config(config)
	try:
		cache.clear(args.trackid)
	except OSError as e:
		LOGGER.log_error(f"Error clearing cache: {e}")
		return 1
	return 0


def run(args):
	config = ConfigManager(config_path=args.config, use_default=args.default)
	configure_logger(config)
	player = PlayerctlBridge(config.PLAYER_NAME, config.PLAYER_TIMEOUT_SEC)

	if args.command == "listen":
		return listen(config, interval_ms=args.interval, player=player, **display_kwargs(args))
	if args.command == "print":
		return print_once(config, player=player, **display_kwargs(args))
	if args.command == "clear":
		return cmd_clear(config, args)
	if args.command == "status":
		return 0 if player.playing_status() else 1

	try:
		if args.command == "fetch":
			config.ensure_cache_dir()
			return cmd_fetch(config, player, args)
		if args.command == "length":
			print(player.length_ms())
		elif args.command == "position":
			print(player.position_ms())
		elif args.command == "set-position":
			player.set_position(args.position)
			LOGGER.log_info(f"Track position set to: {args.position} ms")
		elif args.command == "info":
			print(snapshot_track(player, player.track_id()).display_title)
		elif args.command == "trackid":
			print(player.track_id())
	except PlayerError as e:
		LOGGER.log_error(str(e))
		return 1
	return 0


def main(argv=None):
	args = build_parser().parse_args(argv)
	try:
		return run(args)
	except KeyboardInterrupt:
		LOGGER.log_info("Exited by user (Ctrl+C).")
		return 130


if __name__ == "__main__":
	sys.exit(main())
