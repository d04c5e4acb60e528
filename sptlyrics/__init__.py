"""
sptlyrics - synchronized Spotify lyrics for the terminal
Fetches line-synced lyrics for the track playing in Spotify, caches them on disk
and prints them line by line as playback advances
"""

VERSION = "1.0.0"
