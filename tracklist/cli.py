"""
Fetch a playlist from the command line.

    tracklist-fetch https://open.spotify.com/playlist/3cEYpjA9oz9GiPac4AsH4n

Progress goes to stderr, "artist - title" lines to stdout.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace

from .config import ExtractionSettings, setup_logging
from .engine import extract_tracks
from .errors import ExtractionError, SelectorTimeout
from .spotify import extract_playlist_id


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape the track list of a public Spotify playlist")
    parser.add_argument("playlist", help="Spotify playlist URL or ID")
    parser.add_argument("--max-passes", type=int, help="Override the scroll pass cap")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every pass")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING")

    try:
        playlist_id = extract_playlist_id(args.playlist)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    settings = ExtractionSettings.from_env()
    overrides = {}
    if args.max_passes:
        overrides["max_passes"] = args.max_passes
    if args.headful:
        overrides["headless"] = False
    if overrides:
        settings = replace(settings, **overrides)

    def on_progress(count: int) -> None:
        print(f"  … {count} tracks", file=sys.stderr)

    print(f"Fetching playlist {playlist_id}", file=sys.stderr)
    try:
        tracks = asyncio.run(extract_tracks(playlist_id, on_progress, settings=settings))
    except SelectorTimeout as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ExtractionError as e:
        print(f"Error fetching playlist: {e}", file=sys.stderr)
        return 1

    for track in tracks:
        print(track.as_line())
    print(f"\nTotal tracks found: {len(tracks)}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
