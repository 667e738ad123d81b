"""
app.py — HTTP entry point for the playlist track extractor

Run via:  python app.py   (or: uvicorn app:app)
"""
from __future__ import annotations

import asyncio
import os
import socket
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from tracklist.browser import open_playlist_page
from tracklist.config import ExtractionSettings, get_logger, setup_logging
from tracklist.engine import ExtractionJob, PageOpener, extract_tracks
from tracklist.errors import ExtractionError, PageNavigationFailure, SelectorTimeout
from tracklist.spotify import extract_playlist_id
from tracklist.stream import NDJSON_MEDIA_TYPE, STREAM_HEADERS, ndjson_stream

logger = get_logger("api")

app = FastAPI(title="Playlist track extractor")


class PlaylistSubmission(BaseModel):
    url: Optional[str] = None
    text: Optional[str] = None


def get_settings() -> ExtractionSettings:
    return ExtractionSettings.from_env()


def get_page_opener() -> PageOpener:
    return open_playlist_page


def _playlist_id_or_400(url: str) -> str:
    try:
        return extract_playlist_id(url)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Spotify Playlist URL")


# ──────────────────────────────────────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────────────────────────────────────

@app.post("/api/playlist")
async def submit_playlist(
    body: PlaylistSubmission,
    settings: ExtractionSettings = Depends(get_settings),
    opener: PageOpener = Depends(get_page_opener),
):
    """
    Accept a pasted track list or a Spotify playlist URL.

    Pasted text is echoed back as a single JSON document. A URL starts a
    browser extraction whose progress is streamed as newline-delimited JSON;
    errors after the stream has started arrive as an error record, since the
    status code is already sent by then.
    """
    if not body.url and not body.text:
        raise HTTPException(status_code=400, detail="URL or Text is required")

    if body.text:
        return JSONResponse({"type": "text", "content": body.text})

    playlist_id = _playlist_id_or_400(body.url)
    job = ExtractionJob(playlist_id, settings=settings, opener=opener)

    async def line_generator() -> AsyncIterator[str]:
        try:
            async for line in ndjson_stream(job.events()):
                yield line
        except asyncio.CancelledError:
            job.cancel()  # client disconnected
            raise

    return StreamingResponse(
        line_generator(),
        media_type=NDJSON_MEDIA_TYPE,
        headers=STREAM_HEADERS,
    )


@app.get("/api/playlist/tracks")
async def playlist_tracks(
    url: str,
    settings: ExtractionSettings = Depends(get_settings),
    opener: PageOpener = Depends(get_page_opener),
):
    """Non-streaming variant: wait for the whole list and return it at once."""
    playlist_id = _playlist_id_or_400(url)
    try:
        tracks = await extract_tracks(playlist_id, settings=settings, opener=opener)
    except SelectorTimeout as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PageNavigationFailure as e:
        raise HTTPException(status_code=502, detail=e.message)
    except ExtractionError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {
        "total": len(tracks),
        "tracks": [t.to_dict() for t in tracks],
    }


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def _find_port(start: int = 3000, attempts: int = 10) -> int:
    for port in range(start, start + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(("127.0.0.1", port))
                return port
            except OSError:
                continue
    raise RuntimeError(f"No free port found between {start}–{start + attempts - 1}")


if __name__ == "__main__":
    setup_logging()
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT") or _find_port())
    print(f"  →  Starting on http://{host}:{port}")

    try:
        uvicorn.run(
            "app:app",
            host=host,
            port=port,
            reload=False,
            log_level="warning",
        )
    except KeyboardInterrupt:
        print("\n\n  Stopped. Bye!\n")
