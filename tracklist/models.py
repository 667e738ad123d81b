"""
Track candidates and the events an extraction run emits.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from .errors import ExtractionError, error_from_kind

_WS = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Case-fold and collapse whitespace."""
    return _WS.sub(" ", text).strip().casefold()


def unique_artists(artists) -> tuple[str, ...]:
    """Drop blank and repeated names, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in artists:
        name = _WS.sub(" ", name or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return tuple(result)


@dataclass(frozen=True)
class TrackCandidate:
    title: str
    artists: tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: dict) -> "TrackCandidate":
        """Build from a row record returned by the page script."""
        artists = row.get("artists") or ()
        if isinstance(artists, str):
            artists = artists.split(",")
        return cls(title=(row.get("title") or "").strip(), artists=unique_artists(artists))

    @property
    def artist_line(self) -> str:
        return ", ".join(self.artists)

    @property
    def key(self) -> str:
        return canonical_key(self)

    def as_line(self) -> str:
        return f"{self.artist_line} - {self.title}"

    def to_dict(self) -> dict:
        return {"title": self.title, "artists": list(self.artists)}


def canonical_key(track: TrackCandidate) -> str:
    """
    Dedup key for one session: "artist a, artist b - song title".

    Artist order is significant; repeats (after normalization) are dropped.
    """
    artists: list[str] = []
    for name in track.artists:
        name = normalize(name)
        if name and name not in artists:
            artists.append(name)
    return f"{', '.join(artists)} - {normalize(track.title)}"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Progress:
    count: int


@dataclass(frozen=True)
class Result:
    entries: tuple[TrackCandidate, ...] = field(default_factory=tuple)

    @property
    def text(self) -> str:
        return "\n".join(t.as_line() for t in self.entries)


@dataclass(frozen=True)
class Failure:
    message: str
    detail: str | None = None
    kind: str = "ExtractionError"

    @classmethod
    def from_error(cls, exc: ExtractionError) -> "Failure":
        return cls(message=exc.message, detail=exc.detail, kind=exc.kind)

    def to_error(self) -> ExtractionError:
        return error_from_kind(self.kind, self.message, self.detail)


Event = Union[Progress, Result, Failure]
