import asyncio
from contextlib import asynccontextmanager

import pytest

from tracklist.config import ExtractionSettings
from tracklist.errors import ExtractionEvaluationFailure, PageNavigationFailure
from tracklist.models import TrackCandidate


def make_tracks(prefix: str, start: int, n: int) -> list[TrackCandidate]:
    return [
        TrackCandidate(title=f"{prefix} Song {i}", artists=(f"{prefix} Artist {i}",))
        for i in range(start, start + n)
    ]


class FakePlaylistPage:
    """Scripted stand-in for a rendered playlist: pass N returns passes[N]."""

    def __init__(self, passes, *, wait_error=None, read_error_at=None, advance_error=None, block_at=None):
        self.passes = [list(p) for p in passes] or [[]]
        self.wait_error = wait_error
        self.read_error_at = read_error_at
        self.advance_error = advance_error
        self.block_at = block_at
        self.waits = 0
        self.reads = 0
        self.advances = 0

    async def wait_for_rows(self, timeout):
        self.waits += 1
        await asyncio.sleep(0)
        if self.wait_error is not None:
            raise self.wait_error

    async def read_rows(self):
        self.reads += 1
        if self.block_at == self.reads:
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        if self.read_error_at == self.reads:
            raise ExtractionEvaluationFailure("Could not read track rows", "Execution context was destroyed")
        return list(self.passes[min(self.reads - 1, len(self.passes) - 1)])

    async def advance(self, delta):
        self.advances += 1
        if self.advance_error is not None:
            raise self.advance_error


class FakeOpener:
    """Records every acquire/release of a page, keyed by playlist id."""

    def __init__(self, pages, navigation_error: Exception | None = None):
        self.pages = pages if isinstance(pages, dict) else None
        self.page = None if isinstance(pages, dict) else pages
        self.navigation_error = navigation_error
        self.acquired: list[str] = []
        self.released: list[str] = []
        self.all_released = asyncio.Event()

    @asynccontextmanager
    async def open(self, playlist_id, settings):
        self.acquired.append(playlist_id)
        try:
            if self.navigation_error is not None:
                raise self.navigation_error
            yield self.pages[playlist_id] if self.pages is not None else self.page
        finally:
            self.released.append(playlist_id)
            if len(self.released) == len(self.acquired):
                self.all_released.set()


@pytest.fixture
def settings():
    return ExtractionSettings(
        max_passes=15,
        stagnation_threshold=2,
        initial_wait_seconds=1,
        settle_delay_seconds=0,
    )


@pytest.fixture
def navigation_failure():
    return PageNavigationFailure("Could not load playlist abc", "net::ERR_NAME_NOT_RESOLVED")
