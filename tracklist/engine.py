"""
Track extraction engine.

Scroll-and-capture over a virtualized track list:

  walk_render_passes  — one read per pass, then scroll and let the page settle
  ExtractionSession   — dedups rows across passes, first-seen order
  ConvergenceDetector — stop after N passes without a new track, or at the cap
  run_extraction      — the loop, as an async generator of events
  ExtractionJob       — runs the loop as a task feeding an event queue

Both public entry points (``extract_tracks`` and the HTTP stream) drain an
ExtractionJob, so they share one loop.
"""
from __future__ import annotations

import asyncio
import enum
from contextlib import aclosing
from typing import AsyncContextManager, AsyncIterator, Callable, Iterable, Optional

from .browser import open_playlist_page
from .config import ExtractionSettings, get_logger
from .errors import ExtractionError, ScrollInteractionFailure
from .models import Event, Failure, Progress, Result, TrackCandidate
from .spotify import PlaylistPage

logger = get_logger("engine")

PageOpener = Callable[[str, ExtractionSettings], AsyncContextManager[PlaylistPage]]

# Strong refs for producer tasks that outlive their consumer
_background_tasks: set[asyncio.Task] = set()


class ExtractionSession:
    """Mutable state of a single extraction call."""

    def __init__(self, playlist_id: str):
        self.playlist_id = playlist_id
        self.tracks: dict[str, TrackCandidate] = {}

    def merge(self, candidates: Iterable[TrackCandidate]) -> int:
        """Add unseen tracks; return the total unique count."""
        for track in candidates:
            key = track.key
            if key not in self.tracks:
                self.tracks[key] = track
        return len(self.tracks)

    @property
    def count(self) -> int:
        return len(self.tracks)

    def entries(self) -> tuple[TrackCandidate, ...]:
        return tuple(self.tracks.values())


class ScanState(enum.Enum):
    SCANNING = "scanning"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class ConvergenceDetector:
    def __init__(self, max_passes: int = 15, stagnation_threshold: int = 2):
        self.max_passes = max_passes
        self.stagnation_threshold = stagnation_threshold
        self.iterations = 0
        self.stagnant = 0
        self.last_count = 0
        self.state = ScanState.SCANNING

    @property
    def done(self) -> bool:
        return self.state is not ScanState.SCANNING

    def observe(self, count: int) -> ScanState:
        """Record the unique count after a pass and return the new state."""
        if self.done:
            return self.state

        self.iterations += 1
        if count == self.last_count:
            self.stagnant += 1
        else:
            self.stagnant = 0
        self.last_count = count

        if self.stagnant >= self.stagnation_threshold:
            self.state = ScanState.CONVERGED
        elif self.iterations >= self.max_passes:
            self.state = ScanState.EXHAUSTED
        return self.state

    def fail(self) -> ScanState:
        self.state = ScanState.FAILED
        return self.state


async def walk_render_passes(
    page: PlaylistPage,
    settings: ExtractionSettings,
) -> AsyncIterator[list[TrackCandidate]]:
    """
    Yield the rows rendered on each pass, scrolling between passes.

    The first pass waits for at least one row to appear. A consumer that
    stops iterating stops the walk before the next scroll.
    """
    await page.wait_for_rows(settings.initial_wait_seconds)

    for _ in range(settings.max_passes):
        yield await page.read_rows()

        try:
            await page.advance(settings.scroll_delta)
        except ScrollInteractionFailure as exc:
            logger.warning(f"Scroll failed, reading again without it: {exc}")

        await asyncio.sleep(settings.settle_delay_seconds)


async def run_extraction(
    playlist_id: str,
    *,
    settings: Optional[ExtractionSettings] = None,
    opener: PageOpener = open_playlist_page,
    cancelled: Optional[asyncio.Event] = None,
) -> AsyncIterator[Event]:
    """
    Async generator of events for one playlist.

    Yields Progress after every pass, then exactly one Result or Failure.
    If ``cancelled`` is set the loop stops at the next pass boundary and no
    terminal event is produced.
    """
    settings = settings or ExtractionSettings.from_env()
    session = ExtractionSession(playlist_id)
    detector = ConvergenceDetector(settings.max_passes, settings.stagnation_threshold)

    try:
        async with opener(playlist_id, settings) as page:
            logger.info(f"[{playlist_id}] Starting scroll-and-capture")
            async with aclosing(walk_render_passes(page, settings)) as passes:
                async for candidates in passes:
                    if cancelled is not None and cancelled.is_set():
                        logger.info(f"[{playlist_id}] Cancelled after {detector.iterations} passes")
                        return

                    count = session.merge(candidates)
                    state = detector.observe(count)
                    logger.info(
                        f"[{playlist_id}] Pass {detector.iterations}: {len(candidates)} rows, "
                        f"{count} unique tracks so far"
                    )
                    yield Progress(count)
                    if detector.done:
                        logger.info(f"[{playlist_id}] {state.value} after {detector.iterations} passes")
                        break
    except ExtractionError as exc:
        detector.fail()
        logger.error(f"[{playlist_id}] {exc.kind}: {exc}")
        yield Failure.from_error(exc)
        return
    except Exception as exc:
        detector.fail()
        logger.exception(f"[{playlist_id}] Unexpected error while fetching playlist")
        yield Failure(message="Failed to fetch playlist", detail=str(exc))
        return

    if cancelled is not None and cancelled.is_set():
        return

    logger.info(f"[{playlist_id}] Successfully scraped {session.count} tracks")
    yield Result(session.entries())


class ExtractionJob:
    """
    Runs ``run_extraction`` as its own task and hands events over a queue.

    The consumer reads ``events()``. If it stops early (e.g. the HTTP client
    disconnected) the job is cancelled: the loop is interrupted where it is
    suspended and the browser is still closed by the session manager.
    """

    def __init__(
        self,
        playlist_id: str,
        *,
        settings: Optional[ExtractionSettings] = None,
        opener: PageOpener = open_playlist_page,
    ):
        self.playlist_id = playlist_id
        self.settings = settings or ExtractionSettings.from_env()
        self.opener = opener
        self.cancelled = asyncio.Event()
        self._queue: asyncio.Queue[Optional[Event]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._produce(), name=f"extract-{self.playlist_id}")
        _background_tasks.add(self._task)
        self._task.add_done_callback(_background_tasks.discard)

    def cancel(self) -> None:
        self.cancelled.set()
        if self.running:
            self._task.cancel()

    async def _produce(self) -> None:
        try:
            async with aclosing(
                run_extraction(
                    self.playlist_id,
                    settings=self.settings,
                    opener=self.opener,
                    cancelled=self.cancelled,
                )
            ) as events:
                async for event in events:
                    self._queue.put_nowait(event)
        finally:
            self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[Event]:
        self.start()
        try:
            while True:
                event = await self._queue.get()
                if event is None:
                    return
                yield event
        finally:
            # Consumer gone before the producer finished
            if self.running:
                logger.info(f"[{self.playlist_id}] Consumer stopped early, cancelling extraction")
                self.cancel()


async def extract_tracks(
    playlist_id: str,
    on_progress: Optional[Callable[[int], None]] = None,
    *,
    settings: Optional[ExtractionSettings] = None,
    opener: PageOpener = open_playlist_page,
) -> list[TrackCandidate]:
    """Return the playlist's tracks in first-seen order, or raise the extraction error."""
    job = ExtractionJob(playlist_id, settings=settings, opener=opener)
    async with aclosing(job.events()) as events:
        async for event in events:
            if isinstance(event, Progress):
                if on_progress:
                    on_progress(event.count)
            elif isinstance(event, Result):
                return list(event.entries)
            elif isinstance(event, Failure):
                raise event.to_error()
    raise ExtractionError("Extraction ended without a result")
