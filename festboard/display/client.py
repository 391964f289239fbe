"""
Display Client

Asyncio driver around DisplayStateMachine: owns the stream subscription,
the periodic reconciliation poll, the reveal timers and the finale scroll.

A failed fetch never reaches the audience; the screen keeps its last
known good state until the next poll succeeds.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set

import httpx

from festboard.config.settings import settings
from festboard.display.api_client import BoardAPI
from festboard.display.state_machine import DisplayPhase, DisplayStateMachine, Track

logger = logging.getLogger(__name__)

OVERLAY_FADE_SECONDS = 0.5
COMMIT_DELAY_SECONDS = 0.1
BOARD_REFRESH_DELAY_SECONDS = 0.5

FETCH_ERRORS = (httpx.HTTPError, ValueError)


class DisplayClient:
    """
    Keeps one screen in sync with the server.

    Args:
        api: BoardAPI pointed at the server
        machine: State machine to drive (two level tracks by default)
        on_change: Called with machine.snapshot() after every state change
    """

    def __init__(
        self,
        api: BoardAPI,
        machine: Optional[DisplayStateMachine] = None,
        on_change: Optional[Callable[[Dict[str, Any]], None]] = None,
        reconcile_seconds: float = settings.DISPLAY_RECONCILE_SECONDS,
        reveal_seconds: float = settings.DISPLAY_REVEAL_SECONDS,
        scroll_seconds: float = settings.DISPLAY_SCROLL_SECONDS,
        reconnect_seconds: float = settings.DISPLAY_RECONNECT_SECONDS,
    ):
        self.api = api
        self.machine = machine or DisplayStateMachine(recent_limit=settings.DISPLAY_RECENT_LIMIT)
        self.on_change = on_change
        self.reconcile_seconds = reconcile_seconds
        self.reveal_seconds = reveal_seconds
        self.scroll_seconds = scroll_seconds
        self.reconnect_seconds = reconnect_seconds
        self._tasks: Set[asyncio.Task] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _render(self) -> None:
        if self.on_change is not None:
            self.on_change(self.machine.snapshot())

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load the current state, then subscribe and start the background loops."""
        if self._running:
            return
        self._running = True

        await self.refresh_all(from_poll=False)
        await self.refresh_finalized()
        self._render()

        self._spawn(self._subscribe_loop())
        self._spawn(self._reconcile_loop())
        self._spawn(self._scroll_loop())
        logger.info("Display client started")

    async def stop(self) -> None:
        """Cancel every loop and timer and close the stream."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        await self.api.aclose()
        logger.info("Display client stopped")

    # =========================================================================
    # Fetching
    # =========================================================================

    async def refresh_board(self, track: Track) -> None:
        try:
            rows = await self.api.fetch_leaderboard(track.level)
        except FETCH_ERRORS as e:
            logger.warning(f"Leaderboard fetch failed for {track.key}: {e}")
            return
        self.machine.apply_board(track.level, rows)

    async def refresh_results(self, track: Track, from_poll: bool) -> None:
        try:
            rows = await self.api.fetch_results(track.level)
        except FETCH_ERRORS as e:
            logger.warning(f"Results fetch failed for {track.key}: {e}")
            return
        self.machine.apply_results(track.level, rows, from_poll=from_poll)

    async def refresh_all(self, from_poll: bool) -> None:
        for track in list(self.machine.tracks.values()):
            await self.refresh_board(track)
            await self.refresh_results(track, from_poll)

    async def refresh_finalized(self) -> None:
        try:
            finalized = await self.api.fetch_finalized()
        except FETCH_ERRORS as e:
            logger.warning(f"Finalize flag fetch failed: {e}")
            return
        self.machine.apply_finalized(finalized)

    # =========================================================================
    # Stream events
    # =========================================================================

    async def handle_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        if event_type == "result":
            if self.machine.on_result(payload):
                logger.info(f"Revealing result for {payload.get('eventName')}")
                self._spawn(self._reveal(self.machine.transition_id))
            else:
                logger.debug(f"Dropped result {payload.get('id')} ({self.machine.phase.value})")
        elif event_type == "result_deleted":
            self.machine.on_result_deleted(payload)
            self._render()
            await self.refresh_all(from_poll=False)
        elif event_type == "finalize":
            if self.machine.on_finalize(payload):
                await self.refresh_all(from_poll=False)
        else:
            logger.debug(f"Ignoring unknown event type {event_type}")
            return
        self._render()

    async def _reveal(self, transition_id: int) -> None:
        """Headline overlay, then commit the result, then resync the board."""
        await asyncio.sleep(self.reveal_seconds + COMMIT_DELAY_SECONDS)
        track = self.machine.complete_transition(transition_id)
        self._render()
        if track is None:
            return
        await asyncio.sleep(OVERLAY_FADE_SECONDS + BOARD_REFRESH_DELAY_SECONDS)
        await self.refresh_board(track)
        self._render()

    async def _subscribe_loop(self) -> None:
        while self._running:
            try:
                async for event_type, payload in self.api.stream_events():
                    await self.handle_event(event_type, payload)
                logger.warning("Event stream closed by server")
            except (httpx.HTTPError, httpx.StreamError) as e:
                logger.warning(f"Event stream error: {e}")

            await asyncio.sleep(self.reconnect_seconds)
            # Events may have been missed while disconnected
            await self.refresh_all(from_poll=True)
            await self.refresh_finalized()
            self._render()

    # =========================================================================
    # Timers
    # =========================================================================

    async def _reconcile_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.reconcile_seconds)
            await self.refresh_all(from_poll=True)
            await self.refresh_finalized()
            self._render()

    async def _scroll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.scroll_seconds)
            if self.machine.phase != DisplayPhase.FINALIZED_SCROLLING:
                continue
            for level in list(self.machine.tracks):
                self.machine.advance(level)
            self._render()
            if self.machine.phase == DisplayPhase.FINALIZED_WINNER:
                winner = self.machine.winner or {}
                logger.info(f"Winner revealed: {winner.get('displayName', 'none')}")
