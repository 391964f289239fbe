"""
Display CLI Commands

Runs a headless display client that logs what a screen would show.
"""
import asyncio
import logging
from typing import Any, Dict

from festboard.config.settings import settings
from festboard.display.api_client import BoardAPI
from festboard.display.client import DisplayClient
from festboard.display.state_machine import DEFAULT_LEVELS, DisplayStateMachine

logger = logging.getLogger(__name__)


def describe(snapshot: Dict[str, Any]) -> str:
    """One-line summary of a display snapshot."""
    parts = [snapshot["phase"]]
    if snapshot.get("headline"):
        parts.append(f"headline={snapshot['headline']}")
    for key, track in snapshot["tracks"].items():
        latest = track.get("latest") or {}
        leader = (track.get("board") or [{}])[0]
        parts.append(
            f"{key}: latest={latest.get('eventName', '-')} "
            f"leader={leader.get('displayName', '-')}"
        )
    if snapshot.get("winner"):
        parts.append(f"winner={snapshot['winner'].get('displayName')}")
    if snapshot.get("leaders"):
        parts.append("leaders=" + ", ".join(
            f"{key}:{(leader or {}).get('displayName', '-')}" for key, leader in snapshot["leaders"].items()
        ))
    return " | ".join(parts)


class DisplayCommand:
    """Display client command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self._last = None

    def execute(self, args) -> int:
        if args.display_action == "run":
            return self._run_display(args)
        print("Error: Unknown display action")
        return 1

    def _on_change(self, snapshot: Dict[str, Any]) -> None:
        line = describe(snapshot)
        if line != self._last:
            self._last = line
            logger.info(line)

    def _run_display(self, args) -> int:
        levels = (None,) if args.single_track else DEFAULT_LEVELS
        if self.dry_run:
            print(f"[DRY RUN] Would follow {args.base_url} with tracks {list(levels)}")
            return 0

        async def run():
            machine = DisplayStateMachine(levels=levels, recent_limit=settings.DISPLAY_RECENT_LIMIT)
            client = DisplayClient(BoardAPI(args.base_url), machine=machine, on_change=self._on_change)
            await client.start()
            try:
                while client.running:
                    await asyncio.sleep(3600)
            finally:
                await client.stop()

        try:
            asyncio.run(run())
        except KeyboardInterrupt:
            logger.info("Display stopped")
        return 0
