"""
Database CLI Commands

Database operations: init, seed, cleanup
"""
import asyncio
import logging

from festboard.database import AsyncSessionLocal, close_db, init_db
from festboard.realtime.fanout_bus import FanoutBus
from festboard.seed.seed_festival import (
    DEMO_EVENTS, EXAMPLE_EVENTS, HOUSES, cleanup_demo_data, seed_festival,
)

logger = logging.getLogger(__name__)


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        elif args.db_action == "seed":
            return self._seed(args)
        elif args.db_action == "cleanup":
            return self._cleanup(args)
        else:
            print("Error: Unknown database action")
            return 1

    def _run(self, coro) -> int:
        async def runner():
            try:
                await coro
            finally:
                await close_db()

        try:
            asyncio.run(runner())
        except Exception as e:
            logger.error(f"Database command failed: {type(e).__name__}: {e}")
            return 1
        return 0

    def _init(self, args) -> int:
        """Create missing tables."""
        print("=== Database Init ===")
        if self.dry_run:
            print("[DRY RUN] Would create missing tables")
            return 0
        return self._run(init_db())

    def _seed(self, args) -> int:
        """Seed houses and example events."""
        print("=== Database Seed ===")
        if self.dry_run:
            print("[DRY RUN] Would seed houses: " + ", ".join(h["display_name"] for h in HOUSES))
            print("[DRY RUN] Would seed events: " + ", ".join(e["name"] for e in EXAMPLE_EVENTS))
            if args.demo:
                print(f"[DRY RUN] Would create {len(DEMO_EVENTS)} demo events with random results")
            return 0
        return self._run(seed_festival(demo=args.demo))

    def _cleanup(self, args) -> int:
        """Remove demo data."""
        print("=== Demo Data Cleanup ===")
        if self.dry_run:
            print("[DRY RUN] Would delete demo results and events: " + ", ".join(e["name"] for e in DEMO_EVENTS))
            return 0

        async def cleanup():
            async with AsyncSessionLocal() as db:
                # No display is connected to this process
                counts = await cleanup_demo_data(db, FanoutBus())
            print(f"Deleted {counts['results']} results and {counts['events']} events")

        return self._run(cleanup())
