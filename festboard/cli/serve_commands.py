"""
Server CLI Commands
"""
import logging

import uvicorn

logger = logging.getLogger(__name__)


class ServeCommand:
    """API server command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        if self.dry_run:
            print(f"[DRY RUN] Would serve festboard.main:app on {args.host}:{args.port}")
            return 0

        logger.info(f"Starting server on {args.host}:{args.port}")
        # One process only: the live stream bus lives in this process
        uvicorn.run(
            "festboard.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info"
        )
        return 0
