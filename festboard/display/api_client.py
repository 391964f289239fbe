"""
HTTP client used by display screens.

Thin wrapper over httpx.AsyncClient for the read endpoints and the
event stream.
"""
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from festboard.realtime.sse import SSEDecoder, parse_frame

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class BoardAPI:
    """
    Read-only access to a results board server.

    A stream that stays silent for longer than `stream_read_timeout` is
    treated as dead (the server sends a keepalive well inside that window).
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        stream_read_timeout: float = 60.0
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._stream_timeout = httpx.Timeout(timeout, read=stream_read_timeout)

    async def _get_json(self, path: str, level: Optional[str] = None) -> Any:
        params = {"level": level} if level else None
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_leaderboard(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        body = await self._get_json("/api/leaderboard", level)
        return body.get("data") or []

    async def fetch_results(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        body = await self._get_json("/api/results", level)
        return body.get("data") or []

    async def fetch_finalized(self) -> bool:
        body = await self._get_json("/api/finalize")
        return bool(body.get("finalized"))

    async def stream_events(self) -> AsyncIterator[Tuple[str, Dict[str, Any]]]:
        """
        Yield (event_type, payload) for every board event on the stream.

        Connection frames (`ping`, `keepalive`) and malformed frames are
        skipped. Ends when the server closes the stream.
        """
        decoder = SSEDecoder()
        async with self._client.stream("GET", "/api/stream", timeout=self._stream_timeout) as response:
            response.raise_for_status()
            logger.info("Event stream connected")
            async for line in response.aiter_lines():
                frame = decoder.feed(line)
                if frame is None:
                    continue
                parsed = parse_frame(*frame)
                if parsed is not None:
                    yield parsed

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
