"""
Server-Sent Events framing.

Server side: frame formatting and the per-subscriber stream generator.
Client side: an incremental line decoder used by the display client.

Frame format:
    event: <type>\n
    data: <json>\n
    \n
"""
import json
import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from festboard.realtime.fanout_bus import FanoutBus

logger = logging.getLogger(__name__)

# Connection-level frames carry no board data
CONNECTION_EVENTS = frozenset({"ping", "keepalive"})


def serialize(payload: Any) -> str:
    """Deterministic JSON serialization (sorted keys, compact)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def format_sse(event_type: str, data: str) -> str:
    return f"event: {event_type}\ndata: {data}\n\n"


def encode_event(event_type: str, payload: Any) -> str:
    return format_sse(event_type, serialize(payload))


PING_FRAME = encode_event("ping", "hello")
KEEPALIVE_FRAME = encode_event("keepalive", {})


async def event_stream(bus: "FanoutBus", keepalive_interval: float) -> AsyncIterator[str]:
    """
    Register one subscriber and yield its frames until it is released.

    The subscriber exists only while the generator runs: registration happens
    on the first frame request, and the handle is released when the generator
    finishes for any reason, including the client disconnecting. A stream that
    is never iterated never registers.

    Emits a keepalive frame whenever the channel stays quiet for
    `keepalive_interval` seconds.
    """
    handle = None
    try:
        handle = bus.register()
        while True:
            frame = await handle.next_frame(timeout=keepalive_interval)
            if frame is None:
                if handle.released:
                    break
                yield KEEPALIVE_FRAME
                continue
            yield frame
    finally:
        if handle is not None:
            handle.release()


class SSEDecoder:
    """
    Incremental decoder for an SSE line stream.

    Feed it lines (without trailing newline); it returns a completed
    (event_type, data) tuple on the blank line that ends each frame.
    """

    def __init__(self):
        self._event: Optional[str] = None
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[Tuple[str, str]]:
        line = line.rstrip("\r")
        if line == "":
            if self._event is None and not self._data:
                return None
            frame = (self._event or "message", "\n".join(self._data))
            self._event = None
            self._data = []
            return frame
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


def decode_frames(lines: Iterable[str]) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Decode complete frames from a sequence of lines, skipping connection
    frames and frames whose data is not a JSON object.
    """
    decoder = SSEDecoder()
    frames = []
    for line in lines:
        frame = decoder.feed(line)
        if frame is None:
            continue
        parsed = parse_frame(*frame)
        if parsed is not None:
            frames.append(parsed)
    return frames


def parse_frame(event_type: str, data: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    if event_type in CONNECTION_EVENTS:
        return None
    try:
        payload = json.loads(data)
    except ValueError:
        logger.debug(f"Skipping malformed {event_type} frame")
        return None
    if not isinstance(payload, dict):
        return None
    return event_type, payload
