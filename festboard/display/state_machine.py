"""
Display Reconciliation State Machine

Local view state of one display screen. Merges pushed stream events with
periodic full refreshes and sequences the reveal and finale stages.

State Flow:
idle_live → transitioning → idle_live
(any) → finalized_scrolling → finalized_winner
finalized_* → idle_live (undo only)

The machine does no I/O and owns no timers. The driver calls
complete_transition() when the reveal duration elapses and advance() on
every scroll tick, and performs the refetches the machine asks for.
"""
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class DisplayPhase(Enum):
    """Display phases."""
    IDLE_LIVE = "idle_live"
    TRANSITIONING = "transitioning"
    FINALIZED_SCROLLING = "finalized_scrolling"
    FINALIZED_WINNER = "finalized_winner"


FINALIZED_PHASES = (DisplayPhase.FINALIZED_SCROLLING, DisplayPhase.FINALIZED_WINNER)

DEFAULT_LEVELS = ("high_school", "higher_secondary")
DEFAULT_RECENT_LIMIT = 10


class Track:
    """
    One independently scrolling column of the display (one event level).

    `latest` is the headline card; `recent` holds the results shown
    below it, newest first.
    """

    def __init__(self, level: Optional[str], recent_limit: int = DEFAULT_RECENT_LIMIT):
        self.level = level
        self.recent_limit = recent_limit
        self.board: List[Dict[str, Any]] = []
        self.latest: Optional[Dict[str, Any]] = None
        self.recent: List[Dict[str, Any]] = []
        self.scroll_index = 0
        self.finished = False

    @property
    def key(self) -> str:
        return self.level or "all"

    def accepts(self, payload: Dict[str, Any]) -> bool:
        return self.level is None or payload.get("eventLevel") == self.level

    def promote(self, payload: Dict[str, Any]) -> None:
        """Make `payload` the latest result and demote the previous one."""
        previous = self.latest
        skip = {payload.get("id")}
        head = []
        if previous is not None and previous.get("id") != payload.get("id"):
            head.append(previous)
            skip.add(previous.get("id"))
        rest = [item for item in self.recent if item.get("id") not in skip]
        self.recent = (head + rest)[:self.recent_limit]
        self.latest = payload

    def forget(self, result_id: Any) -> bool:
        before = len(self.recent)
        self.recent = [item for item in self.recent if item.get("id") != result_id]
        removed = len(self.recent) != before
        if self.latest is not None and self.latest.get("id") == result_id:
            self.latest = None
            removed = True
        return removed

    def restart_scroll(self) -> None:
        self.scroll_index = 0
        self.finished = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "board": list(self.board),
            "latest": self.latest,
            "recent": list(self.recent),
            "scrollIndex": self.scroll_index,
            "finished": self.finished,
        }


def combine_boards(boards: Iterable[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Merge per-level standings into one overall board by summing each
    institution's totals. Same ordering as the server: total desc, code asc,
    institution id asc.
    """
    merged: Dict[Any, Dict[str, Any]] = {}
    for board in boards:
        for row in board:
            key = row.get("institutionId")
            if key in merged:
                merged[key]["totalPoints"] += row.get("totalPoints", 0)
            else:
                merged[key] = dict(row)
                merged[key]["totalPoints"] = row.get("totalPoints", 0)

    return sorted(
        merged.values(),
        key=lambda row: (-row["totalPoints"], row.get("code") or "", row.get("institutionId") or 0),
    )


class DisplayStateMachine:
    """
    Reconciles push events and polls into one consistent screen state.

    Rules:
    - At most one reveal transition in flight; pushes during it are dropped
    - A poll never replaces the latest slot while a transition is in flight
    - Boards are always overwritten by the freshest fetch
    - Finalized phases are left only through an explicit undo
    """

    # Valid phase transitions
    TRANSITIONS = {
        DisplayPhase.IDLE_LIVE: [DisplayPhase.TRANSITIONING, DisplayPhase.FINALIZED_SCROLLING],
        DisplayPhase.TRANSITIONING: [DisplayPhase.IDLE_LIVE, DisplayPhase.FINALIZED_SCROLLING],
        DisplayPhase.FINALIZED_SCROLLING: [
            DisplayPhase.FINALIZED_SCROLLING, DisplayPhase.FINALIZED_WINNER, DisplayPhase.IDLE_LIVE
        ],
        DisplayPhase.FINALIZED_WINNER: [DisplayPhase.FINALIZED_SCROLLING, DisplayPhase.IDLE_LIVE],
    }

    def __init__(
        self,
        levels: Iterable[Optional[str]] = DEFAULT_LEVELS,
        recent_limit: int = DEFAULT_RECENT_LIMIT
    ):
        self.tracks: Dict[Optional[str], Track] = {
            level: Track(level, recent_limit) for level in levels
        }
        if not self.tracks:
            raise ValueError("A display needs at least one track")
        self._phase = DisplayPhase.IDLE_LIVE
        self._finalized = False
        self._headline: Optional[str] = None
        self._pending: Optional[Dict[str, Any]] = None
        self._winner: Optional[Dict[str, Any]] = None
        self._transition_id = 0

    @property
    def phase(self) -> DisplayPhase:
        return self._phase

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def headline(self) -> Optional[str]:
        return self._headline

    @property
    def pending(self) -> Optional[Dict[str, Any]]:
        return self._pending

    @property
    def winner(self) -> Optional[Dict[str, Any]]:
        return self._winner

    @property
    def transition_id(self) -> int:
        """Increments every time a reveal starts; identifies the reveal in flight."""
        return self._transition_id

    @property
    def is_transitioning(self) -> bool:
        return self._phase == DisplayPhase.TRANSITIONING

    def can_transition_to(self, new_phase: DisplayPhase) -> bool:
        """Check if transition to new phase is valid."""
        return new_phase in self.TRANSITIONS.get(self._phase, [])

    def _enter(self, new_phase: DisplayPhase) -> None:
        if not self.can_transition_to(new_phase):
            raise ValueError(f"Invalid display transition: {self._phase.value} -> {new_phase.value}")
        self._phase = new_phase

    def track_for(self, level: Optional[str]) -> Optional[Track]:
        if None in self.tracks:
            return self.tracks[None]
        return self.tracks.get(level)

    # -------------------------------------------------------------------------
    # Push events
    # -------------------------------------------------------------------------

    def on_result(self, payload: Dict[str, Any]) -> bool:
        """
        Start the reveal of a pushed result.

        Returns:
            True when a transition started; False when the push was dropped
            (transition already in flight, finalized, or no matching track)
        """
        if self._phase != DisplayPhase.IDLE_LIVE:
            return False
        if self.track_for(payload.get("eventLevel")) is None:
            return False

        self._enter(DisplayPhase.TRANSITIONING)
        self._transition_id += 1
        self._headline = payload.get("eventName")
        self._pending = payload
        return True

    def complete_transition(self, transition_id: Optional[int] = None) -> Optional[Track]:
        """
        Finish the reveal: commit the pending result as its track's latest.

        A `transition_id` other than the one in flight belongs to a reveal
        that was abandoned (finalize, undo) and is ignored.

        Returns:
            The track whose leaderboard should be refreshed, or None
        """
        if self._phase != DisplayPhase.TRANSITIONING:
            return None
        if transition_id is not None and transition_id != self._transition_id:
            return None

        pending = self._pending
        self._pending = None
        self._headline = None
        self._enter(DisplayPhase.IDLE_LIVE)

        if pending is None:
            return None
        track = self.track_for(pending.get("eventLevel"))
        if track is None:
            return None
        track.promote(pending)
        return track

    def on_result_deleted(self, payload: Dict[str, Any]) -> bool:
        """
        Drop a deleted result from every track immediately.

        The caller always refetches boards and results afterwards. Returns
        whether anything visible changed.
        """
        result_id = payload.get("id")
        changed = False
        for track in self.tracks.values():
            if track.forget(result_id):
                changed = True
        if self._pending is not None and self._pending.get("id") == result_id:
            # Transition stays in flight; it completes with nothing to commit
            self._pending = None
            changed = True
        return changed

    def on_finalize(self, payload: Dict[str, Any]) -> bool:
        """
        Adopt the pushed finalize flag.

        Setting it (again) restarts the finale from the first result of every
        track. Clearing it returns a finalized display to live mode.
        """
        finalized = bool(payload.get("finalized"))
        self._finalized = finalized

        if finalized:
            self._pending = None
            self._headline = None
            self._winner = None
            for track in self.tracks.values():
                track.restart_scroll()
            self._enter(DisplayPhase.FINALIZED_SCROLLING)
        elif self._phase in FINALIZED_PHASES:
            self._winner = None
            for track in self.tracks.values():
                track.restart_scroll()
            self._enter(DisplayPhase.IDLE_LIVE)

        return finalized

    # -------------------------------------------------------------------------
    # Fetched state
    # -------------------------------------------------------------------------

    def apply_board(self, level: Optional[str], rows: List[Dict[str, Any]]) -> None:
        track = self.track_for(level)
        if track is not None:
            track.board = list(rows)

    def apply_results(self, level: Optional[str], rows: List[Dict[str, Any]], from_poll: bool = False) -> None:
        """
        Replace a track's recent list with fetched rows (newest first).

        The latest slot keeps its current result while the server still has
        it. A poll leaves it alone during a transition; otherwise it becomes
        the newest fetched row.
        """
        track = self.track_for(level)
        if track is None:
            return

        track.recent = list(rows)[:track.recent_limit]

        still_present = track.latest is not None and any(
            row.get("id") == track.latest.get("id") for row in rows
        )
        if not still_present and not (from_poll and self.is_transitioning):
            track.latest = rows[0] if rows else None

        if track.recent and track.scroll_index >= len(track.recent):
            track.scroll_index = len(track.recent) - 1

    def apply_finalized(self, finalized: bool) -> None:
        """Adopt a fetched flag; only acts when it differs from the local one."""
        if finalized != self._finalized or (finalized and self._phase not in FINALIZED_PHASES):
            self.on_finalize({"finalized": finalized})

    # -------------------------------------------------------------------------
    # Finale
    # -------------------------------------------------------------------------

    def advance(self, level: Optional[str]) -> bool:
        """
        Move one track of the finale to its next result.

        At the end of its list the track is marked finished. Once every track
        has finished the winner is revealed.

        Returns:
            True when the track moved to another result
        """
        if self._phase != DisplayPhase.FINALIZED_SCROLLING:
            return False
        track = self.track_for(level)
        if track is None or track.finished:
            return False

        if track.scroll_index < len(track.recent) - 1:
            track.scroll_index += 1
            return True

        track.finished = True
        if all(t.finished for t in self.tracks.values()):
            self._reveal_winner()
        return False

    def overall_board(self) -> List[Dict[str, Any]]:
        if len(self.tracks) == 1:
            return list(next(iter(self.tracks.values())).board)
        return combine_boards(track.board for track in self.tracks.values())

    def leaders(self) -> Dict[str, Optional[Dict[str, Any]]]:
        """Top entry of each track's own board, shown beside the overall winner."""
        return {track.key: (track.board[0] if track.board else None) for track in self.tracks.values()}

    def _reveal_winner(self) -> None:
        board = self.overall_board()
        self._winner = board[0] if board else None
        self._enter(DisplayPhase.FINALIZED_WINNER)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "phase": self._phase.value,
            "finalized": self._finalized,
            "headline": self._headline,
            "winner": self._winner,
            "leaders": self.leaders() if self._phase == DisplayPhase.FINALIZED_WINNER else {},
            "tracks": {track.key: track.to_dict() for track in self.tracks.values()},
        }
