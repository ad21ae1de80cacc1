"""
Discovery Deck.

Walks a viewer's candidates in descending compatibility order and turns each
decision into a match (like) or a skip (pass).

States: LOADING -> READY -> EXHAUSTED. `refresh()` rebuilds the queue from
the directory and the ledger and goes back to READY (or EXHAUSTED when
nothing is left to show).
"""

from enum import Enum
from typing import Callable, List, Optional, Sequence, Set

from .concurrency import SerialGuard
from .errors import DeckExhaustedError, DeckNotReadyError, InvalidDecisionError
from .ledger import MatchLedger
from .logger import get_logger
from .models import CandidateEntry, Match, Profile
from .scoring import score
from .storage import Store


class DeckState(Enum):
    LOADING = "loading"
    READY = "ready"
    EXHAUSTED = "exhausted"


class Direction(Enum):
    LIKE = "like"
    PASS = "pass"

    @classmethod
    def parse(cls, value) -> "Direction":
        if isinstance(value, Direction):
            return value
        text = str(value).strip().lower()
        if text in ("like", "right"):
            return cls.LIKE
        if text in ("pass", "left"):
            return cls.PASS
        raise InvalidDecisionError(f"Unknown decision: {value!r} (use like/right or pass/left)")


def build_queue(
    viewer: Profile,
    profiles: Sequence[Profile],
    excluded_ids: Set[str],
    scorer: Callable[[Profile, Profile], float] = score,
) -> List[CandidateEntry]:
    """
    Score and order the candidates a viewer may see.

    Drops the viewer, anyone in `excluded_ids` and profiles not yet
    onboarded. Sorting is stable, so equal scores keep directory order.
    """
    entries = [
        CandidateEntry(profile=p, score=scorer(viewer, p))
        for p in profiles
        if p.id != viewer.id and p.id not in excluded_ids and p.onboarded
    ]
    return sorted(entries, key=lambda e: e.score, reverse=True)


class DiscoveryDeck:

    def __init__(
        self,
        viewer: Profile,
        store: Store,
        ledger: MatchLedger,
        scorer: Callable[[Profile, Profile], float] = score,
    ):
        self.viewer = viewer
        self._store = store
        self._ledger = ledger
        self._scorer = scorer
        self._queue: List[CandidateEntry] = []
        self._cursor = 0
        self._state = DeckState.LOADING
        self._guard = SerialGuard("deck")

    @property
    def state(self) -> DeckState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def queue(self) -> List[CandidateEntry]:
        return list(self._queue)

    @property
    def remaining(self) -> int:
        return max(0, len(self._queue) - self._cursor)

    async def refresh(self) -> DeckState:
        """Rebuild the queue from scratch and reset the cursor."""
        async with self._guard.hold(self.viewer.id):
            self._state = DeckState.LOADING
            profiles = await self._store.list_profiles()
            matched = await self._ledger.matched_user_ids(self.viewer.id)
            self._queue = build_queue(self.viewer, profiles, matched, self._scorer)
            self._cursor = 0
            self._settle()
            get_logger().debug(
                "Deck loaded",
                viewer_id=self.viewer.id,
                candidates=len(self._queue),
                excluded_matches=len(matched),
            )
            return self._state

    load = refresh

    def current(self) -> CandidateEntry:
        """
        Return the candidate under the cursor.

        Raises:
            DeckNotReadyError: If the deck has not been loaded yet
            DeckExhaustedError: If every candidate has been decided
        """
        if self._state is DeckState.LOADING:
            raise DeckNotReadyError("Deck is still loading")
        if self._cursor >= len(self._queue):
            raise DeckExhaustedError(f"No more candidates for {self.viewer.id}")
        return self._queue[self._cursor]

    def peek(self) -> Optional[CandidateEntry]:
        if self._state is not DeckState.READY:
            return None
        return self._queue[self._cursor]

    async def decide(self, direction) -> Optional[Match]:
        """
        Apply a decision to the current candidate and advance.

        Args:
            direction: Direction, or "like"/"right"/"pass"/"left"

        Returns:
            The match for a like, None for a pass

        Raises:
            DeckExhaustedError: If there is no current candidate
            OperationInFlightError: If a previous decision is still pending
            StorageError: If the match could not be persisted; the cursor
                does not move in that case
        """
        direction = Direction.parse(direction)
        async with self._guard.hold(self.viewer.id):
            try:
                entry = self.current()
            except DeckExhaustedError:
                get_logger().record_rejection(DeckExhaustedError.__name__)
                raise
            match = None
            if direction is Direction.LIKE:
                match = await self._ledger.create_match(self.viewer.id, entry.profile.id)
            self._cursor += 1
            self._settle()
            get_logger().record_decision(direction.value)
            get_logger().debug(
                "Decision applied",
                viewer_id=self.viewer.id,
                candidate_id=entry.profile.id,
                direction=direction.value,
                score=entry.score,
            )
            return match

    def _settle(self) -> None:
        if self._cursor >= len(self._queue):
            self._state = DeckState.EXHAUSTED
        else:
            self._state = DeckState.READY
