"""
Match Ledger.

Responsibilities:
- Create matches, at most one per unordered user pair.
- Answer which matches a user takes part in.

Non-Responsibilities:
- No scoring or deck logic.
- No messaging.

Invariant:
For any pair {x, y} the persisted collection holds at most one Match.
A match is only returned after the write holding it has succeeded.
"""

from datetime import datetime
from typing import Callable, List, Optional, Set

from .errors import SelfMatchError
from .logger import get_logger
from .models import Match, find_by_id, generate_id, utcnow
from .storage import MATCHES, Store


class MatchLedger:

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def create_match(self, user_id: str, matched_user_id: str) -> Match:
        """
        Create the match for a pair, or return the one that already exists.

        Raises:
            SelfMatchError: If both ids are the same user
            StorageError: If the collection cannot be read or written
        """
        if user_id == matched_user_id:
            raise SelfMatchError(f"User {user_id} cannot match with themselves")
        pair = frozenset((user_id, matched_user_id))

        def change(current: List[Match]):
            for existing in current:
                if existing.pair == pair:
                    return None, (existing, False)
            match = Match(
                id=generate_id(),
                user_a=user_id,
                user_b=matched_user_id,
                created_at=self._clock(),
                read=False,
            )
            return current + [match], (match, True)

        match, created = await self._store.mutate(MATCHES, change)
        get_logger().record_match(created)
        if created:
            get_logger().info("Match created", match_id=match.id, user_a=user_id, user_b=matched_user_id)
        else:
            get_logger().debug("Match already exists", match_id=match.id)
        return match

    async def matches_for(self, user_id: str) -> List[Match]:
        """All matches the user appears in, in insertion order."""
        return [m for m in await self._store.list_matches() if m.involves(user_id)]

    async def matched_user_ids(self, user_id: str) -> Set[str]:
        return {m.other(user_id) for m in await self.matches_for(user_id)}

    async def get(self, match_id: str) -> Optional[Match]:
        return find_by_id(await self._store.list_matches(), match_id)
