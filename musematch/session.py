"""
Viewer session.

The signed-in viewer is looked up once and then passed explicitly to the
deck, the ledger and messaging. Nothing in the core reads a global
"current user".
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .deck import DiscoveryDeck
from .errors import NoCurrentViewerError
from .ledger import MatchLedger
from .logger import get_logger
from .messaging import DirectThreads, MatchThreads
from .models import Profile, utcnow
from .storage import Store


async def require_viewer(store: Store) -> Profile:
    """
    Return the signed-in viewer.

    Raises:
        NoCurrentViewerError: If nobody is signed in; callers should send
            the user to onboarding
    """
    viewer = await store.get_current_viewer()
    if viewer is None:
        get_logger().record_rejection(NoCurrentViewerError.__name__)
        raise NoCurrentViewerError("No current viewer; complete onboarding first")
    return viewer


@dataclass
class Session:
    viewer: Profile
    store: Store
    clock: Callable[[], datetime] = utcnow
    ledger: MatchLedger = field(init=False)
    match_threads: MatchThreads = field(init=False)
    direct_threads: DirectThreads = field(init=False)

    def __post_init__(self):
        self.ledger = MatchLedger(self.store, clock=self.clock)
        self.match_threads = MatchThreads(self.store, self.ledger, clock=self.clock)
        self.direct_threads = DirectThreads(self.store, clock=self.clock)

    @classmethod
    async def open(cls, store: Store, clock: Callable[[], datetime] = utcnow) -> "Session":
        return cls(viewer=await require_viewer(store), store=store, clock=clock)

    async def deck(self) -> DiscoveryDeck:
        """A freshly loaded deck for the viewer."""
        deck = DiscoveryDeck(self.viewer, self.store, self.ledger)
        await deck.refresh()
        return deck
