"""
Compatibility Scoring.

Responsibilities:
- Compute a 0-100 compatibility score for a candidate as seen by a viewer.

Non-Responsibilities:
- No filtering of candidates.
- No ordering of the deck.
- No storage access.

Invariant:
Given identical profiles, the score is always the same.

Weights:
- genre overlap: 40
- role complement: 30
- activity/trust: 30 (verified 15, has highlights 10, rating above 4.0 gives 5)
"""

from typing import Dict, FrozenSet

from .models import Profile, Role

GENRE_WEIGHT = 40.0
ROLE_WEIGHT = 30.0
VERIFIED_BONUS = 15.0
HIGHLIGHT_BONUS = 10.0
RATING_BONUS = 5.0
RATING_THRESHOLD = 4.0
MAX_SCORE = 100.0

COMPLEMENTARY_ROLES: Dict[Role, FrozenSet[Role]] = {
    Role.PRODUCER: frozenset({Role.VOCALIST, Role.SONGWRITER, Role.INSTRUMENTALIST}),
    Role.VOCALIST: frozenset({Role.PRODUCER, Role.SONGWRITER, Role.MIXER}),
    Role.SONGWRITER: frozenset({Role.PRODUCER, Role.VOCALIST, Role.INSTRUMENTALIST}),
    Role.INSTRUMENTALIST: frozenset({Role.PRODUCER, Role.SONGWRITER, Role.VOCALIST}),
    Role.MIXER: frozenset({Role.PRODUCER, Role.VOCALIST, Role.A_AND_R}),
    Role.A_AND_R: frozenset({Role.PRODUCER, Role.VOCALIST, Role.SONGWRITER}),
}


def genre_overlap(viewer: Profile, candidate: Profile) -> float:
    if not viewer.genres or not candidate.genres:
        return 0.0
    denominator = max(len(viewer.genres), len(candidate.genres))
    shared = len(viewer.genres & candidate.genres)
    return shared / denominator * GENRE_WEIGHT


def role_complement(viewer: Profile, candidate: Profile) -> float:
    if candidate.role in COMPLEMENTARY_ROLES.get(viewer.role, frozenset()):
        return ROLE_WEIGHT
    return 0.0


def activity_signal(candidate: Profile) -> float:
    points = 0.0
    if candidate.verified:
        points += VERIFIED_BONUS
    if candidate.highlight_count > 0:
        points += HIGHLIGHT_BONUS
    if candidate.rating > RATING_THRESHOLD:
        points += RATING_BONUS
    return points


def score(viewer: Profile, candidate: Profile) -> float:
    """
    Score how well `candidate` fits `viewer`.

    Args:
        viewer: Profile of the person swiping
        candidate: Profile being considered

    Returns:
        Score in [0, 100]
    """
    total = genre_overlap(viewer, candidate) + role_complement(viewer, candidate) + activity_signal(candidate)
    return max(0.0, min(MAX_SCORE, total))
