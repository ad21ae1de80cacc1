"""Sample directory used to try the app without onboarding real users."""

from typing import List, Tuple

from .logger import get_logger
from .models import Profile, Project, Role
from .storage import Store

SAMPLE_PROFILES = [
    Profile(
        id="user_1",
        display_name="Alex Producer",
        role=Role.PRODUCER,
        genres=frozenset({"Hip-Hop", "R&B"}),
        location="Los Angeles, CA",
        bio="Grammy-nominated producer specializing in modern hip-hop and R&B. Looking for talented vocalists and rappers.",
        verified=True,
        rating=4.8,
        onboarded=True,
    ),
    Profile(
        id="user_2",
        display_name="Maya Vocalist",
        role=Role.VOCALIST,
        genres=frozenset({"Pop", "R&B"}),
        location="Nashville, TN",
        bio="Professional vocalist with 10+ years experience. Featured on multiple Billboard charting songs.",
        verified=True,
        rating=4.9,
        onboarded=True,
    ),
    Profile(
        id="user_3",
        display_name="Jordan Beats",
        role=Role.PRODUCER,
        genres=frozenset({"Electronic", "Pop"}),
        location="New York, NY",
        bio="Electronic music producer and sound designer. Specializing in innovative pop productions.",
        verified=False,
        rating=4.7,
        onboarded=True,
    ),
    Profile(
        id="user_4",
        display_name="Sophia Strings",
        role=Role.INSTRUMENTALIST,
        genres=frozenset({"Classical", "Pop", "Rock"}),
        location="Boston, MA",
        bio="Professional violinist and string arranger. Classically trained with a passion for modern music.",
        verified=True,
        rating=4.6,
        onboarded=True,
    ),
    Profile(
        id="user_5",
        display_name="Marcus Mix",
        role=Role.MIXER,
        genres=frozenset({"Hip-Hop", "Pop", "R&B"}),
        location="Atlanta, GA",
        bio="Award-winning mix engineer with credits on platinum albums. Specializing in modern urban music.",
        verified=True,
        rating=4.9,
        onboarded=True,
    ),
]

SAMPLE_PROJECTS = [
    Project(
        id="project_1",
        title="Looking for Vocalist - R&B Track",
        author_id="user_1",
        genres=frozenset({"R&B", "Soul"}),
    ),
    Project(
        id="project_2",
        title="Hip-Hop Collab - Need Rapper",
        author_id="user_1",
        genres=frozenset({"Hip-Hop", "Trap"}),
    ),
    Project(
        id="project_3",
        title="Pop Song Needs String Arrangement",
        author_id="user_2",
        genres=frozenset({"Pop", "Ballad"}),
    ),
]


async def seed_sample_data(store: Store) -> Tuple[int, int]:
    """
    Install the sample musicians and projects if the directory is empty.

    Returns:
        Tuple of (profiles_added, projects_added)
    """
    profiles: List[Profile] = await store.list_profiles()
    if profiles:
        get_logger().info("Directory already populated, skipping seed", profiles=len(profiles))
        return (0, 0)

    await store.save_profiles(SAMPLE_PROFILES)
    added_projects = 0
    if not await store.list_projects():
        await store.save_projects(SAMPLE_PROJECTS)
        added_projects = len(SAMPLE_PROJECTS)
    get_logger().info("Sample data installed", profiles=len(SAMPLE_PROFILES), projects=added_projects)
    return (len(SAMPLE_PROFILES), added_projects)
