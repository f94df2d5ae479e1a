"""Built-in catalog used when a client's store holds no modules yet."""

from typing import List

from study_dashboard.models import Announcement, Module


def initial_modules() -> List[Module]:
    return [
        Module(
            id=1,
            title="Module 1: Foundations of History",
            description="Explore the key events of world history.",
            icon_name="BookOpenIcon",
        ),
        Module(
            id=2,
            title="Module 2: Principles of Science",
            description="Discover the basic concepts of physics and biology.",
            icon_name="FileTextIcon",
            video_url="https://www.youtube.com/embed/zMYRU4S_C0o",
        ),
        Module(
            id=3,
            title="Module 3: Global Geography",
            description="Learn about continents, climates and cultures.",
            icon_name="ClipboardCheckIcon",
        ),
    ]


def initial_announcements() -> List[Announcement]:
    return []
