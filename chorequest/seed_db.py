#!/usr/bin/env python3
"""
Seed script for the ChoreQuest database.

Seeds the global achievement catalog and a demo family. Both steps check for
existing rows first, so they are safe to run on every startup.
"""

from datetime import timedelta
import logging

from models import Role
from repository import Repository
from services.achievement_rules import DEFAULT_ACHIEVEMENTS
from utils.timezone import utc_now

logger = logging.getLogger(__name__)

DEMO_API_KEY = 'demo_api_key_123456'

DEMO_USERS = [
    {'username': 'parent', 'password': 'parent123', 'display_name': 'Parent Smith',
     'role': Role.PARENT, 'avatar_color': 'purple'},
    {'username': 'jake', 'password': 'jake123', 'display_name': 'Jake Smith',
     'role': Role.CHILD, 'avatar_color': 'blue'},
]

DEMO_CHORES = [
    {'name': 'Take out the trash', 'description': 'Every evening before dinner',
     'points': 30, 'icon': 'ri-delete-bin-line'},
    {'name': 'Clean bedroom', 'description': 'Make your bed and tidy up',
     'points': 50, 'icon': 'ri-home-line'},
]

DEMO_REWARDS = [
    {'name': 'Movie Night', 'description': 'Pick any movie for family night',
     'points_cost': 100, 'icon': 'ri-movie-line'},
    {'name': 'Extra Game Time', 'description': '30 minutes of extra video game time',
     'points_cost': 150, 'icon': 'ri-gamepad-line'},
]


def seed_achievements(repo: Repository) -> int:
    """Insert catalog entries that are missing. Returns how many were created."""
    created = 0
    for data in DEFAULT_ACHIEVEMENTS:
        if repo.get_achievement_by_name(data['name']) is None:
            repo.create_achievement(**data)
            created += 1
    if created:
        logger.info(f"Seeded {created} achievements")
    return created


def seed_demo_data(repo: Repository) -> bool:
    """Create the Smith demo family. Returns False if it exists or its usernames are taken."""
    if repo.get_family_by_api_key(DEMO_API_KEY) is not None:
        logger.info("Demo family already exists")
        return False

    taken = [data['username'] for data in DEMO_USERS if repo.get_user_by_username(data['username']) is not None]
    if taken:
        logger.warning(f"Skipping demo family, usernames already taken: {', '.join(taken)}")
        return False

    family = repo.create_family(name='Smith Family', api_key=DEMO_API_KEY)

    users = {}
    for data in DEMO_USERS:
        users[data['username']] = repo.create_user(family_id=family.id, **data)

    parent = users['parent']
    child = users['jake']
    tomorrow = utc_now() + timedelta(days=1)

    for data in DEMO_CHORES:
        repo.create_chore(
            due_date=tomorrow,
            assigned_to_id=child.id,
            family_id=family.id,
            created_by=parent.id,
            **data
        )

    for data in DEMO_REWARDS:
        repo.create_reward(family_id=family.id, **data)

    logger.info(f"Seeded demo family {family.id} with {len(DEMO_CHORES)} chores and {len(DEMO_REWARDS)} rewards")
    return True


def main():
    """Main seed function."""
    from app import create_app
    from repository import get_repository

    print("\nChoreQuest Database Seeding")
    print("=" * 60)

    app = create_app()

    with app.app_context():
        repo = get_repository()
        seed_achievements(repo)
        if seed_demo_data(repo):
            print(f"Created demo family (API key: {DEMO_API_KEY})")
            print("  Parent login: parent / parent123")
            print("  Child login:  jake / jake123")
        else:
            print("Demo family already present, nothing to do")

    print("=" * 60)


if __name__ == '__main__':
    main()
