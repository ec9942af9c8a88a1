"""Pytest configuration and fixtures for ChoreQuest tests."""

import pytest
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import create_app
from auth import Identity
from models import db, Role
from repository import InMemoryRepository, get_repository
from seed_db import seed_achievements
from services.user_service import UserService
from utils.timezone import utc_now


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing."""
    app = create_app('testing')

    yield app

    # Clean up
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Keep an application context open for the whole test."""
    with app.app_context():
        yield db.session


@pytest.fixture(scope='function')
def repo(db_session):
    """The SQLAlchemy repository attached to the test app."""
    return get_repository()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client for making requests."""
    return app.test_client()


def login(client, user):
    """Put a user into the client's session without going through /api/auth/login."""
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
    return client


@pytest.fixture
def family(repo):
    return UserService(repo).create_family('Test Family')


@pytest.fixture
def other_family(repo):
    return UserService(repo).create_family('Other Family')


@pytest.fixture
def parent_user(repo, family):
    """Create a parent user for testing."""
    return repo.create_user(
        username='testparent',
        password='parent123',
        display_name='Test Parent',
        role=Role.PARENT,
        family_id=family.id,
        avatar_color='purple'
    )


@pytest.fixture
def child_user(repo, family):
    """Create a child user for testing."""
    return repo.create_user(
        username='testchild',
        password='child123',
        display_name='Test Child',
        role=Role.CHILD,
        family_id=family.id,
        avatar_color='blue'
    )


@pytest.fixture
def child_user_2(repo, family):
    """Create a second child in the same family."""
    return repo.create_user(
        username='testchild2',
        password='child123',
        display_name='Test Child 2',
        role=Role.CHILD,
        family_id=family.id,
        avatar_color='green'
    )


@pytest.fixture
def other_parent(repo, other_family):
    """A parent in a different family."""
    return repo.create_user(
        username='otherparent',
        password='parent123',
        display_name='Other Parent',
        role=Role.PARENT,
        family_id=other_family.id,
        avatar_color='red'
    )


@pytest.fixture
def other_child(repo, other_family):
    """A child in a different family."""
    return repo.create_user(
        username='otherchild',
        password='child123',
        display_name='Other Child',
        role=Role.CHILD,
        family_id=other_family.id,
        avatar_color='orange'
    )


@pytest.fixture
def parent_client(app, parent_user):
    return login(app.test_client(), parent_user)


@pytest.fixture
def child_client(app, child_user):
    return login(app.test_client(), child_user)


@pytest.fixture
def other_parent_client(app, other_parent):
    return login(app.test_client(), other_parent)


@pytest.fixture
def other_child_client(app, other_child):
    return login(app.test_client(), other_child)


@pytest.fixture
def sample_chore(repo, family, parent_user, child_user):
    """Create a pending chore assigned to the child."""
    return repo.create_chore(
        name='Take out trash',
        description='Roll bins to curb',
        points=30,
        icon='ri-delete-bin-line',
        due_date=utc_now() + timedelta(days=1),
        assigned_to_id=child_user.id,
        family_id=family.id,
        created_by=parent_user.id
    )


@pytest.fixture
def other_chore(repo, other_family, other_parent, other_child):
    """A chore in the other family."""
    return repo.create_chore(
        name='Feed the cat',
        points=10,
        icon='ri-task-line',
        due_date=utc_now() + timedelta(days=1),
        assigned_to_id=other_child.id,
        family_id=other_family.id,
        created_by=other_parent.id
    )


@pytest.fixture
def sample_reward(repo, family):
    """Create a sample reward for testing."""
    return repo.create_reward(
        name='Movie Night',
        description='Pick any movie for family night',
        points_cost=100,
        icon='ri-movie-line',
        family_id=family.id
    )


@pytest.fixture
def other_reward(repo, other_family):
    return repo.create_reward(
        name='Ice cream trip',
        points_cost=20,
        icon='ri-gift-line',
        family_id=other_family.id
    )


@pytest.fixture
def memory_repo():
    """An in-memory repository with the achievement catalog seeded. No Flask app needed."""
    repo = InMemoryRepository()
    seed_achievements(repo)
    return repo


@pytest.fixture
def memory_family(memory_repo):
    """A family with one parent and one child in the in-memory repository.

    Returns (family, parent, child) along with their identities.
    """
    family = UserService(memory_repo).create_family('Memory Family')
    parent = memory_repo.create_user('memparent', 'parent123', 'Mem Parent', Role.PARENT, family.id, 'purple')
    child = memory_repo.create_user('memchild', 'child123', 'Mem Child', Role.CHILD, family.id, 'blue')
    return {
        'family': family,
        'parent': parent,
        'child': child,
        'parent_identity': Identity.from_user(parent),
        'child_identity': Identity.from_user(child),
    }
