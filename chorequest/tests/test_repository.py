"""Tests that both repository backends honour the same contract."""

import threading
from datetime import timedelta

import pytest

from errors import ConflictError
from models import Role
from repository import InMemoryRepository
from utils.timezone import utc_now


@pytest.fixture(params=['sqlalchemy', 'memory'])
def any_repo(request):
    """Run a test against each backend."""
    if request.param == 'memory':
        return InMemoryRepository()
    return request.getfixturevalue('repo')


@pytest.fixture
def seeded(any_repo):
    family = any_repo.create_family('Repo Family', 'fam_repo_key')
    parent = any_repo.create_user('repoparent', 'secret123', 'Repo Parent', Role.PARENT, family.id, 'purple')
    child = any_repo.create_user('repochild', 'secret123', 'Repo Child', Role.CHILD, family.id, 'blue')
    return any_repo, family, parent, child


class TestLookups:
    """Single-entity lookups return None for missing rows."""

    def test_missing_entities(self, any_repo):
        assert any_repo.get_user(9999) is None
        assert any_repo.get_user_by_username('nobody') is None
        assert any_repo.get_family(9999) is None
        assert any_repo.get_family_by_api_key('fam_missing') is None
        assert any_repo.get_chore(9999) is None
        assert any_repo.get_reward(9999) is None
        assert any_repo.get_redemption(9999) is None
        assert any_repo.get_achievement_by_name('Nothing') is None

    def test_lookup_by_username_and_key(self, seeded):
        repo, family, parent, _ = seeded
        assert repo.get_user_by_username('repoparent').id == parent.id
        assert repo.get_family_by_api_key('fam_repo_key').id == family.id
        assert repo.count_family_members(family.id) == 2

    def test_duplicate_username(self, seeded):
        repo, family, _, _ = seeded
        with pytest.raises(ConflictError):
            repo.create_user('repochild', 'secret123', 'Dup', Role.CHILD, family.id, 'blue')

    def test_password_is_hashed(self, seeded):
        repo, _, parent, _ = seeded
        stored = repo.get_user(parent.id)
        assert stored.password_hash != 'secret123'
        assert stored.check_password('secret123')
        assert not stored.check_password('secret124')


class TestPoints:

    def test_apply_points_updates_level(self, seeded):
        repo, _, _, child = seeded
        user = repo.apply_points(child.id, 250)
        assert (user.points, user.level) == (250, 3)

    def test_conditional_debit(self, seeded):
        repo, _, _, child = seeded
        repo.apply_points(child.id, 50)

        assert repo.apply_points(child.id, -80, require_sufficient=True) is None
        assert repo.get_user(child.id).points == 50

        user = repo.apply_points(child.id, -50, require_sufficient=True)
        assert (user.points, user.level) == (0, 1)

    def test_missing_user(self, any_repo):
        assert any_repo.apply_points(9999, 10) is None


class TestChoreTransitions:

    def test_mark_completed_once(self, seeded):
        repo, family, parent, child = seeded
        chore = repo.create_chore('Dishes', 20, 'ri-task-line', utc_now() + timedelta(days=1),
                                  child.id, family.id, created_by=parent.id)
        first_time = utc_now()

        completed = repo.mark_chore_completed(chore.id, child.id, first_time)
        assert completed.is_completed is True
        assert completed.completed_at == first_time

        assert repo.mark_chore_completed(chore.id, child.id, first_time + timedelta(hours=1)) is None
        assert repo.get_chore(chore.id).completed_at == first_time

    def test_mark_completed_wrong_user(self, seeded):
        repo, family, parent, child = seeded
        chore = repo.create_chore('Dishes', 20, 'ri-task-line', utc_now(), child.id, family.id)

        assert repo.mark_chore_completed(chore.id, parent.id, utc_now()) is None
        assert repo.get_chore(chore.id).is_completed is False

    def test_list_filters(self, seeded):
        repo, family, _, child = seeded
        later = repo.create_chore('Later', 5, 'ri-task-line', utc_now() + timedelta(days=2), child.id, family.id)
        sooner = repo.create_chore('Sooner', 5, 'ri-task-line', utc_now() + timedelta(days=1), child.id, family.id)
        repo.mark_chore_completed(later.id, child.id, utc_now())

        assert [c.id for c in repo.list_chores_for_user(child.id)] == [sooner.id, later.id]
        assert [c.id for c in repo.list_chores_for_user(child.id, completed=True)] == [later.id]
        assert [c.id for c in repo.list_chores_for_user(child.id, completed=False)] == [sooner.id]
        assert len(repo.list_chores_for_family(family.id)) == 2


class TestRewardsAndRedemptions:

    def test_update_reward_limited_fields(self, seeded):
        repo, family, _, _ = seeded
        reward = repo.create_reward('Movie Night', 100, 'ri-movie-line', family.id)

        updated = repo.update_reward(reward.id, points_cost=120, family_id=9999)
        assert updated.points_cost == 120
        assert updated.family_id == family.id

        assert repo.update_reward(9999, name='Nope') is None

    def test_available_only(self, seeded):
        repo, family, _, _ = seeded
        shown = repo.create_reward('Shown', 10, 'ri-gift-line', family.id)
        hidden = repo.create_reward('Hidden', 20, 'ri-gift-line', family.id)
        repo.update_reward(hidden.id, is_available=False)

        assert [r.id for r in repo.list_rewards_for_family(family.id)] == [shown.id]
        assert len(repo.list_rewards_for_family(family.id, available_only=False)) == 2

    def test_redemption_approval_once(self, seeded):
        repo, family, parent, child = seeded
        reward = repo.create_reward('Movie Night', 100, 'ri-movie-line', family.id)
        redemption = repo.create_redemption(child.id, reward.id, 100)
        assert redemption.is_approved is False

        approved = repo.mark_redemption_approved(redemption.id, parent.id, utc_now())
        assert approved.is_approved is True
        assert approved.approved_by == parent.id
        assert repo.mark_redemption_approved(redemption.id, parent.id, utc_now()) is None

        assert [r.id for r in repo.list_redemptions_for_family(family.id)] == [redemption.id]
        assert [r.id for r in repo.list_redemptions_for_user(child.id)] == [redemption.id]


class TestAchievements:

    def test_award_idempotent(self, seeded):
        repo, _, _, child = seeded
        achievement = repo.create_achievement('Test Badge', 'Do a thing', 'ri-award-line', '#FFD700')

        record, created = repo.award_achievement(child.id, achievement.id)
        again, created_again = repo.award_achievement(child.id, achievement.id)

        assert created is True
        assert created_again is False
        assert again.id == record.id

        earned = repo.list_user_achievements(child.id)
        assert [(a.name, earned_at) for a, earned_at in earned] == [('Test Badge', record.earned_at)]


class TestInMemoryConcurrency:
    """Reads run while other threads insert."""

    def test_lists_while_inserting(self):
        repo = InMemoryRepository()
        family = repo.create_family('Busy Family', 'fam_busy_key')
        done = threading.Event()
        errors = []

        def insert():
            try:
                for i in range(2000):
                    repo.create_reward(f'Reward {i}', i + 1, 'ri-gift-line', family.id)
                    repo.create_chore(f'Chore {i}', i + 1, 'ri-task-line', utc_now(), 1, family.id)
            finally:
                done.set()

        def read():
            try:
                while not done.is_set():
                    repo.list_rewards_for_family(family.id)
                    repo.list_chores_for_family(family.id)
                    repo.get_family_by_api_key('missing')
            except RuntimeError as e:
                errors.append(e)

        threads = [threading.Thread(target=insert), threading.Thread(target=read), threading.Thread(target=read)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(repo.list_rewards_for_family(family.id)) == 2000
