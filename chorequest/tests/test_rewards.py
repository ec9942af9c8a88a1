"""Tests for reward catalog, redemption and approval."""

from unittest.mock import patch

import pytest

from auth import Identity
from errors import BusinessRuleError, CrossFamilyError, InsufficientPointsError
from services.reward_service import RewardService
from services.user_service import UserService


class TestRewardCatalog:
    """Tests for /api/rewards."""

    def test_list_rewards_sorted_by_cost(self, child_client, repo, family, sample_reward):
        repo.create_reward('Sticker', 10, 'ri-gift-line', family.id)

        response = child_client.get('/api/rewards')
        assert response.status_code == 200

        costs = [r['points_cost'] for r in response.get_json()['data']]
        assert costs == [10, 100]

    def test_list_hides_unavailable_and_other_families(self, child_client, repo, family,
                                                       sample_reward, other_reward):
        hidden = repo.create_reward('Hidden', 10, 'ri-gift-line', family.id)
        repo.update_reward(hidden.id, is_available=False)

        names = [r['name'] for r in child_client.get('/api/rewards').get_json()['data']]
        assert names == ['Movie Night']

    def test_parent_can_include_unavailable(self, parent_client, repo, family, sample_reward):
        hidden = repo.create_reward('Hidden', 10, 'ri-gift-line', family.id)
        repo.update_reward(hidden.id, is_available=False)

        data = parent_client.get('/api/rewards?include_unavailable=true').get_json()['data']
        assert len(data) == 2

    def test_create_reward(self, parent_client, family):
        response = parent_client.post('/api/rewards', json={
            'name': 'Extra Game Time',
            'pointsCost': 150,
            'icon': 'ri-gamepad-line'
        })
        assert response.status_code == 201

        reward = response.get_json()['data']
        assert reward['family_id'] == family.id
        assert reward['points_cost'] == 150
        assert reward['is_available'] is True

    def test_create_reward_rejects_zero_cost(self, parent_client):
        response = parent_client.post('/api/rewards', json={'name': 'Free', 'points_cost': 0})
        assert response.status_code == 400
        assert response.get_json()['details']['fields'][0]['field'] == 'points_cost'

    def test_update_reward(self, parent_client, sample_reward):
        response = parent_client.put(f'/api/rewards/{sample_reward.id}', json={
            'points_cost': 120,
            'isAvailable': False
        })
        assert response.status_code == 200

        reward = response.get_json()['data']
        assert reward['points_cost'] == 120
        assert reward['is_available'] is False

    def test_update_requires_fields(self, parent_client, sample_reward):
        response = parent_client.put(f'/api/rewards/{sample_reward.id}', json={})
        assert response.status_code == 400

    def test_get_reward(self, child_client, sample_reward):
        response = child_client.get(f'/api/rewards/{sample_reward.id}')
        assert response.status_code == 200
        assert response.get_json()['data']['name'] == 'Movie Night'


class TestRedeem:
    """Tests for POST /api/redemptions."""

    def test_redeem_with_enough_points(self, child_client, repo, child_user, sample_reward):
        repo.apply_points(child_user.id, 130)

        response = child_client.post('/api/redemptions', json={'rewardId': sample_reward.id})
        assert response.status_code == 201

        redemption = response.get_json()['data']
        assert redemption['points_spent'] == 100
        assert redemption['is_approved'] is False
        assert redemption['user_id'] == child_user.id

        user = repo.get_user(child_user.id)
        assert user.points == 30
        assert user.level == 1

    def test_redeem_insufficient_points(self, child_client, repo, child_user, sample_reward):
        """80 points cannot buy a 100 point reward and the balance is untouched."""
        repo.apply_points(child_user.id, 80)

        response = child_client.post('/api/redemptions', json={'reward_id': sample_reward.id})
        assert response.status_code == 400

        data = response.get_json()
        assert data['error'] == 'BusinessRuleError'
        assert data['message'] == 'Not enough points'
        assert data['details'] == {'required': 100, 'current': 80}
        assert repo.get_user(child_user.id).points == 80

    def test_client_points_spent_is_ignored(self, child_client, repo, child_user, sample_reward):
        repo.apply_points(child_user.id, 100)

        response = child_client.post('/api/redemptions', json={
            'reward_id': sample_reward.id,
            'points_spent': 1
        })
        assert response.status_code == 201
        assert response.get_json()['data']['points_spent'] == 100
        assert repo.get_user(child_user.id).points == 0

    def test_cannot_redeem_for_someone_else(self, child_client, repo, child_user_2, sample_reward):
        repo.apply_points(child_user_2.id, 200)

        response = child_client.post('/api/redemptions', json={
            'reward_id': sample_reward.id,
            'user_id': child_user_2.id
        })
        assert response.status_code == 403
        assert repo.get_user(child_user_2.id).points == 200

    def test_cannot_redeem_other_familys_reward(self, child_client, repo, child_user, other_reward):
        repo.apply_points(child_user.id, 200)

        response = child_client.post('/api/redemptions', json={'reward_id': other_reward.id})
        assert response.status_code == 403
        assert repo.get_user(child_user.id).points == 200

    def test_cannot_redeem_unavailable(self, child_client, repo, child_user, sample_reward):
        repo.apply_points(child_user.id, 200)
        repo.update_reward(sample_reward.id, is_available=False)

        response = child_client.post('/api/redemptions', json={'reward_id': sample_reward.id})
        assert response.status_code == 400
        assert repo.get_user(child_user.id).points == 200

    def test_price_change_does_not_affect_past_redemptions(self, child_client, parent_client, repo,
                                                           child_user, sample_reward):
        repo.apply_points(child_user.id, 100)
        redemption = child_client.post('/api/redemptions', json={'reward_id': sample_reward.id}).get_json()['data']

        parent_client.put(f'/api/rewards/{sample_reward.id}', json={'points_cost': 500})

        assert repo.get_redemption(redemption['id']).points_spent == 100


class TestApprove:
    """Tests for POST /api/redemptions/<id>/approve."""

    @pytest.fixture
    def pending_redemption(self, repo, child_user, sample_reward):
        repo.apply_points(child_user.id, 100)
        return RewardService(repo).redeem_reward(child_user.id, sample_reward.id)

    def test_parent_approves(self, parent_client, repo, parent_user, child_user, pending_redemption):
        response = parent_client.post(f'/api/redemptions/{pending_redemption.id}/approve')
        assert response.status_code == 200

        data = response.get_json()['data']
        assert data['is_approved'] is True
        assert data['status'] == 'approved'
        assert data['approved_by'] == parent_user.id

        # No second debit on approval
        assert repo.get_user(child_user.id).points == 0

    def test_approve_twice_fails(self, parent_client, pending_redemption):
        parent_client.post(f'/api/redemptions/{pending_redemption.id}/approve')
        response = parent_client.post(f'/api/redemptions/{pending_redemption.id}/approve')
        assert response.status_code == 400

    def test_child_cannot_approve(self, child_client, pending_redemption):
        response = child_client.post(f'/api/redemptions/{pending_redemption.id}/approve')
        assert response.status_code == 403

    def test_other_family_parent_cannot_approve(self, other_parent_client, repo, pending_redemption):
        response = other_parent_client.post(f'/api/redemptions/{pending_redemption.id}/approve')
        assert response.status_code == 403
        assert repo.get_redemption(pending_redemption.id).is_approved is False

    def test_missing_redemption(self, parent_client):
        response = parent_client.post('/api/redemptions/9999/approve')
        assert response.status_code == 404


class TestListRedemptions:
    """Tests for GET /api/redemptions."""

    def test_child_sees_own(self, child_client, repo, child_user, child_user_2, sample_reward):
        service = RewardService(repo)
        repo.apply_points(child_user.id, 100)
        repo.apply_points(child_user_2.id, 100)
        mine = service.redeem_reward(child_user.id, sample_reward.id)
        service.redeem_reward(child_user_2.id, sample_reward.id)

        data = child_client.get('/api/redemptions').get_json()['data']
        assert [r['id'] for r in data] == [mine.id]

    def test_parent_family_scope(self, parent_client, repo, child_user, child_user_2, sample_reward):
        service = RewardService(repo)
        repo.apply_points(child_user.id, 100)
        repo.apply_points(child_user_2.id, 100)
        service.redeem_reward(child_user.id, sample_reward.id)
        service.redeem_reward(child_user_2.id, sample_reward.id)

        data = parent_client.get('/api/redemptions?scope=family').get_json()['data']
        assert len(data) == 2

    def test_child_cannot_use_family_scope(self, child_client):
        response = child_client.get('/api/redemptions?scope=family')
        assert response.status_code == 403


class TestRewardService:
    """RewardService against the in-memory repository."""

    def test_insufficient_points_leaves_balance(self, memory_repo, memory_family):
        child = memory_family['child']
        reward = memory_repo.create_reward('Movie Night', 100, 'ri-movie-line', memory_family['family'].id)
        memory_repo.apply_points(child.id, 80)

        with pytest.raises(InsufficientPointsError):
            RewardService(memory_repo).redeem_reward(child.id, reward.id)

        assert memory_repo.get_user(child.id).points == 80
        assert memory_repo.list_redemptions_for_user(child.id) == []

    def test_failed_redemption_record_refunds(self, memory_repo, memory_family):
        child = memory_family['child']
        reward = memory_repo.create_reward('Movie Night', 100, 'ri-movie-line', memory_family['family'].id)
        memory_repo.apply_points(child.id, 150)

        with patch.object(memory_repo, 'create_redemption', side_effect=RuntimeError('disk full')):
            with pytest.raises(RuntimeError):
                RewardService(memory_repo).redeem_reward(child.id, reward.id)

        assert memory_repo.get_user(child.id).points == 150

    def test_approve_other_family(self, memory_repo, memory_family):
        child = memory_family['child']
        reward = memory_repo.create_reward('Movie Night', 100, 'ri-movie-line', memory_family['family'].id)
        memory_repo.apply_points(child.id, 100)
        redemption = RewardService(memory_repo).redeem_reward(child.id, reward.id)

        other = UserService(memory_repo).create_family('Elsewhere')
        other_parent = memory_repo.create_user('elseparent', 'secret123', 'Else', 'parent', other.id, 'red')

        with pytest.raises(CrossFamilyError):
            RewardService(memory_repo).approve_redemption(redemption.id, Identity.from_user(other_parent))

    def test_approve_twice(self, memory_repo, memory_family):
        child = memory_family['child']
        reward = memory_repo.create_reward('Movie Night', 100, 'ri-movie-line', memory_family['family'].id)
        memory_repo.apply_points(child.id, 100)
        service = RewardService(memory_repo)
        redemption = service.redeem_reward(child.id, reward.id)

        service.approve_redemption(redemption.id, memory_family['parent_identity'])
        with pytest.raises(BusinessRuleError):
            service.approve_redemption(redemption.id, memory_family['parent_identity'])
