"""Tests for app wiring: health check, error rendering and configuration."""

from unittest.mock import patch

from app import create_app
from config import TestingConfig
from repository import InMemoryRepository, get_repository


class TestHealth:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200

        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['backend'] == 'sqlalchemy'


class TestErrorRendering:
    """Every error uses the {'error', 'message', 'details'} shape."""

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert set(response.get_json()) == {'error', 'message', 'details'}

    def test_method_not_allowed_is_json(self, client):
        response = client.delete('/api/chores')
        assert response.status_code == 405
        assert response.get_json()['error'] == 'MethodNotAllowed'

    def test_unexpected_error_is_generic_500(self, child_client, repo):
        with patch.object(type(repo), 'list_chores_for_user', side_effect=RuntimeError('database exploded')):
            response = child_client.get('/api/chores')

        assert response.status_code == 500
        data = response.get_json()
        assert data['error'] == 'InternalError'
        assert 'exploded' not in data['message']


class TestMemoryBackend:
    """The app runs end to end on the in-memory repository."""

    def test_signup_flow(self):
        with patch.object(TestingConfig, 'REPOSITORY_BACKEND', 'memory'):
            app = create_app('testing')

        with app.app_context():
            assert isinstance(get_repository(), InMemoryRepository)
            assert len(get_repository().list_achievements()) == 5

        client = app.test_client()
        family = client.post('/api/families', json={'name': 'Memory Family'}).get_json()['data']
        response = client.post('/api/users', json={
            'username': 'memparent',
            'password': 'secret123',
            'display_name': 'Mem Parent',
            'role_type': 'parent',
            'family_id': family['id']
        })
        assert response.status_code == 201

        response = client.post('/api/auth/login', json={'username': 'memparent', 'password': 'secret123'})
        assert response.status_code == 200
        assert client.get('/health').get_json()['backend'] == 'memory'

    def test_float_points_complete_cleanly(self):
        """JSON 5.0 is stored as int 5, so completing the chore logs and returns normally."""
        with patch.object(TestingConfig, 'REPOSITORY_BACKEND', 'memory'):
            app = create_app('testing')

        parent = app.test_client()
        child = app.test_client()
        family = parent.post('/api/families', json={'name': 'Float Family'}).get_json()['data']
        for username, role in (('floatparent', 'parent'), ('floatkid', 'child')):
            response = parent.post('/api/users', json={
                'username': username,
                'password': 'secret123',
                'display_name': username,
                'role_type': role,
                'family_id': family['id']
            })
            assert response.status_code == 201
            if role == 'parent':
                parent.post('/api/auth/login', json={'username': username, 'password': 'secret123'})
        kid = child.post('/api/auth/login', json={'username': 'floatkid', 'password': 'secret123'}).get_json()['data']

        chore = parent.post('/api/chores', json={
            'name': 'Feed the cat',
            'points': 5.0,
            'due_date': '2026-12-01',
            'assigned_to_id': kid['id']
        }).get_json()['data']

        response = child.post(f"/api/chores/{chore['id']}/complete")
        assert response.status_code == 200

        with app.app_context():
            points = get_repository().get_user(kid['id']).points
        assert points == 5
        assert isinstance(points, int)
