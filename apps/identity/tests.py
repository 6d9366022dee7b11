import json
from django.core.cache import cache
from django.test import TestCase, Client
from .models import User, UserRole
from .permissions import get_user_permissions, Permissions
from .jwt_auth import create_access_token, create_refresh_token, get_user_id_from_token


class RBACTest(TestCase):
    def test_customer_permissions(self):
        user = User.objects.create_user(username="member", email="member@test.com", password="pw", role=UserRole.CUSTOMER)
        perms = get_user_permissions(user)
        self.assertNotIn(Permissions.ORDERS_MANAGE, perms)
        self.assertNotIn(Permissions.ORDERS_VIEW_ALL, perms)

    def test_staff_permissions(self):
        user = User.objects.create_user(username="staff", email="staff@test.com", password="pw", role=UserRole.STAFF)
        perms = get_user_permissions(user)
        self.assertIn(Permissions.ORDERS_MANAGE, perms)
        self.assertNotIn(Permissions.IDENTITY_MANAGE_USER, perms)

    def test_admin_permissions(self):
        user = User.objects.create_user(username="admin", email="admin@test.com", password="pw", role=UserRole.ADMIN)
        perms = get_user_permissions(user)
        self.assertIn(Permissions.ORDERS_MANAGE, perms)
        self.assertIn(Permissions.IDENTITY_MANAGE_USER, perms)

    def test_inactive_user_has_no_permissions(self):
        user = User.objects.create_user(username="gone", email="gone@test.com", password="pw", role=UserRole.ADMIN, is_active=False)
        self.assertEqual(get_user_permissions(user), [])


class TokenTest(TestCase):
    def test_access_token_round_trip(self):
        user = User.objects.create_user(username="a@test.com", email="a@test.com", password="pw")
        token = create_access_token(user.id, user.role)
        self.assertEqual(get_user_id_from_token(token), user.id)

    def test_refresh_token_is_not_an_access_token(self):
        user = User.objects.create_user(username="b@test.com", email="b@test.com", password="pw")
        token = create_refresh_token(user.id)
        self.assertIsNone(get_user_id_from_token(token))
        self.assertEqual(get_user_id_from_token(token, token_type='refresh'), user.id)

    def test_garbage_token(self):
        self.assertIsNone(get_user_id_from_token("not-a-jwt"))


class AuthAPITest(TestCase):
    def setUp(self):
        # Sign-in throttle history lives in the default cache
        cache.clear()
        self.client = Client()

    def _register(self, email="new@test.com", password="longenough1"):
        return self.client.post(
            '/api/identity/register',
            data=json.dumps({'email': email, 'password': password, 'name': 'New Member'}),
            content_type='application/json',
        )

    def test_register_sets_cookies(self):
        response = self._register()
        self.assertEqual(response.status_code, 201)
        self.assertIn('access_token', response.cookies)
        self.assertIn('refresh_token', response.cookies)
        data = response.json()
        self.assertEqual(data['user']['email'], 'new@test.com')
        self.assertEqual(data['user']['role'], UserRole.CUSTOMER)

    def test_register_duplicate_email(self):
        self._register()
        response = self._register(email="NEW@test.com")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'validation_failed')

    def test_register_short_password(self):
        response = self._register(password="short")
        self.assertEqual(response.status_code, 400)

    def test_login_and_me(self):
        self._register()
        self.client.cookies.clear()

        response = self.client.post(
            '/api/identity/login',
            data=json.dumps({'email': 'new@test.com', 'password': 'longenough1'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.get('/api/identity/me')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['email'], 'new@test.com')

    def test_login_wrong_password(self):
        self._register()
        response = self.client.post(
            '/api/identity/login',
            data=json.dumps({'email': 'new@test.com', 'password': 'wrong-password'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 401)

    def test_me_with_bearer_token(self):
        user = User.objects.create_user(username="c@test.com", email="c@test.com", password="pw")
        token = create_access_token(user.id, user.role)
        response = self.client.get('/api/identity/me', HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, 200)

    def test_me_requires_auth(self):
        response = self.client.get('/api/identity/me')
        self.assertEqual(response.status_code, 401)

    def test_refresh(self):
        self._register()
        response = self.client.post('/api/identity/refresh')
        self.assertEqual(response.status_code, 200)
        self.assertIn('access_token', response.cookies)

    def test_logout_clears_cookies(self):
        self._register()
        response = self.client.post('/api/identity/logout')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.cookies['access_token'].value, '')

    def test_login_is_rate_limited_per_ip(self):
        User.objects.create_user(username="d@test.com", email="d@test.com", password="longenough1")
        body = json.dumps({'email': 'd@test.com', 'password': 'wrong-password'})

        for _ in range(5):
            response = self.client.post('/api/identity/login', data=body, content_type='application/json')
            self.assertEqual(response.status_code, 401)

        response = self.client.post('/api/identity/login', data=body, content_type='application/json')
        self.assertEqual(response.status_code, 429)
        self.assertIn('Retry-After', response)

        # Another client address still gets through
        response = self.client.post(
            '/api/identity/login', data=body, content_type='application/json', REMOTE_ADDR='10.0.0.9',
        )
        self.assertEqual(response.status_code, 401)
