"""
Tests for registration, login and the bearer-token principal.
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch

import jwt
from django.conf import settings
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Courier, Customer, StoreAdmin
from accounts.services import authenticate_account, register_account
from core.authentication import CUSTOMER, STORE_ADMIN, principal_from_token, issue_token
from core.exceptions import ConflictError, ValidationFailed
from core.testing import auth_client, fast_test_settings, make_customer, make_store, make_store_admin


@fast_test_settings
class AccountServiceTestCase(TestCase):

    def test_register_hashes_password_and_normalises_email(self):
        account = register_account(Customer, {
            'email': ' Jane@Example.COM ',
            'password': 'secret1',
            'full_name': 'Jane Doe',
        })

        self.assertEqual(account.email, 'jane@example.com')
        self.assertNotEqual(account.password, 'secret1')
        self.assertTrue(account.check_password('secret1'))

    def test_duplicate_email_conflicts(self):
        make_customer(email='jane@example.com')

        with self.assertRaises(ConflictError) as context:
            register_account(Customer, {'email': 'JANE@example.com', 'password': 'secret1', 'full_name': 'J'})

        self.assertEqual(context.exception.message, 'User Already Exists')

    def test_same_email_allowed_for_another_role(self):
        make_customer(email='jane@example.com')

        account = register_account(Courier, {
            'email': 'jane@example.com', 'password': 'secret1', 'full_name': 'Jane', 'phone': '555'
        })

        self.assertIsInstance(account, Courier)

    def test_authenticate_wrong_password(self):
        make_customer(email='jane@example.com', password='secret1')

        with self.assertRaises(ValidationFailed) as context:
            authenticate_account(Customer, 'jane@example.com', 'wrong-pass')

        self.assertEqual(context.exception.message, 'Invalid credentials')

    def test_authenticate_unknown_email(self):
        with self.assertRaises(ValidationFailed):
            authenticate_account(Customer, 'nobody@example.com', 'secret1')


@fast_test_settings
class TokenTestCase(TestCase):

    def test_token_round_trip(self):
        admin = make_store_admin()

        principal = principal_from_token(issue_token(admin))

        self.assertEqual(principal.role, STORE_ADMIN)
        self.assertEqual(principal.id, admin.pk)
        self.assertIsNone(principal.store_id)

    def test_store_id_of_owner(self):
        admin = make_store_admin()
        store = make_store(owner=admin)

        principal = principal_from_token(issue_token(admin))

        self.assertEqual(principal.store_id, store.pk)

    def test_expired_token(self):
        customer = make_customer()
        past = timezone.now() - timedelta(hours=2)
        token = jwt.encode(
            {'sub': str(customer.pk), 'role': CUSTOMER, 'iat': past, 'exp': past + timedelta(hours=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        response = client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Token expired')

    def test_tampered_token(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION='Bearer not.a.token')

        response = client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid Token')

    def test_deleted_account(self):
        customer = make_customer()
        token = issue_token(customer)
        customer.delete()

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        response = client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'User not found')

    def test_role_mismatch(self):
        response = auth_client(make_customer()).get('/api/admin/auth/me/')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Access Denied')


@fast_test_settings
class AuthAPITestCase(TestCase):

    def test_customer_register_and_me(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'jane@example.com',
            'password': 'secret1',
            'full_name': 'Jane Doe',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 201)
        token = response.json()['token']

        me = self.client.get('/api/auth/me/', HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()['user']['email'], 'jane@example.com')
        self.assertNotIn('password', me.json()['user'])

    def test_register_short_password(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'jane@example.com',
            'password': '123',
            'full_name': 'Jane Doe',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()['message'].startswith('password:'))

    def test_register_duplicate(self):
        make_customer(email='jane@example.com')

        response = self.client.post('/api/auth/register/', {
            'email': 'jane@example.com',
            'password': 'secret1',
            'full_name': 'Jane Doe',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], 'User Already Exists')

    def test_courier_register_requires_phone(self):
        response = self.client.post('/api/delivery/auth/register/', {
            'email': 'rider@example.com',
            'password': 'secret1',
            'full_name': 'Rider',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'phone: This field is required.')

    def test_login(self):
        make_store_admin(email='boss@example.com', password='secret1')

        response = self.client.post('/api/admin/auth/login/', {
            'email': 'boss@example.com',
            'password': 'secret1',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['role'], StoreAdmin.Role.USER)
        self.assertTrue(response.json()['token'])

    def test_login_invalid_credentials(self):
        make_customer(email='jane@example.com', password='secret1')

        response = self.client.post('/api/auth/login/', {
            'email': 'jane@example.com',
            'password': 'wrong-pass',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid credentials')

    def test_profile_update(self):
        customer = make_customer()

        response = auth_client(customer).put('/api/user/', {'city': 'Springfield'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['message'], 'User updated successfully')
        customer.refresh_from_db()
        self.assertEqual(customer.city, 'Springfield')

    def test_store_me_without_store(self):
        response = auth_client(make_store_admin()).get('/api/admin/auth/store/me/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Store not found')

    def test_store_me(self):
        admin = make_store_admin()
        store = make_store(owner=admin)

        response = auth_client(admin).get('/api/admin/auth/store/me/')

        self.assertEqual(response.data['store']['id'], store.pk)


@override_settings(
    PASSWORD_HASHERS=['django.contrib.auth.hashers.MD5PasswordHasher'],
    RATE_LIMIT_ENABLED=True,
)
class LoginRateLimitTestCase(TestCase):

    def setUp(self):
        self.redis = MagicMock()
        self.redis.ttl.return_value = 42
        patcher = patch('core.rate_limiting.get_redis_client', return_value=self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

    def login(self):
        return self.client.post('/api/auth/login/', {
            'email': 'nobody@example.com',
            'password': 'secret1',
        }, content_type='application/json')

    def test_under_limit_passes_through(self):
        make_customer(email='nobody@example.com', password='secret1')
        self.redis.incr.return_value = 1

        response = self.login()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['X-RateLimit-Remaining'], '9')
        self.redis.expire.assert_called_once_with('rate_limit:customer-login:127.0.0.1', 60)

    def test_over_limit_rejected(self):
        self.redis.incr.return_value = 11

        response = self.login()

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()['status'], 429)
        self.assertEqual(response['Retry-After'], '42')

    def test_redis_down_fails_open(self):
        with patch('core.rate_limiting.get_redis_client', return_value=None):
            response = self.login()

        self.assertEqual(response.status_code, 400)
