"""
Test suite for the core app
Tests: registration, login, token refresh, logout, bearer authentication, throttling, error envelope
"""
from datetime import timedelta
from io import StringIO

import jwt
from django.conf import settings
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from backend.core.exceptions import first_error, flatten_errors
from backend.core.models import AuditLog, User
from backend.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from backend.core.throttling import GeneralRateThrottle, RateLimitExceeded

REGISTER_URL = '/api/v1/users/register/'
LOGIN_URL = '/api/v1/users/login/'
REFRESH_URL = '/api/v1/users/refresh/'
LOGOUT_URL = '/api/v1/users/logout/'
ME_URL = '/api/v1/users/me/'
PRODUCTS_URL = '/api/v1/products/'


class RegisterTests(TestCase):
    """Test POST /api/v1/users/register/"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.data = {
            'username': 'testuser_register',
            'email': 'Test_Register@Example.com',
            'password': 'Test@123456',
        }

    def test_register_success(self):
        response = self.client.post(REGISTER_URL, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['message'], 'User registered successfully.')
        self.assertTrue(body['token'])
        self.assertTrue(body['refresh'])
        self.assertEqual(body['user']['email'], 'test_register@example.com')
        self.assertNotIn('password', body['user'])

    def test_register_sets_token_cookie(self):
        response = self.client.post(REGISTER_URL, self.data, format='json')
        cookie = response.cookies['jwt']
        self.assertEqual(cookie.value, response.json()['token'])
        self.assertTrue(cookie['httponly'])

    def test_register_hashes_password(self):
        self.client.post(REGISTER_URL, self.data, format='json')
        user = User.objects.get(email='test_register@example.com')
        self.assertNotEqual(user.password, 'Test@123456')
        self.assertTrue(user.check_password('Test@123456'))

    def test_register_writes_audit_log(self):
        self.client.post(REGISTER_URL, self.data, format='json')
        log = AuditLog.objects.get(action='register')
        self.assertEqual(log.object_name, 'test_register@example.com')
        self.assertIsNotNone(log.user)

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(username='existing', email='test_register@example.com')
        response = self.client.post(REGISTER_URL, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'fail')
        self.assertEqual(response.json()['message'], 'User already exists with this email.')

    def test_register_missing_fields(self):
        response = self.client.post(REGISTER_URL, {'email': 'test@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'fail')
        self.assertEqual(
            response.json()['message'],
            'Please provide all required fields: username, email, and password.',
        )

    def test_register_blank_fields(self):
        response = self.client.post(
            REGISTER_URL, {'username': '   ', 'email': 'a@example.com', 'password': 'secret1'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_short_password(self):
        self.data['password'] = '123'
        response = self.client.post(REGISTER_URL, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body['message'], 'Validation failed.')
        self.assertTrue(body['errors'])

    def test_register_invalid_email(self):
        self.data['email'] = 'not-an-email'
        response = self.client.post(REGISTER_URL, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Please provide a valid email', response.json()['errors'])

    def test_register_short_username(self):
        self.data['username'] = 'ab'
        response = self.client.post(REGISTER_URL, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Username must be at least 3 characters', response.json()['errors'])

    def test_register_array_body(self):
        response = self.client.post(REGISTER_URL, [1], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.json()['message'],
            'Please provide all required fields: username, email, and password.',
        )


class LoginTests(TestCase):
    """Test POST /api/v1/users/login/"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = TestDataFactory.create_user(email='login@example.com', password='Test@123456')

    def test_login_success(self):
        response = self.client.post(
            LOGIN_URL, {'email': 'login@example.com', 'password': 'Test@123456'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['message'], 'Login successful')
        self.assertTrue(body['token'])
        self.assertEqual(body['user']['id'], self.user.id)
        self.assertIn('jwt', response.cookies)

    def test_login_email_is_case_insensitive(self):
        response = self.client.post(
            LOGIN_URL, {'email': '  LOGIN@example.com ', 'password': 'Test@123456'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_token_carries_user_id(self):
        response = self.client.post(
            LOGIN_URL, {'email': 'login@example.com', 'password': 'Test@123456'}, format='json'
        )
        token = AccessToken(response.json()['token'])
        self.assertEqual(token['id'], self.user.id)
        self.assertEqual(token['email'], 'login@example.com')

    def test_login_invalid_password(self):
        response = self.client.post(
            LOGIN_URL, {'email': 'login@example.com', 'password': 'wrongpassword'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['status'], 'fail')
        self.assertEqual(response.json()['message'], 'Invalid username or password.')

    def test_login_unknown_email(self):
        response = self.client.post(
            LOGIN_URL, {'email': 'nonexistent@example.com', 'password': 'password123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['status'], 'fail')

    def test_login_missing_credentials(self):
        response = self.client.post(LOGIN_URL, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'fail')
        self.assertEqual(response.json()['message'], 'Please provide both email and password.')

    def test_login_array_body(self):
        response = self.client.post(LOGIN_URL, [1], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Please provide both email and password.')

    def test_login_writes_audit_log(self):
        self.client.post(LOGIN_URL, {'email': 'login@example.com', 'password': 'Test@123456'}, format='json')
        self.assertTrue(AuditLog.objects.filter(action='login', user=self.user).exists())


class TokenRefreshLogoutTests(TestCase):
    """Test refresh, logout and me endpoints"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = TestDataFactory.create_user()

    def test_refresh_returns_new_access_token(self):
        refresh = RefreshToken.for_user(self.user)
        response = self.client.post(REFRESH_URL, {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['status'], 'success')
        self.assertEqual(AccessToken(response.json()['token'])['id'], self.user.id)

    def test_refresh_rejects_deleted_user(self):
        refresh = RefreshToken.for_user(self.user)
        self.user.delete()
        response = self.client.post(REFRESH_URL, {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['status'], 'fail')

    def test_refresh_rejects_garbage(self):
        response = self.client.post(REFRESH_URL, {'refresh': 'garbage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout(self):
        response = self.client.post(LOGOUT_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['status'], 'success')
        self.assertEqual(response.cookies['jwt'].value, 'loggedout')

    @override_settings(JWT_COOKIE_SECURE=True, JWT_COOKIE_SAMESITE='None')
    def test_logout_cookie_matches_login_cookie_attributes(self):
        response = self.client.post(LOGOUT_URL)
        cookie = response.cookies['jwt']
        self.assertTrue(cookie['secure'])
        self.assertEqual(cookie['samesite'], 'None')
        self.assertTrue(cookie['httponly'])

    def test_logout_with_token_writes_audit_log(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.post(LOGOUT_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='logout')
        self.assertEqual(log.user, self.user)

    def test_logout_with_bad_token_still_succeeds(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not.a.jwt')
        response = self.client.post(LOGOUT_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(AuditLog.objects.filter(action='logout').exists())

    def test_me_returns_current_user(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get(ME_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['email'], self.user.email)

    def test_me_requires_authentication(self):
        response = self.client.get(ME_URL)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class BearerAuthenticationTests(TestCase):
    """Every failure mode of the bearer token check reports its own code"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = TestDataFactory.create_user()

    def assert_auth_failure(self, code, **headers):
        response = self.client.get(PRODUCTS_URL, **headers)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        body = response.json()
        self.assertEqual(body['status'], 'fail')
        self.assertEqual(body['code'], code)
        return body

    def test_missing_header(self):
        self.assert_auth_failure('NO_AUTH_HEADER')

    def test_wrong_scheme(self):
        self.assert_auth_failure('INVALID_AUTH_FORMAT', HTTP_AUTHORIZATION='Token abc')

    def test_empty_token(self):
        self.assert_auth_failure('EMPTY_TOKEN', HTTP_AUTHORIZATION='Bearer ')

    def test_malformed_token(self):
        self.assert_auth_failure('INVALID_TOKEN', HTTP_AUTHORIZATION='Bearer not.a.jwt')

    def test_tampered_signature(self):
        token = jwt.encode(
            {'id': self.user.id, 'token_type': 'access', 'exp': timezone.now() + timedelta(hours=1)},
            'some-other-secret-that-is-long-enough-for-hs256',
            algorithm='HS256',
        )
        self.assert_auth_failure('INVALID_TOKEN', HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_expired_token(self):
        token = AccessToken.for_user(self.user)
        token.set_exp(from_time=timezone.now() - timedelta(days=10), lifetime=timedelta(days=1))
        body = self.assert_auth_failure('TOKEN_EXPIRED', HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertIn('expired_at', body)

    def test_token_without_user_id(self):
        token = jwt.encode(
            {'token_type': 'access', 'exp': timezone.now() + timedelta(hours=1)},
            settings.JWT_SECRET_KEY,
            algorithm='HS256',
        )
        self.assert_auth_failure('INVALID_TOKEN_PAYLOAD', HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_refresh_token_is_not_an_access_token(self):
        refresh = RefreshToken.for_user(self.user)
        self.assert_auth_failure('INVALID_TOKEN', HTTP_AUTHORIZATION=f'Bearer {refresh}')

    def test_deleted_user(self):
        token = AccessToken.for_user(self.user)
        self.user.delete()
        self.assert_auth_failure('USER_NOT_FOUND', HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_valid_token(self):
        token = AccessToken.for_user(self.user)
        response = self.client.get(PRODUCTS_URL, HTTP_AUTHORIZATION=f'Bearer {token}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ThrottlingTests(TestCase):
    """Test per-IP rate limits"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def tearDown(self):
        cache.clear()

    def test_parse_rate_with_multiplier(self):
        throttle = GeneralRateThrottle()
        self.assertEqual(throttle.parse_rate('100/15m'), (100, 900))
        self.assertEqual(throttle.parse_rate('10/15min'), (10, 900))
        self.assertEqual(throttle.parse_rate('5/s'), (5, 1))
        self.assertEqual(throttle.parse_rate('1/day'), (1, 86400))
        self.assertEqual(throttle.parse_rate(None), (None, None))

    @override_settings(API_THROTTLING_ENABLED=True)
    def test_auth_endpoints_are_strictly_limited(self):
        for _ in range(10):
            self.assertEqual(self.client.post(LOGOUT_URL).status_code, status.HTTP_200_OK)
        response = self.client.post(LOGOUT_URL)
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response.json()['status'], 'fail')
        self.assertEqual(
            response.json()['message'], 'Too many login attempts, please try again after 15 minutes'
        )
        self.assertTrue(0 < int(response['Retry-After']) <= 900)

    def test_rate_limit_message_has_no_wait_suffix(self):
        exc = RateLimitExceeded(wait=12.3, detail=GeneralRateThrottle.message)
        self.assertEqual(str(exc.detail), 'Too many requests from this IP, please try again later')
        self.assertEqual(exc.wait, 13)

    @override_settings(API_THROTTLING_ENABLED=False)
    def test_throttling_can_be_disabled(self):
        for _ in range(15):
            self.assertEqual(self.client.post(LOGOUT_URL).status_code, status.HTTP_200_OK)


class ErrorEnvelopeTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_unknown_route(self):
        response = self.client.get('/api/v1/does-not-exist/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json(), {'status': 'fail', 'message': 'Route not found'})

    @override_settings(DEBUG=True)
    def test_unknown_route_in_debug(self):
        response = self.client.get('/api/v1/nope/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(response.json(), {'status': 'fail', 'message': 'Route not found'})

    def test_health(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body['status'], 'ok')
        self.assertIn('uptime', body)
        self.assertIn('timestamp', body)

    def test_first_error_walks_nested_detail(self):
        detail = [{}, {'gallery_images': [{'url': ['Enter a valid URL.']}]}]
        self.assertEqual(first_error(detail), ('gallery_images', 'Enter a valid URL.'))
        self.assertEqual(first_error({'non_field_errors': ['Bad']}), (None, 'Bad'))

    def test_flatten_errors(self):
        detail = {'name': ['Too short'], 'price': ['Required', 'Negative']}
        self.assertEqual(flatten_errors(detail), ['Too short', 'Required', 'Negative'])


class PurgeAuditLogsCommandTests(TestCase):
    """Test the purge_audit_logs management command"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.old = AuditLog.objects.create(user=self.user, action='login', model_name='User', object_id='1')
        self.recent = AuditLog.objects.create(user=self.user, action='login', model_name='User', object_id='1')
        AuditLog.objects.filter(pk=self.old.pk).update(created_at=timezone.now() - timedelta(days=120))

    def test_purges_entries_past_retention(self):
        out = StringIO()
        call_command('purge_audit_logs', '--days', '90', stdout=out)
        self.assertIn('Deleted 1', out.getvalue())
        self.assertEqual(list(AuditLog.objects.values_list('pk', flat=True)), [self.recent.pk])

    def test_dry_run_keeps_entries(self):
        out = StringIO()
        call_command('purge_audit_logs', '--dry-run', stdout=out)
        self.assertIn('[DRY RUN]', out.getvalue())
        self.assertEqual(AuditLog.objects.count(), 2)

    def test_rejects_non_positive_days(self):
        with self.assertRaises(CommandError):
            call_command('purge_audit_logs', '--days', '0', stdout=StringIO())
