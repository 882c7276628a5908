"""
Bearer JWT authentication for the catalog API.

Wraps simplejwt's JWTAuthentication so every failure carries a stable
machine-readable code (NO_AUTH_HEADER, TOKEN_EXPIRED, USER_NOT_FOUND, ...)
that clients can branch on.
"""
import logging
from datetime import datetime, timezone

import jwt
from django.db import DatabaseError
from rest_framework import HTTP_HEADER_ENCODING, exceptions
from rest_framework.authentication import get_authorization_header
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.settings import api_settings as jwt_settings

logger = logging.getLogger(__name__)


class TokenAuthenticationFailed(exceptions.AuthenticationFailed):
    """AuthenticationFailed that can carry extra fields into the error body"""

    def __init__(self, detail, code, **extra):
        super().__init__(detail=detail, code=code)
        self.extra = extra


class AuthenticationUnavailable(exceptions.APIException):
    status_code = 500
    default_detail = 'An error occurred while verifying user credentials.'
    default_code = 'DB_ERROR'


class BearerJWTAuthentication(JWTAuthentication):
    """Authenticate `Authorization: Bearer <token>` requests"""

    keyword = 'Bearer'

    def authenticate(self, request):
        header = get_authorization_header(request)
        if not header:
            # DRF turns this into NotAuthenticated on protected views
            return None

        if isinstance(header, bytes):
            header = header.decode(HTTP_HEADER_ENCODING)

        if not header.startswith(f'{self.keyword} '):
            raise TokenAuthenticationFailed(
                "Invalid authorization format. Expected format: 'Bearer <token>'",
                'INVALID_AUTH_FORMAT',
            )

        raw_token = header.split(' ')[1]
        if not raw_token.strip():
            raise TokenAuthenticationFailed(
                'Access denied. Token is missing or empty.',
                'EMPTY_TOKEN',
            )

        payload = self.decode_payload(raw_token)
        if not payload.get(jwt_settings.USER_ID_CLAIM):
            raise TokenAuthenticationFailed(
                'Invalid token payload. User ID is missing.',
                'INVALID_TOKEN_PAYLOAD',
            )

        try:
            validated_token = self.get_validated_token(raw_token)
        except InvalidToken:
            # Wrong token type (e.g. a refresh token) or a blacklisted token
            raise TokenAuthenticationFailed(
                'Invalid token. The token is malformed or has been tampered with.',
                'INVALID_TOKEN',
            )

        return self.get_user(validated_token), validated_token

    def decode_payload(self, raw_token):
        """Verify signature and expiry, classifying each failure"""
        try:
            return jwt.decode(
                raw_token,
                jwt_settings.SIGNING_KEY,
                algorithms=[jwt_settings.ALGORITHM],
                leeway=jwt_settings.LEEWAY,
                options={'verify_aud': False},
            )
        except jwt.ExpiredSignatureError:
            expired_at = None
            try:
                exp = jwt.decode(raw_token, options={'verify_signature': False}).get('exp')
                if exp:
                    expired_at = datetime.fromtimestamp(exp, tz=timezone.utc).isoformat()
            except jwt.InvalidTokenError:
                pass
            raise TokenAuthenticationFailed(
                'Token has expired. Please log in again to get a new token.',
                'TOKEN_EXPIRED',
                expired_at=expired_at,
            )
        except jwt.ImmatureSignatureError:
            raise TokenAuthenticationFailed(
                'Token is not yet active. Please try again later.',
                'TOKEN_NOT_ACTIVE',
            )
        except jwt.InvalidTokenError:
            raise TokenAuthenticationFailed(
                'Invalid token. The token is malformed or has been tampered with.',
                'INVALID_TOKEN',
            )

    def get_user(self, validated_token):
        user_id = validated_token.get(jwt_settings.USER_ID_CLAIM)
        try:
            user = self.user_model.objects.get(**{jwt_settings.USER_ID_FIELD: user_id})
        except self.user_model.DoesNotExist:
            raise TokenAuthenticationFailed(
                'The user belonging to this token no longer exists. Please log in again.',
                'USER_NOT_FOUND',
            )
        except DatabaseError:
            logger.exception("Database error while fetching user for token")
            raise AuthenticationUnavailable()

        if not user.is_active:
            raise TokenAuthenticationFailed('User account is disabled.', 'USER_INACTIVE')
        return user
