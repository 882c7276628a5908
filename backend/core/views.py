import logging
import time

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .authentication import AuthenticationUnavailable, BearerJWTAuthentication
from .exceptions import flatten_errors
from .serializers import (
    CustomTokenObtainPairSerializer, CustomTokenRefreshSerializer,
    RegisterSerializer, UserSerializer,
)
from .throttling import AuthRateThrottle, GeneralRateThrottle
from .utils import create_audit_log

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

AUTH_THROTTLES = [GeneralRateThrottle, AuthRateThrottle]


def set_token_cookie(response, token):
    response.set_cookie(
        settings.JWT_COOKIE_NAME,
        token,
        max_age=settings.JWT_EXPIRATION_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.JWT_COOKIE_SECURE,
        samesite=settings.JWT_COOKIE_SAMESITE,
    )
    return response


def request_body(request):
    """JSON object bodies only; arrays and scalars read as empty"""
    return request.data if isinstance(request.data, dict) else {}


def bearer_user(request):
    """User behind an optional bearer token on public endpoints"""
    try:
        result = BearerJWTAuthentication().authenticate(request)
    except (AuthenticationFailed, AuthenticationUnavailable):
        return None
    return result[0] if result else None


def token_response(user, access, refresh, message, status_code):
    """Build the auth success envelope and mirror the access token into the cookie"""
    response = Response({
        'status': 'success',
        'message': message,
        'token': access,
        'refresh': refresh,
        'user': UserSerializer(user).data,
    }, status=status_code)
    return set_token_cookie(response, access)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes(AUTH_THROTTLES)
def register(request):
    """User registration endpoint"""
    data = request_body(request)
    username = str(data.get('username') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    password = str(data.get('password') or '')

    if not username or not email or not password.strip():
        raise ValidationError('Please provide all required fields: username, email, and password.')

    serializer = RegisterSerializer(data={'username': username, 'email': email, 'password': password})
    if not serializer.is_valid():
        if 'User already exists with this email.' in serializer.errors.get('email', []):
            raise ValidationError('User already exists with this email.')
        return Response({
            'status': 'fail',
            'message': 'Validation failed.',
            'errors': flatten_errors(serializer.errors),
        }, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.save()
    logger.info(f"Registered user {user.id} ({user.email})")
    create_audit_log(
        request=request,
        action='register',
        model_name='User',
        object_id=user.id,
        object_name=user.email,
        user=user,
    )

    refresh = CustomTokenObtainPairSerializer.get_token(user)
    return token_response(
        user,
        access=str(refresh.access_token),
        refresh=str(refresh),
        message='User registered successfully.',
        status_code=status.HTTP_201_CREATED,
    )


class LoginView(TokenObtainPairView):
    """Email/password login returning a JWT pair"""
    serializer_class = CustomTokenObtainPairSerializer
    throttle_classes = AUTH_THROTTLES

    def post(self, request, *args, **kwargs):
        data = request_body(request)
        email = data.get('email')
        password = data.get('password')
        if not email or not password:
            raise ValidationError('Please provide both email and password.')

        serializer = self.get_serializer(data={'email': email, 'password': password})
        serializer.is_valid(raise_exception=True)
        user = serializer.user

        create_audit_log(
            request=request,
            action='login',
            model_name='User',
            object_id=user.id,
            object_name=user.email,
            user=user,
        )
        return token_response(
            user,
            access=serializer.validated_data['access'],
            refresh=serializer.validated_data['refresh'],
            message='Login successful',
            status_code=status.HTTP_200_OK,
        )


class RefreshView(TokenRefreshView):
    """Exchange a refresh token for a new access token"""
    serializer_class = CustomTokenRefreshSerializer
    throttle_classes = AUTH_THROTTLES

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        access = serializer.validated_data['access']
        body = {'status': 'success', 'token': access}
        if 'refresh' in serializer.validated_data:
            body['refresh'] = serializer.validated_data['refresh']
        return set_token_cookie(Response(body), access)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes(AUTH_THROTTLES)
def logout(request):
    """Clear the token cookie; bearer tokens simply expire client-side"""
    user = bearer_user(request)
    if user is not None:
        create_audit_log(
            request=request,
            action='logout',
            model_name='User',
            object_id=user.id,
            object_name=user.email,
            user=user,
        )

    response = Response({
        'status': 'success',
        'message': 'Logged out successfully',
    })
    response.set_cookie(
        settings.JWT_COOKIE_NAME,
        'loggedout',
        max_age=10,
        httponly=True,
        secure=settings.JWT_COOKIE_SECURE,
        samesite=settings.JWT_COOKIE_SAMESITE,
    )
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get the authenticated user"""
    return Response({
        'status': 'success',
        'data': UserSerializer(request.user).data,
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def health(request):
    return Response({
        'status': 'ok',
        'timestamp': timezone.now().isoformat(),
        'uptime': round(time.monotonic() - STARTED_AT, 3),
        'environment': settings.ENVIRONMENT,
    })


def route_not_found(request, exception=None):
    return JsonResponse({'status': 'fail', 'message': 'Route not found'}, status=404)


def server_error(request):
    return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)
