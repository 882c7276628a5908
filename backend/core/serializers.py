from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken
from .models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'is_active', 'created_at', 'updated_at']
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Owner reference embedded in product payloads"""
    class Meta:
        model = User
        fields = ['id', 'username', 'email']
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    username = serializers.CharField(
        min_length=3, max_length=30,
        error_messages={
            'min_length': 'Username must be at least 3 characters',
            'max_length': 'Username cannot exceed 30 characters',
        },
    )
    email = serializers.EmailField(error_messages={'invalid': 'Please provide a valid email'})
    password = serializers.CharField(write_only=True, trim_whitespace=False, validators=[validate_password])

    class Meta:
        model = User
        fields = ['username', 'email', 'password']

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User already exists with this email.')
        return value

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError('A user with that username already exists.')
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            is_active=True,
        )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Email/password login that issues an access + refresh pair"""
    default_error_messages = {
        'no_active_account': 'Invalid username or password.',
    }

    def validate(self, attrs):
        attrs[self.username_field] = attrs[self.username_field].strip().lower()
        return super().validate(attrs)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['email'] = user.email
        return token


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Refresh serializer that rejects tokens whose user was deleted"""
    def validate(self, attrs):
        try:
            user_id = RefreshToken(attrs['refresh']).payload.get(jwt_settings.USER_ID_CLAIM)
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        if not User.objects.filter(**{jwt_settings.USER_ID_FIELD: user_id}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')
        return super().validate(attrs)
