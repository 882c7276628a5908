"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.catalog.models import Product, ProductImage

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random lowercase string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='Test@123456', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@example.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
        )

    @staticmethod
    def product_payload(**overrides):
        """Request body for a valid product"""
        payload = {
            'meta_title': 'Test Product Meta Title',
            'name': 'Test Product Name',
            'slug': f'test-product-{TestDataFactory.random_string(8)}',
            'price': 99.99,
            'discounted_price': 79.99,
            'description': '<p>This is a test product description with enough characters.</p>',
            'gallery_images': [
                {'url': 'https://example.com/image.jpg', 'alt': 'Test image'},
            ],
            'is_active': True,
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def create_product(created_by=None, name=None, slug=None, price=Decimal('99.99'),
                       discounted_price=None, description=None, is_active=True, images=0):
        """Create a test product"""
        if created_by is None:
            created_by = TestDataFactory.create_user()
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'product-{TestDataFactory.random_string(8)}'
        product = Product.objects.create(
            meta_title=name[:60],
            name=name,
            slug=slug,
            price=price,
            discounted_price=discounted_price,
            description=description or '<p>A stored product description.</p>',
            is_active=is_active,
            created_by=created_by,
        )
        for position in range(images):
            ProductImage.objects.create(
                product=product,
                url=f'https://example.com/{slug}-{position}.jpg',
                alt=f'Image {position}',
                position=position,
            )
        return product


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
