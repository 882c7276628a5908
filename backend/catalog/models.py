from django.conf import settings
from django.core.validators import MinLengthValidator
from django.db import models
from django.db.models import F, Q

from .validators import (
    SLUG_MAX_LENGTH,
    discounted_price_min_validator,
    price_max_validator,
    price_min_validator,
    slug_format_validator,
    slug_length_validator,
)


class Product(models.Model):
    """Catalog product"""
    meta_title = models.CharField(
        max_length=60,
        validators=[MinLengthValidator(3, 'Meta title must be at least 3 characters')],
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        validators=[MinLengthValidator(3, 'Product name must be at least 3 characters')],
    )
    slug = models.SlugField(
        max_length=SLUG_MAX_LENGTH,
        unique=True,
        validators=[slug_format_validator, slug_length_validator],
        error_messages={'unique': 'A product with this slug already exists.'},
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[price_min_validator, price_max_validator],
    )
    discounted_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[discounted_price_min_validator],
    )
    description = models.TextField()  # sanitized HTML
    is_active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='products',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.slug})"

    @property
    def effective_price(self):
        """Price a customer pays"""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.price

    class Meta:
        db_table = 'products'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_by'], name='products_created_by_idx'),
            models.Index(fields=['-created_at'], name='products_created_at_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(discounted_price__isnull=True) | Q(discounted_price__lt=F('price')),
                name='products_discount_below_price',
                violation_error_message='Discounted price must be less than the regular price',
            ),
        ]


class ProductImage(models.Model):
    """Gallery image attached to a product"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='gallery_images')
    url = models.URLField(max_length=2048)
    public_id = models.CharField(max_length=255, blank=True, default='')  # id at the image host
    alt = models.CharField(max_length=200, blank=True, default='')
    position = models.PositiveSmallIntegerField(default=0)

    def __str__(self):
        return self.alt or self.url

    class Meta:
        db_table = 'product_images'
        ordering = ['position', 'id']
