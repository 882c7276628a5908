from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from backend.core.serializers import UserSummarySerializer
from .models import Product, ProductImage
from .sanitizer import DESCRIPTION_MAX_LENGTH, DESCRIPTION_MIN_LENGTH, process_rich_text, validate_rich_text
from .validators import (
    MAX_GALLERY_IMAGES, PRICE_MAX, SLUG_MAX_LENGTH,
    is_discount_valid, slug_format_validator, slug_from_name, slug_length_validator,
)

PRODUCT_WRITE_FIELDS = (
    'meta_title', 'name', 'slug', 'price', 'discounted_price',
    'description', 'gallery_images', 'is_active',
)


class PriceField(serializers.DecimalField):
    """Money with two decimal places; extra places are rounded half-up instead of rejected"""

    def __init__(self, **kwargs):
        kwargs.setdefault('max_digits', 10)
        kwargs.setdefault('decimal_places', 2)
        super().__init__(**kwargs)

    def validate_precision(self, value):
        # Huge values overflow the decimal context when quantized
        if value.adjusted() >= self.max_digits - self.decimal_places:
            if self.max_value is not None:
                self.fail('max_value', max_value=self.max_value)
            self.fail('max_whole_digits', max_whole_digits=self.max_digits - self.decimal_places)
        value = value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        return super().validate_precision(value)


class ProductImageSerializer(serializers.ModelSerializer):
    url = serializers.URLField(
        max_length=2048,
        error_messages={'invalid': 'Gallery image URL must be a valid URI'},
    )
    public_id = serializers.CharField(required=False, allow_blank=True, max_length=255)
    alt = serializers.CharField(
        required=False, allow_blank=True, max_length=200,
        error_messages={'max_length': 'Image alt text cannot exceed 200 characters'},
    )

    class Meta:
        model = ProductImage
        fields = ['id', 'url', 'public_id', 'alt']
        read_only_fields = ['id']


class ProductSerializer(serializers.ModelSerializer):
    meta_title = serializers.CharField(
        min_length=3, max_length=60,
        error_messages={
            'required': 'Meta title is required',
            'blank': 'Meta title is required',
            'min_length': 'Meta title must be at least 3 characters',
            'max_length': 'Meta title cannot exceed 60 characters',
        },
    )
    name = serializers.CharField(
        min_length=3, max_length=200,
        error_messages={
            'required': 'Product name is required',
            'blank': 'Product name is required',
            'min_length': 'Product name must be at least 3 characters',
            'max_length': 'Product name cannot exceed 200 characters',
        },
    )
    # Omitted slugs are derived from the name on create
    slug = serializers.CharField(
        required=False,
        max_length=SLUG_MAX_LENGTH,
        validators=[slug_format_validator, slug_length_validator],
        error_messages={
            'blank': 'URL slug is required',
            'max_length': 'Slug cannot exceed 100 characters',
        },
    )
    price = PriceField(
        min_value=Decimal('0'), max_value=PRICE_MAX,
        error_messages={
            'required': 'Price is required',
            'null': 'Price is required',
            'invalid': 'Price must be a valid number',
            'min_value': 'Price cannot be negative',
            'max_value': 'Price seems unreasonably high',
        },
    )
    discounted_price = PriceField(
        required=False, allow_null=True, min_value=Decimal('0'),
        error_messages={
            'invalid': 'Discounted price must be a valid number',
            'min_value': 'Discounted price cannot be negative',
        },
    )
    description = serializers.CharField(
        min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH,
        error_messages={
            'required': 'Description is required',
            'blank': 'Description is required',
            'min_length': 'Description must be at least 10 characters',
            'max_length': 'Description cannot exceed 5000 characters',
        },
    )
    gallery_images = ProductImageSerializer(many=True, required=False)
    is_active = serializers.BooleanField(required=False, default=True)
    created_by = UserSummarySerializer(read_only=True)
    effective_price = PriceField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'meta_title', 'name', 'slug', 'price', 'discounted_price', 'effective_price',
            'description', 'gallery_images', 'is_active', 'created_by',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_description(self, value):
        result = process_rich_text(value)
        if not result.is_valid:
            raise serializers.ValidationError(f"Invalid description: {', '.join(result.errors)}")

        # Markup-only input can sanitize down to nothing
        is_valid, errors = validate_rich_text(result.content)
        if not is_valid:
            raise serializers.ValidationError(f"Invalid description: {', '.join(errors)}")
        return result.content

    def validate_gallery_images(self, value):
        if len(value) > MAX_GALLERY_IMAGES:
            raise serializers.ValidationError(f'Cannot have more than {MAX_GALLERY_IMAGES} gallery images')
        return value

    def validate_slug(self, value):
        value = value.strip()
        if self.instance is not None and value != self.instance.slug:
            if Product.objects.filter(slug=value).exclude(pk=self.instance.pk).exists():
                raise serializers.ValidationError('A product with this slug already exists')
        return value

    def validate(self, attrs):
        if self.instance is None and not attrs.get('slug'):
            attrs['slug'] = slug_from_name(attrs.get('name'))
            if len(attrs['slug']) < 3:
                raise serializers.ValidationError({'slug': 'URL slug is required'})

        price = attrs.get('price', getattr(self.instance, 'price', None))
        if 'discounted_price' in attrs:
            discounted_price = attrs['discounted_price']
        else:
            discounted_price = getattr(self.instance, 'discounted_price', None)

        if not is_discount_valid(price, discounted_price):
            raise serializers.ValidationError({
                'discounted_price': 'Discounted price must be less than regular price',
            })
        return attrs

    def create(self, validated_data):
        images_data = validated_data.pop('gallery_images', [])
        product = Product.objects.create(**validated_data)
        self._save_gallery(product, images_data)
        return product

    def update(self, instance, validated_data):
        images_data = validated_data.pop('gallery_images', None)
        instance = super().update(instance, validated_data)
        if images_data is not None:
            # A supplied gallery replaces the stored one
            instance.gallery_images.all().delete()
            self._save_gallery(instance, images_data)
        return instance

    @staticmethod
    def _save_gallery(product, images_data):
        ProductImage.objects.bulk_create([
            ProductImage(product=product, position=position, **image)
            for position, image in enumerate(images_data)
        ])
