"""
Field rules shared by the Product model and its serializers
"""
import re
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinLengthValidator, MinValueValidator, RegexValidator
from django.utils.text import slugify

SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 100

PRICE_MAX = Decimal('1000000')
MAX_GALLERY_IMAGES = 10

slug_format_validator = RegexValidator(
    SLUG_PATTERN,
    message='Slug must be lowercase with hyphens only (e.g., product-name)',
)
slug_length_validator = MinLengthValidator(SLUG_MIN_LENGTH, 'Slug must be at least 3 characters')

price_min_validator = MinValueValidator(Decimal('0'), 'Price cannot be negative')
price_max_validator = MaxValueValidator(PRICE_MAX, 'Price seems unreasonably high')
discounted_price_min_validator = MinValueValidator(Decimal('0'), 'Discounted price cannot be negative')


def normalize_slug(slug):
    """Slugs compare trimmed and lowercased"""
    return (slug or '').strip().lower()


def slug_from_name(name):
    """Derive a URL slug from a product name, e.g. "Red Shoe (XL)" -> "red-shoe-xl"."""
    slug = slugify(name or '').replace('_', '-')
    slug = re.sub(r'-{2,}', '-', slug).strip('-')
    return slug[:SLUG_MAX_LENGTH].rstrip('-')


def find_duplicate_slugs(slugs):
    """Return normalized slugs that appear more than once, in first-seen order"""
    seen = set()
    duplicates = []
    for slug in map(normalize_slug, slugs):
        if slug in seen and slug not in duplicates:
            duplicates.append(slug)
        seen.add(slug)
    return duplicates


def is_discount_valid(price, discounted_price):
    """A discounted price must be strictly below the regular price"""
    if discounted_price is None or price is None:
        return True
    return Decimal(str(discounted_price)) < Decimal(str(price))
