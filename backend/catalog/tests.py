"""
Test suite for the catalog app
Tests: description sanitizing, slug rules, product CRUD, bulk creation, ownership checks
"""
from decimal import Decimal
from io import StringIO

from django.contrib.admin.sites import AdminSite
from django.core.cache import cache
from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import RequestFactory, TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from .admin import ProductAdmin
from .models import Product, ProductImage
from .sanitizer import process_rich_text, sanitize_rich_text, validate_rich_text
from .validators import find_duplicate_slugs, is_discount_valid, normalize_slug, slug_from_name

PRODUCTS_URL = '/api/v1/products/'


def detail_url(pk):
    return f'{PRODUCTS_URL}{pk}/'


class SanitizerTests(TestCase):
    """Test rich-text sanitizing and validation"""

    def test_keeps_allowed_markup(self):
        html = '<h2>Title</h2><p><strong>Bold</strong> and <em>italic</em></p><ul><li>One</li></ul>'
        self.assertEqual(sanitize_rich_text(html), html)

    def test_removes_script_with_content(self):
        cleaned = sanitize_rich_text('<p>Hello</p><script>alert("x")</script>')
        self.assertNotIn('script', cleaned)
        self.assertNotIn('alert', cleaned)
        self.assertIn('<p>Hello</p>', cleaned)

    def test_removes_event_handler_attributes(self):
        cleaned = sanitize_rich_text('<p onclick="steal()">Click me</p>')
        self.assertNotIn('onclick', cleaned)
        self.assertIn('Click me', cleaned)

    def test_keeps_link_attributes(self):
        cleaned = sanitize_rich_text('<a href="https://example.com" target="_blank" rel="noopener">Link</a>')
        self.assertIn('href="https://example.com"', cleaned)
        self.assertIn('rel="noopener"', cleaned)

    def test_drops_javascript_urls(self):
        cleaned = sanitize_rich_text('<a href="javascript:alert(1)">Link</a>')
        self.assertNotIn('javascript', cleaned)

    def test_unknown_tags_keep_text(self):
        cleaned = sanitize_rich_text('<marquee>Moving text</marquee>')
        self.assertNotIn('marquee', cleaned)
        self.assertIn('Moving text', cleaned)

    def test_non_string_input(self):
        self.assertEqual(sanitize_rich_text(None), '')
        self.assertEqual(sanitize_rich_text(42), '')

    def test_validate_lengths(self):
        self.assertEqual(validate_rich_text('short'), (False, ['Description must be at least 10 characters long']))
        self.assertEqual(validate_rich_text('x' * 5001), (False, ['Description cannot exceed 5000 characters']))
        self.assertEqual(validate_rich_text('   '), (False, ['Description must be at least 10 characters long']))
        self.assertEqual(validate_rich_text(None), (False, ['Description must be a valid string']))
        self.assertEqual(validate_rich_text('long enough text'), (True, []))

    def test_process_validates_before_sanitizing(self):
        result = process_rich_text('<p>Fine description</p><script>x()</script>')
        self.assertTrue(result.is_valid)
        self.assertEqual(result.content, '<p>Fine description</p>')

        result = process_rich_text('tiny')
        self.assertFalse(result.is_valid)
        self.assertEqual(result.content, '')
        self.assertTrue(result.errors)


class SlugRuleTests(TestCase):
    """Test slug helpers and price rules"""

    def test_normalize_slug(self):
        self.assertEqual(normalize_slug('  Red-Shoe '), 'red-shoe')
        self.assertEqual(normalize_slug(None), '')

    def test_slug_from_name(self):
        self.assertEqual(slug_from_name('Red Shoe (XL)'), 'red-shoe-xl')
        self.assertEqual(slug_from_name('under_score  name'), 'under-score-name')
        self.assertEqual(len(slug_from_name('word ' * 50)), 99)

    def test_find_duplicate_slugs(self):
        self.assertEqual(find_duplicate_slugs(['a-b', 'c-d', 'A-B ', 'c-d', 'c-d']), ['a-b', 'c-d'])
        self.assertEqual(find_duplicate_slugs(['one', 'two']), [])

    def test_is_discount_valid(self):
        self.assertTrue(is_discount_valid(Decimal('10'), None))
        self.assertTrue(is_discount_valid(Decimal('10'), Decimal('9.99')))
        self.assertFalse(is_discount_valid(Decimal('10'), Decimal('10')))
        self.assertFalse(is_discount_valid(Decimal('10'), Decimal('12')))

    def test_database_rejects_discount_above_price(self):
        user = TestDataFactory.create_user()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                TestDataFactory.create_product(
                    created_by=user, price=Decimal('10.00'), discounted_price=Decimal('15.00')
                )


class ProductCreateTests(TestCase):
    """Test POST /api/v1/products/"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_single_product(self):
        payload = TestDataFactory.product_payload(slug='test-product')
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        body = response.json()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['message'], '1 product(s) created successfully')
        self.assertEqual(body['data']['slug'], 'test-product')
        self.assertEqual(body['data']['price'], 99.99)
        self.assertEqual(body['data']['created_by']['id'], self.user.id)
        self.assertEqual(len(body['data']['gallery_images']), 1)

        product = Product.objects.get(slug='test-product')
        self.assertEqual(product.created_by, self.user)
        self.assertEqual(product.discounted_price, Decimal('79.99'))

    def test_create_writes_audit_log(self):
        response = self.client.post(PRODUCTS_URL, TestDataFactory.product_payload(), format='json')
        log = AuditLog.objects.get(action='create', model_name='Product')
        self.assertEqual(log.object_id, str(response.json()['data']['id']))
        self.assertEqual(log.user, self.user)

    def test_create_bulk_products(self):
        payload = [
            TestDataFactory.product_payload(slug='bulk-one'),
            TestDataFactory.product_payload(slug='bulk-two', discounted_price=None),
        ]
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body['message'], '2 product(s) created successfully')
        self.assertEqual([item['slug'] for item in body['data']], ['bulk-one', 'bulk-two'])
        self.assertEqual(Product.objects.count(), 2)

    def test_bulk_duplicate_slugs_in_request(self):
        payload = [
            TestDataFactory.product_payload(slug='same-slug'),
            TestDataFactory.product_payload(slug='same-slug'),
        ]
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Duplicate slugs found in request')
        self.assertEqual(Product.objects.count(), 0)

    def test_bulk_existing_slug_rejects_whole_batch(self):
        TestDataFactory.create_product(created_by=self.user, slug='taken-slug')
        payload = [
            TestDataFactory.product_payload(slug='fresh-slug'),
            TestDataFactory.product_payload(slug='taken-slug'),
        ]
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Product(s) with slug(s) already exist: taken-slug')
        self.assertFalse(Product.objects.filter(slug='fresh-slug').exists())

    def test_single_existing_slug(self):
        TestDataFactory.create_product(created_by=self.user, slug='taken-slug')
        response = self.client.post(
            PRODUCTS_URL, TestDataFactory.product_payload(slug='taken-slug'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'fail')

    def test_empty_bulk_list(self):
        response = self.client.post(PRODUCTS_URL, [], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Request body must contain at least one product')

    def test_missing_slug_is_derived_from_name(self):
        payload = TestDataFactory.product_payload(name='Red Shoe (XL)')
        del payload['slug']
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['data']['slug'], 'red-shoe-xl')

    def test_invalid_slug_format(self):
        response = self.client.post(
            PRODUCTS_URL, TestDataFactory.product_payload(slug='Not A Slug'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body['field'], 'slug')
        self.assertEqual(body['message'], 'Slug must be lowercase with hyphens only (e.g., product-name)')

    def test_discount_must_be_below_price(self):
        payload = TestDataFactory.product_payload(price=50, discounted_price=50)
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body['field'], 'discounted_price')
        self.assertEqual(body['message'], 'Discounted price must be less than regular price')

    def test_negative_price(self):
        response = self.client.post(
            PRODUCTS_URL, TestDataFactory.product_payload(price=-1, discounted_price=None), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Price cannot be negative')

    def test_price_rounds_to_two_places(self):
        payload = TestDataFactory.product_payload(price='10.005', discounted_price=None)
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.get().price, Decimal('10.01'))

    def test_price_above_maximum(self):
        payload = TestDataFactory.product_payload(price='1000000.01', discounted_price=None)
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['field'], 'price')
        self.assertEqual(response.json()['message'], 'Price seems unreasonably high')

    def test_astronomical_price(self):
        payload = TestDataFactory.product_payload(price=1e30, discounted_price=None)
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Price seems unreasonably high')

    def test_astronomical_discounted_price(self):
        payload = TestDataFactory.product_payload(discounted_price='1e40')
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['field'], 'discounted_price')

    def test_missing_required_field(self):
        payload = TestDataFactory.product_payload()
        del payload['meta_title']
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Meta title is required')

    def test_invalid_gallery_url(self):
        payload = TestDataFactory.product_payload(gallery_images=[{'url': 'not-a-url'}])
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Gallery image URL must be a valid URI')

    def test_too_many_gallery_images(self):
        images = [{'url': f'https://example.com/{i}.jpg'} for i in range(11)]
        response = self.client.post(
            PRODUCTS_URL, TestDataFactory.product_payload(gallery_images=images), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Cannot have more than 10 gallery images')

    def test_description_is_sanitized(self):
        payload = TestDataFactory.product_payload(
            description='<p>Safe product description</p><script>alert("xss")</script>'
        )
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['data']['description'], '<p>Safe product description</p>')

    def test_description_that_sanitizes_to_nothing(self):
        payload = TestDataFactory.product_payload(description='<script>alert("xss")</script>')
        response = self.client.post(PRODUCTS_URL, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.json()['message'].startswith('Invalid description:'))

    def test_body_is_not_a_product(self):
        response = self.client.post(PRODUCTS_URL, '"just a string"', content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'fail')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.post(PRODUCTS_URL, TestDataFactory.product_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['code'], 'NO_AUTH_HEADER')


class ProductReadTests(TestCase):
    """Test GET /api/v1/products/ and /api/v1/products/<id>/"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

        self.shoe = TestDataFactory.create_product(
            created_by=self.user, name='Running Shoe', slug='running-shoe', price=Decimal('120.00'), images=2
        )
        self.shirt = TestDataFactory.create_product(
            created_by=self.other, name='Cotton Shirt', slug='cotton-shirt', price=Decimal('25.00')
        )
        self.hidden = TestDataFactory.create_product(
            created_by=self.user, name='Old Hat', slug='old-hat', price=Decimal('10.00'), is_active=False
        )

    def test_list_products(self):
        response = self.client.get(PRODUCTS_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['results'], 3)
        self.assertEqual(len(body['data']), 3)

    def test_list_is_not_cached(self):
        response = self.client.get(PRODUCTS_URL)
        self.assertEqual(response['Cache-Control'], 'no-cache, no-store, must-revalidate')
        self.assertEqual(response['Pragma'], 'no-cache')
        self.assertEqual(response['Expires'], '0')

    def test_list_newest_first(self):
        response = self.client.get(PRODUCTS_URL)
        slugs = [item['slug'] for item in response.json()['data']]
        self.assertEqual(slugs, ['old-hat', 'cotton-shirt', 'running-shoe'])

    def test_filter_search(self):
        response = self.client.get(PRODUCTS_URL, {'search': 'shoe'})
        self.assertEqual([item['slug'] for item in response.json()['data']], ['running-shoe'])

    def test_filter_active(self):
        response = self.client.get(PRODUCTS_URL, {'active': 'false'})
        self.assertEqual([item['slug'] for item in response.json()['data']], ['old-hat'])

    def test_filter_mine(self):
        response = self.client.get(PRODUCTS_URL, {'mine': 'true'})
        slugs = {item['slug'] for item in response.json()['data']}
        self.assertEqual(slugs, {'running-shoe', 'old-hat'})

    def test_filter_price_range(self):
        response = self.client.get(PRODUCTS_URL, {'min_price': '20', 'max_price': '100'})
        self.assertEqual([item['slug'] for item in response.json()['data']], ['cotton-shirt'])

    def test_get_product(self):
        response = self.client.get(detail_url(self.shoe.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(data['slug'], 'running-shoe')
        self.assertEqual(data['created_by']['email'], self.user.email)
        self.assertEqual(len(data['gallery_images']), 2)

    def test_get_product_owned_by_someone_else(self):
        response = self.client.get(detail_url(self.shirt.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_get_missing_product(self):
        response = self.client.get(detail_url(999999))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json(), {'status': 'fail', 'message': 'Product not found', 'code': 'not_found'})

    def test_get_malformed_id(self):
        response = self.client.get(detail_url('not-an-id'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Invalid product ID format')

    def test_get_non_ascii_digit_id(self):
        response = self.client.get(detail_url('²'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Invalid product ID format')


class ProductUpdateTests(TestCase):
    """Test PUT/PATCH /api/v1/products/<id>/"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.product = TestDataFactory.create_product(
            created_by=self.user, slug='editable-product', price=Decimal('100.00'),
            discounted_price=Decimal('80.00'), images=3,
        )

    def test_patch_updates_fields(self):
        response = self.client.patch(detail_url(self.product.id), {'name': 'Renamed Product'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['message'], 'Product updated successfully')
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, 'Renamed Product')
        self.assertEqual(self.product.slug, 'editable-product')
        self.assertEqual(self.product.gallery_images.count(), 3)

    def test_put_is_partial(self):
        response = self.client.put(detail_url(self.product.id), {'price': 150}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal('150.00'))
        self.assertEqual(self.product.discounted_price, Decimal('80.00'))

    def test_patch_keeps_is_active(self):
        self.product.is_active = False
        self.product.save()
        self.client.patch(detail_url(self.product.id), {'name': 'Still Hidden'}, format='json')
        self.product.refresh_from_db()
        self.assertFalse(self.product.is_active)

    def test_patch_replaces_gallery(self):
        images = [{'url': 'https://example.com/new.jpg', 'alt': 'New'}]
        response = self.client.patch(detail_url(self.product.id), {'gallery_images': images}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.json()['data']['gallery_images']), 1)
        self.assertEqual(ProductImage.objects.filter(product=self.product).count(), 1)

    def test_patch_sanitizes_description(self):
        response = self.client.patch(
            detail_url(self.product.id),
            {'description': '<p onmouseover="x()">Updated description</p>'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.description, '<p>Updated description</p>')

    def test_patch_writes_audit_log(self):
        self.client.patch(detail_url(self.product.id), {'price': 120}, format='json')
        log = AuditLog.objects.get(action='update')
        self.assertEqual(log.changes['price'], {'old': '100.00', 'new': '120.00'})

    def test_patch_empty_body(self):
        response = self.client.patch(detail_url(self.product.id), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'At least one field must be provided for update')

    def test_patch_unknown_fields_only(self):
        response = self.client.patch(detail_url(self.product.id), {'color': 'red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_missing_product(self):
        response = self.client.patch(detail_url(999999), {'name': 'Whatever'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_by_non_owner(self):
        other = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = other.patch(detail_url(self.product.id), {'name': 'Hijacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['message'], "You don't have permission to update this product")
        self.product.refresh_from_db()
        self.assertNotEqual(self.product.name, 'Hijacked')

    def test_patch_slug_conflict(self):
        TestDataFactory.create_product(created_by=self.user, slug='other-product')
        response = self.client.patch(detail_url(self.product.id), {'slug': 'other-product'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'A product with this slug already exists')

    def test_patch_same_slug_is_allowed(self):
        response = self.client.patch(detail_url(self.product.id), {'slug': 'editable-product'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_patch_price_below_stored_discount(self):
        response = self.client.patch(detail_url(self.product.id), {'price': 50}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message'], 'Discounted price must be less than regular price')

    def test_patch_clears_discount(self):
        response = self.client.patch(
            detail_url(self.product.id), {'price': 50, 'discounted_price': None}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.json()['data']['discounted_price'])
        self.assertEqual(response.json()['data']['effective_price'], 50.0)


class ProductDeleteTests(TestCase):
    """Test DELETE /api/v1/products/<id>/"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.product = TestDataFactory.create_product(created_by=self.user, images=2)

    def test_delete_product(self):
        response = self.client.delete(detail_url(self.product.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {
            'status': 'success', 'message': 'Product deleted successfully', 'data': None,
        })
        self.assertFalse(Product.objects.filter(pk=self.product.id).exists())
        self.assertFalse(ProductImage.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action='delete', object_id=str(self.product.id)).exists())

    def test_delete_by_non_owner(self):
        other = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = other.delete(detail_url(self.product.id))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['message'], "You don't have permission to delete this product")
        self.assertTrue(Product.objects.filter(pk=self.product.id).exists())

    def test_delete_missing_product(self):
        response = self.client.delete(detail_url(999999))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['message'], 'Product not found')


class ProductAdminTests(TestCase):

    def test_admin_save_sanitizes_description(self):
        user = TestDataFactory.create_user(is_staff=True, is_superuser=True)
        product = Product(
            meta_title='Admin product', name='Admin product', slug='admin-product',
            price=Decimal('10.00'), description='<p>From admin</p><script>bad()</script>',
            created_by=user,
        )
        request = RequestFactory().post('/admin/catalog/product/add/')
        request.user = user
        ProductAdmin(Product, AdminSite()).save_model(request, product, form=None, change=False)
        product.refresh_from_db()
        self.assertEqual(product.description, '<p>From admin</p>')


class SanitizeDescriptionsCommandTests(TestCase):
    """Test the sanitize_descriptions management command"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.dirty = TestDataFactory.create_product(
            created_by=self.user, description='<p>Imported text</p><script>bad()</script>'
        )
        self.clean = TestDataFactory.create_product(created_by=self.user, description='<p>Already clean</p>')

    def test_sanitizes_stored_descriptions(self):
        out = StringIO()
        call_command('sanitize_descriptions', stdout=out)
        self.dirty.refresh_from_db()
        self.clean.refresh_from_db()
        self.assertEqual(self.dirty.description, '<p>Imported text</p>')
        self.assertEqual(self.clean.description, '<p>Already clean</p>')
        self.assertIn('Updated 1 product(s)', out.getvalue())

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('sanitize_descriptions', '--dry-run', stdout=out)
        self.dirty.refresh_from_db()
        self.assertIn('<script>', self.dirty.description)
        self.assertIn('[DRY RUN]', out.getvalue())
