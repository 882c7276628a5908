import logging

from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.utils import create_audit_log
from .filters import ProductFilter
from .models import Product
from .serializers import PRODUCT_WRITE_FIELDS, ProductSerializer
from .validators import find_duplicate_slugs, normalize_slug

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}

AUDITED_FIELDS = ('meta_title', 'name', 'slug', 'price', 'discounted_price', 'is_active')


def product_queryset():
    return Product.objects.select_related('created_by').prefetch_related('gallery_images')


def get_product_or_404(pk):
    """Look up a product by id, rejecting ids that cannot be primary keys"""
    pk = str(pk)
    if not (pk.isascii() and pk.isdigit()):
        raise ValidationError('Invalid product ID format')
    try:
        return product_queryset().get(pk=int(pk))
    except Product.DoesNotExist:
        raise NotFound('Product not found')


def ensure_owner(request, product, action):
    if product.created_by_id != request.user.id:
        raise PermissionDenied(f"You don't have permission to {action} this product")


def audit_snapshot(product):
    return {
        field: str(value) if value is not None else None
        for field, value in ((f, getattr(product, f)) for f in AUDITED_FIELDS)
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create one or many products"""
    if request.method == 'GET':
        filterset = ProductFilter(request.query_params, queryset=product_queryset(), request=request)
        if not filterset.is_valid():
            raise ValidationError(filterset.errors)

        products = filterset.qs
        serializer = ProductSerializer(products, many=True)
        return Response({
            'status': 'success',
            'results': len(serializer.data),
            'data': serializer.data,
        }, headers=NO_CACHE_HEADERS)

    return create_products(request)


def create_products(request):
    payload = request.data
    is_bulk = isinstance(payload, list)
    if not is_bulk and not isinstance(payload, dict):
        raise ValidationError('Request body must be a product object or a list of products')
    if is_bulk and not payload:
        raise ValidationError('Request body must contain at least one product')

    serializer = ProductSerializer(data=payload, many=is_bulk)
    serializer.is_valid(raise_exception=True)

    items = serializer.validated_data if is_bulk else [serializer.validated_data]
    slugs = [normalize_slug(item['slug']) for item in items]

    if find_duplicate_slugs(slugs):
        raise ValidationError('Duplicate slugs found in request')

    existing = list(Product.objects.filter(slug__in=slugs).values_list('slug', flat=True))
    if existing:
        raise ValidationError(f"Product(s) with slug(s) already exist: {', '.join(existing)}")

    try:
        with transaction.atomic():
            created = serializer.save(created_by=request.user)
    except IntegrityError:
        logger.warning(f"Slug conflict while creating products: {slugs}")
        raise ValidationError('A product with this slug already exists.')

    products = created if is_bulk else [created]
    for product in products:
        create_audit_log(
            request=request,
            action='create',
            model_name='Product',
            object_id=product.id,
            object_name=product.name,
            changes=audit_snapshot(product),
        )
    logger.info(f"User {request.user.id} created {len(products)} product(s)")

    return Response({
        'status': 'success',
        'message': f'{len(products)} product(s) created successfully',
        'data': serializer.data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    if request.method == 'GET':
        product = get_product_or_404(pk)
        return Response({
            'status': 'success',
            'data': ProductSerializer(product).data,
        })

    if request.method in ('PUT', 'PATCH'):
        if not isinstance(request.data, dict) or not any(f in request.data for f in PRODUCT_WRITE_FIELDS):
            raise ValidationError('At least one field must be provided for update')

        product = get_product_or_404(pk)
        ensure_owner(request, product, 'update')

        old_data = audit_snapshot(product)
        serializer = ProductSerializer(product, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            with transaction.atomic():
                product = serializer.save()
        except IntegrityError:
            raise ValidationError('A product with this slug already exists')

        new_data = audit_snapshot(product)
        changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in old_data if old_data[k] != new_data[k]}
        if 'gallery_images' in serializer.validated_data:
            changes['gallery_images'] = {'new': len(serializer.validated_data['gallery_images'])}
        if changes:
            create_audit_log(
                request=request,
                action='update',
                model_name='Product',
                object_id=product.id,
                object_name=product.name,
                changes=changes,
            )

        product = get_product_or_404(product.pk)
        return Response({
            'status': 'success',
            'message': 'Product updated successfully',
            'data': ProductSerializer(product).data,
        })

    # DELETE
    product = get_product_or_404(pk)
    ensure_owner(request, product, 'delete')

    product_id = product.id
    product_name = product.name
    snapshot = audit_snapshot(product)
    product.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Product',
        object_id=product_id,
        object_name=product_name,
        changes=snapshot,
    )
    logger.info(f"User {request.user.id} deleted product {product_id}")

    return Response({
        'status': 'success',
        'message': 'Product deleted successfully',
        'data': None,
    })
