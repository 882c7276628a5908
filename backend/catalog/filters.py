import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Query-string filters for the product list"""

    # Case-insensitive match on name or description
    search = django_filters.CharFilter(method='filter_search', label='Search')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    mine = django_filters.CharFilter(method='filter_mine', label='Created by me')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'active', 'mine', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name or the description"""
        if not value or not value.strip():
            return queryset

        for word in value.split():
            queryset = queryset.filter(Q(name__icontains=word) | Q(description__icontains=word))
        return queryset

    def filter_active(self, queryset, name, value):
        """Filter by active status (handles string 'true'/'false')"""
        if value is None or value == '':
            return queryset
        value = value.strip().lower()
        if value in ('true', '1', 'yes'):
            return queryset.filter(is_active=True)
        if value in ('false', '0', 'no'):
            return queryset.filter(is_active=False)
        return queryset

    def filter_mine(self, queryset, name, value):
        if not value or value.strip().lower() not in ('true', '1', 'yes'):
            return queryset
        user = getattr(self.request, 'user', None)
        if user is None or not user.is_authenticated:
            return queryset.none()
        return queryset.filter(created_by=user)
