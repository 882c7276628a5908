"""
URL configuration for the product catalog admin API.

    /admin/             Django admin
    /health/            liveness probe
    /api/v1/users/      registration, login, token refresh, logout
    /api/v1/products/   product CRUD
"""
from django.contrib import admin
from django.urls import include, path, re_path
from backend.core.views import health, route_not_found

admin.site.site_header = "Product Catalog Admin"
admin.site.site_title = "Product Catalog Admin Portal"
admin.site.index_title = "Catalog administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health, name='health'),
    path('api/v1/users/', include('backend.core.urls')),
    path('api/v1/products/', include('backend.catalog.urls')),
    # Unmatched paths get the JSON 404 even when DEBUG is on
    re_path(r'^.*$', route_not_found),
]

handler404 = 'backend.core.views.route_not_found'
handler500 = 'backend.core.views.server_error'
