from django.urls import path
from .views import product_list_create, product_detail

urlpatterns = [
    # Product endpoints
    path('', product_list_create, name='product-list-create'),
    # Ids are matched as strings so malformed ids get a 400 instead of a 404
    path('<str:pk>/', product_detail, name='product-detail'),
]
