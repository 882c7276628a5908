from django.contrib import admin
from .models import Product, ProductImage
from .sanitizer import sanitize_rich_text


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0
    fields = ['position', 'url', 'public_id', 'alt']
    ordering = ['position']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'price', 'discounted_price', 'is_active', 'created_by', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'slug', 'meta_title', 'created_by__email']
    prepopulated_fields = {'slug': ('name',)}
    readonly_fields = ['created_at', 'updated_at']
    list_select_related = ['created_by']
    ordering = ['-created_at']
    inlines = [ProductImageInline]

    def save_model(self, request, obj, form, change):
        obj.description = sanitize_rich_text(obj.description)
        super().save_model(request, obj, form, change)
