import backend.catalog.validators
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('meta_title', models.CharField(max_length=60, validators=[django.core.validators.MinLengthValidator(3, 'Meta title must be at least 3 characters')])),
                ('name', models.CharField(db_index=True, max_length=200, validators=[django.core.validators.MinLengthValidator(3, 'Product name must be at least 3 characters')])),
                ('slug', models.SlugField(error_messages={'unique': 'A product with this slug already exists.'}, max_length=100, unique=True, validators=[backend.catalog.validators.slug_format_validator, backend.catalog.validators.slug_length_validator])),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[backend.catalog.validators.price_min_validator, backend.catalog.validators.price_max_validator])),
                ('discounted_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[backend.catalog.validators.discounted_price_min_validator])),
                ('description', models.TextField()),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['created_by'], name='products_created_by_idx'),
                    models.Index(fields=['-created_at'], name='products_created_at_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('discounted_price__isnull', True), ('discounted_price__lt', models.F('price')), _connector='OR'), name='products_discount_below_price', violation_error_message='Discounted price must be less than the regular price'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('url', models.URLField(max_length=2048)),
                ('public_id', models.CharField(blank=True, default='', max_length=255)),
                ('alt', models.CharField(blank=True, default='', max_length=200)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='gallery_images', to='catalog.product')),
            ],
            options={
                'db_table': 'product_images',
                'ordering': ['position', 'id'],
            },
        ),
    ]
