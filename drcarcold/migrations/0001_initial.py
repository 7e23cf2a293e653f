import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


def _timestamps():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
        ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
    ]


def _seo_fields():
    return [
        ("seo_title", models.CharField(blank=True, max_length=200)),
        ("seo_description", models.TextField(blank=True)),
        ("seo_keywords", models.CharField(blank=True, max_length=500)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Category",
            fields=_timestamps() + _seo_fields() + [
                ("name", models.CharField(max_length=200)),
                ("name_en", models.CharField(blank=True, max_length=200)),
                ("slug", models.SlugField(allow_unicode=True, max_length=200, unique=True)),
                ("description", models.TextField(blank=True)),
                ("image", models.CharField(blank=True, max_length=500)),
                ("order", models.IntegerField(default=0)),
            ],
            options={
                "db_table": "categories",
                "ordering": ["name"],
                "verbose_name_plural": "categories",
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=_timestamps() + _seo_fields() + [
                ("name", models.CharField(max_length=200)),
                ("name_en", models.CharField(blank=True, max_length=200)),
                ("slug", models.SlugField(allow_unicode=True, max_length=200, unique=True)),
                ("description", models.TextField()),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12, validators=[django.core.validators.MinValueValidator(0)])),
                ("stock", models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ("images", models.JSONField(blank=True, default=list)),
                ("features", models.JSONField(blank=True, default=list)),
                ("specifications", models.JSONField(blank=True, default=dict)),
                ("is_active", models.BooleanField(default=True)),
                ("is_featured", models.BooleanField(default=False)),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="products", to="drcarcold.category")),
            ],
            options={
                "db_table": "products",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["is_active", "created_at"], name="products_is_acti_5e0f1c_idx"),
                    models.Index(fields=["category", "is_active"], name="products_categor_8a6b2d_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="NewsSource",
            fields=_timestamps() + [
                ("name", models.CharField(max_length=200)),
                ("url", models.URLField(max_length=500)),
                ("rss_url", models.URLField(blank=True, max_length=500)),
                ("enabled", models.BooleanField(default=True)),
                ("max_articles_per_crawl", models.IntegerField(default=5)),
                ("crawl_interval", models.IntegerField(default=60, help_text="Minutes between crawls")),
                ("selectors", models.JSONField(blank=True, default=dict)),
                ("last_crawl", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "news_sources",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["enabled", "last_crawl"], name="news_source_enabled_3c1d7e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="News",
            fields=_timestamps() + _seo_fields() + [
                ("title", models.CharField(max_length=300)),
                ("slug", models.SlugField(allow_unicode=True, max_length=200, unique=True)),
                ("content", models.TextField()),
                ("excerpt", models.CharField(blank=True, max_length=210)),
                ("cover_image", models.CharField(blank=True, max_length=500)),
                ("author", models.CharField(default="DrCarCold", max_length=100)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("origin", models.CharField(choices=[("manual", "Manual"), ("crawled", "Crawled"), ("seo", "SEO Generated")], default="manual", max_length=20)),
                ("is_published", models.BooleanField(default=False)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("view_count", models.IntegerField(default=0)),
                ("source_url", models.URLField(blank=True, max_length=1000)),
                ("source_name", models.CharField(blank=True, max_length=200)),
                ("content_hash", models.CharField(blank=True, db_index=True, max_length=64)),
                ("reading_time", models.IntegerField(default=1)),
                ("is_ai_rewritten", models.BooleanField(default=False)),
                ("ai_provider", models.CharField(blank=True, max_length=50)),
                ("source", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="articles", to="drcarcold.newssource")),
            ],
            options={
                "db_table": "news",
                "ordering": ["-published_at", "-created_at"],
                "verbose_name_plural": "news",
                "indexes": [
                    models.Index(fields=["is_published", "published_at"], name="news_is_publ_0b7c4a_idx"),
                    models.Index(fields=["source_url"], name="news_source__9d2e11_idx"),
                    models.Index(fields=["origin"], name="news_origin_4f6a90_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CrawlRun",
            fields=_timestamps() + [
                ("success", models.BooleanField(default=False)),
                ("articles_found", models.IntegerField(default=0)),
                ("articles_processed", models.IntegerField(default=0)),
                ("articles_published", models.IntegerField(default=0)),
                ("errors", models.JSONField(blank=True, default=list)),
                ("crawl_time", models.FloatField(default=0.0, help_text="Seconds")),
                ("source", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="crawl_runs", to="drcarcold.newssource")),
            ],
            options={
                "db_table": "crawl_runs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["source", "created_at"], name="crawl_runs_source__7e3b55_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VehicleBrand",
            fields=_timestamps() + [
                ("name", models.CharField(max_length=100)),
                ("name_en", models.CharField(blank=True, max_length=100)),
                ("category", models.CharField(choices=[("regular", "Regular"), ("truck", "Truck"), ("malaysia", "Malaysia"), ("luxury", "Luxury"), ("commercial", "Commercial")], default="regular", max_length=20)),
                ("logo_url", models.CharField(blank=True, max_length=500)),
                ("order", models.IntegerField(default=0)),
            ],
            options={
                "db_table": "vehicle_brands",
                "ordering": ["order", "name"],
                "indexes": [
                    models.Index(fields=["category"], name="vehicle_bra_categor_2a8f31_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VehicleModel",
            fields=_timestamps() + [
                ("model_name", models.CharField(max_length=200)),
                ("model_name_en", models.CharField(blank=True, max_length=200)),
                ("year", models.CharField(blank=True, max_length=50)),
                ("engine_type", models.CharField(blank=True, max_length=200)),
                ("engine_type_en", models.CharField(blank=True, max_length=200)),
                ("refrigerant_type", models.CharField(max_length=50)),
                ("fill_amount", models.CharField(max_length=50)),
                ("oil_type", models.CharField(blank=True, max_length=50)),
                ("oil_amount", models.CharField(blank=True, max_length=50)),
                ("notes", models.TextField(blank=True)),
                ("notes_en", models.TextField(blank=True)),
                ("data_source", models.CharField(default="manual", max_length=50)),
                ("brand", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="models", to="drcarcold.vehiclebrand")),
            ],
            options={
                "db_table": "vehicle_models",
                "ordering": ["brand__name", "model_name", "-year"],
                "indexes": [
                    models.Index(fields=["brand", "model_name"], name="vehicle_mod_brand_i_6c0d9e_idx"),
                    models.Index(fields=["refrigerant_type"], name="vehicle_mod_refrige_1b4e72_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Banner",
            fields=_timestamps() + [
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("image", models.CharField(max_length=500)),
                ("thumbnail", models.CharField(blank=True, max_length=500)),
                ("link", models.CharField(blank=True, max_length=500)),
                ("position", models.CharField(default="homepage", max_length=50)),
                ("order", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("media_type", models.CharField(choices=[("image", "Image"), ("video", "Video"), ("gif", "GIF")], default="image", max_length=10)),
            ],
            options={
                "db_table": "banners",
                "ordering": ["order", "-created_at"],
                "indexes": [
                    models.Index(fields=["position", "is_active"], name="banners_positio_8e2c47_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Setting",
            fields=_timestamps() + [
                ("key", models.CharField(max_length=200, unique=True)),
                ("value", models.TextField(blank=True)),
                ("description", models.CharField(blank=True, max_length=500)),
            ],
            options={
                "db_table": "settings",
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=_timestamps() + [
                ("name", models.CharField(max_length=100)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, max_length=50)),
                ("company", models.CharField(blank=True, max_length=200)),
                ("subject", models.CharField(max_length=200)),
                ("message", models.TextField()),
                ("customer_type", models.CharField(blank=True, max_length=50)),
                ("interested_products", models.CharField(blank=True, max_length=500)),
                ("source", models.CharField(default="website", max_length=50)),
                ("status", models.CharField(choices=[("new", "New"), ("in_progress", "In Progress"), ("replied", "Replied"), ("closed", "Closed")], default="new", max_length=20)),
                ("priority", models.PositiveSmallIntegerField(choices=[(1, "Low"), (2, "Normal"), (3, "High"), (4, "Urgent")], default=2)),
                ("is_read", models.BooleanField(default=False)),
                ("admin_notes", models.TextField(blank=True)),
                ("ip_address", models.CharField(blank=True, max_length=100)),
                ("user_agent", models.CharField(blank=True, max_length=500)),
            ],
            options={
                "db_table": "contacts",
                "ordering": ["-priority", "-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="contacts_status_5a1f0b_idx"),
                    models.Index(fields=["is_read"], name="contacts_is_read_c3d8e4_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CompanyInfo",
            fields=_timestamps() + [
                ("company_name", models.CharField(max_length=200)),
                ("company_name_en", models.CharField(blank=True, max_length=200)),
                ("phone", models.CharField(max_length=50)),
                ("fax", models.CharField(blank=True, max_length=50)),
                ("email", models.EmailField(max_length=254)),
                ("address", models.CharField(max_length=300)),
                ("address_en", models.CharField(blank=True, max_length=300)),
                ("business_hours", models.CharField(max_length=200)),
                ("business_hours_en", models.CharField(blank=True, max_length=200)),
                ("description", models.TextField(blank=True)),
                ("description_en", models.TextField(blank=True)),
            ],
            options={
                "db_table": "company_info",
                "verbose_name_plural": "company info",
            },
        ),
    ]
