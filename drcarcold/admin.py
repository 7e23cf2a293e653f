"""
Django admin configuration for DrCarCold models.

The JSON API is the primary back office; the Django admin gives operators
a fallback for catalogue and content editing plus crawler/publishing
actions.
"""

from django.contrib import admin
from django.db.models import Count
from django.utils.html import format_html

from drcarcold.models import (
    Banner,
    Category,
    CompanyInfo,
    Contact,
    ContactStatus,
    CrawlRun,
    News,
    NewsSource,
    Product,
    Setting,
    VehicleBrand,
    VehicleModel,
)
from drcarcold.tasks import crawl_news_source

BADGE = (
    '<span style="background-color: {}; color: white; '
    'padding: 2px 8px; border-radius: 4px;">{}</span>'
)


def _badge(flag: bool, on: str, off: str):
    return format_html(BADGE, "#28a745" if flag else "#6c757d", on if flag else off)


# ============================================================
# Catalogue
# ============================================================


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "name_en", "slug", "order", "product_count"]
    search_fields = ["name", "name_en", "slug"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["name"]

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_product_count=Count("products"))

    def product_count(self, obj):
        return obj._product_count
    product_count.short_description = "Products"
    product_count.admin_order_field = "_product_count"


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "price", "stock", "is_active_badge", "is_featured"]
    list_filter = ["is_active", "is_featured", "category"]
    search_fields = ["name", "name_en", "slug", "description"]
    readonly_fields = ["id", "created_at", "updated_at"]
    list_select_related = ["category"]

    fieldsets = (
        ("Identity", {
            "fields": ("id", "category", "name", "name_en", "slug"),
        }),
        ("Content", {
            "fields": ("description", "images", "features", "specifications"),
        }),
        ("Sales", {
            "fields": ("price", "stock", "is_active", "is_featured"),
        }),
        ("SEO", {
            "fields": ("seo_title", "seo_description", "seo_keywords"),
            "classes": ("collapse",),
        }),
        ("Metadata", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    actions = ["activate_products", "deactivate_products"]

    def is_active_badge(self, obj):
        """Display active status as colored badge."""
        return _badge(obj.is_active, "Active", "Inactive")
    is_active_badge.short_description = "Active"
    is_active_badge.admin_order_field = "is_active"

    @admin.action(description="Activate selected products")
    def activate_products(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f"Activated {count} product(s).")

    @admin.action(description="Deactivate selected products")
    def deactivate_products(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"Deactivated {count} product(s).")


# ============================================================
# News
# ============================================================


@admin.register(NewsSource)
class NewsSourceAdmin(admin.ModelAdmin):
    """
    Crawler sources with enable/disable and crawl-now actions.
    """

    list_display = ["name", "url", "enabled_badge", "crawl_interval", "max_articles_per_crawl", "last_crawl"]
    list_filter = ["enabled"]
    search_fields = ["name", "url"]
    readonly_fields = ["id", "last_crawl", "created_at", "updated_at"]
    ordering = ["name"]

    actions = ["trigger_crawl", "enable_sources", "disable_sources"]

    def enabled_badge(self, obj):
        return _badge(obj.enabled, "Enabled", "Disabled")
    enabled_badge.short_description = "Enabled"
    enabled_badge.admin_order_field = "enabled"

    @admin.action(description="Crawl now")
    def trigger_crawl(self, request, queryset):
        """Dispatch a crawl for each selected enabled source."""
        count = 0
        for source in queryset.filter(enabled=True):
            crawl_news_source.apply_async(args=[str(source.id)], queue="crawl")
            count += 1
        self.message_user(request, f"Triggered crawl for {count} source(s).")

    @admin.action(description="Enable selected sources")
    def enable_sources(self, request, queryset):
        count = queryset.update(enabled=True)
        self.message_user(request, f"Enabled {count} source(s).")

    @admin.action(description="Disable selected sources")
    def disable_sources(self, request, queryset):
        count = queryset.update(enabled=False)
        self.message_user(request, f"Disabled {count} source(s).")


@admin.register(News)
class NewsAdmin(admin.ModelAdmin):
    list_display = ["title", "origin", "published_badge", "published_at", "view_count", "source_name"]
    list_filter = ["is_published", "origin", "is_ai_rewritten"]
    search_fields = ["title", "slug", "content"]
    readonly_fields = ["id", "view_count", "content_hash", "reading_time", "created_at", "updated_at"]
    date_hierarchy = "created_at"

    fieldsets = (
        ("Article", {
            "fields": ("id", "title", "slug", "excerpt", "content", "cover_image", "author", "tags"),
        }),
        ("Publishing", {
            "fields": ("is_published", "published_at", "view_count"),
        }),
        ("Origin", {
            "fields": (
                "origin",
                "source",
                "source_url",
                "source_name",
                "is_ai_rewritten",
                "ai_provider",
                "content_hash",
                "reading_time",
            ),
            "classes": ("collapse",),
        }),
        ("SEO", {
            "fields": ("seo_title", "seo_description", "seo_keywords"),
            "classes": ("collapse",),
        }),
    )

    actions = ["publish_news", "unpublish_news"]

    def published_badge(self, obj):
        return _badge(obj.is_published, "Published", "Draft")
    published_badge.short_description = "Status"
    published_badge.admin_order_field = "is_published"

    @admin.action(description="Publish selected articles")
    def publish_news(self, request, queryset):
        count = 0
        for news in queryset.filter(is_published=False):
            news.publish()
            news.save(update_fields=["is_published", "published_at"])
            count += 1
        self.message_user(request, f"Published {count} article(s).")

    @admin.action(description="Unpublish selected articles")
    def unpublish_news(self, request, queryset):
        count = queryset.update(is_published=False, published_at=None)
        self.message_user(request, f"Unpublished {count} article(s).")


@admin.register(CrawlRun)
class CrawlRunAdmin(admin.ModelAdmin):
    """Read-only crawl history."""

    list_display = [
        "source",
        "status_badge",
        "articles_found",
        "articles_processed",
        "articles_published",
        "crawl_time",
        "created_at",
    ]
    list_filter = ["success", "source"]
    list_select_related = ["source"]
    readonly_fields = [f.name for f in CrawlRun._meta.fields]

    def status_badge(self, obj):
        color = "#28a745" if obj.success else "#dc3545"
        return format_html(BADGE, color, "OK" if obj.success else "Failed")
    status_badge.short_description = "Status"

    def has_add_permission(self, request):
        return False


# ============================================================
# Vehicles
# ============================================================


class VehicleModelInline(admin.TabularInline):
    model = VehicleModel
    extra = 0
    fields = ["model_name", "year", "engine_type", "refrigerant_type", "fill_amount", "oil_type", "oil_amount"]


@admin.register(VehicleBrand)
class VehicleBrandAdmin(admin.ModelAdmin):
    list_display = ["name", "name_en", "category", "order"]
    list_filter = ["category"]
    search_fields = ["name", "name_en"]
    inlines = [VehicleModelInline]


@admin.register(VehicleModel)
class VehicleModelAdmin(admin.ModelAdmin):
    list_display = ["brand", "model_name", "year", "engine_type", "refrigerant_type", "fill_amount", "data_source"]
    list_filter = ["refrigerant_type", "brand__category", "data_source"]
    search_fields = ["model_name", "model_name_en", "brand__name", "brand__name_en"]
    list_select_related = ["brand"]


# ============================================================
# Site content
# ============================================================


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ["title", "position", "media_type", "order", "is_active"]
    list_filter = ["position", "media_type", "is_active"]
    search_fields = ["title"]


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ["key", "short_value", "updated_at"]
    search_fields = ["key", "description"]

    def short_value(self, obj):
        if obj.key.endswith(("_api_key", "_bot_token")) and obj.value:
            return "********"
        return obj.value[:80]
    short_value.short_description = "Value"


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ["name", "email", "subject", "status", "priority", "read_badge", "created_at"]
    list_filter = ["status", "priority", "is_read", "customer_type"]
    search_fields = ["name", "email", "subject", "message", "company"]
    readonly_fields = ["id", "ip_address", "user_agent", "created_at", "updated_at"]

    actions = ["mark_read", "mark_replied"]

    def read_badge(self, obj):
        return _badge(obj.is_read, "Read", "New")
    read_badge.short_description = "Read"
    read_badge.admin_order_field = "is_read"

    @admin.action(description="Mark as read")
    def mark_read(self, request, queryset):
        count = queryset.update(is_read=True)
        self.message_user(request, f"Marked {count} contact(s) as read.")

    @admin.action(description="Mark as replied")
    def mark_replied(self, request, queryset):
        count = queryset.update(status=ContactStatus.REPLIED, is_read=True)
        self.message_user(request, f"Marked {count} contact(s) as replied.")


@admin.register(CompanyInfo)
class CompanyInfoAdmin(admin.ModelAdmin):
    list_display = ["company_name", "phone", "email"]

    def has_add_permission(self, request):
        return not CompanyInfo.objects.exists()
