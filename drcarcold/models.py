"""
Django models for the DrCarCold site.

Models: Category, Product, NewsSource, News, CrawlRun, VehicleBrand,
        VehicleModel, Banner, Setting, Contact, CompanyInfo

Catalogue and content records are edited through the admin back office and
the JSON API; NewsSource/CrawlRun back the automated news crawler.
"""

import hashlib
import math
import uuid
from datetime import timedelta

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class VehicleCategory(models.TextChoices):
    """Market segment of a vehicle brand."""

    REGULAR = "regular", "Regular"
    TRUCK = "truck", "Truck"
    MALAYSIA = "malaysia", "Malaysia"
    LUXURY = "luxury", "Luxury"
    COMMERCIAL = "commercial", "Commercial"


class NewsOrigin(models.TextChoices):
    """How a news article entered the site."""

    MANUAL = "manual", "Manual"
    CRAWLED = "crawled", "Crawled"
    SEO = "seo", "SEO Generated"


class MediaType(models.TextChoices):
    """Media kinds accepted for banners and uploads."""

    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    GIF = "gif", "GIF"


class ContactStatus(models.TextChoices):
    """Processing status of a contact form submission."""

    NEW = "new", "New"
    IN_PROGRESS = "in_progress", "In Progress"
    REPLIED = "replied", "Replied"
    CLOSED = "closed", "Closed"


class ContactPriority(models.IntegerChoices):
    """Priority of a contact form submission (higher sorts first)."""

    LOW = 1, "Low"
    NORMAL = 2, "Normal"
    HIGH = 3, "High"
    URGENT = 4, "Urgent"


class TimestampedModel(models.Model):
    """UUID primary key plus created/updated timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.updated_at = timezone.now()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


class SEOFieldsMixin(models.Model):
    seo_title = models.CharField(max_length=200, blank=True)
    seo_description = models.TextField(blank=True)
    seo_keywords = models.CharField(max_length=500, blank=True)

    class Meta:
        abstract = True


# ============================================================
# Catalogue
# ============================================================


class Category(TimestampedModel, SEOFieldsMixin):
    """Product category shown on the storefront."""

    name = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=500, blank=True)
    order = models.IntegerField(default=0)

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class Product(TimestampedModel, SEOFieldsMixin):
    """A product sold by the supplier (machines, refrigerant, tools...)."""

    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name="products"
    )
    name = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    description = models.TextField()
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
    )
    stock = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    images = models.JSONField(default=list, blank=True)
    features = models.JSONField(default=list, blank=True)
    specifications = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)

    class Meta:
        db_table = "products"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "created_at"], name="products_is_acti_5e0f1c_idx"),
            models.Index(fields=["category", "is_active"], name="products_categor_8a6b2d_idx"),
        ]

    def __str__(self):
        return self.name


# ============================================================
# News
# ============================================================


class NewsSource(TimestampedModel):
    """
    A website the news crawler pulls automotive articles from.

    `selectors` may hold `article_links` (CSS selectors for listing links),
    `title`/`content` (CSS selectors on article pages) and
    `article_patterns`/`exclude_patterns` (regexes applied to link URLs).
    """

    name = models.CharField(max_length=200)
    url = models.URLField(max_length=500)
    rss_url = models.URLField(max_length=500, blank=True)
    enabled = models.BooleanField(default=True)
    max_articles_per_crawl = models.IntegerField(default=5)
    crawl_interval = models.IntegerField(
        default=60, help_text="Minutes between crawls"
    )
    selectors = models.JSONField(default=dict, blank=True)
    last_crawl = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "news_sources"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["enabled", "last_crawl"], name="news_source_enabled_3c1d7e_idx"),
        ]

    def __str__(self):
        return self.name

    def is_due_for_crawl(self, min_interval: int = 0) -> bool:
        """Check whether the source should be crawled now."""
        if not self.enabled:
            return False
        if self.last_crawl is None:
            return True
        interval = max(self.crawl_interval, min_interval)
        return timezone.now() >= self.last_crawl + timedelta(minutes=interval)

    def mark_crawled(self):
        self.last_crawl = timezone.now()
        self.save(update_fields=["last_crawl"])


class News(TimestampedModel, SEOFieldsMixin):
    """A news/blog article, written by hand, crawled or AI generated."""

    title = models.CharField(max_length=300)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    content = models.TextField()
    excerpt = models.CharField(max_length=210, blank=True)
    cover_image = models.CharField(max_length=500, blank=True)
    author = models.CharField(max_length=100, default="DrCarCold")
    tags = models.JSONField(default=list, blank=True)
    origin = models.CharField(
        max_length=20, choices=NewsOrigin.choices, default=NewsOrigin.MANUAL
    )

    is_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    view_count = models.IntegerField(default=0)

    # Crawled articles
    source = models.ForeignKey(
        NewsSource,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="articles",
    )
    source_url = models.URLField(max_length=1000, blank=True)
    source_name = models.CharField(max_length=200, blank=True)
    content_hash = models.CharField(max_length=64, blank=True, db_index=True)
    reading_time = models.IntegerField(default=1)
    is_ai_rewritten = models.BooleanField(default=False)
    ai_provider = models.CharField(max_length=50, blank=True)

    class Meta:
        db_table = "news"
        ordering = ["-published_at", "-created_at"]
        verbose_name_plural = "news"
        indexes = [
            models.Index(fields=["is_published", "published_at"], name="news_is_publ_0b7c4a_idx"),
            models.Index(fields=["source_url"], name="news_source__9d2e11_idx"),
            models.Index(fields=["origin"], name="news_origin_4f6a90_idx"),
        ]

    def __str__(self):
        return self.title

    @staticmethod
    def compute_content_hash(content: str) -> str:
        """SHA-256 of whitespace-normalised content."""
        normalized = " ".join((content or "").split())
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    @staticmethod
    def compute_reading_time(content: str) -> int:
        """Minutes to read at roughly 300 characters per minute."""
        return max(1, math.ceil(len(content or "") / 300))

    @staticmethod
    def build_excerpt(content: str, length: int = 200) -> str:
        text = " ".join((content or "").split())
        if len(text) <= length:
            return text
        return text[:length] + "..."

    def publish(self, when=None):
        self.is_published = True
        if self.published_at is None:
            self.published_at = when or timezone.now()

    def unpublish(self):
        self.is_published = False
        self.published_at = None


class CrawlRun(TimestampedModel):
    """Outcome of crawling one news source once."""

    source = models.ForeignKey(
        NewsSource, on_delete=models.CASCADE, related_name="crawl_runs"
    )
    success = models.BooleanField(default=False)
    articles_found = models.IntegerField(default=0)
    articles_processed = models.IntegerField(default=0)
    articles_published = models.IntegerField(default=0)
    errors = models.JSONField(default=list, blank=True)
    crawl_time = models.FloatField(default=0.0, help_text="Seconds")

    class Meta:
        db_table = "crawl_runs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["source", "created_at"], name="crawl_runs_source__7e3b55_idx"),
        ]

    def __str__(self):
        state = "ok" if self.success else "failed"
        return f"{self.source.name} @ {self.created_at:%Y-%m-%d %H:%M} ({state})"


# ============================================================
# Vehicles
# ============================================================


class VehicleBrand(TimestampedModel):
    name = models.CharField(max_length=100)
    name_en = models.CharField(max_length=100, blank=True)
    category = models.CharField(
        max_length=20,
        choices=VehicleCategory.choices,
        default=VehicleCategory.REGULAR,
    )
    logo_url = models.CharField(max_length=500, blank=True)
    order = models.IntegerField(default=0)

    class Meta:
        db_table = "vehicle_brands"
        ordering = ["order", "name"]
        indexes = [
            models.Index(fields=["category"], name="vehicle_bra_categor_2a8f31_idx"),
        ]

    def __str__(self):
        if self.name_en and self.name_en != self.name:
            return f"{self.name} ({self.name_en})"
        return self.name


class VehicleModel(TimestampedModel):
    """Refrigerant and compressor oil data for one vehicle model/year."""

    brand = models.ForeignKey(
        VehicleBrand, on_delete=models.CASCADE, related_name="models"
    )
    model_name = models.CharField(max_length=200)
    model_name_en = models.CharField(max_length=200, blank=True)
    year = models.CharField(max_length=50, blank=True)
    engine_type = models.CharField(max_length=200, blank=True)
    engine_type_en = models.CharField(max_length=200, blank=True)
    refrigerant_type = models.CharField(max_length=50)
    fill_amount = models.CharField(max_length=50)
    oil_type = models.CharField(max_length=50, blank=True)
    oil_amount = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    notes_en = models.TextField(blank=True)
    data_source = models.CharField(max_length=50, default="manual")

    class Meta:
        db_table = "vehicle_models"
        ordering = ["brand__name", "model_name", "-year"]
        indexes = [
            models.Index(fields=["brand", "model_name"], name="vehicle_mod_brand_i_6c0d9e_idx"),
            models.Index(fields=["refrigerant_type"], name="vehicle_mod_refrige_1b4e72_idx"),
        ]

    def __str__(self):
        year = f" {self.year}" if self.year else ""
        return f"{self.brand.name} {self.model_name}{year}"


# ============================================================
# Site content
# ============================================================


class Banner(TimestampedModel):
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=500)
    thumbnail = models.CharField(max_length=500, blank=True)
    link = models.CharField(max_length=500, blank=True)
    position = models.CharField(max_length=50, default="homepage")
    order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    media_type = models.CharField(
        max_length=10, choices=MediaType.choices, default=MediaType.IMAGE
    )

    class Meta:
        db_table = "banners"
        ordering = ["order", "-created_at"]
        indexes = [
            models.Index(fields=["position", "is_active"], name="banners_positio_8e2c47_idx"),
        ]

    def __str__(self):
        return self.title

    @staticmethod
    def detect_media_type(path: str) -> str:
        """Guess the media type from a file path or URL."""
        lowered = (path or "").lower()
        if any(ext in lowered for ext in (".mp4", ".webm", ".ogg")):
            return MediaType.VIDEO
        if ".gif" in lowered:
            return MediaType.GIF
        return MediaType.IMAGE


class Setting(TimestampedModel):
    """
    Key/value runtime configuration.

    Values are stored as strings; see services.settings_store for typed
    access and caching.
    """

    key = models.CharField(max_length=200, unique=True)
    value = models.TextField(blank=True)
    description = models.CharField(max_length=500, blank=True)

    class Meta:
        db_table = "settings"
        ordering = ["key"]

    def __str__(self):
        return self.key


class Contact(TimestampedModel):
    """A contact form submission from the public site."""

    name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True)
    company = models.CharField(max_length=200, blank=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    customer_type = models.CharField(max_length=50, blank=True)
    interested_products = models.CharField(max_length=500, blank=True)
    source = models.CharField(max_length=50, default="website")

    status = models.CharField(
        max_length=20, choices=ContactStatus.choices, default=ContactStatus.NEW
    )
    priority = models.PositiveSmallIntegerField(
        choices=ContactPriority.choices, default=ContactPriority.NORMAL
    )
    is_read = models.BooleanField(default=False)
    admin_notes = models.TextField(blank=True)

    ip_address = models.CharField(max_length=100, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)

    class Meta:
        db_table = "contacts"
        ordering = ["-priority", "-created_at"]
        indexes = [
            models.Index(fields=["status"], name="contacts_status_5a1f0b_idx"),
            models.Index(fields=["is_read"], name="contacts_is_read_c3d8e4_idx"),
        ]

    def __str__(self):
        return f"{self.name}: {self.subject}"


class CompanyInfo(TimestampedModel):
    """Company contact details; a single row is kept."""

    DEFAULTS = {
        "company_name": "車冷博士",
        "company_name_en": "Dr. Car Cold",
        "phone": "04-26301915",
        "fax": "04-26301510",
        "email": "hongshun.TW@gmail.com",
        "address": "台中市龍井區忠和里海尾路278巷33弄8號",
        "business_hours": "週一至週五 09:30-17:30",
        "business_hours_en": "Mon-Fri 09:30-17:30",
    }

    company_name = models.CharField(max_length=200)
    company_name_en = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=50)
    fax = models.CharField(max_length=50, blank=True)
    email = models.EmailField()
    address = models.CharField(max_length=300)
    address_en = models.CharField(max_length=300, blank=True)
    business_hours = models.CharField(max_length=200)
    business_hours_en = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_en = models.TextField(blank=True)

    class Meta:
        db_table = "company_info"
        verbose_name_plural = "company info"

    def __str__(self):
        return self.company_name

    @classmethod
    def load(cls) -> "CompanyInfo":
        """Return the company record, creating it with defaults if missing."""
        info = cls.objects.order_by("created_at").first()
        if info is None:
            info = cls.objects.create(**cls.DEFAULTS)
        return info
