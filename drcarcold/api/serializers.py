"""
DRF serializers for the DrCarCold API.
"""

import re

from django.db import transaction
from django.db.models import Q
from rest_framework import serializers

from drcarcold.models import (
    Banner,
    Category,
    CompanyInfo,
    Contact,
    MediaType,
    News,
    NewsSource,
    Product,
    VehicleBrand,
    VehicleCategory,
    VehicleModel,
)
from drcarcold.utils.text import slugify_title, unique_slug


def _resolve_slug(serializer, attrs, source_field):
    """Explicit slug or one derived from `source_field`; must be unique."""
    model = serializer.Meta.model
    raw = attrs.get('slug') or attrs.get(source_field)
    if not raw and serializer.instance is not None:
        if 'slug' not in attrs:
            return attrs
        # Blank slug on update: rebuild it from the stored name/title
        raw = getattr(serializer.instance, source_field, '')
    slug = slugify_title(raw or '', max_length=200)
    if not slug:
        raise serializers.ValidationError({'slug': 'Could not derive a slug; provide one explicitly.'})

    existing = model.objects.filter(slug=slug)
    if serializer.instance is not None:
        existing = existing.exclude(pk=serializer.instance.pk)
    if existing.exists():
        raise serializers.ValidationError({'slug': f'Slug "{slug}" is already in use.'})
    attrs['slug'] = slug
    return attrs


class StringListField(serializers.ListField):
    child = serializers.CharField(allow_blank=True)


# ============================================================
# Catalogue
# ============================================================


class CategorySerializer(serializers.ModelSerializer):
    slug = serializers.CharField(max_length=200, required=False, allow_blank=True)
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = [
            'id', 'name', 'name_en', 'slug', 'description', 'image', 'order',
            'seo_title', 'seo_description', 'seo_keywords',
            'product_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        if self.instance is None or 'slug' in attrs:
            return _resolve_slug(self, attrs, 'name')
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if data.get('product_count') is None:
            data['product_count'] = instance.products.count()
        return data


class CategorySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'name_en', 'slug']


class ProductSerializer(serializers.ModelSerializer):
    slug = serializers.CharField(max_length=200, required=False, allow_blank=True)
    category = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all())
    category_detail = CategorySummarySerializer(source='category', read_only=True)
    images = StringListField(required=False)
    features = StringListField(required=False)
    specifications = serializers.DictField(required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    stock = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = Product
        fields = [
            'id', 'category', 'category_detail', 'name', 'name_en', 'slug',
            'description', 'price', 'stock', 'images', 'features',
            'specifications', 'is_active', 'is_featured',
            'seo_title', 'seo_description', 'seo_keywords',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        if self.instance is None or 'slug' in attrs:
            return _resolve_slug(self, attrs, 'name')
        return attrs


# ============================================================
# News
# ============================================================


class NewsListSerializer(serializers.ModelSerializer):
    source_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = News
        fields = [
            'id', 'title', 'slug', 'excerpt', 'cover_image', 'author', 'tags',
            'origin', 'is_published', 'published_at', 'view_count',
            'reading_time', 'source_id', 'source_name', 'is_ai_rewritten',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class NewsSerializer(serializers.ModelSerializer):
    slug = serializers.CharField(max_length=200, required=False, allow_blank=True)
    tags = StringListField(required=False)
    source = serializers.PrimaryKeyRelatedField(
        queryset=NewsSource.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = News
        fields = [
            'id', 'title', 'slug', 'content', 'excerpt', 'cover_image', 'author',
            'tags', 'origin', 'is_published', 'published_at', 'view_count',
            'source', 'source_url', 'source_name', 'content_hash', 'reading_time',
            'is_ai_rewritten', 'ai_provider',
            'seo_title', 'seo_description', 'seo_keywords',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'published_at', 'view_count', 'content_hash', 'reading_time',
            'created_at', 'updated_at',
        ]

    def validate(self, attrs):
        slug = attrs.get('slug')
        if slug:
            return _resolve_slug(self, attrs, 'title')
        attrs.pop('slug', None)
        if self.instance is None:
            attrs['slug'] = unique_slug(News, attrs.get('title', ''))
        return attrs


class NewsSourceSerializer(serializers.ModelSerializer):
    selectors = serializers.DictField(required=False)
    max_articles_per_crawl = serializers.IntegerField(min_value=1, max_value=50, required=False)
    crawl_interval = serializers.IntegerField(min_value=1, required=False)
    article_count = serializers.SerializerMethodField()

    class Meta:
        model = NewsSource
        fields = [
            'id', 'name', 'url', 'rss_url', 'enabled', 'max_articles_per_crawl',
            'crawl_interval', 'selectors', 'last_crawl', 'article_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'last_crawl', 'created_at', 'updated_at']

    def validate_selectors(self, value):
        errors = {}
        for key in ('article_patterns', 'exclude_patterns'):
            patterns = value.get(key)
            if patterns is None:
                continue
            if not isinstance(patterns, list):
                errors[key] = 'Must be a list of regular expressions.'
                continue
            for pattern in patterns:
                if not isinstance(pattern, str):
                    errors[key] = 'Must be a list of regular expressions.'
                    break
                try:
                    re.compile(pattern)
                except re.error as e:
                    errors[key] = f'Invalid regular expression "{pattern}": {e}'
                    break
        if errors:
            raise serializers.ValidationError(errors)
        return value

    def get_article_count(self, obj) -> int:
        return obj.articles.count()


# ============================================================
# Vehicles
# ============================================================


class VehicleBrandSerializer(serializers.ModelSerializer):
    model_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = VehicleBrand
        fields = [
            'id', 'name', 'name_en', 'category', 'logo_url', 'order',
            'model_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if data.get('model_count') is None:
            data['model_count'] = instance.models.count()
        return data


class VehicleModelSerializer(serializers.ModelSerializer):
    brand = serializers.PrimaryKeyRelatedField(queryset=VehicleBrand.objects.all())
    brand_name = serializers.CharField(source='brand.name', read_only=True)
    brand_name_en = serializers.CharField(source='brand.name_en', read_only=True)

    class Meta:
        model = VehicleModel
        fields = [
            'id', 'brand', 'brand_name', 'brand_name_en', 'model_name',
            'model_name_en', 'year', 'engine_type', 'engine_type_en',
            'refrigerant_type', 'fill_amount', 'oil_type', 'oil_amount',
            'notes', 'notes_en', 'data_source', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class VehicleSerializer(serializers.ModelSerializer):
    """
    Flat vehicle record: a VehicleModel with its brand inlined.

    Writes accept either `brand_id` or `brand_name`; an unknown brand name
    creates a regular brand.
    """

    brand_id = serializers.PrimaryKeyRelatedField(
        source='brand', queryset=VehicleBrand.objects.all(), required=False
    )
    brand_name = serializers.CharField(max_length=100, write_only=True, required=False)
    brand = serializers.CharField(source='brand.name', read_only=True)
    brand_en = serializers.CharField(source='brand.name_en', read_only=True)
    category = serializers.CharField(source='brand.category', read_only=True)

    class Meta:
        model = VehicleModel
        fields = [
            'id', 'brand', 'brand_en', 'brand_id', 'brand_name', 'category',
            'model_name', 'model_name_en', 'year', 'engine_type', 'engine_type_en',
            'refrigerant_type', 'fill_amount', 'oil_type', 'oil_amount',
            'notes', 'notes_en', 'data_source', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        brand_name = (attrs.get('brand_name', '') or '').strip()
        attrs['brand_name'] = brand_name
        if self.instance is None and 'brand' not in attrs and not brand_name:
            raise serializers.ValidationError({'brand_id': 'brand_id or brand_name is required.'})
        return attrs

    def _resolve_brand(self, validated_data):
        """Find the named brand, creating a regular one when unknown."""
        brand_name = validated_data.pop('brand_name', '')
        if 'brand' in validated_data or not brand_name:
            return validated_data
        brand = VehicleBrand.objects.filter(Q(name=brand_name) | Q(name_en=brand_name)).first()
        if brand is None:
            brand = VehicleBrand.objects.create(
                name=brand_name, name_en=brand_name, category=VehicleCategory.REGULAR
            )
        validated_data['brand'] = brand
        return validated_data

    def create(self, validated_data):
        with transaction.atomic():
            return super().create(self._resolve_brand(validated_data))

    def update(self, instance, validated_data):
        with transaction.atomic():
            return super().update(instance, self._resolve_brand(validated_data))


# ============================================================
# Site content
# ============================================================


class BannerSerializer(serializers.ModelSerializer):
    media_type = serializers.ChoiceField(choices=MediaType.choices, required=False)

    class Meta:
        model = Banner
        fields = [
            'id', 'title', 'description', 'image', 'thumbnail', 'link',
            'position', 'order', 'is_active', 'media_type',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        if 'media_type' not in attrs and 'image' in attrs:
            attrs['media_type'] = Banner.detect_media_type(attrs['image'])
        return attrs


class CompanyInfoSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompanyInfo
        fields = [
            'id', 'company_name', 'company_name_en', 'phone', 'fax', 'email',
            'address', 'address_en', 'business_hours', 'business_hours_en',
            'description', 'description_en', 'updated_at',
        ]
        read_only_fields = ['id', 'updated_at']


class ContactCreateSerializer(serializers.ModelSerializer):
    """Public contact form."""

    name = serializers.CharField(min_length=1, max_length=100)
    subject = serializers.CharField(min_length=1, max_length=200)
    message = serializers.CharField(min_length=1, max_length=5000)

    class Meta:
        model = Contact
        fields = [
            'name', 'email', 'phone', 'company', 'subject', 'message',
            'customer_type', 'interested_products', 'source',
        ]


class ContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contact
        fields = [
            'id', 'name', 'email', 'phone', 'company', 'subject', 'message',
            'customer_type', 'interested_products', 'source', 'status',
            'priority', 'is_read', 'admin_notes', 'ip_address', 'user_agent',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'name', 'email', 'phone', 'company', 'subject', 'message',
            'customer_type', 'interested_products', 'source', 'ip_address',
            'user_agent', 'created_at', 'updated_at',
        ]


# ============================================================
# Auth
# ============================================================


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, trim_whitespace=False)


class UserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    is_staff = serializers.BooleanField()
