"""
URL configuration for the DrCarCold JSON API (mounted at /api/).

Public reads:
- products, categories, news, vehicles, vehicle brands/models,
  refrigerant lookup, banners, company info, contact form
Admin (staff, auth-token cookie):
- writes on the above, news sources, settings, contacts, uploads,
  auto crawler, scheduled publisher, smart schedule, SEO generator
"""

from django.urls import path

from drcarcold.api import auth, automation, catalog, news, site, vehicles

app_name = 'drcarcold_api'

urlpatterns = [
    # Auth
    path('auth/login/', auth.login, name='login'),
    path('auth/logout/', auth.logout, name='logout'),
    path('auth/me/', auth.me, name='me'),

    # Catalogue
    path('products/', catalog.product_list, name='product-list'),
    path('products/<uuid:pk>/', catalog.product_detail, name='product-detail'),
    path('categories/', catalog.category_list, name='category-list'),
    path('categories/<uuid:pk>/', catalog.category_detail, name='category-detail'),

    # News
    path('news/', news.news_list, name='news-list'),
    path('news/slug/<str:slug>/', news.news_by_slug, name='news-by-slug'),
    path('news/<uuid:pk>/', news.news_detail, name='news-detail'),
    path('news-sources/', news.news_source_list, name='news-source-list'),
    path('news-sources/<uuid:pk>/', news.news_source_detail, name='news-source-detail'),
    path('news-sources/<uuid:pk>/test/', news.news_source_test, name='news-source-test'),

    # Vehicles
    path('vehicles/', vehicles.vehicle_list, name='vehicle-list'),
    path('vehicles/import/', vehicles.vehicle_import, name='vehicle-import'),
    path('vehicles/<uuid:pk>/', vehicles.vehicle_detail, name='vehicle-detail'),
    path('vehicle-brands/', vehicles.vehicle_brand_list, name='vehicle-brand-list'),
    path('vehicle-brands/<uuid:pk>/', vehicles.vehicle_brand_detail, name='vehicle-brand-detail'),
    path('vehicle-models/', vehicles.vehicle_model_list, name='vehicle-model-list'),
    path('vehicle-models/search/', vehicles.vehicle_model_search, name='vehicle-model-search'),
    path('refrigerant-lookup/', vehicles.refrigerant_lookup, name='refrigerant-lookup'),

    # Site content
    path('banners/', site.banner_list, name='banner-list'),
    path('banners/<uuid:pk>/', site.banner_detail, name='banner-detail'),
    path('company-info/', site.company_info, name='company-info'),
    path('settings/', site.settings_view, name='settings'),
    path('contact/', site.contact_submit, name='contact-submit'),
    path('contacts/', site.contact_list, name='contact-list'),
    path('contacts/<uuid:pk>/', site.contact_detail, name='contact-detail'),
    path('upload/', site.upload_files, name='upload'),

    # Automation
    path('auto-crawler/', automation.auto_crawler, name='auto-crawler'),
    path('scheduled-publisher/', automation.scheduled_publisher, name='scheduled-publisher'),
    path('smart-schedule/', automation.smart_schedule, name='smart-schedule'),
    path('seo-generator/', automation.seo_generator, name='seo-generator'),
    path('telegram-webhook/', automation.telegram_webhook, name='telegram-webhook'),
]
