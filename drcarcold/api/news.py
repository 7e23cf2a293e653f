"""
News API: articles and crawler sources.

Endpoints:
- GET/POST        /api/news/
- GET/PUT/DELETE  /api/news/<id>/
- GET             /api/news/slug/<slug>/
- GET/POST        /api/news-sources/
- GET/PUT/DELETE  /api/news-sources/<id>/
- POST            /api/news-sources/<id>/test/
"""

import logging

from django.db.models import F, Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser

from drcarcold.api.params import parse_bool
from drcarcold.api.permissions import IsAdminOrReadOnly, is_admin
from drcarcold.api.responses import error_response, paginated_response, success_response
from drcarcold.api.serializers import NewsListSerializer, NewsSerializer, NewsSourceSerializer
from drcarcold.models import News, NewsSource

logger = logging.getLogger(__name__)


def _get_news_crawler():
    """Get NewsCrawler instance (lazy import keeps httpx/trafilatura off the request path)."""
    from drcarcold.services.news_crawler import NewsCrawler
    return NewsCrawler()


def _count_view(request, news: News) -> None:
    """Public reads bump the view counter; admin reads do not."""
    if is_admin(request):
        return
    News.objects.filter(pk=news.pk).update(view_count=F('view_count') + 1)
    news.view_count += 1


def _visible_news(request):
    queryset = News.objects.all()
    if not is_admin(request):
        queryset = queryset.filter(is_published=True)
    return queryset


# ============================================================
# Articles
# ============================================================

@extend_schema(
    tags=['News'],
    summary='List or create news articles',
    parameters=[
        OpenApiParameter('published', bool, description='Admin only; anonymous users always get published'),
        OpenApiParameter('search', str),
        OpenApiParameter('tag', str),
        OpenApiParameter('origin', str, enum=['manual', 'crawled', 'seo']),
        OpenApiParameter('page', int),
        OpenApiParameter('limit', int),
    ],
    request=NewsSerializer,
    responses={200: NewsListSerializer(many=True), 201: NewsSerializer, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def news_list(request):
    """
    GET: paginated articles, newest published first.

    POST: create an article. Without a slug one is derived from the title
    (made unique); `published_at` is set when `is_published` is true.
    """
    if request.method == 'POST':
        serializer = NewsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        news = serializer.save()
        logger.info(f"Created news {news.slug} (published={news.is_published})")
        return success_response(
            NewsSerializer(news).data,
            message='News created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = _visible_news(request)

    if is_admin(request):
        published = parse_bool(request.query_params.get('published'))
        if published is not None:
            queryset = queryset.filter(is_published=published)

    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(title__icontains=search) | Q(content__icontains=search) | Q(excerpt__icontains=search)
        )

    tag = request.query_params.get('tag', '').strip()
    if tag:
        # JSON list membership is not a portable lookup on SQLite
        tagged = [pk for pk, tags in queryset.values_list('pk', 'tags') if tag in (tags or [])]
        queryset = queryset.filter(pk__in=tagged)

    origin = request.query_params.get('origin')
    if origin:
        queryset = queryset.filter(origin=origin)

    return paginated_response(request, queryset.order_by('-published_at', '-created_at'), NewsListSerializer)


@extend_schema(
    tags=['News'],
    summary='Retrieve, update or delete a news article',
    request=NewsSerializer,
    responses={200: NewsSerializer, 400: None, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def news_detail(request, pk):
    """
    PUT: publishing sets `published_at`, unpublishing clears it.
    """
    news = get_object_or_404(_visible_news(request), pk=pk)

    if request.method == 'GET':
        _count_view(request, news)
        return success_response(NewsSerializer(news).data)

    if request.method == 'DELETE':
        news.delete()
        logger.info(f"Deleted news {news.slug}")
        return success_response(None, message='News deleted')

    serializer = NewsSerializer(news, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    news = serializer.save()
    return success_response(NewsSerializer(news).data, message='News updated')


@extend_schema(
    tags=['News'],
    summary='Retrieve a news article by slug',
    responses={200: NewsSerializer, 404: None},
)
@api_view(['GET'])
@permission_classes([IsAdminOrReadOnly])
def news_by_slug(request, slug):
    news = get_object_or_404(_visible_news(request), slug=slug)
    _count_view(request, news)
    return success_response(NewsSerializer(news).data)


# ============================================================
# News sources
# ============================================================

@extend_schema(
    tags=['News Sources'],
    summary='List or create crawler news sources',
    request=NewsSourceSerializer,
    responses={200: NewsSourceSerializer(many=True), 201: NewsSourceSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def news_source_list(request):
    if request.method == 'POST':
        serializer = NewsSourceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        source = serializer.save()
        logger.info(f"Created news source {source.name}")
        return success_response(
            NewsSourceSerializer(source).data,
            message='News source created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = NewsSource.objects.order_by('name')
    enabled = parse_bool(request.query_params.get('enabled'))
    if enabled is not None:
        queryset = queryset.filter(enabled=enabled)
    return success_response(NewsSourceSerializer(queryset, many=True).data)


@extend_schema(
    tags=['News Sources'],
    summary='Retrieve, update or delete a news source',
    request=NewsSourceSerializer,
    responses={200: NewsSourceSerializer, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminUser])
def news_source_detail(request, pk):
    source = get_object_or_404(NewsSource, pk=pk)

    if request.method == 'GET':
        return success_response(NewsSourceSerializer(source).data)

    if request.method == 'DELETE':
        source.delete()
        logger.info(f"Deleted news source {source.name}")
        return success_response(None, message='News source deleted')

    serializer = NewsSourceSerializer(source, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    source = serializer.save()
    return success_response(NewsSourceSerializer(source).data, message='News source updated')


@extend_schema(
    tags=['News Sources'],
    summary='Test-crawl a news source',
    description='Fetches the listing page and the first article without saving anything.',
    request=None,
    responses={200: None, 404: None, 502: None},
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def news_source_test(request, pk):
    source = get_object_or_404(NewsSource, pk=pk)

    with _get_news_crawler() as crawler:
        result = crawler.test_source(source)

    if not result.get('success'):
        return error_response(
            result.get('error', 'Source test failed'),
            status.HTTP_502_BAD_GATEWAY,
            request=request,
        )
    return success_response(result, message=f"Found {len(result['article_urls'])} article links")
