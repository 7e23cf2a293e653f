"""
Plain Django views: health check and uploaded file serving.
"""

import logging

from django.db import connection
from django.http import FileResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from drcarcold.models import CrawlRun, News, NewsSource
from drcarcold.services.media import MediaValidationError, content_type_for, resolve_upload_path

logger = logging.getLogger(__name__)

FILE_CACHE_CONTROL = "public, max-age=31536000, immutable"


def get_redis_connection():
    """
    Get Redis connection for health check.

    Returns:
        Redis client if the cache is backed by django-redis, None otherwise.
    """
    try:
        from django.core.cache import cache

        if hasattr(cache, "client") and hasattr(cache.client, "get_client"):
            return cache.client.get_client()
        return None
    except Exception:
        return None


def get_celery_worker_count():
    """
    Get the count of active Celery workers.

    Returns:
        int: Number of active workers, 0 if Celery not available.
    """
    try:
        from config.celery import app as celery_app

        active = celery_app.control.inspect(timeout=1.0).active()
        if active:
            return len(active)
        return 0
    except Exception:
        return 0


def _error(message: str, status: int, request) -> JsonResponse:
    return JsonResponse(
        {
            "success": False,
            "error": message,
            "statusCode": status,
            "timestamp": timezone.now().isoformat(),
            "path": request.path,
        },
        status=status,
    )


@require_GET
def health_check(request):
    """
    Health check endpoint for monitoring and load balancers.

    Endpoint: GET /api/health/
    No authentication required.

    Response fields:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "error"
        - redis: "connected", "not_configured" or "error"
        - celery_workers: integer count of active workers
        - last_crawl: ISO timestamp of the latest crawl run
        - published_news / enabled_sources: content counters

    Returns HTTP 200 when healthy, 503 when the database is unreachable.
    """
    status = "healthy"
    http_status = 200

    database_status = "connected"
    try:
        connection.ensure_connection()
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database_status = "error"
        status = "unhealthy"
        http_status = 503

    redis_status = "not_configured"
    try:
        redis_client = get_redis_connection()
        if redis_client is not None:
            redis_status = "connected" if redis_client.ping() else "error"
    except Exception:
        redis_status = "error"

    celery_workers = get_celery_worker_count()

    last_crawl = None
    published_news = 0
    enabled_sources = 0
    if database_status == "connected":
        try:
            last_run = CrawlRun.objects.first()
            last_crawl = last_run.created_at.isoformat() if last_run else None
            published_news = News.objects.filter(is_published=True).count()
            enabled_sources = NewsSource.objects.filter(enabled=True).count()
        except Exception as e:
            logger.warning(f"Health check could not read metrics: {e}")

    return JsonResponse(
        {
            "status": status,
            "database": database_status,
            "redis": redis_status,
            "celery_workers": celery_workers,
            "last_crawl": last_crawl,
            "published_news": published_news,
            "enabled_sources": enabled_sources,
            "timestamp": timezone.now().isoformat(),
        },
        status=http_status,
    )


@require_GET
def serve_file(request, path):
    """
    Serve an uploaded file from DRCARCOLD_UPLOAD_ROOT.

    Endpoint: GET /api/files/<path>
    400 for traversal attempts, 404 when the file does not exist.
    """
    try:
        file_path = resolve_upload_path(path)
    except MediaValidationError as e:
        logger.warning(f"Rejected file path {path!r}")
        return _error(str(e), 400, request)

    if not file_path.is_file():
        return _error("File not found", 404, request)

    response = FileResponse(open(file_path, "rb"), content_type=content_type_for(file_path.name))
    response["Cache-Control"] = FILE_CACHE_CONTROL
    return response
