"""
Automation API: crawler, scheduled publishing, smart schedule, SEO articles
and the Telegram webhook.

Endpoints:
- GET/POST  /api/auto-crawler/          stats; start / stop / crawl-now
- GET/POST  /api/scheduled-publisher/   stats; start / stop / manual-publish
- GET/POST  /api/smart-schedule/        config, usage report, provider checks
- GET/POST  /api/seo-generator/         stats; generate articles
- GET/POST  /api/telegram-webhook/      Bot API webhook

Long running work (crawls, SEO generation) is dispatched to Celery and
answered with 202 and the task id.
"""

import logging

from django.db.models import Sum
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from drcarcold.api.params import parse_bool, parse_int
from drcarcold.api.responses import error_response, success_response
from drcarcold.models import CrawlRun, NewsSource
from drcarcold.services.settings_store import get_settings_store
from drcarcold.services.smart_schedule import PROVIDER_LIMITS
from drcarcold.utils.text import is_valid_time, parse_times

logger = logging.getLogger(__name__)

SEO_MAX_COUNT = 10


def _get_ai_manager():
    """Get AIProviderManager from settings (lazy import to avoid circular imports)."""
    from drcarcold.services.ai_providers import AIProviderManager
    return AIProviderManager.from_settings()


def _get_scheduled_publisher():
    from drcarcold.services.scheduled_publisher import ScheduledPublisher
    return ScheduledPublisher()


def _get_smart_schedule_manager():
    from drcarcold.services.smart_schedule import SmartScheduleManager
    return SmartScheduleManager()


def _get_seo_generator():
    from drcarcold.services.seo_generator import SEOContentGenerator
    return SEOContentGenerator()


def _get_telegram_bot():
    from drcarcold.services.telegram_bot import TelegramBot
    return TelegramBot()


def _unknown_action(request, action, allowed):
    return error_response(
        f"Unknown action: {action or '(none)'}",
        request=request,
        message=f"action must be one of: {', '.join(allowed)}",
    )


# ============================================================
# Auto crawler
# ============================================================

def _crawler_stats():
    store = get_settings_store()
    today = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    today_runs = CrawlRun.objects.filter(created_at__gte=today)
    totals = today_runs.aggregate(
        processed=Sum('articles_processed'),
        published=Sum('articles_published'),
        found=Sum('articles_found'),
    )
    last_run = CrawlRun.objects.select_related('source').first()

    return {
        'enabled': store.get_bool('auto_crawl_enabled'),
        'interval': store.get_int('auto_crawl_interval', 60),
        'ai_rewrite_enabled': store.get_bool('ai_rewrite_enabled'),
        'auto_publish_enabled': store.get_bool('auto_publish_enabled'),
        'sources': {
            'total': NewsSource.objects.count(),
            'enabled': NewsSource.objects.filter(enabled=True).count(),
        },
        'today': {
            'runs': today_runs.count(),
            'failed_runs': today_runs.filter(success=False).count(),
            'articles_found': totals['found'] or 0,
            'articles_processed': totals['processed'] or 0,
            'articles_published': totals['published'] or 0,
        },
        'last_crawl': last_run.created_at if last_run else None,
        'recent_runs': [
            {
                'source': run.source.name,
                'success': run.success,
                'articles_processed': run.articles_processed,
                'articles_published': run.articles_published,
                'errors': run.errors,
                'crawl_time': run.crawl_time,
                'created_at': run.created_at,
            }
            for run in CrawlRun.objects.select_related('source')[:10]
        ],
        'ai_providers': _get_ai_manager().get_status(),
    }


@extend_schema(
    tags=['Automation'],
    summary='Auto crawler status and control',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'action': {'type': 'string', 'enum': ['start', 'stop', 'crawl-now']},
                'interval': {'type': 'integer', 'description': 'Minutes, used with start'},
            },
            'required': ['action'],
        }
    },
    responses={200: None, 202: None, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def auto_crawler(request):
    """
    POST actions:
    - start: enable periodic crawling (optionally set `interval` minutes)
    - stop: disable periodic crawling
    - crawl-now: crawl every enabled source in the background
    """
    if request.method == 'GET':
        return success_response(_crawler_stats())

    store = get_settings_store()
    action = request.data.get('action')

    if action == 'start':
        interval = request.data.get('interval')
        if interval is not None:
            minutes = parse_int(interval, 0)
            if minutes < 1:
                return error_response('interval must be a positive number of minutes', request=request)
            store.set('auto_crawl_interval', minutes)
        store.set('auto_crawl_enabled', True)
        logger.info("Auto crawler started")
        return success_response(_crawler_stats(), message='Auto crawler started')

    if action == 'stop':
        store.set('auto_crawl_enabled', False)
        logger.info("Auto crawler stopped")
        return success_response(_crawler_stats(), message='Auto crawler stopped')

    if action == 'crawl-now':
        from drcarcold.tasks import crawl_all_news_sources

        task = crawl_all_news_sources.delay()
        logger.info(f"Crawl-now dispatched as task {task.id}")
        return success_response(
            {'task_id': task.id},
            message='Crawl started',
            status_code=status.HTTP_202_ACCEPTED,
        )

    return _unknown_action(request, action, ['start', 'stop', 'crawl-now'])


# ============================================================
# Scheduled publisher
# ============================================================

@extend_schema(
    tags=['Automation'],
    summary='Scheduled publisher status and control',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'action': {'type': 'string', 'enum': ['start', 'stop', 'manual-publish']},
                'schedule': {'type': 'string', 'example': '09:00,15:00,21:00'},
            },
            'required': ['action'],
        }
    },
    responses={200: None, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def scheduled_publisher(request):
    """
    POST actions:
    - start: enable scheduled publishing, optionally replacing `schedule`
      (comma separated HH:MM)
    - stop: disable scheduled publishing
    - manual-publish: publish a batch of drafts now
    """
    publisher = _get_scheduled_publisher()

    if request.method == 'GET':
        return success_response(publisher.get_publish_stats())

    action = request.data.get('action')

    if action == 'start':
        schedule = request.data.get('schedule')
        if schedule is not None:
            raw = [t.strip() for t in str(schedule).split(',') if t.strip()]
            invalid = [t for t in raw if not is_valid_time(t)]
            if not raw or invalid:
                return error_response(
                    'schedule must be comma separated HH:MM times',
                    request=request,
                    details={'invalid': invalid},
                )
            publisher.store.set('publish_schedule', ','.join(parse_times(','.join(raw))))
        publisher.store.set('scheduled_publishing_enabled', True)
        logger.info("Scheduled publishing started")
        return success_response(publisher.get_publish_stats(), message='Scheduled publishing started')

    if action == 'stop':
        publisher.store.set('scheduled_publishing_enabled', False)
        logger.info("Scheduled publishing stopped")
        return success_response(publisher.get_publish_stats(), message='Scheduled publishing stopped')

    if action == 'manual-publish':
        result = publisher.manual_publish()
        return success_response(result, message=f"Published {result['published']} articles")

    return _unknown_action(request, action, ['start', 'stop', 'manual-publish'])


# ============================================================
# Smart schedule
# ============================================================

@extend_schema(
    tags=['Automation'],
    summary='Smart schedule configuration and API usage',
    parameters=[
        OpenApiParameter('action', str, enum=['config', 'usage-report', 'recommended-provider']),
    ],
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'action': {
                    'type': 'string',
                    'enum': ['optimize', 'record-usage', 'reset-counters', 'can-call'],
                },
                'provider': {'type': 'string', 'enum': list(PROVIDER_LIMITS)},
                'success': {'type': 'boolean'},
            },
            'required': ['action'],
        }
    },
    responses={200: None, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def smart_schedule(request):
    manager = _get_smart_schedule_manager()

    if request.method == 'GET':
        action = request.query_params.get('action', 'config')
        if action == 'config':
            return success_response(manager.get_saved_schedule_config().to_dict())
        if action == 'usage-report':
            return success_response(manager.get_usage_report())
        if action == 'recommended-provider':
            return success_response({'provider': manager.get_recommended_provider()})
        return _unknown_action(request, action, ['config', 'usage-report', 'recommended-provider'])

    action = request.data.get('action')

    if action == 'optimize':
        config = manager.calculate_optimal_schedule()
        return success_response(config.to_dict(), message='Schedule optimised')

    if action == 'reset-counters':
        removed = manager.reset_daily_counters()
        return success_response({'removed': removed}, message='Daily counters reset')

    if action in ('record-usage', 'can-call'):
        provider = request.data.get('provider')
        if provider not in PROVIDER_LIMITS:
            return error_response(
                f"provider must be one of: {', '.join(PROVIDER_LIMITS)}",
                request=request,
            )
        if action == 'record-usage':
            usage = manager.record_api_usage(provider, parse_bool(request.data.get('success'), True))
            return success_response(usage, message='Usage recorded')
        return success_response({'provider': provider, 'can_call': manager.can_make_api_call(provider)})

    return _unknown_action(request, action, ['optimize', 'record-usage', 'reset-counters', 'can-call'])


# ============================================================
# SEO generator
# ============================================================

@extend_schema(
    tags=['Automation'],
    summary='SEO article generation',
    request={
        'application/json': {
            'type': 'object',
            'properties': {'count': {'type': 'integer', 'minimum': 1, 'maximum': SEO_MAX_COUNT, 'default': 1}},
        }
    },
    responses={200: None, 202: None, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def seo_generator(request):
    """
    GET: generation statistics and topic usage.
    POST {"count": 1..10}: generate articles in the background.
    """
    if request.method == 'GET':
        return success_response(_get_seo_generator().get_stats())

    count = request.data.get('count', 1)
    try:
        count = int(count)
    except (TypeError, ValueError):
        return error_response('count must be an integer', request=request)
    if not 1 <= count <= SEO_MAX_COUNT:
        return error_response(f'count must be between 1 and {SEO_MAX_COUNT}', request=request)

    if not _get_ai_manager().has_providers:
        return error_response(
            'No AI provider configured',
            request=request,
            message='Set at least one <provider>_api_key setting',
        )

    from drcarcold.tasks import generate_scheduled_seo_articles

    task = generate_scheduled_seo_articles.delay(force=True, count=count)
    logger.info(f"SEO generation of {count} articles dispatched as task {task.id}")
    return success_response(
        {'task_id': task.id, 'count': count},
        message='SEO generation started',
        status_code=status.HTTP_202_ACCEPTED,
    )


# ============================================================
# Telegram webhook
# ============================================================

@extend_schema(
    tags=['Automation'],
    summary='Telegram Bot API webhook',
    description='Always answers 200 {"ok": true} so Telegram does not retry.',
    request={'application/json': {'type': 'object'}},
    responses={200: None},
)
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def telegram_webhook(request):
    bot = _get_telegram_bot()

    if request.method == 'GET':
        return Response({
            'ok': True,
            'configured': bot.configured,
            'usage': 'Set this URL as the bot webhook with setWebhook; POST receives updates.',
            'commands': ['/start', '/help', '/status', '/info', '/crawl', '/publish'],
        })

    update = request.data if isinstance(request.data, dict) else {}
    try:
        bot.handle_update(update)
    except Exception as e:
        logger.exception(f"Telegram update failed: {e}")
    return Response({'ok': True})
