"""
Sentry error tracking for the crawler, AI and scheduling jobs.

The SDK itself is initialised in config/settings/base.py; this module adds
breadcrumbs and scoped captures with sensitive values (API keys, bot
tokens, cookies, passwords) filtered out.

Usage:
    from drcarcold.monitoring import capture_task_error, add_breadcrumb

    try:
        crawler.crawl_source(source)
    except Exception as e:
        capture_task_error(e, task="crawl_news_source", context={"source": source.name})
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "cookie",
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "password",
    "secret",
    "token",
    "x-api-key",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values of sensitive keys with "[Filtered]", recursing into dicts.
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value

    return filtered


def filter_sensitive_data(event: Dict[str, Any], hint: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Sentry `before_send` hook scrubbing request data and extras."""
    for section in ("request", "extra", "contexts"):
        if isinstance(event.get(section), dict):
            event[section] = _filter_sensitive_data(event[section])
    return event


def add_breadcrumb(
    category: str,
    message: str,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a Sentry breadcrumb (e.g. category "crawl", "ai", "publish").
    """
    try:
        sentry_sdk.add_breadcrumb(
            category=category,
            message=message,
            level=level,
            data=_filter_sensitive_data(data or {}),
        )
    except Exception as e:
        logger.warning(f"Failed to add Sentry breadcrumb: {e}")


def capture_task_error(
    error: Exception,
    task: str,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an exception raised by a background job with its context.

    Args:
        error: The exception that occurred
        task: Name of the job (e.g. "crawl_news_source")
        context: Extra context, filtered for sensitive data
    """
    add_breadcrumb(
        category="task",
        message=f"Error in {task}: {type(error).__name__}",
        level="error",
        data=context,
    )

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("drcarcold.task", task)
            if context:
                scope.set_extra("task_context", _filter_sensitive_data(context))
            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")


def capture_alert(
    message: str,
    level: str = "warning",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an alert message, e.g. an AI provider running out of quota.
    """
    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("alert.type", "threshold_breach")
            if extra_data:
                scope.set_extra("alert_data", _filter_sensitive_data(extra_data))
            sentry_sdk.capture_message(message, level=level)
    except Exception as e:
        logger.warning(f"Failed to capture alert to Sentry: {e}")
