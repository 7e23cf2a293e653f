"""
Monitoring and alerting for background jobs.

- Sentry error tracking with task context
- Breadcrumbs for crawl, AI and publishing steps
"""

from .sentry_integration import add_breadcrumb, capture_alert, capture_task_error

__all__ = [
    "add_breadcrumb",
    "capture_alert",
    "capture_task_error",
]
