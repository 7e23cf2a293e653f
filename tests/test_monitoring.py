"""
Tests for the monitoring and alerting helpers.

Focused tests for:
- Sensitive data filtering
- Sentry error capture with task context
- Alerts for AI provider problems
"""

from unittest.mock import MagicMock, Mock, patch

import pytest


@pytest.fixture
def mock_sentry():
    """Patch the sentry_sdk module used by the monitoring helpers."""
    sentry = MagicMock()
    scope = MagicMock()
    sentry.new_scope.return_value.__enter__.return_value = scope
    sentry.scope = scope
    with patch("drcarcold.monitoring.sentry_integration.sentry_sdk", sentry):
        yield sentry


class TestSensitiveDataFiltering:
    def test_nested_keys_are_filtered(self):
        from drcarcold.monitoring.sentry_integration import _filter_sensitive_data

        data = {
            "source": "U-CAR",
            "headers": {"Authorization": "Bearer secret", "Accept": "text/html"},
            "deepseek_api_key": "sk-secret",
            "telegram_bot_token": "123:ABC",
        }

        filtered = _filter_sensitive_data(data)

        assert filtered["source"] == "U-CAR"
        assert filtered["headers"] == {"Authorization": "[Filtered]", "Accept": "text/html"}
        assert filtered["deepseek_api_key"] == "[Filtered]"
        assert filtered["telegram_bot_token"] == "[Filtered]"

    def test_before_send_hook_scrubs_request(self):
        from drcarcold.monitoring.sentry_integration import filter_sensitive_data

        event = {
            "request": {"cookies": {"auth-token": "abc"}, "url": "https://drcarcold.com/api/news"},
            "extra": {"password": "hunter2"},
            "message": "boom",
        }

        result = filter_sensitive_data(event)

        assert result["request"]["cookies"] == "[Filtered]"
        assert result["request"]["url"] == "https://drcarcold.com/api/news"
        assert result["extra"]["password"] == "[Filtered]"
        assert result["message"] == "boom"

    def test_non_dict_passthrough(self):
        from drcarcold.monitoring.sentry_integration import _filter_sensitive_data

        assert _filter_sensitive_data(["a"]) == ["a"]


class TestSentryErrorCapture:
    def test_capture_task_error_with_breadcrumb(self, mock_sentry):
        from drcarcold.monitoring import capture_task_error

        error = ValueError("Parser failed")

        capture_task_error(
            error,
            task="crawl_news_source",
            context={"source": "U-CAR", "api_key": "sk-secret"},
        )

        breadcrumb = mock_sentry.add_breadcrumb.call_args.kwargs
        assert breadcrumb["category"] == "task"
        assert breadcrumb["message"] == "Error in crawl_news_source: ValueError"
        assert breadcrumb["data"]["api_key"] == "[Filtered]"
        mock_sentry.scope.set_tag.assert_called_once_with("drcarcold.task", "crawl_news_source")
        mock_sentry.scope.set_extra.assert_called_once_with(
            "task_context", {"source": "U-CAR", "api_key": "[Filtered]"}
        )
        mock_sentry.capture_exception.assert_called_once_with(error)

    def test_sentry_failure_is_logged_not_raised(self, mock_sentry):
        from drcarcold.monitoring import capture_task_error

        mock_sentry.capture_exception.side_effect = RuntimeError("transport down")

        capture_task_error(ValueError("x"), task="publish_scheduled_news")

    def test_capture_alert(self, mock_sentry):
        from drcarcold.monitoring import capture_alert

        capture_alert("AI provider deepseek quota exceeded", extra_data={"provider": "deepseek"})

        mock_sentry.capture_message.assert_called_once_with(
            "AI provider deepseek quota exceeded", level="warning"
        )
        mock_sentry.scope.set_tag.assert_called_once_with("alert.type", "threshold_breach")
