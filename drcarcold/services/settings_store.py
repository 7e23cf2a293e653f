"""
SettingsStore: typed, cached access to the key/value Setting table.

Runtime switches (auto publish, AI rewrite, schedules), provider API keys and
small counters all live in Setting rows as strings. Reads go through the
Django cache for CACHE_TTL seconds; writes update the row and drop the cached
value.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from django.core.cache import cache
from django.db import transaction

from drcarcold.models import Setting
from drcarcold.utils.text import split_keywords

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1", "yes", "on"}

_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")

# Default values for keys the application reads
DEFAULT_SETTINGS = {
    "auto_crawl_enabled": "false",
    "auto_crawl_interval": "60",
    "auto_publish_enabled": "false",
    "ai_rewrite_enabled": "false",
    "seo_keywords": "汽車冷媒,冷氣保養,R134a,R1234yf,冷凍油,汽車冷氣",
    "publish_schedule": "09:00,15:00,21:00",
    "scheduled_publishing_enabled": "true",
    "auto_seo_enabled": "false",
    "seo_generation_schedule": "10:00",
    "seo_daily_count": "1",
    "notify_on_crawl": "true",
    "notify_on_publish": "true",
    "notify_on_error": "true",
    "notify_on_contact": "true",
}


def coerce_value(value: str) -> Any:
    """Turn a stored string into bool/int/float where it looks like one."""
    if value == "true":
        return True
    if value == "false":
        return False
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    return value


def to_stored_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if value is None:
        return ""
    return str(value)


class SettingsStore:
    """Cached reader/writer for Setting rows."""

    CACHE_TTL = 300  # 5 minutes
    CACHE_PREFIX = "settings_store"

    def _cache_key(self, key: str) -> str:
        return f"{self.CACHE_PREFIX}:{key}"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        cache_key = self._cache_key(key)
        value = cache.get(cache_key)
        if value is None:
            value = (
                Setting.objects.filter(key=key).values_list("value", flat=True).first()
            )
            if value is None:
                return default if default is not None else DEFAULT_SETTINGS.get(key)
            cache.set(cache_key, value, self.CACHE_TTL)
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.strip().lower() in TRUE_VALUES

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_list(self, key: str) -> List[str]:
        return split_keywords(self.get(key) or "")

    def get_json(self, key: str, default: Any = None) -> Any:
        value = self.get(key)
        if not value:
            return default
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Setting {key} does not hold valid JSON")
            return default

    def set(self, key: str, value: Any, description: Optional[str] = None) -> Setting:
        defaults = {"value": to_stored_value(value)}
        if description is not None:
            defaults["description"] = description
        setting, _ = Setting.objects.update_or_create(key=key, defaults=defaults)
        cache.delete(self._cache_key(key))
        return setting

    def set_many(self, values: Dict[str, Any]) -> int:
        with transaction.atomic():
            for key, value in values.items():
                self.set(key, value)
        return len(values)

    def delete(self, key: str) -> int:
        deleted, _ = Setting.objects.filter(key=key).delete()
        cache.delete(self._cache_key(key))
        return deleted

    def get_all(self) -> Dict[str, Any]:
        """All stored settings with booleans and numbers coerced."""
        return {
            key: coerce_value(value)
            for key, value in Setting.objects.values_list("key", "value")
        }

    def increment_counter(self, key: str, amount: int = 1) -> int:
        """Add `amount` to an integer setting, creating it at zero."""
        with transaction.atomic():
            setting, _ = Setting.objects.select_for_update().get_or_create(
                key=key, defaults={"value": "0"}
            )
            try:
                current = int(setting.value or 0)
            except ValueError:
                current = 0
            setting.value = str(current + amount)
            setting.save(update_fields=["value"])
        cache.delete(self._cache_key(key))
        return current + amount


_settings_store: Optional[SettingsStore] = None


def get_settings_store() -> SettingsStore:
    global _settings_store
    if _settings_store is None:
        _settings_store = SettingsStore()
    return _settings_store
