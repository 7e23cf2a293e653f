"""
Django signals for the drcarcold application.

- Setting save/delete -> drop the SettingsStore cache entry
- News save -> keep published_at, excerpt, reading time and content hash in
  step with the article content
"""

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from drcarcold.models import News, Setting
from drcarcold.services.settings_store import SettingsStore


@receiver(post_save, sender=Setting)
@receiver(post_delete, sender=Setting)
def invalidate_setting_cache(sender, instance, **kwargs):
    cache.delete(f"{SettingsStore.CACHE_PREFIX}:{instance.key}")


def _has_stale_excerpt(instance):
    """True when content changed and the stored excerpt was generated from the old content."""
    if instance._state.adding:
        return False
    previous = News.objects.filter(pk=instance.pk).values("content", "excerpt").first()
    if previous is None or previous["content"] == instance.content:
        return False
    return instance.excerpt == previous["excerpt"] == News.build_excerpt(previous["content"])


@receiver(pre_save, sender=News)
def fill_news_derived_fields(sender, instance, **kwargs):
    update_fields = kwargs.get("update_fields")
    if update_fields is not None and "content" not in update_fields:
        # Partial saves (view counts, publish flags) only touch publish state
        if "is_published" in update_fields and not instance.is_published:
            instance.published_at = None
        return

    if instance.is_published:
        instance.publish()
    else:
        instance.published_at = None

    if not instance.excerpt or _has_stale_excerpt(instance):
        instance.excerpt = News.build_excerpt(instance.content)
    instance.reading_time = News.compute_reading_time(instance.content)
    instance.content_hash = News.compute_content_hash(instance.content)
