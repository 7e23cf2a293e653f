"""
AI text generation providers used to rewrite crawled news and write SEO
articles.

Providers:
- OpenAI, Groq and DeepSeek (OpenAI-compatible chat completions)
- Google Gemini (generateContent)
- Cohere (generate)

Each provider is an async httpx client with a small retry loop (exponential
backoff, capped). AIProviderManager walks the enabled providers in priority
order and falls back to the next one when a provider fails; per-day failure
counts and quota exhaustion are kept in the Django cache so that separate
Celery tasks share them.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time as dt_time, timedelta
from typing import Any, Dict, List, Optional

import httpx
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from drcarcold.monitoring import add_breadcrumb, capture_alert

logger = logging.getLogger(__name__)

ARTICLE_MAX_TOKENS = 2000
TITLE_MAX_TOKENS = 100
TEMPERATURE = 0.7

SYSTEM_PROMPT = "你是一位專業的汽車新聞編輯，專精汽車冷氣與冷媒領域，使用繁體中文寫作。"


class AIProviderError(Exception):
    """A provider call failed; `is_quota_error` marks rate limit/quota failures."""

    def __init__(self, message: str, status_code: Optional[int] = None, is_quota_error: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.is_quota_error = is_quota_error


@dataclass
class RewriteResult:
    """Result of an article rewrite attempt."""

    success: bool
    title: str = ""
    content: str = ""
    provider: str = ""
    error: Optional[str] = None
    attempts: List[Dict[str, Any]] = field(default_factory=list)


def build_article_prompt(title: str, content: str, keywords: Optional[List[str]] = None) -> str:
    keyword_line = ""
    if keywords:
        keyword_line = f"\n請自然地融入以下 SEO 關鍵字：{', '.join(keywords)}"
    return (
        "請將以下汽車新聞改寫成一篇原創的繁體中文文章，保留所有事實與數據，"
        "語氣專業且易讀，分成數個段落，不要加入標題。"
        f"{keyword_line}\n\n"
        f"原始標題：{title}\n\n原始內容：\n{content}"
    )


def build_title_prompt(title: str) -> str:
    return (
        "請將以下汽車新聞標題改寫成吸引人且符合 SEO 的繁體中文標題，"
        "長度不超過 30 個字，只輸出標題本身。\n\n"
        f"原始標題：{title}"
    )


def build_seo_article_prompt(topic: str, keywords: List[str]) -> str:
    return (
        f"請以「{topic}」為主題，撰寫一篇約 800 字的繁體中文汽車冷氣保養知識文章。"
        f"第一行輸出標題，之後是內文，內文需自然包含以下關鍵字：{', '.join(keywords)}。"
        "內容需提供實用建議，並在結尾提醒讀者可聯繫車冷博士取得專業服務。"
    )


def clean_title(text: str) -> str:
    """Strip quotes, markdown markers and "標題：" prefixes from a model title."""
    line = (text or "").strip().splitlines()[0] if (text or "").strip() else ""
    line = re.sub(r"^(標題|Title)\s*[:：]\s*", "", line, flags=re.IGNORECASE)
    return line.strip().strip("#*「」\"'“” ").strip()


class BaseAIProvider:
    """
    Common request/retry handling for one AI provider.

    Subclasses implement `_build_request` and `_parse_text`.
    """

    name = "base"
    default_model = ""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        self.api_key = api_key
        self.model = model or self.default_model
        self.timeout = timeout or getattr(settings, "AI_REQUEST_TIMEOUT", 60.0)
        self.max_retries = (
            max_retries if max_retries is not None else getattr(settings, "AI_MAX_RETRIES", 3)
        )
        self.initial_delay = (
            initial_delay if initial_delay is not None
            else getattr(settings, "AI_RETRY_INITIAL_DELAY", 1.0)
        )
        self.max_delay = (
            max_delay if max_delay is not None else getattr(settings, "AI_RETRY_MAX_DELAY", 5.0)
        )

    def _build_request(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        """Return kwargs for httpx `post` (url, json, headers, params)."""
        raise NotImplementedError

    def _parse_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def generate(self, prompt: str, max_tokens: int = ARTICLE_MAX_TOKENS) -> str:
        """
        Send a prompt and return the generated text.

        Retries up to `max_retries` attempts with a delay that doubles from
        `initial_delay` up to `max_delay`. Quota errors are not retried.

        Raises:
            AIProviderError: when every attempt failed
        """
        delay = self.initial_delay
        last_error: Optional[AIProviderError] = None
        attempts = max(1, self.max_retries)

        for attempt in range(attempts):
            try:
                return await self._request(prompt, max_tokens)
            except AIProviderError as e:
                last_error = e
                if e.is_quota_error:
                    break
                logger.warning(
                    f"{self.name} attempt {attempt + 1}/{attempts} failed: {e}"
                )
            if attempt < attempts - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_delay)

        raise last_error or AIProviderError(f"{self.name} request failed")

    async def _request(self, prompt: str, max_tokens: int) -> str:
        request_kwargs = self._build_request(prompt, max_tokens)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(**request_kwargs)
        except httpx.TimeoutException as e:
            raise AIProviderError(f"{self.name} timeout after {self.timeout}s: {e}")
        except httpx.HTTPError as e:
            raise AIProviderError(f"{self.name} connection error: {e}")

        if response.status_code != 200:
            body = response.text[:200]
            is_quota = response.status_code in (402, 429) or bool(
                re.search(r"quota|rate.?limit|insufficient", body, re.IGNORECASE)
            )
            raise AIProviderError(
                f"{self.name} returned status {response.status_code}: {body}",
                status_code=response.status_code,
                is_quota_error=is_quota,
            )

        try:
            text = self._parse_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIProviderError(f"{self.name} returned an unexpected payload: {e}")

        text = (text or "").strip()
        if not text:
            raise AIProviderError(f"{self.name} returned empty text")
        return text

    async def rewrite_article(self, title: str, content: str, keywords: Optional[List[str]] = None) -> str:
        return await self.generate(
            build_article_prompt(title, content, keywords), max_tokens=ARTICLE_MAX_TOKENS
        )

    async def rewrite_title(self, title: str) -> str:
        text = await self.generate(build_title_prompt(title), max_tokens=TITLE_MAX_TOKENS)
        return clean_title(text) or title


class OpenAICompatibleProvider(BaseAIProvider):
    """Chat completions API shared by OpenAI, Groq and DeepSeek."""

    endpoint = ""

    def _build_request(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        return {
            "url": self.endpoint,
            "headers": {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            "json": {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": TEMPERATURE,
                "max_tokens": max_tokens,
            },
        }

    def _parse_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class OpenAIProvider(OpenAICompatibleProvider):
    name = "openai"
    default_model = "gpt-3.5-turbo"
    endpoint = "https://api.openai.com/v1/chat/completions"


class GroqProvider(OpenAICompatibleProvider):
    name = "groq"
    default_model = "llama-3.1-70b-versatile"
    endpoint = "https://api.groq.com/openai/v1/chat/completions"


class DeepSeekProvider(OpenAICompatibleProvider):
    name = "deepseek"
    default_model = "deepseek-chat"
    endpoint = "https://api.deepseek.com/v1/chat/completions"


class GeminiProvider(BaseAIProvider):
    name = "gemini"
    default_model = "gemini-1.5-flash-latest"

    def _build_request(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        return {
            "url": (
                "https://generativelanguage.googleapis.com/v1beta/models/"
                f"{self.model}:generateContent"
            ),
            "params": {"key": self.api_key},
            "headers": {"Content-Type": "application/json"},
            "json": {
                "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
                "generationConfig": {
                    "temperature": TEMPERATURE,
                    "maxOutputTokens": max_tokens,
                },
            },
        }

    def _parse_text(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]


class CohereProvider(BaseAIProvider):
    name = "cohere"
    default_model = "command-r-plus"

    def _build_request(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        return {
            "url": "https://api.cohere.ai/v1/generate",
            "headers": {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            "json": {
                "model": self.model,
                "prompt": f"{SYSTEM_PROMPT}\n\n{prompt}",
                "max_tokens": max_tokens,
                "temperature": TEMPERATURE,
            },
        }

    def _parse_text(self, data: Dict[str, Any]) -> str:
        return data["generations"][0]["text"]


# Lower priority value is tried first
PROVIDER_REGISTRY = {
    "deepseek": {"class": DeepSeekProvider, "priority": 1, "max_failures": 3},
    "groq": {"class": GroqProvider, "priority": 2, "max_failures": 3},
    "gemini": {"class": GeminiProvider, "priority": 3, "max_failures": 3},
    "cohere": {"class": CohereProvider, "priority": 4, "max_failures": 3},
    "openai": {"class": OpenAIProvider, "priority": 10, "max_failures": 2},
}


def _seconds_until_midnight() -> int:
    now = timezone.localtime()
    tomorrow = datetime.combine(now.date() + timedelta(days=1), dt_time.min, tzinfo=now.tzinfo)
    return max(60, int((tomorrow - now).total_seconds()))


class AIProviderManager:
    """
    Ordered fallback over the providers that have an API key configured.

    A provider is skipped for the rest of the day once it hit a quota error
    or failed `max_failures` times.
    """

    CACHE_PREFIX = "ai_provider"

    def __init__(self, api_keys: Dict[str, str], provider_kwargs: Optional[Dict[str, Any]] = None):
        self.providers: List[BaseAIProvider] = []
        self.max_failures: Dict[str, int] = {}
        kwargs = provider_kwargs or {}

        ordered = sorted(PROVIDER_REGISTRY.items(), key=lambda item: item[1]["priority"])
        for name, meta in ordered:
            api_key = (api_keys.get(name) or "").strip()
            if not api_key:
                continue
            self.providers.append(meta["class"](api_key=api_key, **kwargs))
            self.max_failures[name] = meta["max_failures"]

    @classmethod
    def from_settings(cls, store=None, **provider_kwargs) -> "AIProviderManager":
        """Build a manager from `<provider>_api_key` Setting rows."""
        from drcarcold.services.settings_store import get_settings_store

        store = store or get_settings_store()
        api_keys = {name: store.get(f"{name}_api_key") or "" for name in PROVIDER_REGISTRY}
        return cls(api_keys, provider_kwargs=provider_kwargs or None)

    @property
    def has_providers(self) -> bool:
        return bool(self.providers)

    # -- failure state -------------------------------------------------

    def _failure_key(self, name: str) -> str:
        return f"{self.CACHE_PREFIX}:{name}:failures:{timezone.localdate().isoformat()}"

    def _exhausted_key(self, name: str) -> str:
        return f"{self.CACHE_PREFIX}:{name}:exhausted:{timezone.localdate().isoformat()}"

    def is_available(self, name: str) -> bool:
        if cache.get(self._exhausted_key(name)):
            return False
        failures = cache.get(self._failure_key(name), 0)
        return failures < self.max_failures.get(name, 3)

    def record_failure(self, name: str, quota_exceeded: bool = False) -> None:
        ttl = _seconds_until_midnight()
        if quota_exceeded:
            cache.set(self._exhausted_key(name), True, ttl)
            logger.warning(f"AI provider {name} quota exhausted for today")
            capture_alert(f"AI provider {name} quota exhausted", extra_data={"provider": name})
            return
        key = self._failure_key(name)
        failures = cache.get(key, 0) + 1
        cache.set(key, failures, ttl)
        if failures >= self.max_failures.get(name, 3):
            logger.warning(f"AI provider {name} disabled after {failures} failures")

    def record_success(self, name: str) -> None:
        cache.delete(self._failure_key(name))

    def get_status(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": provider.name,
                "model": provider.model,
                "available": self.is_available(provider.name),
                "failures": cache.get(self._failure_key(provider.name), 0),
                "exhausted": bool(cache.get(self._exhausted_key(provider.name))),
            }
            for provider in self.providers
        ]

    # -- operations ----------------------------------------------------

    async def rewrite_article(
        self, title: str, content: str, keywords: Optional[List[str]] = None
    ) -> RewriteResult:
        """
        Rewrite title and body with the first provider that succeeds.
        """
        attempts: List[Dict[str, Any]] = []

        for provider in self.providers:
            if not self.is_available(provider.name):
                continue

            add_breadcrumb("ai", f"Rewriting with {provider.name}", data={"title": title[:80]})
            try:
                new_content = await provider.rewrite_article(title, content, keywords)
                attempts.append({"provider": provider.name, "success": True})
                try:
                    new_title = await provider.rewrite_title(title)
                    attempts.append({"provider": provider.name, "success": True})
                except AIProviderError as e:
                    logger.warning(f"Title rewrite failed with {provider.name}: {e}")
                    attempts.append({"provider": provider.name, "success": False})
                    new_title = title
            except AIProviderError as e:
                logger.warning(f"Article rewrite failed with {provider.name}: {e}")
                attempts.append({"provider": provider.name, "success": False})
                self.record_failure(provider.name, quota_exceeded=e.is_quota_error)
                continue

            self.record_success(provider.name)
            return RewriteResult(
                success=True,
                title=new_title,
                content=new_content,
                provider=provider.name,
                attempts=attempts,
            )

        return RewriteResult(
            success=False,
            title=title,
            content=content,
            error="No AI provider available" if not attempts else "All AI providers failed",
            attempts=attempts,
        )

    async def generate_text(self, prompt: str, max_tokens: int = ARTICLE_MAX_TOKENS) -> RewriteResult:
        """Free-form generation with the same fallback rules."""
        attempts: List[Dict[str, Any]] = []

        for provider in self.providers:
            if not self.is_available(provider.name):
                continue
            try:
                text = await provider.generate(prompt, max_tokens=max_tokens)
            except AIProviderError as e:
                logger.warning(f"Generation failed with {provider.name}: {e}")
                attempts.append({"provider": provider.name, "success": False})
                self.record_failure(provider.name, quota_exceeded=e.is_quota_error)
                continue

            attempts.append({"provider": provider.name, "success": True})
            self.record_success(provider.name)
            return RewriteResult(success=True, content=text, provider=provider.name, attempts=attempts)

        return RewriteResult(
            success=False,
            error="No AI provider available" if not attempts else "All AI providers failed",
            attempts=attempts,
        )


def run_async(coro):
    """Run a coroutine to completion from synchronous (Celery/view) code."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
