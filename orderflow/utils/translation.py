# orderflow/utils/translation.py
"""
Single translation boundary for user-entered text.

Names and descriptions are stored in English; callers that want another
language ask the translator at read time. The most recent results are kept in
a per-process LRU cache of ``TRANSLATE_CACHE_SIZE`` entries.
"""
import logging
from collections import OrderedDict
from typing import Optional, Tuple

import httpx

from orderflow.core.config import TRANSLATE_API_URL, TRANSLATE_CACHE_SIZE, TRANSLATE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

STORAGE_LANGUAGE = "en"


class Translator:
    def __init__(self, api_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None, timeout: float = TRANSLATE_TIMEOUT_SECONDS, cache_size: int = TRANSLATE_CACHE_SIZE):
        self.api_url = TRANSLATE_API_URL if api_url is None else api_url
        self._client = client
        self._timeout = timeout
        self._cache_size = cache_size
        self._cache: "OrderedDict[Tuple[str, str], str]" = OrderedDict()

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    async def translate(self, text: Optional[str], target: str) -> Optional[str]:
        """Returns ``text`` in ``target``; on any provider failure the input comes back unchanged."""
        if not text or not text.strip() or not self.enabled:
            return text
        key = (text, target)
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        try:
            if self._client is not None:
                response = await self._client.get(self.api_url, params={"text": text, "target": target})
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self.api_url, params={"text": text, "target": target})
            response.raise_for_status()
            translated = response.json().get("translated") or text
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Translation to %s failed, keeping original text: %s", target, e)
            return text

        self._remember(key, translated)
        return translated

    def _remember(self, key: Tuple[str, str], value: str) -> None:
        if self._cache_size <= 0:
            return
        self._cache[key] = value
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    async def to_storage(self, text: Optional[str]) -> Optional[str]:
        return await self.translate(text, STORAGE_LANGUAGE)

    async def for_display(self, text: Optional[str], lang: Optional[str]) -> Optional[str]:
        if not lang or lang == STORAGE_LANGUAGE:
            return text
        return await self.translate(text, lang)


_translator = Translator()


def get_translator() -> Translator:
    return _translator
