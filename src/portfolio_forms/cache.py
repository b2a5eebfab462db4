"""Client-side cache: key naming scheme and search-history helpers.

Key scheme (all values are JSON strings):

    submissions:<company>   last self-service listing for that company
    searched:<company>      "true" once the company has searched
    lastCompanyName         company name typed most recently

An empty company name maps to ``anonymous``.  The cache itself is injected
(:class:`~portfolio_forms.interfaces.KeyValueCache`); ``InMemoryCache`` is
the default, process-local implementation.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from portfolio_forms.constants import (
    CACHE_ANONYMOUS,
    CACHE_LAST_COMPANY_KEY,
    CACHE_SEARCHED_PREFIX,
    CACHE_SUBMISSIONS_PREFIX,
)
from portfolio_forms.interfaces import KeyValueCache

logger = logging.getLogger(__name__)


def _company_segment(company_name: str | None) -> str:
    name = (company_name or "").strip()
    return name or CACHE_ANONYMOUS


def submissions_key(company_name: str | None) -> str:
    return f"{CACHE_SUBMISSIONS_PREFIX}{_company_segment(company_name)}"


def searched_key(company_name: str | None) -> str:
    return f"{CACHE_SEARCHED_PREFIX}{_company_segment(company_name)}"


class InMemoryCache(KeyValueCache):
    """Dict-backed :class:`KeyValueCache`."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SubmissionHistory:
    """Remembers self-service search results per company."""

    def __init__(self, cache: KeyValueCache) -> None:
        self._cache = cache

    def remember(self, company_name: str, submissions: list[dict[str, Any]]) -> None:
        self._cache.set(submissions_key(company_name), json.dumps(submissions, ensure_ascii=False))
        self._cache.set(searched_key(company_name), "true")
        self.remember_company(company_name)

    def recall(self, company_name: str) -> list[dict[str, Any]] | None:
        """Cached listing for the company, or None if never searched."""
        raw = self._cache.get(submissions_key(company_name))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable cache entry %s", submissions_key(company_name))
            self._cache.remove(submissions_key(company_name))
            return None
        return data if isinstance(data, list) else None

    def has_searched(self, company_name: str) -> bool:
        return self._cache.get(searched_key(company_name)) == "true"

    def clear(self, company_name: str) -> None:
        self._cache.remove(submissions_key(company_name))
        self._cache.remove(searched_key(company_name))

    def remember_company(self, company_name: str) -> None:
        self._cache.set(CACHE_LAST_COMPANY_KEY, json.dumps(company_name.strip(), ensure_ascii=False))

    def last_company(self) -> str | None:
        raw = self._cache.get(CACHE_LAST_COMPANY_KEY)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            return None
        return value if isinstance(value, str) else None
