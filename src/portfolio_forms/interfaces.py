"""Abstract interfaces for the collaborators the form engine talks to.

These ABCs define the contract that external implementations must fulfil.
Only the key-value cache ships with an implementation
(:class:`portfolio_forms.cache.InMemoryCache`); upload storage and the
spreadsheet mirror are deployment-specific.

Typical integration flow::

    engine = FormEngine(sheet_mirror=MySheetMirror(...))

    # file question: upload first, store the URL as the answer
    result = await uploader.upload(name, content_type, data)
    session.state.attach_file(question_id, result)

    # after a successful final submit the engine appends one row to the
    # mirror; mirror failures are logged and never fail the submission
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping

from portfolio_forms.models.session import UploadResult


class UploadService(ABC):
    """Stores an uploaded file and returns its public URL."""

    @abstractmethod
    async def upload(self, filename: str, content_type: str, data: bytes) -> UploadResult:
        """Upload one file.

        Returns
        -------
        UploadResult
            ``url`` on success; otherwise ``failure`` is one of
            ``unsupported_type``, ``too_large`` or ``transient`` with a
            user-facing ``message``.  Expected failures are returned, not
            raised.
        """


class SheetMirror(ABC):
    """Appends finalised submissions to an external spreadsheet."""

    @abstractmethod
    async def append(self, row: list[str]) -> None:
        """Append one row (see :func:`format_mirror_row`)."""


class KeyValueCache(ABC):
    """Client-side string cache injected into :class:`PortalClient`.

    Key naming is documented in :mod:`portfolio_forms.cache`; the engine
    never assumes a particular storage medium.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""


def format_mirror_row(
    *,
    submitted_at: datetime,
    portfolio_title: str,
    company_name: str,
    responses: Mapping[str, Any],
    ip_address: str | None,
) -> list[str]:
    """Build the mirror row ``[timestamp, title, company, "k: v | ...", ip]``.

    Object-shaped answers are JSON-encoded inside the summary cell.
    """
    parts = []
    for key, value in responses.items():
        if not isinstance(value, str):
            value = json.dumps(value, ensure_ascii=False)
        parts.append(f"{key}: {value}")
    return [
        submitted_at.isoformat(),
        portfolio_title,
        company_name,
        " | ".join(parts),
        ip_address or "unknown",
    ]
