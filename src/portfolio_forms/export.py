"""ExportProjector — flattens completed submissions into a table.

Layout of the produced table:

  1. ``순번`` (1-based sequence number) and ``상호명`` (company name)
  2. one column per question in ``(step, order)`` order, skipping ``file``
     and ``notice`` questions
  3. for every declared collection, in declaration order, ``N`` repeated
     column groups where ``N`` is the largest entry count found for that
     collection across the exported submissions.  Group headers are
     ``{label}{n}{field label}`` numbered from 1 (``객실1명``, ``객실1설명``
     ...).  An optional field gets its column only when at least one entry
     fills it.

Shorter collections are padded with blank cells so every row has the same
width.  Cells are looked up by question id, never by title.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

from portfolio_forms.assembler import decode_responses
from portfolio_forms.constants import (
    EXPORT_AGREED_TEXT,
    EXPORT_COMPANY_HEADER,
    EXPORT_EXCLUDED_TYPES,
    EXPORT_SEQUENCE_HEADER,
)
from portfolio_forms.models.question import CollectionSpec, Portfolio, Question
from portfolio_forms.models.session import SubmissionRecord


@dataclass
class ExportTable:
    """Header row plus one data row per submission."""

    headers: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.headers)


# ------------------------------------------------------------------
# Cell formatting
# ------------------------------------------------------------------

def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _format_choice(value: dict) -> str:
    checked = value.get("checked")
    if not isinstance(checked, list):
        selected = value.get("selected")
        checked = [selected] if selected else []
    parts: list[str] = []
    if checked:
        parts.append(", ".join(_scalar(c) for c in checked))
    inputs = value.get("inputs")
    if isinstance(inputs, dict):
        filled = [f"{k}: {_scalar(v)}" for k, v in inputs.items() if v not in (None, "")]
        if filled:
            parts.append(", ".join(filled))
    return " / ".join(parts)


def format_cell(value: Any) -> str:
    """Render one answer as a readable cell string.

    - strings and numbers as-is
    - list of labels → comma-joined
    - list of row objects → each row's non-empty values space-joined,
      rows comma-joined
    - checkbox answer → checked labels, then ``label: input`` pairs,
      separated by `` / ``
    - agreement → ``동의`` when agreed
    - any other object → JSON with sorted keys
    """
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return _scalar(value)
    if isinstance(value, list):
        if all(isinstance(v, dict) for v in value):
            rows = []
            for row in value:
                joined = " ".join(_scalar(v) for v in row.values() if v not in (None, ""))
                if joined:
                    rows.append(joined)
            return ", ".join(rows)
        return ", ".join(format_cell(v) for v in value)
    if isinstance(value, dict):
        if "agreed" in value:
            return EXPORT_AGREED_TEXT if value.get("agreed") is True else ""
        if "checked" in value or "selected" in value:
            return _format_choice(value)
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return _scalar(value)


# ------------------------------------------------------------------
# Projector
# ------------------------------------------------------------------

class ExportProjector:
    """Projects a portfolio's completed submissions into an :class:`ExportTable`."""

    def __init__(self, portfolio: Portfolio) -> None:
        self.portfolio = portfolio
        self.columns: list[Question] = [
            q for q in portfolio.questions
            if q.question_type not in EXPORT_EXCLUDED_TYPES
        ]
        self.collections: list[CollectionSpec] = portfolio.declared_collections

    def project(self, submissions: Iterable[SubmissionRecord]) -> ExportTable:
        """Build the table.  Row order follows the input order."""
        records = [(s.company_name, decode_responses(s.responses)) for s in submissions]

        # --- Collection groups sized from the data ---
        groups: list[tuple[CollectionSpec, int, list]] = []
        for spec in self.collections:
            lists = [_entries(resp, spec.key) for _, resp in records]
            count = max((len(entries) for entries in lists), default=0)
            fields = [
                f for f in spec.fields
                if not f.optional
                or any(_filled(e.get(f.key)) for entries in lists for e in entries)
            ]
            groups.append((spec, count, fields))

        headers = [EXPORT_SEQUENCE_HEADER, EXPORT_COMPANY_HEADER]
        headers.extend(q.title for q in self.columns)
        for spec, count, fields in groups:
            for n in range(1, count + 1):
                headers.extend(f"{spec.label}{n}{f.label}" for f in fields)

        table = ExportTable(headers=headers)
        for seq, (company, resp) in enumerate(records, start=1):
            row: list[Any] = [seq, company]
            row.extend(format_cell(resp.get(q.id)) for q in self.columns)
            for spec, count, fields in groups:
                entries = _entries(resp, spec.key)
                for i in range(count):
                    entry = entries[i] if i < len(entries) else {}
                    row.extend(format_cell(entry.get(f.key)) for f in fields)
            table.rows.append(row)
        return table


def _entries(responses: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = responses.get(key)
    if not isinstance(value, list):
        return []
    return [e if isinstance(e, dict) else {} for e in value]


def _filled(value: Any) -> bool:
    return value not in (None, "")
