"""PortfolioLoader — reads YAML portfolio definitions into typed models.

A definition file looks like::

    portfolio:
      slug: accommodation-info
      title: 숙소 정보 등록
      description: ...
      display_order: 1
    collections:            # optional; defaults to the ``rooms`` collection
      - key: rooms
        label: 객실
        fields: [{key: name, label: 명}, ...]
    questions:
      - key: company        # stable per-portfolio key
        step: 1
        order: 1
        title: 상호명
        question_type: text
        is_required: true
        options: {checkboxes: [...]}   # mapping or JSON string

Portfolio and question ids are derived from the slug and question keys
with ``uuid5``, so re-seeding the same file keeps ids (and therefore the
keys of already stored responses) stable.

Usage::

    loader = PortfolioLoader()      # defaults to portfolios/ at repo root
    loader.load()
    portfolio = loader.get("accommodation-info")
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from portfolio_forms.models.question import Portfolio

logger = logging.getLogger(__name__)

# Namespace for deterministic portfolio/question ids
PORTFOLIO_NAMESPACE = uuid.UUID("6f1d8a52-3c1e-4d1b-9a57-0b8e2f6c4d21")


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def portfolio_id_for(slug: str) -> str:
    return str(uuid.uuid5(PORTFOLIO_NAMESPACE, slug))


def question_id_for(slug: str, key: str) -> str:
    return str(uuid.uuid5(PORTFOLIO_NAMESPACE, f"{slug}/{key}"))


def parse_definition(data: Any, *, source: str = "<memory>") -> Portfolio:
    """Turn one parsed YAML document into a :class:`Portfolio`.

    Raises ``ValueError`` naming *source* when the document is malformed.
    """
    if not isinstance(data, dict) or not isinstance(data.get("portfolio"), dict):
        raise ValueError(f"{source}: expected a mapping with a 'portfolio' section")

    header = dict(data["portfolio"])
    slug = header.get("slug")
    if not slug:
        raise ValueError(f"{source}: portfolio.slug is required")

    questions = []
    seen: set[str] = set()
    for i, raw in enumerate(data.get("questions") or []):
        if not isinstance(raw, dict):
            raise ValueError(f"{source}: questions[{i}] must be a mapping")
        q = dict(raw)
        key = str(q.pop("key", None) or f"q{i + 1}")
        if key in seen:
            raise ValueError(f"{source}: duplicate question key {key!r}")
        seen.add(key)
        q.setdefault("id", question_id_for(slug, key))
        questions.append(q)

    try:
        return Portfolio.model_validate(
            {
                **header,
                "id": header.get("id") or portfolio_id_for(slug),
                "questions": questions,
                "collections": data.get("collections") or [],
            }
        )
    except ValidationError as exc:
        raise ValueError(f"{source}: invalid portfolio definition: {exc}") from exc


def load_portfolio_file(path: Path | str) -> Portfolio:
    """Load and parse a single definition file."""
    return parse_definition(load_yaml(path), source=str(path))


class PortfolioLoader:
    """Loads every ``*.yaml`` definition under a directory.

    Attributes populated after :meth:`load`:

        portfolios — dict[slug, Portfolio]
    """

    def __init__(self, portfolio_dir: str | Path | None = None) -> None:
        if portfolio_dir is None:
            portfolio_dir = find_repo_root() / "portfolios"
        self._base = Path(portfolio_dir)
        self.portfolios: dict[str, Portfolio] = {}

    def load(self) -> None:
        """Parse all definition files.  Raises ``FileNotFoundError`` if the
        directory is missing and ``ValueError`` on a malformed file or a
        duplicated slug."""
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing portfolio directory: {self._base}")

        portfolios: dict[str, Portfolio] = {}
        for path in sorted(self._base.glob("*.yaml")):
            portfolio = load_portfolio_file(path)
            if portfolio.slug in portfolios:
                raise ValueError(f"{path}: duplicate portfolio slug {portfolio.slug!r}")
            portfolios[portfolio.slug] = portfolio
        self.portfolios = portfolios
        logger.info(
            "PortfolioLoader loaded %d portfolios from %s", len(portfolios), self._base,
        )

    def get(self, slug: str) -> Portfolio:
        """Return a loaded portfolio.  Raises ``KeyError`` if unknown."""
        try:
            return self.portfolios[slug]
        except KeyError:
            raise KeyError(f"Portfolio {slug!r} not found") from None
