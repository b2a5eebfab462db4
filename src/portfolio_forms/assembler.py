"""SubmissionAssembler — converts form state to the persisted responses blob and back.

The persisted shape is one JSON object: question id → answer, plus one
entry per non-empty submission-scoped collection (``rooms`` by default)
under the collection's key.  Collections are never treated as question
ids; :meth:`hydrate` lifts them back out into their own lists.

Round-trip law: for well-formed state (answer keys are question ids, every
declared collection present as a list) ``hydrate(serialize(a, c)) == (a, c)``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

from portfolio_forms.constants import ROOMS_KEY
from portfolio_forms.models.question import CollectionSpec

logger = logging.getLogger(__name__)


class SubmissionAssembler:
    """Serialize / hydrate submission responses.

    Args:
        collections: declared collections; their keys are reserved in the
            responses object
        question_ids: when given, answers under any other key (and under
            display-only questions the caller excluded) are dropped on
            serialize with a warning
    """

    def __init__(
        self,
        collections: Iterable[CollectionSpec] | None = None,
        *,
        question_ids: Iterable[str] | None = None,
    ) -> None:
        keys = [c.key for c in collections] if collections is not None else [ROOMS_KEY]
        self.collection_keys: tuple[str, ...] = tuple(keys)
        self._question_ids = set(question_ids) if question_ids is not None else None

    # ------------------------------------------------------------------
    # Form state → persisted
    # ------------------------------------------------------------------

    def serialize(
        self,
        answers: Mapping[str, Any],
        collections: Mapping[str, list[dict[str, Any]]] | None = None,
    ) -> dict[str, Any]:
        """Build the responses object from answers and collections."""
        responses: dict[str, Any] = {}
        for qid, value in answers.items():
            if qid in self.collection_keys:
                logger.warning("Answer key %r collides with a collection key, dropped", qid)
                continue
            if self._question_ids is not None and qid not in self._question_ids:
                logger.warning("Answer for unknown question %r dropped", qid)
                continue
            responses[qid] = value

        for key in self.collection_keys:
            entries = (collections or {}).get(key) or []
            if entries:
                responses[key] = [dict(e) for e in entries]
        return responses

    def encode(
        self,
        answers: Mapping[str, Any],
        collections: Mapping[str, list[dict[str, Any]]] | None = None,
    ) -> str:
        """``serialize`` then JSON-encode (the stored text form)."""
        return json.dumps(self.serialize(answers, collections), ensure_ascii=False)

    # ------------------------------------------------------------------
    # Persisted → form state
    # ------------------------------------------------------------------

    def hydrate(
        self, responses: Mapping[str, Any] | str | None
    ) -> tuple[dict[str, Any], dict[str, list[dict[str, Any]]]]:
        """Split a responses object into ``(answers, collections)``.

        Accepts the decoded mapping or the stored JSON text.  Every declared
        collection is present in the result, empty when absent.
        """
        data = decode_responses(responses)
        answers: dict[str, Any] = {}
        collections: dict[str, list[dict[str, Any]]] = {k: [] for k in self.collection_keys}
        for key, value in data.items():
            if key in self.collection_keys:
                if isinstance(value, list):
                    collections[key] = [dict(e) for e in value if isinstance(e, dict)]
                else:
                    logger.warning("Collection %r is not a list, ignored", key)
                continue
            answers[key] = value
        return answers, collections


def decode_responses(responses: Mapping[str, Any] | str | None) -> dict[str, Any]:
    """Decode a stored responses value into a dict.

    Raises ``ValueError`` if the stored text is not a JSON object.
    """
    if responses is None:
        return {}
    if isinstance(responses, str):
        if not responses.strip():
            return {}
        data = json.loads(responses)
        if not isinstance(data, dict):
            raise ValueError("Stored responses must be a JSON object")
        return data
    return dict(responses)
