"""In-process document index for groups and ACLs with optimistic versioning."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

import structlog

logger = structlog.get_logger()

GROUP_INDEX = "groups"
ACL_INDEX = "acls"

VersionType = Literal["external_gte", "force"]


class SearchIndex:
    """Stores one versioned document per id in each named index.

    ``external_gte`` writes apply only when their version is greater than or
    equal to the stored version; ``force`` writes always apply. Stale writes
    are ignored rather than raised, so a retried or reordered index request
    never moves a document backwards.

    A delete leaves a versioned tombstone in place of the document, so a
    stale save arriving after the delete cannot bring the document back.
    """

    def __init__(self, index_names: Iterable[str] = (GROUP_INDEX, ACL_INDEX)) -> None:
        self._index_names = tuple(index_names)
        # doc_id -> (version, document); a None document is a tombstone
        self._indices: dict[str, dict[str, tuple[int, dict[str, Any] | None]]] = {
            name: {} for name in self._index_names
        }

    def _index(self, index_name: str) -> dict[str, tuple[int, dict[str, Any] | None]]:
        try:
            return self._indices[index_name]
        except KeyError:
            raise ValueError(f"Unknown index [{index_name}]") from None

    def _is_stale(self, index_name: str, doc_id: str, version: int) -> bool:
        current = self._index(index_name).get(doc_id)
        if current is not None and version < current[0]:
            logger.debug(
                "index_version_conflict_ignored",
                index=index_name,
                doc_id=doc_id,
                version=version,
                current_version=current[0],
            )
            return True
        return False

    def save_document(
        self,
        index_name: str,
        doc_id: str,
        doc: dict[str, Any],
        version: int,
        version_type: VersionType = "external_gte",
    ) -> bool:
        """Index a document. Returns False when the write was stale and ignored."""
        if version_type == "external_gte" and self._is_stale(index_name, doc_id, version):
            return False
        self._index(index_name)[doc_id] = (version, doc)
        return True

    def delete_document(self, index_name: str, doc_id: str, version: int) -> bool:
        """Replace a document with a tombstone at ``version``.

        Returns False when there was no live document or the delete was stale.
        """
        index = self._index(index_name)
        if self._is_stale(index_name, doc_id, version):
            return False
        current = index.get(doc_id)
        index[doc_id] = (version, None)
        return current is not None and current[1] is not None

    def get_document(self, index_name: str, doc_id: str) -> dict[str, Any] | None:
        entry = self._index(index_name).get(doc_id)
        return entry[1] if entry else None

    def search(self, index_name: str, terms: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return documents matching every term, ordered by id.

        A term matches a scalar field by equality and a list field when any
        element is equal.
        """
        terms = terms or {}
        index = self._index(index_name)
        results = []
        for doc_id in sorted(index):
            doc = index[doc_id][1]
            if doc is None:
                continue
            if all(_matches(doc.get(field), value) for field, value in terms.items()):
                results.append(doc)
        return results

    def reset(self) -> None:
        for name in self._index_names:
            self._indices[name].clear()
        logger.info("search_index_reset", indices=list(self._index_names))


def _matches(field_value: Any, value: Any) -> bool:
    if isinstance(field_value, (list, tuple)):
        return value in field_value
    return field_value == value
