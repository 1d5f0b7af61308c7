"""
Turns a UserSearchRequest into OpenSearch query DSL.

Every sort ends with ``id`` so ties never reorder between pages; cursor
pagination (``search_after``) depends on that total order.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from user_directory_shared.schemas.search import SortBy, SortOrder, UserSearchRequest

TEXT_FIELDS = ("name", "email")

# Text-analyzed fields sort on their exact-match sub-field.
_KEYWORD_SORT_FIELDS = {
    SortBy.NAME: "name.keyword",
    SortBy.EMAIL: "email.keyword",
}


class SearchQuery(BaseModel):
    """Structured query: exact-match filters, the combined query, and the sort clauses."""
    model_config = ConfigDict(frozen=True)

    filters: list[dict[str, Any]] = Field(default_factory=list)
    query: dict[str, Any]
    sort: list[dict[str, Any]]

    def to_body(self, size: int, search_after: Optional[Sequence[Any]] = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "size": size,
            "query": self.query,
            "sort": self.sort,
            "track_total_hits": True,
        }
        if search_after:
            body["search_after"] = list(search_after)
        return body


def _sort_clause(field: str, order: SortOrder | str) -> dict[str, Any]:
    return {field: {"order": SortOrder(order).value}}


def _sort_field(sort_by: SortBy) -> str:
    return _KEYWORD_SORT_FIELDS.get(sort_by, sort_by.value)


def _prefix_clause(text: str) -> dict[str, Any]:
    """Require ``text`` to prefix-match name OR email, ignoring case."""
    return {
        "bool": {
            "should": [
                {"prefix": {field: {"value": text, "case_insensitive": True}}}
                for field in TEXT_FIELDS
            ],
            "minimum_should_match": 1,
        }
    }


def build_search_query(
    request: UserSearchRequest,
    invited_user_ids: Optional[Sequence[int]] = None,
) -> SearchQuery:
    """Build the index query for ``request``.

    ``invited_user_ids`` is the invite-status filter already resolved against
    the relational store. It must be given (and non-empty) whenever the
    request carries an invite status; an empty candidate set is answered
    with an empty page before any query is built.
    """
    filters: list[dict[str, Any]] = []

    if request.invite_status is not None:
        if invited_user_ids is None:
            raise ValueError("invite status filter must be resolved to user ids first")
        ids = sorted(set(invited_user_ids))
        if not ids:
            raise ValueError("invite status filter matched no users")
        filters.append({"terms": {"id": ids}})

    if request.organization_name:
        filters.append({"terms": {"organizationNames.keyword": [request.organization_name]}})

    if request.team_name:
        filters.append({"terms": {"teamNames.keyword": [request.team_name]}})

    if request.ranks_by_relevance:
        query = {
            "bool": {
                "must": [
                    {
                        "multi_match": {
                            "query": request.q.lower(),
                            "type": "phrase_prefix",
                            "fields": list(TEXT_FIELDS),
                        }
                    }
                ],
                "filter": list(filters),
            }
        }
        sort = [_sort_clause("_score", SortOrder.DESC), _sort_clause("id", SortOrder.DESC)]
        return SearchQuery(filters=filters, query=query, sort=sort)

    if request.q:
        filters.append(_prefix_clause(request.q.lower()))

    sort = [
        _sort_clause(_sort_field(request.sort_by), request.order),
        _sort_clause("id", request.order),
    ]
    query = {"bool": {"filter": list(filters)}} if filters else {"match_all": {}}
    return SearchQuery(filters=filters, query=query, sort=sort)
