"""Problem source protocol consumed by the crawl services."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from solvecrawl.services.models import BulkPage, ProblemRecord, UserProfile
from solvecrawl.shared.errors import DataShapeError, ErrorContext


@runtime_checkable
class ProblemSource(Protocol):
    """Fetch primitives of a judge site.

    Implementations raise ``HttpStatusError`` for unexpected statuses,
    ``FetchTimeoutError`` for timeouts and ``DataShapeError`` for payloads
    missing required fields. Any other exception is treated as a generic
    failure by the retry policy.
    """

    @property
    def bulk_categories(self) -> frozenset[str]:
        """Categories whose listing pages can be range-crawled."""
        ...

    async def fetch_profile(self, user_keyword: str) -> UserProfile: ...

    async def fetch_bulk_page(self, category: str, page: int) -> BulkPage: ...

    async def fetch_problem(self, pid: str) -> ProblemRecord: ...


def is_missing(value: Any) -> bool:
    """Whether a record field counts as absent."""
    return value is None or value == "" or value == []


def require_field(record: ProblemRecord, field: str) -> ProblemRecord:
    """Return ``record`` unchanged if ``field`` is present.

    Raises:
        DataShapeError: If the field is missing or empty
    """
    if is_missing(record.get(field)):
        raise DataShapeError(
            field,
            message=f"Unknown {field} for problem {record.get('pid', '?')}",
            context=ErrorContext(
                operation="validate_record",
                additional_data={"pid": str(record.get("pid", "")), "field": field},
            ),
        )
    return record
