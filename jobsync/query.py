"""Filtering, sorting and paging of job lists.

The same :class:`ListQuery` drives both paths: in remote mode it is sent as
query-string parameters, in guest mode :func:`run_query` evaluates it over the
full local collection. Both produce a :class:`~jobsync.schemas.JobsPage`.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from pydantic import field_validator

from .schemas import CamelModel, JobApplication, JobsPage, SortBy

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
ALL_STATUSES = "all"

_END_OF_DAY = timedelta(days=1) - timedelta(milliseconds=1)


def _lenient_int(value: Any, fallback: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return fallback
    return number


def _lenient_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


class ListQuery(CamelModel):
    """List parameters, normalized the way the backend normalizes them.

    Out-of-range or unparsable values fall back to defaults instead of
    failing; ``status="all"`` and blank search text disable those filters.
    """

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    query: Optional[str] = None
    status: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    sort_by: SortBy = SortBy.DATE_DESC

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, value: Any) -> int:
        limit = _lenient_int(value, DEFAULT_LIMIT)
        if limit < 1:
            limit = DEFAULT_LIMIT
        return min(limit, MAX_LIMIT)

    @field_validator("offset", mode="before")
    @classmethod
    def clamp_offset(cls, value: Any) -> int:
        return max(_lenient_int(value, 0), 0)

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("status", mode="before")
    @classmethod
    def drop_all_status(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        status = value.strip()
        if not status or status == ALL_STATUSES:
            return None
        return status

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def parse_day(cls, value: Any) -> Optional[date]:
        return _lenient_date(value)

    @field_validator("sort_by", mode="before")
    @classmethod
    def known_sort(cls, value: Any) -> SortBy:
        try:
            return SortBy(value)
        except ValueError:
            return SortBy.DATE_DESC

    @property
    def lower_bound(self) -> Optional[datetime]:
        if self.from_date is None:
            return None
        return datetime.combine(self.from_date, time.min, tzinfo=timezone.utc)

    @property
    def upper_bound(self) -> Optional[datetime]:
        """Last instant of ``to_date``: midnight + 24h - 1ms."""
        if self.to_date is None:
            return None
        return datetime.combine(self.to_date, time.min, tzinfo=timezone.utc) + _END_OF_DAY

    def to_params(self) -> dict[str, str]:
        params = {
            "limit": str(self.limit),
            "offset": str(self.offset),
            "sortBy": self.sort_by.value,
        }
        if self.query:
            params["query"] = self.query
        if self.status:
            params["status"] = self.status
        if self.from_date:
            params["fromDate"] = self.from_date.isoformat()
        if self.to_date:
            params["toDate"] = self.to_date.isoformat()
        return params


def matches(job: JobApplication, query: ListQuery) -> bool:
    if query.query:
        needle = query.query.lower()
        if needle not in job.company.lower() and needle not in job.position.lower():
            return False
    if query.status and job.status != query.status:
        return False
    effective = job.effective_date
    lower, upper = query.lower_bound, query.upper_bound
    if lower is not None and effective < lower:
        return False
    if upper is not None and effective > upper:
        return False
    return True


SortKey = Callable[[JobApplication], Any]

# Most significant key first; each entry is (key, descending).
_ORDERINGS: dict[SortBy, tuple[tuple[SortKey, bool], ...]] = {
    SortBy.DATE_DESC: (
        (lambda job: job.effective_date, True),
        (lambda job: job.created_at, True),
        (lambda job: job.id, True),
    ),
    SortBy.DATE_ASC: (
        (lambda job: job.effective_date, False),
        (lambda job: job.created_at, False),
        (lambda job: job.id, False),
    ),
    SortBy.COMPANY_ASC: (
        (lambda job: job.company, False),
        (lambda job: job.created_at, True),
        (lambda job: job.id, True),
    ),
    SortBy.COMPANY_DESC: (
        (lambda job: job.company, True),
        (lambda job: job.created_at, True),
        (lambda job: job.id, True),
    ),
    SortBy.STATUS_ASC: (
        (lambda job: job.status, False),
        (lambda job: job.created_at, True),
        (lambda job: job.id, True),
    ),
    SortBy.STATUS_DESC: (
        (lambda job: job.status, True),
        (lambda job: job.created_at, True),
        (lambda job: job.id, True),
    ),
}


def sort_jobs(jobs: Iterable[JobApplication], sort_by: SortBy) -> list[JobApplication]:
    ordered = list(jobs)
    # Stable sorts applied least significant key first.
    for key, descending in reversed(_ORDERINGS[sort_by]):
        ordered.sort(key=key, reverse=descending)
    return ordered


def run_query(jobs: Iterable[JobApplication], query: Optional[ListQuery] = None) -> JobsPage:
    """Filter, sort and slice a full collection into one page."""
    query = query or ListQuery()
    filtered = sort_jobs((job for job in jobs if matches(job, query)), query.sort_by)
    items = filtered[query.offset : query.offset + query.limit]
    return JobsPage(
        items=items,
        total=len(filtered),
        limit=query.limit,
        offset=query.offset,
        sort_by=query.sort_by,
        has_more=query.offset + len(items) < len(filtered),
    )
