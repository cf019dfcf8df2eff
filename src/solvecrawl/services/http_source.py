"""aiohttp implementation of the problem source.

The judge site exposes JSON documents for user search, user profiles,
problem details and problem listings. Endpoints are URL templates with
``<name>`` placeholders; the interesting values are located with dotted
paths such as ``currentData.problems.result``. Both are configurable in
SiteSettings so a different site layout needs no code changes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from typing_extensions import Self

from solvecrawl.config.models.site_settings import SiteSettings
from solvecrawl.services.models import BulkPage, ProblemRecord, UserProfile
from solvecrawl.shared.constants import NetworkConfig
from solvecrawl.shared.errors import (
    DataShapeError,
    ErrorCode,
    ErrorContext,
    FetchTimeoutError,
    HttpStatusError,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


def fill_template(template: str, **values: Any) -> str:
    """Substitute ``<name>`` placeholders with URL-quoted values."""
    result = template
    for name, value in values.items():
        result = result.replace(f"<{name}>", quote(str(value), safe=""))
    return result


def dig(document: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts and lists.

    Numeric segments index into lists.

    Raises:
        DataShapeError: If a segment is missing
    """
    current = document
    for segment in path.split("."):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            raise DataShapeError(
                path,
                message=f"Response has no value at '{path}'",
                context=ErrorContext(operation="dig", additional_data={"path": path}),
            )
    return current


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class HttpProblemSource:
    """Fetch profiles, problems and listing pages over HTTP.

    Use as an async context manager, or pass an existing session.

    Example:
        >>> async with HttpProblemSource(settings.site) as source:
        ...     profile = await source.fetch_profile("alice")
    """

    def __init__(
        self,
        settings: SiteSettings | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.settings = settings or SiteSettings()
        self._session = session
        self._owns_session = session is None

    @property
    def bulk_categories(self) -> frozenset[str]:
        return frozenset(self.settings.bulk_categories)

    async def __aenter__(self) -> Self:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.settings.response_timeout,
                    connect=self.settings.request_timeout,
                ),
                headers=self.settings.headers,
            )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    async def _get_json(self, url: str, operation: str) -> Any:
        """GET ``url`` and decode its JSON body.

        Raises:
            HttpStatusError: For any status other than 200
            FetchTimeoutError: If the request or response timed out
            InfrastructureError: For connection failures and invalid JSON
        """
        if self._session is None:
            msg = "HttpProblemSource used outside of its context manager"
            raise RuntimeError(msg)

        context = ErrorContext(operation=operation, additional_data={"url": url})
        try:
            async with self._session.get(url) as response:
                if response.status != NetworkConfig.HTTP_OK:
                    raise HttpStatusError(response.status, context=context)
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"Timed out fetching {url}", context=context, original_error=e) from e
        except aiohttp.ClientError as e:
            raise InfrastructureError(
                code=ErrorCode.NETWORK_ERROR,
                message=f"Request to {url} failed: {e}",
                context=context,
                original_error=e,
            ) from e
        except ValueError as e:
            raise InfrastructureError(
                code=ErrorCode.INVALID_RESPONSE,
                message=f"Response from {url} is not valid JSON",
                context=context,
                original_error=e,
            ) from e

    def _normalize_problem(self, raw: dict[str, Any]) -> ProblemRecord:
        s = self.settings
        return {
            "pid": raw.get(s.pid_field, ""),
            "name": raw.get(s.name_field, ""),
            "difficulty": raw.get(s.difficulty_field),
            "tags": list(raw.get(s.tags_field) or []),
        }

    async def resolve_uid(self, user_keyword: str) -> str:
        """Return the uid for a username, or the keyword itself if numeric."""
        if user_keyword.isdigit():
            return user_keyword

        url = fill_template(self.settings.uid_search_url, user=user_keyword)
        document = await self._get_json(url, "resolve_uid")
        return str(dig(document, self.settings.uid_path))

    async def fetch_profile(self, user_keyword: str) -> UserProfile:
        s = self.settings
        uid = await self.resolve_uid(user_keyword)
        document = await self._get_json(fill_template(s.profile_url, uid=uid), "fetch_profile")

        user = dig(document, s.profile_user_path)
        solved_raw = dig(document, s.profile_solved_path) or []
        solved = [
            item.get(s.pid_field, "") if isinstance(item, dict) else str(item)
            for item in solved_raw
        ]
        return UserProfile(
            uid=uid,
            username=str(user.get(s.username_field, "")),
            submit_total=_as_int(user.get(s.submit_total_field)),
            solved_total=_as_int(user.get(s.solved_total_field)),
            solved=[pid for pid in solved if pid],
        )

    async def fetch_problem(self, pid: str) -> ProblemRecord:
        document = await self._get_json(
            fill_template(self.settings.problem_url, pid=pid),
            "fetch_problem",
        )
        record = self._normalize_problem(dig(document, self.settings.problem_path))
        record["pid"] = record["pid"] or pid
        return record

    async def fetch_bulk_page(self, category: str, page: int) -> BulkPage:
        s = self.settings
        document = await self._get_json(
            fill_template(s.problem_list_url, category=category, page=page),
            "fetch_bulk_page",
        )
        records = [self._normalize_problem(raw) for raw in dig(document, s.problem_list_path)]
        logger.debug("Fetched %s list page %d with %d records", category, page, len(records))
        return BulkPage(records=records, total_count=_as_int(dig(document, s.problem_count_path)))
