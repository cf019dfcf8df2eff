"""Judge site configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from solvecrawl.shared.constants import NetworkConfig, SiteDefaults


class SiteSettings(BaseModel):
    """Endpoints, JSON field paths and HTTP options of the judge site."""

    uid_search_url: str = Field(default=SiteDefaults.UID_SEARCH_URL)
    profile_url: str = Field(default=SiteDefaults.PROFILE_URL)
    problem_url: str = Field(default=SiteDefaults.PROBLEM_URL)
    problem_list_url: str = Field(default=SiteDefaults.PROBLEM_LIST_URL)

    uid_path: str = Field(default=SiteDefaults.UID_PATH)
    profile_user_path: str = Field(default=SiteDefaults.PROFILE_USER_PATH)
    profile_solved_path: str = Field(default=SiteDefaults.PROFILE_SOLVED_PATH)
    problem_path: str = Field(default=SiteDefaults.PROBLEM_PATH)
    problem_list_path: str = Field(default=SiteDefaults.PROBLEM_LIST_PATH)
    problem_count_path: str = Field(default=SiteDefaults.PROBLEM_COUNT_PATH)

    username_field: str = Field(default=SiteDefaults.USERNAME_FIELD)
    submit_total_field: str = Field(default=SiteDefaults.SUBMIT_TOTAL_FIELD)
    solved_total_field: str = Field(default=SiteDefaults.SOLVED_TOTAL_FIELD)
    pid_field: str = Field(default=SiteDefaults.PID_FIELD)
    name_field: str = Field(default=SiteDefaults.NAME_FIELD)
    difficulty_field: str = Field(default=SiteDefaults.DIFFICULTY_FIELD)
    tags_field: str = Field(default=SiteDefaults.TAGS_FIELD)

    bulk_categories: list[str] = Field(
        default_factory=lambda: list(SiteDefaults.BULK_CATEGORIES),
        description="Categories whose listing pages support the range crawl",
    )
    request_timeout: float = Field(
        default=NetworkConfig.REQUEST_TIMEOUT,
        gt=0,
        description="Connect timeout in seconds",
    )
    response_timeout: float = Field(
        default=NetworkConfig.RESPONSE_TIMEOUT,
        gt=0,
        description="Total response timeout in seconds",
    )
    headers: dict[str, str] = Field(
        default_factory=lambda: {
            "User-Agent": NetworkConfig.USER_AGENT,
            "Accept": NetworkConfig.ACCEPT_JSON,
        },
    )


class OutputSettings(BaseModel):
    """Where crawl results are written."""

    results_dir: str = Field(
        default="results_raw",
        description="Directory for raw JSON results",
    )


__all__ = ["OutputSettings", "SiteSettings"]
