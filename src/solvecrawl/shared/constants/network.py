"""
Network Configuration Constants

Defaults for the judge site client: endpoints, timeouts and headers.
"""

from typing import ClassVar

from .system import BASE_SECOND


class NetworkConfig:
    """Network configuration constants."""

    # Timeout settings
    REQUEST_TIMEOUT = 10 * BASE_SECOND  # connect + send
    RESPONSE_TIMEOUT = 30 * BASE_SECOND  # whole response body

    USER_AGENT = "SolveCrawl/0.1.0"
    ACCEPT_JSON = "application/json"

    HTTP_OK = 200
    HTTP_TOO_MANY_REQUESTS = 429


class SiteDefaults:
    """Default endpoints and JSON field paths of the judge site."""

    BASE_URL = "https://www.luogu.com.cn"

    # "<name>" placeholders are substituted before each request
    UID_SEARCH_URL = BASE_URL + "/api/user/search?keyword=<user>"
    PROFILE_URL = BASE_URL + "/user/<uid>?_contentOnly=1"
    PROBLEM_URL = BASE_URL + "/problem/<pid>?_contentOnly=1"
    PROBLEM_LIST_URL = BASE_URL + "/problem/list?type=<category>&page=<page>&_contentOnly=1"

    # Dotted paths into the JSON documents
    UID_PATH = "users.0.uid"
    PROFILE_USER_PATH = "currentData.user"
    PROFILE_SOLVED_PATH = "currentData.passedProblems"
    PROBLEM_PATH = "currentData.problem"
    PROBLEM_LIST_PATH = "currentData.problems.result"
    PROBLEM_COUNT_PATH = "currentData.problems.count"

    # Fields inside profile and problem objects
    USERNAME_FIELD = "name"
    SUBMIT_TOTAL_FIELD = "submittedProblemCount"
    SOLVED_TOTAL_FIELD = "passedProblemCount"
    PID_FIELD = "pid"
    NAME_FIELD = "title"
    DIFFICULTY_FIELD = "difficulty"
    TAGS_FIELD = "tags"

    BULK_CATEGORIES: ClassVar[list[str]] = ["P", "B", "CF", "AT", "SP", "UVA"]
