"""
CLI Constants

Command names, help texts and exit codes of the command line interface.
"""


class CLIDefaults:
    """Exit codes and defaults."""

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_INTERRUPTED = 130


class CLICommands:
    CRAWL = "crawl"


class CLIHelp:
    """Help texts."""

    APP_NAME = "solvecrawl"
    APP_DESCRIPTION = "Crawl a user's solved problems and their metadata from an online judge."
    APP_STYLE = "rich"
    VERSION_TEXT = "SolveCrawl v{version}"

    CRAWL_HELP = "Crawl the solved problems of USER (username or numeric uid)."
    USER_HELP = "Username or numeric uid"
    CONFIG_HELP = "Path to a TOML configuration file"
    OUTPUT_DIR_HELP = "Directory for the raw JSON result"
    LOG_LEVEL_HELP = "Log level (DEBUG, INFO, WARNING, ERROR)"
    CONCURRENCY_HELP = "Maximum problem fetches in flight"
    NO_PROGRESS_HELP = "Disable the progress bar"
