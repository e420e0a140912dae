"""Run configuration resolved from command-line values and the environment."""
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional
from dotenv import load_dotenv
from bbs_analyzer.application.scheduler import MAX_WIDTH
from bbs_analyzer.domain.exceptions import ConfigurationError
from bbs_analyzer.infrastructure.paginator import DEFAULT_PAGE_LIMIT


logger = logging.getLogger(__name__)

USERNAME_ENV = "BBS_USERNAME"
PASSWORD_ENV = "BBS_PASSWORD"

DEFAULT_OUTPUT_FILE = "results.csv"
DEFAULT_THREADS = 3
THREADS_WARNING_THRESHOLD = 3

_URL_PATTERN = re.compile(r"^https?://\S+")


def load_environment() -> None:
    """Load environment variables from .env or env file."""
    load_dotenv('.env') or load_dotenv('env')


def default_log_file() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S") + ".log"


@dataclass(frozen=True)
class AnalyzerSettings:
    """Fixed parameters of one run."""
    server_url: str
    username: str
    password: str
    project_key: Optional[str] = None
    verify_ssl: bool = True
    output_file: str = DEFAULT_OUTPUT_FILE
    threads: int = DEFAULT_THREADS
    timeout: Optional[float] = None
    page_limit: int = DEFAULT_PAGE_LIMIT
    log_file: Optional[str] = None


def resolve_settings(
    server_url: Optional[str],
    username: Optional[str] = None,
    password: Optional[str] = None,
    project_key: Optional[str] = None,
    no_ssl_verify: bool = False,
    output_file: str = DEFAULT_OUTPUT_FILE,
    threads: int = DEFAULT_THREADS,
    timeout: Optional[float] = None,
    log_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> AnalyzerSettings:
    """Validate run parameters, filling credentials from the environment.

    Args:
        server_url: Full URL of the Bitbucket Server, including http(s)://
        username: Username; falls back to BBS_USERNAME
        password: Password; falls back to BBS_PASSWORD
        project_key: Analyze only this project
        no_ssl_verify: Accept self-signed certificates
        output_file: Path of the CSV report
        threads: Repositories processed concurrently (at most 10)
        timeout: Optional per-request timeout in seconds
        log_file: Path of the log file
        environ: Environment to read fallbacks from (defaults to os.environ)

    Returns:
        Validated AnalyzerSettings

    Raises:
        ConfigurationError: When a parameter is missing or invalid
    """
    if environ is None:
        environ = os.environ

    if not server_url:
        raise ConfigurationError("A BitBucket server URL must be provided.")
    if not _URL_PATTERN.match(server_url):
        raise ConfigurationError(
            "BitBucket server url should contain http(s) prefix and does not."
        )

    if threads < 1:
        raise ConfigurationError("Number of concurrent threads must be at least 1.")
    if threads > MAX_WIDTH:
        raise ConfigurationError(
            f"Number of concurrent threads cannot be higher than {MAX_WIDTH}."
        )
    if threads > THREADS_WARNING_THRESHOLD:
        logger.warning(
            f"Number of concurrent threads is higher than {THREADS_WARNING_THRESHOLD}. "
            "This could result in extreme load on your server."
        )

    if timeout is not None and timeout <= 0:
        raise ConfigurationError("Timeout must be a positive number of seconds.")

    if not username:
        username = environ.get(USERNAME_ENV)
        if not username:
            raise ConfigurationError(
                f"A BitBucket username was not provided via --bbs-username "
                f"or environment variable {USERNAME_ENV}"
            )
        logger.debug(f"BitBucket username set from Environment Variable {USERNAME_ENV}")

    if not password:
        password = environ.get(PASSWORD_ENV)
        if not password:
            raise ConfigurationError(
                f"A BitBucket password was not provided via --bbs-password "
                f"or environment variable {PASSWORD_ENV}"
            )
        logger.debug(f"BitBucket password set from Environment Variable {PASSWORD_ENV}")

    return AnalyzerSettings(
        server_url=server_url.rstrip("/"),
        username=username,
        password=password,
        project_key=project_key or None,
        verify_ssl=not no_ssl_verify,
        output_file=output_file or DEFAULT_OUTPUT_FILE,
        threads=threads,
        timeout=timeout,
        log_file=log_file
    )
