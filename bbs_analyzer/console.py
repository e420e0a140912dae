"""Terminal output and logging setup."""
import logging
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from bbs_analyzer.domain.models import AnalysisResult


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

console = Console()

_KB = 1024
_MB = _KB * _KB
_GB = _MB * _KB


def configure_logging(log_file: Optional[str]) -> None:
    """Send everything to the log file and warnings or worse to the terminal."""
    handlers = []
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    console_handler = RichHandler(console=console, show_time=False, show_path=False)
    console_handler.setLevel(logging.WARNING)
    handlers.append(console_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    # asyncio debug chatter does not belong in the run log
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def format_size(size: int) -> str:
    """Human readable size using whole units of 1024."""
    if size >= _GB:
        return f"{size // _GB} GB"
    if size >= _MB:
        return f"{size // _MB} MB"
    if size >= _KB:
        return f"{size // _KB} KB"
    return f"{size} B"


def print_flag(key: str, value: str) -> None:
    console.print(f"[cyan]{escape(key)}[/cyan]: {escape(value)}")


def print_notice(message: str) -> None:
    console.print(escape(message))


def print_error(message: str) -> None:
    console.print(f"[red][ERROR] {escape(message)}[/red]")


def print_summary(result: AnalysisResult) -> None:
    console.print()
    print_flag("Totals", "")
    print_notice(f"Projects: {len(result.projects)}")
    print_notice(f"Repositories: {len(result.repositories)}")
    print_notice(f"Pull Requests: {result.totals.total_pull_requests}")
    print_notice(f"Comments: {result.totals.total_comments}")
    print_notice(f"Total Disk Size: {format_size(result.totals.total_size)}")
    if result.output_file:
        print_notice(f"Results File: {result.output_file}")
    if result.errors_encountered:
        console.print(
            f"[yellow][WARNING] {result.errors_encountered} errors encountered; "
            f"see the log file for details[/yellow]"
        )
    console.print()
