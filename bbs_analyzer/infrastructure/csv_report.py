"""CSV report writer for the repository inventory."""
import csv
import logging
from pathlib import Path
from typing import Iterable, Union
from bbs_analyzer.domain.exceptions import ReportError
from bbs_analyzer.domain.models import Repository
from bbs_analyzer.domain.report_interface import IReportWriter


logger = logging.getLogger(__name__)


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


class CsvReportWriter(IReportWriter):
    """Writes the inventory as comma separated values.

    One header row, then one row per repository in the order given.
    """

    def __init__(self, output_file: Union[str, Path] = "results.csv"):
        """Initialize report writer.

        Args:
            output_file: Path to output CSV file
        """
        self._output_file = Path(output_file)

    @property
    def destination(self) -> str:
        return str(self._output_file)

    def write_repositories(self, repositories: Iterable[Repository]) -> int:
        row_count = 0
        try:
            with open(self._output_file, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f, lineterminator="\n")

                # Write header
                writer.writerow(self.REPORT_HEADER)

                # Write data
                for repository in repositories:
                    writer.writerow([
                        repository.project.key,
                        repository.slug,
                        repository.size.repository,
                        repository.pull_request_count,
                        repository.comment_count,
                        _format_bool(repository.archived),
                        _format_bool(repository.public)
                    ])
                    row_count += 1
        except OSError as e:
            logger.error(f"Error writing to output file {self._output_file}: {e}")
            raise ReportError(f"Error writing to output file {self._output_file}: {e}") from e

        logger.info(f"Exported {row_count} repositories to {self._output_file}")
        return row_count
