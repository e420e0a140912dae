"""Tests for the CSV report writer."""
import pytest
from bbs_analyzer.domain.exceptions import ReportError
from bbs_analyzer.domain.models import Project, PullRequest, Repository, RepositorySize
from bbs_analyzer.infrastructure.csv_report import CsvReportWriter


PROJECT = Project(key="PRJ", project_id=1, name="Project")


def test_write_repositories(tmp_path):
    """Test header, row order and boolean rendering."""
    repositories = [
        Repository(repo_id=2, slug="web", name="Web", project=PROJECT, public=True).with_statistics(
            RepositorySize(1024, 0), [PullRequest(1, 3), PullRequest(2, 4)]
        ),
        Repository(repo_id=1, slug="legacy", name="Legacy", project=PROJECT, archived=True),
    ]
    output_file = tmp_path / "results.csv"

    rows = CsvReportWriter(output_file).write_repositories(repositories)

    assert rows == 2
    assert output_file.read_text(encoding="utf-8") == (
        "project,repository,size,pull_requests,comments,archived,public\n"
        "PRJ,web,1024,2,7,false,true\n"
        "PRJ,legacy,0,0,0,true,false\n"
    )


def test_write_empty_inventory(tmp_path):
    """Test that an empty inventory still gets a header."""
    output_file = tmp_path / "results.csv"

    assert CsvReportWriter(output_file).write_repositories([]) == 0
    assert output_file.read_text(encoding="utf-8").splitlines() == [
        "project,repository,size,pull_requests,comments,archived,public"
    ]


def test_unwritable_destination(tmp_path):
    """Test that I/O failures become ReportError."""
    writer = CsvReportWriter(tmp_path / "missing" / "results.csv")

    with pytest.raises(ReportError):
        writer.write_repositories([])


def test_destination():
    assert CsvReportWriter("out.csv").destination == "out.csv"
