"""Command-line entry point for the Bitbucket Server analyzer."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional
from bbs_analyzer.application.analyzer_service import AnalyzerService
from bbs_analyzer.config import (
    DEFAULT_OUTPUT_FILE,
    DEFAULT_THREADS,
    AnalyzerSettings,
    default_log_file,
    load_environment,
    resolve_settings
)
from bbs_analyzer.console import (
    configure_logging,
    console,
    print_error,
    print_flag,
    print_summary
)
from bbs_analyzer.domain.exceptions import AnalyzerError
from bbs_analyzer.domain.models import AnalysisResult
from bbs_analyzer.infrastructure.bitbucket_client import BitbucketServerClient
from bbs_analyzer.infrastructure.csv_report import CsvReportWriter
from bbs_analyzer.infrastructure.transport import BitbucketTransport


__version__ = "0.1.0"

DESCRIPTION = "Analyze a Bitbucket Server for migration statistics"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bbs-analyzer", description=DESCRIPTION)
    p.add_argument(
        "-s", "--bbs-server-url", default="",
        help="The full URL of the Bitbucket Server/Data Center to analyze. E.g. http://bitbucket.contoso.com:7990"
    )
    p.add_argument(
        "-u", "--bbs-username", default="",
        help="The Bitbucket username of a user with site admin privileges. If not set will be read from BBS_USERNAME environment variable."
    )
    p.add_argument(
        "-p", "--bbs-password", default="",
        help="The Bitbucket password of the user specified by --bbs-username. If not set will be read from BBS_PASSWORD environment variable."
    )
    p.add_argument("--bbs-project", default="", help="A specific Bitbucket project instead of analyzing all projects.")
    p.add_argument(
        "--no-ssl-verify", action="store_true",
        help="Disables SSL verification when communicating with your Bitbucket Server/Data Center instance."
    )
    p.add_argument("-o", "--output-file", default=DEFAULT_OUTPUT_FILE, help="The file to output the results to.")
    p.add_argument("-t", "--threads", type=int, default=DEFAULT_THREADS, help="Number of threads to process concurrently.")
    p.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds. Requests never time out if not set.")
    p.add_argument("--log-file", default="", help="Path of the log file. Defaults to <timestamp>.log in the current directory.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def print_settings(settings: AnalyzerSettings) -> None:
    """Echo the resolved run parameters, password masked."""
    print_flag("BitBucket Server URL", settings.server_url)
    print_flag("BitBucket Username", settings.username)
    print_flag("BitBucket Password", "**********")
    if settings.project_key:
        print_flag("BitBucket Project", settings.project_key)
    print_flag("SSL Verification Disabled", str(not settings.verify_ssl).lower())
    print_flag("Threads", str(settings.threads))
    if settings.timeout is not None:
        print_flag("Timeout", f"{settings.timeout:g}s")
    console.print()


async def run_analysis(settings: AnalyzerSettings) -> AnalysisResult:
    """Wire the infrastructure together and execute one run."""
    transport = BitbucketTransport(
        settings.server_url,
        settings.username,
        settings.password,
        verify_ssl=settings.verify_ssl,
        timeout=settings.timeout
    )
    client = BitbucketServerClient(transport, page_limit=settings.page_limit)
    report_writer = CsvReportWriter(settings.output_file)

    with console.status("Starting...", spinner="dots") as spinner:
        analyzer = AnalyzerService(
            bitbucket_client=client,
            report_writer=report_writer,
            threads=settings.threads,
            project_key=settings.project_key,
            status=lambda message: spinner.update(message)
        )
        try:
            return await analyzer.run()
        finally:
            await analyzer.close()


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(argv)

    load_environment()
    log_file = args.log_file or default_log_file()
    try:
        configure_logging(log_file)
    except OSError as e:
        print_error(f"Unable to write to log file {log_file}: {e}")
        return 1

    logger.debug("---- VALIDATING FLAGS & ENV VARS ----")
    try:
        settings = resolve_settings(
            server_url=args.bbs_server_url,
            username=args.bbs_username,
            password=args.bbs_password,
            project_key=args.bbs_project,
            no_ssl_verify=args.no_ssl_verify,
            output_file=args.output_file,
            threads=args.threads,
            timeout=args.timeout,
            log_file=log_file
        )
    except AnalyzerError as e:
        logger.debug(f"Invalid configuration: {e}")
        print_error(str(e))
        return 1

    print_settings(settings)

    logger.debug("---- PROCESSING API REQUESTS ----")
    try:
        result = asyncio.run(run_analysis(settings))
    except AnalyzerError as e:
        logger.debug(f"Analysis failed: {e}", exc_info=True)
        print_error(str(e))
        return 1

    print_summary(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
