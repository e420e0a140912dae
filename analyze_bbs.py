"""Main entry point for the Bitbucket Server analyzer.

This script runs the analyzer CLI from a source checkout.
"""
from bbs_analyzer.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
