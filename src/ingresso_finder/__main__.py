"""Allow ``python -m ingresso_finder`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m ingresso_finder`` behaves identically to the
``ingresso-finder`` console script.
"""

from __future__ import annotations

from ingresso_finder.cli.app import cli

if __name__ == "__main__":
    cli()
