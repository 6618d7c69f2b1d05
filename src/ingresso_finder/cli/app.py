"""CLI application entry point and command routing for ingresso-finder.

This module is the **sole error boundary** for the entire application.
It catches :class:`~ingresso_finder.exceptions.IngressoError`,
``KeyboardInterrupt`` and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core and
  infrastructure layers; this module only wires them together.
* ``print()`` is forbidden outside the CLI layer; Rich console is used
  exclusively.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import webbrowser

from ingresso_finder.cli import exit_codes
from ingresso_finder.cli.console import console
from ingresso_finder.exceptions import IngressoError
from ingresso_finder.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    The CLI supports:
    * ``ingresso-finder``               — interactive session browser
    * ``ingresso-finder --city NAME``   — start in a given city
    * ``ingresso-finder doctor``        — environment diagnostics
    * ``ingresso-finder --version``
    """
    parser = argparse.ArgumentParser(
        prog="ingresso-finder",
        description="Browse Ingresso movie sessions from the terminal.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--city",
        default=None,
        help="City name to open directly (overrides INGRESSO_CITY).",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default=None,
        choices=["doctor"],
        help="'doctor' to run diagnostics; omit to start the browser.",
    )
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_browse(city: str | None) -> int:
    """Wire the services together and run the interactive browser.

    Flow:
    1. Load configuration and route logs to the log file.
    2. Instantiate infra adapters (cache, gateway, location).
    3. Build the core services and the navigation state machine.
    4. Hand the terminal to the runtime until the user quits.
    """
    from ingresso_finder.cli.runtime import TerminalRuntime
    from ingresso_finder.config import load_config, setup_logging
    from ingresso_finder.core.aggregation import AggregationEngine
    from ingresso_finder.core.catalog_service import CatalogService
    from ingresso_finder.core.navigation import NavigationStateMachine
    from ingresso_finder.infra.cache_store import FileCacheStore
    from ingresso_finder.infra.ingresso_gateway import IngressoGateway, RetryPolicy
    from ingresso_finder.infra.location import LocationResolver

    config = load_config()
    setup_logging(config)

    store = FileCacheStore(config.cache_dir, config.config_dir)
    gateway = IngressoGateway(
        api_url=config.api_url,
        checkout_url=config.checkout_url,
        retry=RetryPolicy(
            max_attempts=config.max_attempts,
            base_delay=config.retry_base_ms / 1000,
            max_delay=config.retry_cap_ms / 1000,
        ),
        timeout=config.http_timeout,
    )
    catalog = CatalogService(gateway, store)
    machine = NavigationStateMachine(
        catalog,
        store,
        AggregationEngine(catalog, max_concurrency=config.aggregate_concurrency),
        LocationResolver(debug=config.location_debug),
        open_url=webbrowser.open,
        initial_city=city or config.city,
    )

    asyncio.run(TerminalRuntime(machine).run())
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from ingresso_finder.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the ingresso-finder CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "doctor":
        return _handle_doctor()

    return _handle_browse(args.city)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except IngressoError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
