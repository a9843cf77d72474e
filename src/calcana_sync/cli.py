"""Command line front end over the headless screens."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
from platformdirs import user_config_dir

from calcana_sync import __version__
from calcana_sync.config import load_config, save_config
from calcana_sync.models import (
    CONFIG_APP_NAME,
    EXPORT_LAYOUTS,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_OPTIONS,
    Analysis,
    ClientConfig,
    Property,
    Severity,
    Supplier,
)
from calcana_sync.screens import AnalysesScreen, PropertiesScreen, SuppliersScreen
from calcana_sync.services.api_client import build_async_client
from calcana_sync.services.interfaces import AppServices, build_default_app_services
from calcana_sync.ui_runtime import ScreenContext

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_DECLINED = 2

# Upper bound on pages walked while looking for a record by id.
MAX_LOOKUP_PAGES = 200


class ConsoleNotifier:
    """Print notices: information to stdout, warnings and errors to stderr."""

    def notify(
        self,
        message: str,
        *,
        title: str = "",
        severity: Severity = "information",
        timeout: float | None = None,
    ) -> None:
        stream = sys.stdout if severity == "information" else sys.stderr
        prefix = f"[{title}] " if title else ""
        print(f"{prefix}{message}", file=stream)


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: notices are the only output
        logging.disable(logging.CRITICAL)
        return

    log_dir = Path(user_config_dir(CONFIG_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _confirm(prompt: str, *, assume_yes: bool, input_fn: Callable[[str], str]) -> bool:
    if assume_yes:
        return True
    try:
        answer = input_fn(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


# ============================================================================
# Row formatting
# ============================================================================


def format_supplier(supplier: Supplier) -> str:
    status = "active" if supplier.active else "inactive"
    return f"{supplier.supplier_id}\t{supplier.name}\t{supplier.email}\t{status}"


def format_property(prop: Property) -> str:
    status = "active" if prop.active else "inactive"
    supplier = prop.supplier.name if prop.supplier else "-"
    city = prop.city.label if prop.city else "-"
    return f"{prop.property_id}\t{prop.name}\t{supplier}\t{city}\t{status}"


def format_analysis(analysis: Analysis) -> str:
    prop = analysis.property.name if analysis.property else "-"
    sent = "sent" if analysis.report_sent else "not sent"
    return (
        f"{analysis.analysis_id}\t#{analysis.sample_number}\t{analysis.analysis_date}\t"
        f"{prop}\t{analysis.plot or '-'}\tATR {analysis.atr:.2f}\t{sent}"
    )


def _print_page(screen: Any, formatter: Callable[[Any], str]) -> int:
    state = screen.list.state
    if state.request_state != "loaded":
        return EXIT_FAILURE
    if not state.items:
        print(screen.list.empty_message())
        return EXIT_OK
    for item in state.items:
        print(formatter(item))
    print(f"Page {state.page_index + 1} of {max(state.total_pages, 1)} ({state.total_count} total)")
    return EXIT_OK


# ============================================================================
# Commands
# ============================================================================


async def _find_on_pages(screen: Any, item_id: int) -> Any | None:
    """Walk pages from the first until ``item_id`` shows up."""
    await screen.list.reload_first_page()
    for _ in range(MAX_LOOKUP_PAGES):
        if screen.list.state.request_state != "loaded":
            return None
        item = screen.list.find_item(item_id)
        if item is not None:
            return item
        if not await screen.list.next_page():
            return None
    return None


async def _run_catalog_list(
    screen: Any, args: argparse.Namespace, formatter: Callable[[Any], str]
) -> int:
    await screen.list.set_filter("status", args.status, fetch=False)
    screen.list.state.search = args.search.strip()
    screen.list.state.page_index = max(0, args.page)
    await screen.list.refresh()
    return _print_page(screen, formatter)


def _analysis_filters(args: argparse.Namespace) -> dict[str, str]:
    return {
        "supplier": args.supplier or "",
        "property": args.property or "",
        "plot": args.plot or "",
        "date_from": args.date_from or "",
        "date_to": args.date_to or "",
    }


async def _run_status_change(
    screen: Any, args: argparse.Namespace, input_fn: Callable[[str], str]
) -> int:
    reactivate = args.command == "reactivate"
    await screen.list.set_filter(
        "status", STATUS_INACTIVE if reactivate else STATUS_ACTIVE, fetch=False
    )
    item = await _find_on_pages(screen, args.id)
    if item is None:
        state = "inactive" if reactivate else "active"
        print(f"No {state} {screen.noun} with id {args.id}.", file=sys.stderr)
        return EXIT_FAILURE
    if reactivate:
        prompt = screen.request_reactivate(args.id)
    else:
        prompt = screen.request_deactivate(args.id)
    return await _confirm_and_run(screen, prompt, args, input_fn)


async def _confirm_and_run(
    screen: Any,
    prompt: str | None,
    args: argparse.Namespace,
    input_fn: Callable[[str], str],
) -> int:
    if prompt is None:
        return EXIT_FAILURE
    if not _confirm(prompt, assume_yes=args.yes, input_fn=input_fn):
        screen.cancel()
        print("Cancelled.", file=sys.stderr)
        return EXIT_DECLINED
    outcome = await screen.confirm()
    return EXIT_OK if outcome is not None and outcome.ok else EXIT_FAILURE


async def _dispatch(
    args: argparse.Namespace, ctx: ScreenContext, input_fn: Callable[[str], str]
) -> int:
    command = args.command
    if command == "suppliers":
        return await _run_catalog_list(SuppliersScreen(ctx), args, format_supplier)
    if command == "properties":
        return await _run_catalog_list(PropertiesScreen(ctx), args, format_property)
    if command in ("deactivate", "reactivate"):
        screen = SuppliersScreen(ctx) if args.resource == "supplier" else PropertiesScreen(ctx)
        return await _run_status_change(screen, args, input_fn)
    if command == "delete-city":
        screen = PropertiesScreen(ctx)
        if not await screen.load_lookups():
            return EXIT_FAILURE
        prompt = screen.request_delete_city(args.id)
        if prompt is None and not any(c.city_id == args.id for c in screen.cities):
            print(f"No city with id {args.id}.", file=sys.stderr)
        return await _confirm_and_run(screen, prompt, args, input_fn)

    screen = AnalysesScreen(ctx)
    if command in ("analyses", "export-excel"):
        await screen.list.set_filters(_analysis_filters(args), fetch=False)
        if command == "export-excel":
            path = await screen.export_excel(args.layout)
            return EXIT_OK if path is not None else EXIT_FAILURE
        screen.list.state.page_index = max(0, args.page)
        await screen.list.refresh()
        return _print_page(screen, format_analysis)

    analysis = await _find_on_pages(screen, args.id)
    if analysis is None:
        print(f"No analysis with id {args.id}.", file=sys.stderr)
        return EXIT_FAILURE
    if command == "bulletin":
        path = await screen.download_bulletin(args.id)
        return EXIT_OK if path is not None else EXIT_FAILURE
    return await _confirm_and_run(screen, screen.request_send_report(args.id), args, input_fn)


async def _run(
    args: argparse.Namespace,
    config: ClientConfig,
    *,
    services: AppServices,
    client_factory: Callable[[ClientConfig], httpx.AsyncClient],
    input_fn: Callable[[str], str],
) -> int:
    async with client_factory(config) as client:
        ctx = ScreenContext(
            services=services,
            config=config,
            notifier=ConsoleNotifier(),
            client=client,
        )
        try:
            return await _dispatch(args, ctx, input_fn)
        finally:
            await ctx.tasks.aclose()


def _add_catalog_list_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--status", choices=STATUS_OPTIONS, default=STATUS_ACTIVE)
    parser.add_argument("--search", default="", help="Free-text search")
    parser.add_argument("--page", type=int, default=0, help="Zero-based page index")


def _add_analysis_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--supplier", default="", help="Supplier id")
    parser.add_argument("--property", default="", help="Property id")
    parser.add_argument("--plot", default="", help="Plot (talhão)")
    parser.add_argument("--from", dest="date_from", default="", help="Start date YYYY-MM-DD")
    parser.add_argument("--to", dest="date_to", default="", help="End date YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calcana-sync",
        description="List and manage Calcana suppliers, properties and lab analyses",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--base-url", default=None, help="Backend base URL (overrides config)")
    parser.add_argument("--token", default=None, help="API bearer token (overrides config)")
    parser.add_argument("--role", default=None, help="Resolved user role, e.g. OPERADOR")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompts")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/calcana-sync/debug.log)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    _add_catalog_list_args(sub.add_parser("suppliers", help="List suppliers"))
    _add_catalog_list_args(sub.add_parser("properties", help="List properties"))

    analyses = sub.add_parser("analyses", help="List lab analyses")
    _add_analysis_filter_args(analyses)
    analyses.add_argument("--page", type=int, default=0, help="Zero-based page index")

    for name, help_text in (
        ("deactivate", "Deactivate (soft delete) a record"),
        ("reactivate", "Reactivate a deactivated record"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("resource", choices=("supplier", "property"))
        cmd.add_argument("id", type=int)

    sub.add_parser("delete-city", help="Delete a city").add_argument("id", type=int)
    sub.add_parser("send-report", help="Email an analysis report").add_argument("id", type=int)
    sub.add_parser("bulletin", help="Download an analysis PDF bulletin").add_argument(
        "id", type=int
    )

    save = sub.add_parser(
        "save-config", help="Persist --base-url, --token, --role and the options below"
    )
    save.add_argument("--timeout", type=int, default=None, help="Request timeout in seconds")
    save.add_argument("--debounce-ms", type=int, default=None, help="Search debounce delay")
    save.add_argument("--download-dir", default=None, help="Where reports are saved")

    export = sub.add_parser("export-excel", help="Download the filtered analyses spreadsheet")
    export.add_argument("--layout", choices=EXPORT_LAYOUTS, default="default")
    _add_analysis_filter_args(export)
    return parser


def _apply_overrides(config: ClientConfig, args: argparse.Namespace) -> ClientConfig:
    changes: dict[str, Any] = {}
    if args.base_url:
        changes["base_url"] = args.base_url.rstrip("/")
    if args.token is not None:
        changes["api_token"] = args.token
    if args.role is not None:
        changes["role"] = args.role
    return dataclasses.replace(config, **changes) if changes else config


def _run_save_config(
    config: ClientConfig,
    args: argparse.Namespace,
    save_config_fn: Callable[[ClientConfig], Path | None],
) -> int:
    changes: dict[str, Any] = {}
    if args.timeout is not None:
        changes["timeout_seconds"] = args.timeout
    if args.debounce_ms is not None:
        changes["search_debounce_ms"] = args.debounce_ms
    if args.download_dir is not None:
        changes["report_download_dir"] = args.download_dir
    path = save_config_fn(dataclasses.replace(config, **changes))
    if path is None:
        print("Could not save the configuration. Check --debug output.", file=sys.stderr)
        return EXIT_FAILURE
    print(f"Configuration saved to {path}")
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], ClientConfig] = load_config,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    services_factory: Callable[[], AppServices] = build_default_app_services,
    client_factory: Callable[[ClientConfig], httpx.AsyncClient] = build_async_client,
    input_fn: Callable[[str], str] = input,
    save_config_fn: Callable[[ClientConfig], Path | None] = save_config,
) -> int:
    """Main entry point. Returns exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_DECLINED

    configure_logging_fn(args.debug)
    logger.debug("calcana-sync %s starting: %s", __version__, args.command)

    config = _apply_overrides(load_config_fn(), args)
    if args.command == "save-config":
        return _run_save_config(config, args, save_config_fn)
    return asyncio.run(
        _run(
            args,
            config,
            services=services_factory(),
            client_factory=client_factory,
            input_fn=input_fn,
        )
    )


__all__ = [
    "ConsoleNotifier",
    "build_parser",
    "format_analysis",
    "format_property",
    "format_supplier",
    "main",
]
