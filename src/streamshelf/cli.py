"""Command line entrypoint."""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from .catalog import CatalogClient
from .config import Settings, default_config_path, load_config
from .errors import Outcome, StreamshelfError
from .logging_utils import configure_logging
from .matcher import find_best_match, prepare_for_matching
from .models import ContentType
from .selection import SelectionEngine
from .session import Session
from .sync import SyncEngine
from .tmdb import TMDbClient, TMDbMetadataProvider

LOGGER = logging.getLogger(__name__)

_OUTCOME_COLORS = {
    Outcome.SUCCESS: "green",
    Outcome.EMPTY: "dim",
    Outcome.DEGRADED: "yellow",
    Outcome.ERROR: "red",
}


def build_catalog_client(settings: Settings) -> CatalogClient:
    catalog = settings.catalog
    if not catalog.is_configured:
        raise ValueError("catalog.url, catalog.username and catalog.password must be configured")
    assert catalog.url and catalog.username and catalog.password
    return CatalogClient(catalog.url, catalog.username, catalog.password, timeout=catalog.timeout)


def build_metadata_provider(session: Session) -> TMDbMetadataProvider:
    metadata = session.settings.metadata
    client = None
    if metadata.api_key:
        client = TMDbClient(metadata.api_key, language=metadata.language, timeout=metadata.timeout)
    else:
        LOGGER.info("No TMDb API key configured; selections use the local catalog only")
    return TMDbMetadataProvider(
        session.store,
        client,
        ttl_hours=metadata.ttl_hours,
        language=metadata.language,
    )


def _colored(outcome: Outcome) -> str:
    color = _OUTCOME_COLORS[outcome]
    return f"[{color}]{outcome.value}[/{color}]"


def _format_timestamp(epoch_ms: Optional[int]) -> str:
    if not epoch_ms:
        return "never"
    return dt.datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def cmd_sync(session: Session, args: argparse.Namespace, console: Console) -> int:
    with build_catalog_client(session.settings) as client:
        engine = SyncEngine(session, client)
        if not args.force and not session.settings.sync.auto:
            console.print("Automatic sync is disabled; use --force to sync")
            return 0
        if not args.force and not engine.should_auto_sync():
            console.print(f"Catalog is fresh (last sync {_format_timestamp(engine.last_sync)}); use --force to resync")
            return 0

        columns = (TextColumn("Syncing catalog"), BarColumn(), TaskProgressColumn())
        with Progress(*columns, console=console, disable=not LOGGER.isEnabledFor(logging.INFO)) as progress:
            task_id = progress.add_task("sync", total=100)
            engine.on_progress = lambda value: progress.update(task_id, completed=value)
            report = engine.sync_all()

    if report is None:
        return 0

    table = Table(title="Catalog Sync")
    table.add_column("Type")
    table.add_column("Categories", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Outcome")
    for phase in report.phases:
        table.add_row(
            phase.content_type.value,
            str(phase.categories),
            str(phase.items),
            str(phase.skipped),
            _colored(phase.outcome),
        )
    console.print(table)
    return 1 if report.outcome is Outcome.ERROR else 0


def cmd_status(session: Session, args: argparse.Namespace, console: Console) -> int:
    table = Table(title="Local Catalog")
    table.add_column("Collection")
    table.add_column("Rows", justify="right")
    for name, count in session.store.get_stats().items():
        table.add_row(name, str(count))
    console.print(table)

    meta = session.store.get_sync_meta("categories")
    console.print(f"Last sync: {_format_timestamp(meta.last_sync if meta else None)}")
    return 0


def cmd_carousels(session: Session, args: argparse.Namespace, console: Console) -> int:
    day = dt.date.fromisoformat(args.date) if args.date else None
    engine = SelectionEngine(session, build_metadata_provider(session))
    result = engine.select_daily_content(args.context, day)

    console.print(f"Outcome: {_colored(result.outcome)}{' (cached)' if result.from_cache else ''}")
    for carousel in result.carousels:
        table = Table(title=f"{escape(carousel.title)} [dim]({carousel.id})[/dim]")
        table.add_column("Stream")
        table.add_column("Name")
        table.add_column("Matched title")
        table.add_column("Score", justify="right")
        for item in carousel.items:
            score = f"{item.score:.2f}" if item.score is not None else ""
            table.add_row(item.stream_id, escape(item.name), escape(item.title or ""), score)
        console.print(table)
    return 0


def cmd_match(session: Session, args: argparse.Namespace, console: Console) -> int:
    content_type = ContentType(args.type)
    entries = sorted(session.store.get_all_streams(content_type), key=lambda entry: entry.id)
    if not entries:
        console.print(f"No {content_type.value} items cached; run 'sync' first")
        return 1

    result = find_best_match(args.title, prepare_for_matching(entries), args.threshold)
    if result is None:
        console.print(f"No match for {args.title!r} at threshold {args.threshold:.2f}")
        return 1
    console.print(f"{escape(result.item.name)} [dim](id {result.item.id}, score {result.score:.2f})[/dim]")
    return 0


def cmd_logout(session: Session, args: argparse.Namespace, console: Console) -> int:
    session.close()
    console.print("Local catalog cleared")
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "status": cmd_status,
    "carousels": cmd_carousels,
    "match": cmd_match,
    "logout": cmd_logout,
}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="streamshelf", description="Local catalog cache and daily carousels.")
    parser.add_argument(
        "--config",
        type=Path,
        default=default_config_path(),
        help="Path to the YAML config (default: $STREAMSHELF_CONFIG or /config/streamshelf.yaml)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Mirror the remote catalog into the local store")
    sync_parser.add_argument("--force", action="store_true", help="Sync even if the last sync is recent")

    subparsers.add_parser("status", help="Show cached collection sizes and the last sync time")

    carousels_parser = subparsers.add_parser("carousels", help="Build or show the day's carousels")
    carousels_parser.add_argument("--context", default="home", help="Selection context (default: home)")
    carousels_parser.add_argument("--date", help="Day to select for, as YYYY-MM-DD (default: today)")

    match_parser = subparsers.add_parser("match", help="Cross-match a title against the local catalog")
    match_parser.add_argument("title")
    match_parser.add_argument("--type", choices=["movie", "series", "live"], default="movie")
    match_parser.add_argument("--threshold", type=float, default=0.85)

    subparsers.add_parser("logout", help="End the session and clear every cached collection")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_config(args.config)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to load config: %s", exc)
        return 1

    console = Console()
    session = Session.open(settings)
    try:
        return COMMANDS[args.command](session, args, console)
    except (StreamshelfError, ValueError) as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return 2
    finally:
        if not session.closed:
            session.store.close()


if __name__ == "__main__":
    sys.exit(main())
