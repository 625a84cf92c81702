"""Command-line interface for apihub ingestion.

Runs the ingestion core against archives on disk, for inspecting builder
output without a running catalog service.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from apihub.core.catalog import InMemoryCatalog
from apihub.core.config.loader import configure_logging, load_app_config, load_build_config
from apihub.core.errors import IngestError
from apihub.core.ingest import IngestionResult, ingest_build_result, ingest_sources
from apihub.core.manifests.enums import PackageKind
from apihub.core.manifests.models import BuildConfig

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DOMAIN_ERROR = 1
EXIT_USAGE_ERROR = 2


def _report_error(err: IngestError, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(err.to_dict()))
        return
    console.print(f"[red]❌ {err.code.value}:[/red] {err.render()}")
    if err.debug:
        console.print(f"   [dim]{err.debug}[/dim]")


def _summary_table(result: IngestionResult) -> Table:
    table = Table(title=f"{result.package_info.package_id}@{result.package_info.version}")
    table.add_column("Entity")
    table.add_column("Count", justify="right")
    table.add_row("Published contents", str(len(result.contents)))
    table.add_row("Operations", str(len(result.operations)))
    table.add_row("Version comparisons", str(len(result.version_comparisons)))
    table.add_row("Operation comparisons", str(len(result.operation_comparisons)))
    table.add_row("Cached comparisons", str(len(result.cached_comparison_ids)))
    table.add_row("Transformed bundles", "1" if result.transformed else "0")
    table.add_row("Builder notifications", str(len(result.notifications)))
    return table


def _summary_dict(result: IngestionResult) -> dict:
    return {
        "publishId": result.publish_id,
        "buildType": result.build_type,
        "packageId": result.package_info.package_id,
        "version": result.package_info.version,
        "revision": result.package_info.revision,
        "previousVersionRevision": result.package_info.previous_version_revision,
        "documents": [c.file_id for c in result.contents],
        "operations": [o.operation_id for o in result.operations],
        "comparisons": [c.comparison_id for c in result.version_comparisons],
        "cachedComparisons": result.cached_comparison_ids,
        "transformed": result.transformed is not None,
        "notifications": len(result.notifications),
    }


def _load_inputs(args: argparse.Namespace) -> tuple[bytes, BuildConfig] | None:
    archive_path = Path(args.archive)
    if not archive_path.exists():
        console.print(f"[red]ERROR: Archive not found: {archive_path}[/red]")
        return None
    try:
        build_config = load_build_config(args.build_config)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[red]ERROR: Invalid build config: {e}[/red]")
        return None
    return archive_path.read_bytes(), build_config


def run_sources(args: argparse.Namespace) -> int:
    """Check a sources archive against its build config."""
    inputs = _load_inputs(args)
    if inputs is None:
        return EXIT_USAGE_ERROR
    data, build_config = inputs

    try:
        sources = ingest_sources(
            data, build_config, max_archive_bytes=args.app_config.ingestion.max_archive_bytes
        )
    except IngestError as e:
        _report_error(e, args.json)
        return EXIT_DOMAIN_ERROR

    with sources:
        count = len(sources.files)
    if args.json:
        console.print_json(json.dumps({"files": count}))
    else:
        console.print(f"[green]✅ Sources archive is consistent ({count} files)[/green]")
    return EXIT_OK


def run_build_result(args: argparse.Namespace) -> int:
    """Ingest a build-result archive and print what it lifts to."""
    inputs = _load_inputs(args)
    if inputs is None:
        return EXIT_USAGE_ERROR
    data, build_config = inputs

    if args.catalog:
        try:
            catalog = InMemoryCatalog.from_file(args.catalog)
        except (FileNotFoundError, ValueError, ValidationError) as e:
            console.print(f"[red]ERROR: Invalid catalog fixture: {e}[/red]")
            return EXIT_USAGE_ERROR
    else:
        catalog = InMemoryCatalog()

    try:
        result = ingest_build_result(
            data,
            build_config,
            catalog,
            args.publish_id,
            kind=args.kind,
            revision=args.revision,
            previous_version_revision=args.previous_version_revision,
            max_archive_bytes=args.app_config.ingestion.max_archive_bytes,
            default_format=args.app_config.ingestion.default_format,
        )
    except IngestError as e:
        _report_error(e, args.json)
        return EXIT_DOMAIN_ERROR

    if args.json:
        console.print_json(json.dumps(_summary_dict(result)))
    else:
        console.print(_summary_table(result))
        console.print("[bold green]✅ Build result accepted[/bold green]")
    return EXIT_OK


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="apihub-ingest",
        description="Validate and lift API package build archives",
    )
    p.add_argument("--config", default=None, help="Path to app config (json/yaml)")
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override configured log level",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sources = sub.add_parser("sources", help="Check a sources archive")
    sources.add_argument("archive", help="Path to sources zip")
    sources.add_argument("--build-config", required=True, help="Path to build config")
    sources.add_argument("--json", action="store_true", help="Print JSON instead of text")

    build = sub.add_parser("build-result", help="Ingest a build result archive")
    build.add_argument("archive", help="Path to build result zip")
    build.add_argument("--build-config", required=True, help="Path to build config")
    build.add_argument("--catalog", default=None, help="Catalog fixture (json/yaml)")
    build.add_argument("--publish-id", default="local", help="Publish id for notifications")
    build.add_argument(
        "--kind",
        choices=[PackageKind.PACKAGE.value, PackageKind.GROUP.value],
        default=None,
        help="Package kind (default: value from info.json)",
    )
    build.add_argument("--revision", type=int, default=None, help="Revision being published")
    build.add_argument(
        "--previous-version-revision",
        type=int,
        default=None,
        help="Revision of the previous version, as assigned by the catalog",
    )
    build.add_argument("--json", action="store_true", help="Print JSON instead of text")

    return p


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    p = build_arg_parser()
    args = p.parse_args(argv)

    try:
        args.app_config = load_app_config(args.config)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]ERROR: Invalid app config: {e}[/red]")
        sys.exit(EXIT_USAGE_ERROR)
    if args.log_level:
        args.app_config = args.app_config.model_copy(
            update={
                "logging": args.app_config.logging.model_copy(update={"level": args.log_level})
            }
        )
    configure_logging(args.app_config)

    if args.cmd == "sources":
        sys.exit(run_sources(args))
    elif args.cmd == "build-result":
        sys.exit(run_build_result(args))
