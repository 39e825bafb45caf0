"""Command-line interface for the watch history enricher."""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
import threading
from datetime import datetime
from pathlib import Path

from .config import ENGINE
from .errors import ConfigurationError
from .models import EnrichmentReport
from .pipelines.context import PipelineContext
from .pipelines.enrich_pipeline import run_enrich
from .schema import PROVIDER_LABELS, PROVIDER_ORDER, SOURCE_ALIASES
from .utils import ProjectPaths, parse_sources


def setup_logging(log_file: Path) -> None:
    """Configure logging to both console and file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Silence verbose HTTP debug logs by default
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    logging.info(f"Logging to file: {log_file}")


def _common_paths() -> tuple[Path, ProjectPaths]:
    project_root = Path(__file__).resolve().parent.parent
    paths = ProjectPaths.from_root(project_root)
    paths.ensure()
    return project_root, paths


def _default_log_file(*, command_name: str, logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)

    now = datetime.now()
    stamp = now.strftime("%Y%m%d-%H%M%S") + f".{now.microsecond // 1000:03d}"
    candidate = logs_dir / f"log-{stamp}-{command_name}.log"
    if not candidate.exists():
        return candidate

    for i in range(2, 1000):
        p = logs_dir / f"log-{stamp}-{command_name}-{i}.log"
        if not p.exists():
            return p
    return logs_dir / f"log-{stamp}-{command_name}-{os.getpid()}.log"


def _setup_logging_from_args(
    paths: ProjectPaths, log_file: Path | None, debug: bool, *, command_name: str
) -> None:
    setup_logging(log_file or _default_log_file(command_name=command_name, logs_dir=paths.data_logs))
    if debug:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        for handler in root_logger.handlers:
            handler.setLevel(logging.DEBUG)
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    argv = " ".join(shlex.quote(a) for a in sys.argv)
    logging.info(f"Invocation: {argv}")


def _print_report(report: EnrichmentReport, output_csv: Path) -> None:
    print(f"Wrote {len(report.records)} records to {output_csv}")
    print(f"Resolved: {report.resolved_count}  Failed: {len(report.failures)}")
    for prov in PROVIDER_ORDER:
        count = report.provider_errors.get(prov, 0)
        if count:
            note = " (credentials rejected)" if prov in report.auth_invalid else ""
            print(f"  {PROVIDER_LABELS[prov]} errors: {count}{note}")


def _command_enrich(args: argparse.Namespace) -> None:
    project_root, paths = _common_paths()
    _setup_logging_from_args(paths, args.log_file, args.debug, command_name="enrich")
    logging.info("Starting watch history enrichment")

    history_csv = args.input
    if not history_csv.exists():
        raise SystemExit(f"History file not found: {history_csv}")
    if args.max_in_flight < 1:
        raise SystemExit("--max-in-flight must be >= 1")

    output_csv = args.out or (paths.data_output / "Simkl_Import.csv")
    ctx = PipelineContext(
        credentials_path=args.credentials or (project_root / "data" / "credentials.yaml"),
        sources=parse_sources(args.source, allowed=PROVIDER_ORDER, aliases=SOURCE_ALIASES),
        max_in_flight=args.max_in_flight,
        dedupe_movies=bool(args.dedupe_movies),
    )

    cancel = threading.Event()
    try:
        report = run_enrich(ctx, history_csv=history_csv, output_csv=output_csv, cancel=cancel)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logging.error(f"[ENRICH] {e}")
        raise SystemExit(str(e)) from e

    _print_report(report, output_csv)
    if cancel.is_set():
        raise SystemExit("Interrupted: partial results were written")


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        raise SystemExit("Missing command. Use: enrich. Run `python run.py --help` for usage.")

    parser = argparse.ArgumentParser(
        description="Enrich a scraped watch history with catalog ids and export it for Simkl"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_enrich = sub.add_parser(
        "enrich",
        help="Resolve history entries against metadata providers and write the import CSV",
    )
    p_enrich.add_argument("input", type=Path, help="History CSV written by the scraper")
    p_enrich.add_argument(
        "--out", type=Path, help="Output CSV (default: data/output/Simkl_Import.csv)"
    )
    p_enrich.add_argument(
        "--credentials", type=Path, help="Credentials YAML (default: data/credentials.yaml)"
    )
    p_enrich.add_argument(
        "--source",
        type=str,
        default="all",
        help=f"Providers to query: all, core, or a list of {','.join(PROVIDER_ORDER)}",
    )
    p_enrich.add_argument(
        "--max-in-flight",
        type=int,
        default=ENGINE.max_in_flight,
        help=f"Entries resolved concurrently (default: {ENGINE.max_in_flight})",
    )
    p_enrich.add_argument(
        "--dedupe-movies",
        action="store_true",
        help="Collapse repeat movie watches to the latest one (default: keep every watch)",
    )
    p_enrich.add_argument(
        "--log-file",
        type=Path,
        help="Log file path (default: data/logs/log-<timestamp>-<command>.log)",
    )
    p_enrich.add_argument(
        "--debug", action="store_true", help="Enable DEBUG logging (default: INFO)"
    )
    p_enrich.set_defaults(_fn=_command_enrich)

    ns = parser.parse_args(argv)
    ns._fn(ns)
    return


if __name__ == "__main__":
    main()
