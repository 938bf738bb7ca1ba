"""Command-line interface for the achievement cache builder."""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from .pipelines.achievements_pipeline import ProviderRunResult, run_provider
from .pipelines.artifacts import ProviderCacheStore
from .pipelines.common import dump_records, log_run_stats
from .pipelines.context import PipelineContext
from .schema import PROVIDERS, SOURCE_ALIASES, SYNC_ALLOWED_SOURCES
from .utils import ProjectPaths, RunPaths, build_completion_table, write_csv
from .utils.source_selection import parse_sources
from .utils.summary import format_completion_line


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

    # Console logs go to stderr so the JSON dump on stdout stays machine-readable.
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


def _prepare_run_paths(*, project_root: Path, args: argparse.Namespace) -> RunPaths:
    """
    Determine the run dir for a command (default `<repo>/data`) and apply --cache/--logs-dir.
    """

    def _abs(p: Path | None) -> Path | None:
        if p is None:
            return None
        return (p if p.is_absolute() else (project_root / p)).resolve()

    run_dir = _abs(getattr(args, "run_dir", None)) or (project_root / "data")
    run_paths = RunPaths.from_run_dir(run_dir)
    out = replace(
        run_paths,
        cache_dir=_abs(getattr(args, "cache", None)) or run_paths.cache_dir,
        logs_dir=_abs(getattr(args, "logs_dir", None)) or run_paths.logs_dir,
    )
    out.ensure()
    return out


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
    run_paths: RunPaths,
    log_file: Path | None,
    debug: bool,
    *,
    command_name: str,
) -> None:
    setup_logging(
        log_file or _default_log_file(command_name=command_name, logs_dir=run_paths.logs_dir)
    )
    if debug:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        for handler in root_logger.handlers:
            handler.setLevel(logging.DEBUG)
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    argv = " ".join(shlex.quote(a) for a in sys.argv)
    logging.info(f"Invocation: {argv}")


def _selected_sources(args: argparse.Namespace) -> list[str]:
    return parse_sources(args.source, allowed=set(SYNC_ALLOWED_SOURCES), aliases=SOURCE_ALIASES)


def _read_caches(store: ProviderCacheStore, sources: list[str]) -> dict[str, list]:
    out: dict[str, list] = {}
    for provider in sources:
        records = store.read(provider)
        if records is None:
            logging.warning(f"No usable cache for '{provider}' at {store.path_for(provider)}")
            continue
        out[provider] = records
    return out


def _command_sync(args: argparse.Namespace) -> int:
    project_root, _paths = _common_paths()
    run_paths = _prepare_run_paths(project_root=project_root, args=args)
    _setup_logging_from_args(run_paths, args.log_file, args.debug, command_name="sync")

    load_dotenv(project_root / ".env")
    credentials_path = args.credentials or (project_root / "data" / "credentials.yaml")
    ctx = PipelineContext(
        cache_dir=run_paths.cache_dir,
        credentials_path=credentials_path,
        sources=_selected_sources(args),
    )
    adapters = ctx.build_adapters()
    if not adapters:
        raise SystemExit("No provider has credentials configured; nothing to sync.")

    store = ctx.cache_store()
    results: list[ProviderRunResult] = []
    for provider, adapter in adapters.items():
        logging.info(f"Syncing provider: {provider}")
        results.append(run_provider(adapter, store, max_workers=args.max_workers))

    log_run_stats(results)
    if args.dump:
        dump_records({r.provider: r.records for r in results if not r.list_error}, sys.stdout)

    failed_lists = [r.provider for r in results if r.list_error]
    failed_writes = [r.provider for r in results if r.write_error]
    if failed_lists:
        logging.error(f"Title list failed for: {', '.join(failed_lists)}")
    if failed_writes:
        logging.error(f"Cache write failed for: {', '.join(failed_writes)}")
    if failed_lists or failed_writes:
        return 1
    logging.info("✔ Sync completed")
    return 0


def _command_show(args: argparse.Namespace) -> int:
    project_root, _paths = _common_paths()
    run_paths = _prepare_run_paths(project_root=project_root, args=args)
    _setup_logging_from_args(run_paths, args.log_file, args.debug, command_name="show")

    store = ProviderCacheStore(run_paths.cache_dir)
    for provider, records in _read_caches(store, _selected_sources(args)).items():
        for rec in records:
            print(format_completion_line(provider, rec))
    return 0


def _command_summary(args: argparse.Namespace) -> int:
    project_root, _paths = _common_paths()
    run_paths = _prepare_run_paths(project_root=project_root, args=args)
    _setup_logging_from_args(run_paths, args.log_file, args.debug, command_name="summary")

    store = ProviderCacheStore(run_paths.cache_dir)
    df = build_completion_table(_read_caches(store, _selected_sources(args)))
    out = args.out or (run_paths.output_dir / "Achievements_Summary.csv")
    write_csv(df, out)
    logging.info(f"✔ Summary written: {out} (games={len(df)})")
    return 0


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        raise SystemExit(
            "Missing command. Use one of: sync, show, summary. "
            "Run `achievement-cache --help` for usage."
        )

    parser = argparse.ArgumentParser(
        description="Build per-provider achievement caches for Steam, PSN and Xbox"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_common = argparse.ArgumentParser(add_help=False)
    p_common.add_argument(
        "--run-dir",
        type=Path,
        help="Run directory containing cache/output/logs (default: ./data)",
    )
    p_common.add_argument(
        "--logs-dir",
        type=Path,
        help="Override logs directory (default: <run-dir>/logs)",
    )
    p_common.add_argument("--cache", type=Path, help="Cache directory (default: data/cache)")
    p_common.add_argument(
        "--source",
        type=str,
        default="all",
        help=f"Providers: all, a comma list of {', '.join(PROVIDERS)}, or an alias "
        f"({', '.join(sorted(SOURCE_ALIASES))})",
    )
    p_common.add_argument(
        "--log-file",
        type=Path,
        help="Log file path (default: data/logs/log-<timestamp>-<command>.log)",
    )
    p_common.add_argument(
        "--debug", action="store_true", help="Enable DEBUG logging (default: INFO)"
    )

    p_sync = sub.add_parser(
        "sync",
        help="Fetch achievements from the selected providers and rebuild their caches",
        parents=[p_common],
    )
    p_sync.add_argument(
        "--credentials",
        type=Path,
        help="Credentials YAML (default: data/credentials.yaml); environment variables win",
    )
    p_sync.add_argument(
        "--dump",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Print the merged game list as JSON to stdout (default: on)",
    )
    p_sync.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Titles processed in parallel per provider (default: provider setting)",
    )
    p_sync.set_defaults(_fn=_command_sync)

    p_show = sub.add_parser(
        "show", help="Print per-game completion from the caches", parents=[p_common]
    )
    p_show.set_defaults(_fn=_command_show)

    p_summary = sub.add_parser(
        "summary", help="Write a completion summary CSV from the caches", parents=[p_common]
    )
    p_summary.add_argument(
        "--out", type=Path, help="Output CSV (default: data/output/Achievements_Summary.csv)"
    )
    p_summary.set_defaults(_fn=_command_summary)

    ns = parser.parse_args(argv)
    code = ns._fn(ns)
    if code:
        raise SystemExit(code)
    return


if __name__ == "__main__":
    main()
