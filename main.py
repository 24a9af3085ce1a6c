"""
main.py — CodeScout Entry Point

Runs one search session for an issue and prints the files found.

Usage:
    python main.py "generate_report drops the last row"
    python main.py "..." --repo-root ~/src/project --index ~/src/project/tags.jsonl
    python main.py "..." --log-level DEBUG --max-rounds 4
    python main.py "..." --config path/to/config.yaml
"""

from __future__ import annotations
# ─────────────────────────────────────────────────────────────────────────────
# Load environment variables FIRST
# ─────────────────────────────────────────────────────────────────────────────

from dotenv import load_dotenv
from pathlib import Path

ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=ENV_PATH)

# ─────────────────────────────────────────────────────────────────────────────
import argparse
import asyncio
import sys

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="codescout",
        description="CodeScout — find the code relevant to an issue",
    )
    parser.add_argument("issue", help="Issue text to search for (free-form)")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $CODESCOUT_CONFIG or config/config.yaml)",
    )
    parser.add_argument("--repo-root", default=None, help="Override search.repo_root")
    parser.add_argument("--index", default=None, help="Override search.index_path")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    parser.add_argument("--max-rounds", type=int, default=None, help="Override search.max_rounds")
    return parser.parse_args(argv)


def _apply_overrides(settings, args: argparse.Namespace):
    overrides = {
        "repo_root": args.repo_root,
        "index_path": args.index,
        "max_rounds": args.max_rounds,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return settings
    from config.settings import SearchConfig
    search = SearchConfig(**{**settings.search.model_dump(), **overrides})
    return settings.model_copy(update={"search": search})


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if:
      - config.yaml or a CLI override has an invalid value (ValidationError)
      - cross-field problems are found (ConfigError from validate_all())
    """
    from config.settings import load_settings, ConfigError
    from observability.logger import setup_logging, get_logger
    from pydantic import ValidationError

    try:
        settings = _apply_overrides(load_settings(args.config), args)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {e['loc'][-1] if e['loc'] else '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n❌  Config validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml, your .env file or the command line and retry.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except (OSError, ValueError) as exc:
        print(f"\n❌  Failed to load config: {type(exc).__name__}: {exc}\n", file=sys.stderr)
        sys.exit(1)

    try:
        settings.validate_all()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    log = get_logger("codescout.main")
    return settings, log


_STATUS_STYLE = {"complete": "green", "round_limit": "yellow", "timeout": "yellow"}


def _print_outcome(outcome, console: Console | None = None) -> None:
    console = console or Console()
    status = outcome.status.value
    console.print(
        Panel(
            f"Status: [{_STATUS_STYLE.get(status, 'white')}]{status}[/]  ·  "
            f"Rounds: [bold]{outcome.rounds}[/]  ·  "
            f"Files: [bold]{len(outcome.files)}[/]  ·  "
            f"Session: [dim]{outcome.context.session_id}[/]",
            border_style="cyan",
            padding=(0, 2),
        )
    )
    if not outcome.files:
        console.print("[dim]No relevant files found.[/]")
    else:
        table = Table(title="Relevant files", box=box.ROUNDED, border_style="dim")
        table.add_column("Path", style="cyan", no_wrap=True)
        table.add_column("Why")
        for f in outcome.files:
            table.add_row(f.path, f.thinking)
        console.print(table)
    if outcome.suggestions:
        console.print(f"[yellow]Still missing:[/] {outcome.suggestions}")


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings, log = bootstrap(args)

    from agent import LLMReasoner, SearchLoop
    from brain import LLMClientFactory, LLMError
    from exceptions import CodeScoutError, IndexLoadError
    from search import InMemoryTagIndex, Repository

    log.info(
        "codescout.starting",
        llm_provider=settings.default_llm_provider,
        llm_model=settings.default_llm_model,
        repo_root=settings.search.repo_root,
        index_path=settings.search.index_path,
    )

    try:
        index = InMemoryTagIndex.from_file(Path(settings.search.index_path).expanduser())
    except IndexLoadError as e:
        log.error("codescout.index_failed", error=str(e))
        print(f"\n❌  {e}\n", file=sys.stderr)
        return 1

    repository = Repository(
        tag_index=index,
        root=Path(settings.search.repo_root).expanduser(),
        file_result_cap=settings.search.file_result_cap,
    )

    try:
        client = LLMClientFactory.from_settings(settings)
    except (LLMError, ValueError) as e:
        log.error("codescout.llm_init_failed", error=str(e), error_type=type(e).__name__)
        print(
            f"\n❌  Failed to initialize LLM provider '{settings.default_llm_provider}': {e}\n",
            file=sys.stderr,
        )
        return 1

    loop = SearchLoop.from_settings(
        settings,
        reasoner=LLMReasoner.from_settings(settings, client),
        repository=repository,
    )

    try:
        outcome = await loop.run(args.issue)
    except CodeScoutError as e:
        log.error("codescout.search_failed", error=str(e), error_type=type(e).__name__)
        print(f"\n❌  Search failed: {e}\n", file=sys.stderr)
        return 1

    _print_outcome(outcome)
    return 0


def run() -> int:
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(run())
