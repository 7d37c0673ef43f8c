from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Callable, TypeVar

import typer

from video_compare.config import Settings, load_settings
from video_compare.ingest.probe import describe
from video_compare.logging_config import configure_logging
from video_compare.pipeline import compare_videos
from video_compare.propose.report import descriptor_payload, format_report, outcome_payload
from video_compare.tooling import Toolchain, resolve_toolchain

app = typer.Typer(help="Compare two encodes of the same video and advise which one to keep.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

COMMAND_NAMES = {"compare", "probe", "config"}

T = TypeVar("T")


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path | None, verbose: bool = False) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging, verbose=verbose)
    logger.debug("Loaded runtime settings from %s", config_path or "defaults")
    return settings


def _fail(exc: Exception) -> typer.Exit:
    logger.error("Comparison failed: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _require_files(*paths: Path) -> None:
    missing = [str(path) for path in paths if not path.is_file()]
    if missing:
        raise FileNotFoundError(f"Video file(s) not found: {', '.join(missing)}")


def _startup(config_path: Path | None, verbose: bool, *paths: Path) -> tuple[Settings, Toolchain]:
    try:
        _require_files(*paths)
        settings = _bootstrap(config_path, verbose)
        toolchain = resolve_toolchain(settings.tools)
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc
    return settings, toolchain


@config_app.command("show")
def show_config(
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="VIDEO_COMPARE_CONFIG",
        help="Optional path to a YAML configuration file.",
    ),
) -> None:
    """Print resolved runtime configuration."""

    try:
        settings = _bootstrap(config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(exc) from exc
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command("probe")
def probe(
    video_path: Path = typer.Argument(..., help="Video file to inspect."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="VIDEO_COMPARE_CONFIG",
        help="Optional path to a YAML configuration file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr."),
) -> None:
    """Print the comparable metadata of one video as JSON."""

    _, toolchain = _startup(config_path, verbose, video_path)
    try:
        descriptor = describe(video_path, toolchain)
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc
    typer.echo(json.dumps(descriptor_payload(descriptor), indent=2))


@app.command("compare")
def compare(
    file1: Path = typer.Argument(..., help="First video file."),
    file2: Path = typer.Argument(..., help="Second video file."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        envvar="VIDEO_COMPARE_CONFIG",
        help="Optional path to a YAML configuration file.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON instead of a text report."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr."),
) -> None:
    """Compare two videos and advise which has the better quality-to-size tradeoff."""

    settings, toolchain = _startup(config_path, verbose, file1, file2)

    try:
        outcome = compare_videos(
            file1,
            file2,
            toolchain=toolchain,
            settings=settings,
            step=_run_with_progress,
        )
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc

    if as_json:
        typer.echo(json.dumps(outcome_payload(outcome), indent=2, allow_nan=False))
    else:
        typer.echo(format_report(outcome))


def _with_default_command(args: list[str]) -> list[str]:
    """Treat `video-compare A B` as `video-compare compare A B`."""

    if args and not args[0].startswith("-") and args[0] not in COMMAND_NAMES:
        return ["compare", *args]
    return list(args)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    app(args=_with_default_command(args), prog_name="video-compare")


if __name__ == "__main__":
    main()
