# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from sitepipe.errors import ConfigurationError, PipelineError
from sitepipe.pipeline import Pipeline
from sitepipe.runner import load_pipeline, run as run_pipeline
from sitepipe.ui.console import Console, set_console, get_console

DEFAULT_PIPELINE = "sitepipe_pipeline.py"


def find_pipeline_files(directory: Path = Path(".")) -> list[Path]:
    """
    Candidate pipeline files in `directory`.

    sitepipe_pipeline.py alone if it exists, otherwise every *_pipeline.py.
    """
    default_pipeline = directory / DEFAULT_PIPELINE
    if default_pipeline.exists():
        return [default_pipeline]
    return sorted(directory.glob("*_pipeline.py"))


def discover_pipeline(pipeline_arg: str | None) -> Path:
    """
    Resolve --pipeline (the .py suffix is optional) or pick the single
    candidate in the current directory. Exits with status 1 otherwise.
    """
    console = get_console()

    if pipeline_arg:
        pipeline_path = Path(pipeline_arg)
        if not pipeline_path.exists() and pipeline_path.suffix != ".py":
            pipeline_path = pipeline_path.with_name(pipeline_path.name + ".py")
        if not pipeline_path.exists():
            console.print_error(
                "Pipeline file not found",
                f"No such file: {pipeline_arg}",
                suggestion="Check the --pipeline path (or SITEPIPE_PIPELINE).",
            )
            sys.exit(1)
        return pipeline_path

    candidates = find_pipeline_files()

    if not candidates:
        console.print_error(
            "No pipeline file found",
            f"Expected {DEFAULT_PIPELINE} or a *_pipeline.py in {Path('.').resolve()}",
            suggestion=f"Add {DEFAULT_PIPELINE} defining pipeline() -> Pipeline, or pass --pipeline.",
        )
        sys.exit(1)

    if len(candidates) > 1:
        console.print_error(
            "Ambiguous pipeline file",
            "More than one *_pipeline.py here:",
            details=[str(f) for f in candidates],
            suggestion=f"Pick one, e.g. --pipeline {candidates[0]}",
        )
        sys.exit(1)

    return candidates[0]


def _load(ctx: click.Context, pipeline_arg: str | None) -> Pipeline:
    console = get_console()
    pipeline_path = discover_pipeline(pipeline_arg)
    console.print_debug(f"Loading pipeline from {pipeline_path}")
    try:
        return load_pipeline(pipeline_path)
    except ConfigurationError as e:
        console.print_error("Invalid pipeline", str(e))
        sys.exit(1)
    except Exception as e:
        console.print_error(
            "Failed to load pipeline",
            f"Could not load pipeline from {pipeline_path}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)


pipeline_option = click.option(
    "--pipeline",
    "pipeline_arg",
    default=None,
    envvar="SITEPIPE_PIPELINE",
    help=f"Pipeline file path (defaults to {DEFAULT_PIPELINE} if present)",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """sitepipe: dependency-ordered static site build tasks."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("target")
@pipeline_option
@click.option("--workers", default=None, type=click.IntRange(min=1), envvar="SITEPIPE_WORKERS", help="Number of parallel workers")
@click.option("--show-output", is_flag=True, default=False, help="Print what each succeeded task returned")
@click.pass_context
def run(ctx, target, pipeline_arg, workers, show_output):
    """Run TARGET and every task it needs."""
    console = get_console()
    pipeline = _load(ctx, pipeline_arg)

    try:
        report = run_pipeline(pipeline, target, max_workers=workers, console=console)
        if show_output:
            console.print_outputs(report)
        console.print_results(report)
    except ConfigurationError as e:
        console.print_error("Invalid pipeline", str(e))
        sys.exit(1)
    except PipelineError as e:
        if e.report is not None:
            console.print_results(e.report)
        console.print_error("Pipeline failed", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command(name="list")
@pipeline_option
@click.pass_context
def list_tasks(ctx, pipeline_arg):
    """List registered tasks and what they need."""
    console = get_console()
    pipeline = _load(ctx, pipeline_arg)
    console.print_tasks(pipeline)


@cli.command()
@click.argument("target")
@pipeline_option
@click.pass_context
def plan(ctx, target, pipeline_arg):
    """Show the execution stages for TARGET without running anything."""
    console = get_console()
    pipeline = _load(ctx, pipeline_arg)
    try:
        levels = pipeline.levels(target)
    except ConfigurationError as e:
        console.print_error("Invalid pipeline", str(e))
        sys.exit(1)
    console.print_plan(target, levels)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
