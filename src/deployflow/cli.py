# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click
from pydantic import ValidationError

from deployflow import settings
from deployflow.api_client import APIClient, APIError
from deployflow.dag import run_levels
from deployflow.errors import ConfigurationError
from deployflow.loader import load
from deployflow.model import Action, Pipeline
from deployflow.render import dumps, render_definition
from deployflow.ui.console import Console, get_console, set_console


def find_pipeline_files() -> list[Path]:
    """
    Find all pipeline definitions in the current directory.

    Returns:
        List of Path objects: deployflow.json and *_pipeline.py files
    """
    current_dir = Path(".")
    found = []

    default_config = current_dir / "deployflow.json"
    if default_config.exists():
        found.append(default_config)

    for path in current_dir.glob("*_pipeline.py"):
        found.append(path)

    return sorted(found)


def discover_pipeline(pipeline_arg: str | None) -> Path:
    """
    Discover the pipeline definition from argument or default.

    Raises:
        SystemExit: If nothing can be found or several candidates exist
    """
    console = get_console()

    if pipeline_arg:
        path = Path(pipeline_arg)
        if not path.exists():
            console.print_error(
                "Pipeline definition not found",
                f"Could not find: {pipeline_arg}",
                suggestion="Pass a .json config or a .py pipeline file:\n  deployflow synth --pipeline deployflow.json",
            )
            sys.exit(1)
        return path

    candidates = find_pipeline_files()

    if len(candidates) == 0:
        console.print_error(
            "No pipeline definition found",
            "Could not find any pipeline definition.",
            details=[
                "Looked for:",
                "  deployflow.json",
                "  *_pipeline.py",
            ],
            suggestion="Specify one explicitly:\n  deployflow synth --pipeline site_pipeline.py",
        )
        sys.exit(1)

    if len(candidates) > 1:
        file_list = "\n".join(f"  {f}" for f in candidates)
        console.print_error(
            "Multiple pipeline definitions found",
            "Found multiple pipeline definitions. Please specify which one to use:",
            details=[file_list],
            suggestion="Specify one explicitly:\n  deployflow synth --pipeline deployflow.json",
        )
        sys.exit(1)

    return candidates[0]


def _load_or_exit(pipeline_arg: str | None) -> Pipeline:
    """Load and validate; declaration errors end the command before any output is produced."""
    console = get_console()
    path = discover_pipeline(pipeline_arg)
    try:
        pipeline = load(path)
    except ConfigurationError as e:
        console.print_configuration_error(e)
        sys.exit(1)
    except ValidationError as e:
        console.print_error(
            "Invalid pipeline config",
            f"{path} failed validation",
            details=[str(err["loc"]) + ": " + err["msg"] for err in e.errors()],
        )
        sys.exit(1)
    except Exception as e:
        console.print_error("Failed to load pipeline", f"Could not load {path}")
        console.print_exception(e)
        sys.exit(1)

    console.print_debug(
        f"Loaded {pipeline.name} from {path}: {len(pipeline.stages)} stages, {len(pipeline.actions)} actions"
    )
    return pipeline


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
def cli(debug):
    """deployflow: declare, validate and synthesize deployment pipelines."""
    set_console(Console(debug=debug))


@cli.command()
@click.option("--pipeline", "pipeline_arg", default=None, help="Pipeline .json config or .py file")
@click.option("-o", "--output", default=None, help="Write the definition to this file instead of stdout")
@click.option("--indent", default=2, show_default=True, type=int, help="JSON indentation")
def synth(pipeline_arg, output, indent):
    """Validate a pipeline and print its definition document."""
    console = get_console()
    pipeline = _load_or_exit(pipeline_arg)

    text = dumps(pipeline, indent=indent)
    if output:
        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
        console.print_info(f"Wrote {pipeline.name} definition to {out}")
    else:
        click.echo(text)


@cli.command()
@click.option("--pipeline", "pipeline_arg", default=None, help="Pipeline .json config or .py file")
def plan(pipeline_arg):
    """Print the execution levels (barriers) of a pipeline."""
    console = get_console()
    pipeline = _load_or_exit(pipeline_arg)

    console.print_pipeline_loaded(
        pipeline.name,
        source=str(pipeline_arg or "discovered"),
        stage_count=len(pipeline.stages),
        action_count=len(pipeline.actions),
    )
    console.print_levels(pipeline.levels())


@cli.command()
@click.option("--pipeline", "pipeline_arg", default=None, help="Pipeline .json config or .py file")
@click.option("--fail", "fail_ids", multiple=True, help="Action id to fail, e.g. Build/Assets (repeatable)")
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Number of parallel workers per level")
def simulate(pipeline_arg, fail_ids, workers):
    """Dry-run the levels locally to show barrier behavior. Nothing is provisioned."""
    console = get_console()
    pipeline = _load_or_exit(pipeline_arg)

    unknown = sorted(set(fail_ids) - {a.id for a in pipeline.actions})
    if unknown:
        console.print_error("Unknown action", f"No such action(s): {unknown}")
        sys.exit(1)

    def run_fn(action: Action) -> None:
        console.print_action(action.id)
        if action.id in fail_ids:
            raise RuntimeError("simulated failure")

    try:
        result = run_levels(pipeline.levels(), run_fn, max_workers=workers)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    console.print_results(result.statuses)
    failure = result.first_failure()
    if failure is not None:
        console.print_execution_failure(failure)
        sys.exit(1)


@cli.command()
@click.option("--api", default=settings.API_URL, show_default=True, help="Execution engine API base URL")
@click.option("--pipeline", "pipeline_arg", default=None, help="Pipeline .json config or .py file")
def submit(api, pipeline_arg):
    """Hand a validated pipeline definition to the execution engine."""
    console = get_console()
    pipeline = _load_or_exit(pipeline_arg)

    client = APIClient(api)
    try:
        response = client.submit(render_definition(pipeline))
    except APIError as e:
        console.print_error(
            "API request failed",
            f"Could not submit {pipeline.name} to {api}",
            suggestion=f"Check the API at {api} and verify your request.",
        )
        console.print_exception(e)
        sys.exit(1)

    console.print_info(f"\nSuccessfully submitted {pipeline.name} to {api}")
    for k, v in response.items():
        console.print_info(f"  {k}: {v}")


if __name__ == "__main__":
    cli()
