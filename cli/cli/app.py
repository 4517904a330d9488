"""Changelog CLI application -- Typer-based developer interface.

Provides commands to compile a change-log script tree and to list the DSL
elements a script may use.  Human-readable output goes to *stderr* via Rich;
the ``--json`` summary goes to *stdout* so that pipelines can compose
cleanly.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from changelog_engine.config import load_settings
from changelog_engine.errors import ChangeLogError, ChangeLogResourceError, ExtensionResolutionError
from changelog_engine.loader import DirectoryResourceAccessor
from changelog_engine.models import (
    ChangeLogParameters,
    create_default_change_registry,
    create_default_precondition_registry,
)
from changelog_engine.parser import ChangeLogParserFactory, ScriptChangeLogParser, compile_change_log

from cli.display import change_log_summary, display_change_log, display_elements
from cli.log_format import configure_logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="changelog",
    help="Compile database change-log scripts into migration documents.",
    no_args_is_help=True,
)
console = Console(stderr=True)


@app.callback()
def _global_options(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every compiled file, include and change set.",
    ),
) -> None:
    """Global options applied to every command."""
    configure_logging(load_settings(), verbose=verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_params(values: list[str]) -> dict[str, str]:
    """Parse repeated ``name=value`` options, exiting on a malformed entry."""
    params: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            console.print(f"[red]Invalid --param '{item}': expected name=value[/red]")
            raise typer.Exit(code=2)
        params[name.strip()] = value
    return params


# Exit codes per failure family.
_EXIT_PARSE = 1
_EXIT_RESOURCE = 3
_EXIT_EXTENSION = 4


# ---------------------------------------------------------------------------
# compile
# ---------------------------------------------------------------------------


@app.command("compile")
def compile_command(
    change_log: str = typer.Argument(
        ...,
        help="Path of the root change log, relative to --root.",
    ),
    root: Path = typer.Option(
        Path("."),
        "--root",
        "-r",
        help="Directory that change-log paths are resolved against.",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
    database: str | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Target database engine used for dbms filters (e.g. postgresql).",
    ),
    contexts: str | None = typer.Option(
        None,
        "--contexts",
        help="Comma-separated runtime contexts.",
    ),
    labels: str | None = typer.Option(
        None,
        "--labels",
        help="Runtime label expression.",
    ),
    param: list[str] = typer.Option(
        [],
        "--param",
        "-p",
        help="Change log parameter as name=value.  Repeatable.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Write a JSON summary to stdout instead of the table.",
    ),
) -> None:
    """Compile a change log and everything it includes."""
    settings = load_settings()
    parameters = ChangeLogParameters(database=database, contexts=contexts, labels=labels)
    for name, value in _parse_params(param).items():
        parameters.set(name, value)

    factory = ChangeLogParserFactory()
    factory.register(ScriptChangeLogParser(settings))

    try:
        document = compile_change_log(change_log, DirectoryResourceAccessor(root), parameters, factory)
    except ChangeLogResourceError as exc:
        logger.debug("Compile failed", exc_info=True, extra={"change_log": change_log})
        console.print(f"[red]Missing resource: {exc}[/red]")
        raise typer.Exit(code=_EXIT_RESOURCE) from exc
    except ExtensionResolutionError as exc:
        logger.debug("Compile failed", exc_info=True, extra={"change_log": change_log})
        console.print(f"[red]Extension error: {exc}[/red]")
        raise typer.Exit(code=_EXIT_EXTENSION) from exc
    except ChangeLogError as exc:
        logger.debug("Compile failed", exc_info=True, extra={"change_log": change_log})
        console.print(f"[red]Compile failed: {exc}[/red]")
        raise typer.Exit(code=_EXIT_PARSE) from exc

    if json_output:
        sys.stdout.write(json.dumps(change_log_summary(document), indent=2, default=str) + "\n")
    else:
        display_change_log(console, document)


# ---------------------------------------------------------------------------
# elements
# ---------------------------------------------------------------------------


@app.command()
def elements(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Write the element names to stdout as JSON.",
    ),
) -> None:
    """List the change directives and preconditions a script may use."""
    changes = create_default_change_registry().items()
    preconditions = create_default_precondition_registry().items()

    if json_output:
        payload = {
            "changes": [name for name, _ in changes],
            "preconditions": [name for name, _ in preconditions],
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return

    display_elements(console, "Changes", changes)
    display_elements(console, "Preconditions", preconditions)
