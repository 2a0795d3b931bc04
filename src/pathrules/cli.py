"""
CLI entry point for pathrules.

This module provides the Typer-based command-line interface for pathrules.

Commands:
    check   Validate and list a rules document
    eval    Simulate one read or write against a rules document

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to the
    matcher. Nothing here is needed to use pathrules as a library.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from pathrules import __version__
from pathrules.errors import PathRulesError
from pathrules.loader import load_rules
from pathrules.matcher import PathRuleMatcher, RuleTrace
from pathrules.schema import AuthContext, Decision, Operation

app = typer.Typer(
    name="pathrules",
    help="Validate path rules and simulate authorization decisions.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_INVALID = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]pathrules[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every decision."),
    ] = False,
) -> None:
    """
    pathrules - Path-scoped authorization rules for document stores.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@app.command()
def check(
    rules_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the rules YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output in JSON format."),
    ] = False,
) -> None:
    """
    Validate a rules document and list its rules.

    Example:
        $ pathrules check firestore.rules.yaml
    """
    try:
        ruleset = load_rules(rules_path)
    except PathRulesError as e:
        if json_output:
            print(json.dumps({"valid": False, "error": e.to_dict()}, indent=2, default=str))
        else:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        output = {
            "valid": True,
            "rules_version": ruleset.rules_version,
            "precedence": ruleset.precedence.value,
            "rules": [
                {
                    "index": index,
                    "name": rule.name,
                    "match": str(rule.pattern),
                    "allow": sorted(op.value for op in rule.operations),
                    "if": rule.guard.describe(),
                }
                for index, rule in enumerate(ruleset.rules)
            ],
        }
        print(json.dumps(output, indent=2))
        raise typer.Exit(code=0)

    console.print(
        f"[green]✓[/green] {len(ruleset.rules)} rule(s) valid "
        f"[dim](precedence: {ruleset.precedence.value})[/dim]"
    )
    if ruleset.rules:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", width=3)
        table.add_column("Match", style="cyan")
        table.add_column("Allow")
        table.add_column("If")
        table.add_column("Name", style="dim")
        for index, rule in enumerate(ruleset.rules):
            table.add_row(
                str(index),
                str(rule.pattern),
                ", ".join(sorted(op.value for op in rule.operations)),
                rule.guard.describe(),
                rule.name or "",
            )
        console.print(table)


@app.command("eval")
def eval_(
    rules_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the rules YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    operation: Annotated[
        Operation,
        typer.Argument(help="Operation to simulate."),
    ],
    path: Annotated[
        str,
        typer.Argument(help="Document path, e.g. users/alice."),
    ],
    uid: Annotated[
        Optional[str],
        typer.Option("--uid", "-u", help="Simulate an authenticated user. Anonymous if omitted."),
    ] = None,
    explain: Annotated[
        bool,
        typer.Option("--explain", help="Show how every rule reacted."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output in JSON format."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Simulate one operation and print the decision.

    Exits 0 when allowed, 1 when denied and 2 when the rules or the path
    are invalid.

    Example:
        $ pathrules eval firestore.rules.yaml write users/alice --uid alice
    """
    auth = AuthContext.for_user(uid) if uid else AuthContext.anonymous()

    try:
        matcher = PathRuleMatcher.from_file(rules_path)
        decision = matcher.evaluate(operation, path, auth)
        traces = matcher.explain(operation, path, auth) if explain else []
    except PathRulesError as e:
        if json_output:
            output = {"error": True, **e.to_dict()}
            if debug:
                output["traceback"] = traceback.format_exc()
            print(json.dumps(output, indent=2, default=str))
        else:
            console.print(f"[red]{escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=EXIT_INVALID)

    if json_output:
        output = {
            "operation": operation.value,
            "path": path,
            "uid": uid,
            **decision.model_dump(),
        }
        if explain:
            output["trace"] = [_trace_to_dict(t) for t in traces]
        print(json.dumps(output, indent=2))
    else:
        _display_decision(decision, operation, path, auth)
        if explain:
            _display_traces(traces)

    raise typer.Exit(code=EXIT_ALLOWED if decision.allowed else EXIT_DENIED)


def _display_decision(
    decision: Decision,
    operation: Operation,
    path: str,
    auth: AuthContext,
) -> None:
    who = auth.uid if auth.is_authenticated else "anonymous"
    if decision.allowed:
        verdict = "[green]✓ ALLOW[/green]"
    else:
        verdict = "[red]✗ DENY[/red]"
    console.print(f"{verdict} {operation.value} [cyan]{path}[/cyan] as {who}")

    if decision.matched_rule is not None:
        label = f"rule {decision.matched_rule}"
        if decision.rule_name:
            label += f" ({decision.rule_name})"
        console.print(f"[dim]Decided by {label}[/dim]")
    console.print(f"[dim]{decision.reason}[/dim]")


def _display_traces(traces: list[RuleTrace]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Match", style="cyan")
    table.add_column("Result")
    table.add_column("Bindings", style="dim")

    for trace in traces:
        if not trace.governs:
            result = "[dim]other operation[/dim]"
        elif not trace.matched:
            result = "[dim]no match[/dim]"
        elif trace.guard_passed:
            result = "[green]guard passed[/green]"
        else:
            result = "[yellow]guard failed[/yellow]"
        bindings = ", ".join(f"{k}={v}" for k, v in trace.bindings.items())
        table.add_row(str(trace.index), str(trace.rule.pattern), result, bindings)

    console.print()
    console.print(table)


def _trace_to_dict(trace: RuleTrace) -> dict:
    return {
        "index": trace.index,
        "match": str(trace.rule.pattern),
        "governs": trace.governs,
        "matched": trace.matched,
        "guard_passed": trace.guard_passed,
        "bindings": trace.bindings,
    }


if __name__ == "__main__":
    app()
