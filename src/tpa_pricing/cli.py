"""CLI entrypoint for the TPA pricing-rule tooling.

Commands:
  factors      — List the factor taxonomy
  compile      — Compile a rule form (JSON) into the create-rule payload
  submit       — Compile a rule form and create the rule on the backend
  price-lists  — Search price lists
  procedures   — Search procedures
  rules        — List existing pricing rules
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from tpa_pricing.config import PricingConfig, load_config
from tpa_pricing.form import RuleFormState

T = TypeVar("T")

app = typer.Typer(
    name="tpa-pricing",
    help="TPA pricing rules — compile rule forms and query the pricing backend.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _get_config(config_file: Path | None) -> PricingConfig:
    try:
        return load_config(config_file)
    except FileNotFoundError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=2) from e
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        source = config_file or "environment"
        err_console.print(f"[red]Invalid configuration ({escape(str(source))}): {escape(str(e))}[/]")
        raise typer.Exit(code=2) from e


def _load_form(form_file: Path) -> RuleFormState:
    if not form_file.exists():
        err_console.print(f"[red]Form file not found: {form_file}[/]")
        raise typer.Exit(code=2)
    try:
        return RuleFormState.model_validate(json.loads(form_file.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        err_console.print(f"[red]Invalid rule form {escape(str(form_file))}: {escape(str(e))}[/]")
        raise typer.Exit(code=2) from e


def _run_with_client(config: PricingConfig, call: Callable[..., Awaitable[T]]) -> T:
    """Open a client, await ``call(client)``, and turn backend errors into exit code 2."""
    from tpa_pricing.api.client import PricingApiClient, PricingApiError

    if not config.client.base_url:
        err_console.print(
            "[red]No backend configured. Set TPA_PRICING_API_BASE_URL or pass --config.[/]"
        )
        raise typer.Exit(code=2)

    async def runner() -> T:
        async with PricingApiClient(config.client) as client:
            return await call(client)

    try:
        return asyncio.run(runner())
    except PricingApiError as e:
        err_console.print(f"[red]✗ {escape(e.message)}[/]")
        raise typer.Exit(code=2) from e


def _print_issues(issues: list) -> None:
    err_console.print(f"[red]✗ Rule cannot be submitted — {len(issues)} issue(s):[/]")
    for issue in issues:
        err_console.print(f"  [red]• {escape(f'[{issue.tab}]')} {escape(issue.message)}[/]")


def _export(records: list, output: Path | None, columns: list[str]) -> None:
    if output is None:
        return
    from tpa_pricing.export import models_to_frame, write_frame

    try:
        path = write_frame(models_to_frame(records, columns), output)
    except ValueError as e:
        err_console.print(f"[red]{e}[/]")
        raise typer.Exit(code=2) from e
    console.print(f"[green]✓ Wrote {len(records):,} rows → {path}[/]")


def _table(title: str, columns: list[str], rows: list[list[object]]) -> Table:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*["" if v is None else str(v) for v in row])
    return table


@app.command()
def factors(
    category: str | None = typer.Option(None, help="Only list this category id"),
    output: Path | None = typer.Option(None, help="Write the taxonomy to .csv or .parquet"),
) -> None:
    """List the factor taxonomy."""
    import polars as pl

    from tpa_pricing.export import write_frame
    from tpa_pricing.taxonomy import factor_frame

    df = factor_frame()
    if category:
        df = df.filter(pl.col("category") == category)
        if df.height == 0:
            err_console.print(f"[red]Unknown factor category '{category}'[/]")
            raise typer.Exit(code=1)

    console.print(
        _table("Pricing factors", df.columns, [list(row) for row in df.iter_rows()])
    )
    if output is not None:
        try:
            write_frame(df, output)
        except ValueError as e:
            err_console.print(f"[red]{e}[/]")
            raise typer.Exit(code=2) from e
        console.print(f"[green]✓ Wrote {df.height} factors → {output}[/]")


@app.command("compile")
def compile_form(
    form_file: Path = typer.Option(..., "--form", help="Rule form JSON file"),
    output: Path | None = typer.Option(None, help="Write the payload JSON here instead of stdout"),
    strict: bool = typer.Option(False, help="Reject values outside a factor's allowed set"),
    summary: bool = typer.Option(False, help="Print the rule summary before the payload"),
) -> None:
    """Compile a rule form into the create-rule payload."""
    from tpa_pricing.compiler import compile_rule
    from tpa_pricing.factor_values import (
        FactorValueError,
        LenientFactorValueParser,
        StrictFactorValueParser,
    )
    from tpa_pricing.summary import summarize_rule
    from tpa_pricing.validate import RuleValidationError

    state = _load_form(form_file)
    parser = StrictFactorValueParser() if strict else LenientFactorValueParser()

    if summary:
        for section, text in summarize_rule(state).items():
            err_console.print(f"[bold]{section}:[/] {text}")

    try:
        request = compile_rule(state, parser)
    except RuleValidationError as e:
        _print_issues(e.issues)
        raise typer.Exit(code=1) from e
    except FactorValueError as e:
        err_console.print(f"[red]✗ {escape('[factors]')} {escape(str(e))}[/]")
        raise typer.Exit(code=1) from e

    body = json.dumps(request.to_wire(), indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(body)
        console.print(f"[green]✓ Payload → {output}[/]")
    else:
        typer.echo(body)


@app.command()
def submit(
    form_file: Path = typer.Option(..., "--form", help="Rule form JSON file"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    strict: bool = typer.Option(False, help="Reject values outside a factor's allowed set"),
) -> None:
    """Compile a rule form and create the rule on the backend."""
    from tpa_pricing.designer import RuleDesigner
    from tpa_pricing.factor_values import StrictFactorValueParser
    from tpa_pricing.validate import validate_rule_form

    config = _get_config(config_file)
    state = _load_form(form_file)

    # Fail before touching the network
    validation = validate_rule_form(state)
    if not validation.passed:
        _print_issues(validation.issues)
        raise typer.Exit(code=1)

    async def call(client):
        designer = RuleDesigner(
            client, config, parser=StrictFactorValueParser() if strict else None
        )
        designer.state = state
        return await designer.submit()

    result = _run_with_client(config, call)
    if not result.ok:
        err_console.print(f"[red]✗ {escape(result.error or '')}[/]")
        raise typer.Exit(code=1 if result.tab else 2)
    console.print(f"[green]✓ Created pricing rule #{result.rule.id}[/]")


@app.command()
def price_lists(
    name: str | None = typer.Option(None, help="Name (English) contains"),
    code: str | None = typer.Option(None, help="Price list code"),
    provider_type: str | None = typer.Option(None, help="Provider type"),
    page: int = typer.Option(0, min=0),
    size: int = typer.Option(20, min=1),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    output: Path | None = typer.Option(None, help="Also write results to .csv or .parquet"),
) -> None:
    """Search price lists."""
    config = _get_config(config_file)
    result = _run_with_client(
        config,
        lambda client: client.search_price_lists(
            page=page, size=size, code=code, name_en=name, provider_type=provider_type
        ),
    )
    columns = ["id", "code", "name_en", "provider_type", "region_name", "valid_from", "valid_to"]
    console.print(
        _table(
            f"Price lists (page {result.number + 1}/{max(result.total_pages, 1)}, "
            f"{result.total_elements:,} total)",
            columns,
            [[getattr(p, c) for c in columns] for p in result.content],
        )
    )
    _export(result.content, output, columns)


@app.command()
def procedures(
    keyword: str | None = typer.Option(None, help="Free-text keyword"),
    system_code: str | None = typer.Option(None, help="System code"),
    page: int = typer.Option(0, min=0),
    size: int = typer.Option(10, min=1),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    output: Path | None = typer.Option(None, help="Also write results to .csv or .parquet"),
) -> None:
    """Search procedures (lists all when no criteria are given)."""
    from tpa_pricing.api.client import ProcedureSearchFilters

    config = _get_config(config_file)
    filters = ProcedureSearchFilters(keyword=keyword, system_code=system_code)
    result = _run_with_client(
        config, lambda client: client.search_procedures(filters, page=page, size=size)
    )
    columns = ["id", "system_code", "name_en", "unit_of_measure", "reference_price"]
    console.print(
        _table(
            f"Procedures ({result.total_elements:,} total)",
            columns,
            [[getattr(p, c) for c in columns] for p in result.content],
        )
    )
    _export(result.content, output, columns)


@app.command()
def rules(
    procedure_id: int | None = typer.Option(None, help="Filter by procedure"),
    price_list_id: int | None = typer.Option(None, help="Filter by price list"),
    page: int = typer.Option(0, min=0),
    size: int = typer.Option(20, min=1),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    output: Path | None = typer.Option(None, help="Also write results to .csv or .parquet"),
) -> None:
    """List existing pricing rules."""
    config = _get_config(config_file)
    result = _run_with_client(
        config,
        lambda client: client.fetch_pricing_rules(
            page=page, size=size, procedure_id=procedure_id, price_list_id=price_list_id
        ),
    )
    columns = ["id", "procedure_id", "procedure_name", "price_list_id", "price_list_name", "priority"]
    console.print(
        _table(
            f"Pricing rules ({result.total_elements:,} total)",
            columns,
            [[getattr(r, c) for c in columns] for r in result.content],
        )
    )
    _export(result.content, output, columns)


if __name__ == "__main__":
    app()
