"""
Root Typer application for the minorm CLI.

``render`` shows the SQL a set of find options produces without touching a
database; ``query`` runs it and prints the rows.
"""

from __future__ import annotations

import typer
from typer import Typer

from minorm.cli.config import app as config_app
from minorm.cli.utils import console, fail, parse_options, print_dict, print_rows

app = Typer(
    name="minorm",
    help="minorm: render and run find options against a SQL store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from minorm import __version__

        typer.echo(f"minorm {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """minorm CLI: inspect the SQL behind find options."""
    from minorm.core.logging import configure_logging
    from minorm.core.settings import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        fail(str(e), code="CONFIG")
        return
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )


@app.command()
def render(
    table: str = typer.Argument(..., help="Table to select from"),
    options: str | None = typer.Option(None, "--options", "-o", help="Find options as JSON"),
    alias: str | None = typer.Option(None, "--alias", "-a", help="Table alias"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Render the SELECT statement and bindings for find options."""
    from minorm.core.data_source import DataSource
    from minorm.core.errors import OrmError

    find_options = parse_options(options)
    ds = DataSource.from_url("memory")
    try:
        sql, bindings = ds.create_query_builder(table, alias).set_find_options(find_options).debug()
    except OrmError as e:
        fail(e.message, code=e.category.value)
        return
    finally:
        ds.close()

    if json_out:
        console.print_json(data={"sql": sql, "bindings": bindings})
        return

    console.print(sql, markup=False, highlight=False)
    if bindings:
        print_dict(bindings, title="Bindings")


@app.command()
def query(
    table: str = typer.Argument(..., help="Table to select from"),
    options: str | None = typer.Option(None, "--options", "-o", help="Find options as JSON"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run find options against a database and print the rows."""
    from minorm.core.data_source import DataSource
    from minorm.core.errors import OrmError, categorize_error

    find_options = parse_options(options)
    try:
        ds = DataSource.from_url(database)
    except OrmError as e:
        fail(e.message, code=e.category.value)
        return

    try:
        rows = ds.create_query_builder(table).set_find_options(find_options).get_many()
    except OrmError as e:
        fail(e.message, code=e.category.value)
        return
    except Exception as e:
        fail(str(e), code=categorize_error(e).value)
        return
    finally:
        ds.close()

    print_rows(rows, as_json=json_out, title=table)


app.add_typer(config_app, name="config", help="Configuration inspection.")
