"""lightdao CLI - schema inspection and migration for record type modules."""

import dataclasses
import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import click
from rich.table import Table

from lightdao import __version__
from lightdao.config_runtime import load_runtime_config
from lightdao.database import Database
from lightdao.ddl import build_create_statement
from lightdao.exceptions import ConfigurationError
from lightdao.schema.declarations import TABLE_ATTR, Entity
from lightdao.schema.registry import Registry
from lightdao.ui import console, print_header, print_success
from lightdao.utils.error_handler import handle_exceptions


def load_module(target: str) -> ModuleType:
    """Import a dotted module path or a .py file."""
    if target.endswith(".py"):
        path = Path(target).resolve()
        if not path.is_file():
            raise click.BadParameter(f"No such file: {target}", param_hint="MODULE")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[path.stem] = module
        spec.loader.exec_module(module)
        return module

    try:
        return importlib.import_module(target)
    except ModuleNotFoundError as e:
        raise click.BadParameter(f"Cannot import {target}: {e}", param_hint="MODULE") from e


def persisted_types(module: ModuleType) -> list[type]:
    """Entity subclasses carrying their own @table, in definition order."""
    found = []
    for value in vars(module).values():
        if (
            isinstance(value, type)
            and value is not Entity
            and issubclass(value, Entity)
            and dataclasses.is_dataclass(value)
            and TABLE_ATTR in vars(value)
        ):
            found.append(value)
    if not found:
        raise ConfigurationError(
            f"Module {module.__name__} declares no persisted record types",
            {"module": module.__name__},
        )
    return found


@click.group()
@click.version_option(version=__version__, prog_name="lightdao")
def main():
    """Create, migrate and validate SQLite schemas declared as lightdao record types.

    MODULE is a dotted import path (myapp.models) or a path to a .py file.
    Logging is controlled with LIGHTDAO_LOG_LEVEL, connection settings with
    LIGHTDAO_CONFIG or LIGHTDAO_<SECTION>_<KEY> variables.
    """


@main.command()
@click.argument("module")
@handle_exceptions
def ddl(module):
    """Print the CREATE TABLE statements for MODULE's record types."""
    registry = Registry()
    for entity in registry.register(*persisted_types(load_module(module))):
        console.print(
            f"{build_create_statement(entity).sql};",
            soft_wrap=True,
            highlight=False,
            markup=False,
        )


@main.command()
@click.argument("database", type=click.Path(dir_okay=False))
@click.argument("module")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON config file")
@handle_exceptions
def migrate(database, module, config_path):
    """Create missing tables and columns in DATABASE for MODULE's record types."""
    record_types = persisted_types(load_module(module))

    with Database.open(database, config=load_runtime_config(config_path)) as db:
        report = db.migrate(record_types)

    if not report.changed:
        print_success(f"Schema up to date ({len(record_types)} tables): {database}")
        return

    print_header("MIGRATION")
    table = Table(title=f"Executed on {database}", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action", style="info")
    table.add_column("Statement", style="sql", overflow="fold")

    for i, stmt in enumerate(report.statements, 1):
        action = "create" if stmt.sql.startswith("CREATE") else "alter"
        table.add_row(str(i), action, stmt.sql)

    console.print(table)
    print_success(
        f"{len(report.created)} tables created, {len(report.altered)} columns added"
    )


@main.command()
@click.argument("database", type=click.Path(exists=True, dir_okay=False))
@click.argument("module")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON config file")
@handle_exceptions
def validate(database, module, config_path):
    """Compare DATABASE with MODULE's record types; exit 1 on drift."""
    record_types = persisted_types(load_module(module))

    with Database.open(database, config=load_runtime_config(config_path)) as db:
        drift = db.validate_schema(record_types)

    if not drift:
        print_success(f"Schema matches {len(record_types)} record types: {database}")
        return

    table = Table(title="Schema drift")
    table.add_column("Table", style="table")
    table.add_column("Problem", style="warning", overflow="fold")
    for table_name, errors in drift.items():
        for error in errors:
            table.add_row(table_name, error)
    console.print(table)
    raise click.exceptions.Exit(1)


if __name__ == "__main__":
    main()
