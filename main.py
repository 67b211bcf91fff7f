#!/usr/bin/env python3
"""Python Functions SDK - Entry point."""
import json
import logging
import sys
from pathlib import Path

import click
from colorama import Fore, Style, init

from config import app_config
from functions_sdk.checker.diagnostics import CompilerError
from functions_sdk.cli.reporting import print_compiler_diagnostics, print_function_issues, print_summary
from functions_sdk.exporter.json_exporter import JsonExporter
from functions_sdk.exporter.ndc_schema import get_ndc_schema
from functions_sdk.inference.schema_assembler import derive_schema

# Initialize colorama
init(autoreset=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def print_banner():
    """Print application banner."""
    click.echo(f"{Fore.CYAN}{'=' * 44}", err=True)
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Python Functions SDK{Fore.CYAN}                 ║", err=True)
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Schema derivation from type hints{Fore.CYAN}    ║", err=True)
    click.echo(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}", err=True)


def run_derivation(functions_file: str):
    """Derive the schema, exiting with status 1 on compiler errors."""
    try:
        defaults = app_config.inference.to_project_config()
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        return derive_schema(functions_file, defaults)
    except CompilerError as e:
        click.echo(f"{Fore.RED}❌ {e}{Style.RESET_ALL}", err=True)
        print_compiler_diagnostics(e.diagnostics)
        sys.exit(1)


functions_file_argument = click.argument(
    "functions_file",
    required=False,
    default=lambda: app_config.functions_file,
    type=click.Path(dir_okay=False),
)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=lambda: app_config.log_level,
    help="Logging verbosity",
)
def cli(log_level):
    """Python Functions SDK - Derive a connector schema from typed functions."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@functions_file_argument
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    help="Write the JSON export to this file instead of stdout",
)
def derive(functions_file, output):
    """Derive the functions schema of FUNCTIONS_FILE."""
    result = run_derivation(functions_file)
    print_function_issues(result.function_issues)

    exporter = JsonExporter()
    if output:
        print_banner()
        exporter.export(Path(output), Path(functions_file), result)
        schema = result.functions_schema
        broken = sorted(name for name in result.function_issues if name not in schema.functions)
        print_summary(len(schema.functions), len(schema.object_types), broken)
        click.echo(f"{Fore.GREEN}Saved to {output}")
    else:
        click.echo(json.dumps(exporter.build(Path(functions_file), result), indent=2, default=str))


@cli.command()
@functions_file_argument
def schema(functions_file):
    """Print the connector schema response for FUNCTIONS_FILE."""
    result = run_derivation(functions_file)
    print_function_issues(result.function_issues)
    click.echo(json.dumps(get_ndc_schema(result.functions_schema), indent=2))


@cli.command()
@functions_file_argument
def check(functions_file):
    """Report issues in FUNCTIONS_FILE; exit 1 if any function is broken."""
    result = run_derivation(functions_file)
    print_function_issues(result.function_issues)

    if result.has_broken_functions():
        sys.exit(1)
    click.echo(f"{Fore.GREEN}✅ {len(result.functions_schema.functions)} function(s) OK")


if __name__ == "__main__":
    cli()
